"""Command line entry point.

Usage::

    quasarkit ask my-app --answers-out answers.json
    quasarkit files ./template --answers answers.json
    quasarkit complete my-app --answers answers.json
    quasarkit complete . --answers answers.json --in-place
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from functools import partial
from pathlib import Path
from typing import Optional

from rich.markup import escape
from rich.table import Table

from quasarkit import collaborators
from quasarkit.collector import PromptCollector
from quasarkit.complete import Collaborators, PostGenerationPipeline
from quasarkit.config import Config
from quasarkit.errors import AnswerValidationError, MetadataError
from quasarkit.filters import list_template_files
from quasarkit.metadata import TemplateMetadata, load_metadata
from quasarkit.schema.answers import AnswerStore
from quasarkit.utils import console, print_error, print_success, print_summary_table


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quasarkit",
        description="Quasar starter kit -- prompts, file filters and post-generation steps",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  quasarkit ask my-app --answers-out answers.json\n"
            "  quasarkit files ./template --answers answers.json\n"
            "  quasarkit complete my-app --answers answers.json\n"
        ),
    )
    parser.add_argument(
        "--metadata",
        default=None,
        help="Template metadata YAML (default: the bundled Quasar kit)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    ask = sub.add_parser("ask", help="Collect answers interactively")
    ask.add_argument("destination", help="Project directory name (default for the project name)")
    ask.add_argument("--answers-out", default="answers.json", help="Where to save the answers")

    files = sub.add_parser("files", help="List the template files kept for a set of answers")
    files.add_argument("template_dir", help="Template root directory")
    files.add_argument("--answers", required=True, help="Answers JSON file")

    complete = sub.add_parser("complete", help="Run the post-generation steps")
    complete.add_argument("destination", help="Generated project directory name")
    complete.add_argument("--answers", required=True, help="Answers JSON file")
    complete.add_argument("--in-place", action="store_true", help="Project was generated in --cwd")
    complete.add_argument("--cwd", default=None, help="Directory the destination is relative to")
    complete.add_argument(
        "--quiet", action="store_true", help="Capture installer/linter output instead of streaming it"
    )
    return parser


def _cmd_ask(meta: TemplateMetadata, args: argparse.Namespace) -> int:
    collector = PromptCollector.for_destination(meta.prompts, Path(args.destination).name)
    answers = collector.collect()
    target = answers.save(args.answers_out)
    print_success(f"Answers saved to {target}")
    return 0


def _cmd_files(meta: TemplateMetadata, args: argparse.Namespace) -> int:
    answers = AnswerStore.load(meta.prompts, args.answers)
    paths = list_template_files(args.template_dir)
    engine = meta.filter_engine()
    kept = engine.select(paths, answers)

    table = Table(title="Template files", show_header=True, header_style="bold cyan")
    table.add_column("Path")
    table.add_column("Included")
    kept_set = set(kept)
    for path in paths:
        mark = "[green]yes[/green]" if path in kept_set else "[red]no[/red]"
        table.add_row(path, mark)
    console.print(table)
    print_summary_table(
        {"Total": str(len(paths)), "Included": str(len(kept)), "Excluded": str(len(paths) - len(kept))}
    )
    return 0


def _cmd_complete(meta: TemplateMetadata, args: argparse.Namespace) -> int:
    answers = AnswerStore.load(meta.prompts, args.answers)
    config = Config.from_env(dest_dir_name=args.destination, in_place=args.in_place or None)
    if args.cwd:
        config.cwd = Path(args.cwd)
    if args.quiet:
        config.stream_output = False

    capture = not config.stream_output
    steps = Collaborators(
        install_dependencies=partial(collaborators.install_dependencies, capture=capture),
        run_lint_fix=partial(collaborators.run_lint_fix, capture=capture),
    )
    result = asyncio.run(PostGenerationPipeline(config, answers, steps).run())
    return 0 if result.success else 1


def main(argv: Optional[list[str]] = None) -> int:
    """CLI entry point for ``quasarkit`` / ``python -m quasarkit``."""
    args = _build_parser().parse_args(argv)
    try:
        meta = load_metadata(args.metadata)
        if args.command == "ask":
            return _cmd_ask(meta, args)
        if args.command == "files":
            return _cmd_files(meta, args)
        return _cmd_complete(meta, args)
    except (MetadataError, AnswerValidationError, OSError, ValueError) as exc:
        print_error(f"Error: {escape(str(exc))}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
