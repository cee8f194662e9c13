"""Default post-generation collaborators.

These are the concrete steps the post-generation pipeline calls: sort the
generated ``package.json``, install dependencies with yarn or npm, run the
lint auto-fix, and print the closing instructions.  The pipeline only knows
their signatures, so a host tool (or a test) can swap any of them out.

Colours are Rich style names (``"green"``, ``"bold red"``); a ``Palette``
groups the ones the summary message needs.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment
from rich.markup import escape

from quasarkit.errors import CommandError, InstallError, LintFixError
from quasarkit.schema.answers import AnswerStore
from quasarkit.schema.expressions import loose_equals
from quasarkit.utils import (
    console,
    format_command,
    load_json,
    print_step_header,
    print_warning,
    run_command,
    save_json,
    styled,
)

DOCS_URL = "https://quasar.dev"

MANIFEST_SECTIONS = ("dependencies", "devDependencies")


# ---------------------------------------------------------------------------
# Shared value types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Palette:
    """Styles used by the summary message."""

    success: str = "green"
    highlight: str = "yellow"
    error: str = "red"

    @classmethod
    def single(cls, style: str) -> "Palette":
        """A palette that paints every role with *style*."""
        return cls(success=style, highlight=style, error=style)


@dataclass(frozen=True)
class ProjectTarget:
    """The answers plus the host-provided destination details."""

    answers: AnswerStore
    dest_dir_name: str = ""
    in_place: bool = False


def install_manager(answers: AnswerStore) -> Optional[str]:
    """Return the package manager to install with, or ``None`` for "no".

    ``autoInstall`` is tri-state: ``'yarn'``, ``'npm'`` or a falsy answer
    (``False``, ``'false'``, ``'no'``, absent).
    """
    value: Any = answers.get("autoInstall")
    if not value or loose_equals(value, False):
        return None
    if isinstance(value, str) and value.strip().lower() == "no":
        return None
    return str(value)


# ---------------------------------------------------------------------------
# Manifest sorting
# ---------------------------------------------------------------------------


def sort_object(mapping: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of *mapping* with keys in alphabetical order."""
    return {key: mapping[key] for key in sorted(mapping)}


def sort_dependencies(project_root: Path, color: str = "green") -> None:
    """Sort ``dependencies`` and ``devDependencies`` of ``package.json`` in place.

    Sections that are absent stay absent; a missing manifest only produces a
    warning because some templates do not ship one.
    """
    manifest = Path(project_root) / "package.json"
    if not manifest.is_file():
        print_warning(f"No package.json found in {project_root}; skipping dependency sort.")
        return

    package = load_json(manifest)
    if not isinstance(package, dict):
        print_warning(f"{manifest} is not a JSON object; skipping dependency sort.")
        return
    for section in MANIFEST_SECTIONS:
        if isinstance(package.get(section), dict):
            package[section] = sort_object(package[section])
    save_json(package, manifest)


# ---------------------------------------------------------------------------
# External processes
# ---------------------------------------------------------------------------


async def _run_checked(
    cmd: list[str],
    cwd: Path,
    error_cls: type[CommandError],
    capture: bool,
) -> None:
    try:
        returncode, _stdout, stderr = await run_command(cmd, cwd=cwd, capture=capture)
    except FileNotFoundError as exc:
        raise error_cls(format_command(cmd), 127, f"{cmd[0]}: command not found") from exc
    if returncode != 0:
        raise error_cls(format_command(cmd), returncode, stderr)


async def install_dependencies(
    project_root: Path,
    manager: str = "npm",
    color: str = "green",
    *,
    capture: bool = False,
) -> None:
    """Run ``<manager> install`` inside the generated project.

    Raises:
        InstallError: If the package manager is missing or exits non-zero.
    """
    print_step_header("Installing project dependencies ...", color)
    await _run_checked([manager, "install"], Path(project_root), InstallError, capture)


def lint_fix_command(manager: str) -> list[str]:
    """npm needs ``--`` to forward ``--fix`` to the lint script; yarn does not."""
    if manager == "npm":
        return ["npm", "run", "lint", "--", "--fix"]
    return [manager, "run", "lint", "--fix"]


async def run_lint_fix(
    project_root: Path,
    answers: AnswerStore,
    color: str = "green",
    *,
    capture: bool = False,
) -> None:
    """Run the project's ``lint --fix`` script when ESLint was selected.

    Raises:
        LintFixError: If the lint script exits non-zero.
    """
    if not answers.selected("preset", "lint"):
        return

    console.print()
    console.print(styled("Running eslint --fix to comply with chosen preset rules...", color))
    console.print("# ========================")
    console.print()
    manager = install_manager(answers) or "npm"
    await _run_checked(lint_fix_command(manager), Path(project_root), LintFixError, capture)


# ---------------------------------------------------------------------------
# Closing message
# ---------------------------------------------------------------------------

_MESSAGE_TEMPLATE = """
# {{ title | style(palette.success) }}
# ========================

To get started:

  {{ steps | join(separator) | style(palette.highlight) }}

Documentation can be found at: {{ docs_url }}
"""

_env = Environment(autoescape=False, keep_trailing_newline=True)
_env.filters["style"] = styled


def get_started_steps(target: ProjectTarget) -> list[str]:
    """The shell commands the user still has to run, in order."""
    answers = target.answers
    steps: list[str] = []
    if not target.in_place:
        steps.append(f"cd {target.dest_dir_name}")
    if install_manager(answers) is None:
        steps.append("npm install (or if using yarn: yarn)")
        if answers.selected("preset", "lint"):
            steps.append("npm run lint -- --fix (or for yarn: yarn run lint --fix)")
    steps.append("quasar dev")
    return steps


def render_message(target: ProjectTarget, palette: Palette) -> str:
    """Render the closing message as Rich markup."""
    template = _env.from_string(_MESSAGE_TEMPLATE)
    return template.render(
        title="Project initialization finished!",
        steps=[escape(step) for step in get_started_steps(target)],
        separator="\n  ",
        palette=palette,
        docs_url=DOCS_URL,
    )


def print_message(target: ProjectTarget, palette: Palette) -> None:
    """Print the "Project initialization finished!" instructions."""
    console.print(render_message(target, palette))
