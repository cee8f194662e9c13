"""Post-generation pipeline.

Runs once the template files exist on disk::

    Start -> ManifestSorted -> Installing -> LintFixing -> Summarized -> Done
                          \\____________________________/^
                           (no install requested)

The manifest sort is synchronous and always happens first.  Installation and
lint-fix are awaited strictly one after the other.  When either of them or the
closing message after them raises, the remaining steps are skipped and an
``Error:`` line is printed; the run ends in ``FAILED``.  The exception never
escapes :meth:`PostGenerationPipeline.run` and nothing already written to the
project directory is rolled back.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from rich.markup import escape

from quasarkit import collaborators as defaults
from quasarkit.collaborators import Palette, ProjectTarget, install_manager
from quasarkit.config import Config
from quasarkit.schema.answers import AnswerStore
from quasarkit.utils import console, styled

SortFn = Callable[[Path, str], None]
InstallFn = Callable[[Path, str, str], Awaitable[None]]
LintFixFn = Callable[[Path, AnswerStore, str], Awaitable[None]]
PrintFn = Callable[[ProjectTarget, Palette], None]

INSTALL_COLOR = "green"


# ---------------------------------------------------------------------------
# States & steps
# ---------------------------------------------------------------------------


class Step(str, Enum):
    """A discrete post-generation action."""

    SORT_MANIFEST = "sort_manifest"
    INSTALL_DEPENDENCIES = "install_dependencies"
    RUN_LINT_FIX = "run_lint_fix"
    PRINT_SUMMARY = "print_summary"


class PipelineState(str, Enum):
    START = "start"
    MANIFEST_SORTED = "manifest_sorted"
    INSTALLING = "installing"
    LINT_FIXING = "lint_fixing"
    SUMMARIZED = "summarized"
    DONE = "done"
    FAILED = "failed"


@dataclass
class Collaborators:
    """The four external steps, injectable for host tools and tests."""

    sort_dependencies: SortFn = defaults.sort_dependencies
    install_dependencies: InstallFn = defaults.install_dependencies
    run_lint_fix: LintFixFn = defaults.run_lint_fix
    print_message: PrintFn = defaults.print_message


@dataclass
class PipelineResult:
    """Outcome of one post-generation run."""

    state: PipelineState = PipelineState.START
    steps: list[Step] = field(default_factory=list)
    states: list[PipelineState] = field(default_factory=lambda: [PipelineState.START])
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.state is PipelineState.DONE


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class PostGenerationPipeline:
    """Drives the post-generation steps for one generated project.

    Attributes:
        config: Destination settings (``cwd``, ``dest_dir_name``, ``in_place``).
        answers: The final answers of the run; never modified.
        collaborators: The external step implementations.
        result: Progress record, filled in as :meth:`run` advances.
    """

    def __init__(
        self,
        config: Config,
        answers: AnswerStore,
        collaborators: Optional[Collaborators] = None,
    ) -> None:
        self.config = config
        self.answers = answers
        self.collaborators = collaborators or Collaborators()
        self.result = PipelineResult()

    @property
    def project_root(self) -> Path:
        return self.config.project_root

    @property
    def target(self) -> ProjectTarget:
        return ProjectTarget(
            answers=self.answers,
            dest_dir_name=self.config.dest_dir_name,
            in_place=self.config.in_place,
        )

    # -- Bookkeeping -------------------------------------------------------

    def _enter(self, state: PipelineState) -> None:
        self.result.state = state
        self.result.states.append(state)

    def _record(self, step: Step) -> None:
        self.result.steps.append(step)

    # -- Steps -------------------------------------------------------------

    def _sort_manifest(self) -> None:
        self._record(Step.SORT_MANIFEST)
        self.collaborators.sort_dependencies(self.project_root, INSTALL_COLOR)
        self._enter(PipelineState.MANIFEST_SORTED)

    async def _install(self, manager: str) -> None:
        self._enter(PipelineState.INSTALLING)
        self._record(Step.INSTALL_DEPENDENCIES)
        await self.collaborators.install_dependencies(self.project_root, manager, INSTALL_COLOR)

    async def _lint_fix(self) -> None:
        self._enter(PipelineState.LINT_FIXING)
        self._record(Step.RUN_LINT_FIX)
        await self.collaborators.run_lint_fix(self.project_root, self.answers, INSTALL_COLOR)

    def _summarize(self, palette: Palette) -> None:
        self._record(Step.PRINT_SUMMARY)
        self.collaborators.print_message(self.target, palette)
        self._enter(PipelineState.SUMMARIZED)
        self._enter(PipelineState.DONE)

    def _fail(self, exc: BaseException) -> None:
        self.result.error = str(exc) or exc.__class__.__name__
        self._enter(PipelineState.FAILED)
        console.print(f"{styled('Error:', Palette().error)} {escape(self.result.error)}")

    # -- Public API --------------------------------------------------------

    async def run(self) -> PipelineResult:
        """Execute the post-generation sequence.

        Returns:
            The :class:`PipelineResult`; ``result.success`` is False when
            installation, lint-fix or the closing message failed.
        """
        self._sort_manifest()

        manager = install_manager(self.answers)
        if manager is None:
            self._summarize(Palette())
            return self.result

        try:
            await self._install(manager)
            await self._lint_fix()
            self._summarize(Palette.single(INSTALL_COLOR))
        except Exception as exc:
            self._fail(exc)
        return self.result


async def complete(
    config: Config,
    answers: AnswerStore,
    collaborators: Optional[Collaborators] = None,
) -> PipelineResult:
    """Convenience wrapper: build a :class:`PostGenerationPipeline` and run it."""
    return await PostGenerationPipeline(config, answers, collaborators).run()
