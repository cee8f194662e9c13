"""Shared pytest fixtures for the quasarkit test suite.

Provides reusable fixtures for:
- The bundled Quasar metadata, prompt schema and filter engine
- A realistic list of template-relative paths
- An answers factory that goes through normal ingestion
- Temporary generated projects with a ``package.json``
- Recording collaborators for the post-generation pipeline
"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from quasarkit.collaborators import Palette, ProjectTarget
from quasarkit.complete import Collaborators
from quasarkit.config import Config
from quasarkit.filters import FilterEngine
from quasarkit.metadata import TemplateMetadata, load_metadata
from quasarkit.schema.answers import AnswerStore
from quasarkit.schema.models import PromptSchema


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def meta() -> TemplateMetadata:
    """The bundled Quasar starter-kit metadata."""
    return load_metadata()


@pytest.fixture
def schema(meta: TemplateMetadata) -> PromptSchema:
    return meta.prompts


@pytest.fixture
def engine(meta: TemplateMetadata) -> FilterEngine:
    return meta.filter_engine()


# ---------------------------------------------------------------------------
# Template files
# ---------------------------------------------------------------------------

TEMPLATE_PATHS: list[str] = [
    ".editorconfig",
    ".eslintignore",
    ".eslintrc.js",
    ".gitignore",
    ".postcssrc.js",
    ".stylintrc",
    "README.md",
    "babel.config.js",
    "package.json",
    "quasar.conf.js",
    "src/App.vue",
    "src/assets/quasar-logo-full.svg",
    "src/boot/.gitkeep",
    "src/boot/axios.js",
    "src/boot/i18n.js",
    "src/css/app.css",
    "src/css/app.sass",
    "src/css/app.scss",
    "src/css/app.styl",
    "src/css/quasar.variables.sass",
    "src/css/quasar.variables.scss",
    "src/css/quasar.variables.styl",
    "src/i18n/en-us/index.js",
    "src/i18n/index.js",
    "src/index.template.html",
    "src/layouts/MyLayout.vue",
    "src/pages/Error404.vue",
    "src/pages/Index.vue",
    "src/router/index.js",
    "src/router/routes.js",
    "src/statics/app-logo-128x128.png",
    "src/store/index.js",
    "src/store/module-example/actions.js",
    "src/store/module-example/getters.js",
    "src/store/module-example/index.js",
    "src/store/module-example/mutations.js",
    "src/store/module-example/state.js",
    "src/store/store-flag.d.ts",
]


@pytest.fixture
def template_paths() -> list[str]:
    return list(TEMPLATE_PATHS)


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    """A template root on disk containing every path of ``TEMPLATE_PATHS``."""
    root = tmp_path / "template"
    for rel in TEMPLATE_PATHS:
        target = root / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(f"// {rel}\n", encoding="utf-8")
    return root


# ---------------------------------------------------------------------------
# Answers
# ---------------------------------------------------------------------------

BASE_ANSWERS: dict[str, Any] = {
    "name": "my-app",
    "productName": "Quasar App",
    "description": "A Quasar Framework app",
    "author": "Jane Doe <jane@example.com>",
    "css": "sass",
    "importStrategy": "'auto'",
    "preset": ["lint", "vuex"],
    "lintConfig": "standard",
    "cordovaId": "org.cordova.quasar.app",
    "autoInstall": False,
}


@pytest.fixture
def make_answers(schema: PromptSchema) -> Callable[..., AnswerStore]:
    """Factory: ``make_answers(css="scss", preset=[...])`` -> normalized store."""

    def _make(**overrides: Any) -> AnswerStore:
        raw = {**BASE_ANSWERS, **overrides}
        raw = {k: v for k, v in raw.items() if v is not _ABSENT}
        return AnswerStore.from_raw(schema, raw)

    return _make


class _Absent:
    def __repr__(self) -> str:
        return "ABSENT"


_ABSENT = _Absent()


@pytest.fixture
def absent() -> _Absent:
    """Sentinel for ``make_answers`` meaning "drop this key"."""
    return _ABSENT


# ---------------------------------------------------------------------------
# Generated project
# ---------------------------------------------------------------------------

UNSORTED_PACKAGE: dict[str, Any] = {
    "name": "my-app",
    "version": "0.0.1",
    "scripts": {"lint": "eslint --ext .js,.vue src", "test": "echo ok"},
    "dependencies": {"vue-i18n": "^8.0.0", "axios": "^0.18.0", "@quasar/extras": "^1.0.0"},
    "devDependencies": {"eslint": "^5.10.0", "@quasar/app": "^1.0.0", "babel-eslint": "^10.0.1"},
}


@pytest.fixture
def generated_project(tmp_path: Path) -> Path:
    """A generated project directory ``<tmp>/my-app`` with a package.json."""
    project = tmp_path / "my-app"
    project.mkdir()
    (project / "package.json").write_text(json.dumps(UNSORTED_PACKAGE, indent=2), encoding="utf-8")
    return project


@pytest.fixture
def config(tmp_path: Path, generated_project: Path) -> Config:
    return Config(cwd=tmp_path, dest_dir_name=generated_project.name)


# ---------------------------------------------------------------------------
# Recording collaborators
# ---------------------------------------------------------------------------

class RecordingCollaborators:
    """Collaborators that log every call and can be told to fail."""

    def __init__(
        self,
        install_error: Exception | None = None,
        lint_error: Exception | None = None,
        summary_error: Exception | None = None,
    ) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.install_error = install_error
        self.lint_error = lint_error
        self.summary_error = summary_error

    def sort_dependencies(self, project_root: Path, color: str) -> None:
        self.calls.append(("sort", (project_root, color)))

    async def install_dependencies(self, project_root: Path, manager: str, color: str) -> None:
        self.calls.append(("install", (project_root, manager, color)))
        if self.install_error is not None:
            raise self.install_error

    async def run_lint_fix(self, project_root: Path, answers: AnswerStore, color: str) -> None:
        self.calls.append(("lint", (project_root, answers, color)))
        if self.lint_error is not None:
            raise self.lint_error

    def print_message(self, target: ProjectTarget, palette: Palette) -> None:
        self.calls.append(("summary", (target, palette)))
        if self.summary_error is not None:
            raise self.summary_error

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def as_collaborators(self) -> Collaborators:
        return Collaborators(
            sort_dependencies=self.sort_dependencies,
            install_dependencies=self.install_dependencies,
            run_lint_fix=self.run_lint_fix,
            print_message=self.print_message,
        )


@pytest.fixture
def recorder_factory() -> Callable[..., RecordingCollaborators]:
    return RecordingCollaborators
