"""Unit tests for the default post-generation collaborators.

``run_command`` is patched wherever a package manager would be spawned.
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import pytest

from quasarkit.collaborators import (
    Palette,
    ProjectTarget,
    get_started_steps,
    install_dependencies,
    lint_fix_command,
    print_message,
    render_message,
    run_lint_fix,
    sort_dependencies,
    sort_object,
)
from quasarkit.errors import InstallError, LintFixError
from quasarkit.schema.answers import AnswerStore

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Manifest sorting
# ---------------------------------------------------------------------------


class TestSortDependencies:
    def test_sort_object(self):
        assert list(sort_object({"b": 1, "a": 2, "@c": 3})) == ["@c", "a", "b"]

    def test_sorts_both_sections(self, generated_project):
        sort_dependencies(generated_project)

        package = json.loads((generated_project / "package.json").read_text(encoding="utf-8"))
        assert list(package["dependencies"]) == ["@quasar/extras", "axios", "vue-i18n"]
        assert list(package["devDependencies"]) == ["@quasar/app", "babel-eslint", "eslint"]

    def test_other_keys_keep_their_order(self, generated_project):
        sort_dependencies(generated_project)

        package = json.loads((generated_project / "package.json").read_text(encoding="utf-8"))
        assert list(package) == ["name", "version", "scripts", "dependencies", "devDependencies"]
        assert list(package["scripts"]) == ["lint", "test"]

    def test_two_space_indent_and_trailing_newline(self, generated_project):
        sort_dependencies(generated_project)

        text = (generated_project / "package.json").read_text(encoding="utf-8")
        assert text.endswith("}\n")
        assert '\n  "name": "my-app"' in text

    def test_missing_section_stays_missing(self, tmp_path):
        (tmp_path / "package.json").write_text('{"dependencies": {"b": "1", "a": "2"}}', encoding="utf-8")

        sort_dependencies(tmp_path)

        package = json.loads((tmp_path / "package.json").read_text(encoding="utf-8"))
        assert "devDependencies" not in package
        assert list(package["dependencies"]) == ["a", "b"]

    def test_non_object_manifest_left_untouched(self, tmp_path, capsys):
        manifest = tmp_path / "package.json"
        manifest.write_text("[1, 2]", encoding="utf-8")

        sort_dependencies(tmp_path)

        assert manifest.read_text(encoding="utf-8") == "[1, 2]"
        assert "not a JSON object" in " ".join(capsys.readouterr().out.split())

    def test_missing_manifest_warns(self, tmp_path, capsys):
        sort_dependencies(tmp_path)
        assert "No package.json found" in capsys.readouterr().out
        assert not (tmp_path / "package.json").exists()


# ---------------------------------------------------------------------------
# External processes
# ---------------------------------------------------------------------------


class TestInstallDependencies:
    @pytest.mark.asyncio
    async def test_runs_manager_install(self, generated_project, capsys):
        with patch("quasarkit.collaborators.run_command", new=AsyncMock(return_value=(0, "", ""))) as mock_run:
            await install_dependencies(generated_project, "yarn", "green")

        mock_run.assert_awaited_once_with(["yarn", "install"], cwd=generated_project, capture=False)
        assert "Installing project dependencies ..." in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_non_zero_exit_raises(self, generated_project):
        with patch("quasarkit.collaborators.run_command", new=AsyncMock(return_value=(1, "", "ERR!"))):
            with pytest.raises(InstallError) as info:
                await install_dependencies(generated_project, "npm")

        assert info.value.returncode == 1
        assert info.value.command == "npm install"
        assert "ERR!" in str(info.value)

    @pytest.mark.asyncio
    async def test_missing_executable_raises(self, generated_project):
        with patch(
            "quasarkit.collaborators.run_command",
            new=AsyncMock(side_effect=FileNotFoundError("yarn")),
        ):
            with pytest.raises(InstallError) as info:
                await install_dependencies(generated_project, "yarn")

        assert info.value.returncode == 127
        assert "command not found" in info.value.stderr


class TestRunLintFix:
    def test_lint_fix_command(self):
        assert lint_fix_command("npm") == ["npm", "run", "lint", "--", "--fix"]
        assert lint_fix_command("yarn") == ["yarn", "run", "lint", "--fix"]

    @pytest.mark.asyncio
    async def test_skipped_without_lint(self, generated_project):
        answers = AnswerStore({"preset": ("vuex",), "autoInstall": "yarn"})
        with patch("quasarkit.collaborators.run_command", new=AsyncMock()) as mock_run:
            await run_lint_fix(generated_project, answers)
        mock_run.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "manager,expected",
        [
            ("yarn", ["yarn", "run", "lint", "--fix"]),
            ("npm", ["npm", "run", "lint", "--", "--fix"]),
        ],
    )
    async def test_runs_with_chosen_manager(self, generated_project, manager, expected, capsys):
        answers = AnswerStore({"preset": ("lint",), "autoInstall": manager})
        with patch("quasarkit.collaborators.run_command", new=AsyncMock(return_value=(0, "", ""))) as mock_run:
            await run_lint_fix(generated_project, answers, capture=True)

        mock_run.assert_awaited_once_with(expected, cwd=generated_project, capture=True)
        assert "Running eslint --fix" in capsys.readouterr().out

    @pytest.mark.asyncio
    @pytest.mark.parametrize("no_install", ["false", "no", False])
    async def test_falls_back_to_npm_without_manager(self, generated_project, no_install):
        answers = AnswerStore({"preset": ("lint",), "autoInstall": no_install})
        with patch("quasarkit.collaborators.run_command", new=AsyncMock(return_value=(0, "", ""))) as mock_run:
            await run_lint_fix(generated_project, answers)

        mock_run.assert_awaited_once_with(
            ["npm", "run", "lint", "--", "--fix"], cwd=generated_project, capture=False
        )

    @pytest.mark.asyncio
    async def test_failure_raises(self, generated_project):
        answers = AnswerStore({"preset": ("lint",), "autoInstall": "yarn"})
        with patch("quasarkit.collaborators.run_command", new=AsyncMock(return_value=(2, "", "1 error"))):
            with pytest.raises(LintFixError, match="1 error"):
                await run_lint_fix(generated_project, answers)


# ---------------------------------------------------------------------------
# Closing message
# ---------------------------------------------------------------------------


class TestGetStartedSteps:
    def test_no_install_with_lint(self, make_answers):
        target = ProjectTarget(make_answers(autoInstall=False), dest_dir_name="my-app")
        assert get_started_steps(target) == [
            "cd my-app",
            "npm install (or if using yarn: yarn)",
            "npm run lint -- --fix (or for yarn: yarn run lint --fix)",
            "quasar dev",
        ]

    def test_no_install_without_lint(self, make_answers):
        target = ProjectTarget(make_answers(autoInstall=False, preset=["vuex"]), dest_dir_name="my-app")
        assert get_started_steps(target) == [
            "cd my-app",
            "npm install (or if using yarn: yarn)",
            "quasar dev",
        ]

    @pytest.mark.parametrize("no_install", ["false", "no", "", None])
    def test_string_no_install_keeps_manual_hints(self, no_install):
        answers = AnswerStore({"autoInstall": no_install, "preset": ["lint"]})
        assert get_started_steps(ProjectTarget(answers, dest_dir_name="app")) == [
            "cd app",
            "npm install (or if using yarn: yarn)",
            "npm run lint -- --fix (or for yarn: yarn run lint --fix)",
            "quasar dev",
        ]

    def test_installed(self, make_answers):
        target = ProjectTarget(make_answers(autoInstall="yarn"), dest_dir_name="my-app")
        assert get_started_steps(target) == ["cd my-app", "quasar dev"]

    def test_in_place_has_no_cd(self, make_answers):
        target = ProjectTarget(make_answers(autoInstall="npm"), dest_dir_name="my-app", in_place=True)
        assert get_started_steps(target) == ["quasar dev"]


class TestRenderMessage:
    def test_uses_palette(self, make_answers):
        target = ProjectTarget(make_answers(autoInstall="yarn"), dest_dir_name="my-app")
        message = render_message(target, Palette())

        assert "# [green]Project initialization finished![/green]" in message
        assert "[yellow]cd my-app\n  quasar dev[/yellow]" in message
        assert "https://quasar.dev" in message

    def test_single_palette(self, make_answers):
        target = ProjectTarget(make_answers(autoInstall="yarn"), dest_dir_name="my-app")
        message = render_message(target, Palette.single("green"))
        assert "[yellow]" not in message
        assert "[green]cd my-app" in message

    def test_print_message(self, make_answers, capsys):
        target = ProjectTarget(make_answers(autoInstall=False), dest_dir_name="my-app")
        print_message(target, Palette())

        out = capsys.readouterr().out
        assert "Project initialization finished!" in out
        assert "To get started:" in out
        assert "quasar dev" in out
        assert "[green]" not in out
