"""Interactive answer collection.

Walks a ``PromptSchema`` in order and asks each visible question on the
terminal with ``rich.prompt``.  Questions whose ``when`` predicate is false
are skipped and leave no key behind.  Invalid answers (an empty required
string, an invalid package name, an unknown menu entry) are reported and the
question is asked again.
"""

from __future__ import annotations

import re
import subprocess
from collections.abc import Callable, Mapping
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt

from quasarkit.errors import AnswerValidationError
from quasarkit.schema.answers import AnswerStore
from quasarkit.schema.models import PromptSchema, Question, QuestionType
from quasarkit.utils import console as default_console

Validator = Callable[[str], None]

_URL_SAFE_RE = re.compile(r"^[A-Za-z0-9._~!*'()-]+$")
_SCOPED_RE = re.compile(r"^@([^/]+)/(.+)$")


# ---------------------------------------------------------------------------
# Validators & defaults
# ---------------------------------------------------------------------------


def validate_package_name(name: str) -> None:
    """Reject names npm would refuse for a new package.

    Raises:
        AnswerValidationError: With every problem found, joined by ``; ``.
    """
    problems: list[str] = []
    if not name:
        problems.append("name length must be greater than zero")
    if name != name.strip():
        problems.append("name cannot contain leading or trailing spaces")
    if name.startswith(".") or name.startswith("_"):
        problems.append("name cannot start with a period or underscore")
    if len(name) > 214:
        problems.append("name can no longer contain more than 214 characters")
    if name.lower() != name:
        problems.append("name can no longer contain capital letters")

    scoped = _SCOPED_RE.match(name)
    parts = [scoped.group(1), scoped.group(2)] if scoped else [name]
    if name and not all(_URL_SAFE_RE.match(part) for part in parts):
        problems.append("name can only contain URL-friendly characters")

    if problems:
        raise AnswerValidationError("name", "; ".join(problems))


def git_user() -> Optional[str]:
    """Return ``"Name <email>"`` from the git config, or None if unavailable."""

    def _get(key: str) -> str:
        try:
            completed = subprocess.run(
                ["git", "config", "--get", key],
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError:
            return ""
        return completed.stdout.strip()

    name, email = _get("user.name"), _get("user.email")
    if not name:
        return None
    return f"{name} <{email}>" if email else name


# ---------------------------------------------------------------------------
# Collector
# ---------------------------------------------------------------------------


class PromptCollector:
    """Asks the schema's questions and builds an :class:`AnswerStore`.

    Args:
        schema: The questions to ask.
        defaults: Per-key defaults that override the schema's own (e.g. the
            destination directory name for ``name``).
        validators: Extra per-key checks run after the schema's validation.
        console: Rich console to prompt on.
    """

    def __init__(
        self,
        schema: PromptSchema,
        defaults: Optional[Mapping[str, Any]] = None,
        validators: Optional[Mapping[str, Validator]] = None,
        console: Optional[Console] = None,
    ) -> None:
        self.schema = schema
        self.defaults = dict(defaults or {})
        self.validators: dict[str, Validator] = {"name": validate_package_name}
        self.validators.update(validators or {})
        self.console = console or default_console

    @classmethod
    def for_destination(cls, schema: PromptSchema, dest_dir_name: str) -> "PromptCollector":
        """A collector with the host tool's usual defaults for *dest_dir_name*."""
        defaults: dict[str, Any] = {}
        if dest_dir_name:
            defaults["name"] = dest_dir_name
        author = git_user()
        if author:
            defaults["author"] = author
        return cls(schema, defaults=defaults)

    def collect(self) -> AnswerStore:
        answers: dict[str, Any] = {}
        for question in self.schema.questions:
            if not question.is_visible(answers):
                continue
            answers[question.key] = self.ask(question)
        return AnswerStore.from_raw(self.schema, answers)

    # -- Per-type prompting -------------------------------------------------

    def ask(self, question: Question) -> Any:
        """Ask *question* until a valid answer is given and return it normalized."""
        while True:
            try:
                raw = self._ask_raw(question)
                value = question.validate_answer(raw)
                validator = self.validators.get(question.key)
                if validator is not None and question.type is QuestionType.STRING:
                    validator(value)
                return value
            except AnswerValidationError as exc:
                self.console.print(f"[bold red]>>[/bold red] {escape(str(exc))}")

    def _ask_raw(self, question: Question) -> Any:
        if question.type is QuestionType.LIST:
            return self._ask_list(question)
        if question.type is QuestionType.CHECKBOX:
            return self._ask_checkbox(question)
        return self._ask_string(question)

    def _default_for(self, question: Question) -> Any:
        if question.key in self.defaults:
            return question.normalize(self.defaults[question.key])
        return question.default_value()

    def _ask_string(self, question: Question) -> str:
        default = self._default_for(question)
        if default is None:
            return Prompt.ask(escape(question.message), console=self.console, default="", show_default=False)
        return Prompt.ask(escape(question.message), console=self.console, default=str(default))

    def _print_menu(self, question: Question, marks: Optional[set[int]] = None) -> None:
        self.console.print(f"[bold]{escape(question.message)}[/bold]")
        for index, choice in enumerate(question.choices, start=1):
            label = escape(choice.label.replace("\n", "\n     "))
            if marks is None:
                self.console.print(f"  {index}) {label}")
            else:
                box = "\\[x]" if index in marks else "\\[ ]"
                self.console.print(f"  {index}) {box} {label}")

    def _ask_list(self, question: Question) -> Any:
        default = self._default_for(question)
        default_index = next(
            (i for i, c in enumerate(question.choices, start=1) if c.value == default and type(c.value) is type(default)),
            1,
        )
        self._print_menu(question)
        numbers = [str(i) for i in range(1, len(question.choices) + 1)]
        picked = Prompt.ask(
            "Choice",
            console=self.console,
            choices=numbers,
            default=str(default_index),
            show_choices=False,
        )
        return question.choices[int(picked) - 1].value

    def _ask_checkbox(self, question: Question) -> list[Any]:
        default = self._default_for(question) or ()
        marks = {i for i, c in enumerate(question.choices, start=1) if c.value in default}
        self._print_menu(question, marks)
        reply = Prompt.ask(
            "Numbers, comma separated (blank for none)",
            console=self.console,
            default=",".join(str(i) for i in sorted(marks)),
        )
        selected: list[Any] = []
        for part in (p.strip() for p in reply.split(",")):
            if not part:
                continue
            if not part.isdigit() or not 1 <= int(part) <= len(question.choices):
                raise AnswerValidationError(question.key, f"{part!r} is not one of the listed numbers")
            selected.append(question.choices[int(part) - 1].value)
        return selected
