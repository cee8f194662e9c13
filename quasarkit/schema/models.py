"""Pydantic v2 models for the prompt schema.

A ``PromptSchema`` is an ordered list of ``Question`` objects.  Each question
knows its type, whether it is required, its default, its choices and an
optional ``when`` predicate.  Predicates are compiled once, when the model is
built, into :mod:`quasarkit.schema.expressions` trees.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from quasarkit.errors import AnswerValidationError
from quasarkit.schema.expressions import Expression, Invalid, loose_equals, compile_condition


ChoiceValue = Union[bool, str]


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class QuestionType(str, Enum):
    """How a question is asked and what kind of answer it produces."""

    STRING = "string"
    LIST = "list"
    CHECKBOX = "checkbox"


# ---------------------------------------------------------------------------
# Choice & Question
# ---------------------------------------------------------------------------


class Choice(BaseModel):
    """One selectable option of a ``list`` or ``checkbox`` question."""

    model_config = ConfigDict(populate_by_name=True)

    label: str = Field(..., alias="name", description="Text shown in the menu")
    value: ChoiceValue = Field(..., description="Value stored in the answers")
    short_label: Optional[str] = Field(
        default=None, alias="short", description="Label echoed after selection"
    )
    preselected: bool = Field(default=False, alias="checked")

    def matches(self, raw: Any) -> bool:
        """Return True if *raw* names this choice by value, label or short label."""
        if loose_equals(self.value, raw):
            return True
        if isinstance(raw, str):
            text = raw.strip().lower()
            names = [self.label, self.short_label]
            return any(name is not None and name.strip().lower() == text for name in names)
        return False


class Question(BaseModel):
    """A single prompt of the schema."""

    model_config = ConfigDict(populate_by_name=True)

    key: str
    type: QuestionType = QuestionType.STRING
    required: bool = False
    message: str = ""
    default: Any = None
    choices: list[Choice] = Field(default_factory=list)
    when: Optional[str] = Field(default=None, description="Visibility predicate")

    _condition: Optional[Expression] = PrivateAttr(default=None)

    def model_post_init(self, __context: Any) -> None:
        if self.when is not None:
            self._condition = compile_condition(self.when)

    @model_validator(mode="after")
    def _check_choices(self) -> "Question":
        if self.type is not QuestionType.STRING and not self.choices:
            raise ValueError(f"question {self.key!r} of type {self.type.value} needs choices")
        return self

    # -- Visibility --------------------------------------------------------

    @property
    def condition(self) -> Optional[Expression]:
        """The compiled ``when`` predicate, or ``None`` if always asked."""
        return self._condition

    @property
    def has_invalid_condition(self) -> bool:
        return isinstance(self._condition, Invalid)

    def is_visible(self, answers: Mapping[str, Any]) -> bool:
        """Return True if the question should be asked given prior *answers*."""
        if self._condition is None:
            return True
        return self._condition.evaluate(answers)

    # -- Defaults ----------------------------------------------------------

    def default_value(self) -> Any:
        """Return the value to offer when the user just presses enter.

        ``list`` questions fall back to the first preselected choice, then the
        first choice; ``checkbox`` questions default to every preselected
        choice.
        """
        if self.type is QuestionType.LIST:
            if self.default is not None:
                return self.normalize(self.default)
            for choice in self.choices:
                if choice.preselected:
                    return choice.value
            return self.choices[0].value
        if self.type is QuestionType.CHECKBOX:
            if self.default is not None:
                return self.normalize(self.default)
            return tuple(c.value for c in self.choices if c.preselected)
        return self.default

    # -- Answer handling ---------------------------------------------------

    def find_choice(self, raw: Any) -> Optional[Choice]:
        for choice in self.choices:
            if choice.matches(raw):
                return choice
        return None

    def normalize(self, raw: Any) -> Any:
        """Convert a raw answer to its canonical stored form.

        ``list`` answers take the exact value of the matching choice, so
        ``'no'`` or ``'false'`` for a choice whose value is ``False`` become
        ``False`` while a choice whose value is the string ``'false'`` stays a
        string.  ``checkbox`` answers become a tuple of choice values in
        schema order.

        Raises:
            AnswerValidationError: If the answer does not name a valid choice.
        """
        if self.type is QuestionType.STRING:
            return "" if raw is None else str(raw)

        if self.type is QuestionType.LIST:
            choice = self.find_choice(raw)
            if choice is None:
                raise AnswerValidationError(self.key, f"{raw!r} is not a valid choice for {self.key}")
            return choice.value

        if raw is None:
            items: Sequence[Any] = ()
        elif isinstance(raw, str):
            items = [part for part in (p.strip() for p in raw.split(",")) if part]
        elif isinstance(raw, Mapping):
            items = [k for k, v in raw.items() if v]
        else:
            items = list(raw)
        selected: list[ChoiceValue] = []
        for item in items:
            choice = self.find_choice(item)
            if choice is None:
                raise AnswerValidationError(self.key, f"{item!r} is not a valid choice for {self.key}")
            selected.append(choice.value)
        return tuple(c.value for c in self.choices if c.value in selected)

    def validate_answer(self, value: Any) -> Any:
        """Normalize *value* and enforce ``required``.

        Returns:
            The normalized answer.

        Raises:
            AnswerValidationError: If a required answer is empty or the value
                is not one of the choices.
        """
        normalized = self.normalize(value)
        if self.required and self.type is QuestionType.STRING and not normalized.strip():
            raise AnswerValidationError(self.key, f"{self.key} is required")
        return normalized


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


class PromptSchema(BaseModel):
    """Ordered collection of questions with unique keys.

    A ``when`` predicate may only refer to questions declared before it (or
    to keys that are not questions at all, such as host-provided data), so a
    schema can never contain a dependency cycle.
    """

    questions: list[Question] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_keys(self) -> "PromptSchema":
        seen: set[str] = set()
        all_keys = {q.key for q in self.questions}
        for question in self.questions:
            if question.key in seen:
                raise ValueError(f"duplicate question key {question.key!r}")
            if question.condition is not None:
                forward = (question.condition.references() & all_keys) - seen
                if forward:
                    names = ", ".join(sorted(forward))
                    raise ValueError(
                        f"question {question.key!r} depends on later question(s): {names}"
                    )
            seen.add(question.key)
        return self

    @classmethod
    def from_mapping(cls, prompts: Mapping[str, Mapping[str, Any]]) -> "PromptSchema":
        """Build a schema from an ordered ``{key: question fields}`` mapping."""
        return cls(questions=[Question(key=key, **dict(fields)) for key, fields in prompts.items()])

    def __len__(self) -> int:
        return len(self.questions)

    def __contains__(self, key: object) -> bool:
        return any(q.key == key for q in self.questions)

    def get(self, key: str) -> Optional[Question]:
        for question in self.questions:
            if question.key == key:
                return question
        return None

    def visible_questions(self, answers: Mapping[str, Any]) -> list[Question]:
        """Questions whose ``when`` holds against *answers*, in schema order."""
        return [q for q in self.questions if q.is_visible(answers)]
