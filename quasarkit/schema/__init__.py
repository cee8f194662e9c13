"""Prompt schema: questions, answers and the condition language they share.

Quick usage::

    from quasarkit.metadata import load_metadata
    from quasarkit.schema import AnswerStore

    meta = load_metadata()
    answers = AnswerStore.from_raw(meta.prompts, {"name": "app", "css": "sass"})
"""

from quasarkit.schema.answers import AnswerStore
from quasarkit.schema.expressions import (
    Expression,
    Invalid,
    compile_condition,
    loose_equals,
    parse_expression,
)
from quasarkit.schema.models import Choice, PromptSchema, Question, QuestionType

__all__ = [
    "AnswerStore",
    "Choice",
    "Expression",
    "Invalid",
    "PromptSchema",
    "Question",
    "QuestionType",
    "compile_condition",
    "loose_equals",
    "parse_expression",
]
