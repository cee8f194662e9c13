"""The answer store: a read-only mapping of question key to answer.

Answers are ingested once per generation run through
:meth:`AnswerStore.from_raw`, which normalizes each value against its
``Question`` (see :meth:`quasarkit.schema.models.Question.normalize`) and drops
answers to questions whose ``when`` predicate does not hold.  Keys that are
not part of the schema are kept verbatim.
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

from quasarkit.schema.expressions import loose_equals
from quasarkit.schema.models import PromptSchema


class AnswerStore(Mapping[str, Any]):
    """Immutable answers for one generation run.

    Checkbox answers are stored as tuples of choice values.  A key that is
    absent (because its question was skipped) reads as ``None`` through
    :meth:`get` and evaluates falsy in every condition.
    """

    __slots__ = ("_data",)

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        data = {key: _freeze(value) for key, value in (values or {}).items()}
        self._data: Mapping[str, Any] = MappingProxyType(data)

    @classmethod
    def from_raw(cls, schema: PromptSchema, raw: Mapping[str, Any]) -> "AnswerStore":
        """Normalize *raw* answers against *schema*.

        Questions are visited in schema order so each ``when`` sees exactly
        the answers that precede it.

        Raises:
            AnswerValidationError: If a provided answer is not valid for its
                question.
        """
        collected: dict[str, Any] = {
            key: value for key, value in raw.items() if key not in schema
        }
        for question in schema.questions:
            if not question.is_visible(collected):
                continue
            if question.key not in raw:
                continue
            collected[question.key] = question.validate_answer(raw[question.key])
        return cls(collected)

    @classmethod
    def load(cls, schema: PromptSchema, path: str | Path) -> "AnswerStore":
        """Read a JSON answers file and ingest it with :meth:`from_raw`."""
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError(f"{path} does not contain a JSON object")
        return cls.from_raw(schema, raw)

    # -- Mapping protocol --------------------------------------------------

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"AnswerStore({dict(self._data)!r})"

    # -- Helpers -----------------------------------------------------------

    def selected(self, key: str, value: Any) -> bool:
        """Return True if *value* was ticked in the checkbox answer *key*."""
        answer = self._data.get(key)
        if isinstance(answer, tuple):
            return any(loose_equals(item, value) for item in answer)
        if isinstance(answer, Mapping):
            return bool(answer.get(value))
        return False

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-serialisable copy (tuples become lists)."""
        return {
            key: list(value) if isinstance(value, tuple) else value
            for key, value in self._data.items()
        }

    def save(self, path: str | Path) -> Path:
        """Write the answers to *path* as pretty-printed JSON."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(self.as_dict(), indent=2) + "\n", encoding="utf-8")
        return target


def _freeze(value: Any) -> Any:
    if isinstance(value, (list, set, frozenset)):
        return tuple(value)
    if isinstance(value, Mapping):
        return MappingProxyType(dict(value))
    return value
