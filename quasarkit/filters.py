"""File-inclusion filter engine.

Template metadata maps path globs to conditions::

    filters:
      src/store/**/*: preset.vuex
      src/css/app.sass: css === 'sass'

Given the answers and every template-relative path, :class:`FilterEngine`
keeps a path when no rule matches it, or when every matching rule's condition
is truthy.  Glob semantics: ``*`` and ``?`` stay within one path segment,
``**`` spans any number of directories (``a/**/*`` also matches ``a/x``),
``{x,y}`` alternates and ``[...]`` is a character class.  Dotfiles are
matched like any other name.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any

from quasarkit.schema.expressions import Expression, Invalid, compile_condition


# ---------------------------------------------------------------------------
# Glob translation
# ---------------------------------------------------------------------------


def _expand_braces(pattern: str) -> list[str]:
    """Expand the first ``{a,b}`` group recursively."""
    depth = 0
    start = -1
    for index, char in enumerate(pattern):
        if char == "{":
            if depth == 0:
                start = index
            depth += 1
        elif char == "}" and depth:
            depth -= 1
            if depth == 0:
                body = pattern[start + 1 : index]
                options = _split_top_level(body)
                if len(options) < 2:
                    continue
                head, tail = pattern[:start], pattern[index + 1 :]
                expanded: list[str] = []
                for option in options:
                    expanded.extend(_expand_braces(head + option + tail))
                return expanded
    return [pattern]


def _split_top_level(body: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current = ""
    for char in body:
        if char == "," and depth == 0:
            parts.append(current)
            current = ""
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        current += char
    parts.append(current)
    return parts


def _translate(pattern: str) -> str:
    out: list[str] = []
    i = 0
    n = len(pattern)
    while i < n:
        char = pattern[i]
        if char == "*":
            if pattern.startswith("**", i):
                at_segment_start = i == 0 or pattern[i - 1] == "/"
                i += 2
                if at_segment_start and i < n and pattern[i] == "/":
                    out.append("(?:.*/)?")
                    i += 1
                else:
                    out.append(".*")
                continue
            out.append("[^/]*")
        elif char == "?":
            out.append("[^/]")
        elif char == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                out.append(re.escape(char))
            else:
                body = pattern[i + 1 : end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append(f"[{body.replace(chr(92), chr(92) * 2)}]")
                i = end
        else:
            out.append(re.escape(char))
        i += 1
    return "".join(out)


def compile_glob(pattern: str) -> re.Pattern[str]:
    """Compile a template path glob into an anchored regular expression."""
    normalized = _normalize_path(pattern.strip())
    alternatives = [_translate(p) for p in _expand_braces(normalized)]
    return re.compile(r"\A(?:" + "|".join(alternatives) + r")\Z")


def _normalize_path(path: str | Path) -> str:
    text = PurePosixPath(str(path).replace("\\", "/")).as_posix()
    return text[2:] if text.startswith("./") else text


# ---------------------------------------------------------------------------
# Rules & engine
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FilterRule:
    """One ``pattern -> condition`` entry of the filter table."""

    pattern: str
    condition: Expression
    _regex: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_regex", compile_glob(self.pattern))

    @classmethod
    def parse(cls, pattern: str, condition: str) -> "FilterRule":
        return cls(pattern, compile_condition(condition))

    @property
    def is_valid(self) -> bool:
        return not isinstance(self.condition, Invalid)

    def matches(self, path: str | Path) -> bool:
        return self._regex.match(_normalize_path(path)) is not None

    def allows(self, answers: Mapping[str, Any]) -> bool:
        return self.condition.evaluate(answers)


class FilterEngine:
    """Decides which template paths survive for a given set of answers.

    The engine never mutates the answers, and its output is a pure function
    of ``(rules, paths, answers)``.
    """

    def __init__(self, rules: Iterable[FilterRule] = ()) -> None:
        self.rules: tuple[FilterRule, ...] = tuple(rules)

    @classmethod
    def from_mapping(cls, filters: Mapping[str, str]) -> "FilterEngine":
        """Build an engine from an ordered ``{glob: condition}`` mapping."""
        return cls(FilterRule.parse(pattern, condition) for pattern, condition in filters.items())

    @property
    def invalid_rules(self) -> list[FilterRule]:
        return [rule for rule in self.rules if not rule.is_valid]

    def matching_rules(self, path: str | Path) -> list[FilterRule]:
        """Every rule whose pattern matches *path*, in declaration order."""
        return [rule for rule in self.rules if rule.matches(path)]

    def includes(self, path: str | Path, answers: Mapping[str, Any]) -> bool:
        """Return True if *path* should be materialized for *answers*."""
        return all(rule.allows(answers) for rule in self.matching_rules(path))

    def select(self, paths: Iterable[str | Path], answers: Mapping[str, Any]) -> list[str]:
        """Return the retained subset of *paths*, preserving input order."""
        return [_normalize_path(p) for p in paths if self.includes(p, answers)]

    def excluded(self, paths: Iterable[str | Path], answers: Mapping[str, Any]) -> list[str]:
        """Return the paths that :meth:`select` would drop."""
        return [_normalize_path(p) for p in paths if not self.includes(p, answers)]


def list_template_files(template_root: str | Path) -> list[str]:
    """Return every file under *template_root* as a sorted relative POSIX path."""
    root = Path(template_root)
    return sorted(
        p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file()
    )
