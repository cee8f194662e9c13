"""Restricted boolean expressions for ``when`` predicates and filter conditions.

Template metadata carries small condition strings such as ``preset.lint`` or
``css === 'none'``.  They are parsed once, at load time, into a tiny typed AST
and evaluated against an answer mapping.  Nothing here ever executes code: the
grammar only knows dotted-path lookups, literals, equality and the boolean
connectives ``!``, ``&&`` and ``||``::

    expr       := or
    or         := and ("||" and)*
    and        := unary ("&&" unary)*
    unary      := "!" unary | comparison
    comparison := operand (("===" | "==" | "!==" | "!=") operand)?
    operand    := "(" expr ")" | literal | path
    path       := IDENT ("." IDENT)*

Lookups are forgiving: an absent key resolves to ``None`` and therefore to
falsy, and a path segment applied to a list answer means membership
(``preset.lint`` is true when ``"lint"`` was ticked).  Comparisons are loose,
so ``True == 'true'`` holds.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union

from quasarkit.errors import SchemaError


LiteralValue = Union[str, int, float, bool, None]


# ---------------------------------------------------------------------------
# AST nodes
# ---------------------------------------------------------------------------


class Expression:
    """Base class for parsed condition nodes."""

    def evaluate(self, answers: Mapping[str, Any]) -> bool:
        raise NotImplementedError

    def references(self) -> frozenset[str]:
        """Return the top-level answer keys this expression reads."""
        return frozenset()


@dataclass(frozen=True)
class Literal(Expression):
    value: LiteralValue

    def evaluate(self, answers: Mapping[str, Any]) -> bool:
        return _truthy(self.value)


@dataclass(frozen=True)
class Path(Expression):
    """A dotted reference into the answers, e.g. ``preset.vuex``."""

    parts: tuple[str, ...]

    def resolve(self, answers: Mapping[str, Any]) -> Any:
        value: Any = answers.get(self.parts[0])
        for part in self.parts[1:]:
            if value is None:
                return None
            if isinstance(value, Mapping):
                value = value.get(part)
            elif isinstance(value, (list, tuple, set, frozenset)):
                value = any(loose_equals(item, part) for item in value)
            else:
                return None
        return value

    def evaluate(self, answers: Mapping[str, Any]) -> bool:
        return _truthy(self.resolve(answers))

    def references(self) -> frozenset[str]:
        return frozenset({self.parts[0]})

    def __str__(self) -> str:
        return ".".join(self.parts)


@dataclass(frozen=True)
class Equals(Expression):
    """Loose (in)equality between two operands."""

    left: Expression
    right: Expression
    negated: bool = False

    def evaluate(self, answers: Mapping[str, Any]) -> bool:
        result = loose_equals(_operand(self.left, answers), _operand(self.right, answers))
        return not result if self.negated else result

    def references(self) -> frozenset[str]:
        return self.left.references() | self.right.references()


@dataclass(frozen=True)
class Not(Expression):
    operand: Expression

    def evaluate(self, answers: Mapping[str, Any]) -> bool:
        return not self.operand.evaluate(answers)

    def references(self) -> frozenset[str]:
        return self.operand.references()


@dataclass(frozen=True)
class And(Expression):
    left: Expression
    right: Expression

    def evaluate(self, answers: Mapping[str, Any]) -> bool:
        return self.left.evaluate(answers) and self.right.evaluate(answers)

    def references(self) -> frozenset[str]:
        return self.left.references() | self.right.references()


@dataclass(frozen=True)
class Or(Expression):
    left: Expression
    right: Expression

    def evaluate(self, answers: Mapping[str, Any]) -> bool:
        return self.left.evaluate(answers) or self.right.evaluate(answers)

    def references(self) -> frozenset[str]:
        return self.left.references() | self.right.references()


@dataclass(frozen=True)
class Invalid(Expression):
    """Stand-in for a condition that failed to parse; always false."""

    source: str
    error: str

    def evaluate(self, answers: Mapping[str, Any]) -> bool:
        return False


# ---------------------------------------------------------------------------
# Value semantics
# ---------------------------------------------------------------------------


def _operand(node: Expression, answers: Mapping[str, Any]) -> Any:
    if isinstance(node, Literal):
        return node.value
    if isinstance(node, Path):
        return node.resolve(answers)
    return node.evaluate(answers)


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value != ""
    return bool(value)


_BOOL_STRINGS = {"true": True, "false": False}


def loose_equals(left: Any, right: Any) -> bool:
    """Compare two answer values the way the template metadata expects.

    Booleans match their ``'true'``/``'false'`` spellings, numbers match
    numeric strings, and ``None`` only matches ``None``.
    """
    if left is None or right is None:
        return left is None and right is None
    if isinstance(left, bool) or isinstance(right, bool):
        if isinstance(left, str):
            left = _BOOL_STRINGS.get(left.strip().lower(), left)
        if isinstance(right, str):
            right = _BOOL_STRINGS.get(right.strip().lower(), right)
        if isinstance(left, bool) and isinstance(right, bool):
            return left is right
    if isinstance(left, (int, float)) and isinstance(right, str):
        left, right = right, left
    if isinstance(left, str) and isinstance(right, (int, float)) and not isinstance(right, bool):
        try:
            return float(left) == float(right)
        except ValueError:
            return False
    if type(left) is not type(right) and not (
        isinstance(left, (int, float)) and isinstance(right, (int, float))
    ):
        return False
    return left == right


# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------

_TOKEN_RE = re.compile(
    r"""
    \s*(?:
        (?P<op>===|!==|==|!=|&&|\|\||!|\(|\)|\.)
      | (?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
      | (?P<number>\d+(?:\.\d+)?)
      | (?P<ident>[A-Za-z_$][A-Za-z0-9_$]*)
    )
    """,
    re.VERBOSE,
)

_KEYWORDS: dict[str, LiteralValue] = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": None,
}


@dataclass(frozen=True)
class _Token:
    kind: str
    text: str


def _tokenize(source: str) -> list[_Token]:
    tokens: list[_Token] = []
    pos = 0
    end = len(source.rstrip())
    while pos < end:
        match = _TOKEN_RE.match(source, pos)
        if match is None or match.end() == pos:
            raise SchemaError(source, f"unexpected character at offset {pos}")
        kind = match.lastgroup or ""
        tokens.append(_Token(kind, match.group(kind)))
        pos = match.end()
    if not tokens:
        raise SchemaError(source, "empty expression")
    return tokens


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class _Parser:
    def __init__(self, source: str) -> None:
        self.source = source
        self.tokens = _tokenize(source)
        self.pos = 0

    def _peek(self) -> _Token | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _accept(self, *ops: str) -> str | None:
        token = self._peek()
        if token is not None and token.kind == "op" and token.text in ops:
            self.pos += 1
            return token.text
        return None

    def _fail(self, message: str) -> SchemaError:
        return SchemaError(self.source, message)

    def parse(self) -> Expression:
        expr = self._or()
        token = self._peek()
        if token is not None:
            raise self._fail(f"unexpected token {token.text!r}")
        return expr

    def _or(self) -> Expression:
        left = self._and()
        while self._accept("||"):
            left = Or(left, self._and())
        return left

    def _and(self) -> Expression:
        left = self._unary()
        while self._accept("&&"):
            left = And(left, self._unary())
        return left

    def _unary(self) -> Expression:
        if self._accept("!"):
            return Not(self._unary())
        return self._comparison()

    def _comparison(self) -> Expression:
        left = self._operand()
        op = self._accept("===", "==", "!==", "!=")
        if op is None:
            return left
        right = self._operand()
        return Equals(left, right, negated=op.startswith("!"))

    def _operand(self) -> Expression:
        token = self._peek()
        if token is None:
            raise self._fail("unexpected end of expression")
        self.pos += 1

        if token.kind == "op" and token.text == "(":
            expr = self._or()
            if not self._accept(")"):
                raise self._fail("missing closing parenthesis")
            return expr
        if token.kind == "string":
            return Literal(_unquote(token.text))
        if token.kind == "number":
            text = token.text
            return Literal(float(text) if "." in text else int(text))
        if token.kind == "ident":
            if token.text in _KEYWORDS:
                return Literal(_KEYWORDS[token.text])
            parts = [token.text]
            while self._accept("."):
                segment = self._peek()
                if segment is None or segment.kind not in ("ident", "number"):
                    raise self._fail("expected a name after '.'")
                self.pos += 1
                parts.append(segment.text)
            return Path(tuple(parts))
        raise self._fail(f"unexpected token {token.text!r}")


def _unquote(text: str) -> str:
    body = text[1:-1]
    return re.sub(r"\\(.)", r"\1", body)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_expression(source: str) -> Expression:
    """Parse *source* into an expression tree.

    Raises:
        SchemaError: If the string is not a valid condition.
    """
    return _Parser(source).parse()


def compile_condition(source: str) -> Expression:
    """Parse *source*, turning syntax errors into an always-false node.

    Template authoring mistakes must not abort a generation run, so callers
    that load metadata use this instead of :func:`parse_expression` and check
    for :class:`Invalid` if they want to report the problem.
    """
    try:
        return parse_expression(source)
    except SchemaError as exc:
        return Invalid(source, str(exc))
