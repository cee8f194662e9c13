"""Exception hierarchy for quasarkit.

Evaluation problems in template metadata (``SchemaError``) are absorbed by the
lenient loaders; answer problems (``AnswerValidationError``) go back to the
collector; external process failures (``CommandError`` and subclasses) are
caught once by the post-generation pipeline.
"""

from __future__ import annotations


class QuasarkitError(Exception):
    """Base class for every error raised by quasarkit."""


class SchemaError(QuasarkitError):
    """Raised when a ``when`` predicate or filter condition cannot be parsed."""

    def __init__(self, source: str, message: str) -> None:
        self.source = source
        super().__init__(f"Invalid expression {source!r}: {message}")


class MetadataError(QuasarkitError):
    """Raised when a template metadata file cannot be loaded."""


class AnswerValidationError(QuasarkitError):
    """Raised when an answer does not satisfy its question."""

    def __init__(self, key: str, message: str) -> None:
        self.key = key
        super().__init__(message)


class CommandError(QuasarkitError):
    """Raised when an external command exits unsuccessfully."""

    def __init__(self, command: str, returncode: int, stderr: str = "") -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        detail = f": {stderr}" if stderr else ""
        super().__init__(f"`{command}` exited with code {returncode}{detail}")


class InstallError(CommandError):
    """Raised when the package manager fails to install dependencies."""


class LintFixError(CommandError):
    """Raised when the lint auto-fix run fails."""
