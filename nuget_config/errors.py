"""
Error taxonomy for NuGet config parsing and editing.

Callers are expected to branch on the error kind: a missing file is
usually "create a default config", a parse error is fatal for that file.
"""

from __future__ import annotations

from typing import Optional


class NuGetConfigError(Exception):
    """Base class for every error raised by this package."""


class NotFoundError(NuGetConfigError):
    """A referenced key, or the config document itself, does not exist."""


class FormatError(NuGetConfigError):
    """The document is well-formed XML but not a usable NuGet config."""


class ValidationError(NuGetConfigError):
    """An editor method was handed an empty or unusable key/value."""


class ParseError(NuGetConfigError):
    """Malformed markup, with the location it was detected at."""

    def __init__(
        self,
        message: str,
        line: int = 0,
        column: int = 0,
        context: str = "",
    ) -> None:
        self.message = message
        self.line = line
        self.column = column
        self.context = context
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.line > 0 and self.column > 0:
            text = f"parse error at line {self.line} column {self.column}: {self.message}"
        else:
            text = f"parse error: {self.message}"
        if self.context:
            text += f" (near: {self.context!r})"
        return text


class ConflictError(NuGetConfigError):
    """Two queued edits target overlapping byte ranges."""

    def __init__(self, first, second, message: Optional[str] = None) -> None:
        self.first = first
        self.second = second
        if message is None:
            message = (
                f"conflicting edits: {_describe(first)} overlaps {_describe(second)}"
            )
        super().__init__(message)


def _describe(edit) -> str:
    label = getattr(edit, "label", "") or getattr(edit, "kind", "edit")
    target = getattr(edit, "target", None)
    if target is None:
        return str(label)
    return f"{label} [{target.start.offset}:{target.end.offset})"


def is_not_found_error(err: BaseException) -> bool:
    return isinstance(err, NotFoundError)


def is_parse_error(err: BaseException) -> bool:
    return isinstance(err, ParseError)


def is_format_error(err: BaseException) -> bool:
    return isinstance(err, FormatError)
