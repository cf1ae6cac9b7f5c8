"""Diagnostic records accumulated during a lifecycle invocation.

A verb never stops at the first problem it sees: warnings (a vanished file,
a directory that could not be removed) are collected next to the fatal
error that ended the step, and all of them are handed back together.
"""

from collections.abc import Iterable, Iterator
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from tfexternal.exceptions import ExternalError


class Severity(str, Enum):
    """Severity of a diagnostic."""

    ERROR = "error"
    WARNING = "warning"


class Diagnostic(BaseModel):
    """A single diagnostic with an actionable detail string.

    Frozen because a diagnostic is a fact about something that already happened.
    """

    model_config = ConfigDict(frozen=True)

    severity: Severity
    summary: str
    detail: str = ""

    @classmethod
    def error(cls, summary: str, detail: str = "") -> "Diagnostic":
        return cls(severity=Severity.ERROR, summary=summary, detail=detail)

    @classmethod
    def warning(cls, summary: str, detail: str = "") -> "Diagnostic":
        return cls(severity=Severity.WARNING, summary=summary, detail=detail)

    @classmethod
    def from_exception(cls, exc: "ExternalError") -> "Diagnostic":
        """Build a diagnostic from an ExternalError, keeping its severity."""
        return cls(severity=exc.severity, summary=exc.summary, detail=exc.detail)

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR


class Diagnostics:
    """Ordered list of diagnostics with error-presence checks."""

    def __init__(self, items: Iterable[Diagnostic] | None = None) -> None:
        self._items: list[Diagnostic] = list(items or [])

    def append(self, diagnostic: Diagnostic) -> None:
        self._items.append(diagnostic)

    def extend(self, diagnostics: Iterable[Diagnostic]) -> None:
        self._items.extend(diagnostics)

    def add_exception(self, exc: "ExternalError") -> None:
        self._items.append(Diagnostic.from_exception(exc))

    def has_error(self) -> bool:
        return any(d.is_error for d in self._items)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self._items if d.is_error]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self._items if not d.is_error]

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index: int) -> Diagnostic:
        return self._items[index]

    def __repr__(self) -> str:
        return f"Diagnostics({self._items!r})"
