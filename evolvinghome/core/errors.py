"""
Error taxonomy and tagged results.

Components raise the exceptions below. Boundary operations convert them
into an ``Outcome`` so callers branch on ``outcome.kind`` instead of
catching exceptions across component boundaries.

Usage:
    from evolvinghome.core.errors import Outcome, capture

    outcome = capture(resolver.resolve, coordinate)
    if outcome.ok:
        footprint = outcome.value
    elif outcome.kind == ErrorKind.NOT_FOUND:
        ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    INVARIANT_VIOLATION = "invariant_violation"


class EvolvingHomeError(Exception):
    """Base class for every error the core signals."""

    kind: ErrorKind = ErrorKind.INVARIANT_VIOLATION

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind.value, "type": type(self).__name__}


class ValidationError(EvolvingHomeError, ValueError):
    """Raised when input validation fails."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, field: str = "", suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.field = field
        self.suggestions = suggestions or []

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.field:
            data["field"] = self.field
        if self.suggestions:
            data["suggestions"] = self.suggestions
        return data


class NotFound(EvolvingHomeError):
    kind = ErrorKind.NOT_FOUND


class GeocodeNotFound(NotFound):
    """No coordinate for a postcode."""


class NoBuildingFound(NotFound):
    """No building footprint within the search radius."""


class UpstreamUnavailable(EvolvingHomeError):
    """A collaborator timed out, refused, or returned garbage."""

    kind = ErrorKind.UPSTREAM_UNAVAILABLE

    def __init__(self, message: str, service: str = ""):
        super().__init__(message)
        self.service = service


class InvariantViolation(EvolvingHomeError):
    """A computed value left its defined range. Indicates a defect."""

    kind = ErrorKind.INVARIANT_VIOLATION


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Tagged result: either a value or an error, never both."""

    value: Optional[T] = None
    error: Optional[EvolvingHomeError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: EvolvingHomeError) -> "Outcome[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value


def capture(fn: Callable[..., T], *args: Any, **kwargs: Any) -> Outcome[T]:
    """Run ``fn`` and fold any core error into an Outcome."""
    try:
        return Outcome.success(fn(*args, **kwargs))
    except InvariantViolation as exc:
        logger.critical(f"Invariant violated in {getattr(fn, '__name__', fn)}: {exc}",
                        extra={"error_kind": exc.kind.value})
        return Outcome.failure(exc)
    except EvolvingHomeError as exc:
        logger.debug(f"{getattr(fn, '__name__', fn)} failed: {exc}", extra={"error_kind": exc.kind.value})
        return Outcome.failure(exc)
