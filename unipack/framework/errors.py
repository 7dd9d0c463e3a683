from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    CAPABILITY = "capability"
    RESOLUTION = "resolution"
    INVARIANT = "invariant"
    MATERIALIZATION = "materialization"


class PackError(ValueError):
    """
    Base class for every failure of a packaging request.

    ``kind`` classifies the failure so callers can branch on it without
    matching message text. Invariant errors indicate a bug in the planner,
    not a problem with the user's input.
    """

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str, *, kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind

    def with_context(self, prefix: str) -> "PackError":
        """Return an error of the same class and kind with ``prefix`` prepended."""
        return type(self)(f"{prefix}: {self.message}", kind=self.kind)


class ValidationError(PackError):
    kind = ErrorKind.VALIDATION


class CapabilityError(PackError):
    kind = ErrorKind.CAPABILITY


class ResolutionError(PackError):
    kind = ErrorKind.RESOLUTION


class InvariantError(PackError):
    kind = ErrorKind.INVARIANT


class MaterializationError(PackError):
    kind = ErrorKind.MATERIALIZATION
