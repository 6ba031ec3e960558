"""Error types raised by the shop-floor core.

Every failure leaves the ledger untouched and surfaces as exactly one
:class:`ShopFloorError` subclass. Callers translate the ``kind`` into a
notification or an HTTP status.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Categories of failure a caller has to distinguish."""

    NOT_FOUND = "NotFound"
    INVALID_TRANSITION = "InvalidTransition"
    INVALID_ARGUMENT = "InvalidArgument"
    CONFLICT = "Conflict"


class ShopFloorError(RuntimeError):
    """Base exception for all core failures.

    Subclasses set ``kind``. A bare ``ShopFloorError`` reports
    ``INVALID_ARGUMENT``, so the HTTP adapter answers it with a 422.
    """

    kind: ErrorKind = ErrorKind.INVALID_ARGUMENT


class NotFoundError(ShopFloorError, LookupError):
    """Raised when a referenced record does not exist."""

    kind = ErrorKind.NOT_FOUND


class InvalidTransitionError(ShopFloorError):
    """Raised when a job cannot move to the requested status."""

    kind = ErrorKind.INVALID_TRANSITION

    def __init__(self, job_id: str, current: str, target: str, reason: str = "") -> None:
        self.job_id = job_id
        self.current = current
        self.target = target
        self.reason = reason
        message = f"Job {job_id!r} cannot move from {current} to {target}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class InvalidArgumentError(ShopFloorError, ValueError):
    """Raised for malformed input such as non-positive quantities."""

    kind = ErrorKind.INVALID_ARGUMENT


class ConflictError(ShopFloorError):
    """Raised when a concurrent change invalidated the request; safe to retry."""

    kind = ErrorKind.CONFLICT


class RecordNotFoundError(NotFoundError):
    """Raised when a requested record is missing from a repository."""


class DuplicateRecordError(ConflictError):
    """Raised when attempting to insert a record that already exists."""


__all__ = [
    "ErrorKind",
    "ShopFloorError",
    "NotFoundError",
    "InvalidTransitionError",
    "InvalidArgumentError",
    "ConflictError",
    "RecordNotFoundError",
    "DuplicateRecordError",
]
