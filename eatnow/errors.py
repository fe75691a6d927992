"""Error types raised by the ordering core."""

from __future__ import annotations


class EatNowError(Exception):
    """Base class for client errors that carry a user-facing message."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(EatNowError):
    """Input rejected locally, before any network call."""


class InvalidTransitionError(ValidationError):
    """Requested status is not the immediate successor of the current one."""


class TransitionInFlightError(ValidationError):
    """A status change for this order is already outstanding."""


class ApiError(EatNowError):
    """Network failure or non-success response from the backend."""

    def __init__(self, message: str, status: int = 0, errors: dict[str, list[str]] | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.errors = errors or {}

    def __repr__(self) -> str:
        return f"ApiError(status={self.status}, message={self.message!r})"


class PlacementError(EatNowError):
    """Order submission failed; the cart was left untouched."""


class TransitionError(EatNowError):
    """Status update failed on the server."""
