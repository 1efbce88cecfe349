"""Error taxonomy for the chat relay."""

from __future__ import annotations

import enum
from typing import Optional


class ErrorKind(str, enum.Enum):
    """Error categories surfaced through the command surface."""

    NOT_READY = "not_ready"
    LOGIN_TIMEOUT = "login_timeout"
    ELEMENT_NOT_FOUND = "element_not_found"
    NAVIGATION_FAILED = "navigation_failed"
    INTERNAL = "internal"


class RelayError(RuntimeError):
    """Base class for errors raised inside the relay."""

    kind: ErrorKind = ErrorKind.INTERNAL


class NotReadyError(RelayError):
    """Raised when an operation requires the ``ready`` state."""

    kind = ErrorKind.NOT_READY


class LoginTimeoutError(RelayError):
    """Raised when the user did not finish logging in within the budget."""

    kind = ErrorKind.LOGIN_TIMEOUT


class ElementNotFoundError(RelayError):
    """Raised when no lookup strategy resolves an element."""

    kind = ErrorKind.ELEMENT_NOT_FOUND

    def __init__(self, capability: str, detail: Optional[str] = None) -> None:
        self.capability = capability
        message = f"No element found for {capability!r}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class NavigationFailedError(RelayError):
    """Raised when the page could not be loaded."""

    kind = ErrorKind.NAVIGATION_FAILED


class InvalidTransitionError(RuntimeError):
    """Raised when the session state machine is asked for an illegal move."""
