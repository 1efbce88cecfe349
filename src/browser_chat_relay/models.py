"""Shared models used across the chat relay."""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import ErrorKind, RelayError


class SessionPhase(str, enum.Enum):
    """Lifecycle phases of the chat session."""

    UNINITIALIZED = "uninitialized"
    AWAITING_LOGIN = "awaiting_login"
    READY = "ready"
    BUSY = "busy"
    FAILED = "failed"
    CLOSED = "closed"


class StabilizationOutcome(str, enum.Enum):
    """How waiting for a reply ended."""

    CONVERGED = "converged"
    TIMED_OUT = "timed_out"
    NEVER_APPEARED = "never_appeared"


class CookieTuple(BaseModel):
    """A single browser cookie as exchanged with the browser layer."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    value: str
    domain: str
    path: str = "/"
    expires: float = Field(default=-1, description="Unix timestamp, -1 for session cookies.")
    http_only: bool = Field(default=False, alias="httpOnly")
    secure: bool = False
    same_site: Optional[str] = Field(default=None, alias="sameSite")

    def to_browser(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class SessionRecord(BaseModel):
    """Persisted credential bundle enabling session reuse across restarts."""

    model_config = ConfigDict(populate_by_name=True)

    captured_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        alias="timestamp",
    )
    origin_url: str = Field(default="", alias="url")
    cookies: list[CookieTuple] = Field(default_factory=list)
    user_agent: Optional[str] = Field(default=None, alias="userAgent")

    @property
    def is_usable(self) -> bool:
        return bool(self.cookies)


class NotificationLevel(str, enum.Enum):
    """Severity of notification events."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


class NotificationEvent(BaseModel):
    """Event emitted to notify the operator."""

    type: str
    message: str
    level: NotificationLevel = NotificationLevel.INFO
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ErrorInfo(BaseModel):
    """Typed error returned instead of raising past the command surface."""

    kind: ErrorKind
    detail: str

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorInfo":
        kind = exc.kind if isinstance(exc, RelayError) else ErrorKind.INTERNAL
        return cls(kind=kind, detail=str(exc) or type(exc).__name__)


class InitResult(BaseModel):
    """Outcome of :meth:`ChatSession.initialize`."""

    success: bool
    state: SessionPhase
    restored: bool = Field(default=False, description="True if a stored session was reused.")
    error: Optional[ErrorInfo] = None


class SendResult(BaseModel):
    """Outcome of :meth:`ChatSession.send_message`."""

    success: bool
    message: str
    response: str = ""
    outcome: Optional[StabilizationOutcome] = None
    error: Optional[ErrorInfo] = None


class StatusReport(BaseModel):
    """Read-only view of the session state."""

    ready: bool
    state: SessionPhase
    selected_model: str
    model_confirmed: bool = False
    reason: Optional[str] = None
