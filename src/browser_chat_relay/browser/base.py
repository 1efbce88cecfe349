"""Content source abstraction over the live chat page."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, Sequence

from ..models import CookieTuple

ElementHandle = Any


class ContentSourceError(RuntimeError):
    """Raised when the underlying browser rejects an operation."""


class ContentSource(ABC):
    """Capability object used to observe and drive the chat page.

    Timeouts are expressed in seconds.
    """

    @abstractmethod
    def start(self) -> None:
        """Launch the underlying browser."""

    @abstractmethod
    def close(self) -> None:
        """Release browser resources. Must be idempotent."""

    @abstractmethod
    def navigate(self, url: str, timeout: float) -> None:
        """Load ``url``, raising ``NavigationFailedError`` on failure."""

    @abstractmethod
    def current_url(self) -> str:
        """Return the URL of the current document."""

    @abstractmethod
    def query_all(
        self,
        selector: str,
        within: Optional[ElementHandle] = None,
    ) -> Sequence[ElementHandle]:
        """Return every element matching ``selector``."""

    @abstractmethod
    def read_text(self, handle: ElementHandle) -> str:
        """Return the text content of ``handle``."""

    @abstractmethod
    def read_cookies(self) -> list[CookieTuple]:
        """Return the cookies of the current browser context."""

    @abstractmethod
    def apply_cookies(self, cookies: Sequence[CookieTuple]) -> None:
        """Install ``cookies`` into the browser context."""

    @abstractmethod
    def click(self, handle: ElementHandle) -> None:
        """Click on ``handle``."""

    @abstractmethod
    def type_text(self, handle: ElementHandle, text: str) -> None:
        """Type ``text`` into ``handle``."""

    @abstractmethod
    def press_key(self, key: str) -> None:
        """Press a keyboard key or chord such as ``Enter`` or ``Control+A``."""

    @abstractmethod
    def wait_for_predicate(self, predicate: Callable[[], bool], timeout: float) -> bool:
        """Block until ``predicate`` holds or ``timeout`` elapses."""

    @abstractmethod
    def user_agent(self) -> Optional[str]:
        """Return the browser user agent, if known."""
