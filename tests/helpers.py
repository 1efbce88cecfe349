"""Shared test doubles for the chat relay test suite.

Fixtures live in conftest.py. This module holds the fake clock, the fake
content source and other non-fixture helpers used across test files.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence, Union

from browser_chat_relay.browser.base import ContentSource, ContentSourceError
from browser_chat_relay.errors import NavigationFailedError
from browser_chat_relay.models import CookieTuple, NotificationEvent
from browser_chat_relay.notifications.base import Notifier
from browser_chat_relay.polling import poll_until
from browser_chat_relay.stabilization import ResponseObservation


class FakeClock:
    """Simulated monotonic clock; sleeping advances time instantly."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []
        self._lock = threading.Lock()

    def monotonic(self) -> float:
        with self._lock:
            return self.now

    def sleep(self, seconds: float) -> None:
        with self._lock:
            self.sleeps.append(seconds)
            self.now += max(seconds, 0.0)


@dataclass
class FakeElement:
    """Element of the fake page; ``text`` may be a callable for dynamic content."""

    name: str
    text: Union[str, Callable[[], str]] = ""
    children: dict[str, list["FakeElement"]] = field(default_factory=dict)
    typed: list[str] = field(default_factory=list)
    clicks: int = 0
    on_click: Optional[Callable[[], None]] = None

    def current_text(self) -> str:
        return self.text() if callable(self.text) else self.text


Matches = Union[Sequence[FakeElement], Callable[[], Sequence[FakeElement]]]


class FakeContentSource(ContentSource):
    """In-memory page keyed by selector strings."""

    def __init__(self, clock: FakeClock, elements: Optional[dict[str, Matches]] = None) -> None:
        self.clock = clock
        self.elements: dict[str, Matches] = elements if elements is not None else {}
        self.cookies: list[CookieTuple] = [
            CookieTuple(name="session", value="fresh", domain="openrouter.ai")
        ]
        self.applied_cookies: list[CookieTuple] = []
        self.calls: list[str] = []
        self.keys: list[str] = []
        self.url = "about:blank"
        self.navigation_error: Optional[str] = None
        self.started = 0
        self.closed = 0

    def start(self) -> None:
        self.calls.append("start")
        self.started += 1

    def close(self) -> None:
        self.calls.append("close")
        self.closed += 1

    def navigate(self, url: str, timeout: float) -> None:
        self.calls.append("navigate")
        if self.navigation_error:
            raise NavigationFailedError(self.navigation_error)
        self.url = url

    def current_url(self) -> str:
        return self.url

    def query_all(self, selector: str, within: Any = None) -> Sequence[FakeElement]:
        self.calls.append("query_all")
        if self.closed:
            raise ContentSourceError("Browser session is not started")
        if within is not None:
            return list(within.children.get(selector, []))
        matches = self.elements.get(selector, [])
        if callable(matches):
            matches = matches()
        return list(matches)

    def read_text(self, handle: FakeElement) -> str:
        return handle.current_text()

    def read_cookies(self) -> list[CookieTuple]:
        return list(self.cookies)

    def apply_cookies(self, cookies: Sequence[CookieTuple]) -> None:
        self.calls.append("apply_cookies")
        self.applied_cookies.extend(cookies)

    def click(self, handle: FakeElement) -> None:
        self.calls.append("click")
        handle.clicks += 1
        if handle.on_click:
            handle.on_click()

    def type_text(self, handle: FakeElement, text: str) -> None:
        self.calls.append("type_text")
        handle.typed.append(text)

    def press_key(self, key: str) -> None:
        self.calls.append("press_key")
        self.keys.append(key)

    def wait_for_predicate(self, predicate: Callable[[], bool], timeout: float) -> bool:
        return poll_until(predicate, timeout=timeout, interval=0.1, clock=self.clock)

    def user_agent(self) -> Optional[str]:
        return "FakeBrowser/1.0"


class CollectingNotifier(Notifier):
    def __init__(self) -> None:
        self.events: list[NotificationEvent] = []

    def notify(self, event: NotificationEvent) -> None:
        self.events.append(event)

    @property
    def types(self) -> list[str]:
        return [event.type for event in self.events]


class ScriptedObserver:
    """Return scripted texts in order, repeating the last one when exhausted.

    Items that are exceptions are raised instead of returned.
    """

    def __init__(self, items: Sequence[Union[str, Exception]]) -> None:
        self._items = list(items)
        self.calls = 0

    def __call__(self) -> ResponseObservation:
        index = min(self.calls, len(self._items) - 1)
        self.calls += 1
        item = self._items[index]
        if isinstance(item, Exception):
            raise item
        return ResponseObservation(text=item, observed_at=self.calls)


def logged_in_page(
    *,
    reply: Union[str, Callable[[], str]] = "Hello from the assistant",
    with_send_button: bool = True,
    model_names: Sequence[str] = ("OpenAI: GPT-4o", "DeepSeek: Deepseek R1 0528 Qwen3 8B (free)"),
) -> dict[str, Matches]:
    """Build a fake chat page on which the user is logged in."""

    options = [FakeElement(name=f"option-{index}", text=text) for index, text in enumerate(model_names)]
    page: dict[str, Matches] = {
        'img[alt*="Avatar"]': [FakeElement(name="avatar")],
        'textarea[name="Chat Input"]': [FakeElement(name="chat-input")],
        "div.max-w-3xl.bg-slate-3": [FakeElement(name="reply", text=reply)],
    }
    picker = FakeElement(name="add-model", text="Add model")
    page["button"] = [picker]

    def _open_picker() -> None:
        page["[cmdk-item]"] = options

    picker.on_click = _open_picker
    if with_send_button:
        page['[data-testid="send-button"]'] = [FakeElement(name="send")]
    return page
