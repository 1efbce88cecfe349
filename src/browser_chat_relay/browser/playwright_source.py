"""Playwright-powered content source implementation."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Optional, Sequence, TypeVar

from playwright.sync_api import Error, sync_playwright

from ..config import BrowserConfig
from ..errors import NavigationFailedError
from ..models import CookieTuple
from ..polling import Clock, SystemClock, poll_until
from .base import ContentSource, ContentSourceError, ElementHandle

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class PlaywrightContentSource(ContentSource):
    """Content source backed by a Chromium page driven through Playwright.

    The sync Playwright API may only be used from the thread that started it,
    so every browser call is funnelled through a single worker thread.
    """

    def __init__(
        self,
        config: Optional[BrowserConfig] = None,
        *,
        clock: Optional[Clock] = None,
        predicate_interval: float = 0.1,
    ) -> None:
        self._config = config or BrowserConfig()
        self._clock = clock or SystemClock()
        self._predicate_interval = predicate_interval
        self._executor: Optional[ThreadPoolExecutor] = None
        self._closed = False
        self._playwright = None
        self._browser = None
        self._context = None
        self._page = None

    def start(self) -> None:
        if self._executor or self._closed:
            return
        LOGGER.debug("Starting Playwright content source")
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="playwright")
        try:
            self._call(self._launch)
        except Exception:
            LOGGER.warning("Browser launch failed; releasing partial resources")
            try:
                self._release()
            except Exception as exc:
                LOGGER.warning("Error while releasing browser resources: %s", exc)
            raise

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if not self._executor:
            return
        LOGGER.debug("Stopping Playwright content source")
        self._release()

    def navigate(self, url: str, timeout: float) -> None:
        LOGGER.info("Navigating to %s", url)
        try:
            self._call(
                lambda: self._require_page().goto(
                    url,
                    wait_until="networkidle",
                    timeout=_to_timeout(timeout),
                )
            )
        except ContentSourceError as exc:
            raise NavigationFailedError(f"Failed to load {url}: {exc}") from exc

    def current_url(self) -> str:
        return self._call(lambda: self._require_page().url)

    def query_all(
        self,
        selector: str,
        within: Optional[ElementHandle] = None,
    ) -> Sequence[ElementHandle]:
        def _query() -> Sequence[ElementHandle]:
            root = within if within is not None else self._require_page()
            return root.query_selector_all(selector)

        return self._call(_query)

    def read_text(self, handle: ElementHandle) -> str:
        return self._call(lambda: handle.text_content() or "")

    def read_cookies(self) -> list[CookieTuple]:
        raw = self._call(lambda: self._require_context().cookies())
        return [CookieTuple.model_validate(item) for item in raw]

    def apply_cookies(self, cookies: Sequence[CookieTuple]) -> None:
        payload = [cookie.to_browser() for cookie in cookies]
        self._call(lambda: self._require_context().add_cookies(payload))

    def click(self, handle: ElementHandle) -> None:
        self._call(handle.click)

    def type_text(self, handle: ElementHandle, text: str) -> None:
        self._call(lambda: handle.type(text))

    def press_key(self, key: str) -> None:
        self._call(lambda: self._require_page().keyboard.press(key))

    def wait_for_predicate(self, predicate: Callable[[], bool], timeout: float) -> bool:
        # Runs on the caller thread; the predicate dispatches its own browser calls.
        return poll_until(
            predicate,
            timeout=timeout,
            interval=self._predicate_interval,
            clock=self._clock,
        )

    def user_agent(self) -> Optional[str]:
        return self._call(lambda: self._require_page().evaluate("navigator.userAgent")) or None

    # Internal helpers -------------------------------------------------

    def _call(self, fn: Callable[[], T]) -> T:
        if not self._executor:
            raise ContentSourceError("Browser session is not started")
        try:
            return self._executor.submit(fn).result()
        except Error as exc:  # pragma: no cover - Playwright exception path
            raise ContentSourceError(str(exc)) from exc

    def _release(self) -> None:
        executor = self._executor
        self._executor = None
        try:
            executor.submit(self._teardown).result()
        finally:
            executor.shutdown(wait=True)

    def _launch(self) -> None:
        self._playwright = sync_playwright().start()
        launch_kwargs: dict[str, Any] = {
            "headless": self._config.headless,
            "args": [
                "--no-sandbox",
                "--disable-dev-shm-usage",
                "--disable-blink-features=AutomationControlled",
            ],
        }
        context_kwargs: dict[str, Any] = {
            "viewport": {
                "width": self._config.viewport_width,
                "height": self._config.viewport_height,
            },
        }
        if self._config.user_agent:
            context_kwargs["user_agent"] = self._config.user_agent
        user_data_dir: Optional[Path] = self._config.profile_path
        if user_data_dir:
            user_data_dir.mkdir(parents=True, exist_ok=True)
            self._context = self._playwright.chromium.launch_persistent_context(
                str(user_data_dir),
                **launch_kwargs,
                **context_kwargs,
            )
            pages = self._context.pages
            self._page = pages[0] if pages else self._context.new_page()
        else:
            self._browser = self._playwright.chromium.launch(**launch_kwargs)
            self._context = self._browser.new_context(**context_kwargs)
            self._page = self._context.new_page()

    def _teardown(self) -> None:
        try:
            if self._context:
                self._context.close()
        except Error as exc:  # pragma: no cover - browser already gone
            LOGGER.warning("Error while closing browser context: %s", exc)
        finally:
            if self._browser:
                self._browser.close()
            if self._playwright:
                self._playwright.stop()
        self._context = None
        self._browser = None
        self._playwright = None
        self._page = None

    def _require_page(self):
        if not self._page:
            raise ContentSourceError("Browser session is not started")
        return self._page

    def _require_context(self):
        if not self._context:
            raise ContentSourceError("Browser session is not started")
        return self._context


def _to_timeout(timeout: Optional[float]) -> Optional[int]:
    if timeout is None:
        return None
    return int(timeout * 1000)
