"""Detect when a streamed chat reply has stopped changing.

The chat page exposes no completion event, so a reply is considered
complete once the best candidate text has been identical for a number of
consecutive polling cycles. A loading indicator, when the page shows one,
is used as a fast path before polling starts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from .browser.base import ContentSource
from .config import StabilizationConfig
from .models import StabilizationOutcome
from .polling import Clock, SystemClock, poll_until
from .selectors import SelectorStrategy, find_matches

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResponseObservation:
    """Best candidate reply text seen during one polling cycle."""

    text: str
    observed_at: int


@dataclass(frozen=True)
class StabilizationResult:
    """Outcome of a single :meth:`StabilizationEngine.wait_for_response` call."""

    outcome: StabilizationOutcome
    text: str = ""

    @classmethod
    def converged(cls, text: str) -> "StabilizationResult":
        return cls(StabilizationOutcome.CONVERGED, text)

    @classmethod
    def timed_out(cls, best_partial_text: str) -> "StabilizationResult":
        return cls(StabilizationOutcome.TIMED_OUT, best_partial_text)

    @classmethod
    def never_appeared(cls) -> "StabilizationResult":
        return cls(StabilizationOutcome.NEVER_APPEARED)


class StabilizationEngine:
    """Poll an observation function until its text converges."""

    def __init__(
        self,
        config: Optional[StabilizationConfig] = None,
        *,
        clock: Optional[Clock] = None,
    ) -> None:
        self._config = config or StabilizationConfig()
        self._clock = clock or SystemClock()

    def wait_for_response(
        self,
        observe: Callable[[], ResponseObservation],
        loading_present: Optional[Callable[[], bool]] = None,
    ) -> StabilizationResult:
        config = self._config
        deadline = self._clock.monotonic() + config.max_wait

        if loading_present is not None:
            self._wait_for_loading_indicator(loading_present, deadline)

        last_text = ""
        stable_count = 0
        while True:
            text = self._safe_observe(observe)
            # Short, blank and failed reads leave the previous candidate untouched.
            if len(text) > config.min_length:
                if text == last_text:
                    stable_count += 1
                    if stable_count >= config.stable_cycles:
                        LOGGER.info("Response stabilized (%d chars)", len(text))
                        return StabilizationResult.converged(text)
                else:
                    last_text = text
                    stable_count = 0
            remaining = deadline - self._clock.monotonic()
            if remaining <= 0:
                break
            self._clock.sleep(min(config.poll_interval, remaining))

        if len(last_text) > config.min_length:
            LOGGER.warning(
                "Response did not stabilize within %.1fs; returning partial text (%d chars)",
                config.max_wait,
                len(last_text),
            )
            return StabilizationResult.timed_out(last_text)
        LOGGER.warning("No response appeared within %.1fs", config.max_wait)
        return StabilizationResult.never_appeared()

    def _wait_for_loading_indicator(
        self,
        loading_present: Callable[[], bool],
        deadline: float,
    ) -> None:
        remaining = deadline - self._clock.monotonic()
        appeared = poll_until(
            loading_present,
            timeout=min(self._config.indicator_appear_timeout, remaining),
            interval=self._config.poll_interval,
            clock=self._clock,
        )
        if not appeared:
            LOGGER.info("No loading indicator detected; falling back to polling")
            return
        remaining = deadline - self._clock.monotonic()
        gone = poll_until(
            lambda: not loading_present(),
            timeout=remaining,
            interval=self._config.poll_interval,
            clock=self._clock,
        )
        if not gone:
            LOGGER.warning("Loading indicator still visible when the wait budget ran out")

    @staticmethod
    def _safe_observe(observe: Callable[[], ResponseObservation]) -> str:
        try:
            return observe().text
        except Exception as exc:
            LOGGER.debug("Response observation failed: %s", exc)
            return ""


class ResponseProbe:
    """Read the best current reply candidate from the chat page.

    The best candidate is the longest non-empty text among the response
    containers that are not showing a loading indicator.
    """

    def __init__(
        self,
        source: ContentSource,
        containers: Sequence[SelectorStrategy],
        loading_selector: str,
    ) -> None:
        self._source = source
        self._containers = list(containers)
        self._loading_selector = loading_selector
        self._tick = 0

    def observe(self) -> ResponseObservation:
        self._tick += 1
        best = ""
        for strategy in self._containers:
            for handle in find_matches(self._source, strategy):
                if self._loading_selector and self._source.query_all(
                    self._loading_selector, within=handle
                ):
                    continue
                text = self._source.read_text(handle).strip()
                if len(text) > len(best):
                    best = text
        return ResponseObservation(text=best, observed_at=self._tick)

    def loading_present(self) -> bool:
        if not self._loading_selector:
            return False
        return bool(self._source.query_all(self._loading_selector))
