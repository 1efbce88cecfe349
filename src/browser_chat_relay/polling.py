"""Clock abstraction and bounded polling helpers."""

from __future__ import annotations

import logging
import time
from typing import Callable, Protocol

LOGGER = logging.getLogger(__name__)


class Clock(Protocol):
    """Time source used by every polling loop."""

    def monotonic(self) -> float:
        ...

    def sleep(self, seconds: float) -> None:
        ...


class SystemClock:
    """Wall-clock implementation backed by :mod:`time`."""

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)


def poll_until(
    predicate: Callable[[], bool],
    *,
    timeout: float,
    interval: float,
    clock: Clock,
) -> bool:
    """Evaluate ``predicate`` every ``interval`` seconds until it holds.

    Returns ``False`` once ``timeout`` elapses. Exceptions raised by the
    predicate count as a negative check for that cycle.
    """

    deadline = clock.monotonic() + max(timeout, 0.0)
    while True:
        try:
            if predicate():
                return True
        except Exception as exc:
            LOGGER.debug("Predicate check failed: %s", exc)
        remaining = deadline - clock.monotonic()
        if remaining <= 0:
            return False
        clock.sleep(min(interval, remaining))
