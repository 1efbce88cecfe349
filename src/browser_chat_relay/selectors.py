"""Ordered fallback lookup of page elements."""

from __future__ import annotations

import logging
from typing import Any, Literal, Optional, Sequence

from pydantic import BaseModel, model_validator

from .browser.base import ContentSource, ElementHandle
from .errors import ElementNotFoundError

LOGGER = logging.getLogger(__name__)


class SelectorStrategy(BaseModel):
    """One way of locating an element.

    ``selector`` is anything the content source understands: a CSS selector
    or an ``xpath=`` prefixed expression. ``text_contains`` narrows the
    matches to elements whose text contains the given substring.
    """

    selector: str
    text_contains: Optional[str] = None
    pick: Literal["first", "last"] = "first"

    @model_validator(mode="before")
    @classmethod
    def _coerce_plain_selector(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"selector": value}
        return value

    def describe(self) -> str:
        if self.text_contains is None:
            return self.selector
        return f"{self.selector} containing {self.text_contains!r}"


def find_matches(source: ContentSource, strategy: SelectorStrategy) -> list[ElementHandle]:
    handles = list(source.query_all(strategy.selector))
    if strategy.text_contains is not None:
        handles = [
            handle for handle in handles if strategy.text_contains in source.read_text(handle)
        ]
    return handles


def resolve_element(
    source: ContentSource,
    capability: str,
    strategies: Sequence[SelectorStrategy],
) -> ElementHandle:
    """Return the element found by the first strategy that resolves.

    Ties go to list order. Raises :class:`ElementNotFoundError` naming
    ``capability`` when every strategy fails.
    """

    for strategy in strategies:
        try:
            handles = find_matches(source, strategy)
        except Exception as exc:
            LOGGER.debug("Strategy %s for %s failed: %s", strategy.describe(), capability, exc)
            continue
        if handles:
            LOGGER.debug("Resolved %s via %s", capability, strategy.describe())
            return handles[0] if strategy.pick == "first" else handles[-1]
    raise ElementNotFoundError(capability, f"{len(strategies)} strategies tried")


def collect_elements(
    source: ContentSource,
    strategies: Sequence[SelectorStrategy],
) -> list[ElementHandle]:
    """Return every match of the first strategy that yields any element."""

    for strategy in strategies:
        try:
            handles = find_matches(source, strategy)
        except Exception as exc:
            LOGGER.debug("Strategy %s failed: %s", strategy.describe(), exc)
            continue
        if handles:
            return handles
    return []
