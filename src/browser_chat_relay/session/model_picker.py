"""Best-effort selection of the chat model after login."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..browser.base import ContentSource, ElementHandle
from ..config import SelectorConfig
from ..errors import ElementNotFoundError
from ..selectors import collect_elements, resolve_element

LOGGER = logging.getLogger(__name__)


class ModelPicker:
    """Open the model picker and choose the configured model.

    Every failure is reported as ``False``; the model that is already active
    stays in use.
    """

    def __init__(
        self,
        source: ContentSource,
        selectors: SelectorConfig,
        *,
        options_timeout: float = 5.0,
    ) -> None:
        self._source = source
        self._selectors = selectors
        self._options_timeout = options_timeout

    def select(self, model_name: str) -> bool:
        try:
            picker = resolve_element(self._source, "model_picker", self._selectors.model_picker)
        except ElementNotFoundError as exc:
            LOGGER.warning("Model selection skipped: %s", exc)
            return False
        try:
            self._source.click(picker)
            appeared = self._source.wait_for_predicate(
                lambda: bool(collect_elements(self._source, self._selectors.model_option)),
                self._options_timeout,
            )
            if not appeared:
                LOGGER.warning("Model options did not appear within %.1fs", self._options_timeout)
                return False
            options = collect_elements(self._source, self._selectors.model_option)
            option = self._match(options, model_name)
            if option is None:
                LOGGER.warning("Model %r not found among %d options", model_name, len(options))
                return False
            self._source.click(option)
        except Exception as exc:
            LOGGER.warning("Model selection failed: %s", exc)
            return False
        LOGGER.info("Model selected: %s", model_name)
        return True

    def _match(
        self,
        options: Sequence[ElementHandle],
        model_name: str,
    ) -> Optional[ElementHandle]:
        texts = [self._source.read_text(option).strip() for option in options]
        for option, text in zip(options, texts):
            if text == model_name:
                return option
        for option, text in zip(options, texts):
            if model_name in text:
                return option
        return None
