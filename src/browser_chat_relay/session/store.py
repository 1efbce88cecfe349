"""Persistence of the session record between runs."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from ..models import SessionRecord

LOGGER = logging.getLogger(__name__)


class SessionStore(ABC):
    """Interface for loading, saving and clearing the session record."""

    @abstractmethod
    def load(self) -> Optional[SessionRecord]:
        """Return the stored record, or ``None`` when nothing usable exists."""

    @abstractmethod
    def save(self, record: SessionRecord) -> None:
        """Persist ``record``, replacing any previous one."""

    @abstractmethod
    def clear(self) -> None:
        """Delete the stored record if present."""


class JsonFileSessionStore(SessionStore):
    """Store the record as a JSON document on disk."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[SessionRecord]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            LOGGER.info("No stored session at %s", self._path)
            return None
        except (OSError, UnicodeDecodeError) as exc:
            LOGGER.warning("Ignoring unreadable session file %s: %s", self._path, exc)
            return None
        try:
            record = SessionRecord.model_validate_json(raw)
        except ValidationError as exc:
            LOGGER.warning("Ignoring unreadable session file %s: %s", self._path, exc)
            return None
        if not record.is_usable:
            LOGGER.info("Stored session at %s has no cookies", self._path)
            return None
        return record

    def save(self, record: SessionRecord) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = record.model_dump_json(by_alias=True, exclude_none=True, indent=2)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(payload, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.info("Session saved to %s (%d cookies)", self._path, len(record.cookies))

    def clear(self) -> None:
        try:
            self._path.unlink()
        except FileNotFoundError:
            return
        LOGGER.info("Session record %s removed", self._path)


class InMemorySessionStore(SessionStore):
    """Keep the record in memory; useful for tests and throwaway runs."""

    def __init__(self, record: Optional[SessionRecord] = None) -> None:
        self._record = record
        self.saves = 0
        self.clears = 0

    def load(self) -> Optional[SessionRecord]:
        if self._record is None or not self._record.is_usable:
            return None
        return self._record.model_copy(deep=True)

    def save(self, record: SessionRecord) -> None:
        self._record = record.model_copy(deep=True)
        self.saves += 1

    def clear(self) -> None:
        self._record = None
        self.clears += 1

    @property
    def record(self) -> Optional[SessionRecord]:
        return self._record
