"""Shared pytest fixtures for the chat relay test suite.

Non-fixture helpers (fake clock, fake content source) are in helpers.py.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Add the tests directory to sys.path so test files can import helpers.py
sys.path.insert(0, str(Path(__file__).parent))

from helpers import CollectingNotifier, FakeClock  # noqa: E402

from browser_chat_relay.config import RelayConfig  # noqa: E402


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifier() -> CollectingNotifier:
    return CollectingNotifier()


@pytest.fixture
def relay_config(tmp_path: Path) -> RelayConfig:
    return RelayConfig.model_validate(
        {
            "browser": {"headless": True, "profile_path": None},
            "session": {"path": str(tmp_path / "session.json")},
            "chat": {"typing_delay": 0.0},
        }
    )
