"""Factories for constructing components from configuration."""

from __future__ import annotations

from .browser.base import ContentSource
from .browser.playwright_source import PlaywrightContentSource
from .config import BrowserConfig, NotificationConfig, RelayConfig, SessionStoreConfig
from .notifications.base import ConsoleNotifier, Notifier, NullNotifier
from .session.machine import ChatSession
from .session.store import JsonFileSessionStore, SessionStore


def build_content_source(config: BrowserConfig) -> ContentSource:
    return PlaywrightContentSource(config)


def build_session_store(config: SessionStoreConfig) -> SessionStore:
    return JsonFileSessionStore(config.path)


def build_notifier(config: NotificationConfig) -> Notifier:
    channel = config.channel.lower()
    if channel == "console":
        return ConsoleNotifier()
    if channel == "none":
        return NullNotifier()
    raise ValueError(f"Unsupported notification channel: {config.channel}")


def build_chat_session(config: RelayConfig) -> ChatSession:
    return ChatSession(
        config,
        build_content_source(config.browser),
        build_session_store(config.session),
        notifier=build_notifier(config.notifications),
    )
