"""Notification channels for the chat relay."""

from __future__ import annotations

from abc import ABC, abstractmethod

from rich.console import Console

from ..models import NotificationEvent


class Notifier(ABC):
    """Interface for telling the operator about session events."""

    @abstractmethod
    def notify(self, event: NotificationEvent) -> None:
        """Send a notification event."""


class ConsoleNotifier(Notifier):
    """Simple notifier that prints to the console using Rich."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console(stderr=True)

    def notify(self, event: NotificationEvent) -> None:
        style = {
            "info": "cyan",
            "warning": "yellow",
            "error": "red",
            "success": "green",
        }.get(event.level.value, "white")
        self._console.print(f"[{event.level.value.upper()}] {event.message}", style=style)
        if event.data:
            self._console.print(event.data, style="dim")


class NullNotifier(Notifier):
    """Notifier that drops every event."""

    def notify(self, event: NotificationEvent) -> None:
        return None
