"""Session lifecycle state with an explicit transition table."""

from __future__ import annotations

import threading
from typing import Callable, Optional

from ..errors import InvalidTransitionError
from ..models import SessionPhase

_ALLOWED: dict[SessionPhase, frozenset[SessionPhase]] = {
    SessionPhase.UNINITIALIZED: frozenset(
        {SessionPhase.AWAITING_LOGIN, SessionPhase.READY, SessionPhase.FAILED}
    ),
    SessionPhase.AWAITING_LOGIN: frozenset({SessionPhase.READY, SessionPhase.FAILED}),
    SessionPhase.READY: frozenset({SessionPhase.BUSY}),
    SessionPhase.BUSY: frozenset({SessionPhase.READY}),
    SessionPhase.FAILED: frozenset(
        {SessionPhase.AWAITING_LOGIN, SessionPhase.READY, SessionPhase.FAILED}
    ),
    SessionPhase.CLOSED: frozenset(),
}

_INITIALIZABLE = frozenset({SessionPhase.UNINITIALIZED, SessionPhase.FAILED})


class SessionState:
    """Current phase of the chat session.

    The phase only changes through :meth:`transition` and the dedicated
    send/close helpers; all of them are thread-safe.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._phase = SessionPhase.UNINITIALIZED
        self._reason: Optional[str] = None
        self._initializing = False

    @property
    def phase(self) -> SessionPhase:
        with self._lock:
            return self._phase

    def snapshot(self) -> tuple[SessionPhase, Optional[str]]:
        with self._lock:
            return self._phase, self._reason

    def transition(self, target: SessionPhase, reason: Optional[str] = None) -> None:
        with self._lock:
            if target == SessionPhase.CLOSED or target not in _ALLOWED[self._phase]:
                raise InvalidTransitionError(
                    f"Cannot move from {self._phase.value} to {target.value}"
                )
            self._phase = target
            self._reason = reason if target == SessionPhase.FAILED else None

    def try_begin_initialize(self) -> bool:
        """Claim the right to run initialization.

        Only one caller wins, and only from ``uninitialized`` or ``failed``.
        """

        with self._lock:
            if self._initializing or self._phase not in _INITIALIZABLE:
                return False
            self._initializing = True
            return True

    def end_initialize(self) -> None:
        with self._lock:
            self._initializing = False

    @property
    def initializing(self) -> bool:
        with self._lock:
            return self._initializing

    def try_begin_send(self) -> bool:
        """Atomically move ``ready -> busy``; return ``False`` from any other phase."""

        with self._lock:
            if self._phase != SessionPhase.READY:
                return False
            self._phase = SessionPhase.BUSY
            return True

    def end_send(self) -> None:
        """Return ``busy -> ready``; a session closed mid-send stays closed."""

        with self._lock:
            if self._phase == SessionPhase.BUSY:
                self._phase = SessionPhase.READY

    def run_unless_busy(self, action: Callable[[], None]) -> bool:
        """Run ``action`` under the state lock unless a send is in flight."""

        with self._lock:
            if self._phase == SessionPhase.BUSY:
                return False
            action()
            return True

    def close(self) -> bool:
        """Enter the terminal phase. Returns ``False`` if already closed."""

        with self._lock:
            if self._phase == SessionPhase.CLOSED:
                return False
            self._phase = SessionPhase.CLOSED
            self._reason = None
            return True
