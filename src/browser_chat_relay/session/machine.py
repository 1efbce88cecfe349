"""Chat session lifecycle: login, persistence, readiness and messaging."""

from __future__ import annotations

import logging
from typing import Optional

from ..browser.base import ContentSource
from ..config import RelayConfig
from ..errors import (
    ElementNotFoundError,
    ErrorKind,
    InvalidTransitionError,
    LoginTimeoutError,
    RelayError,
)
from ..models import (
    ErrorInfo,
    InitResult,
    NotificationEvent,
    NotificationLevel,
    SendResult,
    SessionPhase,
    SessionRecord,
    StatusReport,
)
from ..notifications.base import NullNotifier, Notifier
from ..polling import Clock, SystemClock, poll_until
from ..selectors import resolve_element
from ..stabilization import ResponseProbe, StabilizationEngine
from .model_picker import ModelPicker
from .state import SessionState
from .store import SessionStore

LOGGER = logging.getLogger(__name__)


class ChatSession:
    """Own the browser-backed chat session and gate access to it.

    Public methods never raise; failures are reported through the returned
    result objects.
    """

    def __init__(
        self,
        config: RelayConfig,
        source: ContentSource,
        store: SessionStore,
        *,
        notifier: Optional[Notifier] = None,
        clock: Optional[Clock] = None,
        engine: Optional[StabilizationEngine] = None,
    ) -> None:
        self._config = config
        self._source = source
        self._store = store
        self._notifier = notifier or NullNotifier()
        self._clock = clock or SystemClock()
        self._engine = engine or StabilizationEngine(config.stabilization, clock=self._clock)
        self._picker = ModelPicker(
            source,
            config.selectors,
            options_timeout=config.chat.model_options_timeout,
        )
        self._state = SessionState()
        self._model_confirmed = False

    @property
    def phase(self) -> SessionPhase:
        return self._state.phase

    # Command surface ----------------------------------------------------

    def initialize(self) -> InitResult:
        if not self._state.try_begin_initialize():
            return self._current_init_result()
        try:
            restored = self._establish()
        except Exception as exc:
            if isinstance(exc, RelayError):
                LOGGER.error("Initialization failed: %s", exc)
            else:
                LOGGER.exception("Unexpected initialization error")
            error = ErrorInfo.from_exception(exc)
            self._fail(error)
            return InitResult(success=False, state=self._state.phase, error=error)
        finally:
            self._state.end_initialize()
        self._notifier.notify(
            NotificationEvent(
                type="session_ready",
                message="Chat session ready",
                level=NotificationLevel.SUCCESS,
                data={"model": self._config.chat.model_name, "restored": restored},
            )
        )
        return InitResult(success=True, state=self._state.phase, restored=restored)

    def send_message(self, text: str) -> SendResult:
        if not self._state.try_begin_send():
            phase = self._state.phase
            LOGGER.warning("Rejecting message while session is %s", phase.value)
            return SendResult(
                success=False,
                message=text,
                error=ErrorInfo(
                    kind=ErrorKind.NOT_READY,
                    detail=f"Session is {phase.value}, not ready",
                ),
            )
        LOGGER.info("Sending message (%d chars)", len(text))
        try:
            self._submit(text)
            probe = ResponseProbe(
                self._source,
                self._config.selectors.response_container,
                self._config.selectors.loading_indicator,
            )
            loading = probe.loading_present if self._config.selectors.loading_indicator else None
            result = self._engine.wait_for_response(probe.observe, loading)
        except Exception as exc:
            if isinstance(exc, RelayError):
                LOGGER.error("Send message failed: %s", exc)
            else:
                LOGGER.exception("Unexpected error while sending message")
            return SendResult(success=False, message=text, error=ErrorInfo.from_exception(exc))
        finally:
            self._state.end_send()
        LOGGER.info("Reply finished as %s (%d chars)", result.outcome.value, len(result.text))
        return SendResult(
            success=True,
            message=text,
            response=result.text,
            outcome=result.outcome,
        )

    def get_status(self) -> StatusReport:
        phase, reason = self._state.snapshot()
        return StatusReport(
            ready=phase == SessionPhase.READY,
            state=phase,
            selected_model=self._config.chat.model_name,
            model_confirmed=self._model_confirmed,
            reason=reason,
        )

    def reset_session(self) -> bool:
        """Forget the stored session record.

        Refused while a message is being sent. The live browser keeps its
        cookies; only the next start is affected.
        """

        if not self._state.run_unless_busy(self._store.clear):
            LOGGER.warning("Refusing to reset the session while a message is in flight")
            return False
        LOGGER.info("Stored session cleared")
        return True

    def shutdown(self) -> None:
        if not self._state.close():
            return
        LOGGER.info("Shutting down chat session")
        try:
            self._source.close()
        except Exception as exc:
            LOGGER.warning("Error during shutdown: %s", exc)

    # Lifecycle steps ----------------------------------------------------

    def _establish(self) -> bool:
        self._source.start()
        record = self._store.load()
        applied = False
        if record is not None and record.is_usable:
            self._source.apply_cookies(record.cookies)
            applied = True
            LOGGER.info("Applied stored session captured at %s", record.captured_at)

        self._source.navigate(self._config.chat.target_url, self._config.browser.navigation_timeout)
        self._clock.sleep(self._config.login.settle_delay)

        if self._is_logged_in():
            LOGGER.info("Already logged in")
            if applied:
                self._notifier.notify(
                    NotificationEvent(type="session_restored", message="Stored session is valid")
                )
            self._persist_session()
            self._enter_ready()
            return applied

        if applied:
            LOGGER.info("Stored session is stale; discarding it")
            self._store.clear()
        self._state.transition(SessionPhase.AWAITING_LOGIN)
        self._wait_for_login()
        self._persist_session()
        self._enter_ready()
        return False

    def _wait_for_login(self) -> None:
        timeout = self._config.login.timeout
        self._notifier.notify(
            NotificationEvent(
                type="login_required",
                message="Login required - please log in manually in the browser window",
                level=NotificationLevel.WARNING,
                data={"url": self._config.chat.target_url, "timeout_seconds": timeout},
            )
        )
        logged_in = poll_until(
            self._is_logged_in,
            timeout=timeout,
            interval=self._config.login.poll_interval,
            clock=self._clock,
        )
        if not logged_in:
            raise LoginTimeoutError(f"Login not detected within {timeout:.0f}s")
        LOGGER.info("Login detected")
        self._notifier.notify(
            NotificationEvent(
                type="login_detected",
                message="Login successful",
                level=NotificationLevel.SUCCESS,
            )
        )

    def _enter_ready(self) -> None:
        model_name = self._config.chat.model_name
        self._model_confirmed = self._picker.select(model_name)
        if not self._model_confirmed:
            self._notifier.notify(
                NotificationEvent(
                    type="model_selection_degraded",
                    message=f"Could not select {model_name!r}; using the active model",
                    level=NotificationLevel.WARNING,
                )
            )
        self._state.transition(SessionPhase.READY)

    def _is_logged_in(self) -> bool:
        try:
            resolve_element(self._source, "login_indicator", self._config.selectors.login_indicator)
        except ElementNotFoundError:
            return False
        return True

    def _persist_session(self) -> None:
        try:
            record = SessionRecord(
                origin_url=self._source.current_url(),
                cookies=self._source.read_cookies(),
                user_agent=self._source.user_agent(),
            )
            if not record.is_usable:
                LOGGER.warning("Browser reported no cookies; session not saved")
                return
            self._store.save(record)
        except Exception as exc:
            LOGGER.warning("Failed to save session: %s", exc)

    def _submit(self, text: str) -> None:
        selectors = self._config.selectors
        chat_input = resolve_element(self._source, "chat_input", selectors.chat_input)
        self._source.click(chat_input)
        self._source.press_key("Control+A")
        self._source.type_text(chat_input, text)
        self._clock.sleep(self._config.chat.typing_delay)
        try:
            button = resolve_element(self._source, "send_button", selectors.send_button)
        except ElementNotFoundError:
            LOGGER.debug("No send button found; submitting with Enter")
            self._source.press_key("Enter")
        else:
            self._source.click(button)

    def _current_init_result(self) -> InitResult:
        phase = self._state.phase
        if phase in {SessionPhase.READY, SessionPhase.BUSY}:
            return InitResult(success=True, state=phase)
        if self._state.initializing:
            detail = "Initialization already in progress"
        else:
            detail = f"Session is {phase.value}"
        return InitResult(
            success=False,
            state=phase,
            error=ErrorInfo(kind=ErrorKind.NOT_READY, detail=detail),
        )

    def _fail(self, error: ErrorInfo) -> None:
        try:
            self._state.transition(SessionPhase.FAILED, reason=error.kind.value)
        except InvalidTransitionError:
            LOGGER.debug("Session closed before failure could be recorded")
            return
        self._notifier.notify(
            NotificationEvent(
                type="initialization_failed",
                message=error.detail,
                level=NotificationLevel.ERROR,
                data={"kind": error.kind.value},
            )
        )
