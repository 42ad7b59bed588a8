"""
SessionController - Runs the effects of a MapSession on the Qt event loop.

The session decides, the controller performs: network effects are forwarded
to the ApiWorker living in its own QThread, timer effects become single-shot
QTimers keyed by name, and navigation effects are re-emitted for the window.
Worker results are fed back into the session. Every failure ends up as
session state; nothing raised by a handler escapes into the event loop.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from PySide6.QtCore import QObject, QThread, QTimer, Signal, Slot

from atlas.app.effects import (
    Effects,
    FetchAdminStatus,
    OpenLink,
    PersistPins,
    StartTimer,
    StopTimer,
    SubmitLogin,
    SubmitLogout,
)
from atlas.app.map_session import MapSession
from atlas.core.content import ContentLookup
from atlas.services.api_worker import ApiWorker

logger = logging.getLogger(__name__)


class SessionController(QObject):
    """
    Glue between a MapSession, its worker thread and the widgets.

    Widgets call ``apply(handler, *args)`` with a bound session method; the
    controller dispatches the returned effects and emits ``state_changed``.
    """

    state_changed = Signal()
    navigate_requested = Signal(str)  # href

    # Requests for the worker (queued across threads)
    check_status_requested = Signal()
    login_requested = Signal(str)
    logout_requested = Signal()
    load_pins_requested = Signal()
    save_pins_requested = Signal(int, list)
    load_entries_requested = Signal()

    def __init__(
        self,
        session: MapSession,
        worker: ApiWorker,
        threaded: bool = True,
        parent: Optional[QObject] = None,
    ) -> None:
        """
        Args:
            session: The session whose effects are dispatched.
            worker: API worker; moved to a new QThread when ``threaded``.
            threaded: False runs the worker on the caller's thread (tests).
            parent: Optional Qt parent.
        """
        super().__init__(parent)
        self.session = session
        self.worker = worker
        self.worker_thread: Optional[QThread] = None
        self._timers: Dict[str, QTimer] = {}
        self._timer_tokens: Dict[str, int] = {}

        if threaded:
            self.worker_thread = QThread()
            self.worker.moveToThread(self.worker_thread)

        # Connect Worker Signals
        self.worker.status_checked.connect(self.on_status_checked)
        self.worker.login_finished.connect(self.on_login_finished)
        self.worker.logout_finished.connect(self.on_logout_finished)
        self.worker.pins_loaded.connect(self.on_pins_loaded)
        self.worker.pins_saved.connect(self.on_pins_saved)
        self.worker.entries_loaded.connect(self.on_entries_loaded)
        self.worker.error_occurred.connect(self.on_worker_error)

        # Connect requests
        self.check_status_requested.connect(self.worker.check_status)
        self.login_requested.connect(self.worker.login)
        self.logout_requested.connect(self.worker.logout)
        self.load_pins_requested.connect(self.worker.load_pins)
        self.save_pins_requested.connect(self.worker.save_pins)
        self.load_entries_requested.connect(self.worker.load_entries)

        if self.worker_thread is not None:
            self.worker_thread.start()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Mounts the session and loads pins and linkable entries."""
        self.apply(self.session.mount)
        self.load_pins_requested.emit()
        self.load_entries_requested.emit()

    def shutdown(self) -> None:
        for timer in self._timers.values():
            timer.stop()
        if self.worker_thread is not None:
            self.worker_thread.quit()
            self.worker_thread.wait()
            self.worker_thread = None

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def apply(self, handler: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """
        Calls a session handler, dispatches any effects it returns and
        notifies listeners.

        Returns:
            The handler's return value (effects are consumed here).
        """
        try:
            result = handler(*args, **kwargs)
        except Exception as e:
            logger.error(f"Session handler {handler.__name__} failed: {e}", exc_info=True)
            self.session.error = str(e)
            self.state_changed.emit()
            return None

        if isinstance(result, list):
            self.dispatch(result)
        self.state_changed.emit()
        return result

    def dispatch(self, effects: Effects) -> None:
        for effect in effects:
            if isinstance(effect, StartTimer):
                self._start_timer(effect.key, effect.delay_ms, effect.token)
            elif isinstance(effect, StopTimer):
                self._stop_timer(effect.key)
            elif isinstance(effect, PersistPins):
                logger.debug(f"Persisting {len(effect.pins)} pins (request {effect.request_id})")
                self.save_pins_requested.emit(effect.request_id, list(effect.pins))
            elif isinstance(effect, FetchAdminStatus):
                self.check_status_requested.emit()
            elif isinstance(effect, SubmitLogin):
                self.login_requested.emit(effect.password)
            elif isinstance(effect, SubmitLogout):
                self.logout_requested.emit()
            elif isinstance(effect, OpenLink):
                self.navigate_requested.emit(effect.href)
            else:
                logger.warning(f"Unhandled effect: {effect!r}")

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def _start_timer(self, key: str, delay_ms: int, token: int) -> None:
        timer = self._timers.get(key)
        if timer is None:
            timer = QTimer(self)
            timer.setSingleShot(True)
            timer.timeout.connect(lambda k=key: self._on_timeout(k))
            self._timers[key] = timer
        timer.stop()
        self._timer_tokens[key] = token
        timer.start(max(0, delay_ms))

    def _stop_timer(self, key: str) -> None:
        timer = self._timers.get(key)
        if timer is not None:
            timer.stop()

    def is_timer_active(self, key: str) -> bool:
        timer = self._timers.get(key)
        return timer is not None and timer.isActive()

    def _on_timeout(self, key: str) -> None:
        token = self._timer_tokens.get(key, 0)
        self.apply(self.session.on_timer, key, token)

    # ------------------------------------------------------------------
    # Worker results
    # ------------------------------------------------------------------

    @Slot(object)
    def on_status_checked(self, authenticated: Optional[bool]) -> None:
        self.apply(self.session.on_admin_status, authenticated)

    @Slot(bool, str)
    def on_login_finished(self, success: bool, error: str) -> None:
        self.apply(self.session.on_login_result, success, error or None)

    @Slot(bool, str)
    def on_logout_finished(self, success: bool, error: str) -> None:
        if not success:
            # Capability is already dropped locally; the cookie may linger.
            logger.warning(f"Server logout failed: {error}")

    @Slot(list)
    def on_pins_loaded(self, pins: List) -> None:
        self.apply(self.session.load_pins, pins)

    @Slot(int, bool, str)
    def on_pins_saved(self, request_id: int, success: bool, error: str) -> None:
        self.apply(self.session.on_save_result, request_id, success, error or None)

    @Slot(list)
    def on_entries_loaded(self, summaries: List) -> None:
        self.session.content = ContentLookup(summaries)
        logger.info(f"Loaded {len(summaries)} linkable entries")
        self.state_changed.emit()

    @Slot(str)
    def on_worker_error(self, message: str) -> None:
        self.session.error = message
        self.state_changed.emit()
