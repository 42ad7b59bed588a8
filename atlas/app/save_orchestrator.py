"""
Save Orchestrator Module.

Drives the persistence of the pin list and the visible save status.

    idle | saved | error --save--> saving --ok--> saved --1.5s--> idle
                                          +--fail--> error (until next save)

Every save is an independent replace-all request. Requests are numbered and
only the outcome of the most recent one is reflected in the status; a slower
earlier request finishing late cannot overwrite a newer result.
"""

import logging
from enum import Enum
from typing import Iterable, Optional

from atlas.app.constants import (
    MSG_SAVE_FAILED,
    SAVED_STATE_REVERT_MS,
    TIMER_SAVE_REVERT,
)
from atlas.app.effects import Effects, PersistPins, StartTimer, StopTimer
from atlas.core.pins import Pin

logger = logging.getLogger(__name__)


class SaveState(str, Enum):
    """Visible status of the latest save cycle."""

    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"


class SaveOrchestrator:
    """
    Save-state machine for one map session.
    """

    def __init__(self, revert_delay_ms: int = SAVED_STATE_REVERT_MS) -> None:
        self.state = SaveState.IDLE
        self.last_error: Optional[str] = None
        self.revert_delay_ms = revert_delay_ms
        self._latest_request = 0

    @property
    def latest_request_id(self) -> int:
        return self._latest_request

    @property
    def is_saving(self) -> bool:
        return self.state is SaveState.SAVING

    def save(self, pins: Iterable[Pin]) -> Effects:
        """
        Starts a save cycle for a snapshot of the pin list.

        Args:
            pins: Pins to persist; copied into an immutable snapshot.

        Returns:
            Effects: Stop any pending revert timer, then persist.
        """
        self._latest_request += 1
        self.state = SaveState.SAVING
        self.last_error = None
        snapshot = tuple(pins)
        logger.debug(
            f"Save #{self._latest_request} started with {len(snapshot)} pins"
        )
        return [
            StopTimer(TIMER_SAVE_REVERT),
            PersistPins(request_id=self._latest_request, pins=snapshot),
        ]

    def on_result(
        self, request_id: int, success: bool, error: Optional[str] = None
    ) -> Effects:
        """
        Applies the outcome of a persistence request.

        Args:
            request_id: Id carried by the PersistPins effect.
            success: True if the server accepted the list.
            error: Failure reason shown to the user.

        Returns:
            Effects: The revert timer on success, nothing otherwise.
        """
        if request_id != self._latest_request:
            logger.debug(
                f"Ignoring outcome of superseded save #{request_id} "
                f"(latest is #{self._latest_request})"
            )
            return []

        if success:
            self.state = SaveState.SAVED
            self.last_error = None
            logger.info(f"Save #{request_id} succeeded")
            return [StartTimer(TIMER_SAVE_REVERT, self.revert_delay_ms, request_id)]

        self.state = SaveState.ERROR
        self.last_error = error or MSG_SAVE_FAILED
        logger.warning(f"Save #{request_id} failed: {self.last_error}")
        return []

    def on_revert_timer(self, token: int) -> None:
        """Returns from ``saved`` to ``idle`` if no newer save has started."""
        if self.state is SaveState.SAVED and token == self._latest_request:
            self.state = SaveState.IDLE
