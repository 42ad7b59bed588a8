"""
Pointer Gesture Module.

Classifies pointer down/move/up sequences as taps or drags.

The same state machine serves both pin manipulation and viewport panning.
Transitions are pure: ``transition(state, event)`` returns the next state and
a list of outcomes, and never touches the camera or the pins itself.

State per active pointer::

    IDLE --down--> CANDIDATE --move beyond threshold--> DRAG
                       |                                  |
                       +--up--> IDLE (Tap)                +--up--> IDLE (DragEnded)

Once a gesture becomes a drag it stays a drag until release, even if the
pointer returns to its start position.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from atlas.core.map_math import distance_squared

DRAG_THRESHOLD_PX = 4.0

# Target used for gestures that start on the map background.
VIEWPORT_TARGET = "__viewport__"


class GesturePhase(Enum):
    """Lifecycle phase of the active gesture."""

    IDLE = "idle"
    CANDIDATE = "candidate"
    DRAG = "drag"


@dataclass(frozen=True)
class GestureState:
    """
    Snapshot of the gesture tracked for a single pointer.

    Attributes:
        phase: Current phase.
        pointer_id: Pointer that owns the gesture (None while idle).
        target: Pin id, or VIEWPORT_TARGET for the map background.
        start_x: Press position X (viewport pixels).
        start_y: Press position Y (viewport pixels).
    """

    phase: GesturePhase = GesturePhase.IDLE
    pointer_id: Optional[int] = None
    target: Optional[str] = None
    start_x: float = 0.0
    start_y: float = 0.0


IDLE = GestureState()


# --------------------------------------------------------------------------
# Events
# --------------------------------------------------------------------------


@dataclass(frozen=True)
class PointerDown:
    pointer_id: int
    x: float
    y: float
    target: str


@dataclass(frozen=True)
class PointerMove:
    pointer_id: int
    x: float
    y: float
    buttons_down: bool = True


@dataclass(frozen=True)
class PointerUp:
    pointer_id: int
    x: float
    y: float


@dataclass(frozen=True)
class PointerCancel:
    pointer_id: int


PointerEvent = Union[PointerDown, PointerMove, PointerUp, PointerCancel]


# --------------------------------------------------------------------------
# Outcomes
# --------------------------------------------------------------------------


@dataclass(frozen=True)
class DragStarted:
    target: str
    x: float
    y: float


@dataclass(frozen=True)
class DragMoved:
    """Drag progress. dx/dy are measured from the press position."""

    target: str
    x: float
    y: float
    dx: float
    dy: float


@dataclass(frozen=True)
class DragEnded:
    target: str
    x: float
    y: float
    dx: float
    dy: float


@dataclass(frozen=True)
class Tap:
    target: str
    x: float
    y: float


@dataclass(frozen=True)
class GestureAborted:
    """The gesture ended without a release (buttons lost or pointer cancel)."""

    target: str
    was_dragging: bool


GestureOutcome = Union[DragStarted, DragMoved, DragEnded, Tap, GestureAborted]


def transition(
    state: GestureState,
    event: PointerEvent,
    threshold: float = DRAG_THRESHOLD_PX,
) -> Tuple[GestureState, List[GestureOutcome]]:
    """
    Advances the gesture state machine by one pointer event.

    Events from pointers other than the one owning the active gesture are
    ignored, as is a second press while a gesture is active.

    Args:
        state: Current state.
        event: Incoming pointer event.
        threshold: Drag threshold in pixels.

    Returns:
        Tuple[GestureState, List[GestureOutcome]]: Next state and outcomes.
    """
    if isinstance(event, PointerDown):
        if state.phase is not GesturePhase.IDLE:
            return state, []
        return (
            GestureState(
                phase=GesturePhase.CANDIDATE,
                pointer_id=event.pointer_id,
                target=event.target,
                start_x=event.x,
                start_y=event.y,
            ),
            [],
        )

    if state.phase is GesturePhase.IDLE or event.pointer_id != state.pointer_id:
        return state, []

    target = state.target
    dragging = state.phase is GesturePhase.DRAG

    if isinstance(event, PointerCancel):
        return IDLE, [GestureAborted(target, was_dragging=dragging)]

    dx = event.x - state.start_x
    dy = event.y - state.start_y

    if isinstance(event, PointerMove):
        if not event.buttons_down:
            return IDLE, [GestureAborted(target, was_dragging=dragging)]
        if not dragging:
            if distance_squared(state.start_x, state.start_y, event.x, event.y) < (
                threshold * threshold
            ):
                return state, []
            return (
                replace(state, phase=GesturePhase.DRAG),
                [
                    DragStarted(target, state.start_x, state.start_y),
                    DragMoved(target, event.x, event.y, dx, dy),
                ],
            )
        return state, [DragMoved(target, event.x, event.y, dx, dy)]

    # PointerUp
    if dragging:
        return IDLE, [DragEnded(target, event.x, event.y, dx, dy)]
    if distance_squared(state.start_x, state.start_y, event.x, event.y) >= (
        threshold * threshold
    ):
        # Release far from the press with no intermediate moves reported.
        return IDLE, [
            DragStarted(target, state.start_x, state.start_y),
            DragMoved(target, event.x, event.y, dx, dy),
            DragEnded(target, event.x, event.y, dx, dy),
        ]
    return IDLE, [Tap(target, event.x, event.y)]


@dataclass
class ClickSuppressor:
    """
    Swallows the click generated by the release that ended a drag.

    Each drag arms suppression for its target under a fresh token. The
    suppression is released either by the first click for that target or by
    a zero-delay timer carrying the same token, whichever comes first. A timer
    from an earlier drag cannot release a newer drag's suppression because its
    token no longer matches.
    """

    _armed: Dict[str, int] = field(default_factory=dict)
    _next_token: int = 0

    def arm(self, target: str) -> int:
        """Arms suppression for a target and returns the release token."""
        self._next_token += 1
        self._armed[target] = self._next_token
        return self._next_token

    def consume(self, target: str) -> bool:
        """Returns True (and disarms) if a click on target must be ignored."""
        return self._armed.pop(target, None) is not None

    def release(self, token: int) -> None:
        """Disarms whichever target is still armed with this token."""
        for target, armed_token in list(self._armed.items()):
            if armed_token == token:
                del self._armed[target]

    def is_armed(self, target: str) -> bool:
        return target in self._armed
