"""
Map Session Module.

One MapSession exists per open map view and exclusively owns its mutable
state: the pin list, selection, edit/create modes, the camera, the active
gesture and the save status. Handlers are synchronous; anything that needs
the network or a timer is returned as a list of effects (see
atlas.app.effects) for the SessionController to dispatch.

All pin mutations are no-ops unless the admin capability is held *and* edit
mode is on.
"""

import logging
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional

from atlas.app.admin_gate import AdminGate
from atlas.app.constants import (
    AUTOSAVE_DELAY_MS,
    CLICK_SUPPRESSION_MS,
    MESSAGE_DISMISS_MS,
    MSG_PIN_CREATED,
    MSG_PIN_DELETED,
    MSG_PIN_UNLINKED,
    MSG_PINS_SAVED,
    NAVIGATE_DELAY_MS,
    PIN_HIT_RADIUS_PX,
    TIMER_AUTOSAVE,
    TIMER_CLICK_RELEASE,
    TIMER_MESSAGE,
    TIMER_NAVIGATE,
    TIMER_SAVE_REVERT,
)
from atlas.app.effects import Effects, OpenLink, StartTimer, StopTimer
from atlas.app.save_orchestrator import SaveOrchestrator, SaveState
from atlas.core.camera import DEFAULT_ZOOM, CameraController
from atlas.core.content import ContentLookup
from atlas.core.gestures import (
    DRAG_THRESHOLD_PX,
    IDLE,
    VIEWPORT_TARGET,
    ClickSuppressor,
    DragEnded,
    DragMoved,
    DragStarted,
    GestureAborted,
    GestureOutcome,
    PointerCancel,
    PointerDown,
    PointerEvent,
    PointerMove,
    PointerUp,
    Tap,
    transition,
)
from atlas.core.map_layers import MapLayer
from atlas.core.map_math import (
    Camera,
    ImageSize,
    ViewportSize,
    clamp01,
    client_to_normalized,
    distance_squared,
    normalized_to_viewport,
)
from atlas.core.pins import NEW_PIN_TITLE, Pin, new_pin_id, normalize_pin

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NavigationPrompt:
    """Pending "open linked page?" confirmation."""

    title: str
    href: str
    loading: bool = False


class MapSession:
    """
    Editing session for the world map.

    Attributes:
        pins: Authoritative in-memory pin list (newest first).
        selected_id: Id of the selected pin, or None.
        admin: Admin capability gate.
        saver: Save-state machine.
        camera: Zoom/pan controller.
        content: Lookup of lore entries pins can link to.
        layer: Currently displayed image layer.
    """

    def __init__(
        self,
        initial_pins: Iterable[Pin] = (),
        content: Optional[ContentLookup] = None,
        layer: MapLayer = MapLayer.CURRENT,
        default_scale: float = DEFAULT_ZOOM,
        autosave_delay_ms: int = AUTOSAVE_DELAY_MS,
        drag_threshold: float = DRAG_THRESHOLD_PX,
    ) -> None:
        self.pins: List[Pin] = list(initial_pins)
        self.selected_id: Optional[str] = self.pins[0].id if self.pins else None
        self.admin = AdminGate()
        self.saver = SaveOrchestrator()
        self.camera = CameraController(default_scale)
        self.content = content or ContentLookup()
        self.layer = layer
        self.autosave_delay_ms = autosave_delay_ms
        self.drag_threshold = drag_threshold

        self.is_editing = False
        self.create_mode = False
        self.pending_delete_id: Optional[str] = None
        self.dragging_id: Optional[str] = None
        self.nav_prompt: Optional[NavigationPrompt] = None
        self.message: Optional[str] = None
        self.error: Optional[str] = None

        self._gesture = IDLE
        self._pan_active = False
        self._suppressor = ClickSuppressor()
        self._message_token = 0
        self._nav_token = 0

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def is_admin(self) -> bool:
        return self.admin.is_admin

    @property
    def can_edit(self) -> bool:
        """True only while admin and in edit mode."""
        return self.admin.is_admin and self.is_editing

    @property
    def save_state(self) -> SaveState:
        return self.saver.state

    @property
    def is_panning(self) -> bool:
        return self._pan_active

    @property
    def selected_pin(self) -> Optional[Pin]:
        return self.get_pin(self.selected_id) if self.selected_id else None

    def get_pin(self, pin_id: str) -> Optional[Pin]:
        index = self._index_of(pin_id)
        return self.pins[index] if index is not None else None

    def _index_of(self, pin_id: str) -> Optional[int]:
        for index, pin in enumerate(self.pins):
            if pin.id == pin_id:
                return index
        return None

    def pin_screen_position(self, pin: Pin) -> Optional[tuple]:
        """Viewport position of a pin, or None before the image size is known."""
        image = self.camera.image_size
        if image is None or image.is_empty:
            return None
        return normalized_to_viewport(pin.x, pin.y, self.camera.camera, image)

    # ------------------------------------------------------------------
    # Lifecycle and admin
    # ------------------------------------------------------------------

    def mount(self) -> Effects:
        """Starts the session: one admin status check."""
        return self.admin.mount()

    def load_pins(self, pins: Iterable[Pin]) -> None:
        """Replaces the pin list with the persisted collection."""
        self.pins = list(pins)
        if self.selected_id is None or self._index_of(self.selected_id) is None:
            self.selected_id = self.pins[0].id if self.pins else None
        logger.info(f"Loaded {len(self.pins)} pins")

    def on_admin_status(self, authenticated: Optional[bool]) -> None:
        self.admin.on_status(authenticated)
        if not self.admin.is_admin:
            self.exit_edit_mode()

    def login(self, password: str) -> Effects:
        self.error = None
        return self.admin.login(password)

    def on_login_result(self, success: bool, error: Optional[str] = None) -> None:
        self.admin.on_login_result(success, error)
        if not success:
            self.error = self.admin.error

    def logout(self) -> Effects:
        """Drops admin capability and forces edit mode off."""
        self.exit_edit_mode()
        return self.admin.logout()

    def set_editing(self, enabled: bool) -> bool:
        """
        Turns edit mode on or off. Edit mode requires admin capability.

        Returns:
            bool: The resulting edit mode.
        """
        if enabled and not self.admin.is_admin:
            logger.debug("Edit mode refused: not admin")
            return False
        if enabled:
            self.is_editing = True
        else:
            self.exit_edit_mode()
        return self.is_editing

    def toggle_editing(self) -> bool:
        return self.set_editing(not self.is_editing)

    def exit_edit_mode(self) -> None:
        """Leaves edit mode and drops every edit-only transient state."""
        self.is_editing = False
        self.create_mode = False
        self.pending_delete_id = None
        if self.dragging_id is not None:
            self.dragging_id = None
            self._gesture = IDLE

    def toggle_create_mode(self) -> bool:
        if not self.can_edit:
            return False
        self.create_mode = not self.create_mode
        return self.create_mode

    # ------------------------------------------------------------------
    # Pin store
    # ------------------------------------------------------------------

    def select(self, pin_id: Optional[str]) -> None:
        """Selects one pin, or clears the selection. Unknown ids are ignored."""
        if pin_id is None or self._index_of(pin_id) is not None:
            self.selected_id = pin_id

    def create_pin(self, norm_x: float, norm_y: float) -> Effects:
        """
        Places a new pin and selects it.

        Args:
            norm_x: Normalized X, clamped to [0, 1].
            norm_y: Normalized Y, clamped to [0, 1].
        """
        if not self.can_edit:
            return []
        pin = Pin(
            id=new_pin_id(),
            x=clamp01(norm_x),
            y=clamp01(norm_y),
            title=NEW_PIN_TITLE,
        )
        self.pins.insert(0, pin)
        self.selected_id = pin.id
        logger.info(f"Created pin {pin.id} at ({pin.x:.3f}, {pin.y:.3f})")
        return self._show_message(MSG_PIN_CREATED)

    def update_pin(self, pin_id: str, **fields) -> Effects:
        """
        Merges field changes into a pin.

        Changing the linked category without naming a slug clears the slug,
        keeping the link fields both-or-neither.
        """
        if not self.can_edit:
            return []
        index = self._index_of(pin_id)
        if index is None:
            return []

        current = self.pins[index]
        if (
            "linked_category" in fields
            and "linked_slug" not in fields
            and fields["linked_category"] != current.linked_category
        ):
            fields["linked_slug"] = None
        for axis in ("x", "y"):
            if axis in fields:
                fields[axis] = clamp01(fields[axis])

        self.pins[index] = normalize_pin(current.merged(**fields))
        if self.autosave_delay_ms > 0:
            return [StartTimer(TIMER_AUTOSAVE, self.autosave_delay_ms)]
        return []

    def request_delete(self) -> bool:
        """First phase of deletion: ask to confirm removing the selected pin."""
        if not self.can_edit or self.selected_pin is None:
            return False
        self.pending_delete_id = self.selected_id
        return True

    def cancel_delete(self) -> None:
        self.pending_delete_id = None

    def confirm_delete(self) -> Effects:
        """
        Removes the pin awaiting confirmation and saves the resulting list.

        A failed save does not restore the pin; the user can save again.
        """
        pin_id = self.pending_delete_id
        self.pending_delete_id = None
        if not self.can_edit or pin_id is None:
            return []
        index = self._index_of(pin_id)
        if index is None:
            return []

        del self.pins[index]
        self.selected_id = None
        logger.info(f"Deleted pin {pin_id}")
        return self._show_message(MSG_PIN_DELETED) + self.save()

    def save(self) -> Effects:
        """Persists the full pin list (admin + edit mode only)."""
        if not self.can_edit:
            return []
        self.error = None
        return [StopTimer(TIMER_AUTOSAVE)] + self.saver.save(self.pins)

    def on_save_result(
        self, request_id: int, success: bool, error: Optional[str] = None
    ) -> Effects:
        """Applies a persistence outcome; in-memory pins are never touched."""
        is_latest = request_id == self.saver.latest_request_id
        effects = self.saver.on_result(request_id, success, error)
        if not is_latest:
            return effects
        if success:
            return effects + self._show_message(MSG_PINS_SAVED)
        self.error = self.saver.last_error
        return effects

    def dismiss_error(self) -> None:
        self.error = None

    # ------------------------------------------------------------------
    # Messages, timers, navigation
    # ------------------------------------------------------------------

    def _show_message(self, text: str) -> Effects:
        self.message = text
        self._message_token += 1
        return [StartTimer(TIMER_MESSAGE, MESSAGE_DISMISS_MS, self._message_token)]

    def on_timer(self, key: str, token: int) -> Effects:
        """Handles a fired timer started through a StartTimer effect."""
        if key == TIMER_SAVE_REVERT:
            self.saver.on_revert_timer(token)
        elif key == TIMER_MESSAGE:
            if token == self._message_token:
                self.message = None
        elif key == TIMER_CLICK_RELEASE:
            self._suppressor.release(token)
        elif key == TIMER_AUTOSAVE:
            return self.save()
        elif key == TIMER_NAVIGATE:
            prompt = self.nav_prompt
            if prompt is not None and prompt.loading and token == self._nav_token:
                self.nav_prompt = None
                logger.info(f"Navigating to {prompt.href}")
                return [OpenLink(prompt.href)]
        else:
            logger.warning(f"Unknown timer fired: {key}")
        return []

    def confirm_navigation(self) -> Effects:
        """Accepts the navigation prompt; navigation happens after a delay."""
        prompt = self.nav_prompt
        if prompt is None or prompt.loading:
            return []
        self.nav_prompt = replace(prompt, loading=True)
        self._nav_token += 1
        return [StartTimer(TIMER_NAVIGATE, NAVIGATE_DELAY_MS, self._nav_token)]

    def cancel_navigation(self) -> Effects:
        """Dismisses the prompt and aborts a pending deferred navigation."""
        self.nav_prompt = None
        self._nav_token += 1
        return [StopTimer(TIMER_NAVIGATE)]

    # ------------------------------------------------------------------
    # Camera
    # ------------------------------------------------------------------

    def resize_viewport(self, width: float, height: float) -> Camera:
        self.camera.set_viewport_size(ViewportSize(width, height))
        return self.camera.camera

    def on_image_loaded(self, width: int, height: int) -> Camera:
        self.camera.on_image_loaded(ImageSize(width, height))
        return self.camera.camera

    def switch_layer(self, layer: MapLayer) -> bool:
        """
        Selects another image layer. The camera re-centers once the new
        image reports its size.

        Returns:
            bool: True if the layer changed.
        """
        if layer == self.layer:
            return False
        self.layer = layer
        self.camera.invalidate()
        logger.info(f"Switched map layer to {layer.value}")
        return True

    def reset_view(self) -> Camera:
        self.camera.reset_view()
        return self.camera.camera

    def wheel(self, delta_y: float, x: float, y: float) -> Camera:
        return self.camera.wheel(delta_y, x, y)

    def zoom_at(self, scale: float, x: float, y: float) -> Camera:
        return self.camera.zoom_at(scale, x, y)

    # ------------------------------------------------------------------
    # Pointer input
    # ------------------------------------------------------------------

    def hit_test(self, x: float, y: float) -> Optional[str]:
        """
        Returns the id of the pin under a viewport point, or None.

        The nearest pin within the hit radius wins.
        """
        best_id = None
        best_distance = PIN_HIT_RADIUS_PX * PIN_HIT_RADIUS_PX
        for pin in self.pins:
            position = self.pin_screen_position(pin)
            if position is None:
                return None
            distance = distance_squared(x, y, position[0], position[1])
            if distance <= best_distance:
                best_id = pin.id
                best_distance = distance
        return best_id

    def pointer_down(
        self, pointer_id: int, x: float, y: float, primary: bool = True
    ) -> Effects:
        """
        Starts a gesture. A press on a pin starts a pin gesture and never a
        viewport pan.
        """
        if not primary:
            return []
        pin_id = self.hit_test(x, y)
        if pin_id is not None and self.can_edit:
            self.selected_id = pin_id
        target = pin_id if pin_id is not None else VIEWPORT_TARGET
        return self._feed(PointerDown(pointer_id, x, y, target))

    def pointer_move(
        self, pointer_id: int, x: float, y: float, buttons_down: bool = True
    ) -> Effects:
        return self._feed(PointerMove(pointer_id, x, y, buttons_down))

    def pointer_up(self, pointer_id: int, x: float, y: float) -> Effects:
        return self._feed(PointerUp(pointer_id, x, y))

    def pointer_cancel(self, pointer_id: int) -> Effects:
        return self._feed(PointerCancel(pointer_id))

    def _feed(self, event: PointerEvent) -> Effects:
        self._gesture, outcomes = transition(
            self._gesture, event, self.drag_threshold
        )
        effects: Effects = []
        for outcome in outcomes:
            effects.extend(self._apply_outcome(outcome))
        return effects

    def _is_pin_drag(self, target: str) -> bool:
        return target != VIEWPORT_TARGET and self.can_edit

    def _apply_outcome(self, outcome: GestureOutcome) -> Effects:
        if isinstance(outcome, Tap):
            return self.click(outcome.target, outcome.x, outcome.y)

        if isinstance(outcome, DragStarted):
            if self._is_pin_drag(outcome.target):
                self.dragging_id = outcome.target
            else:
                self._pan_active = True
                self.camera.begin_pan()
            return []

        if isinstance(outcome, DragMoved):
            if self.dragging_id == outcome.target:
                self._move_pin(outcome.target, outcome.x, outcome.y)
            elif self._pan_active:
                self.camera.pan(outcome.dx, outcome.dy)
            return []

        if isinstance(outcome, DragEnded):
            effects: Effects = [
                StartTimer(
                    TIMER_CLICK_RELEASE,
                    CLICK_SUPPRESSION_MS,
                    self._suppressor.arm(outcome.target),
                )
            ]
            if self.dragging_id == outcome.target:
                self._move_pin(outcome.target, outcome.x, outcome.y)
                self.dragging_id = None
                effects.extend(self.save())
            elif self._pan_active:
                self.camera.pan(outcome.dx, outcome.dy)
                self.camera.end_pan()
                self._pan_active = False
            return effects

        if isinstance(outcome, GestureAborted):
            self.dragging_id = None
            if self._pan_active:
                self.camera.end_pan()
                self._pan_active = False
        return []

    def _move_pin(self, pin_id: str, x: float, y: float) -> None:
        index = self._index_of(pin_id)
        image = self.camera.image_size
        if index is None or image is None or image.is_empty:
            return
        norm_x, norm_y = client_to_normalized(x, y, self.camera.camera, image)
        self.pins[index] = replace(self.pins[index], x=norm_x, y=norm_y)

    # ------------------------------------------------------------------
    # Clicks
    # ------------------------------------------------------------------

    def click(self, target: str, x: float = 0.0, y: float = 0.0) -> Effects:
        """
        Delivers a click on a pin or on the map background.

        The click produced by the release that ended a drag is swallowed.
        """
        if self._suppressor.consume(target):
            logger.debug(f"Suppressed click on {target} after drag")
            return []
        if target == VIEWPORT_TARGET:
            return self.click_map(x, y)
        return self.click_pin(target)

    def click_map(self, x: float, y: float) -> Effects:
        """In create mode, places a new pin at the clicked point."""
        if not (self.can_edit and self.create_mode):
            return []
        image = self.camera.image_size
        if image is None or image.is_empty:
            return []
        norm_x, norm_y = client_to_normalized(x, y, self.camera.camera, image)
        self.create_mode = False
        return self.create_pin(norm_x, norm_y)

    def click_pin(self, pin_id: str) -> Effects:
        """
        Selects a pin. Outside edit mode a linked pin asks to open its page
        and an unlinked pin shows an informational message.
        """
        pin = self.get_pin(pin_id)
        if pin is None:
            return []
        self.selected_id = pin.id
        if self.is_editing:
            self.create_mode = False
            return []
        if pin.has_link:
            title = (
                self.content.title_for(pin.linked_category, pin.linked_slug)
                or pin.href
            )
            self.nav_prompt = NavigationPrompt(title=title, href=pin.href)
            return []
        logger.info(f"Pin {pin.id} has no linked page")
        return self._show_message(MSG_PIN_UNLINKED)
