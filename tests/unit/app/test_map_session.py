"""Unit tests for MapSession: pin editing, gestures, navigation and saving."""

import pytest

from atlas.app.constants import (
    MESSAGE_DISMISS_MS,
    MSG_PIN_CREATED,
    MSG_PIN_UNLINKED,
    NAVIGATE_DELAY_MS,
    TIMER_AUTOSAVE,
    TIMER_CLICK_RELEASE,
    TIMER_MESSAGE,
    TIMER_NAVIGATE,
)
from atlas.app.effects import FetchAdminStatus, OpenLink, PersistPins, StartTimer, StopTimer
from atlas.app.map_session import MapSession
from atlas.app.save_orchestrator import SaveState
from atlas.core.content import ContentLookup, EntrySummary
from atlas.core.map_layers import MapLayer
from atlas.core.pins import NEW_PIN_TITLE, Pin, parse_pins, pins_to_payload


def persists(effects):
    return [e for e in effects if isinstance(e, PersistPins)]


def timer(effects, key):
    matches = [e for e in effects if isinstance(e, StartTimer) and e.key == key]
    return matches[0] if matches else None


def make_session(pins=(), admin=True, editing=True, **kwargs):
    """
    Session with a 1000x1000 image shown at scale 1 in a 1000x1000
    viewport, so normalized (0.2, 0.2) sits at viewport (200, 200).
    """
    kwargs.setdefault("default_scale", 1.0)
    session = MapSession(initial_pins=pins, **kwargs)
    session.resize_viewport(1000, 1000)
    session.on_image_loaded(1000, 1000)
    if admin:
        session.on_admin_status(True)
        if editing:
            assert session.set_editing(True)
    return session


@pytest.fixture
def pin_a():
    return Pin(id="a", x=0.2, y=0.2, title="Alpha")


@pytest.fixture
def linked_pin():
    return Pin(
        id="l",
        x=0.5,
        y=0.5,
        title="Harbor pin",
        linked_category="places",
        linked_slug="harbor",
    )


class TestLifecycle:
    def test_mount_requests_admin_status(self):
        session = MapSession()
        assert session.mount() == [FetchAdminStatus()]
        assert not session.is_admin

    def test_first_pin_selected_initially(self, pin_a):
        session = MapSession(initial_pins=[pin_a])
        assert session.selected_id == "a"

    def test_load_pins_keeps_valid_selection(self, pin_a):
        session = MapSession()
        session.load_pins([Pin(id="z", x=0, y=0), pin_a])
        assert session.selected_id == "z"
        session.select("a")
        session.load_pins([pin_a])
        assert session.selected_id == "a"

    def test_camera_centered(self):
        session = make_session()
        camera = session.camera.camera
        assert (camera.scale, camera.tx, camera.ty) == (1.0, 0.0, 0.0)


class TestEditMode:
    def test_editing_requires_admin(self):
        session = make_session(admin=False)
        assert session.set_editing(True) is False
        assert not session.can_edit

    def test_logout_exits_edit_mode(self):
        session = make_session()
        session.toggle_create_mode()
        session.logout()
        assert not session.is_editing
        assert not session.create_mode
        assert not session.is_admin

    def test_status_failure_exits_edit_mode(self):
        session = make_session()
        session.on_admin_status(None)
        assert not session.can_edit


class TestCreate:
    def test_create_at_center(self):
        """New pin at (0.5, 0.5) gets the default title, is first and selected."""
        session = make_session(pins=[Pin(id="old", x=0.1, y=0.1)])
        effects = session.create_pin(0.5, 0.5)

        pin = session.pins[0]
        assert (pin.x, pin.y) == (0.5, 0.5)
        assert pin.title == NEW_PIN_TITLE
        assert session.selected_id == pin.id
        assert session.message == MSG_PIN_CREATED
        assert timer(effects, TIMER_MESSAGE).delay_ms == MESSAGE_DISMISS_MS

    def test_saving_new_pin_persists_same_id(self):
        session = make_session()
        session.create_pin(0.5, 0.5)
        new_id = session.pins[0].id

        (persist,) = persists(session.save())
        assert [p.id for p in persist.pins] == [new_id]

        # The server validates and echoes the list back unchanged
        echoed = parse_pins(pins_to_payload(persist.pins)["pins"])
        assert echoed[0].id == new_id

        session.on_save_result(persist.request_id, True)
        assert session.save_state is SaveState.SAVED

    def test_create_mode_click_places_pin(self):
        session = make_session()
        assert session.toggle_create_mode()
        effects = session.pointer_down(1, 300, 400)
        effects += session.pointer_up(1, 300, 400)

        assert len(session.pins) == 1
        assert (session.pins[0].x, session.pins[0].y) == (0.3, 0.4)
        assert not session.create_mode
        assert persists(effects) == []

    def test_map_click_without_create_mode_does_nothing(self):
        session = make_session()
        session.pointer_down(1, 300, 400)
        session.pointer_up(1, 300, 400)
        assert session.pins == []

    def test_message_dismissed_by_timer(self):
        session = make_session()
        effects = session.create_pin(0.5, 0.5)
        session.on_timer(TIMER_MESSAGE, timer(effects, TIMER_MESSAGE).token)
        assert session.message is None

    def test_older_message_timer_keeps_newer_message(self):
        session = make_session()
        first = timer(session.create_pin(0.1, 0.1), TIMER_MESSAGE).token
        session.create_pin(0.2, 0.2)
        session.on_timer(TIMER_MESSAGE, first)
        assert session.message == MSG_PIN_CREATED


class TestUpdate:
    def test_merge_fields(self, pin_a):
        session = make_session([pin_a])
        session.update_pin("a", title="Beta", subtitle=" Port ")
        pin = session.get_pin("a")
        assert pin.title == "Beta"
        assert pin.subtitle == "Port"

    def test_blank_title_becomes_untitled(self, pin_a):
        session = make_session([pin_a])
        session.update_pin("a", title="   ")
        assert session.get_pin("a").title == "Untitled"

    def test_unknown_id_is_noop(self, pin_a):
        session = make_session([pin_a])
        assert session.update_pin("missing", title="X") == []
        assert session.pins == [pin_a]

    def test_category_change_clears_slug(self, linked_pin):
        session = make_session([linked_pin])
        session.update_pin("l", linked_category="people")
        pin = session.get_pin("l")
        assert pin.linked_category == "people"
        assert pin.linked_slug is None

    def test_coordinates_clamped(self, pin_a):
        session = make_session([pin_a])
        session.update_pin("a", x=4.0, y=float("nan"))
        assert (session.get_pin("a").x, session.get_pin("a").y) == (1.0, 0.5)

    def test_autosave_debounce(self, pin_a):
        session = make_session([pin_a], autosave_delay_ms=800)
        effects = session.update_pin("a", title="Beta")
        assert effects == [StartTimer(TIMER_AUTOSAVE, 800)]

        effects = session.on_timer(TIMER_AUTOSAVE, 0)
        (persist,) = persists(effects)
        assert persist.pins[0].title == "Beta"

    def test_no_autosave_by_default(self, pin_a):
        session = make_session([pin_a])
        assert session.update_pin("a", title="Beta") == []


class TestDelete:
    def test_confirm_removes_and_saves(self):
        """Deleting "abc" drops it from memory and from the persisted payload."""
        keep = Pin(id="keep", x=0.9, y=0.9)
        session = make_session([Pin(id="abc", x=0.1, y=0.1), keep])
        session.select("abc")

        assert session.request_delete()
        assert session.pending_delete_id == "abc"
        effects = session.confirm_delete()

        assert session.get_pin("abc") is None
        assert session.selected_id is None
        (persist,) = persists(effects)
        assert [p.id for p in persist.pins] == ["keep"]

    def test_cancel_keeps_pin(self, pin_a):
        session = make_session([pin_a])
        session.request_delete()
        session.cancel_delete()
        assert session.confirm_delete() == []
        assert session.pins == [pin_a]

    def test_failed_save_after_delete_does_not_restore(self, pin_a):
        session = make_session([pin_a])
        session.request_delete()
        (persist,) = persists(session.confirm_delete())
        session.on_save_result(persist.request_id, False, "Server down")
        assert session.pins == []
        assert session.save_state is SaveState.ERROR


class TestSaveFailure:
    def test_error_state_and_pins_unchanged(self, pin_a):
        session = make_session([pin_a])
        session.update_pin("a", title="Edited")
        before = list(session.pins)

        (persist,) = persists(session.save())
        assert session.save_state is SaveState.SAVING
        session.on_save_result(persist.request_id, False, "Request failed (500).")

        assert session.save_state is SaveState.ERROR
        assert session.error == "Request failed (500)."
        assert session.pins == before
        assert session.is_editing

    def test_next_save_clears_error(self, pin_a):
        session = make_session([pin_a])
        (persist,) = persists(session.save())
        session.on_save_result(persist.request_id, False, "boom")
        session.save()
        assert session.error is None
        assert session.save_state is SaveState.SAVING

    def test_save_stops_pending_autosave(self, pin_a):
        session = make_session([pin_a], autosave_delay_ms=500)
        assert StopTimer(TIMER_AUTOSAVE) in session.save()


class TestNoAdmin:
    @pytest.mark.parametrize("editing", [False, True])
    def test_mutations_are_noops(self, pin_a, editing):
        """Without admin capability nothing changes the pins."""
        session = make_session([pin_a], admin=False)
        if editing:
            session.set_editing(True)
        before = list(session.pins)

        assert session.create_pin(0.5, 0.5) == []
        assert session.update_pin("a", title="Hacked") == []
        assert session.request_delete() is False
        assert session.confirm_delete() == []
        assert session.save() == []
        assert session.toggle_create_mode() is False

        assert session.pins == before
        assert session.save_state is SaveState.IDLE

    def test_admin_without_edit_mode_is_readonly(self, pin_a):
        session = make_session([pin_a], editing=False)
        assert session.create_pin(0.5, 0.5) == []
        assert session.save() == []
        assert session.pins == [pin_a]


class TestDrag:
    def test_drag_pin_updates_position_and_saves_once(self, pin_a):
        """Dragging (0.2, 0.2) to (0.8, 0.8) stores the final position, one save."""
        session = make_session([pin_a])
        all_effects = session.pointer_down(1, 200, 200)
        assert session.selected_id == "a"

        for step in range(1, 7):
            position = 200 + step * 100
            effects = session.pointer_move(1, position, position)
            assert persists(effects) == []
            all_effects += effects
        assert session.dragging_id == "a"

        effects = session.pointer_up(1, 800, 800)
        all_effects += effects

        pin = session.get_pin("a")
        assert pin.x == pytest.approx(0.8)
        assert pin.y == pytest.approx(0.8)
        assert len(persists(all_effects)) == 1
        assert persists(effects)[0].pins[0].x == pytest.approx(0.8)
        assert session.dragging_id is None

    def test_press_on_pin_never_pans(self, pin_a):
        session = make_session([pin_a])
        camera = session.camera.camera
        session.pointer_down(1, 200, 200)
        session.pointer_move(1, 300, 300)
        assert not session.is_panning
        assert session.camera.camera == camera

    def test_click_after_drag_suppressed_until_release(self, pin_a):
        session = make_session([pin_a])
        session.pointer_down(1, 200, 200)
        session.pointer_move(1, 260, 260)
        effects = session.pointer_up(1, 260, 260)
        release = timer(effects, TIMER_CLICK_RELEASE)
        assert release is not None
        assert release.delay_ms == 0

        # The synthetic click that follows the release is swallowed
        session.select(None)
        assert session.click("a") == []
        assert session.selected_id is None

    def test_suppression_released_by_timer(self, pin_a):
        session = make_session([pin_a], editing=False)
        session.pointer_down(1, 200, 200)
        session.pointer_move(1, 260, 260)
        effects = session.pointer_up(1, 260, 260)
        session.on_timer(TIMER_CLICK_RELEASE, timer(effects, TIMER_CLICK_RELEASE).token)

        session.click("a")
        assert session.message == MSG_PIN_UNLINKED

    def test_cancel_mid_drag_no_save_no_click(self, pin_a):
        session = make_session([pin_a])
        session.pointer_down(1, 200, 200)
        session.pointer_move(1, 400, 400)
        effects = session.pointer_cancel(1)
        assert effects == []
        assert session.dragging_id is None
        assert session.save_state is SaveState.IDLE

    def test_tap_on_pin_in_edit_mode_selects(self, pin_a):
        session = make_session([pin_a, Pin(id="b", x=0.9, y=0.9)])
        session.select("b")
        session.pointer_down(1, 201, 199)
        effects = session.pointer_up(1, 201, 199)
        assert session.selected_id == "a"
        assert persists(effects) == []
        assert session.nav_prompt is None


class TestPan:
    def test_background_drag_pans(self):
        session = make_session(default_scale=2.0)
        start = session.camera.camera
        session.pointer_down(1, 500, 500)
        session.pointer_move(1, 450, 480)
        assert session.is_panning
        session.pointer_up(1, 400, 460)

        camera = session.camera.camera
        assert camera.tx == pytest.approx(start.tx - 100)
        assert camera.ty == pytest.approx(start.ty - 40)
        assert not session.is_panning

    def test_viewer_drag_on_pin_pans(self):
        pin = Pin(id="c", x=0.5, y=0.5)
        session = make_session([pin], admin=False, default_scale=2.0)
        start = session.camera.camera
        pos = session.pin_screen_position(pin)
        session.pointer_down(1, *pos)
        session.pointer_move(1, pos[0] + 50, pos[1])
        session.pointer_up(1, pos[0] + 50, pos[1])
        assert session.get_pin("c") == pin
        assert session.camera.camera.tx == pytest.approx(start.tx + 50)

    def test_wheel_zooms(self):
        session = make_session()
        session.wheel(120, 500, 500)
        assert session.camera.camera.scale > 1.0


class TestNavigation:
    def test_linked_pin_prompts_with_entry_title(self, linked_pin):
        content = ContentLookup([EntrySummary("places", "harbor", "The Harbor")])
        session = make_session([linked_pin], admin=False, content=content)
        session.pointer_down(1, 500, 500)
        session.pointer_up(1, 500, 500)

        assert session.nav_prompt.title == "The Harbor"
        assert session.nav_prompt.href == "/lore/places/harbor"

    def test_title_falls_back_to_href(self, linked_pin):
        session = make_session([linked_pin], admin=False)
        session.click("l")
        assert session.nav_prompt.title == "/lore/places/harbor"

    def test_confirm_navigates_after_delay(self, linked_pin):
        session = make_session([linked_pin], admin=False)
        session.click("l")
        effects = session.confirm_navigation()
        start = timer(effects, TIMER_NAVIGATE)
        assert start.delay_ms == NAVIGATE_DELAY_MS
        assert session.nav_prompt.loading

        assert session.on_timer(TIMER_NAVIGATE, start.token) == [
            OpenLink("/lore/places/harbor")
        ]
        assert session.nav_prompt is None

    def test_cancel_before_delay_aborts(self, linked_pin):
        session = make_session([linked_pin], admin=False)
        session.click("l")
        start = timer(session.confirm_navigation(), TIMER_NAVIGATE)
        assert session.cancel_navigation() == [StopTimer(TIMER_NAVIGATE)]
        assert session.on_timer(TIMER_NAVIGATE, start.token) == []

    def test_unlinked_pin_shows_message(self, pin_a):
        session = make_session([pin_a], admin=False)
        effects = session.click("a")
        assert session.nav_prompt is None
        assert session.message == MSG_PIN_UNLINKED
        assert timer(effects, TIMER_MESSAGE) is not None

    def test_edit_mode_click_does_not_navigate(self, linked_pin):
        session = make_session([linked_pin])
        session.click("l")
        assert session.nav_prompt is None


class TestLayers:
    def test_switch_layer_recenters_on_load(self):
        session = make_session()
        session.zoom_at(3.0, 0, 0)
        assert session.switch_layer(MapLayer.BIOME)
        session.on_image_loaded(1000, 1000)
        assert session.camera.camera.scale == 1.0

    def test_same_layer_is_noop(self):
        session = make_session()
        assert session.switch_layer(MapLayer.CURRENT) is False


def test_hit_test_picks_nearest(pin_a):
    near = Pin(id="near", x=0.205, y=0.2)
    session = make_session([pin_a, near])
    assert session.hit_test(206, 200) == "near"
    assert session.hit_test(199, 200) == "a"
    assert session.hit_test(600, 600) is None
