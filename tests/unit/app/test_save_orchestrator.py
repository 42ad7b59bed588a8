"""Unit tests for the save-state machine."""

from atlas.app.constants import MSG_SAVE_FAILED, SAVED_STATE_REVERT_MS, TIMER_SAVE_REVERT
from atlas.app.effects import PersistPins, StartTimer, StopTimer
from atlas.app.save_orchestrator import SaveOrchestrator, SaveState
from atlas.core.pins import Pin

PINS = [Pin(id="a", x=0.1, y=0.1), Pin(id="b", x=0.2, y=0.2)]


def test_initial_state_idle():
    saver = SaveOrchestrator()
    assert saver.state is SaveState.IDLE
    assert saver.last_error is None


def test_save_emits_single_persist_with_snapshot():
    saver = SaveOrchestrator()
    pins = list(PINS)
    effects = saver.save(pins)

    assert saver.state is SaveState.SAVING
    assert effects[0] == StopTimer(TIMER_SAVE_REVERT)
    persists = [e for e in effects if isinstance(e, PersistPins)]
    assert len(persists) == 1
    assert persists[0].pins == tuple(PINS)

    # Later mutation of the caller's list does not leak into the snapshot
    pins.clear()
    assert len(persists[0].pins) == 2


def test_success_then_revert_to_idle():
    saver = SaveOrchestrator()
    request = saver.save(PINS)[1].request_id
    effects = saver.on_result(request, True)

    assert saver.state is SaveState.SAVED
    assert effects == [StartTimer(TIMER_SAVE_REVERT, SAVED_STATE_REVERT_MS, request)]

    saver.on_revert_timer(request)
    assert saver.state is SaveState.IDLE


def test_failure_is_sticky_until_next_save():
    saver = SaveOrchestrator()
    request = saver.save(PINS)[1].request_id
    assert saver.on_result(request, False, "boom") == []
    assert saver.state is SaveState.ERROR
    assert saver.last_error == "boom"

    saver.on_revert_timer(request)
    assert saver.state is SaveState.ERROR

    saver.save(PINS)
    assert saver.state is SaveState.SAVING
    assert saver.last_error is None


def test_failure_without_reason_has_default_message():
    saver = SaveOrchestrator()
    request = saver.save(PINS)[1].request_id
    saver.on_result(request, False)
    assert saver.last_error == MSG_SAVE_FAILED


def test_stale_result_ignored():
    saver = SaveOrchestrator()
    first = saver.save(PINS)[1].request_id
    second = saver.save(PINS)[1].request_id

    assert saver.on_result(first, False, "old failure") == []
    assert saver.state is SaveState.SAVING

    saver.on_result(second, True)
    assert saver.state is SaveState.SAVED


def test_old_revert_timer_does_not_reset_newer_save():
    saver = SaveOrchestrator()
    first = saver.save(PINS)[1].request_id
    saver.on_result(first, True)
    second = saver.save(PINS)[1].request_id
    saver.on_result(second, True)

    saver.on_revert_timer(first)
    assert saver.state is SaveState.SAVED


def test_module_compiles_without_warnings():
    import warnings
    from pathlib import Path

    from atlas.app import save_orchestrator

    source = Path(save_orchestrator.__file__).read_text(encoding="utf-8")
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        compile(source, save_orchestrator.__file__, "exec")
