"""
Tests for MapViewport: layer loading and mouse/keyboard forwarding.
"""

import pytest
from PySide6.QtCore import QPoint, Qt
from PySide6.QtGui import QColor, QImage

from atlas.app.map_session import MapSession
from atlas.core.map_layers import FALLBACK_IMAGE_SIZE, MapLayer
from atlas.core.map_math import ImageSize
from atlas.gui.widgets.map_viewport import MapViewport


def write_layer(map_dir, layer=MapLayer.CURRENT, width=400, height=300):
    image = QImage(width, height, QImage.Format.Format_RGB32)
    image.fill(QColor("#336699"))
    assert image.save(layer.image_path(str(map_dir)))


@pytest.fixture
def map_dir(tmp_path):
    path = tmp_path / "maps"
    path.mkdir()
    return path


@pytest.fixture
def session(sample_pins):
    return MapSession(initial_pins=sample_pins, default_scale=1.0)


@pytest.fixture
def viewport(qtbot, make_controller, session, map_dir):
    write_layer(map_dir)
    widget = MapViewport(make_controller(session), str(map_dir))
    qtbot.addWidget(widget)
    widget.resize(400, 300)
    widget.show()
    qtbot.waitExposed(widget)
    return widget


def screen_point(session, pin_id):
    x, y = session.pin_screen_position(session.get_pin(pin_id))
    return QPoint(round(x), round(y))


def test_missing_image_keeps_fallback_size(qtbot, make_controller, session, map_dir):
    widget = MapViewport(make_controller(session), str(map_dir))
    qtbot.addWidget(widget)

    assert widget.pixmap is None
    assert session.camera.image_size == FALLBACK_IMAGE_SIZE
    assert session.camera.image_size_is_provisional


def test_layer_image_reports_natural_size(viewport, session):
    assert viewport.pixmap is not None
    assert session.camera.image_size == ImageSize(400, 300)
    assert not session.camera.image_size_is_provisional


def test_pins_have_screen_positions(viewport, session):
    assert session.camera.viewport.is_laid_out
    for pin in session.pins:
        assert session.pin_screen_position(pin) is not None


def test_click_linked_pin_prompts_navigation(qtbot, viewport, session):
    qtbot.mouseClick(
        viewport, Qt.MouseButton.LeftButton, pos=screen_point(session, "harbor")
    )

    assert session.selected_id == "harbor"
    assert session.nav_prompt is not None
    assert session.nav_prompt.href == "/lore/places/harbor"


def test_click_unlinked_pin_shows_message(qtbot, viewport, session):
    qtbot.mouseClick(
        viewport, Qt.MouseButton.LeftButton, pos=screen_point(session, "ruins")
    )

    assert session.nav_prompt is None
    assert session.message == "This pin doesn't have a linked page yet."


def test_right_click_ignored(qtbot, viewport, session):
    qtbot.mouseClick(
        viewport, Qt.MouseButton.RightButton, pos=screen_point(session, "harbor")
    )
    assert session.nav_prompt is None


def test_escape_cancels_drag_without_saving(qtbot, viewport, session, api_client):
    session.on_admin_status(True)
    session.set_editing(True)
    start = screen_point(session, "ruins")

    viewport.controller.apply(session.pointer_down, 0, start.x(), start.y())
    viewport.controller.apply(session.pointer_move, 0, start.x() + 40, start.y() + 40)
    assert session.dragging_id == "ruins"
    assert viewport.cursor().shape() == Qt.CursorShape.ClosedHandCursor

    qtbot.keyClick(viewport, Qt.Key.Key_Escape)

    assert session.dragging_id is None
    api_client.save_pins.assert_not_called()
    assert viewport.cursor().shape() == Qt.CursorShape.OpenHandCursor


def test_create_mode_cursor(viewport, session):
    session.on_admin_status(True)
    session.set_editing(True)
    viewport.controller.apply(session.toggle_create_mode)
    assert viewport.cursor().shape() == Qt.CursorShape.CrossCursor


def test_switch_to_missing_layer(viewport, session):
    viewport.switch_layer(MapLayer.POLITICAL)

    assert session.layer is MapLayer.POLITICAL
    assert viewport.pixmap is None


def test_switch_layer_recenters(viewport, session, map_dir):
    write_layer(map_dir, MapLayer.BIOME, width=800, height=600)

    viewport.switch_layer(MapLayer.BIOME)

    assert viewport.pixmap is not None
    assert session.camera.image_size == ImageSize(800, 600)
