"""
Map Viewport Module.

Provides the MapViewport widget: paints the current map layer through the
session camera, draws the pins on top and forwards mouse, wheel and resize
input to the MapSession through its SessionController.
"""

import logging
import os
from typing import Optional

from PySide6.QtCore import QPointF, QSize, Qt
from PySide6.QtGui import (
    QBrush,
    QColor,
    QFont,
    QHideEvent,
    QKeyEvent,
    QMouseEvent,
    QPainter,
    QPaintEvent,
    QPen,
    QPixmap,
    QResizeEvent,
    QWheelEvent,
)
from PySide6.QtWidgets import QWidget

from atlas.app.constants import PIN_RADIUS_PX
from atlas.app.session_controller import SessionController
from atlas.core.map_layers import FALLBACK_IMAGE_SIZE, MapLayer

logger = logging.getLogger(__name__)

MOUSE_POINTER_ID = 0

BACKGROUND_COLOR = QColor("#1b1f24")
PIN_COLOR = QColor("#e0a526")
PIN_LINKED_COLOR = QColor("#3aa0ff")
PIN_SELECTED_COLOR = QColor("#ffffff")
PIN_OUTLINE_COLOR = QColor("#111111")
LABEL_COLOR = QColor("#f0f0f0")


class MapViewport(QWidget):
    """
    Zoomable, pannable view of one map layer with its pins.

    All state lives in the session; the widget only translates Qt events
    into session calls and repaints on ``state_changed``.
    """

    def __init__(
        self,
        controller: SessionController,
        map_dir: str,
        parent: Optional[QWidget] = None,
    ) -> None:
        """
        Initializes the MapViewport.

        Args:
            controller: Controller of the session being displayed.
            map_dir: Directory holding the ``world-map-*.png`` layer images.
            parent: Parent widget.
        """
        super().__init__(parent)
        self.controller = controller
        self.session = controller.session
        self.map_dir = map_dir
        self.pixmap: Optional[QPixmap] = None

        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setCursor(Qt.CursorShape.OpenHandCursor)

        self.session.camera.set_provisional_image_size(FALLBACK_IMAGE_SIZE)
        self.controller.state_changed.connect(self._on_state_changed)
        self.load_layer(self.session.layer)

    def minimumSizeHint(self) -> QSize:
        return QSize(200, 150)

    def sizeHint(self) -> QSize:
        return QSize(960, 640)

    # ------------------------------------------------------------------
    # Layers
    # ------------------------------------------------------------------

    def load_layer(self, layer: MapLayer) -> bool:
        """
        Loads the image of a layer and reports its natural size.

        Returns:
            bool: True if the image could be loaded.
        """
        path = layer.image_path(self.map_dir)
        pixmap = QPixmap(path) if os.path.exists(path) else QPixmap()
        if pixmap.isNull():
            logger.warning(f"Map image not found or unreadable: {path}")
            self.pixmap = None
            self.update()
            return False

        self.pixmap = pixmap
        self.controller.apply(
            self.session.on_image_loaded, pixmap.width(), pixmap.height()
        )
        logger.info(f"Loaded map layer {layer.value} ({pixmap.width()}x{pixmap.height()})")
        return True

    def switch_layer(self, layer: MapLayer) -> None:
        if self.controller.apply(self.session.switch_layer, layer):
            self.load_layer(layer)

    def _on_state_changed(self) -> None:
        if self.session.is_panning or self.session.dragging_id:
            self.setCursor(Qt.CursorShape.ClosedHandCursor)
        elif self.session.create_mode:
            self.setCursor(Qt.CursorShape.CrossCursor)
        else:
            self.setCursor(Qt.CursorShape.OpenHandCursor)
        self.update()

    # ------------------------------------------------------------------
    # Painting
    # ------------------------------------------------------------------

    def paintEvent(self, event: QPaintEvent) -> None:
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.fillRect(self.rect(), BACKGROUND_COLOR)

        camera = self.session.camera.camera
        if self.pixmap is not None:
            painter.save()
            painter.translate(camera.tx, camera.ty)
            painter.scale(camera.scale, camera.scale)
            painter.drawPixmap(0, 0, self.pixmap)
            painter.restore()

        self._paint_pins(painter)
        painter.end()

    def _paint_pins(self, painter: QPainter) -> None:
        font = QFont(painter.font())
        font.setPointSize(9)
        painter.setFont(font)

        # Draw back to front so the first pin in the list ends up on top.
        for pin in reversed(self.session.pins):
            position = self.session.pin_screen_position(pin)
            if position is None:
                continue
            center = QPointF(position[0], position[1])
            selected = pin.id == self.session.selected_id

            fill = PIN_LINKED_COLOR if pin.has_link else PIN_COLOR
            radius = PIN_RADIUS_PX + (2 if selected else 0)
            painter.setPen(
                QPen(PIN_SELECTED_COLOR if selected else PIN_OUTLINE_COLOR, 2)
            )
            painter.setBrush(QBrush(fill))
            painter.drawEllipse(center, radius, radius)

            if selected or self.session.is_editing:
                painter.setPen(LABEL_COLOR)
                painter.drawText(center + QPointF(radius + 4, 4), pin.title)

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def resizeEvent(self, event: QResizeEvent) -> None:
        super().resizeEvent(event)
        size = event.size()
        self.controller.apply(self.session.resize_viewport, size.width(), size.height())

    def mousePressEvent(self, event: QMouseEvent) -> None:
        if event.button() != Qt.MouseButton.LeftButton:
            super().mousePressEvent(event)
            return
        pos = event.position()
        self.controller.apply(
            self.session.pointer_down, MOUSE_POINTER_ID, pos.x(), pos.y()
        )
        event.accept()

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        pos = event.position()
        buttons_down = bool(event.buttons() & Qt.MouseButton.LeftButton)
        self.controller.apply(
            self.session.pointer_move, MOUSE_POINTER_ID, pos.x(), pos.y(), buttons_down
        )
        event.accept()

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        if event.button() != Qt.MouseButton.LeftButton:
            super().mouseReleaseEvent(event)
            return
        pos = event.position()
        self.controller.apply(self.session.pointer_up, MOUSE_POINTER_ID, pos.x(), pos.y())
        event.accept()

    def wheelEvent(self, event: QWheelEvent) -> None:
        pos = event.position()
        self.controller.apply(
            self.session.wheel, event.angleDelta().y(), pos.x(), pos.y()
        )
        event.accept()

    def keyPressEvent(self, event: QKeyEvent) -> None:
        if event.key() == Qt.Key.Key_Escape:
            self.cancel_gesture()
            event.accept()
            return
        super().keyPressEvent(event)

    def hideEvent(self, event: QHideEvent) -> None:
        self.cancel_gesture()
        super().hideEvent(event)

    def cancel_gesture(self) -> None:
        """Aborts any press or drag in progress without a click or save."""
        self.controller.apply(self.session.pointer_cancel, MOUSE_POINTER_ID)
