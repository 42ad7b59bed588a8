"""
Pin Editor Panel Module.

Side panel showing the selected pin and, in edit mode, the form to change
it. Field edits go straight to the session; delete confirmation is left to
the window through ``delete_requested``.
"""

import logging
from typing import Optional

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QComboBox,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPlainTextEdit,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from atlas.app.save_orchestrator import SaveState
from atlas.app.session_controller import SessionController

logger = logging.getLogger(__name__)

SAVE_STATE_LABELS = {
    SaveState.IDLE: "",
    SaveState.SAVING: "Saving…",
    SaveState.SAVED: "Saved",
    SaveState.ERROR: "Save failed",
}


class PinEditorPanel(QWidget):
    """
    Form for the selected pin plus the edit-mode toolbar.

    Signals:
        delete_requested: The user asked to delete the selected pin.
    """

    delete_requested = Signal()

    def __init__(
        self, controller: SessionController, parent: Optional[QWidget] = None
    ) -> None:
        super().__init__(parent)
        self.controller = controller
        self.session = controller.session
        self._refreshing = False

        layout = QVBoxLayout(self)

        # Toolbar
        toolbar = QHBoxLayout()
        self.edit_button = QPushButton("Edit pins")
        self.edit_button.setCheckable(True)
        self.edit_button.toggled.connect(self._on_edit_toggled)
        self.create_button = QPushButton("New pin")
        self.create_button.setCheckable(True)
        self.create_button.setToolTip("Click on the map to place a new pin")
        self.create_button.toggled.connect(self._on_create_toggled)
        self.delete_button = QPushButton("Delete")
        self.delete_button.clicked.connect(self.delete_requested.emit)
        self.save_button = QPushButton("Save")
        self.save_button.clicked.connect(lambda: self.controller.apply(self.session.save))
        for button in (
            self.edit_button,
            self.create_button,
            self.delete_button,
            self.save_button,
        ):
            toolbar.addWidget(button)
        layout.addLayout(toolbar)

        # Form
        form = QFormLayout()
        self.title_edit = QLineEdit()
        self.title_edit.editingFinished.connect(
            lambda: self._update_field("title", self.title_edit.text())
        )
        self.subtitle_edit = QLineEdit()
        self.subtitle_edit.editingFinished.connect(
            lambda: self._update_field("subtitle", self.subtitle_edit.text())
        )
        self.description_edit = QPlainTextEdit()
        self.description_edit.setMaximumHeight(120)
        self.description_edit.textChanged.connect(
            lambda: self._update_field(
                "description", self.description_edit.toPlainText()
            )
        )
        self.category_combo = QComboBox()
        self.category_combo.currentIndexChanged.connect(self._on_category_changed)
        self.slug_combo = QComboBox()
        self.slug_combo.currentIndexChanged.connect(self._on_slug_changed)
        self.position_label = QLabel("-")

        form.addRow("Title:", self.title_edit)
        form.addRow("Subtitle:", self.subtitle_edit)
        form.addRow("Description:", self.description_edit)
        form.addRow("Category:", self.category_combo)
        form.addRow("Page:", self.slug_combo)
        form.addRow("Position:", self.position_label)
        layout.addLayout(form)

        # Status
        self.zoom_label = QLabel()
        self.save_state_label = QLabel()
        self.message_label = QLabel()
        self.message_label.setWordWrap(True)
        self.error_label = QLabel()
        self.error_label.setWordWrap(True)
        self.error_label.setStyleSheet("color: #e05050;")
        status = QHBoxLayout()
        status.addWidget(self.zoom_label)
        status.addStretch()
        status.addWidget(self.save_state_label)
        layout.addLayout(status)
        self.dismiss_error_button = QPushButton("Dismiss")
        self.dismiss_error_button.clicked.connect(
            lambda: self.controller.apply(self.session.dismiss_error)
        )
        error_row = QHBoxLayout()
        error_row.addWidget(self.error_label, 1)
        error_row.addWidget(self.dismiss_error_button)
        layout.addWidget(self.message_label)
        layout.addLayout(error_row)
        layout.addStretch()

        self.controller.state_changed.connect(self.refresh)
        self.refresh()

    # ------------------------------------------------------------------
    # Session -> widgets
    # ------------------------------------------------------------------

    def refresh(self) -> None:
        """Mirrors the session state into the widgets."""
        self._refreshing = True
        try:
            session = self.session
            pin = session.selected_pin
            can_edit = session.can_edit

            self.edit_button.setVisible(session.is_admin)
            self.edit_button.setChecked(session.is_editing)
            self.create_button.setEnabled(can_edit)
            self.create_button.setChecked(session.create_mode)
            self.delete_button.setEnabled(can_edit and pin is not None)
            self.save_button.setEnabled(can_edit and not session.saver.is_saving)

            for widget in (
                self.title_edit,
                self.subtitle_edit,
                self.description_edit,
                self.category_combo,
                self.slug_combo,
            ):
                widget.setEnabled(can_edit and pin is not None)

            self._set_line(self.title_edit, pin.title if pin else "")
            self._set_line(self.subtitle_edit, (pin.subtitle or "") if pin else "")
            description = (pin.description or "") if pin else ""
            if (
                self.description_edit.toPlainText() != description
                and not self.description_edit.hasFocus()
            ):
                self.description_edit.setPlainText(description)

            category = pin.linked_category if pin else None
            slug = pin.linked_slug if pin else None
            self._fill_combo(self.category_combo, self.session.content.categories(), category)
            self._fill_combo(
                self.slug_combo,
                [e.slug for e in self.session.content.entries_in(category)],
                slug,
                labels=[e.title for e in self.session.content.entries_in(category)],
            )

            self.position_label.setText(
                f"{pin.x:.3f}, {pin.y:.3f}" if pin else "-"
            )
            self.zoom_label.setText(f"Zoom {session.camera.camera.scale * 100:.0f}%")
            self.save_state_label.setText(SAVE_STATE_LABELS[session.save_state])
            self.message_label.setText(session.message or "")
            self.error_label.setText(session.error or "")
            self.dismiss_error_button.setVisible(bool(session.error))
        finally:
            self._refreshing = False

    @staticmethod
    def _set_line(edit: QLineEdit, text: str) -> None:
        if edit.text() != text and not edit.hasFocus():
            edit.setText(text)

    @staticmethod
    def _fill_combo(combo: QComboBox, values, current: Optional[str], labels=None) -> None:
        combo.blockSignals(True)
        combo.clear()
        combo.addItem("(none)", None)
        for index, value in enumerate(values):
            combo.addItem(labels[index] if labels else value, value)
        if current is not None and current not in values:
            # Keep links to entries the content lookup does not know about.
            combo.addItem(current, current)
        combo.setCurrentIndex(max(0, combo.findData(current)) if current else 0)
        combo.blockSignals(False)

    # ------------------------------------------------------------------
    # Widgets -> session
    # ------------------------------------------------------------------

    def _update_field(self, name: str, value) -> None:
        pin = self.session.selected_pin
        if self._refreshing or pin is None:
            return
        current = getattr(pin, name)
        if current == value or (current is None and not value):
            return
        self.controller.apply(self.session.update_pin, pin.id, **{name: value})

    def _on_category_changed(self, index: int) -> None:
        self._update_field("linked_category", self.category_combo.itemData(index))

    def _on_slug_changed(self, index: int) -> None:
        self._update_field("linked_slug", self.slug_combo.itemData(index))

    def _on_edit_toggled(self, checked: bool) -> None:
        if not self._refreshing:
            self.controller.apply(self.session.set_editing, checked)

    def _on_create_toggled(self, checked: bool) -> None:
        if not self._refreshing and checked != self.session.create_mode:
            self.controller.apply(self.session.toggle_create_mode)

    def keyPressEvent(self, event) -> None:
        if event.key() == Qt.Key.Key_Delete and self.session.can_edit:
            self.delete_requested.emit()
            return
        super().keyPressEvent(event)
