"""
Map Window Module.

Top-level window of the map client: the viewport in the centre, the pin
editor docked on the right, and a toolbar for layers, admin login and view
reset. Confirmation dialogs for deleting a pin and opening a linked page
live here.
"""

import logging
from typing import Optional

from PySide6.QtCore import QSettings, Qt, QUrl, Slot
from PySide6.QtGui import QAction, QCloseEvent, QDesktopServices
from PySide6.QtWidgets import (
    QComboBox,
    QDockWidget,
    QInputDialog,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QWidget,
)

from atlas.app.config import ClientConfig
from atlas.app.constants import (
    DEFAULT_WINDOW_HEIGHT,
    DEFAULT_WINDOW_WIDTH,
    WINDOW_SETTINGS_APP,
    WINDOW_SETTINGS_KEY,
    WINDOW_TITLE,
)
from atlas.app.map_session import MapSession
from atlas.app.session_controller import SessionController
from atlas.core.map_layers import MapLayer
from atlas.gui.widgets.map_viewport import MapViewport
from atlas.gui.widgets.pin_editor_panel import PinEditorPanel
from atlas.services.api_worker import ApiWorker

logger = logging.getLogger(__name__)


class MapWindow(QMainWindow):
    """
    Main window hosting one map session.
    """

    def __init__(
        self,
        config: ClientConfig,
        controller: Optional[SessionController] = None,
        parent: Optional[QWidget] = None,
    ) -> None:
        """
        Args:
            config: Client configuration.
            controller: Pre-built controller (tests); one with a threaded
                ApiWorker is created otherwise.
            parent: Parent widget.
        """
        super().__init__(parent)
        self.config = config
        self._prompt_visible = False
        self.setWindowTitle(WINDOW_TITLE)
        self.resize(DEFAULT_WINDOW_WIDTH, DEFAULT_WINDOW_HEIGHT)

        if controller is None:
            session = MapSession(
                layer=config.default_layer,
                autosave_delay_ms=config.autosave_delay_ms,
            )
            worker = ApiWorker(config.server_url, timeout=config.request_timeout)
            controller = SessionController(session, worker)
        self.controller = controller
        self.session = controller.session

        self.viewport = MapViewport(controller, config.map_dir, self)
        self.setCentralWidget(self.viewport)

        self.editor = PinEditorPanel(controller, self)
        self.editor_dock = QDockWidget("Pin", self)
        self.editor_dock.setObjectName("PinEditorDock")
        self.editor_dock.setWidget(self.editor)
        self.addDockWidget(Qt.DockWidgetArea.RightDockWidgetArea, self.editor_dock)

        self._create_toolbar()
        self._create_status_bar()

        self.editor.delete_requested.connect(self.confirm_delete)
        self.controller.state_changed.connect(self._on_state_changed)
        self.controller.navigate_requested.connect(self.open_link)

        self._restore_settings()

    def _create_toolbar(self) -> None:
        toolbar = self.addToolBar("Map")
        toolbar.setObjectName("MapToolbar")

        self.layer_combo = QComboBox()
        for layer in MapLayer:
            self.layer_combo.addItem(layer.label, layer.value)
        self.layer_combo.setCurrentIndex(
            self.layer_combo.findData(self.session.layer.value)
        )
        self.layer_combo.currentIndexChanged.connect(self._on_layer_changed)
        toolbar.addWidget(self.layer_combo)

        self.reset_action = QAction("Reset view", self)
        self.reset_action.triggered.connect(
            lambda: self.controller.apply(self.session.reset_view)
        )
        toolbar.addAction(self.reset_action)
        toolbar.addSeparator()

        self.login_action = QAction("Admin login", self)
        self.login_action.triggered.connect(self.prompt_login)
        toolbar.addAction(self.login_action)

        self.logout_action = QAction("Log out", self)
        self.logout_action.triggered.connect(
            lambda: self.controller.apply(self.session.logout)
        )
        toolbar.addAction(self.logout_action)

    def _create_status_bar(self) -> None:
        # Shown while an accepted navigation waits out its delay.
        self.nav_status_label = QLabel()
        self.nav_cancel_button = QPushButton("Cancel")
        self.nav_cancel_button.clicked.connect(
            lambda: self.controller.apply(self.session.cancel_navigation)
        )
        self.statusBar().addPermanentWidget(self.nav_status_label)
        self.statusBar().addPermanentWidget(self.nav_cancel_button)
        self.nav_status_label.hide()
        self.nav_cancel_button.hide()

    def start(self) -> None:
        """Mounts the session (admin status, pins, entries)."""
        self.controller.start()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @Slot()
    def _on_state_changed(self) -> None:
        admin = self.session.admin
        self.login_action.setVisible(admin.status_resolved and not admin.is_admin)
        self.login_action.setEnabled(not admin.login_pending)
        self.logout_action.setVisible(admin.is_admin)

        prompt = self.session.nav_prompt
        opening = prompt is not None and prompt.loading
        self.nav_status_label.setText(f"Opening '{prompt.title}'…" if opening else "")
        self.nav_status_label.setVisible(opening)
        self.nav_cancel_button.setVisible(opening)

        if prompt is not None and not self._prompt_visible:
            if not prompt.loading:
                self._prompt_visible = True
                try:
                    self.confirm_navigation()
                finally:
                    self._prompt_visible = False

    def _on_layer_changed(self, index: int) -> None:
        value = self.layer_combo.itemData(index)
        if value:
            self.viewport.switch_layer(MapLayer.parse(value))

    # ------------------------------------------------------------------
    # Dialogs
    # ------------------------------------------------------------------

    @Slot()
    def prompt_login(self) -> None:
        password, ok = QInputDialog.getText(
            self, "Admin login", "Password:", QLineEdit.EchoMode.Password
        )
        if ok and password:
            self.controller.apply(self.session.login, password)

    @Slot()
    def confirm_delete(self) -> None:
        if not self.controller.apply(self.session.request_delete):
            return
        pin = self.session.get_pin(self.session.pending_delete_id)
        title = pin.title if pin else "this pin"
        reply = QMessageBox.question(
            self,
            "Delete pin",
            f"Delete '{title}'? This cannot be undone.",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
            QMessageBox.StandardButton.No,
        )
        if reply == QMessageBox.StandardButton.Yes:
            self.controller.apply(self.session.confirm_delete)
        else:
            self.controller.apply(self.session.cancel_delete)

    def confirm_navigation(self) -> None:
        prompt = self.session.nav_prompt
        if prompt is None:
            return
        reply = QMessageBox.question(
            self,
            "Open page",
            f"Open '{prompt.title}'?",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
            QMessageBox.StandardButton.Yes,
        )
        if reply == QMessageBox.StandardButton.Yes:
            self.controller.apply(self.session.confirm_navigation)
        else:
            self.controller.apply(self.session.cancel_navigation)

    @Slot(str)
    def open_link(self, href: str) -> None:
        url = QUrl(self.config.server_url.rstrip("/") + href)
        logger.info(f"Opening {url.toString()}")
        QDesktopServices.openUrl(url)

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def _restore_settings(self) -> None:
        settings = QSettings(WINDOW_SETTINGS_KEY, WINDOW_SETTINGS_APP)
        geometry = settings.value("geometry")
        if geometry:
            self.restoreGeometry(geometry)
        state = settings.value("windowState")
        if state:
            self.restoreState(state)

    def closeEvent(self, event: QCloseEvent) -> None:
        settings = QSettings(WINDOW_SETTINGS_KEY, WINDOW_SETTINGS_APP)
        settings.setValue("geometry", self.saveGeometry())
        settings.setValue("windowState", self.saveState())
        self.controller.shutdown()
        super().closeEvent(event)
