import os
import pathlib
import sys

import pytest

# Widgets are created without a display
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

# Ensure project root is in sys.path
repo_root = pathlib.Path(__file__).parent.parent
sys.path.insert(0, str(repo_root))

from PySide6.QtWidgets import QApplication  # noqa: E402

from atlas.core.pins import Pin  # noqa: E402


@pytest.fixture(scope="session")
def qapp():
    """
    Ensure QApplication is instantiated only once.
    """
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    yield app


@pytest.fixture
def sample_pins():
    """
    Two pins, one linked to a lore entry and one without a link.
    """
    return [
        Pin(
            id="harbor",
            x=0.25,
            y=0.5,
            title="The Harbor",
            subtitle="Port town",
            linked_category="places",
            linked_slug="harbor",
        ),
        Pin(id="ruins", x=0.75, y=0.2, title="Old Ruins"),
    ]


@pytest.fixture
def content_tree(tmp_path):
    """
    A minimal content directory with two categories.
    """
    root = tmp_path / "content"
    (root / "places").mkdir(parents=True)
    (root / "people").mkdir()
    (root / "places" / "harbor.md").write_text(
        "---\ntitle: The Harbor\norder: 1\n---\n\nShips come and go.\n",
        encoding="utf-8",
    )
    (root / "people" / "cartographer.md").write_text(
        "---\ntitle: The Cartographer\norder: 2\n---\n\nDraws *maps*.\n",
        encoding="utf-8",
    )
    return root


@pytest.fixture
def api_client():
    """
    Mocked AtlasApiClient: not admin, no stored pins or entries, saves
    echo the pins back.
    """
    from unittest.mock import MagicMock

    client = MagicMock()
    client.get_admin_status.return_value = False
    client.get_pins.return_value = []
    client.get_entry_summaries.return_value = []
    client.save_pins.side_effect = lambda pins: list(pins)
    return client


@pytest.fixture
def make_controller(qtbot, api_client):
    """
    Factory for SessionControllers whose worker runs on the test thread.
    """
    from atlas.app.session_controller import SessionController
    from atlas.services.api_worker import ApiWorker

    controllers = []

    def _make(session):
        worker = ApiWorker("http://atlas.test")
        worker.client = api_client
        controller = SessionController(session, worker, threaded=False)
        controllers.append(controller)
        return controller

    yield _make
    for controller in controllers:
        controller.shutdown()
