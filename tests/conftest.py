# Ensure project root is on sys.path so `import src.farmacia_app...` works when running tests in various environments.
import os
import sys
from datetime import date

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import pytest
from PySide6.QtWidgets import QApplication

from src.farmacia_app.db import make_engine, make_session_factory
from src.farmacia_app.gateway import SalesGateway
from src.farmacia_app.repository import add_customer, add_product, init_db


class RecordingNotifier:
    """Guarda los avisos en lugar de mostrar cuadros de diálogo."""

    def __init__(self):
        self.messages = []

    def success(self, message):
        self.messages.append(("success", message))

    def warning(self, message):
        self.messages.append(("warning", message))

    def error(self, message):
        self.messages.append(("error", message))

    def kinds(self):
        return [k for k, _ in self.messages]


@pytest.fixture(scope="session")
def qapp():
    app = QApplication.instance() or QApplication(sys.argv)
    yield app


@pytest.fixture
def engine(tmp_path, monkeypatch):
    monkeypatch.setenv("FARMACIA_APP_DATA_DIR", str(tmp_path / "data"))
    engine = make_engine(":memory:")
    init_db(engine, seed=True)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def gateway(session_factory):
    return SalesGateway(session_factory)


@pytest.fixture
def catalog(session_factory):
    """Cliente y dos productos de ejemplo; las unidades vienen sembradas."""
    with session_factory() as s:
        ana = add_customer(s, full_name="Ana Pérez", phone="555-1234", address="Av. Central 10")
        luis = add_customer(s, full_name="Luis Gómez")
        para = add_product(s, name="Paracetamol 500mg", price=100.0, unit="Caja")
        alcohol = add_product(s, name="Alcohol 70%", price=None, unit="Frasco")
    return {"ana": ana.id, "luis": luis.id, "paracetamol": para.id, "alcohol": alcohol.id}


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def today():
    return date(2024, 3, 15)


@pytest.fixture(autouse=True)
def _flush_deferred_deletes():
    """Process widget deletions scheduled by earlier tests before the next one starts."""
    from PySide6.QtCore import QCoreApplication, QEvent

    if QCoreApplication.instance() is not None:
        QCoreApplication.sendPostedEvents(None, QEvent.Type.DeferredDelete)
    yield
