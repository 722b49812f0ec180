from PySide6.QtWidgets import (
    QApplication,
    QMainWindow,
    QMessageBox,
    QStatusBar,
    QStackedWidget,
)
from PySide6.QtGui import QAction, QKeySequence, QIcon
from typing import cast
from pathlib import Path
import logging
import sys
import os
from sqlalchemy.orm import sessionmaker

from .db import make_engine, make_session_factory, get_data_dir
from .gateway import SalesGateway
from .receipts import load_company_info, print_invoice
from .repository import init_db
from .services.invoice import InvoiceBundle, render_bundle
from .ui.home_view import HomeView
from .ui.sales_view import SalesView

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    def __init__(self, session_factory: sessionmaker | None = None) -> None:
        super().__init__()
        if session_factory is None:
            engine = make_engine()
            init_db(engine, seed=True)
            session_factory = make_session_factory(engine)
        self._session_factory: sessionmaker = session_factory
        self._gateway = SalesGateway(session_factory)

        with self._session_factory() as session:
            self._company = load_company_info(session)
        self.setWindowTitle(f"{self._company.name} - Administración")
        self.resize(1100, 700)

        self._create_actions()
        self._create_menus()

        self._stack = QStackedWidget(self)
        self._home = HomeView(self._company.name, self.show_sales, self)
        self._sales = SalesView(
            self._gateway,
            on_back=self.show_home,
            on_open_invoice=self.open_invoice,
            parent=self,
        )
        self._stack.addWidget(self._home)
        self._stack.addWidget(self._sales)
        self.setCentralWidget(self._stack)

        self.setStatusBar(QStatusBar(self))
        self.statusBar().showMessage(f"Datos: {get_data_dir()}")

    def _create_actions(self) -> None:
        self.act_sales = QAction("Ventas", self)
        self.act_sales.setShortcut(QKeySequence("Ctrl+V"))
        self.act_sales.triggered.connect(self.show_sales)
        self.act_exit = QAction("Salir", self)
        self.act_exit.setShortcut(QKeySequence.StandardKey.Quit)
        self.act_exit.triggered.connect(self.close)
        self.act_about = QAction("Acerca de", self)
        self.act_about.triggered.connect(self.on_about)

    def _create_menus(self) -> None:
        m_file = self.menuBar().addMenu("&Archivo")
        m_file.addAction(self.act_sales)
        m_file.addSeparator()
        m_file.addAction(self.act_exit)
        m_help = self.menuBar().addMenu("A&yuda")
        m_help.addAction(self.act_about)

    def on_about(self) -> None:
        QMessageBox.information(self, "Acerca de", f"{self._company.name}\nVentas, facturas y cobros.")

    def show_home(self) -> None:
        self._stack.setCurrentWidget(self._home)

    def show_sales(self) -> None:
        self._stack.setCurrentWidget(self._sales)

    def open_invoice(self, bundle: InvoiceBundle) -> None:
        document = render_bundle(bundle, self._company)
        path = print_invoice(document)
        if path is not None:
            self.statusBar().showMessage(f"Factura {document.number} generada en {path}", 8000)


def create_qt_app():
    """Crea y retorna una instancia de QApplication.

    Separado para facilitar pruebas manuales y evitar crear múltiples instancias.
    """
    app = cast(QApplication, QApplication.instance() or QApplication(sys.argv))

    def _resource_path(*parts: str) -> Path:
        # En PyInstaller, los datos se extraen en sys._MEIPASS
        if getattr(sys, "frozen", False) and hasattr(sys, "_MEIPASS"):
            return Path(getattr(sys, "_MEIPASS")) / Path(*parts)
        return Path.cwd() / Path(*parts)

    theme = os.environ.get("APP_THEME", "light").lower()
    style_file = "styles-dark.qss" if theme == "dark" else "styles.qss"
    styles_path = _resource_path("styles", style_file)
    if styles_path.exists():
        try:
            app.setStyleSheet(styles_path.read_text(encoding="utf-8"))
        except OSError:
            logger.warning("No se pudo leer la hoja de estilos %s", styles_path)

    logo_path = _resource_path("assets", "img", "logo.png")
    if logo_path.exists():
        app.setWindowIcon(QIcon(str(logo_path)))
    return app
