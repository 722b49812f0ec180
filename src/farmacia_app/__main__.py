import logging
import os

from .app import MainWindow, create_qt_app
from .db import get_data_dir, make_engine, make_session_factory
from .repository import init_db


def _setup_logging() -> None:
    level = os.environ.get("FARMACIA_APP_LOG_LEVEL", "INFO").upper()
    log_dir = get_data_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=str(log_dir / "app.log"),
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )


def main() -> None:
    _setup_logging()
    app = create_qt_app()
    engine = make_engine()
    init_db(engine, seed=True)
    window = MainWindow(make_session_factory(engine))
    window.show()
    app.exec()


if __name__ == "__main__":
    main()
