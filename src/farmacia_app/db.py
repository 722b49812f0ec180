from __future__ import annotations

from pathlib import Path
import logging
import os
import sys
from sqlalchemy import create_engine, event
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker
from .models import Base

# Cargar variables desde .env si existe (opcional)
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def get_data_dir() -> Path:
    """Devuelve la carpeta de datos persistente.
    - En desarrollo: ./data
    - En ejecutable (PyInstaller): %APPDATA%/Farmacia-Admin/data
    - Se puede forzar con la variable FARMACIA_APP_DATA_DIR
    """
    override = os.getenv("FARMACIA_APP_DATA_DIR")
    if override:
        d = Path(override).expanduser()
        d.mkdir(parents=True, exist_ok=True)
        return d

    # Detectar si corremos empaquetados con PyInstaller
    is_frozen = getattr(sys, 'frozen', False) and hasattr(sys, '_MEIPASS')
    if is_frozen:
        base = os.getenv('APPDATA') or os.getenv('LOCALAPPDATA') or str(Path.home())
        d = Path(base) / "Farmacia-Admin" / "data"
    else:
        d = Path.cwd() / "data"
    d.mkdir(parents=True, exist_ok=True)
    return d


def get_default_db_path() -> Path:
    return get_data_dir() / "app.db"


def _enable_sqlite_foreign_keys(engine) -> None:
    # SQLite no aplica las FK si no se activa por conexión
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):  # pragma: no cover - callback de driver
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def make_engine(db_path: Path | str | None = None):
    """Crear un engine de SQLAlchemy.

    Prioridad de conexión:
    1) Si se pasa ``db_path`` (ruta SQLite o URL completa), respetar ese destino.
    2) Si existe la variable de entorno ``DATABASE_URL``, usarla.
    3) Usar SQLite local por defecto en ``./data/app.db``.
    """

    # 1) db_path explícito: puede ser ruta SQLite o URL completa
    if db_path is not None:
        s = str(db_path)
        if s in {":memory:", "sqlite:///:memory:", "sqlite+pysqlite:///:memory:"}:
            # Base de datos en memoria: StaticPool para que todas las conexiones
            # compartan el mismo contexto durante las pruebas.
            engine = create_engine(
                "sqlite+pysqlite:///:memory:",
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        elif "://" in s:
            engine = create_engine(s, pool_pre_ping=True)
        else:
            engine = create_engine(f"sqlite:///{s}", connect_args={"check_same_thread": False})
    else:
        env_url = os.getenv("DATABASE_URL")
        if env_url:
            engine = create_engine(env_url, pool_pre_ping=True)
        else:
            url = f"sqlite:///{get_default_db_path()}"
            engine = create_engine(url, connect_args={"check_same_thread": False})

    if engine.url.get_backend_name() == "sqlite":
        _enable_sqlite_foreign_keys(engine)
    logger.debug("Engine creado para %s", engine.url.render_as_string(hide_password=True))
    return engine


def make_session_factory(engine=None):
    engine = engine or make_engine()
    # FARMACIA_APP_SKIP_CREATE_ALL=1 cuando el esquema se gestiona por fuera
    skip_create = os.getenv("FARMACIA_APP_SKIP_CREATE_ALL", "0").lower() in ("1", "true", "yes")
    if not skip_create:
        Base.metadata.create_all(bind=engine)
    # expire_on_commit=False evita errores de "not bound to a Session" al leer
    # atributos fuera del contexto.
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def test_connection(engine=None) -> dict:
    """Probar la conexión a la base de datos actual.

    Retorna un dict con:
      - ok: bool
      - elapsed_ms: float | None
      - url: str (redactada si tiene password)
      - backend: str (sqlite, postgresql, etc.)
      - error: str | None
    """
    import time
    from sqlalchemy.exc import SQLAlchemyError

    e = engine or make_engine()
    info = {
        "ok": False,
        "elapsed_ms": None,
        "url": e.url.render_as_string(hide_password=True),
        "backend": e.url.get_backend_name(),
        "error": None,
    }
    try:
        t0 = time.perf_counter()
        with e.connect() as conn:
            conn.exec_driver_sql("SELECT 1")
        info["elapsed_ms"] = (time.perf_counter() - t0) * 1000.0
        info["ok"] = True
    except SQLAlchemyError as ex:
        logger.warning("Fallo la prueba de conexión: %s", ex)
        info["error"] = str(ex)
    return info


# pytest no debe recolectar la utilidad como test
test_connection.__test__ = False
