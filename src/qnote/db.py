from pathlib import Path
import logging
import os
from contextlib import contextmanager

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel, Session, create_engine

from .config import DatabaseConfig, data_dir
from .errors import StoreError

log = logging.getLogger(__name__)

_ENGINE = None
_ENGINE_URL = None  # track current engine's URL so we can switch when env changes
_DB_CONFIG = DatabaseConfig()


def _compute_url() -> str:
    env_path = os.getenv("QNOTE_DB_PATH")
    db_path = Path(env_path) if env_path else data_dir() / "notes.db"
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{db_path}"


def _apply_pragmas(dbapi_conn, _record) -> None:
    cfg = _DB_CONFIG
    cursor = dbapi_conn.cursor()
    try:
        if cfg.wal_mode:
            cursor.execute("PRAGMA journal_mode=WAL")
        # values are validated against fixed choices in DatabaseConfig
        cursor.execute(f"PRAGMA synchronous={cfg.synchronous}")
        cursor.execute(f"PRAGMA cache_size={int(cfg.cache_size_kb)}")
        cursor.execute(f"PRAGMA temp_store={cfg.temp_store}")
    finally:
        cursor.close()


def configure(cfg: DatabaseConfig) -> None:
    """Use these SQLite settings for every connection opened from now on."""
    global _DB_CONFIG
    _DB_CONFIG = cfg
    reset_engine()


def get_engine():
    global _ENGINE, _ENGINE_URL
    url = _compute_url()
    if _ENGINE is None or _ENGINE_URL != url:
        # swap engine if URL changed (common in tests)
        if _ENGINE is not None:
            _ENGINE.dispose()
        _ENGINE = create_engine(url, echo=False)
        event.listen(_ENGINE, "connect", _apply_pragmas)
        _ENGINE_URL = url
        log.debug("engine created url=%s", url)
    return _ENGINE


def reset_engine():
    """For tests: drop the cached engine so a new QNOTE_DB_PATH is picked up."""
    global _ENGINE, _ENGINE_URL
    if _ENGINE is not None:
        _ENGINE.dispose()
    _ENGINE = None
    _ENGINE_URL = None


def init_db():
    try:
        engine = get_engine()
        SQLModel.metadata.create_all(engine)
    except (SQLAlchemyError, OSError) as exc:
        raise StoreError(f"Cannot open note store: {exc}") from exc


def get_session():
    # keep objects alive after commit so returned models retain values
    return Session(get_engine(), expire_on_commit=False)


@contextmanager
def session_scope():
    session = get_session()
    try:
        yield session
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        log.warning("store operation failed: %s", exc)
        raise StoreError(str(exc)) from exc
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
