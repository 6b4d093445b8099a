import pytest

from qnote.db import init_db, reset_engine


@pytest.fixture
def store(tmp_path, monkeypatch):
    """Fresh SQLite file per test; data dir and config kept inside tmp_path."""
    monkeypatch.setenv("QNOTE_DB_PATH", str(tmp_path / "notes.sqlite"))
    monkeypatch.setenv("QNOTE_HOME", str(tmp_path / "home"))
    monkeypatch.setenv("QNOTE_CONFIG_PATH", str(tmp_path / "config.toml"))
    monkeypatch.delenv("EDITOR", raising=False)
    reset_engine()
    init_db()
    yield tmp_path
    reset_engine()
