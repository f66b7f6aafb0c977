#!/usr/bin/env python3
# Authority Register // GPL-3.0-or-later
"""Shared test fixtures for the Authority Register test suite."""

import sys
from pathlib import Path

import pytest

# Add project root to path
BASE_DIR = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(BASE_DIR))

from authority_register.core.config import (  # noqa: E402
    CONFIG_PATH_ENV,
    DB_PATH_ENV,
    LOG_LEVEL_ENV,
    REPORT_PATH_ENV,
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep the developer's environment and args/ config out of every test."""
    for var in (DB_PATH_ENV, REPORT_PATH_ENV, LOG_LEVEL_ENV):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv(CONFIG_PATH_ENV, str(tmp_path / "no_such_config.yaml"))


@pytest.fixture
def tmp_db(tmp_path, monkeypatch):
    """Create a temporary register database with all three tables."""
    db_path = tmp_path / "authority-register.db"

    from authority_register.db.init_db import init_db
    init_db(str(db_path))

    monkeypatch.setenv(DB_PATH_ENV, str(db_path))
    yield db_path


@pytest.fixture
def register_conn(tmp_db):
    """An open register connection, closed after the test."""
    from authority_register.db.init_db import open_register
    with open_register(tmp_db) as conn:
        yield conn


@pytest.fixture
def sample_register(register_conn):
    """FA1..FA3 and GA1 registered; FA2 bumped to version 3."""
    from authority_register.registry.operations import increment_version, register_new
    for _ in range(3):
        register_new(register_conn, "FA")
    register_new(register_conn, "GA")
    increment_version(register_conn, "FA", 2)
    increment_version(register_conn, "FA", 2)
    return register_conn


@pytest.fixture
def legacy_db(tmp_path):
    """A register file written by the legacy tool, including a NULL date."""
    import sqlite3

    db_path = tmp_path / "legacy" / "authority-register.db"
    db_path.parent.mkdir()
    conn = sqlite3.connect(str(db_path))
    for table in ("FA", "GA", "AR"):
        conn.execute(
            f"CREATE TABLE IF NOT EXISTS {table} ("
            "ID INTEGER PRIMARY KEY,CurrentVersion INTEGER,Date TEXT);"
        )
    conn.executemany(
        "INSERT INTO FA (ID, CurrentVersion, Date) VALUES (?, ?, ?)",
        [(248, 2, "2011-03-01"), (249, 1, "2011-04-12")],
    )
    conn.execute("INSERT INTO AR (ID, CurrentVersion, Date) VALUES (12, 1, NULL)")
    conn.commit()
    conn.close()
    return db_path
