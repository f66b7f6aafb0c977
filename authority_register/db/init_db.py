#!/usr/bin/env python3
# Authority Register // GPL-3.0-or-later
"""Initialize and open the Authority Register database.

One SQLite file holds a table per identifier class:

    FA  — Functional authorities
    GA  — General authorities
    AR  — Appraisal reports

Each table is (ID INTEGER PRIMARY KEY, CurrentVersion INTEGER, Date TEXT).
Register files created by earlier releases use the same layout and are
opened as-is.

Connections run in autocommit mode. Multi-statement operations wrap
themselves in transaction(), which issues BEGIN IMMEDIATE; lock contention
between invocations is left to SQLite's busy timeout.

Usage:
    python -m authority_register.db.init_db [--db-path PATH] [--json]
"""

import argparse
import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from authority_register.core.config import load_config, resolve_db_path
from authority_register.registry.validator import IdentifierClass

logger = logging.getLogger("authority_register.db")

JOURNAL_MODES = ("DELETE", "TRUNCATE", "PERSIST", "MEMORY", "WAL", "OFF")

TABLE_SQL = """
CREATE TABLE IF NOT EXISTS {table} (
    ID INTEGER PRIMARY KEY,
    CurrentVersion INTEGER,
    Date TEXT
);
"""

SCHEMA_SQL = "".join(TABLE_SQL.format(table=cls.value) for cls in IdentifierClass)


class StatementError(Exception):
    """SQLite rejected a statement."""

    def __init__(self, statement, message):
        super().__init__(f"{message} (statement: {statement})")
        self.statement = statement
        self.message = message


def execute_statement(conn, statement, params=()):
    """Execute one statement, raising StatementError on engine failure."""
    try:
        return conn.execute(statement, params)
    except sqlite3.Error as exc:
        raise StatementError(statement, str(exc)) from exc


def execute_many(conn, statement, seq_of_params):
    try:
        return conn.executemany(statement, seq_of_params)
    except sqlite3.Error as exc:
        raise StatementError(statement, str(exc)) from exc


@contextmanager
def transaction(conn):
    """Run the enclosed statements as one BEGIN IMMEDIATE transaction.

    The write lock is taken at BEGIN. Commits on normal exit; rolls back
    on any exception, including a failed COMMIT.
    """
    execute_statement(conn, "BEGIN IMMEDIATE")
    try:
        yield conn
        execute_statement(conn, "COMMIT")
    except BaseException:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        raise


def _get_db(db_path, busy_timeout=30.0, journal_mode="DELETE"):
    """Open a register connection in autocommit mode."""
    mode = str(journal_mode).upper()
    if mode not in JOURNAL_MODES:
        raise ValueError(f"Invalid journal mode {journal_mode!r}. Must be one of: {JOURNAL_MODES}")
    conn = sqlite3.connect(str(db_path), timeout=float(busy_timeout), isolation_level=None)
    conn.row_factory = sqlite3.Row
    try:
        conn.execute(f"PRAGMA journal_mode={mode}")
    except sqlite3.Error:
        conn.close()
        raise
    return conn


def connect_register(db_path, busy_timeout=30.0, journal_mode="DELETE"):
    """Open the register at *db_path*, creating the file and tables if absent.

    Raises:
        OSError: the parent directory cannot be created.
        sqlite3.Error: the file cannot be opened or the schema created.
    """
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = _get_db(path, busy_timeout, journal_mode)
    try:
        conn.executescript(SCHEMA_SQL)
    except sqlite3.Error:
        conn.close()
        raise
    logger.debug("Opened register %s", path)
    return conn


@contextmanager
def open_register(db_path, busy_timeout=30.0, journal_mode="DELETE"):
    """Scoped register handle: opened on entry, always closed on exit."""
    conn = connect_register(db_path, busy_timeout, journal_mode)
    try:
        yield conn
    finally:
        conn.close()


def init_db(db_path=None, config=None):
    """Create the register tables if they are missing.

    Safe to run against an existing register; rows are never touched.

    Returns:
        dict with the database path, table names and timestamp.
    """
    config = config or load_config()
    path = Path(db_path) if db_path else resolve_db_path(config)
    db_cfg = config["database"]

    with open_register(path, db_cfg["busy_timeout_seconds"], db_cfg["journal_mode"]) as conn:
        tables = [
            r["name"] for r in conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
            ).fetchall()
        ]

    return {
        "status": "initialized",
        "db_path": str(path),
        "tables": tables,
        "initialized_at": datetime.now(timezone.utc).isoformat(),
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Initialize the Authority Register database")
    parser.add_argument("--json", action="store_true", help="JSON output")
    parser.add_argument("--db-path", help="Override database path")
    args = parser.parse_args()

    result = init_db(db_path=args.db_path)

    if args.json:
        print(json.dumps(result, indent=2))
    else:
        print("Authority Register database initialized:")
        print(f"  Path:    {result['db_path']}")
        print(f"  Tables:  {', '.join(result['tables'])}")
        print(f"  Time:    {result['initialized_at']}")
