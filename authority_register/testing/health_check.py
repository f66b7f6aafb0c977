#!/usr/bin/env python3
# Authority Register // GPL-3.0-or-later
"""Health Check — verifies the register database and configuration.

Opens the database read-only; a missing register is reported, never
created.

Usage:
    python -m authority_register.testing.health_check
    python -m authority_register.testing.health_check --json
"""

import argparse
import json
import sqlite3
from pathlib import Path

from authority_register.core.config import load_config, resolve_db_path
from authority_register.registry.validator import IdentifierClass


def _table_counts(db_path):
    """Row count per class table; None for a table that does not exist."""
    conn = sqlite3.connect(f"{Path(db_path).resolve().as_uri()}?mode=ro", uri=True)
    try:
        names = {
            r[0] for r in conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table'"
            ).fetchall()
        }
        counts = {}
        for cls in IdentifierClass:
            if cls.value in names:
                counts[cls.value] = conn.execute(
                    f"SELECT COUNT(*) FROM {cls.value}"
                ).fetchone()[0]
            else:
                counts[cls.value] = None
        return counts
    finally:
        conn.close()


def check_health(db_path=None, config_path=None) -> dict:
    """Run health checks on the register components."""
    config = load_config(config_path)
    path = resolve_db_path(config, db_path)
    checks = {}

    # Configuration
    cfg_path = Path(config["config_path"])
    checks["config"] = {
        "status": "ok" if cfg_path.exists() else "defaults",
        "path": str(cfg_path),
    }

    # Database
    checks["database"] = {
        "status": "ok" if path.exists() else "missing",
        "path": str(path),
    }
    if path.exists():
        try:
            counts = _table_counts(path)
            checks["tables"] = {
                "status": "ok" if all(c is not None for c in counts.values()) else "incomplete",
                "row_counts": counts,
            }
        except sqlite3.Error as e:
            checks["database"]["status"] = "error"
            checks["database"]["error"] = str(e)

    overall = (
        checks["database"]["status"] == "ok"
        and checks.get("tables", {}).get("status") == "ok"
    )
    return {"overall": "healthy" if overall else "degraded", "checks": checks}


def print_health(result):
    print(f"Overall: {result['overall'].upper()}")
    for name, check in result["checks"].items():
        print(f"  {name}: {check['status']}")
        if name == "tables":
            for code, count in check["row_counts"].items():
                print(f"    {code}: {'absent' if count is None else count}")


def main():
    parser = argparse.ArgumentParser(description="Health Check")
    parser.add_argument("--db-path", help="Override database path")
    parser.add_argument("--config", help="Override config file path")
    parser.add_argument("--json", action="store_true")
    args = parser.parse_args()

    result = check_health(db_path=args.db_path, config_path=args.config)

    if args.json:
        print(json.dumps(result, indent=2))
    else:
        print_health(result)


if __name__ == "__main__":
    main()
