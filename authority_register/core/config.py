#!/usr/bin/env python3
# Authority Register // GPL-3.0-or-later
"""Configuration loader for the Authority Register.

Reads args/register_config.yaml and layers environment variables on top.
Relative paths resolve against the source checkout, or, once installed,
against the directory holding the authority-register executable.
Command-line values win over both and are applied by the caller through
resolve_db_path() / resolve_report_path().

Environment:
    AUTHORITY_REGISTER_CONFIG       alternative config file
    AUTHORITY_REGISTER_DB_PATH      database file
    AUTHORITY_REGISTER_REPORT_PATH  report file
    AUTHORITY_REGISTER_LOG_LEVEL    logging level name

Usage:
    python -m authority_register.core.config [--config PATH] [--json]
"""

import argparse
import copy
import json
import logging
import os
import sys
from pathlib import Path

import yaml
from dotenv import load_dotenv

logger = logging.getLogger("authority_register.config")

BASE_DIR = Path(__file__).resolve().parent.parent.parent
DEFAULT_CONFIG_PATH = BASE_DIR / "args" / "register_config.yaml"

CONFIG_PATH_ENV = "AUTHORITY_REGISTER_CONFIG"
DB_PATH_ENV = "AUTHORITY_REGISTER_DB_PATH"
REPORT_PATH_ENV = "AUTHORITY_REGISTER_REPORT_PATH"
LOG_LEVEL_ENV = "AUTHORITY_REGISTER_LOG_LEVEL"

DB_FILENAME = "authority-register.db"
REPORT_FILENAME = "authority-report.html"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

DEFAULTS = {
    "database": {
        "path": str(Path("data") / DB_FILENAME),
        "busy_timeout_seconds": 30,
        "journal_mode": "DELETE",
    },
    "seed": {
        "max_id": 100000,
    },
    "report": {
        "path": None,
        "title": "Authority Register",
    },
    "logging": {
        "level": "WARNING",
        "format": LOG_FORMAT,
    },
}


def anchor_dir() -> Path:
    """Directory that relative paths, args/ and .env are looked up in.

    A source checkout (BASE_DIR holding args/) uses BASE_DIR. An installed
    console script uses the directory of the running executable, so the
    register sits beside the program on the shared drive.
    """
    if (BASE_DIR / "args").is_dir():
        return BASE_DIR
    if sys.argv and sys.argv[0]:
        return Path(sys.argv[0]).resolve().parent
    return Path.cwd()


def default_config_path() -> Path:
    return anchor_dir() / "args" / "register_config.yaml"


def _load_env():
    """Load .env from the anchor directory; real environment variables win."""
    env_path = anchor_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path, override=False)


def _merge(base, override):
    """Recursively merge *override* into a copy of *base*."""
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _resolve(path_value):
    path = Path(path_value).expanduser()
    if not path.is_absolute():
        path = anchor_dir() / path
    return path


def load_config(config_path=None) -> dict:
    """Load the register configuration.

    Precedence, lowest first: DEFAULTS, the YAML file, environment
    variables. A missing file yields the defaults. A file that cannot be
    read or parsed is logged and ignored.

    Args:
        config_path: Optional config file override.

    Returns:
        dict with "database", "seed", "report" and "logging" sections, and
        "config_path" naming the file that was consulted.
    """
    _load_env()
    path = Path(
        config_path or os.environ.get(CONFIG_PATH_ENV) or default_config_path()
    )

    file_config = {}
    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                file_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            logger.error("Failed to load register config %s: %s", path, exc)
            file_config = {}
        if not isinstance(file_config, dict):
            logger.error("Register config %s is not a mapping, ignoring it", path)
            file_config = {}
    else:
        logger.debug("Register config not found at %s, using defaults", path)

    config = _merge(DEFAULTS, file_config)

    if os.environ.get(DB_PATH_ENV):
        config["database"]["path"] = os.environ[DB_PATH_ENV]
    if os.environ.get(REPORT_PATH_ENV):
        config["report"]["path"] = os.environ[REPORT_PATH_ENV]
    if os.environ.get(LOG_LEVEL_ENV):
        config["logging"]["level"] = os.environ[LOG_LEVEL_ENV]

    config["config_path"] = str(path)
    return config


def seed_max_id(config) -> int:
    """seed.max_id as an int; an unusable value falls back to the default."""
    value = (config.get("seed") or {}).get("max_id")
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.error("Invalid seed.max_id %r, using %d", value, DEFAULTS["seed"]["max_id"])
        return DEFAULTS["seed"]["max_id"]


def resolve_db_path(config, override=None) -> Path:
    """Database path: *override*, else database.path. Relative to anchor_dir()."""
    return _resolve(override or config["database"]["path"])


def resolve_report_path(config, db_path, override=None) -> Path:
    """Report path: *override*, else report.path, else beside the database."""
    configured = override or config["report"].get("path")
    if configured:
        return _resolve(configured)
    return Path(db_path).parent / REPORT_FILENAME


def main():
    parser = argparse.ArgumentParser(description="Show the effective register configuration")
    parser.add_argument("--config", help="Override config file path")
    parser.add_argument("--json", action="store_true", help="JSON output")
    args = parser.parse_args()

    config = load_config(args.config)
    db_path = resolve_db_path(config)
    config["resolved"] = {
        "db_path": str(db_path),
        "report_path": str(resolve_report_path(config, db_path)),
    }

    if args.json:
        print(json.dumps(config, indent=2, default=str))
    else:
        print(f"Config file: {config['config_path']}")
        print(f"  Database:  {config['resolved']['db_path']}")
        print(f"  Report:    {config['resolved']['report_path']}")
        print(f"  Journal:   {config['database']['journal_mode']}")
        print(f"  Timeout:   {config['database']['busy_timeout_seconds']}s")
        print(f"  Seed max:  {seed_max_id(config)}")
        print(f"  Log level: {config['logging']['level']}")


if __name__ == "__main__":
    main()
