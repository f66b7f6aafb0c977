#!/usr/bin/env python3
# Authority Register // GPL-3.0-or-later
"""Authority Register command line — issue and maintain FA/GA/AR numbers.

Designed to sit on a network share so that several users, or another
application such as an authority editor, can take new numbers from the
same register. Each request flag is handled on its own, in command-line
order; a bad token prints the usage text and the remaining requests still
run. When no request flags and no unrecognised arguments are given, the
HTML register report is written instead.

Only the requested values go to stdout (new number, removed number, or
version), one per line, so calling programs can read them directly.

Usage:
    authority-register                  # write authority-report.html
    authority-register -n AR            # register a new AR, print its number
    authority-register -r FA250         # remove FA250, print 250 if it existed
    authority-register -v GA28          # increment GA28's version, print it
    authority-register -d GA28          # decrement GA28's version (not below 1)
    authority-register -s FA249         # seed an empty FA table with 1..249
    authority-register -n FA -v GA28 --json
    authority-register --health
"""

import argparse
import json
import logging
import sqlite3
import sys

from authority_register.core.config import (
    load_config,
    resolve_db_path,
    resolve_report_path,
    seed_max_id,
)
from authority_register.db.init_db import StatementError, connect_register
from authority_register.registry.operations import (
    SEED_MAX_ID,
    PartitionNotEmptyError,
    SeedLimitError,
    deregister,
    increment_version,
    register_new,
    seed,
    try_decrement,
)
from authority_register.registry.validator import (
    InvalidTokenError,
    parse_class,
    parse_token,
)
from authority_register.report.report_writer import write_report
from authority_register.testing.health_check import check_health, print_health

logger = logging.getLogger("authority_register.cli")

USAGE = (
    "\nExample usage:\n"
    "(Register new AR/FA/GA)              -n AR\n"
    "(Remove AR/FA/GA)            -r FA250\n"
    "(Increment version of an AR/FA/GA) -v GA28\n"
    "(Decrement version of an AR/FA/GA) -d GA28\n"
    "(Seed the AR/FA/GA tables with numbers up to) -s FA249\n"
)


class _QueueRequest(argparse.Action):
    """Append (operation, token) to namespace.requests in command-line order.

    A flag given without a token is queued with token None, so it is
    reported as invalid without stopping the requests around it.
    """

    def __init__(self, option_strings, dest, operation=None, **kwargs):
        super().__init__(option_strings, dest, **kwargs)
        self.operation = operation

    def __call__(self, parser, namespace, values, option_string=None):
        queued = list(getattr(namespace, self.dest, None) or [])
        queued.append((self.operation, values))
        setattr(namespace, self.dest, queued)


class _ArgumentsRejected(Exception):
    pass


class _RegisterParser(argparse.ArgumentParser):
    """ArgumentParser that raises on a bad command line instead of exiting."""

    def error(self, message):
        raise _ArgumentsRejected(message)


# ---------------------------------------------------------------------------
# Request handlers
# ---------------------------------------------------------------------------

def _not_found(identifier_class, record_id):
    return {
        "status": "not_found",
        "class": identifier_class.value,
        "id": record_id,
        "output": None,
    }


def _register(conn, token):
    identifier_class = parse_class(token)
    new_id = register_new(conn, identifier_class)
    return {
        "status": "registered",
        "class": identifier_class.value,
        "id": new_id,
        "output": new_id,
    }


def _deregister(conn, token):
    identifier_class, record_id = parse_token(token)
    record = deregister(conn, identifier_class, record_id)
    if record is None:
        return _not_found(identifier_class, record_id)
    result = {"status": "deregistered", "output": record.id}
    result.update(record.to_dict())
    return result


def _increment(conn, token):
    identifier_class, record_id = parse_token(token)
    version = increment_version(conn, identifier_class, record_id)
    if version is None:
        return _not_found(identifier_class, record_id)
    return {
        "status": "incremented",
        "class": identifier_class.value,
        "id": record_id,
        "version": version,
        "output": version,
    }


def _decrement(conn, token):
    identifier_class, record_id = parse_token(token)
    outcome = try_decrement(conn, identifier_class, record_id)
    if outcome is None:
        return _not_found(identifier_class, record_id)
    return {
        "status": "decremented" if outcome.changed else "unchanged",
        "class": identifier_class.value,
        "id": record_id,
        "version": outcome.version,
        "output": outcome.version,
    }


def _seed(conn, token, max_id=SEED_MAX_ID):
    identifier_class, upto_id = parse_token(token)
    inserted = seed(conn, identifier_class, upto_id, max_id=max_id)
    return {
        "status": "seeded",
        "class": identifier_class.value,
        "upto": upto_id,
        "inserted": inserted,
        "output": None,
    }


HANDLERS = {
    "register": _register,
    "deregister": _deregister,
    "increment": _increment,
    "decrement": _decrement,
    "seed": _seed,
}


def run_request(conn, operation, token, seed_limit=SEED_MAX_ID) -> dict:
    """Run one request against the open register.

    Never raises for bad input or a rejected statement: the outcome is
    reported in the returned dict's "status" ("invalid", "rejected" or
    "error"), so the next request can still run. A token of None means
    the flag was given without one.

    Returns:
        dict with "operation", "token", "status", the request's result
        fields, and "output" (the value to print, or None).
    """
    handler = HANDLERS[operation]
    try:
        if operation == "seed":
            result = handler(conn, token, max_id=seed_limit)
        else:
            result = handler(conn, token)
    except InvalidTokenError as exc:
        logger.debug("Rejected %s %r: %s", operation, token, exc.reason)
        result = {"status": "invalid", "error": exc.reason, "output": None}
    except (PartitionNotEmptyError, SeedLimitError) as exc:
        logger.warning("Seed %s skipped: %s", token, exc)
        result = {"status": "rejected", "error": str(exc), "output": None}
    except StatementError as exc:
        logger.error(
            "Error executing statement: %s, Error: %s", exc.statement, exc.message
        )
        result = {"status": "error", "error": exc.message, "output": None}

    result["operation"] = operation
    result["token"] = token
    return result


def _emit(result, as_json):
    if result["status"] == "invalid":
        print(USAGE, file=sys.stderr)
    if as_json:
        payload = {k: v for k, v in result.items() if k != "output"}
        print(json.dumps(payload, default=str))
    elif result["output"] is not None:
        print(result["output"])


def _configure_logging(config, verbose=False):
    level_name = "DEBUG" if verbose else str(config["logging"]["level"]).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format=config["logging"]["format"],
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def build_parser():
    parser = _RegisterParser(
        prog="authority-register",
        description="Authority Register: issue and version FA/GA/AR numbers",
        epilog=USAGE,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    for flags, operation, help_text in (
        (("-n", "--register"), "register", "Register a new number (FA, GA or AR)"),
        (("-r", "--deregister"), "deregister", "Remove a number, e.g. FA250"),
        (("-v", "--increment"), "increment", "Increment a number's version, e.g. GA28"),
        (("-d", "--decrement"), "decrement", "Decrement a number's version, e.g. GA28"),
        (("-s", "--seed"), "seed", "Seed an empty table with numbers up to, e.g. FA249"),
    ):
        parser.add_argument(
            *flags, dest="requests", action=_QueueRequest, operation=operation,
            nargs="?", metavar="TOKEN", help=help_text,
        )

    parser.add_argument("--db-path", help="Override database path")
    parser.add_argument("--report-path", help="Override report path")
    parser.add_argument("--config", help="Override config file path")
    parser.add_argument("--health", action="store_true", help="Check the register and exit")
    parser.add_argument("--json", action="store_true", help="JSON output")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    try:
        args, unknown = parser.parse_known_args(argv)
    except _ArgumentsRejected as exc:
        print(f"{parser.prog}: {exc}", file=sys.stderr)
        print(USAGE, file=sys.stderr)
        return 0

    config = load_config(args.config)
    _configure_logging(config, args.verbose)

    for item in unknown:
        logger.debug("Unrecognised argument %r", item)
        print(USAGE, file=sys.stderr)

    if args.health:
        result = check_health(db_path=args.db_path, config_path=args.config)
        if args.json:
            print(json.dumps(result, indent=2))
        else:
            print_health(result)
        return 0

    db_path = resolve_db_path(config, args.db_path)
    db_cfg = config["database"]
    try:
        conn = connect_register(
            db_path, db_cfg["busy_timeout_seconds"], db_cfg["journal_mode"]
        )
    except (sqlite3.Error, OSError, ValueError) as exc:
        logger.error("Error: can't create db: %s (%s)", db_path, exc)
        return 1

    try:
        if not args.requests:
            if unknown:
                return 0
            report_path = resolve_report_path(config, db_path, args.report_path)
            try:
                written = write_report(conn, report_path, title=config["report"]["title"])
            except StatementError as exc:
                logger.error(
                    "Error executing statement: %s, Error: %s", exc.statement, exc.message
                )
                written = None
            if args.json:
                print(json.dumps({
                    "status": "generated" if written else "error",
                    "report_path": str(report_path),
                }))
            return 0

        seed_limit = seed_max_id(config)
        for operation, token in args.requests:
            _emit(run_request(conn, operation, token, seed_limit), args.json)
    finally:
        conn.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
