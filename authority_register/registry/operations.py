# Authority Register // GPL-3.0-or-later
"""Registry operations — the numbering and versioning rules.

Every function takes an open register connection (see
authority_register.db.init_db.open_register) and an IdentifierClass, and
touches exactly one class table. Each call is a single statement or a
single BEGIN IMMEDIATE transaction.

    register_new       insert (NULL, 1, today) and return the new ID
    deregister         delete a row and return what was removed
    increment_version  CurrentVersion + 1
    decrement_version  CurrentVersion - 1, never below 1
    try_decrement      decrement_version, also reporting whether it moved
    seed               insert IDs 1..N (N capped) into an empty table
    fetch_records      every row, highest ID first

New IDs follow SQLite rowid allocation: one more than the highest ID
present. Removing the highest ID therefore frees it for the next register;
removing any other ID leaves a permanent gap.

A missing ID is not an error. deregister, increment_version and
decrement_version return None when the ID is not registered.
"""

import logging
from typing import List, NamedTuple, Optional

from authority_register.db.init_db import execute_many, execute_statement, transaction
from authority_register.registry.validator import IdentifierClass

logger = logging.getLogger("authority_register.registry")

# Largest upto_id a single seed accepts; the whole insert holds the write lock.
SEED_MAX_ID = 100_000


class IdentifierRecord(NamedTuple):
    identifier_class: IdentifierClass
    id: int
    current_version: int
    registration_date: str

    @property
    def number(self):
        """Display form, e.g. "FA250"."""
        return f"{self.identifier_class.value}{self.id}"

    def to_dict(self):
        return {
            "class": self.identifier_class.value,
            "id": self.id,
            "version": self.current_version,
            "registration_date": self.registration_date,
        }


class DecrementResult(NamedTuple):
    version: int
    changed: bool


class SeedLimitError(ValueError):
    """Seed was asked for more numbers than the configured ceiling."""

    def __init__(self, identifier_class, upto_id, max_id):
        super().__init__(
            f"{identifier_class.value}{upto_id} is above the seed ceiling of {max_id}"
        )
        self.identifier_class = identifier_class
        self.upto_id = upto_id
        self.max_id = max_id


class PartitionNotEmptyError(ValueError):
    """Seed was asked to populate a class table that already holds rows."""

    def __init__(self, identifier_class, row_count):
        super().__init__(
            f"{identifier_class.value} already holds {row_count} row(s); "
            f"seeding needs an empty table"
        )
        self.identifier_class = identifier_class
        self.row_count = row_count


def _row_to_record(identifier_class, row):
    if row is None:
        return None
    return IdentifierRecord(
        identifier_class, row["ID"], row["CurrentVersion"], row["Date"]
    )


def get_record(conn, identifier_class, record_id) -> Optional[IdentifierRecord]:
    """Return one record, or None if the ID is not registered."""
    cls = IdentifierClass(identifier_class)
    row = execute_statement(
        conn,
        f"SELECT ID, CurrentVersion, Date FROM {cls.value} WHERE ID = ?",
        (record_id,),
    ).fetchone()
    return _row_to_record(cls, row)


def count_records(conn, identifier_class) -> int:
    cls = IdentifierClass(identifier_class)
    row = execute_statement(conn, f"SELECT COUNT(*) AS cnt FROM {cls.value}").fetchone()
    return row["cnt"]


def fetch_records(conn, identifier_class) -> List[IdentifierRecord]:
    """All records of one class, highest ID first.

    Returns a new list on every call; callers may query again at any time.
    """
    cls = IdentifierClass(identifier_class)
    rows = execute_statement(
        conn,
        f"SELECT ID, CurrentVersion, Date FROM {cls.value} ORDER BY ID DESC",
    ).fetchall()
    return [_row_to_record(cls, r) for r in rows]


def register_new(conn, identifier_class) -> int:
    """Register the next number of a class and return it.

    The row starts at version 1 with today's date (UTC, as SQLite's
    date('now') reports it).
    """
    cls = IdentifierClass(identifier_class)
    cursor = execute_statement(
        conn,
        f"INSERT INTO {cls.value} (ID, CurrentVersion, Date) "
        f"VALUES (NULL, 1, date('now'))",
    )
    new_id = cursor.lastrowid
    logger.info("Registered %s%d", cls.value, new_id)
    return new_id


def deregister(conn, identifier_class, record_id) -> Optional[IdentifierRecord]:
    """Remove a registered number.

    Used when a number was issued by mistake. The row is deleted outright.

    Args:
        conn: Open register connection.
        identifier_class: FA, GA or AR.
        record_id: The number to remove.

    Returns:
        The record as it was before removal, or None if the number was
        not registered (nothing is changed in that case).
    """
    cls = IdentifierClass(identifier_class)
    with transaction(conn):
        record = get_record(conn, cls, record_id)
        if record is not None:
            execute_statement(
                conn, f"DELETE FROM {cls.value} WHERE ID = ?", (record_id,)
            )

    if record is None:
        logger.info("Deregister %s%d: not registered", cls.value, record_id)
    else:
        logger.info(
            "Deregistered %s (version %s, registered %s)",
            record.number, record.current_version, record.registration_date,
        )
    return record


def increment_version(conn, identifier_class, record_id) -> Optional[int]:
    """Bump a number's version. Returns the new version, or None if absent."""
    cls = IdentifierClass(identifier_class)
    with transaction(conn):
        execute_statement(
            conn,
            f"UPDATE {cls.value} SET CurrentVersion = CurrentVersion + 1 WHERE ID = ?",
            (record_id,),
        )
        record = get_record(conn, cls, record_id)

    if record is None:
        logger.info("Increment %s%d: not registered", cls.value, record_id)
        return None
    logger.info("Incremented %s to version %s", record.number, record.current_version)
    return record.current_version


def try_decrement(conn, identifier_class, record_id) -> Optional[DecrementResult]:
    """Lower a number's version, stopping at 1, and say whether it moved.

    Returns None when the number is not registered.
    """
    cls = IdentifierClass(identifier_class)
    with transaction(conn):
        cursor = execute_statement(
            conn,
            f"UPDATE {cls.value} SET CurrentVersion = CurrentVersion - 1 "
            f"WHERE ID = ? AND CurrentVersion > 1",
            (record_id,),
        )
        changed = cursor.rowcount > 0
        record = get_record(conn, cls, record_id)

    if record is None:
        logger.info("Decrement %s%d: not registered", cls.value, record_id)
        return None
    if changed:
        logger.info("Decremented %s to version %s", record.number, record.current_version)
    else:
        logger.info("%s already at version %s", record.number, record.current_version)
    return DecrementResult(record.current_version, changed)


def decrement_version(conn, identifier_class, record_id) -> Optional[int]:
    """Lower a number's version, stopping at 1.

    A record already at version 1 is left alone but its version is still
    returned. Returns None only when the number is not registered.
    """
    result = try_decrement(conn, identifier_class, record_id)
    return None if result is None else result.version


def seed(conn, identifier_class, upto_id, max_id=SEED_MAX_ID) -> int:
    """Populate an empty class table with numbers 1..upto_id.

    Used when moving an existing paper or spreadsheet register into the
    database, so that the next register call continues the sequence.
    Every seeded row gets version 1 and today's date. Nothing is inserted
    when upto_id is 0 or less.

    Returns:
        Number of rows inserted.

    Raises:
        SeedLimitError: upto_id is above max_id; nothing is inserted.
        PartitionNotEmptyError: the table already holds rows; nothing is
            inserted.
    """
    cls = IdentifierClass(identifier_class)
    if upto_id <= 0:
        logger.info("Seed %s up to %d: nothing to insert", cls.value, upto_id)
        return 0
    if upto_id > max_id:
        raise SeedLimitError(cls, upto_id, max_id)

    with transaction(conn):
        existing = count_records(conn, cls)
        if existing:
            raise PartitionNotEmptyError(cls, existing)
        execute_many(
            conn,
            f"INSERT INTO {cls.value} (ID, CurrentVersion, Date) "
            f"VALUES (?, 1, date('now'))",
            ((i,) for i in range(1, upto_id + 1)),
        )

    logger.info("Seeded %s with 1..%d", cls.value, upto_id)
    return upto_id
