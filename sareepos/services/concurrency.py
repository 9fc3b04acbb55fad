# Overview: Service-layer operations for concurrency; transaction and locking helpers.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def write_transaction_statements(dialect: str, server_version: tuple | None, timeout_seconds: int) -> list[str]:
    """
    SQL that opens a write transaction bounded by `timeout_seconds`.

    SQLite: BEGIN IMMEDIATE takes the database write lock up front, so two
    checkouts serialize instead of both reading stale quantities. The wait
    for that lock is bounded by the connection timeout (engine_options_for).

    PostgreSQL: transaction_timeout (17+) bounds the whole transaction. Older
    servers get the closest bound available: every statement and every idle
    gap inside the transaction is limited to the timeout.
    """
    if dialect == "sqlite":
        return ["BEGIN IMMEDIATE"]
    if dialect == "postgresql":
        timeout_ms = int(timeout_seconds) * 1000
        statements = [
            f"SET LOCAL statement_timeout = {timeout_ms}",
            f"SET LOCAL idle_in_transaction_session_timeout = {timeout_ms}",
        ]
        if server_version and server_version >= (17,):
            statements.append(f"SET LOCAL transaction_timeout = {timeout_ms}")
        return statements
    return []


def begin_write_transaction() -> None:
    """Start the current session's transaction as a bounded write transaction."""
    dialect = db.engine.dialect
    statements = write_transaction_statements(
        dialect.name,
        getattr(dialect, "server_version_info", None),
        current_app.config.get("TRANSACTION_TIMEOUT_SECONDS", 30),
    )
    for sql in statements:
        db.session.execute(text(sql))


def is_unique_violation(exc: IntegrityError, *names: str) -> bool:
    """
    True when the IntegrityError is a uniqueness failure on one of `names`
    (constraint name or column name, matched against the driver message).
    """
    message = str(getattr(exc, "orig", exc)).lower()
    if "unique" not in message and "duplicate" not in message:
        return False
    return any(name.lower() in message for name in names)


def run_with_retry(
    func,
    *,
    attempts: int = 3,
    backoff_base: float = 0.1,
    retry_on: tuple[type[BaseException], ...] = (OperationalError, StaleDataError),
):
    """
    Execute a DB operation with retry on the given failures.

    Defaults retry OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). The session is rolled back before each
    new attempt.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except retry_on as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
