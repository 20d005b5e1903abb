"""
Database connection and query utilities.

Provides a scoped connection per request and small helpers that run a query
on an explicitly passed connection, returning rows as dictionaries.

For testing, use set_connection_override() to inject a connection
that will be used instead of creating new ones. This enables
transaction rollback between tests.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator

import psycopg
from psycopg.rows import dict_row

from seriesdb.config import config
from seriesdb.errors import DataAccessError

logger = logging.getLogger(__name__)

# =============================================================================
# Connection Override (for testing)
# =============================================================================

_connection_override: psycopg.Connection | None = None


def set_connection_override(conn: psycopg.Connection) -> None:
    """
    Set a connection to use instead of creating new ones.

    Used by test fixtures to ensure all database operations run
    within a single transaction that can be rolled back.

    Args:
        conn: The connection to use for all subsequent operations
    """
    global _connection_override
    _connection_override = conn


def clear_connection_override() -> None:
    """Clear the connection override, restoring normal behavior."""
    global _connection_override
    _connection_override = None


# =============================================================================
# Connection Management
# =============================================================================


def connect() -> psycopg.Connection:
    """Open a new connection bounded by the configured timeouts."""
    try:
        return psycopg.connect(
            config.database_url,
            connect_timeout=config.connect_timeout,
            options=f"-c statement_timeout={config.statement_timeout_ms}",
        )
    except psycopg.Error as e:
        raise DataAccessError(f"Could not connect to the observation store: {e}") from e


@contextmanager
def get_connection() -> Iterator[psycopg.Connection]:
    """
    Context manager for the one connection a request works with.

    In normal operation:
        - Opens a new connection
        - Commits on successful exit
        - Rolls back on exception
        - Closes connection when done

    With override set (testing):
        - Returns the override connection
        - Does NOT commit, rollback, or close
        - Caller (test fixture) manages the transaction

    Driver errors raised inside the block are re-raised as DataAccessError.

    Usage:
        with get_connection() as conn:
            rows = fetch_all(conn, "SELECT ...")
    """
    if _connection_override is not None:
        try:
            yield _connection_override
        except psycopg.Error as e:
            raise DataAccessError(str(e)) from e
        return

    conn = connect()
    try:
        yield conn
        conn.commit()
    except psycopg.Error as e:
        conn.rollback()
        raise DataAccessError(str(e)) from e
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


# =============================================================================
# Query Helpers
# =============================================================================


def execute(conn: psycopg.Connection, query: str, params: tuple = None) -> int:
    """
    Execute a query without returning results.

    Use for UPDATE and DELETE statements.

    Args:
        conn: Connection of the current request
        query: SQL query with %s placeholders
        params: Tuple of parameter values

    Returns:
        Number of rows affected
    """
    with conn.cursor() as cur:
        cur.execute(query, params)
        return cur.rowcount


def fetch_one(conn: psycopg.Connection, query: str, params: tuple = None) -> dict[str, Any] | None:
    """
    Execute a query and return a single row as dict.

    Args:
        conn: Connection of the current request
        query: SQL query with %s placeholders
        params: Tuple of parameter values

    Returns:
        Dict of column names to values, or None if no row found
    """
    logger.debug("fetch_one: %s %s", " ".join(query.split()), params)
    with conn.cursor(row_factory=dict_row) as cur:
        cur.execute(query, params)
        return cur.fetchone()


def fetch_all(conn: psycopg.Connection, query: str, params: tuple = None) -> list[dict[str, Any]]:
    """
    Execute a query and return all rows as list of dicts.

    Args:
        conn: Connection of the current request
        query: SQL query with %s placeholders
        params: Tuple of parameter values

    Returns:
        List of dicts, empty list if no rows found
    """
    logger.debug("fetch_all: %s %s", " ".join(query.split()), params)
    with conn.cursor(row_factory=dict_row) as cur:
        cur.execute(query, params)
        return cur.fetchall()
