"""
SQLite connection management.

``get_connection()`` yields a connection with foreign keys enforced, WAL
journalling, a busy timeout and ``sqlite3.Row`` rows. It commits on clean
exit and rolls back on exception, so one ``with`` block is one unit of work:
an allocation sync that fails halfway leaves no partial writes behind.

Usage::

    from site_waste_planner.db.connection import get_connection

    with get_connection("data/db/site_waste.db") as conn:
        ForecastItemRepository(conn).list_items("proj-1")
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

logger = logging.getLogger(__name__)


@contextmanager
def get_connection(
    db_path: str,
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
) -> Generator[sqlite3.Connection, None, None]:
    """Context manager yielding a configured SQLite connection.

    Parent directories of ``db_path`` are created if missing.

    Args:
        db_path: Path to the database file, or ``":memory:"``.
        wal_mode: Enable WAL journal mode.
        busy_timeout_ms: How long to wait on a locked database before
            raising ``OperationalError``.

    Yields:
        An open, configured ``sqlite3.Connection``.

    Raises:
        sqlite3.OperationalError: If the database cannot be opened or is locked.
    """
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, timeout=busy_timeout_ms / 1000)
    conn.row_factory = sqlite3.Row

    try:
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute(f"PRAGMA busy_timeout = {busy_timeout_ms};")
        if wal_mode:
            conn.execute("PRAGMA journal_mode = WAL;")

        yield conn
        conn.commit()

    except Exception:
        logger.debug("Rolling back transaction on %s", db_path)
        conn.rollback()
        raise

    finally:
        conn.close()
