"""Database connection management."""
import logging
import os
import sqlite3
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Set

from ..config import DB_PATH

logger = logging.getLogger(__name__)

# Column definitions for the activities table. New columns are appended
# to older databases by ensure_db_exists().
ACTIVITY_COLUMNS: Dict[str, str] = {
    "id": "TEXT PRIMARY KEY",
    "type": "TEXT NOT NULL",
    "date": "TEXT NOT NULL",
    "start_time": "TEXT NOT NULL",
    "end_time": "TEXT NOT NULL",
    "pre_value": "REAL DEFAULT 0",
    "post_value": "REAL DEFAULT 0",
    "pre_post_value": "REAL",
    "notes": "TEXT DEFAULT ''",
}


def get_connection(db_path: Optional[str] = None) -> sqlite3.Connection:
    """Create and return a database connection."""
    conn = sqlite3.connect(db_path or DB_PATH)
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def get_cursor(db_path: Optional[str] = None) -> Iterator[sqlite3.Cursor]:
    """Context manager for database operations."""
    conn = get_connection(db_path)
    try:
        cursor = conn.cursor()
        yield cursor
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def ensure_db_exists(db_path: Optional[str] = None) -> None:
    """Ensure database directory, table and every known column exist."""
    path = db_path or DB_PATH
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with get_cursor(path) as cur:
        cur.execute("SELECT name FROM sqlite_master WHERE type='table' AND name='activities'")
        if cur.fetchone() is None:
            columns = ", ".join(f"{name} {spec}" for name, spec in ACTIVITY_COLUMNS.items())
            cur.execute(f"CREATE TABLE activities ({columns})")
            logger.info("Created activities table at %s", path)
        else:
            cur.execute("PRAGMA table_info(activities)")
            existing: Set[str] = {row[1] for row in cur.fetchall()}
            for name, spec in ACTIVITY_COLUMNS.items():
                if name in existing:
                    continue
                # SQLite cannot add PRIMARY KEY / NOT NULL columns without defaults
                column_type = spec.split()[0]
                logger.info("Adding column: %s", name)
                cur.execute(f"ALTER TABLE activities ADD COLUMN {name} {column_type}")

        # Create index for date-based queries
        cur.execute("""
            CREATE INDEX IF NOT EXISTS idx_activities_date
            ON activities(date)
        """)
