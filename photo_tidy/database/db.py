"""
Database connection management.
"""
import sqlite3
import logging
import threading
from pathlib import Path
from typing import Optional

from ..exceptions import DatabaseError
from .schema import init_schema

class DBManager:
    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None
        # One connection serves every caller; all statements run under this lock
        self._lock = threading.RLock()

    def connect(self) -> sqlite3.Connection:
        """
        Connects to the SQLite database and configures pragmas.
        Creates the parent folder on first use.
        """
        if self._conn:
            return self._conn

        logging.info(f"Connecting to database: {self.db_path}")
        try:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            # Scans and tidy runs execute on worker threads; the lock serializes access
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)

            self._conn.execute("PRAGMA journal_mode=WAL;")
            self._conn.execute("PRAGMA synchronous=NORMAL;")
            self._conn.execute("PRAGMA busy_timeout=5000;")
            self._conn.execute("PRAGMA foreign_keys=ON;")

            init_schema(self._conn)
        except (OSError, sqlite3.Error) as e:
            self.close()
            raise DatabaseError(f"open database {self.db_path}: {e}") from e

        return self._conn

    def close(self):
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None

    def __enter__(self):
        return self.connect()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def write_lock(self) -> threading.RLock:
        """Returns the lock guarding every operation on the shared connection."""
        return self._lock
