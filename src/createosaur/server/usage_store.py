"""SQLite store for the authoritative anonymous trial counts."""

import logging
import sqlite3
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Usage:
    """Counts for one fingerprint in the current quota window."""

    used: int
    max_allowed: int

    @property
    def remaining(self) -> int:
        return max(0, self.max_allowed - self.used)


@dataclass(frozen=True)
class Reservation:
    """Outcome of a reserve() call."""

    granted: bool
    usage: Usage


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UsageStore:
    """Trial usage keyed by (fingerprint, window).

    Each request reserves one generation before calling the vendor and
    releases it again if the generation fails, so two concurrent requests
    for the same fingerprint can never both take the last slot.
    """

    def __init__(
        self,
        db_path: Path | str,
        trial_limit: int = 3,
        window_days: int = 30,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """Initialize the usage database.

        Args:
            db_path: Path to the SQLite file, or ``":memory:"``
            trial_limit: Allowance for a fingerprint seen for the first time
            window_days: Length of one quota window
            clock: Source of the current time
        """
        self.trial_limit = trial_limit
        self.window_days = window_days
        self._clock = clock
        self._lock = threading.Lock()

        if str(db_path) == ":memory:":
            self.db_path = None
            # A single shared connection keeps the in-memory database alive
            self._memory_conn: sqlite3.Connection | None = sqlite3.connect(
                ":memory:", check_same_thread=False, isolation_level=None
            )
        else:
            self.db_path = Path(db_path)
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._memory_conn = None

        self._initialize_db()
        logger.info(f"Initialized usage database at {db_path}")

    def _connect(self) -> sqlite3.Connection:
        if self._memory_conn is not None:
            return self._memory_conn
        # Autocommit mode; transactions are opened explicitly
        return sqlite3.connect(self.db_path, timeout=30, isolation_level=None)

    def _close(self, conn: sqlite3.Connection) -> None:
        if conn is not self._memory_conn:
            conn.close()

    def _initialize_db(self) -> None:
        conn = self._connect()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS anonymous_usage (
                    fingerprint TEXT NOT NULL,
                    quota_window TEXT NOT NULL,
                    session_id TEXT NOT NULL DEFAULT '',
                    generations_used INTEGER NOT NULL DEFAULT 0,
                    max_generations INTEGER NOT NULL,
                    ip_address TEXT NOT NULL DEFAULT '',
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (fingerprint, quota_window)
                )
                """)
        finally:
            self._close(conn)

    def current_window(self) -> str:
        """Window key: the start date of the window containing now."""
        now = self._clock()
        days = now.toordinal() // self.window_days * self.window_days
        return datetime.fromordinal(days).date().isoformat()

    def get(self, fingerprint: str) -> Usage:
        """Current counts, without reserving anything."""
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT generations_used, max_generations FROM anonymous_usage "
                "WHERE fingerprint = ? AND quota_window = ?",
                (fingerprint, self.current_window()),
            ).fetchone()
        finally:
            self._close(conn)

        if row is None:
            return Usage(0, self.trial_limit)
        return Usage(row[0], row[1])

    def reserve(self, fingerprint: str, session_id: str = "", ip_address: str = "") -> Reservation:
        """Atomically take one generation if the fingerprint has quota left.

        Returns:
            Reservation with ``granted`` False and the unchanged counts when
            the trial is already exhausted
        """
        window = self.current_window()
        now = self._clock().isoformat()

        with self._lock:
            conn = self._connect()
            try:
                conn.execute("BEGIN IMMEDIATE")
                try:
                    conn.execute(
                        """
                        INSERT OR IGNORE INTO anonymous_usage
                            (fingerprint, quota_window, session_id, generations_used,
                             max_generations, ip_address, updated_at)
                        VALUES (?, ?, ?, 0, ?, ?, ?)
                        """,
                        (fingerprint, window, session_id, self.trial_limit, ip_address, now),
                    )
                    cursor = conn.execute(
                        """
                        UPDATE anonymous_usage
                        SET generations_used = generations_used + 1,
                            session_id = ?, ip_address = ?, updated_at = ?
                        WHERE fingerprint = ? AND quota_window = ?
                          AND generations_used < max_generations
                        """,
                        (session_id, ip_address, now, fingerprint, window),
                    )
                    granted = cursor.rowcount > 0
                    row = conn.execute(
                        "SELECT generations_used, max_generations FROM anonymous_usage "
                        "WHERE fingerprint = ? AND quota_window = ?",
                        (fingerprint, window),
                    ).fetchone()
                    conn.execute("COMMIT")
                except sqlite3.Error:
                    conn.execute("ROLLBACK")
                    raise
            finally:
                self._close(conn)

        usage = Usage(row[0], row[1])
        if granted:
            logger.debug(f"Reserved generation {usage.used}/{usage.max_allowed} for {fingerprint}")
        return Reservation(granted, usage)

    def release(self, fingerprint: str) -> Usage:
        """Give back one reservation after a failed generation."""
        window = self.current_window()

        with self._lock:
            conn = self._connect()
            try:
                conn.execute("BEGIN IMMEDIATE")
                try:
                    conn.execute(
                        """
                        UPDATE anonymous_usage
                        SET generations_used = generations_used - 1
                        WHERE fingerprint = ? AND quota_window = ? AND generations_used > 0
                        """,
                        (fingerprint, window),
                    )
                    conn.execute("COMMIT")
                except sqlite3.Error:
                    conn.execute("ROLLBACK")
                    raise
            finally:
                self._close(conn)

        return self.get(fingerprint)

    def close(self) -> None:
        if self._memory_conn is not None:
            self._memory_conn.close()
            self._memory_conn = None
