"""Bounded SQLite connection pool.

The pool is an explicit handle: it is opened at startup, passed to every
catalog operation and closed at shutdown. Connections are created lazily
up to ``max_size``; callers beyond that block until one is returned.
"""

from __future__ import annotations

import logging
import queue
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from buildrepro.core.errors import ConfigurationError, StorageError

logger = logging.getLogger(__name__)


class ConnectionPool:
    """A fixed-capacity pool of SQLite connections.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file.
    max_size:
        Upper bound on open connections.
    create:
        Create the database file if it does not exist. When ``False`` a
        missing database is a fatal configuration error.
    timeout:
        Seconds to wait for a free connection before giving up.
    """

    def __init__(
        self,
        db_path: Path,
        *,
        max_size: int = 10,
        create: bool = False,
        timeout: float = 30.0,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._db_path = Path(db_path)
        self._max_size = max_size
        self._timeout = timeout
        self._idle: queue.LifoQueue[sqlite3.Connection] = queue.LifoQueue()
        self._opened = 0
        self._lock = threading.Lock()
        self._closed = False

        if create:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        elif not self._db_path.is_file():
            raise ConfigurationError(f"Database not found: {self._db_path}")
        # Open one connection eagerly so an unusable database fails at startup.
        self._idle.put(self._connect())
        self._opened = 1

    @property
    def db_path(self) -> Path:
        return self._db_path

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def opened(self) -> int:
        """Number of connections the pool has opened."""
        return self._opened

    def _connect(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(
                str(self._db_path),
                check_same_thread=False,
                isolation_level=None,  # transactions are explicit
                timeout=self._timeout,
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA foreign_keys=ON")
        except sqlite3.Error as exc:
            raise ConfigurationError(
                f"Cannot open database {self._db_path}: {exc}"
            ) from exc
        logger.debug("Opened connection to %s.", self._db_path)
        return conn

    def _acquire(self) -> sqlite3.Connection:
        if self._closed:
            raise StorageError("Connection pool is closed")
        try:
            return self._idle.get_nowait()
        except queue.Empty:
            pass
        with self._lock:
            may_open = self._opened < self._max_size
            if may_open:
                # reserve the slot before connecting outside the lock
                self._opened += 1
        if may_open:
            try:
                return self._connect()
            except BaseException:
                with self._lock:
                    self._opened -= 1
                raise
        try:
            return self._idle.get(timeout=self._timeout)
        except queue.Empty:
            raise StorageError(
                f"No database connection available after {self._timeout}s"
            ) from None

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Borrow a connection for the duration of the ``with`` block."""
        conn = self._acquire()
        try:
            yield conn
        finally:
            if conn.in_transaction:
                conn.rollback()
            if self._closed:
                conn.close()
            else:
                self._idle.put(conn)

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Borrow a connection inside ``BEGIN IMMEDIATE`` ... ``COMMIT``.

        Any exception rolls the transaction back and propagates.
        """
        with self.connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                logger.warning("Transaction rolled back on %s.", self._db_path)
                raise
            conn.execute("COMMIT")

    def close(self) -> None:
        """Close idle connections; borrowed ones close when returned."""
        self._closed = True
        while True:
            try:
                conn = self._idle.get_nowait()
            except queue.Empty:
                break
            conn.close()

    def __enter__(self) -> ConnectionPool:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
