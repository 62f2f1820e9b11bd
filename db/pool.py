"""
db/pool.py -- Bounded pool of reusable store connections plus a transaction helper.

Pattern: Object Pool. ObjectPool is generic: it knows nothing about databases,
only how to build an instance (factory), how to make a returned instance safe
for the next caller (reset), and how to throw one away (dispose).
ConnectionPool binds it to SQLAlchemy Connection objects and adds the
begin/commit/rollback discipline.

Backpressure:
  acquire() blocks while every instance is checked out. Pool size is therefore
  the hard upper bound on concurrent store operations. There is no timeout and
  no retry -- a caller that needs cancellation must implement it outside.

Failure semantics:
  Factory errors (connection refused, bad URL) and transaction-control errors
  propagate unmodified as sqlalchemy.exc.SQLAlchemyError. A connection whose
  reset hook fails is disposed rather than returned to the idle set.

Layer rule: no imports from api/, auth/, or cache/.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Generic, TypeVar

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import NullPool

logger = logging.getLogger("sessionvault.db")

T = TypeVar("T")
R = TypeVar("R")


class ObjectPool(Generic[T]):
    """Fixed-capacity pool of lazily constructed, reusable instances.

    Usage:
        pool = ObjectPool(size=2, factory=make_thing, reset=clear_thing)
        with pool.instance() as thing:
            thing.do_work()
    """

    def __init__(
        self,
        size: int,
        factory: Callable[[], T],
        reset: Callable[[T], None] | None = None,
        dispose: Callable[[T], None] | None = None,
    ) -> None:
        if size < 1:
            raise ValueError("pool size must be at least 1")
        self._size = size
        self._factory = factory
        self._reset = reset
        self._dispose = dispose
        self._idle: list[T] = []
        self._created = 0
        self._cond = threading.Condition()

    @property
    def size(self) -> int:
        return self._size

    @property
    def in_use(self) -> int:
        """Number of instances currently checked out."""
        with self._cond:
            return self._created - len(self._idle)

    def acquire(self) -> T:
        """Return an idle instance, build a new one, or block until one is released."""
        with self._cond:
            while not self._idle and self._created >= self._size:
                self._cond.wait()
            if self._idle:
                return self._idle.pop()
            # Reserve the slot before leaving the lock; the factory may be slow.
            self._created += 1
        try:
            return self._factory()
        except BaseException:
            self._free_slot()
            raise

    def release(self, item: T) -> None:
        """Reset an instance and make it available to the next caller.

        If the reset hook raises, the instance is disposed, its slot is freed
        for a fresh instance, and the error propagates.
        """
        if self._reset is not None:
            try:
                self._reset(item)
            except BaseException:
                logger.warning("Discarding pooled instance after failed reset")
                self._discard(item)
                raise
        with self._cond:
            self._idle.append(item)
            self._cond.notify()

    @contextmanager
    def instance(self) -> Iterator[T]:
        """Scoped use: the instance is released on every exit path."""
        item = self.acquire()
        try:
            yield item
        except BaseException:
            # A failed release must not mask the error raised by the block.
            try:
                self.release(item)
            except Exception:
                logger.exception("Release failed while handling an earlier error")
            raise
        self.release(item)

    def use_instance(self, block: Callable[[T], R]) -> R:
        with self.instance() as item:
            return block(item)

    def close(self) -> None:
        """Dispose every idle instance. Checked-out instances are left to their holders."""
        with self._cond:
            idle, self._idle = self._idle, []
            self._created -= len(idle)
            self._cond.notify_all()
        for item in idle:
            if self._dispose is not None:
                self._dispose(item)

    def _discard(self, item: T) -> None:
        try:
            if self._dispose is not None:
                self._dispose(item)
        finally:
            self._free_slot()

    def _free_slot(self) -> None:
        with self._cond:
            self._created -= 1
            self._cond.notify()


# ---------------------------------------------------------------------------
# SQLAlchemy connections
# ---------------------------------------------------------------------------


def _reset_connection(conn: Connection) -> None:
    # A connection must never go back to the pool mid-transaction. Reads
    # autobegin under SQLAlchemy 2.x, so roll back whatever is still open.
    if conn.in_transaction():
        conn.rollback()


def _close_connection(conn: Connection) -> None:
    conn.close()


class ConnectionPool(ObjectPool[Connection]):
    """ObjectPool of SQLAlchemy Connections with a flat transaction helper.

    Usage:
        pool = create_pool("sqlite:///sessionvault.db", size=4)
        with pool.transaction() as conn:
            conn.execute(...)
        pool.close()
    """

    def __init__(self, engine: Engine, size: int) -> None:
        super().__init__(
            size=size,
            factory=engine.connect,
            reset=_reset_connection,
            dispose=_close_connection,
        )
        self.engine = engine

    def connection(self):
        """Scoped use of a pooled connection. Anything left open is rolled back on release."""
        return self.instance()

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Begin a transaction, yield the connection, commit or roll back.

        Commits when the block completes. Rolls back and re-raises the
        original error otherwise. Transactions are flat: nesting a
        transaction() inside another acquires a second connection.
        """
        with self.instance() as conn:
            trans = conn.begin()
            try:
                yield conn
            except BaseException:
                try:
                    trans.rollback()
                except Exception:
                    logger.exception("Rollback failed; re-raising the original error")
                raise
            trans.commit()

    def with_transaction(self, block: Callable[[Connection], R]) -> R:
        with self.transaction() as conn:
            return block(conn)

    def close(self) -> None:
        super().close()
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable foreign keys and WAL journal mode for each new SQLite connection.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections. Foreign keys are off by default in SQLite, which would let a
    token reference a username that does not exist.
    """
    dbapi_conn.execute("PRAGMA foreign_keys=ON")
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def create_pool(database_url: str, size: int) -> ConnectionPool:
    """Build an engine for database_url and wrap it in a ConnectionPool.

    The engine uses NullPool: connection reuse is owned by ConnectionPool,
    so SQLAlchemy's own pooling is switched off to avoid two layers of it.
    Note that each connection to a plain "sqlite:///:memory:" URL is a
    separate empty database; use size=1 or a shared-cache URI there.
    """
    connect_args: dict = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(database_url, connect_args=connect_args, poolclass=NullPool)
    if database_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_sqlite_pragmas)
    logger.info("Connection pool created (size=%d, dialect=%s)", size, engine.dialect.name)
    return ConnectionPool(engine, size)
