"""
db/migrations.py -- Apply named schema scripts exactly once per store.

Each script is a callable taking a Connection. The runner records the name of
every applied script in schema_migrations; a name that is already recorded is
skipped. The script and its bookkeeping row share one transaction, so a
failing script records nothing and is retried on the next startup.

Two processes racing on the same name both try to insert the bookkeeping row;
the loser hits the primary key, rolls back, and the IntegrityError propagates.

Layer rule: no imports from api/, auth/, or cache/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, select
from sqlalchemy.engine import Connection

from db.pool import ConnectionPool

logger = logging.getLogger("sessionvault.db.migrations")

Script = Callable[[Connection], None]

_metadata = MetaData()

_migrations = Table(
    "schema_migrations",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(256), nullable=False, unique=True),
    Column("applied_at", String(32), nullable=False),
)


class MigrationRunner:
    """Usage:
    runner = MigrationRunner(pool)
    runner.apply_once("credentials init", create_credentials)
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool
        with self._pool.transaction() as conn:
            _metadata.create_all(conn)

    def apply_once(self, name: str, script: Script) -> bool:
        """Run script unless name has already been applied. Returns True if it ran."""
        with self._pool.transaction() as conn:
            done = conn.execute(select(_migrations.c.id).where(_migrations.c.name == name)).first()
            if done is not None:
                return False
            script(conn)
            conn.execute(
                _migrations.insert().values(name=name, applied_at=datetime.now(timezone.utc).isoformat())
            )
        logger.info("Applied migration %r", name)
        return True

    def apply_all(self, scripts: Iterable[tuple[str, Script]]) -> list[str]:
        """Apply scripts in declaration order. Returns the names that ran."""
        return [name for name, script in scripts if self.apply_once(name, script)]

    def applied(self) -> list[str]:
        """Names of applied scripts, oldest first."""
        with self._pool.connection() as conn:
            rows = conn.execute(select(_migrations.c.name).order_by(_migrations.c.id)).fetchall()
        return [row.name for row in rows]
