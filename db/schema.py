"""
db/schema.py -- Durable tables for credentials and session tokens.

Tables are declared with SQLAlchemy Core so the store can run on SQLite or
PostgreSQL with only a connection string change. They are never created with
metadata.create_all(): each table has a named creation script, and the
migration runner guarantees every script runs at most once, in the order
listed in SCRIPTS.

credentials
  username is the only identifier -- there is no numeric id. password_hash
  holds the PBKDF2 derived key; the plaintext password is never stored.

tokens
  token is base64 of 64 random bytes. expiry is epoch milliseconds. A token is
  usable iff the row exists and expiry > now; expired rows are not swept.

Layer rule: no imports from api/, auth/, or cache/.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, Column, ForeignKey, LargeBinary, MetaData, String, Table
from sqlalchemy.engine import Connection

from db.migrations import MigrationRunner, Script
from db.pool import ConnectionPool

metadata = MetaData()

credentials = Table(
    "credentials",
    metadata,
    Column("username", String(256), primary_key=True),
    Column("role", String(32), nullable=False),
    Column("password_hash", LargeBinary, nullable=False),
    Column("salt", LargeBinary, nullable=False),
)

tokens = Table(
    "tokens",
    metadata,
    Column("token", String(256), primary_key=True),
    Column("username", String(256), ForeignKey("credentials.username"), nullable=False),
    Column("expiry", BigInteger, nullable=False),
)


def _create_credentials(conn: Connection) -> None:
    credentials.create(conn)


def _create_tokens(conn: Connection) -> None:
    tokens.create(conn)


# Order matters: tokens references credentials.
SCRIPTS: list[tuple[str, Script]] = [
    ("credentials init", _create_credentials),
    ("tokens init", _create_tokens),
]


def install_schema(pool: ConnectionPool, runner: MigrationRunner | None = None) -> list[str]:
    """Apply every pending creation script. Returns the names that ran."""
    runner = runner or MigrationRunner(pool)
    return runner.apply_all(SCRIPTS)
