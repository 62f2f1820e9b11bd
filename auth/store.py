"""
auth/store.py -- SQLAlchemy Core persistence for credentials and session tokens.

Pattern: Repository + Data Mapper. CredentialStore is the repository;
_row_to_credential / _row_to_principal are the mappers. The service and the
routes never touch SQL directly.

Unlike a store that owns its engine, every method here takes the Connection to
run on. The service decides the unit of work: it acquires a pooled connection
or opens a transaction and passes it in, so several statements can share one
transaction without the store knowing about the pool.

Security:
  All queries use bound parameters. No f-strings in SQL.

Errors:
  Constraint violations propagate as sqlalchemy.exc.IntegrityError. A
  duplicate username is never turned into an update.

Layer rule: no imports from api/ or cache/.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.engine import Connection

from auth.models import Credential, Principal, Role, Token
from db.schema import credentials, tokens


class CredentialStore:
    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def insert_credential(self, conn: Connection, credential: Credential) -> None:
        """Insert a new credential.

        Raises sqlalchemy.exc.IntegrityError if the username already exists.
        """
        conn.execute(
            credentials.insert().values(
                username=credential.username,
                role=credential.role.value,
                password_hash=credential.password_hash,
                salt=credential.salt,
            )
        )

    def get_credential(self, conn: Connection, username: str) -> Credential | None:
        """Look up a credential by exact username (case-sensitive). Returns None if not found."""
        row = conn.execute(credentials.select().where(credentials.c.username == username)).fetchone()
        return _row_to_credential(row) if row is not None else None

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def insert_token(self, conn: Connection, token: Token) -> None:
        """Insert a session token. The username must reference an existing credential."""
        conn.execute(tokens.insert().values(token=token.token, username=token.username, expiry=token.expiry))

    def delete_token(self, conn: Connection, token: str) -> int:
        """Delete a token by exact match. Returns the number of rows removed (0 or 1)."""
        result = conn.execute(tokens.delete().where(tokens.c.token == token))
        return result.rowcount

    def find_principal_by_token(self, conn: Connection, token: str, now_ms: int) -> Principal | None:
        """Return the principal owning token if the token exists and expiry > now_ms."""
        row = conn.execute(
            select(credentials.c.username, credentials.c.role)
            .select_from(credentials.join(tokens, tokens.c.username == credentials.c.username))
            .where((tokens.c.token == token) & (tokens.c.expiry > now_ms))
        ).fetchone()
        return _row_to_principal(row) if row is not None else None


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_credential(row) -> Credential:
    return Credential(
        username=row.username,
        role=Role(row.role),
        password_hash=bytes(row.password_hash),
        salt=bytes(row.salt),
    )


def _row_to_principal(row) -> Principal:
    return Principal(username=row.username, role=Role(row.role))
