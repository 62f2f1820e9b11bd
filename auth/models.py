"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). The store maps rows
into these; the service and routes pass them around.

Principal is what callers see. It never carries secret material -- password
hashes and salts live only on Credential, which does not leave auth/.

Layer rule: no imports from api/, db/, or cache/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


@dataclass(frozen=True)
class Principal:
    """An authenticated identity plus its role."""

    username: str
    role: Role


@dataclass
class Credential:
    """Persisted username, PBKDF2-derived key, and the salt it was derived with."""

    username: str
    role: Role
    password_hash: bytes
    salt: bytes

    def to_principal(self) -> Principal:
        return Principal(username=self.username, role=self.role)


@dataclass
class Token:
    """An active session grant. expiry is epoch milliseconds."""

    token: str
    username: str
    expiry: int


@dataclass(frozen=True)
class LoginResponse:
    principal: Principal
    token: str


@dataclass(frozen=True)
class CachedEntry:
    # cache_expiry is in clock seconds, independent of Token.expiry
    principal: Principal
    cache_expiry: float
