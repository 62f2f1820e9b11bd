"""
auth/exceptions.py -- Error taxonomy for the authentication service.

No-session outcomes (unknown user, wrong password, expired or revoked token)
are NOT exceptions: the service returns None for them. Exceptions are reserved
for the authorization gate and for failures the caller cannot treat as a
normal answer.

StorageError is SQLAlchemy's own base class. Constraint violations and
connectivity failures propagate from the store unmodified; callers catch
sqlalchemy.exc.IntegrityError (a subclass) to detect a duplicate username.
"""

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError

StorageError = SQLAlchemyError


class AuthError(Exception):
    """Base class for authentication and authorization failures."""


class Unauthorized(AuthError):
    """No token was presented, or the token does not map to a live session."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class Forbidden(AuthError):
    """The session is valid but the principal's role is not allowed."""

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)


class CryptoConfigurationError(AuthError):
    """The key-derivation algorithm is unavailable or misconfigured.

    Raised once, at service construction. The environment does not change at
    runtime, so there is nothing for a per-call handler to recover from.
    """
