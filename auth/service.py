"""
auth/service.py -- Credential creation, login/logout, and token validation.

AuthenticationService is the only entry point handler code needs. It owns the
hashing policy (via PasswordHasher), issues and validates session tokens, and
is the sole authorization gate (verify_user).

Outcomes:
  No session is a normal answer, not an error. login() and validate_token()
  return None for an unknown user, a wrong password, an expired token, or a
  revoked token, and the two login failures are indistinguishable to the
  caller. verify_user() turns "no session" into Unauthorized and "wrong role"
  into Forbidden. Storage errors propagate unmodified.

Username enumeration:
  login() for an unknown username still runs one key derivation (against a
  dummy salt) so the response time matches a wrong-password attempt.

Cache staleness:
  validate_token() consults the TokenCache before the store. logout() deletes
  the durable row but leaves the cache alone, so a revoked token can keep
  validating for up to one cache TTL (60s by default). Lower
  TOKEN_CACHE_TTL_SECONDS to narrow that window.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Collection

from auth.exceptions import Forbidden, Unauthorized
from auth.models import Credential, LoginResponse, Principal, Role, Token
from auth.store import CredentialStore
from auth.tokens import PasswordHasher, generate_token
from cache.store import TokenCache
from core.config import Settings, get_settings
from db.pool import ConnectionPool

logger = logging.getLogger("sessionvault.auth")

DEFAULT_ROLES: frozenset[Role] = frozenset({Role.USER, Role.ADMIN})


class AuthenticationService:
    """Usage:
    service = AuthenticationService(pool)
    service.create_user(Role.ADMIN, "alice", "pw123")
    session = service.login("alice", "pw123")
    principal = service.verify_user(session.token, {Role.ADMIN})
    service.logout(session.token)
    """

    def __init__(
        self,
        pool: ConnectionPool,
        settings: Settings | None = None,
        cache: TokenCache | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings or get_settings()
        self._pool = pool
        self._clock = clock
        # Raises CryptoConfigurationError here, once, if PBKDF2-SHA512 is unusable.
        self._hasher = PasswordHasher(
            iterations=self.settings.pbkdf2_iterations,
            key_length=self.settings.derived_key_bytes,
            salt_length=self.settings.salt_bytes,
        )
        self._store = CredentialStore()
        self.cache = cache or TokenCache(ttl_seconds=self.settings.token_cache_ttl_seconds, clock=clock)
        # Timing equalization for unknown usernames
        self._dummy_salt = self._hasher.new_salt()

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def create_user(self, role: Role, username: str, password: str) -> None:
        """Create a credential. Raises IntegrityError if username is taken; never overwrites."""
        password_hash, salt = self._hasher.hash(password)
        credential = Credential(username=username, role=Role(role), password_hash=password_hash, salt=salt)
        with self._pool.transaction() as conn:
            self._store.insert_credential(conn, credential)
        logger.info("Created user %r (role=%s)", username, credential.role.value)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def login(self, username: str, password: str) -> LoginResponse | None:
        """Verify a username/password pair and issue a new session token.

        Returns None for an unknown username and for a wrong password alike.
        Each successful login issues a fresh token; earlier tokens stay valid.
        """
        with self._pool.connection() as conn:
            credential = self._store.get_credential(conn, username)

        # Key derivation runs outside the pooled connection; it is the slow part.
        if credential is None:
            self._hasher.derive(password, self._dummy_salt)
            logger.info("Login failed")
            return None
        if not self._hasher.verify(password, credential.password_hash, credential.salt):
            logger.info("Login failed")
            return None

        token = Token(
            token=generate_token(self.settings.token_bytes),
            username=credential.username,
            expiry=self._now_ms() + self.settings.token_expire_seconds * 1000,
        )
        with self._pool.transaction() as conn:
            self._store.insert_token(conn, token)

        principal = credential.to_principal()
        self.cache.store(token.token, principal)
        logger.info("Login succeeded for %r", principal.username)
        return LoginResponse(principal=principal, token=token.token)

    def logout(self, token: str) -> None:
        """Delete the session token. Deleting an unknown token is not an error.

        The cache entry is not evicted; see the module docstring.
        """
        with self._pool.transaction() as conn:
            removed = self._store.delete_token(conn, token)
        logger.debug("Logout removed %d token row(s)", removed)

    def validate_token(self, token: str | None) -> Principal | None:
        """Return the principal for a live session token, or None."""
        if not token:
            return None

        principal = self.cache.lookup(token)
        if principal is not None:
            return principal

        with self._pool.connection() as conn:
            principal = self._store.find_principal_by_token(conn, token, self._now_ms())
        if principal is None:
            return None

        self.cache.store(token, principal)
        return principal

    # ------------------------------------------------------------------
    # Authorization gate
    # ------------------------------------------------------------------

    def verify_user(self, token: str | None, allowed_roles: Collection[Role] = DEFAULT_ROLES) -> Principal:
        """Return the session's principal or raise.

        Raises Unauthorized if token is missing or does not map to a live
        session, Forbidden if the principal's role is not in allowed_roles.
        """
        principal = self.validate_token(token)
        if principal is None:
            raise Unauthorized()
        if principal.role not in allowed_roles:
            raise Forbidden()
        return principal
