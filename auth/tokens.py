"""
auth/tokens.py -- Password hashing and session token generation.

Security design decisions:
  Passwords: PBKDF2-HMAC-SHA512 via hashlib.pbkdf2_hmac. 10,000 iterations and
       a 256-bit derived key by default; both come from Settings so tests can
       shrink the iteration count. A fresh 16-byte salt is drawn from the
       secrets module for every credential. Only the derived key and the salt
       are persisted.

  Comparison: hmac.compare_digest, so verification time does not depend on
       how many leading bytes of the derived key match.

  Session tokens: 64 bytes from secrets.token_bytes, base64 encoded (standard
       alphabet, padded -- 88 characters). 512 bits of entropy make guessing
       infeasible, so tokens are stored as-is and looked up by equality.

  Availability: PasswordHasher probes the KDF when constructed. A missing
       algorithm surfaces as CryptoConfigurationError at startup instead of
       failing every login.

Layer rule: no imports from api/, db/, or cache/.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets

from auth.exceptions import CryptoConfigurationError

_DIGEST = "sha512"


class PasswordHasher:
    """Salted PBKDF2-HMAC-SHA512 key derivation.

    Usage:
        hasher = PasswordHasher(iterations=10_000)
        key, salt = hasher.hash("secret")
        hasher.verify("secret", key, salt)   # True
    """

    def __init__(self, iterations: int = 10_000, key_length: int = 32, salt_length: int = 16) -> None:
        self.iterations = iterations
        self.key_length = key_length
        self.salt_length = salt_length
        self._probe()

    def _probe(self) -> None:
        if _DIGEST not in hashlib.algorithms_available:
            raise CryptoConfigurationError(f"hash algorithm {_DIGEST!r} is not available")
        try:
            hashlib.pbkdf2_hmac(_DIGEST, b"probe", b"probe-salt", 1, dklen=self.key_length)
        except (ValueError, OverflowError) as exc:
            raise CryptoConfigurationError(f"PBKDF2-HMAC-{_DIGEST.upper()} unusable: {exc}") from exc

    def new_salt(self) -> bytes:
        return secrets.token_bytes(self.salt_length)

    def derive(self, password: str, salt: bytes) -> bytes:
        """Derive the key for password under salt.

        surrogatepass lets a str holding lone surrogates encode instead of
        raising; every valid UTF-8 password encodes exactly as before.
        """
        return hashlib.pbkdf2_hmac(
            _DIGEST,
            password.encode("utf-8", "surrogatepass"),
            salt,
            self.iterations,
            dklen=self.key_length,
        )

    def hash(self, password: str) -> tuple[bytes, bytes]:
        """Return (derived_key, salt) for a new credential."""
        salt = self.new_salt()
        return self.derive(password, salt), salt

    def verify(self, password: str, password_hash: bytes, salt: bytes) -> bool:
        """Return True if password derives to password_hash under salt. Constant-time compare."""
        return hmac.compare_digest(self.derive(password, salt), password_hash)


def generate_token(nbytes: int = 64) -> str:
    """Return a new session token: base64 of nbytes cryptographically random bytes."""
    return base64.b64encode(secrets.token_bytes(nbytes)).decode("ascii")
