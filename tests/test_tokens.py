"""Unit tests for auth/tokens.py -- PBKDF2 hashing and token generation."""

from __future__ import annotations

import base64
import hashlib

import pytest

from auth.exceptions import CryptoConfigurationError
from auth.tokens import PasswordHasher, generate_token


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(iterations=1_000)


def test_hash_produces_256_bit_key_and_16_byte_salt(hasher) -> None:
    key, salt = hasher.hash("hunter2")
    assert len(key) == 32
    assert len(salt) == 16


def test_derivation_matches_pbkdf2_hmac_sha512(hasher) -> None:
    salt = b"\x00" * 16
    expected = hashlib.pbkdf2_hmac("sha512", b"hunter2", salt, 1_000, dklen=32)
    assert hasher.derive("hunter2", salt) == expected


def test_valid_utf8_derivation_is_unchanged_by_surrogate_handling(hasher) -> None:
    salt = b"\x01" * 16
    expected = hashlib.pbkdf2_hmac("sha512", "pässwörd".encode("utf-8"), salt, 1_000, dklen=32)
    assert hasher.derive("pässwörd", salt) == expected


def test_fresh_salt_per_credential(hasher) -> None:
    key1, salt1 = hasher.hash("same")
    key2, salt2 = hasher.hash("same")
    assert salt1 != salt2
    assert key1 != key2


def test_verify(hasher) -> None:
    key, salt = hasher.hash("correct horse")
    assert hasher.verify("correct horse", key, salt)
    assert not hasher.verify("correct horse ", key, salt)
    assert not hasher.verify("correct horse", key, b"\x01" * 16)


def test_unavailable_algorithm_is_a_configuration_error(monkeypatch) -> None:
    monkeypatch.setattr(hashlib, "algorithms_available", {"md5"})
    with pytest.raises(CryptoConfigurationError):
        PasswordHasher()


def test_generate_token_is_base64_of_64_bytes() -> None:
    token = generate_token()
    assert len(base64.b64decode(token, validate=True)) == 64
    assert len(token) == 88


def test_generate_token_is_unique() -> None:
    assert len({generate_token() for _ in range(100)}) == 100
