"""Salted scrypt password hashing and constant-time verification."""

from __future__ import annotations

import hashlib
import hmac
import secrets

from ..config import get_settings

SALT_BYTES = 16
HASH_BYTES = 64


def random_bytes(n: int) -> bytes:
    """Return ``n`` bytes from the operating system CSPRNG."""
    return secrets.token_bytes(n)


def generate_salt() -> str:
    """Return a fresh 16-byte salt encoded as 32 lowercase hex characters."""
    return random_bytes(SALT_BYTES).hex()


def derive_hash(password: str, salt: str, length: int = HASH_BYTES) -> bytes:
    """Derive a scrypt key for ``password`` under ``salt``.

    Parameters
    ----------
    password:
        Plaintext password supplied by the caller.
    salt:
        Hex-encoded salt as stored on the account. The ASCII text of the hex
        string is the scrypt salt input, which keeps hashes written by earlier
        deployments verifiable.
    length:
        Number of output bytes.

    Returns
    -------
    bytes
        The derived key; identical inputs always produce identical output.
    """

    settings = get_settings()
    return hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt.encode("ascii"),
        n=settings.scrypt_n,
        r=settings.scrypt_r,
        p=settings.scrypt_p,
        maxmem=settings.scrypt_maxmem,
        dklen=length,
    )


def constant_time_equal(a: bytes, b: bytes) -> bool:
    """Compare two buffers without leaking the position of the first difference."""
    if len(a) != len(b):
        return False
    return hmac.compare_digest(a, b)


def hash_password(password: str, salt: str | None = None) -> tuple[str, str]:
    """Return ``(salt_hex, hash_hex)`` for ``password``, drawing a new salt when none is given."""
    if not isinstance(password, str) or not password.strip():
        raise ValueError("password must be a non-empty string")
    if salt is None:
        salt = generate_salt()
    return salt, derive_hash(password, salt).hex()


def verify_password(password: str, salt: str, expected_hash: str) -> bool:
    """Return ``True`` when ``password`` re-derives to ``expected_hash`` under ``salt``."""
    candidate = derive_hash(password, salt, HASH_BYTES)
    try:
        expected = bytes.fromhex(expected_hash)
    except (TypeError, ValueError):
        return False
    return constant_time_equal(candidate, expected)
