"""
Dashboard credentials in htpasswd-compatible formats.

Two schemes are supported, both understood by Traefik's basicAuth middleware:

  apr1  salted Apache MD5 crypt, "$apr1$<salt>$<digest>" (default)
  sha   unsalted "{SHA}" + base64(SHA-1(password))
"""

import base64
import hashlib
import hmac
import secrets
from typing import Optional, Tuple

from traefik_setup.errors import ValidationError

ITOA64 = "./0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
APR1_MAGIC = "$apr1$"
SHA_PREFIX = "{SHA}"
SALT_LENGTH = 8


def validate_password(password: Optional[str], confirmation: Optional[str]) -> str:
    """
    Check that a password is non-empty and matches its confirmation.

    Raises:
        ValidationError: If the password is empty or the two entries differ
    """
    if not password:
        raise ValidationError("Password must not be empty")
    if password != confirmation:
        raise ValidationError("Passwords do not match")
    return password


def _to64(value: int, length: int) -> str:
    out = ""
    for _ in range(length):
        out += ITOA64[value & 0x3F]
        value >>= 6
    return out


def _apr1_digest(password: bytes, salt: bytes) -> str:
    magic = APR1_MAGIC.encode()
    ctx = password + magic + salt
    alt = hashlib.md5(password + salt + password).digest()

    remaining = len(password)
    while remaining > 0:
        ctx += alt[: min(16, remaining)]
        remaining -= 16

    bits = len(password)
    while bits:
        ctx += b"\x00" if bits & 1 else password[:1]
        bits >>= 1

    final = hashlib.md5(ctx).digest()
    for i in range(1000):
        round_input = password if i & 1 else final
        if i % 3:
            round_input += salt
        if i % 7:
            round_input += password
        round_input += final if i & 1 else password
        final = hashlib.md5(round_input).digest()

    f = final
    return (
        _to64((f[0] << 16) | (f[6] << 8) | f[12], 4)
        + _to64((f[1] << 16) | (f[7] << 8) | f[13], 4)
        + _to64((f[2] << 16) | (f[8] << 8) | f[14], 4)
        + _to64((f[3] << 16) | (f[9] << 8) | f[15], 4)
        + _to64((f[4] << 16) | (f[10] << 8) | f[5], 4)
        + _to64(f[11], 2)
    )


def apr1_hash(password: str, salt: Optional[str] = None) -> str:
    """Apache MD5 crypt of ``password``. A random 8-character salt is used if none is given."""
    if salt is None:
        salt = "".join(secrets.choice(ITOA64) for _ in range(SALT_LENGTH))
    salt = salt[:SALT_LENGTH]
    digest = _apr1_digest(password.encode("utf-8"), salt.encode("utf-8"))
    return f"{APR1_MAGIC}{salt}${digest}"


def sha_hash(password: str) -> str:
    digest = hashlib.sha1(password.encode("utf-8")).digest()
    return SHA_PREFIX + base64.b64encode(digest).decode("ascii")


def hash_password(password: str, scheme: str = "apr1") -> str:
    """
    Hash a password for the basicAuth middleware.

    Args:
        password: Clear-text password
        scheme: "apr1" or "sha"

    Returns:
        The encoded hash

    Raises:
        ValidationError: If the scheme is unknown
    """
    if scheme == "apr1":
        return apr1_hash(password)
    if scheme == "sha":
        return sha_hash(password)
    raise ValidationError(f"Unknown hash scheme: {scheme}")


def verify_password(password: str, hashed: str) -> bool:
    """Check a clear-text password against an apr1 or {SHA} hash."""
    if hashed.startswith(SHA_PREFIX):
        expected = sha_hash(password)
    elif hashed.startswith(APR1_MAGIC):
        salt = hashed[len(APR1_MAGIC):].split("$", 1)[0]
        expected = apr1_hash(password, salt)
    else:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), hashed.encode("utf-8"))


def basic_auth_user(user: str, password: str, scheme: str = "apr1") -> str:
    """Build a "user:hash" entry for basicAuth.users."""
    return f"{user}:{hash_password(password, scheme)}"


def split_basic_auth_user(entry: str) -> Tuple[str, str]:
    """Split a "user:hash" entry into (user, hash)."""
    user, _, hashed = entry.partition(":")
    return user, hashed
