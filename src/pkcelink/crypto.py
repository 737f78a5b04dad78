"""Random string and PKCE helpers.

Everything here is deterministic except :func:`generate_random_string`,
which draws from :mod:`secrets`.  The ``S256`` challenge is computed as
``base64url(sha256(verifier))`` per :rfc:`7636`.
"""

from __future__ import annotations

import base64
import hashlib
import secrets

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"

# Bytes >= 248 would over-represent the first 8 characters.
_MAX_VALID_BYTE = 256 - (256 % len(ALPHABET))

STATE_LENGTH = 16
CODE_VERIFIER_LENGTH = 64


def generate_random_string(length: int) -> str:
    """Return *length* unbiased alphanumeric characters.

    Random bytes are drawn in batches of *length*; bytes at or above the
    largest multiple of 62 are rejected so every character is equally
    likely.  About 3% of bytes are rejected, so the loop almost always
    finishes in one or two batches.

    Args:
        length: Number of characters to produce.

    Returns:
        A string of ``[A-Za-z0-9]`` characters.

    Raises:
        ValueError: If *length* is negative.
    """
    if length < 0:
        raise ValueError(f"length must be non-negative, got {length}")

    chars: list[str] = []
    while len(chars) < length:
        for value in secrets.token_bytes(length):
            if len(chars) >= length:
                break
            if value < _MAX_VALID_BYTE:
                chars.append(ALPHABET[value % len(ALPHABET)])
    return "".join(chars)


def sha256(value: str | bytes) -> bytes:
    """Return the 32-byte SHA-256 digest of *value* (strings are UTF-8 encoded)."""
    if isinstance(value, str):
        value = value.encode("utf-8")
    return hashlib.sha256(value).digest()


def base64url_encode(data: bytes) -> str:
    """Base64url-encode *data* without ``=`` padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def create_code_challenge(code_verifier: str) -> str:
    """Derive the ``S256`` code challenge for *code_verifier*."""
    return base64url_encode(sha256(code_verifier))


def generate_state() -> str:
    """Generate an anti-CSRF ``state`` value."""
    return generate_random_string(STATE_LENGTH)


def generate_code_verifier() -> str:
    """Generate a PKCE code verifier (within the 43-128 character range)."""
    return generate_random_string(CODE_VERIFIER_LENGTH)
