"""Utilities for API key hashing and verification."""

from __future__ import annotations

import hmac

import bcrypt


def hash_api_key(api_key: str) -> str:
    """Hash a plain text API key using bcrypt."""
    return bcrypt.hashpw(api_key.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_api_key(candidate: str, hashed_key: str) -> bool:
    """Verify a presented token against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(candidate.encode("utf-8"), hashed_key.encode("utf-8"))
    except ValueError:
        return False


def constant_time_equals(candidate: str, expected: str) -> bool:
    return hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


__all__ = ["hash_api_key", "verify_api_key", "constant_time_equals"]
