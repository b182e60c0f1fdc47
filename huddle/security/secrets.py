"""Helpers for secrets read from the environment and shared-token checks."""
from __future__ import annotations

import hmac
import os
from typing import Final

__all__ = ["MissingSecretError", "require_secret", "is_placeholder", "matches_shared_token"]


class MissingSecretError(RuntimeError):
    """Raised when a required secret environment variable is not set."""


_PLACEHOLDER_VALUES: Final[set[str]] = {
    "changeme",
    "change-me",
    "placeholder",
    "example",
    "sample",
    "your-key-here",
}


def is_placeholder(value: str | None) -> bool:
    if not value:
        return True
    normalized = value.strip().lower()
    return not normalized or normalized in _PLACEHOLDER_VALUES


def require_secret(name: str) -> str:
    """Return a trimmed secret value or raise :class:`MissingSecretError`."""

    value = os.getenv(name)
    if is_placeholder(value):
        raise MissingSecretError(f"Environment variable {name} is required and must not use placeholder defaults")
    return value.strip()


def matches_shared_token(expected: str | None, provided: str | None) -> bool:
    """Constant-time comparison that never accepts an unset or placeholder secret."""

    if is_placeholder(expected) or not provided:
        return False
    return hmac.compare_digest(expected.strip().encode(), provided.strip().encode())
