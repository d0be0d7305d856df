"""Loading of sensitive configuration values without echoing them."""
from __future__ import annotations

import os
from typing import Final

__all__ = ["MissingSecretError", "require_secret", "optional_secret", "is_placeholder"]


class MissingSecretError(RuntimeError):
    """Raised when a required secret environment variable is absent or a placeholder."""


_PLACEHOLDERS: Final[frozenset[str]] = frozenset(
    {
        "changeme",
        "change-me",
        "placeholder",
        "example",
        "secret",
        "todo",
        "xxx",
    }
)


def is_placeholder(value: str | None) -> bool:
    if value is None:
        return True
    candidate = value.strip().lower()
    return candidate == "" or candidate in _PLACEHOLDERS


def require_secret(name: str) -> str:
    """Return the stripped value of ``name`` or raise :class:`MissingSecretError`."""

    raw = os.getenv(name)
    if is_placeholder(raw):
        raise MissingSecretError(f"{name} must be set to a real value")
    return raw.strip()


def optional_secret(name: str) -> str | None:
    raw = os.getenv(name)
    return None if is_placeholder(raw) else raw.strip()
