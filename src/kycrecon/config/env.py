"""Environment variable loaders for configuration."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from .errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Sequence


def optional_env(name: str) -> str | None:
    """Return the stripped value of ``name``, treating blank as unset."""

    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def env_list(name: str, default: Sequence[str]) -> tuple[str, ...]:
    """Comma-separated list; an explicitly empty value yields an empty tuple."""

    raw = os.getenv(name)
    if raw is None:
        return tuple(default)
    return tuple(item.strip().lower() for item in raw.split(",") if item.strip())


def env_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = optional_env(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}", variable=name) from exc
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}", variable=name)
    return value
