"""
Configuration for the platform client.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Any, Mapping

from dotenv import load_dotenv

DEFAULT_BASE_URL = "https://www.bungie.net/Platform"
DEFAULT_LOCALE = "en"
DEFAULT_TIMEOUT_MS = 5000

# Unlimited concurrency
UNLIMITED = -1

API_KEY_HEADER = "X-API-Key"
CONTENT_TYPE_HEADER = "Content-Type"
CSRF_HEADER = "X-CSRF"
CONTENT_TYPE = "application/json"

_API_KEY_ENV = "BUNGIENET_API_KEY"
_MAX_CONCURRENT_ENV = "BUNGIENET_MAX_CONCURRENT"
_TIMEOUT_ENV = "BUNGIENET_TIMEOUT_MS"
_USER_CONTEXT_ENV = "BUNGIENET_USER_CONTEXT"
_BASE_URL_ENV = "BUNGIENET_BASE_URL"
_LOCALE_ENV = "BUNGIENET_LOCALE"


@dataclass
class PlatformOptions:
    api_key: str = ""
    max_concurrent: int = UNLIMITED
    timeout: int = DEFAULT_TIMEOUT_MS
    user_context: bool = False
    paused: bool = False
    respect_throttle: bool = True
    base_url: str = DEFAULT_BASE_URL
    default_locale: str = DEFAULT_LOCALE

    @classmethod
    def from_mapping(cls, opts: Mapping[str, Any]) -> "PlatformOptions":
        """Build options from a mapping, copying only the keys we know about."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in opts.items() if k in known})

    @property
    def timeout_seconds(self) -> float | None:
        """Timeout in seconds for the transport; None disables it."""
        if self.timeout is None or self.timeout <= 0:
            return None
        return self.timeout / 1000.0


def _to_int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _to_bool_env(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw not in {"0", "false", "no", "off"}


def load_options_from_env(*, dotenv: bool = True) -> PlatformOptions:
    """Read platform options from the environment (and a ``.env`` file, if present)."""
    if dotenv:
        load_dotenv()

    return PlatformOptions(
        api_key=os.environ.get(_API_KEY_ENV, "").strip(),
        max_concurrent=_to_int_env(_MAX_CONCURRENT_ENV, UNLIMITED),
        timeout=_to_int_env(_TIMEOUT_ENV, DEFAULT_TIMEOUT_MS),
        user_context=_to_bool_env(_USER_CONTEXT_ENV, False),
        base_url=os.environ.get(_BASE_URL_ENV, "").strip() or DEFAULT_BASE_URL,
        default_locale=os.environ.get(_LOCALE_ENV, "").strip() or DEFAULT_LOCALE,
    )
