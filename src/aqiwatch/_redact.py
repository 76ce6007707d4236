"""Helpers for safe debug logging.

Provider and transport URLs carry API keys and bot tokens. Everything that
ends up in a DEBUG log goes through these helpers first.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "appid",
        "token",
        "api_key",
        "apikey",
        "authorization",
        "owm_api_token",
        "telegram_api_token",
    }
)

_QUERY_SECRET_RE = re.compile(r"(?i)\b(appid|token|api_key|apikey)=([^&\s]+)")
_BOT_PATH_RE = re.compile(r"/bot[^/\s]+/")


def redact_url(url: str) -> str:
    """Mask query-string secrets and Telegram ``/bot<token>/`` path segments."""
    masked = _QUERY_SECRET_RE.sub(lambda m: f"{m.group(1)}=<redacted>", url)
    return _BOT_PATH_RE.sub("/bot<redacted>/", masked)


def _redact_string(value: str, max_string: int) -> str:
    value = redact_url(value)
    if len(value) > max_string:
        return f"{value[:max_string]}…<truncated>"
    return value


def redact_for_log(payload: Any, *, max_string: int = 512, max_depth: int = 20) -> Any:
    """Return a copy of a decoded JSON *payload* with secrets masked.

    Values under sensitive keys are replaced, URLs inside strings are
    passed through :func:`redact_url`, long strings are cut, and anything
    nested deeper than *max_depth* collapses to a marker.
    """

    def walk(value: Any, depth: int) -> Any:
        if depth > max_depth:
            return "<max-depth>"
        if isinstance(value, str):
            return _redact_string(value, max_string)
        if isinstance(value, Mapping):
            return {
                str(key): "<redacted>" if str(key).lower() in _SENSITIVE_VALUE_KEYS else walk(item, depth + 1)
                for key, item in value.items()
            }
        if isinstance(value, list | tuple):
            return [walk(item, depth + 1) for item in value]
        # JSON scalars: numbers, booleans, None
        return value

    return walk(payload, 0)
