"""Centralized logging helpers.

Provides the pieces every module uses to log consistently:
- configure_logging(): one-time root logger setup driven by the environment
- extra_context(): build the ``extra=`` mapping for structured fields
- is_debug_enabled(): cheap guard around expensive debug traces
- Timer: context manager measuring elapsed milliseconds
- safe_url()/redact(): keep credentials out of log output
"""
from __future__ import annotations

import logging
import os
import re
import time
import urllib.parse
from typing import Any, Dict, Optional

from constants import Constants

_SENSITIVE_QUERY_KEYS = {"apikey", "api_key", "token", "access_token", "password", "key", "secret"}
_RESERVED_RECORD_KEYS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}
_CREDENTIAL_PATTERN = re.compile(r"(?i)(password|token|apikey|api_key|secret)=([^&\s]+)")


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once.

    Args:
        level: Optional level name; defaults to NUGETFEED_LOG_LEVEL or INFO.
    """
    level_name = (level or os.environ.get(Constants.ENV_LOG_LEVEL) or "INFO").upper()
    level_value = getattr(logging, level_name, logging.INFO)
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=Constants.LOG_FORMAT)
    root.setLevel(level_value)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build a mapping suitable for ``logger.x(..., extra=...)``.

    None values are dropped and keys that would clash with LogRecord
    attributes are prefixed with ``ctx_``.
    """
    context: Dict[str, Any] = {}
    for key, value in fields.items():
        if value is None:
            continue
        if key in _RESERVED_RECORD_KEYS:
            key = f"ctx_{key}"
        context[key] = value
    return context


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when the logger would emit DEBUG records."""
    return logger.isEnabledFor(logging.DEBUG)


class Timer:
    """Measure wall-clock duration of a block in milliseconds."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        self._end = None
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> int:
        """Elapsed time so far (or total, once the block exited)."""
        end = self._end if self._end is not None else time.perf_counter()
        return int((end - self._start) * 1000)


def safe_url(url: Optional[str]) -> str:
    """Strip userinfo and credential-like query values from a URL."""
    if not url:
        return ""
    try:
        parts = urllib.parse.urlsplit(url)
    except ValueError:
        return redact(url)
    netloc = parts.netloc.rsplit("@", 1)[-1]
    query = parts.query
    if query:
        pairs = urllib.parse.parse_qsl(query, keep_blank_values=True)
        if any(k.lower() in _SENSITIVE_QUERY_KEYS for k, _ in pairs):
            query = "&".join(
                f"{k}=***" if k.lower() in _SENSITIVE_QUERY_KEYS else f"{k}={v}"
                for k, v in pairs
            )
    return urllib.parse.urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))


def redact(text: str) -> str:
    """Mask credential assignments inside free text."""
    if not text:
        return text
    return _CREDENTIAL_PATTERN.sub(lambda m: f"{m.group(1)}=***", text)
