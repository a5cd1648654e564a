"""Error taxonomy & redaction.

Three families of failure flow through a sync run:

- ``ConfigError`` (see :mod:`linearsync.config`): fatal, raised before any I/O.
- Lookup errors: ``TeamNotFoundError`` is fatal because nothing downstream can
  run without a team id; actor and issue misses are logged and skipped by the
  component that hits them and never raised.
- ``TransportError``: any failed call against GitHub or Linear. Collection
  degrades to an empty or partial result, execution records a failed item.

Public helpers:
- classify_error(exc) -> ErrorInfo
- redact(text) -> str
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

_SENSITIVE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"ghp_[A-Za-z0-9]{20,40}"),  # GitHub classic tokens
    re.compile(r"github_pat_\w{20,}"),  # GitHub fine-grained tokens
    re.compile(r"lin_api_[A-Za-z0-9]{20,}"),  # Linear personal API keys
    re.compile(r"(?i)(authorization:\s*)(bearer\s+)?\S+"),
]

_REDACTION_PLACEHOLDER = "<redacted>"

HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_TOO_MANY_REQUESTS = 429
HTTP_SERVER_ERROR = 500


class TransportError(RuntimeError):
    """Raised when a call against the source or destination tracker fails."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        response_text: str | None = None,
    ):
        super().__init__(message)
        self.status = status
        self.response_text = response_text


class TeamNotFoundError(LookupError):
    def __init__(self, team: str, available: list[str]):
        self.team = team
        self.available = available
        listing = ", ".join(available) if available else "none"
        super().__init__(f"Linear team '{team}' not found. Available teams: {listing}")


@dataclass
class ErrorInfo:
    category: str
    message: str
    original_type: str
    transient: bool = False
    details: dict[str, Any] | None = None


def redact(text: str) -> str:
    """Redact API tokens in arbitrary text."""
    if not text:
        return text
    redacted = text
    for pat in _SENSITIVE_PATTERNS:
        if pat.groups:
            redacted = pat.sub(lambda m: m.group(1) + _REDACTION_PLACEHOLDER, redacted)
        else:
            redacted = pat.sub(_REDACTION_PLACEHOLDER, redacted)
    return redacted


def classify_error(exc: BaseException) -> ErrorInfo:
    """Best-effort classification of an exception.

    HTTP status wins when the exception carries one (``TransportError``);
    otherwise keywords in the message decide. Falls back to ``generic``.
    """
    msg = str(exc) if exc else ""
    low = msg.lower()
    name = exc.__class__.__name__
    status = getattr(exc, "status", None)

    if status == HTTP_TOO_MANY_REQUESTS or "rate limit" in low or "ratelimited" in low:
        return ErrorInfo("rate_limit", redact(msg), name, transient=True)
    if status in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN) or "authentication" in low:
        return ErrorInfo("auth", redact(msg), name)
    if status == HTTP_NOT_FOUND or "not found" in low or "entity not found" in low:
        return ErrorInfo("not_found", redact(msg), name)
    if isinstance(status, int) and status >= HTTP_SERVER_ERROR:
        return ErrorInfo("network", redact(msg), name, transient=True)
    if any(k in low for k in ("timeout", "timed out", "connection reset", "temporarily unavailable")):
        return ErrorInfo("network", redact(msg), name, transient=True)
    if any(k in low for k in ("invalid", "validation", "argument")):
        return ErrorInfo("validation", redact(msg), name)
    return ErrorInfo("generic", redact(msg), name)


__all__ = [
    "ErrorInfo",
    "TransportError",
    "TeamNotFoundError",
    "classify_error",
    "redact",
]
