import enum
import re
from typing import Optional

import httpx


class ErrorKind(str, enum.Enum):
    TRANSIENT = "transient"
    RATE_LIMITED = "rate_limited"
    QUOTA = "quota"
    FATAL = "fatal"
    MALFORMED = "malformed"


class GenerationError(Exception):
    """Failure of a call to the generative service, tagged with its kind."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.FATAL,
        retry_after: Optional[float] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.retry_after = retry_after
        self.status_code = status_code

    @property
    def is_quota(self) -> bool:
        return self.kind in (ErrorKind.QUOTA, ErrorKind.RATE_LIMITED)


_RETRY_IN = re.compile(r"retry in\s+([0-9]+(?:\.[0-9]+)?)\s*(ms|s)\b", re.IGNORECASE)
_RETRY_DELAY = re.compile(r'"?retryDelay"?\s*:\s*"([0-9]+(?:\.[0-9]+)?)s"')
_ZERO_LIMIT = re.compile(r"limit:\s*0\b")


def parse_retry_after(message: str) -> Optional[float]:
    """Seconds to wait, when the service message carries a retry hint."""
    match = _RETRY_IN.search(message)
    if match:
        value = float(match.group(1))
        return value / 1000 if match.group(2).lower() == "ms" else value

    match = _RETRY_DELAY.search(message)
    if match:
        return float(match.group(1))

    return None


def classify_error(status_code: Optional[int], message: str) -> GenerationError:
    """
    Translate a raw service failure into a GenerationError.

    This is the only place that looks at message text; everything upstream
    switches on ErrorKind.
    """
    lowered = message.lower()

    rate_limited = (
        status_code == 429
        or "resource_exhausted" in lowered
        or "rate limit" in lowered
        or "quota" in lowered
    )
    if rate_limited:
        hard_quota = bool(_ZERO_LIMIT.search(lowered)) or "quota exceeded" in lowered
        return GenerationError(
            message,
            kind=ErrorKind.QUOTA if hard_quota else ErrorKind.RATE_LIMITED,
            retry_after=parse_retry_after(message),
            status_code=status_code,
        )

    if status_code == 503 or "unavailable" in lowered or "overloaded" in lowered:
        return GenerationError(message, kind=ErrorKind.TRANSIENT, status_code=status_code)

    return GenerationError(message, kind=ErrorKind.FATAL, status_code=status_code)


def from_http_error(exc: httpx.HTTPError) -> GenerationError:
    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        return classify_error(response.status_code, _error_text(response))

    # connect errors and timeouts are not retried
    return GenerationError(
        f"Error communicating with Gemini: {exc}",
        kind=ErrorKind.FATAL,
    )


def _error_text(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text

    error = data.get("error") if isinstance(data, dict) else None
    if not isinstance(error, dict):
        return response.text

    parts = [error.get("status", ""), error.get("message", "")]
    for detail in error.get("details") or []:
        if isinstance(detail, dict) and "retryDelay" in detail:
            parts.append(f'"retryDelay": "{detail["retryDelay"]}"')
    return " ".join(p for p in parts if p)
