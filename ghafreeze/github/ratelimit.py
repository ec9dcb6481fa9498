"""Rate-limit classification at the network boundary.

The GitHub API signals an exhausted budget with 403 or 429 responses,
``X-RateLimit-Remaining: 0`` and a "rate limit" message. Only this module
looks at those signals; everything above it sees RateLimitError.
"""

from __future__ import annotations

from collections.abc import Mapping

RATE_LIMIT_MARKERS: tuple[str, ...] = ("rate limit", "403")


def is_rate_limit_message(message: str) -> bool:
    """Return True if a failure description indicates an exhausted budget."""
    lowered = message.lower()
    return any(marker in lowered for marker in RATE_LIMIT_MARKERS)


def is_rate_limited_response(
    status_code: int, headers: Mapping[str, str], body: str = ""
) -> bool:
    """Classify an HTTP response as rate-limited."""
    if status_code == 429:
        return True
    if headers.get("X-RateLimit-Remaining") == "0" and status_code >= 400:
        return True
    return status_code == 403 and "rate limit" in body.lower()


def _int_header(headers: Mapping[str, str], name: str) -> int | None:
    value = headers.get(name)
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None


def rate_limit_details(headers: Mapping[str, str]) -> dict[str, int | None]:
    """Extract limit/remaining/reset from response headers."""
    return {
        "limit": _int_header(headers, "X-RateLimit-Limit"),
        "remaining": _int_header(headers, "X-RateLimit-Remaining"),
        "reset": _int_header(headers, "X-RateLimit-Reset"),
    }


def is_rate_limit_error(exc: BaseException | None) -> bool:
    """Classify a transport-level exception.

    Its text embeds the request URL, so a bare "403" there proves nothing.
    Only an attached response or the "rate limit" phrase counts.
    """
    if exc is None:
        return False
    response = getattr(exc, "response", None)
    status = getattr(response, "status_code", None)
    if status is not None:
        headers = getattr(response, "headers", None) or {}
        body = getattr(response, "text", None) or ""
        return status == 403 or is_rate_limited_response(status, headers, body)
    return "rate limit" in str(exc).lower()
