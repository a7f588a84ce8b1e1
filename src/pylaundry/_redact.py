"""Header redaction for debug logs.

Feed requests carry the organization id header and Slack requests carry
the bot token; neither value may reach a log line.
"""

from __future__ import annotations

from collections.abc import Mapping

_SENSITIVE_HEADERS: frozenset[str] = frozenset(
    {
        "authorization",
        "cookie",
        "x-api-key",
        "alliancels-organization-id",
    }
)


def redact_headers(headers: Mapping[str, str], *, max_value: int = 120) -> dict[str, str]:
    """Return a copy of *headers* with secret values masked and long values cut."""
    redacted: dict[str, str] = {}
    for name, value in headers.items():
        if name.lower() in _SENSITIVE_HEADERS:
            redacted[name] = "<redacted>"
        elif len(value) > max_value:
            redacted[name] = f"{value[:max_value]}…"
        else:
            redacted[name] = value
    return redacted
