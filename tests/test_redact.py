from __future__ import annotations

from pylaundry._redact import redact_headers
from pylaundry.ingestion.feed import build_headers


def test_redact_headers_masks_secrets() -> None:
    headers = {
        "User-Agent": "Mozilla/5.0",
        "Authorization": "Bearer xoxb-secret",
        "alliancels-organization-id": "org-42",
        "Cookie": "session=1",
    }

    redacted = redact_headers(headers)
    assert redacted["User-Agent"] == "Mozilla/5.0"
    assert redacted["Authorization"] == "<redacted>"
    assert redacted["alliancels-organization-id"] == "<redacted>"
    assert redacted["Cookie"] == "<redacted>"
    assert headers["Authorization"] == "Bearer xoxb-secret"


def test_redact_headers_masks_feed_organization_header() -> None:
    redacted = redact_headers(build_headers("org-42", "X-Trace=abc"))

    assert "org-42" not in redacted.values()
    assert redacted["X-Trace"] == "abc"


def test_redact_headers_truncates_long_values() -> None:
    redacted = redact_headers({"X-Long": "x" * 600}, max_value=10)
    assert redacted["X-Long"] == "x" * 10 + "…"
