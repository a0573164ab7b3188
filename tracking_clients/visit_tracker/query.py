"""
Tracking query construction.

Provides:
- escape_component: encodeURIComponent-compatible percent-encoding
- format_payload: normalizes the optional `pe_data` payload
- encode: builds the `?url=...&pagename=...` query for a TrackingRequest
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

from .types import TrackingRequest

# Characters encodeURIComponent leaves untouched besides alphanumerics.
_UNRESERVED = "-_.!~*'()"

FORM_TAG = "F"
PAYLOAD_DELIMITER = "|"
# Leading characters of payloads that arrive already formatted.
PREFORMATTED_TAGS = frozenset({"M", "A", "B", "D"})


def _js_string(value: Any) -> str:
    """Stringify like JavaScript's String(value) for the common scalar cases."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def escape_component(value: Any) -> str:
    return quote(_js_string(value), safe=_UNRESERVED)


def format_payload(payload: Any) -> str | None:
    """Return the `pe_data` value for `payload`, or None if the shape is unsupported."""
    if isinstance(payload, str):
        if payload[:1] in PREFORMATTED_TAGS:
            return payload
        return None

    if isinstance(payload, Mapping) and payload.get("type") == FORM_TAG:
        segments = [
            escape_component(f"{_js_string(key)}={_js_string(value)}")
            for key, value in payload.items()
            if key != "type"
        ]
        return FORM_TAG + PAYLOAD_DELIMITER.join(segments)

    return None


def encode(request: TrackingRequest) -> str:
    query = (
        f"?url={escape_component(request.url)}"
        f"&pagename={escape_component(request.page_name)}"
        f"&id={_js_string(request.site_id)}"
        f"&ref={escape_component(request.referrer)}"
        f"&c={escape_component(request.cookie_enabled)}"
    )
    if request.extra_data:
        query += f"&pe_data={request.extra_data}"
    if request.frontend_id:
        query += f"&frontendid={request.frontend_id}"
    return query
