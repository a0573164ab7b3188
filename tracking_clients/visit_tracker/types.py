"""
Type definitions shared by the tracker components.
"""

from __future__ import annotations

import html
import json
from dataclasses import dataclass
from enum import Enum


class AppendTarget(Enum):
    """How the tracking request is injected into the page."""

    SCRIPT = "script"
    FRAME = "frame"

    @classmethod
    def coerce(cls, raw: AppendTarget | int | str | None) -> AppendTarget | None:
        """Map enum members, legacy integer codes and names; None if unknown."""
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, int) and not isinstance(raw, bool):
            return _LEGACY_APPEND_CODES.get(raw)
        if isinstance(raw, str):
            key = raw.strip().lower()
            if key == "iframe":
                return cls.FRAME
            for member in cls:
                if member.value == key:
                    return member
        return None


# Integer codes used by pages embedding the older tracking snippet.
APPEND_SCRIPT_CODE = 21001
APPEND_FRAME_CODE = 21002

_LEGACY_APPEND_CODES = {
    APPEND_SCRIPT_CODE: AppendTarget.SCRIPT,
    APPEND_FRAME_CODE: AppendTarget.FRAME,
}


class CompletionStatus(Enum):
    """Outcome passed to a completion callback."""

    ACKNOWLEDGED = "acknowledged"
    TIMED_OUT = "timed_out"


@dataclass(slots=True)
class TrackingRequest:
    """Fields of one tracking hit, before encoding."""

    url: str
    page_name: str
    site_id: str
    referrer: str
    cookie_enabled: bool
    extra_data: str | None = None
    frontend_id: str | None = None


@dataclass(slots=True)
class DeliveryElement:
    """Script or iframe element pointing at the tracking endpoint."""

    tag: str  # "script" or "iframe"
    src: str
    width: int | None = None
    height: int | None = None
    attached: bool = False

    @property
    def attributes(self) -> dict[str, str]:
        attrs: dict[str, str] = {}
        if self.tag == "script":
            attrs["type"] = "text/javascript"
        attrs["src"] = self.src
        if self.width is not None:
            attrs["width"] = str(self.width)
        if self.height is not None:
            attrs["height"] = str(self.height)
        return attrs

    def to_html(self) -> str:
        attrs = " ".join(f'{name}="{html.escape(value, quote=True)}"' for name, value in self.attributes.items())
        return f"<{self.tag} {attrs}></{self.tag}>"

    def to_append_js(self) -> str:
        """JS expression that creates the element and appends it to <head>."""
        return (
            "(() => {"
            f"  const el = document.createElement({json.dumps(self.tag)});"
            f"  const attrs = {json.dumps(self.attributes)};"
            "  for (const [k, v] of Object.entries(attrs)) el.setAttribute(k, v);"
            "  document.getElementsByTagName('head')[0].appendChild(el);"
            "  return true;"
            "})()"
        )
