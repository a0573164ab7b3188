"""
Environment resolution for tracking requests.

Each accessor reads one value from the hosting frame. Access failures never
reach the caller: they fall through to the next source and finally to a
safe default.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .config import DISABLED_SITE_ID, TrackerConfig
from .frames import Frame, FrameAccessError, FrameProperty, FrameRelation, ReferrerCache
from .query import format_payload
from .types import TrackingRequest

logger = logging.getLogger("visit_tracker.environment")

# Keys callers may pass to override resolved values.
OVERRIDE_URL = "url"
OVERRIDE_PAGE_NAME = "pagename"
OVERRIDE_SITE_ID = "siteid"
OVERRIDE_REFERRER = "referer"
OVERRIDE_COOKIE = "cookie"
OVERRIDE_PAYLOAD = "pedata"


class EnvironmentResolver:
    def __init__(self, frame: Frame, config: TrackerConfig, shared: ReferrerCache | None = None) -> None:
        self.frame = frame
        self.config = config
        self.shared = shared if shared is not None else ReferrerCache()

    def _read_own(self, prop: FrameProperty, default: Any) -> Any:
        try:
            return self.frame.read(FrameRelation.SELF, prop)
        except FrameAccessError as exc:
            logger.debug("read %s failed: %s", prop.value, exc)
            return default

    def url(self) -> str:
        return self._read_own(FrameProperty.HREF, "") or ""

    def page_name(self) -> str:
        return self._read_own(FrameProperty.TITLE, "") or ""

    def site_id(self) -> str:
        return self.config.site_id or DISABLED_SITE_ID

    def cookie_enabled(self) -> bool:
        return bool(self._read_own(FrameProperty.COOKIE_ENABLED, False))

    def referrer(self) -> str:
        """
        Resolve the referrer of the visit.

        Order: top document referrer; the referrer cached for the parent
        frame; the parent's own referrer; the local referrer; "".
        The current URL is cached for the parent so sibling frames that
        cannot reach the top document can fall back to it.
        """
        parent_id = self.frame.parent_id
        try:
            value = self.frame.read(FrameRelation.TOP, FrameProperty.REFERRER) or ""
        except FrameAccessError:
            value = self._fallback_referrer(parent_id)

        if parent_id is not None:
            current = self.url()
            if current:
                self.shared.put(parent_id, current)
        return value

    def _fallback_referrer(self, parent_id: str | None) -> str:
        if parent_id is not None:
            cached = self.shared.get(parent_id)
            if cached:
                return cached
            try:
                return self.frame.read(FrameRelation.PARENT, FrameProperty.REFERRER) or ""
            except FrameAccessError:
                pass
        try:
            return self.frame.read(FrameRelation.SELF, FrameProperty.REFERRER) or ""
        except FrameAccessError:
            return ""

    def resolve(self, overrides: Mapping[str, Any] | None = None) -> TrackingRequest:
        """Build a TrackingRequest, reading only values the caller did not override."""
        overrides = overrides or {}

        def pick(key: str, accessor):
            return overrides[key] if key in overrides else accessor()

        extra_data = None
        if OVERRIDE_PAYLOAD in overrides:
            extra_data = format_payload(overrides[OVERRIDE_PAYLOAD])
            if extra_data is None:
                logger.debug("unsupported pedata payload dropped: %r", type(overrides[OVERRIDE_PAYLOAD]).__name__)

        return TrackingRequest(
            url=pick(OVERRIDE_URL, self.url),
            page_name=pick(OVERRIDE_PAGE_NAME, self.page_name),
            site_id=pick(OVERRIDE_SITE_ID, self.site_id),
            referrer=pick(OVERRIDE_REFERRER, self.referrer),
            cookie_enabled=pick(OVERRIDE_COOKIE, self.cookie_enabled),
            extra_data=extra_data,
        )
