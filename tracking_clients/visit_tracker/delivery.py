"""
Delivery of tracking requests by DOM injection.

The browser fetches the endpoint when the script/iframe element is appended
to <head>; no response is read back.
"""
from __future__ import annotations

import logging

from .config import TrackerConfig
from .frames import Frame, FrameAccessError, FrameProperty, FrameRelation
from .types import AppendTarget, DeliveryElement

logger = logging.getLogger("visit_tracker.delivery")

FRAME_SIZE = 1


class DeliveryChannel:
    def __init__(self, frame: Frame, config: TrackerConfig) -> None:
        self.frame = frame
        self.config = config

    def _scheme(self) -> str:
        try:
            protocol = self.frame.read(FrameRelation.SELF, FrameProperty.PROTOCOL)
        except FrameAccessError:
            protocol = ""
        return "https" if protocol == "https:" else "http"

    def endpoint(self, resource: str) -> str:
        """Absolute URL of `resource` (a query string or file name) on the tracking host."""
        return f"{self._scheme()}://{self.config.tracker_host}/{resource}"

    def build(self, resource: str, target: AppendTarget) -> DeliveryElement:
        src = self.endpoint(resource)
        if target is AppendTarget.FRAME:
            return DeliveryElement(tag="iframe", src=src, width=FRAME_SIZE, height=FRAME_SIZE)
        return DeliveryElement(tag="script", src=src)

    def send(self, resource: str, target: AppendTarget, should_append: bool) -> DeliveryElement:
        """
        Build the delivery element and append it to the document head.

        The element is only appended when debug mode is off, `should_append`
        is set and a site identifier is configured; otherwise the document is
        left untouched. The element is returned either way.
        """
        element = self.build(resource, target)
        if self.config.debug or not should_append:
            logger.debug("delivery not appended debug=%s should_append=%s", self.config.debug, should_append)
            return element
        if self.config.is_disabled_site(self.config.site_id):
            logger.info("delivery suppressed: no site id configured")
            return element

        try:
            self.frame.append_to_head(element)
        except FrameAccessError as exc:
            logger.warning("delivery append failed: %s", exc)
            return element
        element.attached = True
        logger.info("delivery appended tag=%s src=%s", element.tag, element.src)
        return element
