"""
Visit tracker: resolves page state, encodes the tracking query and hands it
to the delivery channel, optionally reporting completion to the caller.

Usage:
    tracker = Tracker(TrackerConfig.from_env(), frame)
    tracker.track({"pagename": "Checkout"}, AppendTarget.SCRIPT, True, on_done)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .completion import CompletionCallback, CompletionPoller, CompletionRegistry, Scheduler, completion_registry
from .config import TrackerConfig
from .delivery import DeliveryChannel
from .environment import EnvironmentResolver
from .frames import Frame, ReferrerCache
from .query import encode
from .types import AppendTarget, DeliveryElement

logger = logging.getLogger("visit_tracker.tracker")


class Tracker:
    def __init__(
        self,
        config: TrackerConfig,
        frame: Frame,
        *,
        shared: ReferrerCache | None = None,
        registry: CompletionRegistry | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.config = config
        self.frame = frame
        self.resolver = EnvironmentResolver(frame, config, shared)
        self.channel = DeliveryChannel(frame, config)
        self.registry = registry if registry is not None else completion_registry
        self.poller = CompletionPoller(
            self.registry,
            scheduler,
            interval=config.poll_interval,
            max_polls=config.max_polls,
            probe=frame.read_acknowledged,
        )

    def track(
        self,
        overrides: Mapping[str, Any] | None = None,
        target: AppendTarget | int | str = AppendTarget.SCRIPT,
        should_append: bool = True,
        callback: CompletionCallback | None = None,
    ) -> DeliveryElement | None:
        """
        Send one tracking request.

        Args:
            overrides: values replacing resolved ones (url, pagename, siteid,
                referer, cookie, pedata)
            target: AppendTarget, its name, or a legacy append code
            should_append: append the element to the page (False returns it unattached)
            callback: called with a CompletionStatus once the request is
                acknowledged or the poll budget runs out; only used when appending

        Returns:
            The delivery element, or None for an unknown target kind.
        """
        append_target = AppendTarget.coerce(target)
        if append_target is None:
            logger.warning("unknown append target %r, nothing sent", target)
            return None

        request = self.resolver.resolve(overrides)
        token = None
        if should_append and callback is not None:
            token = request.frontend_id = self.registry.register()

        try:
            element = self.channel.send(encode(request), append_target, should_append)
        except Exception:
            if token is not None:
                self.registry.finish(token)
            raise

        if token is not None:
            self.poller.watch(token, callback)
        return element

    def mark_complete(self, token: str) -> bool:
        """Acknowledge a completion token (e.g. from the tracking endpoint's reply)."""
        return self.registry.mark_complete(token)

    def track_visit(self) -> DeliveryElement | None:
        """Page-load tracking: the visit itself plus the site include script."""
        element = self.track({}, AppendTarget.SCRIPT, True)
        if self.config.wants_include_script():
            self.channel.send(self.config.include_script, AppendTarget.SCRIPT, True)
        return element

    def auto_track(self) -> bool:
        """Run page-load tracking unless debug mode or a dynamic site defers it."""
        if self.config.debug or self.config.dynamic_site:
            logger.info("auto tracking skipped debug=%s dynamic_site=%s", self.config.debug, self.config.dynamic_site)
            return False
        self.track_visit()
        return True


_default_tracker: Tracker | None = None


def install_tracker(tracker: Tracker | None) -> None:
    """Set (or clear, with None) the tracker behind call_tracker()."""
    global _default_tracker
    _default_tracker = tracker


def get_tracker() -> Tracker | None:
    return _default_tracker


def call_tracker(
    overrides: Mapping[str, Any] | None = None,
    target: AppendTarget | int | str = AppendTarget.SCRIPT,
    should_append: bool = True,
    callback: CompletionCallback | None = None,
) -> DeliveryElement | None:
    """Entry point for embedding code; None when no tracker is installed."""
    tracker = _default_tracker
    if tracker is None:
        return None
    return tracker.track(overrides, target, should_append, callback)
