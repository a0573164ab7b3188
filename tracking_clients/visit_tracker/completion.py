"""
Completion tokens and the bounded polling loop that reports them.

A token is registered per tracking request that wants a callback. The poller
re-checks it on a timer and fires the callback exactly once: ACKNOWLEDGED as
soon as the token is marked complete, TIMED_OUT once the poll budget is used
up. Waiting never blocks the caller.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import uuid
from collections.abc import Callable
from typing import Protocol

from .types import CompletionStatus

logger = logging.getLogger("visit_tracker.completion")

CompletionCallback = Callable[[CompletionStatus], None]
AckProbe = Callable[[str], bool]

DEFAULT_POLL_INTERVAL = 0.1
DEFAULT_MAX_POLLS = 20


def generate_token() -> str:
    """Opaque 12-hex-character completion token."""
    return uuid.uuid4().hex[:12]


class CompletionRegistry:
    """
    Process-wide token -> completed flag map.

    The only writer of the flag and the only place entries are removed.
    """

    def __init__(self) -> None:
        self._flags: dict[str, bool] = {}
        self._lock = threading.Lock()

    def register(self) -> str:
        with self._lock:
            token = generate_token()
            while token in self._flags:
                token = generate_token()
            self._flags[token] = False
            return token

    def mark_complete(self, token: str) -> bool:
        """Flag `token` as acknowledged. Returns False for unknown tokens."""
        with self._lock:
            if token not in self._flags:
                return False
            self._flags[token] = True
            return True

    def is_complete(self, token: str) -> bool:
        with self._lock:
            return self._flags.get(token, False)

    def finish(self, token: str) -> None:
        """Force the token to completed and drop it."""
        with self._lock:
            self._flags.pop(token, None)

    def pending(self) -> list[str]:
        with self._lock:
            return [token for token, done in self._flags.items() if not done]

    def __contains__(self, token: object) -> bool:
        with self._lock:
            return token in self._flags

    def __len__(self) -> int:
        with self._lock:
            return len(self._flags)


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> None: ...


class ThreadingScheduler:
    """Runs each callback on a daemon timer thread."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> None:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()


class AsyncioScheduler:
    """Runs callbacks on an asyncio event loop (thread-safe scheduling)."""

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self.loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> None:
        self.loop.call_soon_threadsafe(self.loop.call_later, delay, callback)


class CompletionPoller:
    def __init__(
        self,
        registry: CompletionRegistry,
        scheduler: Scheduler | None = None,
        *,
        interval: float = DEFAULT_POLL_INTERVAL,
        max_polls: int = DEFAULT_MAX_POLLS,
        probe: AckProbe | None = None,
    ) -> None:
        self.registry = registry
        self.scheduler = scheduler or ThreadingScheduler()
        self.interval = interval
        self.max_polls = max_polls
        self.probe = probe

    def watch(self, token: str, callback: CompletionCallback | None) -> None:
        """Start polling `token`; the first check runs one interval from now."""
        self._schedule(token, callback, 1)

    def _schedule(self, token: str, callback: CompletionCallback | None, attempt: int) -> None:
        self.scheduler.call_later(self.interval, lambda: self._tick(token, callback, attempt))

    def _acknowledged(self, token: str) -> bool:
        if self.registry.is_complete(token):
            return True
        if self.probe is None:
            return False
        try:
            seen = bool(self.probe(token))
        except Exception as exc:  # noqa: BLE001
            logger.debug("ack probe failed token=%s: %s", token, exc)
            return False
        if seen:
            self.registry.mark_complete(token)
        return seen

    def _tick(self, token: str, callback: CompletionCallback | None, attempt: int) -> None:
        acknowledged = self._acknowledged(token)
        if not acknowledged and attempt <= self.max_polls:
            self._schedule(token, callback, attempt + 1)
            return

        status = CompletionStatus.ACKNOWLEDGED if acknowledged else CompletionStatus.TIMED_OUT
        self.registry.finish(token)
        logger.info("completion token=%s status=%s polls=%d", token, status.value, attempt)
        if callback is not None:
            callback(status)


# Global registry shared by every Tracker in the process
completion_registry = CompletionRegistry()

