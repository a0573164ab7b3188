"""
Frame hierarchy abstraction.

A Frame is one browsing context (top-level page or iframe). Reads of another
frame's document go through `read(relation, prop)` so that cross-origin
denials surface as FrameAccessError, the same way a browser throws a
SecurityError.

Provides:
- FrameRelation / FrameProperty: what to read and from which window
- ReferrerCache: shared per-parent referrer cache for sibling frames
- StaticFrame: in-memory frame tree (offline builds, tests)
- CdpFrame: frame of a live tab, read via Runtime.evaluate
"""

from __future__ import annotations

import itertools
import json
import logging
import threading
import urllib.parse
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .page_session import PageSession
from .session_cdp import ScriptEvaluationError
from .types import DeliveryElement

logger = logging.getLogger("visit_tracker.frames")

# Page-side map of acknowledged completion tokens (set by the delivered script).
ACK_GLOBAL = "__visitTrackerAcks"


class FrameAccessError(Exception):
    """Reading a frame's document was denied or failed."""


class FrameRelation(Enum):
    SELF = "self"
    PARENT = "parent"
    TOP = "top"


class FrameProperty(Enum):
    HREF = "location.href"
    PROTOCOL = "location.protocol"
    TITLE = "document.title"
    REFERRER = "document.referrer"
    COOKIE_ENABLED = "navigator.cookieEnabled"


class ReferrerCache:
    """Referrer values cached per parent frame, shared between sibling frames."""

    def __init__(self) -> None:
        self._values: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, frame_id: str) -> str | None:
        with self._lock:
            return self._values.get(frame_id)

    def put(self, frame_id: str, value: str) -> None:
        with self._lock:
            self._values[frame_id] = value


class Frame(ABC):
    frame_id: str

    @property
    @abstractmethod
    def parent_id(self) -> str | None:
        """Id of the parent frame, None for a top-level frame."""

    @abstractmethod
    def read(self, relation: FrameRelation, prop: FrameProperty) -> Any:
        """Read `prop` from the window at `relation`; raises FrameAccessError."""

    @abstractmethod
    def append_to_head(self, element: DeliveryElement) -> None:
        """Append `element` to this frame's document head."""

    def read_acknowledged(self, token: str) -> bool:
        """Whether the page has flagged `token` as acknowledged."""
        return False


def _origin(url: str) -> tuple[str, str, int | None]:
    parsed = urllib.parse.urlsplit(url)
    try:
        port = parsed.port
    except ValueError:
        port = None
    return parsed.scheme.lower(), (parsed.hostname or "").lower(), port


_frame_ids = itertools.count(1)


@dataclass(eq=False)
class StaticFrame(Frame):
    """In-memory frame. Cross-origin reads between frames raise FrameAccessError."""

    url: str = "about:blank"
    title: str = ""
    referrer: str = ""
    cookie_enabled: bool = True
    parent: StaticFrame | None = None
    frame_id: str = field(default_factory=lambda: f"frame-{next(_frame_ids)}")
    head: list[DeliveryElement] = field(default_factory=list)
    acknowledged: set[str] = field(default_factory=set)

    @property
    def parent_id(self) -> str | None:
        return self.parent.frame_id if self.parent is not None else None

    @property
    def top(self) -> StaticFrame:
        frame = self
        while frame.parent is not None:
            frame = frame.parent
        return frame

    @property
    def protocol(self) -> str:
        scheme = urllib.parse.urlsplit(self.url).scheme
        return f"{scheme}:" if scheme else ""

    def _target(self, relation: FrameRelation) -> StaticFrame:
        if relation is FrameRelation.TOP:
            return self.top
        if relation is FrameRelation.PARENT:
            # window.parent is the window itself at the top level.
            return self.parent or self
        return self

    def read(self, relation: FrameRelation, prop: FrameProperty) -> Any:
        target = self._target(relation)
        if target is not self and _origin(target.url) != _origin(self.url):
            raise FrameAccessError(f"Blocked a frame with origin {self.url!r} from accessing {target.url!r}")
        values = {
            FrameProperty.HREF: target.url,
            FrameProperty.PROTOCOL: target.protocol,
            FrameProperty.TITLE: target.title,
            FrameProperty.REFERRER: target.referrer,
            FrameProperty.COOKIE_ENABLED: target.cookie_enabled,
        }
        return values[prop]

    def append_to_head(self, element: DeliveryElement) -> None:
        self.head.append(element)

    def read_acknowledged(self, token: str) -> bool:
        return token in self.acknowledged


class CdpFrame(Frame):
    """
    Frame of a live tab.

    Reads run inside the frame's own execution context, so the browser's
    same-origin policy decides whether `window.top`/`window.parent` are
    readable. JS exceptions become FrameAccessError; transport failures
    (CdpError) propagate.
    """

    def __init__(
        self,
        session: PageSession,
        frame_id: str,
        *,
        parent_id: str | None = None,
        context_id: int | None = None,
    ) -> None:
        self.session = session
        self.frame_id = frame_id
        self._parent_id = parent_id
        self.context_id = context_id

    @property
    def parent_id(self) -> str | None:
        return self._parent_id

    @classmethod
    def main_frame(cls, session: PageSession) -> CdpFrame:
        tree = session.frame_tree()
        frame = tree.get("frame") or {}
        return cls(session, str(frame.get("id") or session.tab_id))

    @classmethod
    def all_frames(cls, session: PageSession) -> list[CdpFrame]:
        """Main frame first, then every child frame bound to its own context."""
        frames: list[CdpFrame] = []
        pending = [session.frame_tree()]
        while pending:
            node = pending.pop(0)
            info = node.get("frame") or {}
            frame_id = str(info.get("id") or "")
            if not frame_id:
                continue
            parent_id = info.get("parentId")
            if parent_id:
                context_id = session.create_isolated_world(frame_id)
                frames.append(cls(session, frame_id, parent_id=str(parent_id), context_id=context_id))
            else:
                frames.append(cls(session, frame_id))
            pending.extend(node.get("childFrames") or [])
        return frames

    def _eval(self, expression: str) -> Any:
        return self.session.eval_js(expression, context_id=self.context_id)

    def read(self, relation: FrameRelation, prop: FrameProperty) -> Any:
        try:
            return self._eval(f"window.{relation.value}.{prop.value}")
        except ScriptEvaluationError as exc:
            raise FrameAccessError(exc.description) from exc

    def append_to_head(self, element: DeliveryElement) -> None:
        try:
            self._eval(element.to_append_js())
        except ScriptEvaluationError as exc:
            raise FrameAccessError(exc.description) from exc

    def read_acknowledged(self, token: str) -> bool:
        # Acks live in the page's main world, not in an isolated one.
        expression = f"!!((window.{ACK_GLOBAL} || {{}})[{json.dumps(token)}])"
        try:
            return bool(self.session.eval_js(expression))
        except ScriptEvaluationError:
            logger.debug("ack read failed token=%s", token)
            return False
