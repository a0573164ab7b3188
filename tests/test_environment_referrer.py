from __future__ import annotations

from typing import Any

from tracking_clients.visit_tracker.config import TrackerConfig
from tracking_clients.visit_tracker.environment import EnvironmentResolver
from tracking_clients.visit_tracker.frames import (
    Frame,
    FrameAccessError,
    FrameProperty,
    FrameRelation,
    ReferrerCache,
    StaticFrame,
)


class ScriptedFrame(Frame):
    """Frame whose reads are scripted per (relation, property); exceptions are raised."""

    def __init__(self, values: dict[tuple[FrameRelation, FrameProperty], Any], parent_id: str | None = "parent-1"):
        self.frame_id = "child-1"
        self._parent_id = parent_id
        self.values = values
        self.reads: list[tuple[FrameRelation, FrameProperty]] = []

    @property
    def parent_id(self) -> str | None:
        return self._parent_id

    def read(self, relation: FrameRelation, prop: FrameProperty) -> Any:
        self.reads.append((relation, prop))
        value = self.values.get((relation, prop), FrameAccessError("denied"))
        if isinstance(value, Exception):
            raise value
        return value

    def append_to_head(self, element) -> None:  # noqa: ANN001
        raise AssertionError("not used")


SELF_HREF = (FrameRelation.SELF, FrameProperty.HREF)
TOP_REF = (FrameRelation.TOP, FrameProperty.REFERRER)
PARENT_REF = (FrameRelation.PARENT, FrameProperty.REFERRER)
SELF_REF = (FrameRelation.SELF, FrameProperty.REFERRER)


def test_referrer_prefers_top_document() -> None:
    top = StaticFrame(url="https://shop.example.com/", referrer="https://google.com/")
    frame = StaticFrame(url="https://shop.example.com/widget", referrer="https://shop.example.com/", parent=top)
    resolver = EnvironmentResolver(frame, TrackerConfig(site_id="s1"))
    assert resolver.referrer() == "https://google.com/"


def test_referrer_uses_parent_cache_when_top_denied() -> None:
    frame = ScriptedFrame(
        {
            SELF_HREF: "https://tracker.example.net/frame",
            PARENT_REF: "https://parent-referrer.example/",
            SELF_REF: "https://local.example/",
        }
    )
    shared = ReferrerCache()
    shared.put("parent-1", "https://cached.example/")
    resolver = EnvironmentResolver(frame, TrackerConfig(), shared)
    assert resolver.referrer() == "https://cached.example/"
    assert PARENT_REF not in frame.reads


def test_referrer_falls_back_to_parent_then_local_then_empty() -> None:
    frame = ScriptedFrame({SELF_HREF: "https://a.example/", PARENT_REF: "https://p.example/", SELF_REF: "x"})
    assert EnvironmentResolver(frame, TrackerConfig()).referrer() == "https://p.example/"

    frame = ScriptedFrame({SELF_HREF: "https://a.example/", SELF_REF: "https://local.example/"})
    assert EnvironmentResolver(frame, TrackerConfig()).referrer() == "https://local.example/"

    frame = ScriptedFrame({})
    assert EnvironmentResolver(frame, TrackerConfig()).referrer() == ""


def test_referrer_without_parent_skips_parent_steps() -> None:
    frame = ScriptedFrame({SELF_REF: "https://local.example/"}, parent_id=None)
    assert EnvironmentResolver(frame, TrackerConfig()).referrer() == "https://local.example/"
    assert PARENT_REF not in frame.reads


def test_referrer_caches_current_url_for_sibling_frames() -> None:
    top = StaticFrame(url="https://publisher.example/", referrer="https://google.com/")
    middle = StaticFrame(url="https://ads.example.net/slot", referrer="https://publisher.example/", parent=top)
    first = StaticFrame(url="https://ads.example.net/slot/a", parent=middle)
    second = StaticFrame(url="https://ads.example.net/slot/b", parent=middle)
    shared = ReferrerCache()

    # top is cross-origin for both children; the first child reads its parent's referrer.
    assert EnvironmentResolver(first, TrackerConfig(), shared).referrer() == "https://publisher.example/"
    assert shared.get(middle.frame_id) == "https://ads.example.net/slot/a"

    # the sibling now gets the cached value instead of the parent's referrer.
    assert EnvironmentResolver(second, TrackerConfig(), shared).referrer() == "https://ads.example.net/slot/a"


def test_referrer_caches_after_successful_top_read() -> None:
    top = StaticFrame(url="https://shop.example.com/", referrer="https://google.com/")
    frame = StaticFrame(url="https://shop.example.com/embed", parent=top)
    shared = ReferrerCache()
    EnvironmentResolver(frame, TrackerConfig(), shared).referrer()
    assert shared.get(top.frame_id) == "https://shop.example.com/embed"


def test_simple_accessors() -> None:
    frame = StaticFrame(url="https://shop.example.com/p/1", title="Product", cookie_enabled=False)
    resolver = EnvironmentResolver(frame, TrackerConfig(site_id="abc"))
    assert resolver.url() == "https://shop.example.com/p/1"
    assert resolver.page_name() == "Product"
    assert resolver.cookie_enabled() is False
    assert resolver.site_id() == "abc"
    assert EnvironmentResolver(frame, TrackerConfig()).site_id() == "0"


def test_page_name_empty_when_title_unset() -> None:
    resolver = EnvironmentResolver(StaticFrame(url="https://x.example/"), TrackerConfig())
    assert resolver.page_name() == ""


def test_resolve_applies_overrides_without_reading_environment() -> None:
    frame = ScriptedFrame({}, parent_id=None)
    resolver = EnvironmentResolver(frame, TrackerConfig(site_id="cfg"))
    request = resolver.resolve(
        {
            "url": "https://o.example/",
            "pagename": "Override",
            "siteid": "other",
            "referer": "",
            "cookie": False,
            "pedata": {"type": "F", "a": 1},
        }
    )
    assert frame.reads == []
    assert request.url == "https://o.example/"
    assert request.page_name == "Override"
    assert request.site_id == "other"
    assert request.referrer == ""
    assert request.cookie_enabled is False
    assert request.extra_data == "Fa%3D1"


def test_resolve_drops_unsupported_payload() -> None:
    frame = StaticFrame(url="https://x.example/", title="T")
    request = EnvironmentResolver(frame, TrackerConfig()).resolve({"pedata": "Zzz"})
    assert request.extra_data is None
    assert request.page_name == "T"
