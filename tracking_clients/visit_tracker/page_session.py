"""
Page session for a single browser tab.

Architecture:
- PageSession: JS evaluation and frame-tree access on one tab
- list_tabs / open_page_session: tab discovery over the CDP HTTP endpoint
"""

from __future__ import annotations

import json
import threading
from typing import Any
from urllib.error import URLError
from urllib.request import urlopen

from .config import TrackerConfig
from .session_cdp import CdpConnection, CdpError, ScriptEvaluationError


def _http_get_json(url: str, timeout: float = 2.0) -> Any:
    """Fetch JSON from URL."""
    try:
        with urlopen(url, timeout=timeout) as resp:
            return json.loads(resp.read().decode())
    except (URLError, OSError, ValueError) as e:
        raise CdpError(str(e)) from e


class PageSession:
    """
    High-level session for a specific tab.

    Wraps CdpConnection with the few page operations the tracker needs.
    Use as context manager for automatic cleanup.
    """

    def __init__(self, connection: CdpConnection, tab_id: str, tab_url: str = ""):
        self.conn = connection
        self.tab_id = tab_id
        self.tab_url = tab_url
        self._runtime_enabled = False
        self._runtime_lock = threading.Lock()

    def __enter__(self) -> PageSession:
        return self

    def __exit__(self, *args):
        self.close()

    def close(self) -> None:
        """Close the session connection."""
        self.conn.close()

    def enable_runtime(self) -> None:
        """Enable Runtime domain for JS evaluation."""
        with self._runtime_lock:
            if not self._runtime_enabled:
                self.conn.send("Runtime.enable")
                self._runtime_enabled = True

    def eval_js(self, expression: str, *, context_id: int | None = None) -> Any:
        """Evaluate JavaScript and return its value.

        `context_id` selects the execution context (e.g. an iframe's isolated
        world); the main frame is used when omitted. A thrown JS exception
        raises ScriptEvaluationError.
        """
        self.enable_runtime()
        params: dict[str, Any] = {
            "expression": expression,
            "returnByValue": True,
            "awaitPromise": True,
        }
        if context_id is not None:
            params["contextId"] = context_id
        result = self.conn.send("Runtime.evaluate", params)

        details = result.get("exceptionDetails")
        if details:
            exc = details.get("exception") or {}
            description = exc.get("description") or details.get("text") or "JavaScript exception"
            raise ScriptEvaluationError(str(description), class_name=str(exc.get("className") or ""))

        if "result" not in result:
            return None
        value = result["result"]
        # CDP reports undefined/null without a "value" field.
        if value.get("type") == "undefined" or value.get("subtype") == "null":
            return None
        return value.get("value")

    def frame_tree(self) -> dict[str, Any]:
        """Return the Page.getFrameTree payload (frame + childFrames)."""
        return self.conn.send("Page.getFrameTree").get("frameTree", {})

    def create_isolated_world(self, frame_id: str, world_name: str = "visit_tracker") -> int:
        """Create an execution context bound to `frame_id`, return its id."""
        result = self.conn.send(
            "Page.createIsolatedWorld",
            {"frameId": frame_id, "worldName": world_name},
        )
        context_id = result.get("executionContextId")
        if context_id is None:
            raise CdpError(f"No execution context for frame {frame_id}")
        return int(context_id)


def list_tabs(config: TrackerConfig) -> list[dict[str, Any]]:
    """List page targets exposed on the CDP port."""
    try:
        targets = _http_get_json(f"http://127.0.0.1:{config.cdp_port}/json/list") or []
    except CdpError:
        return []
    tabs = []
    for t in targets:
        if t.get("type") == "page" and t.get("webSocketDebuggerUrl"):
            tabs.append(
                {
                    "id": t.get("id"),
                    "url": t.get("url", ""),
                    "title": t.get("title", ""),
                    "webSocketDebuggerUrl": t.get("webSocketDebuggerUrl"),
                }
            )
    return tabs


def open_page_session(config: TrackerConfig, tab_id: str | None = None) -> PageSession:
    """
    Attach to a tab: the one with `tab_id`, or the first page target.

    Raises CdpError when no matching tab is available.
    """
    tabs = list_tabs(config)
    if tab_id:
        tabs = [t for t in tabs if t["id"] == tab_id]
    if not tabs:
        raise CdpError(f"No page target found on CDP port {config.cdp_port}")
    tab = tabs[0]
    conn = CdpConnection(tab["webSocketDebuggerUrl"], timeout=config.cdp_timeout)
    return PageSession(conn, tab["id"], tab.get("url", ""))
