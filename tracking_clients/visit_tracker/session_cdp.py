"""Raw CDP connection over a tab's DevTools WebSocket.

Only request/response commands are supported (`Runtime.evaluate`,
`Page.getFrameTree`, `Page.createIsolatedWorld`). Events received while
waiting for a response are dropped.
"""

from __future__ import annotations

import json
import threading
import time
from contextlib import suppress
from typing import Any

import websocket


class CdpError(Exception):
    pass


class ScriptEvaluationError(CdpError):
    """JavaScript threw while being evaluated in the page."""

    def __init__(self, description: str, *, class_name: str = "") -> None:
        super().__init__(description)
        self.description = description
        self.class_name = class_name


class CdpConnection:
    """Low-level CDP WebSocket connection.

    Safe to share between threads: one command is in flight at a time, so a
    response is always read by the thread that sent the matching request.
    """

    def __init__(self, ws_url: str, timeout: float = 5.0):
        try:
            self.ws = websocket.create_connection(ws_url, timeout=timeout)
        except (OSError, websocket.WebSocketException) as exc:
            raise CdpError(f"CDP connect failed: {exc}") from exc
        self.ws_url = ws_url
        self.timeout = timeout
        self._next_id = 1
        self._lock = threading.Lock()

    def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Send CDP command and wait for response."""
        with self._lock:
            msg_id = self._next_id
            self._next_id += 1

            msg: dict[str, Any] = {"id": msg_id, "method": method}
            if params:
                msg["params"] = params

            try:
                self.ws.send(json.dumps(msg))
            except (OSError, websocket.WebSocketException) as exc:
                raise CdpError(f"CDP send failed: {exc}") from exc
            return self._recv_until(msg_id)

    def _recv_until(self, expected_id: int) -> dict[str, Any]:
        """Wait for response with specific ID."""
        deadline = time.time() + self.timeout
        while time.time() < deadline:
            try:
                raw = self.ws.recv()
            except websocket.WebSocketTimeoutException:
                break
            except (OSError, websocket.WebSocketException) as exc:
                raise CdpError(f"CDP receive failed: {exc}") from exc
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                continue
            if data.get("id") == expected_id:
                if "error" in data:
                    raise CdpError(str(data["error"]))
                return data.get("result", {})
        raise CdpError("CDP response timed out")

    def close(self) -> None:
        """Close the WebSocket connection."""
        with suppress(Exception):
            self.ws.close()
