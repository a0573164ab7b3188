"""
Command-line entry point: attach to a browser tab over CDP and fire a
tracking request into it.

Configuration comes from VISIT_TRACKER_* environment variables; flags
override them for a single run.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
from typing import Any

from .completion import ThreadingScheduler
from .config import TrackerConfig
from .environment import (
    OVERRIDE_PAGE_NAME,
    OVERRIDE_PAYLOAD,
    OVERRIDE_REFERRER,
    OVERRIDE_SITE_ID,
    OVERRIDE_URL,
)
from .frames import CdpFrame
from .page_session import open_page_session
from .session_cdp import CdpError
from .tracker import Tracker
from .types import CompletionStatus

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(message)s",
)
logger = logging.getLogger("visit_tracker")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="visit-tracker", description="Fire a visit tracking request into a browser tab")
    parser.add_argument("--site-id", help="site identifier (overrides VISIT_TRACKER_SITE_ID)")
    parser.add_argument("--port", type=int, help="CDP port (overrides VISIT_TRACKER_CDP_PORT)")
    parser.add_argument("--tab", help="target tab id (default: first page tab)")
    parser.add_argument("--target", choices=["script", "frame"], default="script")
    parser.add_argument("--debug", action="store_true", help="build the element without appending it")
    parser.add_argument("--no-append", action="store_true", help="return the element instead of appending it")
    parser.add_argument("--auto", action="store_true", help="run page-load tracking (honors dynamic-site flag)")
    parser.add_argument("--url", help="override page URL")
    parser.add_argument("--page-name", help="override page name")
    parser.add_argument("--referrer", help="override referrer")
    parser.add_argument("--pe-data", help="pre-formatted payload or JSON form object")
    parser.add_argument("--wait", action="store_true", help="wait for completion and report its status")
    parser.add_argument("--wait-timeout", type=float, default=10.0)
    return parser


def _payload_arg(raw: str) -> Any:
    if raw.lstrip().startswith("{"):
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("--pe-data is not valid JSON, passing it through as text")
    return raw


def overrides_from_args(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if args.url is not None:
        overrides[OVERRIDE_URL] = args.url
    if args.page_name is not None:
        overrides[OVERRIDE_PAGE_NAME] = args.page_name
    if args.referrer is not None:
        overrides[OVERRIDE_REFERRER] = args.referrer
    if args.site_id is not None:
        overrides[OVERRIDE_SITE_ID] = args.site_id
    if args.pe_data is not None:
        overrides[OVERRIDE_PAYLOAD] = _payload_arg(args.pe_data)
    return overrides


def config_from_args(args: argparse.Namespace) -> TrackerConfig:
    config = TrackerConfig.from_env()
    if args.site_id is not None:
        config.site_id = TrackerConfig.normalize_site_id(args.site_id)
    if args.port is not None:
        config.cdp_port = args.port
    if args.debug:
        config.debug = True
    return config


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = config_from_args(args)

    try:
        session = open_page_session(config, args.tab)
    except CdpError as exc:
        logger.error("attach_failed: %s", exc)
        return 2

    with session:
        try:
            tracker = Tracker(config, CdpFrame.main_frame(session), scheduler=ThreadingScheduler())
            if args.auto:
                ran = tracker.auto_track()
                print(json.dumps({"autoTracked": ran}))
                return 0

            done = threading.Event()
            outcome: list[CompletionStatus] = []

            def on_done(status: CompletionStatus) -> None:
                outcome.append(status)
                done.set()

            element = tracker.track(
                overrides_from_args(args),
                args.target,
                not args.no_append,
                on_done if args.wait else None,
            )
            result: dict[str, Any] = {
                "attached": bool(element and element.attached),
                "html": element.to_html() if element else None,
            }
            if args.wait and not args.no_append:
                done.wait(args.wait_timeout)
                result["completion"] = outcome[0].value if outcome else None
            print(json.dumps(result, ensure_ascii=False))
        except CdpError as exc:
            logger.error("track_failed: %s", exc)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
