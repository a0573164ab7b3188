"""
Page visit tracking client.

Provides:
- Tracker: resolve page state, encode and deliver a tracking request
- call_tracker / install_tracker: process-wide entry point for embedding code
- StaticFrame / CdpFrame: in-memory and live-tab frames
- TrackerConfig: configuration (see TrackerConfig.from_env)
"""

from .completion import AsyncioScheduler, CompletionPoller, CompletionRegistry, ThreadingScheduler
from .config import TrackerConfig
from .frames import CdpFrame, FrameAccessError, ReferrerCache, StaticFrame
from .query import encode, format_payload
from .tracker import Tracker, call_tracker, install_tracker
from .types import AppendTarget, CompletionStatus, DeliveryElement, TrackingRequest

__all__ = [
    "AppendTarget",
    "AsyncioScheduler",
    "CdpFrame",
    "CompletionPoller",
    "CompletionRegistry",
    "CompletionStatus",
    "DeliveryElement",
    "FrameAccessError",
    "ReferrerCache",
    "StaticFrame",
    "ThreadingScheduler",
    "Tracker",
    "TrackerConfig",
    "TrackingRequest",
    "call_tracker",
    "encode",
    "format_payload",
    "install_tracker",
]
