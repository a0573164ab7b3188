from __future__ import annotations

import os
from dataclasses import dataclass, field

DISABLED_SITE_ID = "0"
DEFAULT_TRACKER_HOST = "tr.prospecteye.com"
DEFAULT_INCLUDE_SCRIPT = "track_includes.js"

# Sites that asked not to receive the include script on page load.
DEFAULT_INCLUDE_OPT_OUT: list[str] = [
    "36514ff45d",
    "b8cbf98771",
]


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.environ.get(name)
    if raw is None:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class TrackerConfig:
    site_id: str = DISABLED_SITE_ID
    debug: bool = False
    dynamic_site: bool = False
    tracker_host: str = DEFAULT_TRACKER_HOST
    include_script: str = DEFAULT_INCLUDE_SCRIPT
    include_opt_out: list[str] = field(default_factory=lambda: list(DEFAULT_INCLUDE_OPT_OUT))
    poll_interval: float = 0.1
    max_polls: int = 20
    cdp_port: int = 9222
    cdp_timeout: float = 5.0

    def __post_init__(self) -> None:
        self.site_id = self.normalize_site_id(self.site_id)

    @staticmethod
    def normalize_site_id(raw: str | None) -> str:
        if raw is None:
            return DISABLED_SITE_ID
        return str(raw).strip() or DISABLED_SITE_ID

    @staticmethod
    def is_disabled_site(site_id: str | None) -> bool:
        return TrackerConfig.normalize_site_id(site_id) == DISABLED_SITE_ID

    @property
    def delivery_enabled(self) -> bool:
        """True when appended elements may actually reach the page."""
        return not self.debug and not self.is_disabled_site(self.site_id)

    def wants_include_script(self) -> bool:
        return bool(self.include_script) and self.site_id not in self.include_opt_out

    @classmethod
    def from_env(cls) -> TrackerConfig:
        return cls(
            site_id=os.environ.get("VISIT_TRACKER_SITE_ID", DISABLED_SITE_ID),
            debug=_env_flag("VISIT_TRACKER_DEBUG"),
            dynamic_site=_env_flag("VISIT_TRACKER_DYNAMIC_SITE"),
            tracker_host=os.environ.get("VISIT_TRACKER_HOST", DEFAULT_TRACKER_HOST).strip().rstrip("/"),
            include_script=os.environ.get("VISIT_TRACKER_INCLUDE", DEFAULT_INCLUDE_SCRIPT).strip(),
            include_opt_out=_env_list("VISIT_TRACKER_INCLUDE_OPT_OUT", DEFAULT_INCLUDE_OPT_OUT),
            poll_interval=float(os.environ.get("VISIT_TRACKER_POLL_INTERVAL", "0.1")),
            max_polls=int(os.environ.get("VISIT_TRACKER_MAX_POLLS", "20")),
            cdp_port=int(os.environ.get("VISIT_TRACKER_CDP_PORT", "9222")),
            cdp_timeout=float(os.environ.get("VISIT_TRACKER_CDP_TIMEOUT", "5")),
        )
