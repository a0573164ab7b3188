from __future__ import annotations

import pytest

from tracking_clients.visit_tracker.config import DEFAULT_INCLUDE_OPT_OUT, TrackerConfig


def test_defaults_disable_delivery() -> None:
    config = TrackerConfig()
    assert config.site_id == "0"
    assert config.delivery_enabled is False
    assert config.poll_interval == 0.1
    assert config.max_polls == 20


@pytest.mark.parametrize("raw", [None, "", "  ", "0"])
def test_unset_site_ids_normalize_to_disabled(raw: str | None) -> None:
    assert TrackerConfig.normalize_site_id(raw) == "0"
    assert TrackerConfig.is_disabled_site(raw) is True


def test_debug_disables_delivery() -> None:
    assert TrackerConfig(site_id="abc").delivery_enabled is True
    assert TrackerConfig(site_id="abc", debug=True).delivery_enabled is False


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("VISIT_TRACKER_SITE_ID", " abc123 ")
    monkeypatch.setenv("VISIT_TRACKER_DEBUG", "yes")
    monkeypatch.setenv("VISIT_TRACKER_DYNAMIC_SITE", "0")
    monkeypatch.setenv("VISIT_TRACKER_HOST", "tr.example.com/")
    monkeypatch.setenv("VISIT_TRACKER_INCLUDE_OPT_OUT", "a, b,,")
    monkeypatch.setenv("VISIT_TRACKER_MAX_POLLS", "5")
    monkeypatch.setenv("VISIT_TRACKER_CDP_PORT", "9333")
    config = TrackerConfig.from_env()
    assert config.site_id == "abc123"
    assert config.debug is True
    assert config.dynamic_site is False
    assert config.tracker_host == "tr.example.com"
    assert config.include_opt_out == ["a", "b"]
    assert config.max_polls == 5
    assert config.cdp_port == 9333


def test_from_env_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("VISIT_TRACKER_SITE_ID", "VISIT_TRACKER_DEBUG", "VISIT_TRACKER_INCLUDE_OPT_OUT"):
        monkeypatch.delenv(name, raising=False)
    config = TrackerConfig.from_env()
    assert config.site_id == "0"
    assert config.debug is False
    assert config.include_opt_out == DEFAULT_INCLUDE_OPT_OUT


def test_wants_include_script() -> None:
    assert TrackerConfig(site_id="abc").wants_include_script() is True
    assert TrackerConfig(site_id=DEFAULT_INCLUDE_OPT_OUT[0]).wants_include_script() is False
    assert TrackerConfig(site_id="abc", include_script="").wants_include_script() is False
