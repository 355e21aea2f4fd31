"""Configuration loading, overrides and per-stage validation."""

from __future__ import annotations

import pytest

from event_sync.config import (
    STAGE_CALENDAR,
    STAGE_EXTRACT,
    AppConfig,
    apply_overrides,
    get_access_token,
    get_api_key,
    load_config,
    validate_for_stage,
)
from event_sync.errors import ConfigurationError


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_ACCESS_TOKEN", raising=False)


def test_load_config_merges_yaml_over_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "drive:\n"
        "  pdf_folder_id: pdf-root\n"
        "  unknown_key: ignored\n"
        "calendar:\n"
        "  calendar_id: team@example.com\n"
        "  bypass_categories: [議事録, Minutes]\n"
        "surprise_section:\n"
        "  x: 1\n",
        encoding="utf-8",
    )

    cfg = load_config(str(path))

    assert cfg.drive.pdf_folder_id == "pdf-root"
    assert cfg.drive.page_size == 100
    assert cfg.calendar.bypass_categories == ["議事録", "Minutes"]
    assert cfg.extraction.marker_visibility == "PRIVATE"
    assert cfg.calendar.marker_visibility == "PUBLIC"


def test_load_config_without_path_returns_defaults():
    assert load_config(None) == AppConfig()


def test_load_config_rejects_non_mapping(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_config(str(path))


def test_load_config_wraps_yaml_errors(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("drive: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="Cannot read config"):
        load_config(str(path))


def test_load_config_wraps_missing_file(tmp_path):
    with pytest.raises(ConfigurationError, match="Cannot read config"):
        load_config(str(tmp_path / "missing.yaml"))


def test_apply_overrides_returns_new_config_and_skips_none():
    base = AppConfig()

    cfg = apply_overrides(base, {"logging": {"level": "DEBUG", "file": None}, "provider": {}})

    assert cfg.logging.level == "DEBUG"
    assert cfg.logging.file is True
    assert base.logging.level == "INFO"


def test_secrets_prefer_inline_values(monkeypatch):
    monkeypatch.setenv("GOOGLE_API_KEY", "from-env")
    monkeypatch.setenv("GOOGLE_ACCESS_TOKEN", "token-env")
    cfg = apply_overrides(AppConfig(), {"provider": {"api_key": "inline"}})

    assert get_api_key(cfg.provider) == "inline"
    assert get_access_token(cfg.drive) == "token-env"


def test_validate_lists_every_missing_setting():
    with pytest.raises(ConfigurationError) as excinfo:
        validate_for_stage(AppConfig(), STAGE_EXTRACT)

    missing = excinfo.value.missing
    assert "drive.json_folder_id" in missing
    assert "drive.pdf_folder_id" in missing
    assert any(item.startswith("drive.access_token") for item in missing)
    assert any(item.startswith("provider.api_key") for item in missing)


def test_validate_calendar_stage(app_config):
    validate_for_stage(app_config, STAGE_CALENDAR)

    broken = apply_overrides(app_config, {"calendar": {"calendar_id": "", "timezone": "Mars/Olympus"}})
    with pytest.raises(ConfigurationError) as excinfo:
        validate_for_stage(broken, STAGE_CALENDAR)

    assert "calendar.calendar_id" in excinfo.value.missing
    assert any("timezone" in item for item in excinfo.value.missing)


def test_validate_without_publishing_skips_publish_settings(app_config):
    cfg = apply_overrides(app_config, {"provider": {"api_key": ""}, "calendar": {"calendar_id": ""}})

    validate_for_stage(cfg, STAGE_EXTRACT, publishing=False)
    validate_for_stage(cfg, STAGE_CALENDAR, publishing=False)


def test_validate_rejects_unknown_stage(app_config):
    with pytest.raises(ConfigurationError):
        validate_for_stage(app_config, "upload")
