"""Maintenance entry points and CLI exit codes."""

from __future__ import annotations

import io
import json

from rich.console import Console
from typer.testing import CliRunner

from event_sync.cli import app
from event_sync.config import STAGE_CALENDAR, STAGE_EXTRACT
from event_sync.core.markers import MARKER_VALUE
from event_sync.core.policy import Action
from event_sync.drive.base import JSON_MIME_TYPE, PDF_MIME_TYPE
from event_sync.runner import reset_markers, run_single_file


def _quiet_console() -> Console:
    return Console(file=io.StringIO())


def test_reset_markers_clears_only_stage_visibility(app_config, store):
    store.add_folder("pdf-root", "PDF")
    store.add_folder("sub", "Expo", "pdf-root")
    store.add_file("p1", "a.pdf", "pdf-root", PDF_MIME_TYPE)
    store.add_file("p2", "b.pdf", "sub", PDF_MIME_TYPE)
    for file_id in ("p1", "p2"):
        store.set_property(file_id, "processed", MARKER_VALUE, "PRIVATE")
    store.set_property("p1", "processed", MARKER_VALUE, "PUBLIC")

    cleared = reset_markers(app_config, STAGE_EXTRACT, console=_quiet_console(), store=store)

    assert cleared == 2
    assert not store.has_property("p2", "processed", MARKER_VALUE, "PRIVATE")
    assert store.has_property("p1", "processed", MARKER_VALUE, "PUBLIC")


def test_run_single_file_skips_processed_pdf(app_config, store):
    store.add_folder("pdf-root", "PDF")
    store.add_folder("conf", "Conferences", "pdf-root")
    store.add_file("p1", "a.pdf", "conf", PDF_MIME_TYPE)
    store.set_property("p1", "processed", MARKER_VALUE, "PRIVATE")

    action = run_single_file(app_config, "p1", STAGE_EXTRACT, console=_quiet_console(), store=store)

    assert action is Action.NONE


def test_run_single_file_marks_invalid_artifact(app_config, store):
    store.add_folder("json-root", "JSON")
    payload = json.dumps({"startTime": "2026-05-01T10:00:00"}).encode("utf-8")
    store.add_file("j1", "broken.json", "json-root", JSON_MIME_TYPE, content=payload)

    action = run_single_file(app_config, "j1", STAGE_CALENDAR, console=_quiet_console(), store=store)

    assert action is None
    assert store.has_property("j1", "processed", MARKER_VALUE, "PUBLIC")


def test_cli_missing_configuration_exits_with_2(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("GOOGLE_ACCESS_TOKEN", raising=False)
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)

    result = CliRunner().invoke(app, ["calendar", "--no-log-file"])

    assert result.exit_code == 2
    assert "calendar.calendar_id" in result.output


def test_cli_rejects_unknown_stage(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("GOOGLE_ACCESS_TOKEN", "token")

    result = CliRunner().invoke(app, ["reset-markers", "--stage", "upload", "--yes"])

    assert result.exit_code == 2


def test_cli_unparsable_config_exits_with_2(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    bad = tmp_path / "bad.yaml"
    bad.write_text("drive: [unclosed\n", encoding="utf-8")

    result = CliRunner().invoke(app, ["calendar", "-c", str(bad), "--no-log-file"])

    assert result.exit_code == 2
    assert "Cannot read config" in result.output
