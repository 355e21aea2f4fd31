"""Redaction applied to LLM logs and span payloads."""

from __future__ import annotations

from event_sync.config import LangfuseConfig, LoggingConfig
from event_sync.logging_utils import redact_text, redact_value, truncate_text


def test_default_mode_removes_links_only():
    mode = LoggingConfig().llm_log_redaction
    text = "Expo 2026 https://drive.example.com/file/d/abc/view at Hall A"

    assert mode == LangfuseConfig().redaction == "redact_urls"
    assert redact_text(text, mode) == "Expo 2026 [REDACTED_URL] at Hall A"
    assert redact_value("https://drive.example.com/pdf-1", mode) == "[REDACTED]"


def test_redact_content_drops_everything():
    assert redact_text("anything", "redact_content") == ""
    assert redact_value("https://drive.example.com/pdf-1", "redact_content") is None


def test_none_mode_keeps_text():
    assert redact_text("https://x.example.com", "none") == "https://x.example.com"
    assert redact_value(None, "none") is None


def test_truncate_text_marks_cut():
    assert truncate_text("abcdef", max_chars=3) == "abc...(truncated)"
    assert truncate_text("abc", max_chars=3) == "abc"
