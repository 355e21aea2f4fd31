"""
Google Calendar publisher.

Turns a JSON artifact payload into a Calendar v3 event and inserts it.
An unknown calendar id is reported as InvalidCalendarError, which the
engine treats as terminal; every other failure is transient.
"""

from __future__ import annotations

from datetime import datetime, timedelta
import logging
from typing import Any
from urllib.parse import quote
from zoneinfo import ZoneInfo

import httpx

from ..config import CalendarConfig
from ..errors import InvalidCalendarError, InvalidWorkItem, PublishTransient
from ..http_utils import bearer_headers, google_error_message
from ..logging_utils import log_event


def build_event(
    payload: dict[str, Any],
    tz_name: str = "UTC",
    default_duration_minutes: int = 60,
) -> dict[str, Any]:
    """Build a Calendar v3 event body from an artifact payload.

    Naive start/end times are interpreted in tz_name. A missing,
    unparsable or non-positive end falls back to start plus the default
    duration.

    Raises:
        InvalidWorkItem: title or a parsable startTime is missing
    """
    title = _text(payload.get("title"))
    if not title:
        raise InvalidWorkItem("Payload has no title")
    tz = ZoneInfo(tz_name)
    start = _parse_time(payload.get("startTime"), tz)
    if start is None:
        raise InvalidWorkItem(f"Payload has no usable startTime: {payload.get('startTime')!r}")
    end = _parse_time(payload.get("endTime"), tz)
    if end is None or end <= start:
        end = start + timedelta(minutes=default_duration_minutes)

    event: dict[str, Any] = {
        "summary": title,
        "location": _text(payload.get("location")) or "",
        "description": _description(payload),
        "start": {"dateTime": start.isoformat()},
        "end": {"dateTime": end.isoformat()},
    }
    sub_category = _text(payload.get("subCategory"))
    if sub_category:
        event["extendedProperties"] = {"shared": {"subCategory": sub_category}}
    return event


class CalendarPublisher:
    def __init__(
        self,
        cfg: CalendarConfig,
        access_token: str | None,
        logger: logging.Logger | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        if not access_token:
            raise ValueError("Missing Google access token")
        if not cfg.calendar_id:
            raise ValueError("Missing calendar id")
        self.cfg = cfg
        self.access_token = access_token
        self.logger = logger
        self._transport = transport

    def build(self, payload: dict[str, Any]) -> dict[str, Any]:
        return build_event(payload, self.cfg.timezone, self.cfg.default_duration_minutes)

    def insert(self, event: dict[str, Any]) -> str | None:
        """Insert the event and return its id."""
        calendar_id = self.cfg.calendar_id or ""
        url = f"{self.cfg.base_url}/calendars/{quote(calendar_id, safe='')}/events"
        try:
            with httpx.Client(
                timeout=self.cfg.timeout_seconds,
                trust_env=self.cfg.trust_env,
                transport=self._transport,
            ) as client:
                response = client.post(url, json=event, headers=bearer_headers(self.access_token))
        except httpx.HTTPError as exc:
            raise PublishTransient(f"Calendar request failed: {exc}") from exc

        if response.status_code == 404:
            raise InvalidCalendarError(f"Invalid Calendar ID: {calendar_id}")
        if response.status_code < 200 or response.status_code >= 300:
            raise PublishTransient(
                f"Calendar API request failed ({response.status_code}): "
                f"{google_error_message(response)}"
            )

        try:
            event_id = response.json().get("id")
        except (ValueError, AttributeError):
            event_id = None
        log_event(
            self.logger,
            "Calendar event created",
            event="calendar_event_created",
            calendar_id=calendar_id,
            event_id=event_id,
            summary=event.get("summary"),
        )
        return event_id


def _description(payload: dict[str, Any]) -> str:
    description = _text(payload.get("description")) or ""
    source = payload.get("sourcePdf")
    if not isinstance(source, dict):
        return description
    link = _text(source.get("link"))
    if not link and _text(source.get("id")):
        link = f"https://drive.google.com/file/d/{source['id']}/view"
    if not link:
        return description
    label = _text(source.get("title")) or "link"
    return f"{description}\n\n---\nSource PDF ({label}):\n{link}"


def _parse_time(value: Any, tz: ZoneInfo) -> datetime | None:
    text = _text(value)
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
