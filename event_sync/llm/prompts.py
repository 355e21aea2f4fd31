"""Prompt templates for event extraction."""

from __future__ import annotations

EXTRACTION_PROMPT = """\
Read the whole attached PDF, identify the event or plan it describes, and
return the following fields as a single JSON object.

- "title": the formal name of the event or plan
  (e.g. "2025 Freshman Welcome Event", "October 2025 Regular Meeting").
- "description": a short summary of the event's outline or purpose.
- "startTime": start of the event itself in ISO 8601 (YYYY-MM-DDTHH:MM:SS).
  Use the day the event is held (e.g. the meeting time), not preparation days.
- "endTime": end of the event itself in ISO 8601. Use the day the event is
  held (e.g. the dismissal time), not reporting days. If no end is given,
  use 8 hours after the start.
- "location": the venue (e.g. "Main Campus Gymnasium", "Zoom online meeting").

Write field values in the document's language.
If you cannot answer in JSON or the document contains no main event,
return JSON containing only "title": null.
"""


def extraction_prompt() -> str:
    return EXTRACTION_PROMPT
