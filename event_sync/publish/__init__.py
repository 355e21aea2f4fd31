"""Side-effect adapters: JSON artifacts in Drive and Google Calendar events."""

from .calendar import CalendarPublisher, build_event
from .json_store import JsonArtifactPublisher, artifact_name

__all__ = ["CalendarPublisher", "JsonArtifactPublisher", "artifact_name", "build_event"]
