"""Concrete pipeline stages run through the reconciliation engine."""

from .calendar import CalendarSyncStage
from .extraction import PdfExtractionStage

__all__ = ["CalendarSyncStage", "PdfExtractionStage"]
