"""
Drive Event Sync - idempotent PDF-to-calendar publishing.

This package scans a Google Drive folder tree for event PDFs, extracts
structured event data with Gemini, writes one JSON artifact per PDF and
publishes those artifacts as Google Calendar events. Every stage is safe
to re-run: a durable per-file marker and a per-run dedup cache decide
which side effects still have to happen.

Main entry point is the CLI via `event-sync run` command.

Example:
    $ event-sync run -c config.yaml
"""

__all__ = ["__version__", "ReconciliationEngine", "RunStats", "load_config"]
__version__ = "0.1.0"

from .config import load_config
from .core.engine import ReconciliationEngine
from .core.types import RunStats
