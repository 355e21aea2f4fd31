"""Extraction provider implementations."""

from .base import ExtractionProvider
from .gemini import GeminiExtractor

__all__ = ["ExtractionProvider", "GeminiExtractor"]
