"""
LLM extraction layer.

Provides the extraction provider interface, the Gemini implementation
and the one-shot rate-limit retry used by the extraction stage.
"""

from .providers.base import ExtractionProvider
from .providers.factory import available_providers, create_extractor
from .retry import extract_with_retry

__all__ = ["ExtractionProvider", "available_providers", "create_extractor", "extract_with_retry"]
