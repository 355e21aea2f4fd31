"""Provider factory and registry for extraction backends."""

from __future__ import annotations

import logging

from ...config import ExtractionConfig, LoggingConfig, ProviderConfig, get_api_key
from ...errors import ConfigurationError
from .base import ExtractionProvider
from .gemini import GeminiExtractor


ProviderBuilder = type[ExtractionProvider]

_PROVIDER_REGISTRY: dict[str, ProviderBuilder] = {
    "gemini": GeminiExtractor,
}


def available_providers() -> list[str]:
    """Return the set of registered provider names."""
    return sorted(_PROVIDER_REGISTRY.keys())


def create_extractor(
    provider_cfg: ProviderConfig,
    extraction_cfg: ExtractionConfig,
    log_cfg: LoggingConfig,
    llm_logger: logging.Logger | None,
) -> ExtractionProvider:
    """Build an extraction provider instance from runtime config."""
    name = provider_cfg.name.lower().strip()
    builder = _PROVIDER_REGISTRY.get(name)
    if builder is None:
        supported = ", ".join(available_providers())
        raise ConfigurationError(f"Unsupported provider: {provider_cfg.name}. Supported: {supported}")
    api_key = get_api_key(provider_cfg)
    if not api_key:
        raise ConfigurationError(
            f"Missing API key for provider {name} (set ${provider_cfg.google_api_key_env})"
        )
    return builder(provider_cfg, extraction_cfg, api_key, log_cfg, llm_logger)
