"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- DriveConfig: Drive folders, endpoints and credentials
- ProviderConfig: LLM extraction provider settings
- ExtractionConfig: PDF extraction stage settings
- CalendarConfig: Calendar publishing stage settings
- CacheConfig: Session dedup cache backend and TTL
- LoggingConfig: Logging behavior
- LangfuseConfig: Langfuse tracing settings
- AppConfig: Root configuration container

All sections are frozen. Overrides (e.g. from CLI options) produce a new
AppConfig through apply_overrides instead of mutating the loaded one.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import os
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from .errors import ConfigurationError

STAGE_EXTRACT = "extract"
STAGE_CALENDAR = "calendar"
STAGES = (STAGE_EXTRACT, STAGE_CALENDAR)


@dataclass(frozen=True)
class DriveConfig:
    """Configuration for the Drive file store.

    Attributes:
        pdf_folder_id: Root folder scanned for source PDFs
        json_folder_id: Folder receiving JSON artifacts (and scanned by the calendar stage)
        base_url: Drive API base URL
        upload_url: Drive upload API base URL
        access_token_env: Environment variable containing the OAuth bearer token
        access_token: Optional inline token (overrides env var)
        page_size: Files requested per listing page
        timeout_seconds: HTTP request timeout
        trust_env: Whether to respect system proxy settings
    """

    pdf_folder_id: str | None = None
    json_folder_id: str | None = None
    base_url: str = "https://www.googleapis.com"
    upload_url: str = "https://www.googleapis.com/upload"
    access_token_env: str = "GOOGLE_ACCESS_TOKEN"
    access_token: str | None = None
    page_size: int = 100
    timeout_seconds: float = 30.0
    trust_env: bool = True


@dataclass(frozen=True)
class ProviderConfig:
    """Configuration for the LLM extraction provider.

    Attributes:
        name: Provider name ("gemini" currently supported)
        model: Model identifier (e.g., "gemini-2.5-flash")
        google_api_key_env: Environment variable name containing the API key
        base_url: Base URL for the provider API
        api_key: Optional inline API key (overrides env var)
        timeout_seconds: Request timeout; whole PDFs are sent, so keep it generous
        trust_env: Whether to respect system proxy settings for API requests
    """

    name: str = "gemini"
    model: str = "gemini-2.5-flash"
    google_api_key_env: str = "GOOGLE_API_KEY"
    base_url: str = "https://generativelanguage.googleapis.com"
    api_key: str | None = None
    timeout_seconds: float = 120.0
    trust_env: bool = True


@dataclass(frozen=True)
class ExtractionConfig:
    """Configuration for the PDF extraction stage.

    Attributes:
        marker_key: Custom property key used as the durable "processed" marker
        marker_visibility: Property visibility; must match between write and listing
        dedup_by_sub_category: Use the folder sub-category as the dedup key
        default_retry_seconds: Backoff when a 429 carries no retry delay
        retry_margin_seconds: Added to the server-suggested retry delay
        max_hierarchy_depth: Parent levels walked when resolving a single file's path
    """

    marker_key: str = "processed"
    marker_visibility: str = "PRIVATE"
    dedup_by_sub_category: bool = False
    default_retry_seconds: int = 30
    retry_margin_seconds: int = 1
    max_hierarchy_depth: int = 5


@dataclass(frozen=True)
class CalendarConfig:
    """Configuration for the calendar publishing stage.

    Attributes:
        calendar_id: Target calendar identifier
        base_url: Calendar API base URL
        marker_key: Custom property key used as the durable "processed" marker
        marker_visibility: Property visibility for JSON artifacts
        bypass_categories: Categories published without session dedup
        timezone: Zone applied to naive start/end times
        default_duration_minutes: Event length when the payload has no end time
        timeout_seconds: HTTP request timeout
        trust_env: Whether to respect system proxy settings
    """

    calendar_id: str | None = None
    base_url: str = "https://www.googleapis.com/calendar/v3"
    marker_key: str = "processed"
    marker_visibility: str = "PUBLIC"
    bypass_categories: list[str] = field(default_factory=lambda: ["議事録"])
    timezone: str = "UTC"
    default_duration_minutes: int = 60
    timeout_seconds: float = 30.0
    trust_env: bool = True


@dataclass(frozen=True)
class CacheConfig:
    """Configuration for the session dedup cache backend.

    Attributes:
        backend: "memory" for a process-local cache, "file" for a JSON file on disk
        path: Cache file location for the "file" backend
        ttl_seconds: Advisory entry lifetime; the end-of-run purge is authoritative
    """

    backend: str = "memory"
    path: str = ".event_sync_cache.json"
    ttl_seconds: int = 21600


@dataclass(frozen=True)
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        directory: Directory receiving log files
        filename: Name of the main log file
        llm_log_enabled: Whether to enable separate LLM interaction logging
        llm_log_detail: LLM log detail level ("summary_only", "response_only", "prompt_response")
        llm_log_redaction: Redaction mode for LLM logs ("none", "redact_content", "redact_urls")
        llm_log_file: Name of the LLM log file
    """

    level: str = "INFO"
    console: bool = True
    file: bool = True
    format: str = "jsonl"
    directory: str = "logs"
    filename: str = "run.jsonl"
    llm_log_enabled: bool = True
    llm_log_detail: str = "response_only"
    llm_log_redaction: str = "redact_urls"
    llm_log_file: str = "llm.jsonl"


@dataclass(frozen=True)
class LangfuseConfig:
    """Configuration for Langfuse tracing.

    Attributes:
        enabled: Whether to enable Langfuse tracing
        public_key: Langfuse public key (optional)
        secret_key: Langfuse secret key (optional)
        host: Langfuse host URL (optional)
        environment: Langfuse environment label (optional)
        release: Langfuse release identifier (optional)
        redaction: Redaction mode for span payloads
        max_text_chars: Maximum characters for span payloads
    """

    enabled: bool = False
    public_key: str | None = None
    secret_key: str | None = None
    host: str | None = None
    environment: str | None = None
    release: str | None = None
    redaction: str = "redact_urls"
    max_text_chars: int = 20000


@dataclass(frozen=True)
class AppConfig:
    """Root configuration container aggregating all config sections."""

    drive: DriveConfig = field(default_factory=DriveConfig)
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    calendar: CalendarConfig = field(default_factory=CalendarConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    langfuse: LangfuseConfig = field(default_factory=LangfuseConfig)


DEFAULT_CONFIG = AppConfig()


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path:
        return DEFAULT_CONFIG

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Cannot read config {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return _merge_config(DEFAULT_CONFIG, raw)


def apply_overrides(base: AppConfig, overrides: dict[str, Any]) -> AppConfig:
    """Return a new AppConfig with nested override values applied.

    None values are skipped so callers can pass unset CLI options through.
    """
    cleaned: dict[str, Any] = {}
    for section, values in overrides.items():
        kept = {k: v for k, v in (values or {}).items() if v is not None}
        if kept:
            cleaned[section] = kept
    if not cleaned:
        return base
    return _merge_config(base, cleaned)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig."""
    data = asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            known = {k: v for k, v in value.items() if k in data[key]}
            data[key].update(known)
    return _fromdict(data)


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    return AppConfig(
        drive=DriveConfig(**data["drive"]),
        provider=ProviderConfig(**data["provider"]),
        extraction=ExtractionConfig(**data["extraction"]),
        calendar=CalendarConfig(**data["calendar"]),
        cache=CacheConfig(**data["cache"]),
        logging=LoggingConfig(**data["logging"]),
        langfuse=LangfuseConfig(**data["langfuse"]),
    )


def get_api_key(cfg: ProviderConfig) -> str | None:
    """Get API key from inline config or environment variable."""
    if cfg.api_key:
        return cfg.api_key
    return os.getenv(cfg.google_api_key_env)


def get_access_token(cfg: DriveConfig) -> str | None:
    """Get the Google OAuth bearer token from inline config or environment variable."""
    if cfg.access_token:
        return cfg.access_token
    return os.getenv(cfg.access_token_env)


def validate_for_stage(cfg: AppConfig, stage: str, publishing: bool = True) -> None:
    """Fail fast when a stage is missing required settings.

    With publishing=False only the settings needed to walk and mark the
    stage's source tree are checked (used by marker maintenance).

    Raises:
        ConfigurationError: listing every missing setting at once
    """
    if stage not in STAGES:
        raise ConfigurationError(f"Unknown stage: {stage}. Use one of: {', '.join(STAGES)}")

    missing: list[str] = []
    if not get_access_token(cfg.drive):
        missing.append(f"drive.access_token (or ${cfg.drive.access_token_env})")
    if not cfg.drive.json_folder_id:
        missing.append("drive.json_folder_id")
    if stage == STAGE_EXTRACT:
        if not cfg.drive.pdf_folder_id:
            missing.append("drive.pdf_folder_id")
        if publishing and not get_api_key(cfg.provider):
            missing.append(f"provider.api_key (or ${cfg.provider.google_api_key_env})")
    if stage == STAGE_CALENDAR and publishing:
        if not cfg.calendar.calendar_id:
            missing.append("calendar.calendar_id")
        if not _valid_timezone(cfg.calendar.timezone):
            missing.append(f"calendar.timezone (unknown zone {cfg.calendar.timezone!r})")
    if cfg.cache.backend not in ("memory", "file"):
        missing.append("cache.backend (memory or file)")

    if missing:
        raise ConfigurationError(
            f"Missing configuration for stage '{stage}': {', '.join(missing)}",
            missing=missing,
        )


def _valid_timezone(name: str) -> bool:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True
