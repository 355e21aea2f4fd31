"""
Stage orchestration for the sync pipeline.

This module wires configuration into concrete components and runs them:
1. Validate configuration for every requested stage
2. Set up logging and tracing
3. Build the Drive client, marker store, session cache and stage
4. Run each stage through the reconciliation engine
5. Print run statistics

It also hosts the maintenance entry points: single-file processing and
marker reset.
"""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.table import Table

from .cache import create_cache
from .config import (
    STAGE_CALENDAR,
    STAGE_EXTRACT,
    AppConfig,
    get_access_token,
    validate_for_stage,
)
from .core.engine import ReconciliationEngine
from .core.markers import DurableMarkerStore
from .core.policy import Action
from .core.session_cache import SessionDedupCache
from .core.stage import Stage
from .core.types import RunStats, WorkItem
from .drive.base import JSON_MIME_TYPE, PDF_MIME_TYPE, FileFilter, FileStore
from .drive.client import DriveClient
from .drive.walker import HierarchyWalker, resolve_hierarchy
from .errors import PersistenceError
from .llm import create_extractor
from .logging_utils import log_event, setup_llm_logger, setup_logging
from .publish.calendar import CalendarPublisher
from .publish.json_store import JsonArtifactPublisher
from .stages import CalendarSyncStage, PdfExtractionStage
from .tracing import setup_langfuse, start_span


def build_markers(cfg: AppConfig, stage_name: str, store: FileStore) -> DurableMarkerStore:
    """Return the marker store for a stage; each stage has its own visibility."""
    if stage_name == STAGE_EXTRACT:
        return DurableMarkerStore(store, cfg.extraction.marker_key, cfg.extraction.marker_visibility)
    return DurableMarkerStore(store, cfg.calendar.marker_key, cfg.calendar.marker_visibility)


def build_stage(
    cfg: AppConfig,
    stage_name: str,
    store: FileStore,
    logger: logging.Logger | None = None,
    llm_logger: logging.Logger | None = None,
) -> Stage:
    markers = build_markers(cfg, stage_name, store)
    if stage_name == STAGE_EXTRACT:
        extractor = create_extractor(cfg.provider, cfg.extraction, cfg.logging, llm_logger)
        publisher = JsonArtifactPublisher(store, cfg.drive.json_folder_id or "", logger)
        return PdfExtractionStage(cfg, store, markers, extractor, publisher, logger)
    publisher = CalendarPublisher(cfg.calendar, get_access_token(cfg.drive), logger)
    return CalendarSyncStage(cfg, store, markers, publisher, logger)


def build_engine(
    cfg: AppConfig,
    stage: Stage,
    logger: logging.Logger | None = None,
) -> ReconciliationEngine:
    cache = SessionDedupCache(create_cache(cfg.cache), cfg.cache.ttl_seconds, logger)
    return ReconciliationEngine(stage.markers, cache, logger)


def run_pipeline(
    cfg: AppConfig,
    stages: list[str],
    console: Console | None = None,
    store: FileStore | None = None,
) -> list[RunStats]:
    """Run the given stages in order and return one RunStats per stage.

    Configuration for every stage is validated before any of them starts,
    so a misconfigured calendar stage does not leave a half-finished run.

    Raises:
        ConfigurationError: a required setting is missing
    """
    for stage_name in stages:
        validate_for_stage(cfg, stage_name)

    logger, llm_logger = _setup_observability(cfg)
    store = store or DriveClient(cfg.drive, get_access_token(cfg.drive))
    console = console or Console()

    results: list[RunStats] = []
    with start_span("event_sync.run", kind="chain", input_value={"stages": stages}):
        log_event(logger, "Pipeline start", event="pipeline_start", stages=stages)
        for stage_name in stages:
            stage = build_stage(cfg, stage_name, store, logger, llm_logger)
            engine = build_engine(cfg, stage, logger)
            results.append(engine.run(stage))
        log_event(logger, "Pipeline complete", event="pipeline_complete", stages=stages)

    _render_run_stats(results, console)
    return results


def run_single_file(
    cfg: AppConfig,
    file_id: str,
    stage_name: str,
    console: Console | None = None,
    store: FileStore | None = None,
) -> Action | None:
    """Process one file through the engine, outside a folder walk.

    The item's HierarchyPath is resolved by walking its parents up to
    extraction.max_hierarchy_depth levels towards the stage's root folder.
    Returns the action taken, or None when the item failed.
    """
    validate_for_stage(cfg, stage_name)
    logger, llm_logger = _setup_observability(cfg)
    store = store or DriveClient(cfg.drive, get_access_token(cfg.drive))
    console = console or Console()

    stage = build_stage(cfg, stage_name, store, logger, llm_logger)
    engine = build_engine(cfg, stage, logger)

    ref = store.get_file(file_id)
    path = resolve_hierarchy(
        store,
        file_id,
        _stage_root(cfg, stage_name),
        max_depth=cfg.extraction.max_hierarchy_depth,
        logger=logger,
    )
    item = WorkItem(id=ref.id, name=ref.name, mime_type=ref.mime_type, link=ref.link, path=path)

    stats = RunStats(stage=stage_name, discovered=1)
    try:
        action = engine.process_item(stage, item, stats)
    finally:
        engine.cache.purge()

    log_event(logger, "Single file processed", event="single_file_complete", **stats.as_dict())
    _render_run_stats([stats], console)
    return action


def reset_markers(
    cfg: AppConfig,
    stage_name: str,
    console: Console | None = None,
    store: FileStore | None = None,
) -> int:
    """Remove the stage's processed marker from every file in its source tree.

    Returns the number of files cleared. Per-file failures are logged
    and the sweep continues.
    """
    validate_for_stage(cfg, stage_name, publishing=False)
    logger, _ = _setup_observability(cfg)
    store = store or DriveClient(cfg.drive, get_access_token(cfg.drive))
    console = console or Console()

    markers = build_markers(cfg, stage_name, store)
    mime_type = PDF_MIME_TYPE if stage_name == STAGE_EXTRACT else JSON_MIME_TYPE
    stage_filter = FileFilter(mime_type=mime_type)

    cleared = 0
    walker = HierarchyWalker(store, logger)
    for item in walker.discover(_stage_root(cfg, stage_name), stage_filter):
        try:
            markers.clear(item)
        except PersistenceError as exc:
            log_event(
                logger,
                "Marker reset failed",
                level=logging.ERROR,
                event="marker_reset_failed",
                file_id=item.id,
                file_name=item.name,
                error=str(exc),
            )
            continue
        cleared += 1
        log_event(
            logger,
            "Marker removed",
            event="marker_reset",
            file_id=item.id,
            file_name=item.name,
            stage=stage_name,
        )

    console.print(f"Markers cleared for {stage_name}: {cleared}")
    return cleared


def _stage_root(cfg: AppConfig, stage_name: str) -> str:
    if stage_name == STAGE_CALENDAR:
        return cfg.drive.json_folder_id or ""
    return cfg.drive.pdf_folder_id or ""


def _setup_observability(cfg: AppConfig) -> tuple[logging.Logger, logging.Logger | None]:
    log_dir = Path(cfg.logging.directory) if cfg.logging.directory else None
    logger = setup_logging(cfg.logging, log_dir)
    llm_logger = setup_llm_logger(cfg.logging, log_dir)
    setup_langfuse(cfg.langfuse)
    return logger, llm_logger


def _render_run_stats(results: list[RunStats], console: Console) -> None:
    table = Table(title="Run summary")
    table.add_column("Stage")
    for column in (
        "Discovered",
        "Published",
        "Duplicates",
        "Rebuilt",
        "Unchanged",
        "Abandoned",
        "Terminal",
        "Marker failed",
    ):
        table.add_column(column, justify="right")
    for stats in results:
        table.add_row(
            stats.stage,
            str(stats.discovered),
            str(stats.published),
            str(stats.skipped_duplicate),
            str(stats.rebuilt),
            str(stats.unchanged),
            str(stats.abandoned),
            str(stats.terminal),
            str(stats.failed_marker),
        )
    console.print(table)
