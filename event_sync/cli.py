"""
Command-line interface for Drive Event Sync.

Uses Typer to provide one command per stage plus maintenance commands.
Supports loading .env files for API key and access token configuration.

Only one run per stage may be active at a time; schedule the commands
(cron, systemd timers) so that runs never overlap.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from .config import STAGE_CALENDAR, STAGE_EXTRACT, STAGES, AppConfig, apply_overrides, load_config
from .errors import ConfigurationError, EventSyncError
from .runner import reset_markers, run_pipeline, run_single_file
from .tracing import flush

try:
    from dotenv import load_dotenv
except Exception:  # noqa: BLE001
    load_dotenv = None

app = typer.Typer(add_completion=False, help="Publish event PDFs from Google Drive to Google Calendar.")
console = Console()

ConfigOption = typer.Option(None, "--config", "-c", exists=True, help="YAML config file.")
LogLevelOption = typer.Option(None, "--log-level", help="Logging level.")
LogFileOption = typer.Option(None, "--log-file/--no-log-file", help="Enable or disable file logging.")
LogDirOption = typer.Option(None, "--log-dir", help="Directory for log files.")
ApiKeyOption = typer.Option(
    None,
    "--api-key",
    envvar="GOOGLE_API_KEY",
    help="Override Gemini API key (or set GOOGLE_API_KEY / .env).",
)
AccessTokenOption = typer.Option(
    None,
    "--access-token",
    envvar="GOOGLE_ACCESS_TOKEN",
    help="Override Google OAuth access token (or set GOOGLE_ACCESS_TOKEN / .env).",
)
StageOption = typer.Option(..., "--stage", "-s", help="Stage: extract or calendar.")


@app.command()
def extract(
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
    log_file: bool | None = LogFileOption,
    log_dir: Path | None = LogDirOption,
    api_key: str | None = ApiKeyOption,
    access_token: str | None = AccessTokenOption,
):
    """Extract events from unprocessed PDFs into JSON artifacts."""
    cfg = _load(config, log_level, log_file, log_dir, api_key, access_token)
    _guard(lambda: run_pipeline(cfg, [STAGE_EXTRACT], console=console))


@app.command()
def calendar(
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
    log_file: bool | None = LogFileOption,
    log_dir: Path | None = LogDirOption,
    access_token: str | None = AccessTokenOption,
):
    """Publish unprocessed JSON artifacts as calendar events."""
    cfg = _load(config, log_level, log_file, log_dir, None, access_token)
    _guard(lambda: run_pipeline(cfg, [STAGE_CALENDAR], console=console))


@app.command()
def run(
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
    log_file: bool | None = LogFileOption,
    log_dir: Path | None = LogDirOption,
    api_key: str | None = ApiKeyOption,
    access_token: str | None = AccessTokenOption,
):
    """Run the extract stage, then the calendar stage."""
    cfg = _load(config, log_level, log_file, log_dir, api_key, access_token)
    _guard(lambda: run_pipeline(cfg, list(STAGES), console=console))


@app.command("process-file")
def process_file(
    file_id: str = typer.Argument(..., help="Drive file id."),
    stage: str = StageOption,
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
    log_file: bool | None = LogFileOption,
    log_dir: Path | None = LogDirOption,
    api_key: str | None = ApiKeyOption,
    access_token: str | None = AccessTokenOption,
):
    """Run a single file through one stage."""
    cfg = _load(config, log_level, log_file, log_dir, api_key, access_token)
    action = _guard(lambda: run_single_file(cfg, file_id, stage, console=console))
    if action is None:
        console.print(f"[red]{file_id} was not processed, see the log for details[/red]")
        raise typer.Exit(code=1)
    console.print(f"{file_id}: {action.value}")


@app.command("reset-markers")
def reset_markers_command(
    stage: str = StageOption,
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
    log_file: bool | None = LogFileOption,
    log_dir: Path | None = LogDirOption,
    access_token: str | None = AccessTokenOption,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
):
    """Clear the processed marker on every file of a stage's source tree."""
    if not yes:
        typer.confirm(
            f"Every file of the {stage} stage will be processed again. Continue?",
            abort=True,
        )
    cfg = _load(config, log_level, log_file, log_dir, None, access_token)
    _guard(lambda: reset_markers(cfg, stage, console=console))


def _load(
    config: Path | None,
    log_level: str | None,
    log_file: bool | None,
    log_dir: Path | None,
    api_key: str | None,
    access_token: str | None,
) -> AppConfig:
    # Load environment variables from .env if available
    if load_dotenv is not None:
        load_dotenv()

    try:
        cfg = load_config(str(config) if config else None)
    except ConfigurationError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(code=2) from exc

    return apply_overrides(
        cfg,
        {
            "provider": {"api_key": api_key},
            "drive": {"access_token": access_token},
            "logging": {
                "level": log_level,
                "file": log_file,
                "directory": str(log_dir) if log_dir else None,
            },
        },
    )


def _guard(action):
    try:
        return action()
    except ConfigurationError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(code=2) from exc
    except EventSyncError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    finally:
        # Flush Langfuse traces before exit
        flush()


if __name__ == "__main__":
    app()
