"""Command-line interface for Pagecast.

Responsibilities:
- Expose user-facing commands for ledger management and pipeline runs.
- Resolve `PagecastConfig` from `--config`, environment, and CLI overrides.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

from pathlib import Path
import sys
from typing import Annotated

import typer

from .cli_rendering import (
    echo_entry_list,
    echo_run_result,
    echo_status,
    exit_with_command_error,
    format_segment_progress,
    run_result_error,
)
from .config import ConfigLoader, PagecastConfig
from .errors import PipelineStageError
from .models.datatypes import Entry, ProgressSnapshot, RunResult
from .pipeline import PagecastPipeline
from .telemetry.logger import RunLogger

app = typer.Typer(
    name="pagecast",
    no_args_is_help=True,
    help="Pagecast CLI: turn web pages into narrated MP3 tracks.",
)

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help="Path to YAML config file with command defaults."),
]
DataDirOption = Annotated[
    Path | None,
    typer.Option("--data-dir", help="Data directory (overrides config and environment)."),
]
IndexArgument = Annotated[
    int,
    typer.Argument(help="1-based entry position as shown by `pagecast list`."),
]


class StageProgressIndicator:
    """Render deterministic per-stage progress lines for long-running commands."""

    _SPINNER_FRAMES = "|/-\\"

    def __init__(self, command_name: str) -> None:
        self._command_name = command_name

    def on_stage_start(self, stage_name: str, stage_index: int, stage_total: int) -> None:
        spinner = self._SPINNER_FRAMES[(stage_index - 1) % len(self._SPINNER_FRAMES)]
        typer.echo(
            f"[progress] command={self._command_name} "
            f"{spinner} {stage_index}/{stage_total} stage={stage_name}"
        )

    def on_segment_progress(self, snapshot: ProgressSnapshot) -> None:
        typer.echo(f"[progress] command={self._command_name} {format_segment_progress(snapshot)}")


def _resolve_config(config_file: Path | None, data_dir: Path | None) -> PagecastConfig:
    """Resolve effective config and map loader failures to stage errors."""

    try:
        return ConfigLoader.resolve(
            config_path=config_file,
            overrides={"data_dir": data_dir},
        )
    except FileNotFoundError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Config file not found: `{config_file}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Invalid configuration: {exc}",
            hint="Fix config file values or `PAGECAST_*` environment variables and rerun.",
        ) from exc


def _build_pipeline(
    command_name: str,
    config_file: Path | None,
    data_dir: Path | None,
) -> PagecastPipeline:
    config = _resolve_config(config_file, data_dir)
    progress = StageProgressIndicator(command_name=command_name)
    return PagecastPipeline.from_config(
        config,
        run_logger=RunLogger(),
        stage_progress_callback=progress.on_stage_start,
        segment_progress_callback=progress.on_segment_progress,
    )


def _ledger_index(position: int) -> int:
    if position < 1:
        raise PipelineStageError(
            stage="ledger",
            detail=f"Entry position must be 1 or greater, got {position}.",
            hint="Run `pagecast list` to see valid positions.",
        )
    return position - 1


def _report(command_name: str, entry: Entry, result: RunResult | None) -> None:
    if result is None:
        typer.echo(f"Added: {entry.origin}")
        typer.echo(f"Entry id: {entry.entry_id}")
        return
    if not result.success:
        exit_with_command_error(command_name, run_result_error(result))
    echo_run_result(result)


@app.command("add")
def add_command(
    url: Annotated[str, typer.Argument(help="Absolute http(s) URL of the page to narrate.")],
    comment: Annotated[
        str | None, typer.Option("--comment", help="Optional free-text annotation.")
    ] = None,
    process: Annotated[
        bool,
        typer.Option("--process/--no-process", help="Process the entry right after adding it."),
    ] = True,
    config_file: ConfigOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """Track a URL and optionally narrate it."""

    try:
        pipeline = _build_pipeline("add", config_file, data_dir)
        entry, result = pipeline.submit_url(url, comment=comment, process=process)
    except Exception as exc:
        exit_with_command_error("add", exc)
    _report("add", entry, result)


@app.command("add-html")
def add_html_command(
    source: Annotated[
        str, typer.Argument(help="Path to an HTML file, or `-` to read from stdin.")
    ],
    comment: Annotated[
        str | None, typer.Option("--comment", help="Optional free-text annotation.")
    ] = None,
    process: Annotated[
        bool,
        typer.Option("--process/--no-process", help="Process the entry right after adding it."),
    ] = True,
    config_file: ConfigOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """Track directly supplied HTML markup and optionally narrate it."""

    try:
        if source == "-":
            markup = sys.stdin.read()
        else:
            markup = Path(source).read_text(encoding="utf-8")
        pipeline = _build_pipeline("add-html", config_file, data_dir)
        entry, result = pipeline.submit_markup(markup, comment=comment, process=process)
    except Exception as exc:
        exit_with_command_error("add-html", exc)
    _report("add-html", entry, result)


@app.command("list")
def list_command(
    config_file: ConfigOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """List tracked entries."""

    try:
        entries = _build_pipeline("list", config_file, data_dir).list_entries()
    except Exception as exc:
        exit_with_command_error("list", exc)
    echo_entry_list(entries)


@app.command("remove")
def remove_command(
    position: IndexArgument,
    config_file: ConfigOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """Stop tracking an entry and delete all of its artifacts."""

    try:
        pipeline = _build_pipeline("remove", config_file, data_dir)
        removed = pipeline.remove_entry(_ledger_index(position))
    except Exception as exc:
        exit_with_command_error("remove", exc)
    typer.echo(f"Removed: {removed.origin}")


@app.command("delete-audio")
def delete_audio_command(
    position: IndexArgument,
    config_file: ConfigOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """Delete only the final track so the next run rebuilds it."""

    try:
        pipeline = _build_pipeline("delete-audio", config_file, data_dir)
        entry = pipeline.delete_audio(_ledger_index(position))
    except Exception as exc:
        exit_with_command_error("delete-audio", exc)
    typer.echo(f"Deleted audio: {entry.origin}")


@app.command("process")
def process_command(
    position: IndexArgument,
    config_file: ConfigOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """Process one entry, resuming at the first missing stage artifact."""

    try:
        pipeline = _build_pipeline("process", config_file, data_dir)
        entry = pipeline.ledger.get(_ledger_index(position))
        result = pipeline.process_entry(entry)
    except Exception as exc:
        exit_with_command_error("process", exc)
    _report("process", entry, result)


@app.command("process-all")
def process_all_command(
    config_file: ConfigOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """Process every tracked entry sequentially."""

    try:
        results = _build_pipeline("process-all", config_file, data_dir).process_all()
    except Exception as exc:
        exit_with_command_error("process-all", exc)

    failures = [result for result in results if not result.success]
    for result in results:
        marker = "ok" if result.success else "failed"
        typer.echo(f"[{marker}] {result.origin}: {result.message}")
    typer.echo(f"Processed: {len(results) - len(failures)}/{len(results)}")
    if failures:
        raise typer.Exit(code=1)


@app.command("status")
def status_command(
    position: Annotated[
        int | None,
        typer.Argument(help="1-based entry position; omit to show every entry."),
    ] = None,
    config_file: ConfigOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """Show processing status derived from stored artifacts."""

    try:
        pipeline = _build_pipeline("status", config_file, data_dir)
        if position is None:
            statuses = pipeline.status_all()
        else:
            entry = pipeline.ledger.get(_ledger_index(position))
            statuses = {entry.origin: pipeline.status(entry.entry_id)}
    except Exception as exc:
        exit_with_command_error("status", exc)

    if not statuses:
        typer.echo("No entries tracked.")
    for origin, status in statuses.items():
        echo_status(origin, status)


@app.command("health")
def health_command(
    config_file: ConfigOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """Check that ffmpeg and the speech engine are usable."""

    try:
        pipeline = _build_pipeline("health", config_file, data_dir)
        version = pipeline.check_audio_tool()
        typer.echo(f"ffmpeg: ok ({version})")
        pipeline.check_speech_engine()
        typer.echo("speech engine: ok")
    except Exception as exc:
        exit_with_command_error("health", exc)


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
