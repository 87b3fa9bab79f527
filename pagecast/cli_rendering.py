"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
run results, ledger rows, entry status, and live generation progress lines.
"""

from __future__ import annotations

from typing import NoReturn

import typer

from .errors import PagecastError, PipelineStageError
from .models.datatypes import Entry, EntryStatus, ProgressSnapshot, RunResult


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, PipelineStageError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        hint = exc.hint
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
        hint = exc.hint if isinstance(exc, PagecastError) else None
    if hint:
        typer.secho(f"Hint: {hint}", fg=typer.colors.YELLOW, err=True)
    raise typer.Exit(code=1) from exc


def run_result_error(result: RunResult) -> PipelineStageError:
    """Convert a failed run result into a stage error for CLI reporting."""

    return PipelineStageError(
        stage=result.failed_stage_name or "unknown",
        detail=result.message,
        hint="Fix the cause and run `pagecast process <index>`; completed stages are skipped.",
    )


def echo_run_result(result: RunResult) -> None:
    """Print the per-stage dispositions of one successful run."""

    typer.echo(f"Entry: {result.origin}")
    typer.echo(f"Entry id: {result.entry_id}")
    for stage_name, disposition in result.steps.items():
        typer.echo(f"  {stage_name}: {disposition}")
    if result.failed_segments:
        typer.secho(
            f"Warning: {result.failed_segments} segment(s) failed and were left out of the track.",
            fg=typer.colors.YELLOW,
        )
    typer.echo(result.message)


def echo_entry_list(entries: list[Entry]) -> None:
    """Print compact 1-based ledger rows."""

    if not entries:
        typer.echo("No entries tracked.")
        return
    for position, entry in enumerate(entries, start=1):
        line = f"{position}. {entry.origin}"
        if entry.comment:
            line += f" ({entry.comment})"
        typer.echo(line)


def format_status(status: EntryStatus) -> str:
    return (
        f"{status.status} step={status.step}/{status.total_steps} "
        f"({status.progress_percent}%) {status.step_name}"
    )


def echo_status(origin: str, status: EntryStatus) -> None:
    typer.echo(f"{origin}: {format_status(status)}")


def format_segment_progress(snapshot: ProgressSnapshot) -> str:
    """Render one live generation snapshot as a single progress line."""

    if snapshot.state == "concatenating":
        return f"concatenating {snapshot.successful} segment(s)"
    return (
        f"segment={snapshot.current_index}/{snapshot.total} "
        f"failed={snapshot.failed} "
        f"elapsed={snapshot.elapsed_seconds:.1f}s "
        f"remaining={snapshot.estimated_remaining_seconds:.1f}s"
    )
