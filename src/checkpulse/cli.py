# src/checkpulse/cli.py
"""Checkpulse Command Line Interface.

Entry point for the checkpulse CLI tool.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

import typer
from pydantic import ValidationError

from checkpulse import __version__
from checkpulse.contracts.stats import (
    SUMMARY_METRICS,
    CheckpointingStatisticsSnapshot,
    FailedCheckpointStats,
    SummaryStatistic,
)
from checkpulse.core.config import CheckpulseSettings, load_settings
from checkpulse.core.logging import configure_logging
from checkpulse.core.replay import ReplayError, replay_events
from checkpulse.core.serialization import to_json
from checkpulse.core.status import CheckpointingStatus

__all__ = ["app"]

app = typer.Typer(
    name="checkpulse",
    help="Checkpulse: checkpoint statistics for stream-processing jobs.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"checkpulse version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
) -> None:
    """Checkpulse: checkpoint statistics for stream-processing jobs."""
    log_level = "DEBUG" if verbose else "INFO"
    configure_logging(json_output=json_logs, level=log_level)


def _load_config(settings: str | None) -> CheckpulseSettings:
    """Load settings from a file, or defaults when none is given."""
    if settings is None:
        return CheckpulseSettings()

    settings_path = Path(settings).expanduser()
    try:
        config = load_settings(settings_path)
    except FileNotFoundError:
        typer.echo(f"Settings file not found: {settings}", err=True)
        raise typer.Exit(1) from None
    except ValidationError as e:
        typer.echo("Configuration errors:", err=True)
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            typer.echo(f"  - {loc}: {error['msg']}", err=True)
        raise typer.Exit(1) from None

    configure_logging(json_output=config.logging.json_output, level=config.logging.level)
    return config


def _format_summary_row(name: str, summary: SummaryStatistic) -> str:
    return (
        f"  {name:<20} min={summary.min:g} max={summary.max:g} avg={summary.average:g} "
        f"p50={summary.p50:g} p90={summary.p90:g} p99={summary.p99:g}"
    )


def _format_console(snapshot: CheckpointingStatisticsSnapshot) -> str:
    """Human-readable rendering of a snapshot."""
    counts = snapshot.counts
    lines = [
        "Counts:",
        f"  total={counts.total} in_progress={counts.in_progress} completed={counts.completed} "
        f"failed={counts.failed} restored={counts.restored}",
        "Summary:",
    ]
    summary = snapshot.summary
    for name in SUMMARY_METRICS:
        lines.append(_format_summary_row(name, getattr(summary, name)))

    latest = snapshot.latest
    lines.append("Latest:")
    for label, record in (("completed", latest.completed), ("savepoint", latest.savepoint), ("failed", latest.failed)):
        if record is None:
            lines.append(f"  {label:<10} -")
        else:
            lines.append(f"  {label:<10} #{record.checkpoint_id} {record.reported_kind} duration={record.duration}ms")
    if latest.restored is None:
        lines.append(f"  {'restored':<10} -")
    else:
        lines.append(f"  {'restored':<10} #{latest.restored.checkpoint_id} at {latest.restored.restore_timestamp}")

    lines.append("History:")
    if not snapshot.history:
        lines.append("  (empty)")
    for record in snapshot.history:
        line = f"  #{record.checkpoint_id} {record.status} {record.reported_kind} duration={record.duration}ms"
        if isinstance(record, FailedCheckpointStats) and record.failure_message is not None:
            line += f" ({record.failure_message})"
        lines.append(line)
    return "\n".join(lines)


@app.command()
def replay(
    events: Path = typer.Argument(
        ...,
        help="JSON-lines file of checkpoint lifecycle events.",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    settings: str | None = typer.Option(
        None,
        "--settings",
        "-s",
        help="Path to settings YAML file (defaults apply when omitted).",
    ),
    output_format: Literal["console", "json"] = typer.Option(
        "console",
        "--format",
        "-f",
        help="Output format: 'console' (human-readable) or 'json' (canonical JSON snapshot).",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the JSON snapshot to this file instead of stdout.",
    ),
    keep_going: bool = typer.Option(
        False,
        "--keep-going",
        "-k",
        help="Skip rejected events instead of stopping at the first one.",
    ),
) -> None:
    """Replay an event log and print the resulting checkpoint statistics."""
    config = _load_config(settings)
    status = CheckpointingStatus.from_settings(config.statistics)

    with events.expanduser().open(encoding="utf-8") as f:
        try:
            result = replay_events(status, f, keep_going=keep_going)
        except ReplayError as e:
            typer.echo(f"Rejected event at line {e.line_number}: {e.cause}", err=True)
            raise typer.Exit(1) from None
        except UnicodeDecodeError as e:
            typer.echo(f"Events file is not valid UTF-8: {e.reason}", err=True)
            raise typer.Exit(1) from None

    snapshot = status.snapshot()

    if output is not None:
        output.expanduser().write_text(to_json(snapshot), encoding="utf-8")
    elif output_format == "json":
        typer.echo(to_json(snapshot))
    else:
        typer.echo(_format_console(snapshot))

    if result.rejected:
        typer.echo(f"Skipped {len(result.rejected)} rejected event(s)", err=True)


if __name__ == "__main__":
    app()
