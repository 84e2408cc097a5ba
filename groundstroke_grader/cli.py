from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.progress import Progress

from .biomechanics.config import print_config
from .config import as_dict as config_as_dict, get_config
from .env import get_env
from .models import ValidationError
from .pipeline import StrokeAnalysisPipeline
from .pose_source import JsonPoseSource
from .reports import build_summary_table, motion_series_dataframe, write_session_report

app = typer.Typer(help="Grade tennis groundstrokes from 2D pose data.")


def _fail(message: str, *, code: int = 1) -> None:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=code)


def _configure_logging(verbose: bool) -> None:
    level_name = "DEBUG" if verbose else (get_env("LOG_LEVEL") or "WARNING")
    logging.basicConfig(
        level=getattr(logging, level_name.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def analyze(
    pose_json: Path = typer.Argument(..., help="Pose JSON file (named joints or MediaPipe landmarks)."),
    video: Optional[Path] = typer.Option(
        None,
        "--video",
        help="Source video; enables export of the best forehand/backhand highlight clips.",
    ),
    clips_dir: Optional[Path] = typer.Option(
        None,
        "--clips-dir",
        help="Directory for highlight clips (defaults to the configured clips_dir).",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the session report as JSON to this path.",
    ),
    motion_csv: Optional[Path] = typer.Option(
        None,
        "--motion-csv",
        help="Write the per-frame motion series to this CSV path.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """
    Segment, classify and score the groundstrokes in a pose recording.

    Examples:
        groundstroke analyze poses/rally.json
        groundstroke analyze poses/rally.json --video rally.mp4 --output reports/rally.json
    """
    _configure_logging(verbose)
    if not pose_json.is_file():
        _fail(f"Pose file not found: {pose_json}")

    config = get_config()
    exporter = None
    if video is not None:
        if not video.is_file():
            _fail(f"Video not found: {video}")
        from .biomechanics.utils.video import OpenCVClipExporter

        exporter = OpenCVClipExporter(clips_dir or config.clips_dir, sources={str(pose_json): video})

    pipeline = StrokeAnalysisPipeline(JsonPoseSource(pose_json.parent), exporter, config=config)
    try:
        with Progress(transient=True) as progress:
            task = progress.add_task(f"Analyzing {pose_json.name}", total=1.0)
            result = pipeline.analyze(str(pose_json), lambda value: progress.update(task, completed=value))
    except ValidationError as exc:
        _fail(f"Invalid pose data: {exc}")

    console = Console()
    console.print(build_summary_table(result))
    for kind, clip in (("forehand", result.best_forehand_clip), ("backhand", result.best_backhand_clip)):
        if clip.exported:
            typer.echo(f"Best {kind}: {clip.reference} ({clip.start:.2f}s - {clip.end:.2f}s)")
    for message in result.warnings:
        typer.secho(f"Warning: {message}", fg=typer.colors.YELLOW, err=True)

    if output is not None:
        target = write_session_report(result, output)
        typer.echo(f"Report written to {target}")
    if motion_csv is not None:
        motion_csv.parent.mkdir(parents=True, exist_ok=True)
        motion_series_dataframe(result.motion_points).to_csv(motion_csv, index=False)
        typer.echo(f"Motion series written to {motion_csv}")


@app.command("config")
def config_show(
    as_json: bool = typer.Option(False, "--json", help="Print the effective configuration as JSON."),
) -> None:
    """
    Show the effective configuration (worker pools, clip directory, analysis thresholds).
    """
    config = config_as_dict()
    if as_json:
        typer.echo(json.dumps(config, indent=2))
        return
    typer.echo(f"Config source: {config.get('source')}")
    typer.echo(f"Motion workers: {config.get('motion_workers')}, export workers: {config.get('export_workers')}")
    typer.echo(f"Clips directory: {config.get('clips_dir')}")
    print_config(get_config().analysis)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
