"""lessontrack CLI: inspect stored progress, events and configuration, run the server."""

import asyncio
import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict
from pathlib import Path
from typing import Annotated

import typer

from lessontrack.application.config import resolve_config
from lessontrack.application.factory import TrackingContext, build_tracking_context
from lessontrack.application.tracking.statistics import is_completed, summarize
from lessontrack.infrastructure.adapters.markdown_content import MarkdownContentProvider

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="lessontrack: reading-progress tracking for lesson readers.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

progress_app = typer.Typer(help="Inspect stored lesson progress.", no_args_is_help=True)
app.add_typer(progress_app, name="progress")

config_app = typer.Typer(help="Manage lessontrack configuration.")
app.add_typer(config_app, name="config")

lessons_app = typer.Typer(help="Browse the local lessons directory.", no_args_is_help=True)
app.add_typer(lessons_app, name="lessons")

UserOption = Annotated[
    int | None, typer.Option("--user", "-u", help="Numeric user id. Defaults to config/env.")
]
JsonOption = Annotated[bool, typer.Option("--json", help="Output as JSON.")]


@app.callback()
def main_callback(
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
):
    """Global settings for lessontrack."""
    if verbose >= 2:
        logging.getLogger().setLevel(logging.DEBUG)
    elif verbose == 1:
        logging.getLogger().setLevel(logging.INFO)


@contextmanager
def _open_context(user: int | None) -> Iterator[TrackingContext]:
    config = resolve_config({"user_id": user})
    ctx = build_tracking_context(config)
    try:
        yield ctx
    finally:
        asyncio.run(ctx.aclose())


# ---------------------------------------------------------------------------
# Progress subgroup
# ---------------------------------------------------------------------------


@progress_app.command("show")
def progress_show(
    lesson: Annotated[str, typer.Argument(help="Lesson key.")],
    user: UserOption = None,
):
    """Show stored metrics for one lesson."""
    with _open_context(user) as ctx:
        metrics = ctx.tracker.get_progress(lesson)

    if metrics is None:
        typer.secho(f"No progress recorded for '{lesson}'.", fg="yellow")
        raise typer.Exit(1)
    typer.echo(metrics.model_dump_json(indent=2))


@progress_app.command("list")
def progress_list(user: UserOption = None, json_output: JsonOption = False):
    """List every lesson with stored progress."""
    with _open_context(user) as ctx:
        records = ctx.gateway.list_metrics()

    if json_output:
        typer.echo(
            json.dumps({k: m.model_dump(mode="json") for k, m in records.items()}, indent=2)
        )
        return

    if not records:
        typer.secho("No progress recorded.", fg="yellow")
        return

    for key, m in records.items():
        mark = typer.style("done", fg="green") if is_completed(m) else "    "
        typer.echo(
            f"{mark}  {key}  score={m.completion_score:.2f}  scroll={m.scroll_progress:.0f}%"
            f"  visits={m.visits}  engagement={m.engagement_level}"
        )


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command()
def stats(user: UserOption = None, json_output: JsonOption = False):
    """Summarize reading statistics."""
    with _open_context(user) as ctx:
        summary = summarize(ctx.gateway.list_metrics().values(), ctx.event_log.entries())

    if json_output:
        typer.echo(json.dumps(asdict(summary), indent=2))
        return

    typer.echo(f"Lessons viewed:    {summary.lessons_viewed}")
    typer.echo(f"Lessons completed: {summary.lessons_completed}")
    typer.echo(f"Completion rate:   {summary.completion_rate:.0%}")
    typer.echo(f"Time spent:        {summary.total_time_spent_ms // 60000} min")
    typer.echo(f"Reading speed:     {summary.average_reading_speed_wpm:.0f} wpm")
    typer.echo(f"Streak:            {summary.current_streak} (longest {summary.longest_streak})")


@app.command()
def events(
    lesson: Annotated[str | None, typer.Option(help="Only events of this lesson.")] = None,
    limit: Annotated[int, typer.Option(help="Show at most this many events.")] = 20,
    user: UserOption = None,
):
    """Show the most recent tracking events."""
    with _open_context(user) as ctx:
        entries = ctx.event_log.for_lesson(lesson) if lesson else ctx.event_log.entries()

    for event in entries[-limit:] if limit > 0 else []:
        typer.echo(event.model_dump_json())


@app.command()
def serve(
    port: Annotated[int, typer.Option(help="Port to bind the server to.")] = 8787,
    host: Annotated[str, typer.Option(help="Host to bind the server to.")] = "127.0.0.1",
    reload: Annotated[bool, typer.Option(help="Enable auto-reload.")] = False,
):
    """Run the tracking HTTP server."""
    import uvicorn

    log_file = _prepare_log_file(resolve_config().log_dir)
    typer.echo(f"Starting lessontrack server on {host}:{port} (log: {log_file})")
    uvicorn.run("lessontrack.server:app", host=host, port=port, reload=reload)


@app.command()
def logs():
    """Print the log directory."""
    log_dir = resolve_config().log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    typer.echo(str(log_dir))


def _prepare_log_file(log_dir: Path) -> Path:
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "server.log"
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s:%(name)s:%(message)s"))
    logging.getLogger("lessontrack").addHandler(handler)
    return log_file


# ---------------------------------------------------------------------------
# Lessons subgroup
# ---------------------------------------------------------------------------


@lessons_app.command("list")
def lessons_list(
    path: Annotated[
        Path | None, typer.Argument(help="Lessons directory. Defaults to config.")
    ] = None,
):
    """List lesson keys found in the lessons directory."""
    lessons_dir = path or resolve_config().lessons_dir
    if lessons_dir is None:
        typer.secho("No lessons directory configured.", fg="red")
        raise typer.Exit(2)

    keys = MarkdownContentProvider(lessons_dir).list_lessons()
    if not keys:
        typer.secho(f"No lessons found in {lessons_dir}.", fg="yellow")
    for key in keys:
        typer.echo(key)


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = resolve_config()
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))


def main() -> None:
    app()
