"""Command-line interface for milsto."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional

import structlog
import typer
from rich import print as rprint
from rich.console import Console
from rich.live import Live

from . import __version__
from .countdown import CountdownTicker
from .engine import build_sections
from .errors import FormClosedError, MilestoneNotFoundError, StoreInitError, ValidationError
from .forms import AddForm, EditForm, Field
from .log import configure_logging
from .models import parse_timestamp, sample_milestones, utcnow
from .render import SHORT_ID_LENGTH, format_target, help_view, list_view, settings_view
from .state import (
    FLAG_KEYS,
    default_state_dir,
    ensure_display_flags,
    flag_key,
    load_display_flags,
    toggle_flag,
)
from .store import RecordStore, open_store

app = typer.Typer(help="Track milestones and count down to them", no_args_is_help=True)

log = structlog.get_logger("milsto.cli")

PATH_HELP = "State directory holding milsto.db and settings.json (default: ~/.milsto or $MILSTO_HOME)"


class DisplayField(str, Enum):
    title = "title"
    target = "target"
    countdown = "countdown"
    notes = "notes"


def _state_dir(path: Optional[Path]) -> Path:
    return (path if path is not None else default_state_dir()).expanduser().resolve()


def _open(state_dir: Path) -> RecordStore:
    """Open the store or terminate; nothing works without it."""
    try:
        store = open_store(state_dir)
    except StoreInitError as exc:
        log.critical("store_init_failed", state_dir=str(state_dir), error=str(exc))
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    ensure_display_flags(state_dir)
    return store


def _parse_target(value: str) -> datetime:
    parsed = parse_timestamp(value)
    if parsed is None:
        raise typer.BadParameter(
            f"Could not read target '{value}'. Use an ISO date/time, 'now', or an offset like +90m.",
            param_hint="--target",
        )
    return parsed


def _short(milestone_id: str) -> str:
    return milestone_id[:SHORT_ID_LENGTH]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    log_json: bool = typer.Option(False, "--log-json", help="Emit logs as JSON lines"),
) -> None:
    """milsto: named events with a target time and a live countdown."""
    configure_logging(verbose=verbose, log_json=log_json)


@app.command("version")
def version() -> None:
    """Print the milsto version."""
    typer.echo(f"milsto {__version__}")


@app.command("add")
def add_milestone(
    title: Optional[str] = typer.Argument(None, help="Milestone title (required unless --interactive)"),
    target: Optional[str] = typer.Option(None, "--target", "-t", help="When it happens: ISO date/time, 'now' or +30m/+2h/+3d"),
    notes: str = typer.Option("", "--notes", "-n", help="Free-text notes"),
    interactive: bool = typer.Option(False, "--interactive", "-i", help="Keep prompting for milestones until an empty title"),
    path: Optional[Path] = typer.Option(None, "--path", help=PATH_HELP),
) -> None:
    """Add a milestone."""

    start = _parse_target(target) if target else None
    state_dir = _state_dir(path)
    store = _open(state_dir)
    try:
        form = AddForm(store, now=start)
        if interactive:
            added = _interactive_add(form, first_title=title or "", first_notes=notes)
            typer.echo(f"Added {added} milestone(s).")
            return
        form.title = title or ""
        form.notes = notes
        try:
            milestone = form.submit()
        except ValidationError as exc:
            raise typer.BadParameter(str(exc), param_hint="TITLE") from exc
    finally:
        store.close()

    log.info("milestone_added", id=milestone.id)
    typer.echo(f"Added milestone '{milestone.title}' ({_short(milestone.id)}) due {format_target(milestone.target)}.")


def _interactive_add(form: AddForm, first_title: str = "", first_notes: str = "") -> int:
    added = 0
    title, notes = first_title, first_notes
    while True:
        if not title:
            title = typer.prompt("Title (empty to finish)", default="", show_default=False)
        if not title:
            return added
        form.title = title
        if form.submit_field() is Field.NOTES and not notes:
            notes = typer.prompt("Notes", default="", show_default=False)
        form.notes = notes
        form.submit_field()
        raw_target = typer.prompt("Target", default=format_target(form.target))
        parsed = parse_timestamp(raw_target)
        if parsed is None:
            typer.echo(f"Could not read target '{raw_target}'; keeping {format_target(form.target)}.")
        else:
            form.target = parsed
        milestone = form.submit()
        added += 1
        typer.echo(f"Added milestone '{milestone.title}' ({_short(milestone.id)}).")
        title, notes = "", ""


@app.command("list")
def list_milestones(
    search: str = typer.Option("", "--search", "-q", help="Only show milestones whose title or notes contain this text"),
    watch: bool = typer.Option(False, "--watch", "-w", help="Keep the view open and refresh countdowns every second"),
    ticks: Optional[int] = typer.Option(None, "--ticks", hidden=True, help="Stop watching after N refreshes"),
    path: Optional[Path] = typer.Option(None, "--path", help=PATH_HELP),
) -> None:
    """List milestones grouped by the day they were created."""

    state_dir = _state_dir(path)
    store = _open(state_dir)
    try:
        if watch:
            _watch(store, state_dir, search, ticks)
            return
        flags = load_display_flags(state_dir)
        sections = build_sections(store.all(), search)
        Console().print(list_view(sections, flags, utcnow(), search))
    finally:
        store.close()


def _watch(store: RecordStore, state_dir: Path, query: str, ticks: Optional[int]) -> None:
    ticker = CountdownTicker()
    with Live(console=Console(), auto_refresh=False) as live:

        def _render(now) -> None:
            # re-pull each tick so edits from another shell show up
            flags = load_display_flags(state_dir)
            sections = build_sections(store.all(), query)
            live.update(list_view(sections, flags, now, query), refresh=True)

        token = ticker.subscribe(_render)
        try:
            ticker.run(ticks)
        except KeyboardInterrupt:
            pass
        finally:
            ticker.unsubscribe(token)


@app.command("edit")
def edit_milestone(
    milestone_id: str = typer.Argument(..., help="Milestone id or unique prefix"),
    title: Optional[str] = typer.Option(None, "--title", help="New title"),
    target: Optional[str] = typer.Option(None, "--target", "-t", help="New target: ISO date/time, 'now' or +30m/+2h/+3d"),
    notes: Optional[str] = typer.Option(None, "--notes", "-n", help="New notes (pass '' to clear)"),
    path: Optional[Path] = typer.Option(None, "--path", help=PATH_HELP),
) -> None:
    """Edit a milestone's title, target or notes."""

    if title is not None and not title:
        raise typer.BadParameter("Title cannot be empty.", param_hint="--title")
    new_target = _parse_target(target) if target else None

    store = _open(_state_dir(path))
    try:
        try:
            form = EditForm(store, store.resolve(milestone_id).id)
        except MilestoneNotFoundError as exc:
            raise typer.BadParameter(str(exc), param_hint="MILESTONE_ID") from exc
        if title is None and notes is None and new_target is None:
            typer.echo("No updates specified; nothing to do.")
            raise typer.Exit(code=0)
        try:
            if new_target is not None:
                form.set_target(new_target)
            if title is not None:
                form.set_title(title)
            if notes is not None:
                form.set_notes(notes)
            form.done()
        except (ValidationError, FormClosedError) as exc:
            raise typer.BadParameter(str(exc)) from exc
        milestone = form.milestone
    finally:
        store.close()

    typer.echo(f"Updated milestone '{milestone.title}' ({_short(milestone.id)}).")


@app.command("delete")
def delete_milestones(
    milestone_ids: List[str] = typer.Argument(..., help="Milestone ids or unique prefixes"),
    path: Optional[Path] = typer.Option(None, "--path", help=PATH_HELP),
) -> None:
    """Delete one or more milestones."""

    store = _open(_state_dir(path))
    try:
        try:
            targets = [store.resolve(identifier) for identifier in milestone_ids]
        except MilestoneNotFoundError as exc:
            raise typer.BadParameter(str(exc), param_hint="MILESTONE_IDS") from exc
        for milestone in targets:
            if store.delete(milestone.id):
                typer.echo(f"Deleted milestone '{milestone.title}' ({_short(milestone.id)}).")
    finally:
        store.close()


@app.command("toggle")
def toggle_display(
    field: DisplayField = typer.Argument(..., help="Which field to show or hide"),
    path: Optional[Path] = typer.Option(None, "--path", help=PATH_HELP),
) -> None:
    """Show or hide a field in the list view."""

    state_dir = _state_dir(path)
    flags = toggle_flag(state_dir, field.value)
    key = flag_key(field.value)
    typer.echo(f"{key} is now {'on' if getattr(flags, key) else 'off'}.")


@app.command("settings")
def show_settings(
    path: Optional[Path] = typer.Option(None, "--path", help=PATH_HELP),
) -> None:
    """Show display settings and app info."""

    state_dir = _state_dir(path)
    flags = load_display_flags(state_dir)
    rprint(settings_view(flags, str(state_dir)))
    typer.echo(f"Toggle with: milsto toggle {{{','.join(FLAG_KEYS)}}}")


@app.command("help")
def show_help() -> None:
    """Where to get help and send feedback."""
    rprint(help_view())


@app.command("seed")
def seed_samples(
    path: Optional[Path] = typer.Option(None, "--path", help=PATH_HELP),
) -> None:
    """Insert a handful of sample milestones."""

    store = _open(_state_dir(path))
    try:
        samples = sample_milestones()
        for milestone in samples:
            store.insert(milestone)
    finally:
        store.close()
    typer.echo(f"Inserted {len(samples)} sample milestones.")


if __name__ == "__main__":
    app()
