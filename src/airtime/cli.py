"""
Airtime CLI - Entry point for operators

Runs the scheduler loop and offers one-shot commands to inspect the
schedule: what plays now, a day preview, and conflict checks for events
before they are saved.
"""

import argparse
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table

from airtime.core.clock import SystemClock
from airtime.core.config import Config, ensure_directories, load_config
from airtime.core.database import set_database_path
from airtime.core.output import setup_from_config

console = Console()

SEVERITY_STYLES = {"blocking": "bold red", "warning": "yellow"}
KIND_STYLES = {
    "broadcast": "bold magenta",
    "recurring": "cyan",
    "queue": "green",
    "idle": "dim",
}


def _configure() -> Config:
    ensure_directories()
    config = load_config()
    setup_from_config(config.logging)
    if config.store.database_path:
        set_database_path(Path(config.store.database_path))
    return config


def _make_scheduler(config: Config):
    from airtime.domain.schedule import Scheduler, SqlEntityStore

    return Scheduler(SqlEntityStore(), config=config)


def run_init_db() -> int:
    """Create or migrate the entity store schema."""
    from airtime.core.db_adapter import init_schema

    _configure()
    init_schema()
    console.print("[green]✓[/green] Database ready")
    return 0


def run_now() -> int:
    """Resolve and print what should be playing right now."""
    from airtime.domain.schedule import StoreUnavailableError, describe_directive

    config = _configure()
    scheduler = _make_scheduler(config)
    try:
        directive = scheduler.start()
    except StoreUnavailableError as e:
        console.print(f"[red]✗ {e}[/red]")
        return 1

    info = scheduler.get_scheduler_info()
    scheduler.shutdown(persist=False)

    console.print(f"[bold]Now:[/bold] {describe_directive(directive)}")
    console.print(f"[dim]State: {info['state']}[/dim]")
    if info["dangling_references"]:
        console.print(
            f"[yellow]⚠ {info['dangling_references']} dangling reference(s), see log[/yellow]"
        )
    return 0


def run_loop() -> int:
    """Run the scheduler until interrupted, printing each directive change."""
    from airtime.domain.schedule import StoreUnavailableError, describe_directive

    config = _configure()
    scheduler = _make_scheduler(config)

    def on_change(event) -> None:
        at = event.at.strftime("%H:%M:%S")
        console.print(f"[dim]{at}[/dim] {describe_directive(event.directive)}")

    scheduler.on_directive_changed(on_change)
    try:
        scheduler.start()
    except StoreUnavailableError as e:
        console.print(f"[red]✗ {e}[/red]")
        return 1

    console.print("[bold]Scheduler running[/bold] (Ctrl-C to stop)")
    scheduler.run_forever()
    return 0


def run_preview(day_str: Optional[str]) -> int:
    """Print the day's schedule as contiguous ranges."""
    from airtime.domain.schedule import InvalidTimeWindow, StoreUnavailableError
    from airtime.domain.schedule.windows import DAY_NAMES, day_of_week, parse_date

    config = _configure()
    try:
        if day_str:
            day = parse_date(day_str)
        else:
            day = SystemClock(config.scheduler.timezone).now().date()
    except InvalidTimeWindow as e:
        console.print(f"[red]✗ {e}[/red]")
        return 1

    scheduler = _make_scheduler(config)
    try:
        scheduler.start()
    except StoreUnavailableError as e:
        console.print(f"[red]✗ {e}[/red]")
        return 1

    entries = scheduler.preview_schedule(day)
    scheduler.shutdown(persist=False)

    table = Table(title=f"{DAY_NAMES[day_of_week(day)]} {day.isoformat()}")
    table.add_column("From", style="bold")
    table.add_column("To")
    table.add_column("Kind")
    table.add_column("Playing")
    for entry in entries:
        end = "24:00" if entry.end.date() > day else entry.end.strftime("%H:%M:%S")
        style = KIND_STYLES.get(entry.kind, "")
        table.add_row(
            entry.start.strftime("%H:%M:%S"),
            end,
            f"[{style}]{entry.kind}[/{style}]" if style else entry.kind,
            entry.summary,
        )
    console.print(table)
    return 0


def _print_report(report) -> int:
    if not report.has_conflicts:
        console.print("[green]✓ No conflicts[/green]")
        return 0

    table = Table(title="Conflicts")
    table.add_column("Severity")
    table.add_column("Event")
    table.add_column("ID", style="dim")
    for conflict in report.conflicts:
        style = SEVERITY_STYLES[conflict.severity.value]
        table.add_row(
            f"[{style}]{conflict.severity.value}[/{style}]",
            conflict.event.title,
            conflict.event.id,
        )
    console.print(table)
    return 2 if report.is_blocking else 0


def run_check(candidate_factory) -> int:
    """Validate a candidate event against the current schedule.

    Exit code is 2 for blocking conflicts, 1 for invalid input.
    """
    from airtime.domain.schedule import StoreUnavailableError

    try:
        candidate = candidate_factory()
    except ValueError as e:
        console.print(f"[red]✗ {e}[/red]")
        return 1

    config = _configure()
    scheduler = _make_scheduler(config)
    try:
        scheduler.start()
        report = scheduler.validate_event(candidate)
    except StoreUnavailableError as e:
        console.print(f"[red]✗ {e}[/red]")
        return 1
    finally:
        scheduler.shutdown(persist=False)

    return _print_report(report)


def run_purge(before_str: str) -> int:
    """Delete consumed broadcasts dated before a day."""
    from airtime.domain.schedule import InvalidTimeWindow, purge_consumed_broadcasts
    from airtime.domain.schedule.windows import parse_date

    try:
        before = parse_date(before_str)
    except InvalidTimeWindow as e:
        console.print(f"[red]✗ {e}[/red]")
        return 1

    _configure()
    purged = purge_consumed_broadcasts(before)
    console.print(f"Purged {purged} consumed broadcast(s) before {before.isoformat()}")
    return 0


def main() -> None:
    """Main entry point for the airtime command."""
    from airtime.domain.schedule import make_broadcast, make_recurring_slot

    parser = argparse.ArgumentParser(
        description="Airtime - Radio station scheduling engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="subcommand", help="Available commands")

    subparsers.add_parser("init-db", help="Create or migrate the database schema")
    subparsers.add_parser("now", help="Show what should be playing right now")
    subparsers.add_parser("run", help="Run the scheduler loop")

    preview_parser = subparsers.add_parser("preview", help="Show the schedule for a day")
    preview_parser.add_argument("date", nargs="?", help="Day as YYYY-MM-DD (default: today)")

    slot_parser = subparsers.add_parser(
        "check-slot", help="Check a recurring slot for conflicts before saving it"
    )
    slot_parser.add_argument("day", type=int, help="Day of week (0 = Sunday ... 6 = Saturday)")
    slot_parser.add_argument("start", help="Start time HH:MM")
    slot_parser.add_argument("end", help="End time HH:MM (exclusive)")
    slot_parser.add_argument("--title", default="Candidate slot", help="Slot title")
    content = slot_parser.add_mutually_exclusive_group(required=True)
    content.add_argument("--song", help="Song ID the slot plays")
    content.add_argument("--playlist", help="Playlist ID the slot plays")
    slot_parser.add_argument("--id", help="Existing slot ID when checking an edit")

    broadcast_parser = subparsers.add_parser(
        "check-broadcast", help="Check a one-time broadcast for conflicts before saving it"
    )
    broadcast_parser.add_argument("date", help="Broadcast day YYYY-MM-DD")
    broadcast_parser.add_argument("start", help="Start time HH:MM")
    broadcast_parser.add_argument("song", help="Song ID to broadcast")
    broadcast_parser.add_argument("--title", default="Candidate broadcast", help="Title")
    broadcast_parser.add_argument("--id", help="Existing broadcast ID when checking an edit")

    purge_parser = subparsers.add_parser(
        "purge-broadcasts", help="Delete consumed broadcasts dated before a day"
    )
    purge_parser.add_argument("before", help="Day YYYY-MM-DD")

    args = parser.parse_args()

    if args.subcommand == "init-db":
        sys.exit(run_init_db())

    elif args.subcommand == "now":
        sys.exit(run_now())

    elif args.subcommand == "run":
        sys.exit(run_loop())

    elif args.subcommand == "preview":
        sys.exit(run_preview(args.date))

    elif args.subcommand == "check-slot":
        sys.exit(
            run_check(
                lambda: make_recurring_slot(
                    args.title,
                    args.day,
                    args.start,
                    args.end,
                    song_id=args.song,
                    playlist_id=args.playlist,
                    slot_id=args.id,
                )
            )
        )

    elif args.subcommand == "check-broadcast":
        sys.exit(
            run_check(
                lambda: make_broadcast(
                    args.title,
                    args.date,
                    args.start,
                    args.song,
                    broadcast_id=args.id,
                )
            )
        )

    elif args.subcommand == "purge-broadcasts":
        sys.exit(run_purge(args.before))

    parser.print_help()
    sys.exit(1)


if __name__ == "__main__":
    main()
