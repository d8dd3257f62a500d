"""
Main CLI application using Typer.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Annotated, Iterator, List, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..adapters.database import Database
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import SlotCalendarError, ValidationError
from ..domain.models import DayProjection, Slot, SlotException, day_of_week, format_time, parse_date
from ..domain.rules import DAY_NAMES
from ..services.exception_store import ExceptionStore
from ..services.schedule_projector import ScheduleProjector
from ..services.schedule_service import ScheduleService
from ..services.slot_store import SlotStore

app = typer.Typer(
    name="slotcalendar",
    help="Manage a weekly recurring slot calendar with per-date exceptions",
    add_completion=False
)
slots_app = typer.Typer(help="Manage recurring slots", add_completion=False)
exceptions_app = typer.Typer(help="Manage per-date exceptions", add_completion=False)
app.add_typer(slots_app, name="slots")
app.add_typer(exceptions_app, name="exceptions")

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")
]


@dataclass
class Components:
    """Everything a command needs, built once per invocation."""
    config: AppConfig
    database: Database
    slots: SlotStore
    exceptions: ExceptionStore
    projector: ScheduleProjector
    service: ScheduleService


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@contextmanager
def _open(config_file: Optional[Path]) -> Iterator[Components]:
    """
    Load config, connect to the database and wire the stores.

    An explicitly given config file must exist; the default one is optional.
    """
    if config_file is not None:
        config = AppConfig.load_from_yaml(config_file)
    else:
        config = AppConfig.load_or_default(get_default_config_path())

    _configure_logging(config.log_level)

    database = Database(config.database.url, echo=config.database.echo)
    try:
        database.create_schema()
        slot_store = SlotStore(database)
        exception_store = ExceptionStore(database)
        yield Components(
            config=config,
            database=database,
            slots=slot_store,
            exceptions=exception_store,
            projector=ScheduleProjector(slot_store, exception_store),
            service=ScheduleService(slot_store, exception_store),
        )
    finally:
        database.dispose()


def _fail(exc: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {exc}")
    raise typer.Exit(1)


def _today(tz: str) -> date:
    return parse_date(pendulum.now(tz))


def _determine_date_range(
    *,
    tz: str,
    this_week: bool,
    next_week: bool,
    start_option: Optional[str],
    end_option: Optional[str]
):
    """
    Resolve the calendar window from shortcut flags or explicit dates.
    Weeks run Sunday to Saturday. Returns (start_date, end_date).
    """
    if this_week and next_week:
        raise ValidationError("--this-week and --next-week cannot be combined")

    today = pendulum.now(tz).date()

    if this_week or next_week:
        sunday = today.subtract(days=day_of_week(today))
        if next_week:
            sunday = sunday.add(days=7)
        return parse_date(sunday), parse_date(sunday.add(days=6))

    start_date = parse_date(start_option) if start_option else parse_date(today)
    if end_option:
        end_date = parse_date(end_option)
    else:
        end_date = parse_date(pendulum.date(start_date.year, start_date.month, start_date.day).add(days=6))

    return start_date, end_date


def _slot_table(slots: List[Slot], title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Day", style="bold yellow")
    table.add_column("Time")
    table.add_column("Title")
    table.add_column("Effective")
    table.add_column("Active")

    for slot in slots:
        until = slot.effective_until.isoformat() if slot.effective_until else "open"
        table.add_row(
            slot.id,
            DAY_NAMES[slot.day_of_week],
            str(slot.time_range),
            slot.title,
            f"{slot.effective_from.isoformat()} → {until}",
            "yes" if slot.is_active else "[red]no[/red]",
        )
    return table


def _exception_table(exceptions: List[SlotException]) -> Table:
    table = Table(title="Exceptions", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Slot", style="dim")
    table.add_column("Date", style="bold yellow")
    table.add_column("Change")
    table.add_column("Reason")

    for exception in exceptions:
        if exception.is_cancelled:
            change = "[red]cancelled[/red]"
        else:
            change = f"{format_time(exception.start_time) or '-'} - {format_time(exception.end_time) or '-'}"
        table.add_row(
            exception.id,
            exception.slot_id,
            exception.exception_date.isoformat(),
            change,
            exception.reason or "",
        )
    return table


def _print_calendar(days: List[DayProjection]) -> None:
    for day in days:
        console.print(f"[bold]{DAY_NAMES[day.day_of_week]}, {day.date.isoformat()}[/bold]")
        if not day.slots:
            console.print("  [dim]no slots[/dim]")
        for entry in day.slots:
            style = "red" if entry.is_cancelled else ("yellow" if entry.is_exception else "green")
            console.print(f"  [{style}]{entry.format_display()}[/{style}]")
    console.print()


@app.command()
def init_db(config_file: ConfigOption = None):
    """
    Create the database tables.
    """
    try:
        with _open(config_file) as components:
            url = components.database.engine.url.render_as_string(hide_password=True)
            console.print(f"\n[green]✓ Database ready:[/green] {url}\n")
    except (SlotCalendarError, FileNotFoundError, ValueError) as e:
        _fail(e)


@slots_app.command("list")
def list_slots(
    config_file: ConfigOption = None,
    day: Annotated[Optional[int], typer.Option("--day", "-d", min=0, max=6, help="Only this day (0=Sunday)")] = None,
    include_inactive: Annotated[bool, typer.Option("--all", help="Include deactivated slots")] = False,
):
    """
    List recurring slots.
    """
    try:
        with _open(config_file) as components:
            if day is not None:
                slots = components.slots.find_by_day_of_week(day)
            elif include_inactive:
                slots = components.slots.find_all()
            else:
                slots = [slot for slot in components.slots.find_all() if slot.is_active]

            if not slots:
                console.print("[yellow]No slots found.[/yellow]")
                return

            console.print()
            console.print(_slot_table(slots, title="Slots"))
            console.print()
    except (SlotCalendarError, FileNotFoundError, ValueError) as e:
        _fail(e)


@slots_app.command("add")
def add_slot(
    title: Annotated[str, typer.Argument(help="Slot title")],
    day: Annotated[int, typer.Option("--day", "-d", min=0, max=6, help="Day of week (0=Sunday)")],
    start: Annotated[str, typer.Option("--start", help="Start time (HH:MM)")],
    end: Annotated[str, typer.Option("--end", help="End time (HH:MM)")],
    effective_from: Annotated[Optional[str], typer.Option("--from", help="First date (YYYY-MM-DD), defaults to today")] = None,
    effective_until: Annotated[Optional[str], typer.Option("--until", help="Last date (YYYY-MM-DD)")] = None,
    description: Annotated[Optional[str], typer.Option("--description", help="Free text")] = None,
    config_file: ConfigOption = None,
):
    """
    Create a recurring slot.

    Example:

        slotcalendar slots add "Office hours" --day 1 --start 09:00 --end 10:00
    """
    try:
        with _open(config_file) as components:
            slot = components.slots.create({
                "title": title,
                "description": description,
                "day_of_week": day,
                "start_time": start,
                "end_time": end,
                "effective_from": effective_from or _today(components.config.timezone),
                "effective_until": effective_until,
            })
            console.print(f"\n[green]✓ Slot created:[/green] {slot.id} ({DAY_NAMES[slot.day_of_week]} {slot.time_range})\n")
    except (SlotCalendarError, FileNotFoundError, ValueError) as e:
        _fail(e)


@slots_app.command("update")
def update_slot(
    slot_id: Annotated[str, typer.Argument(help="Slot id")],
    title: Annotated[Optional[str], typer.Option("--title")] = None,
    day: Annotated[Optional[int], typer.Option("--day", "-d", min=0, max=6)] = None,
    start: Annotated[Optional[str], typer.Option("--start", help="Start time (HH:MM)")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="End time (HH:MM)")] = None,
    effective_from: Annotated[Optional[str], typer.Option("--from")] = None,
    effective_until: Annotated[Optional[str], typer.Option("--until")] = None,
    description: Annotated[Optional[str], typer.Option("--description")] = None,
    active: Annotated[Optional[bool], typer.Option("--active/--inactive", help="Reactivate or deactivate")] = None,
    config_file: ConfigOption = None,
):
    """
    Change a recurring slot for every week. Use 'exceptions add' for a single date.
    """
    fields = {
        "title": title,
        "day_of_week": day,
        "start_time": start,
        "end_time": end,
        "effective_from": effective_from,
        "effective_until": effective_until,
        "description": description,
        "is_active": active,
    }
    fields = {name: value for name, value in fields.items() if value is not None}

    try:
        with _open(config_file) as components:
            slot = components.service.update_recurring_slot(slot_id, fields)
            console.print(f"\n[green]✓ Slot updated:[/green] {slot.id} ({DAY_NAMES[slot.day_of_week]} {slot.time_range})\n")
    except (SlotCalendarError, FileNotFoundError, ValueError) as e:
        _fail(e)


@slots_app.command("remove")
def remove_slot(
    slot_id: Annotated[str, typer.Argument(help="Slot id")],
    permanent: Annotated[bool, typer.Option("--permanent", help="Delete together with its exceptions")] = False,
    config_file: ConfigOption = None,
):
    """
    Deactivate a slot, or delete it permanently.
    """
    try:
        with _open(config_file) as components:
            components.service.remove_slot(slot_id, permanent=permanent)
            message = "Slot permanently deleted" if permanent else "Slot deactivated"
            console.print(f"\n[green]✓ {message}.[/green]\n")
    except (SlotCalendarError, FileNotFoundError, ValueError) as e:
        _fail(e)


@slots_app.command("show")
def show_slot(
    slot_id: Annotated[str, typer.Argument(help="Slot id")],
    on_date: Annotated[Optional[str], typer.Option("--date", help="Date (YYYY-MM-DD), defaults to today")] = None,
    config_file: ConfigOption = None,
):
    """
    Show a slot and its exception for one date.
    """
    try:
        with _open(config_file) as components:
            target = parse_date(on_date) if on_date else _today(components.config.timezone)
            effective = components.exceptions.get_effective_slot_for_date(slot_id, target)
            slot = effective.slot

            lines = [
                f"[bold]{slot.title}[/bold]",
                f"{DAY_NAMES[slot.day_of_week]} {slot.time_range}",
                f"Active: {'yes' if slot.is_active else 'no'}",
            ]
            exception = effective.exception
            if exception is None:
                lines.append(f"No exception on {target.isoformat()}")
            elif exception.is_cancelled:
                lines.append(f"[red]Cancelled on {target.isoformat()}[/red] {exception.reason or ''}")
            else:
                lines.append(
                    f"[yellow]Changed on {target.isoformat()}:[/yellow] "
                    f"{format_time(exception.start_time) or format_time(slot.start_time)} - "
                    f"{format_time(exception.end_time) or format_time(slot.end_time)} {exception.reason or ''}"
                )

            console.print(Panel.fit("\n".join(lines), title=slot.id))
    except (SlotCalendarError, FileNotFoundError, ValueError) as e:
        _fail(e)


@exceptions_app.command("list")
def list_exceptions(
    slot_id: Annotated[Optional[str], typer.Option("--slot", help="Only this slot")] = None,
    start: Annotated[Optional[str], typer.Option("--start", help="Start date (YYYY-MM-DD)")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="End date (YYYY-MM-DD)")] = None,
    config_file: ConfigOption = None,
):
    """
    List exceptions, optionally for one slot or a date range.
    """
    try:
        with _open(config_file) as components:
            exceptions = components.exceptions.find(slot_id=slot_id, start_date=start, end_date=end)

            if not exceptions:
                console.print("[yellow]No exceptions found.[/yellow]")
                return

            console.print()
            console.print(_exception_table(exceptions))
            console.print()
    except (SlotCalendarError, FileNotFoundError, ValueError) as e:
        _fail(e)


@exceptions_app.command("add")
def add_exception(
    slot_id: Annotated[str, typer.Argument(help="Slot id")],
    on_date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    start: Annotated[Optional[str], typer.Option("--start", help="New start time (HH:MM)")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="New end time (HH:MM)")] = None,
    reason: Annotated[Optional[str], typer.Option("--reason")] = None,
    config_file: ConfigOption = None,
):
    """
    Change a slot's times on one date only.
    """
    try:
        with _open(config_file) as components:
            result = components.service.upsert_exception_for_date(
                slot_id, on_date, start_time=start, end_time=end, reason=reason
            )
            verb = "created" if result.created else "updated"
            console.print(f"\n[green]✓ Exception {verb}:[/green] {result.exception.id}\n")
    except (SlotCalendarError, FileNotFoundError, ValueError) as e:
        _fail(e)


@exceptions_app.command("cancel")
def cancel_occurrence(
    slot_id: Annotated[str, typer.Argument(help="Slot id")],
    on_date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    reason: Annotated[Optional[str], typer.Option("--reason")] = None,
    config_file: ConfigOption = None,
):
    """
    Cancel a slot on one date.
    """
    try:
        with _open(config_file) as components:
            result = components.service.cancel_slot_for_date(slot_id, on_date, reason=reason)
            console.print(f"\n[green]✓ Slot cancelled for {result.exception.exception_date.isoformat()}.[/green]\n")
    except (SlotCalendarError, FileNotFoundError, ValueError) as e:
        _fail(e)


@exceptions_app.command("remove")
def remove_exception(
    exception_id: Annotated[str, typer.Argument(help="Exception id")],
    config_file: ConfigOption = None,
):
    """
    Delete an exception; the date falls back to the recurring slot.
    """
    try:
        with _open(config_file) as components:
            if not components.exceptions.delete(exception_id):
                console.print(f"[bold red]Error:[/bold red] Exception {exception_id} not found")
                raise typer.Exit(1)
            console.print("\n[green]✓ Exception deleted.[/green]\n")
    except (SlotCalendarError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def calendar(
    start: Annotated[Optional[str], typer.Option("--start", help="Start date (YYYY-MM-DD)")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="End date (YYYY-MM-DD)")] = None,
    this_week: Annotated[bool, typer.Option("--this-week", help="The current Sunday–Saturday week.")] = False,
    next_week: Annotated[bool, typer.Option("--next-week", help="The following Sunday–Saturday week.")] = False,
    config_file: ConfigOption = None,
):
    """
    Show the effective calendar with exceptions applied.

    Examples:

        slotcalendar calendar --this-week
        slotcalendar calendar --start 2024-03-10 --end 2024-03-16
    """
    try:
        with _open(config_file) as components:
            start_date, end_date = _determine_date_range(
                tz=components.config.timezone,
                this_week=this_week,
                next_week=next_week,
                start_option=start,
                end_option=end,
            )
            days = components.projector.project_range(start_date, end_date)

            console.print()
            _print_calendar(days)
    except (SlotCalendarError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotcalendar[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
