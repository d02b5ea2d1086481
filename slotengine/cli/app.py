"""
Main CLI application using Typer.
"""

import logging
from pathlib import Path
from typing import Annotated, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.mock_booking_ledger import MockBookingLedger
from ..config import EngineConfig, get_default_config_path
from ..domain.clock import Clock, FixedClock, SystemClock
from ..domain.exceptions import SlotEngineError, ValidationError
from ..domain.models import AvailabilityRequest, ServiceType
from ..services.availability_engine import AvailabilityEngine
from ..services.factory import build_engine

app = typer.Typer(
    name="slotengine",
    help="Compute bookable appointment slots from business hours and existing bookings",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
MockOption = Annotated[
    bool,
    typer.Option("--mock", help="Read bookings from the mock JSON ledger."),
]
NowOption = Annotated[
    Optional[str],
    typer.Option("--now", help="Pretend the current time is this ISO datetime (local timezone)."),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Print the raw JSON payload."),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Show debug logging."),
]


def _configure_logging(verbose: bool) -> None:
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _load_config(config_file: Optional[Path]) -> EngineConfig:
    config_path = config_file or get_default_config_path()
    return EngineConfig.load_from_yaml(config_path)


def _make_clock(config: EngineConfig, now: Optional[str]) -> Clock:
    """Pin the clock when ``--now`` is given."""
    if not now:
        return SystemClock(config.timezone)
    try:
        return FixedClock(pendulum.parse(now, tz=config.timezone))
    except ValueError as e:
        raise ValidationError(f"Invalid --now value '{now}': {e}") from e


def _build_engine(config: EngineConfig, mock: bool, now: Optional[str]) -> AvailabilityEngine:
    return build_engine(config, clock=_make_clock(config, now), mock=mock)


def _exit_with_error(error: Exception) -> typer.Exit:
    """Print an error; validation problems exit with code 2."""
    console.print(f"[bold red]Error:[/bold red] {error}")
    return typer.Exit(2 if isinstance(error, ValidationError) else 1)


@app.command()
def availability(
    practitioner: Annotated[str, typer.Argument(help="Practitioner id")],
    date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD), practitioner's local timezone")],
    service: Annotated[str, typer.Argument(help="Service type, e.g. 60min or 90min_massage")],
    config_file: ConfigOption = None,
    mock: MockOption = False,
    now: NowOption = None,
    as_json: JsonOption = False,
    verbose: VerboseOption = False,
):
    """
    Show bookable start times for one practitioner, date and service.

    Examples:

        slotengine availability 1 2025-07-25 60min --mock

        slotengine availability 1 2025-07-25 90min --now 2025-07-24T20:00 --json
    """
    _configure_logging(verbose)
    try:
        config = _load_config(config_file)
        engine = _build_engine(config, mock, now)
        result = engine.compute_availability(
            AvailabilityRequest(practitioner_id=practitioner, day=date, service_type=service)
        )
    except SlotEngineError as e:
        raise _exit_with_error(e)

    if as_json:
        console.print_json(data=result.to_payload())
        return

    console.print()
    if not result.is_business_day:
        console.print(
            f"[yellow]⚠ {result.day.isoformat()} is not a business day"
            f" ({result.closure_reason}).[/yellow]\n"
        )
        return

    hours = result.business_hours
    console.print(
        f"[bold cyan]📅 {result.day.isoformat()}[/bold cyan]  "
        f"Business hours {hours.start.format('HH:mm')} - {hours.end.format('HH:mm')}  "
        f"Notice {result.notice_hours:g}h"
    )
    if result.booked_slots:
        console.print(f"   Booked: {', '.join(result.booked_slots)}")
    console.print()

    if not result.available_slots:
        console.print("[yellow]⚠ No available slots for this date.[/yellow]\n")
        return

    console.print(f"[bold]{len(result.available_slots)} available slot(s)[/bold]")
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Start", style="bold green")
    table.add_column("End", style="dim")
    for slot in result.available_slots:
        table.add_row(slot.label, slot.end.format("HH:mm"))

    console.print(table)
    console.print()


@app.command()
def check(
    practitioner: Annotated[str, typer.Argument(help="Practitioner id")],
    date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    service: Annotated[str, typer.Argument(help="Service type")],
    start_time: Annotated[str, typer.Argument(help="Start time (HH:MM, 24-hour)")],
    config_file: ConfigOption = None,
    mock: MockOption = False,
    now: NowOption = None,
    verbose: VerboseOption = False,
):
    """
    Check whether a single start time may be offered.
    """
    _configure_logging(verbose)
    try:
        config = _load_config(config_file)
        engine = _build_engine(config, mock, now)
        verdict = engine.check_slot(
            AvailabilityRequest(practitioner_id=practitioner, day=date, service_type=service),
            start_time,
        )
    except SlotEngineError as e:
        raise _exit_with_error(e)

    if verdict.available:
        console.print(f"[bold green]✓ {verdict.day.isoformat()} {verdict.start_time} is available[/bold green]")
    else:
        console.print(
            f"[bold red]✗ {verdict.day.isoformat()} {verdict.start_time} is not available"
            f"[/bold red] ({verdict.reason})"
        )
        raise typer.Exit(1)


@app.command()
def calendar(
    start: Annotated[Optional[str], typer.Option("--start", help="Start date (YYYY-MM-DD)")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="End date (YYYY-MM-DD)")] = None,
    config_file: ConfigOption = None,
    now: NowOption = None,
):
    """
    Show which days are open over a date range (default: the next 14 days).
    """
    try:
        config = _load_config(config_file)
        clock = _make_clock(config, now)
        engine = build_engine(config, clock=clock, booking_ledger=MockBookingLedger(bookings=[]))
        today = clock.now()
        first = start or today.format("YYYY-MM-DD")
        last = end or today.add(days=13).format("YYYY-MM-DD")
        statuses = engine.business_days(first, last)
    except SlotEngineError as e:
        raise _exit_with_error(e)

    table = Table(title="Business days", show_header=True, header_style="bold cyan")
    table.add_column("Date", style="bold")
    table.add_column("Weekday")
    table.add_column("Status")
    table.add_column("Hours", style="dim")

    for status in statuses:
        if status.is_business_day:
            hours = status.business_hours
            table.add_row(
                status.day.isoformat(),
                status.day.strftime("%A"),
                "[green]open[/green]",
                f"{hours.start.format('HH:mm')} - {hours.end.format('HH:mm')}",
            )
        else:
            table.add_row(
                status.day.isoformat(),
                status.day.strftime("%A"),
                f"[red]closed[/red] ({status.closure_reason})",
                "",
            )

    console.print()
    console.print(table)
    console.print()


@app.command()
def list_practitioners(config_file: ConfigOption = None):
    """
    List all configured practitioners.
    """
    try:
        config = _load_config(config_file)
    except SlotEngineError as e:
        raise _exit_with_error(e)

    if not config.practitioners:
        console.print("[yellow]No practitioners defined in the config file.[/yellow]")
        return

    table = Table(title="Configured practitioners", show_header=True, header_style="bold cyan")
    table.add_column("Id", style="bold yellow")
    table.add_column("Name", style="dim")
    for practitioner in config.practitioners:
        table.add_row(practitioner.id, practitioner.name)

    console.print()
    console.print(table)
    console.print()


@app.command()
def list_services(config_file: ConfigOption = None):
    """
    List the configured services and their durations.
    """
    try:
        config = _load_config(config_file)
    except SlotEngineError as e:
        raise _exit_with_error(e)

    table = Table(title="Services", show_header=True, header_style="bold cyan")
    table.add_column("Service", style="bold yellow")
    table.add_column("Duration", justify="right")
    for member in ServiceType:
        minutes = config.services.get(member.value)
        table.add_row(member.value, f"{minutes} min" if minutes else "[dim]not offered[/dim]")

    console.print()
    console.print(table)
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotengine[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
