"""Command-line interface for Weather Alert Relay."""

import asyncio
from datetime import datetime
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from wxrelay.utils.exceptions import WXRError

console = Console()

# How often `serve` re-reads settings to pick up schedule changes
SETTINGS_POLL_SECONDS = 30


def run_async(coro):
    """Run an async coroutine."""
    return asyncio.run(coro)


def load_settings(config_path: str | None = None):
    """Load and validate settings.

    Args:
        config_path: Optional path to .env file.

    Returns:
        Validated Settings object.
    """
    from wxrelay.config.logging import configure_logging
    from wxrelay.config.settings import Settings, get_settings

    try:
        if config_path:
            settings = Settings(_env_file=config_path)
        else:
            get_settings.cache_clear()
            settings = get_settings()
        configure_logging(settings)
        return settings
    except Exception as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        console.print("\n[yellow]Hint:[/yellow] Set WXR_* environment variables or create a .env file")
        raise SystemExit(1) from None


def build_context(settings):
    """Open the store and build the relay context."""
    from wxrelay.cycles import RelayContext
    from wxrelay.db.engine import create_engine, create_tables
    from wxrelay.store import SqlKeyValueStore

    engine = create_engine(settings)
    create_tables(engine)
    return RelayContext(settings, SqlKeyValueStore(engine))


def _context(ctx: click.Context):
    return build_context(load_settings(ctx.obj.get("config_path")))


def fail(message: str, error: Exception) -> None:
    """Print an error and exit with status 1."""
    console.print(f"[red]{message}:[/red] {error}")
    raise SystemExit(1) from None


def _fmt_time(value: datetime | str | None) -> str:
    if value is None:
        return "-"
    if isinstance(value, str):
        return value
    return value.astimezone().strftime("%Y-%m-%d %H:%M")


def print_summary(summary) -> None:
    """Render a cycle summary."""
    if summary.skipped:
        console.print(f"[yellow]{summary.kind.capitalize()} cycle already running; skipped.[/yellow]")
        return

    table = Table(title=f"{summary.kind.capitalize()} Cycle")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Locations processed", str(summary.locations_processed))
    table.add_row("Fetched", str(summary.fetched))
    table.add_row("New", str(summary.new))
    table.add_row("Duplicates skipped", str(summary.duplicates_skipped))
    table.add_row("Sent", f"[green]{summary.sent}[/green]")
    table.add_row("Failed", f"[red]{summary.failed}[/red]" if summary.failed else "0")
    if summary.kind == "conditions":
        table.add_row("Good weather", str(summary.good_weather))
        table.add_row("Bad weather", str(summary.bad_weather))
    table.add_row("Duration", f"{summary.duration_seconds:.1f}s")
    console.print(table)

    for error in summary.errors:
        console.print(f"  [red]-[/red] {error.location}: {error.error}")


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Path to .env configuration file",
)
@click.pass_context
def cli(ctx: click.Context, config: str | None) -> None:
    """Weather Alert Relay - Poll weather providers and relay alerts to a webhook."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config


@cli.command()
@click.pass_context
def init_db(ctx: click.Context) -> None:
    """Initialize the key-value store schema."""
    from wxrelay.config.logging import get_logger
    from wxrelay.db.engine import create_engine, create_tables

    settings = load_settings(ctx.obj.get("config_path"))
    logger = get_logger(__name__)

    console.print("[bold]Initializing database...[/bold]")

    try:
        engine = create_engine(settings)
        create_tables(engine)
        console.print("[green]Database initialized successfully![/green]")
        logger.info("Database initialized", url=settings.database_url)
    except Exception as e:
        logger.error("Database initialization failed", error=str(e))
        fail("Failed to initialize database", e)


@cli.command()
@click.pass_context
def check_api(ctx: click.Context) -> None:
    """Check weather provider connectivity with the stored credentials."""
    from wxrelay.cycles import RelayOrchestrator

    context = _context(ctx)
    runtime = context.settings_store.get()
    console.print(f"[bold]Checking {runtime.api_provider} API connection...[/bold]")

    try:
        result = run_async(RelayOrchestrator(context).check_api())
    except WXRError as e:
        fail("API check failed", e)

    if not result["success"]:
        console.print(f"[red]{result['message']}[/red]")
        raise SystemExit(1)
    console.print(f"[green]{result['message']}[/green]")
    if result.get("location"):
        console.print(f"  Test location: {result['location']}")


@cli.command()
@click.pass_context
def test_webhook(ctx: click.Context) -> None:
    """Post a test payload to the configured webhook."""
    from wxrelay.cycles import RelayOrchestrator

    context = _context(ctx)
    result = run_async(RelayOrchestrator(context).test_webhook())

    if not result["success"]:
        console.print(f"[red]{result['message']}[/red]")
        raise SystemExit(1)
    console.print(f"[green]{result['message']}[/green] (HTTP {result['status']})")


@cli.command()
@click.option("--location", "-l", "location_id", help="Location ID to attribute the test alert to")
@click.pass_context
def send_test(ctx: click.Context, location_id: str | None) -> None:
    """Deliver a marked test alert through the webhook."""
    from wxrelay.cycles import RelayOrchestrator

    context = _context(ctx)
    try:
        result = run_async(RelayOrchestrator(context).send_test_alert(location_id))
    except WXRError as e:
        fail("Test alert failed", e)

    outcome = result["outcome"]
    if not result["success"]:
        console.print(f"[red]Test alert failed:[/red] {outcome['error']}")
        raise SystemExit(1)
    console.print(f"[green]Test alert {result['alert']['alert_id']} delivered[/green] (HTTP {outcome['status_code']})")


@cli.group()
def run() -> None:
    """Run a relay cycle now."""
    pass


@run.command("alerts")
@click.pass_context
def run_alerts(ctx: click.Context) -> None:
    """Fetch, dedupe and relay alerts for all enabled locations."""
    from wxrelay.cycles import RelayOrchestrator

    context = _context(ctx)
    print_summary(run_async(RelayOrchestrator(context).run_alerts()))


@run.command("conditions")
@click.pass_context
def run_conditions(ctx: click.Context) -> None:
    """Classify and relay current conditions for all enabled locations."""
    from wxrelay.cycles import RelayOrchestrator

    context = _context(ctx)
    print_summary(run_async(RelayOrchestrator(context).run_conditions()))


@run.command("forecasts")
@click.pass_context
def run_forecasts(ctx: click.Context) -> None:
    """Relay today's forecast for all enabled locations."""
    from wxrelay.cycles import RelayOrchestrator

    context = _context(ctx)
    print_summary(run_async(RelayOrchestrator(context).run_forecasts()))


@run.command("location")
@click.argument("location_id")
@click.pass_context
def run_location(ctx: click.Context, location_id: str) -> None:
    """Run the alert cycle for a single location."""
    from wxrelay.cycles import RelayOrchestrator

    context = _context(ctx)
    try:
        summary = run_async(RelayOrchestrator(context).process_location(location_id))
    except WXRError as e:
        fail("Run failed", e)
    print_summary(summary)


@cli.command()
@click.pass_context
def serve(ctx: click.Context) -> None:
    """Run the schedulers until interrupted."""
    from apscheduler.schedulers.asyncio import AsyncIOScheduler

    from wxrelay.config.logging import get_logger
    from wxrelay.cycles import RelayOrchestrator
    from wxrelay.scheduling import DailyScheduler, IntervalScheduler

    context = _context(ctx)
    settings = context.settings
    logger = get_logger(__name__)
    orchestrator = RelayOrchestrator(context)

    async def _serve() -> None:
        scheduler = AsyncIOScheduler(timezone=settings.scheduler_timezone) if settings.scheduler_timezone else AsyncIOScheduler()
        common: dict[str, Any] = {
            "activity": context.activity,
            "timezone": settings.scheduler_timezone,
        }
        interval = IntervalScheduler(scheduler, context.settings_store, orchestrator.run_scheduled, **common)
        daily = DailyScheduler(scheduler, context.settings_store, orchestrator.run_forecasts, **common)

        def sync_triggers() -> None:
            try:
                interval.start()
                daily.start()
            except WXRError as e:
                logger.error("Could not apply schedule settings", error=str(e))

        sync_triggers()
        scheduler.add_job(
            sync_triggers,
            trigger="interval",
            seconds=SETTINGS_POLL_SECONDS,
            id="settings_watch",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        scheduler.start()

        for state in (interval.status(), daily.status()):
            flag = "[green]running[/green]" if state.running else "[yellow]stopped[/yellow]"
            console.print(f"  {state.name}: {flag} ({state.description})")
        console.print("[bold]Relay running. Press Ctrl+C to stop.[/bold]")

        try:
            await asyncio.Event().wait()
        finally:
            scheduler.shutdown(wait=False)

    try:
        asyncio.run(_serve())
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped.[/yellow]")


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show configuration, schedules and dedup status."""
    from wxrelay.cycles import RelayOrchestrator
    from wxrelay.scheduling import describe_frequency, describe_time

    context = _context(ctx)
    info = RelayOrchestrator(context).system_status()
    runtime = context.settings_store.get()

    table = Table(title="Weather Alert Relay")
    table.add_column("Item", style="cyan")
    table.add_column("Value")

    def yes_no(value: bool) -> str:
        return "[green]yes[/green]" if value else "[red]no[/red]"

    table.add_row("Provider", info["api_provider"])
    table.add_row("API configured", yes_no(info["api_configured"]))
    table.add_row("Webhook configured", yes_no(info["webhook_configured"]))
    table.add_row("Locations (enabled/total)", f"{info['locations']['enabled']}/{info['locations']['total']}")
    table.add_row("Alert types (enabled/total)", f"{info['alert_types']['enabled']}/{info['alert_types']['total']}")
    table.add_row(
        "Alert schedule",
        f"{describe_frequency(runtime.schedule_frequency)} ({'on' if runtime.schedule_enabled else 'off'})",
    )
    table.add_row("Conditions", "on" if runtime.conditions_enabled else "off")
    table.add_row(
        "Forecast schedule",
        f"{describe_time(runtime.forecast_time)} ({'on' if runtime.forecast_enabled else 'off'})",
    )
    for kind, last_run in info["last_runs"].items():
        table.add_row(f"Last {kind} run", _fmt_time(last_run))
    table.add_row("Dedup ids stored", str(info["dedup"]["total_stored_ids"]))

    console.print(table)


# Settings


@cli.group("settings")
def settings_group() -> None:
    """View or change runtime settings."""
    pass


@settings_group.command("show")
@click.pass_context
def settings_show(ctx: click.Context) -> None:
    """Show runtime settings with secrets masked."""
    context = _context(ctx)

    table = Table(title="Runtime Settings")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in context.settings_store.get().redacted().items():
        table.add_row(key, "-" if value in (None, "") else str(value))
    console.print(table)


@settings_group.command("set")
@click.argument("assignments", nargs=-1, required=True)
@click.pass_context
def settings_set(ctx: click.Context, assignments: tuple[str, ...]) -> None:
    """Update settings, e.g. `wxrelay settings set webhook_url=https://... conditions_enabled=true`."""
    from wxrelay.config.runtime import RuntimeSettings
    from wxrelay.delivery import validate_webhook_url

    updates: dict[str, str] = {}
    for assignment in assignments:
        key, sep, value = assignment.partition("=")
        key = key.strip()
        if not sep or key not in RuntimeSettings.model_fields:
            console.print(f"[red]Unknown setting or missing '=':[/red] {assignment}")
            raise SystemExit(1)
        updates[key] = value

    if updates.get("webhook_url"):
        valid, message = validate_webhook_url(updates["webhook_url"])
        if not valid:
            console.print(f"[red]{message}[/red]")
            raise SystemExit(1)

    context = _context(ctx)
    try:
        context.settings_store.merge(updates)
    except WXRError as e:
        fail("Invalid setting", e)

    context.activity.add("info", "settings_update", "Settings updated", {"fields": sorted(updates)})
    console.print(f"[green]Updated {', '.join(sorted(updates))}[/green]")


# Locations


@cli.group()
def locations() -> None:
    """Manage polled locations."""
    pass


@locations.command("list")
@click.pass_context
def locations_list(ctx: click.Context) -> None:
    """List locations."""
    context = _context(ctx)
    items = context.locations.get_all()

    if not items:
        console.print("[yellow]No locations configured. Add one with 'wxrelay locations add'.[/yellow]")
        return

    table = Table(title="Locations")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("ZIP")
    table.add_column("Coordinates")
    table.add_column("Enabled")

    for location in items:
        coords = f"{location.latitude}, {location.longitude}" if location.has_coordinates else "-"
        table.add_row(
            location.id,
            location.name or "-",
            location.zip_code or "-",
            coords,
            "[green]yes[/green]" if location.enabled else "[red]no[/red]",
        )
    console.print(table)


@locations.command("add")
@click.option("--name", "-n", default="", help="Display name")
@click.option("--zip", "zip_code", default="", help="US ZIP code (12345 or 12345-6789)")
@click.option("--lat", "latitude", type=float, help="Latitude (-90..90)")
@click.option("--lon", "longitude", type=float, help="Longitude (-180..180)")
@click.option("--disabled", is_flag=True, help="Add the location disabled")
@click.pass_context
def locations_add(
    ctx: click.Context,
    name: str,
    zip_code: str,
    latitude: float | None,
    longitude: float | None,
    disabled: bool,
) -> None:
    """Add a location by ZIP code or coordinates."""
    context = _context(ctx)
    try:
        location = context.locations.add(
            name=name,
            zip_code=zip_code,
            latitude=latitude,
            longitude=longitude,
            enabled=not disabled,
        )
    except WXRError as e:
        fail("Invalid location", e)

    context.activity.add(
        "success", "location_added", f"Added location {location.label}", {"location_id": location.id}
    )
    console.print(f"[green]Added location {location.label}[/green] ({location.id})")


@locations.command("remove")
@click.argument("location_id")
@click.pass_context
def locations_remove(ctx: click.Context, location_id: str) -> None:
    """Delete a location and its dedup history."""
    from wxrelay.cycles import RelayOrchestrator

    context = _context(ctx)
    if not RelayOrchestrator(context).delete_location(location_id):
        console.print(f"[red]Location not found:[/red] {location_id}")
        raise SystemExit(1)
    console.print(f"[green]Removed location {location_id}[/green]")


def _set_location_enabled(ctx: click.Context, location_id: str, enabled: bool) -> None:
    context = _context(ctx)
    location = context.locations.update(location_id, enabled=enabled)
    if location is None:
        console.print(f"[red]Location not found:[/red] {location_id}")
        raise SystemExit(1)
    console.print(f"[green]{location.label} {'enabled' if enabled else 'disabled'}[/green]")


@locations.command("enable")
@click.argument("location_id")
@click.pass_context
def locations_enable(ctx: click.Context, location_id: str) -> None:
    """Enable a location."""
    _set_location_enabled(ctx, location_id, True)


@locations.command("disable")
@click.argument("location_id")
@click.pass_context
def locations_disable(ctx: click.Context, location_id: str) -> None:
    """Disable a location."""
    _set_location_enabled(ctx, location_id, False)


# Alert types


@cli.group("alert-types")
def alert_types() -> None:
    """Manage alert codes requested from providers that filter server-side."""
    pass


@alert_types.command("list")
@click.pass_context
def alert_types_list(ctx: click.Context) -> None:
    """List alert types."""
    context = _context(ctx)

    table = Table(title="Alert Types")
    table.add_column("Code", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Enabled")
    for alert_type in context.alert_types.get_all():
        table.add_row(
            alert_type.code,
            alert_type.name,
            "[green]yes[/green]" if alert_type.enabled else "[red]no[/red]",
        )
    console.print(table)


def _set_alert_type_enabled(ctx: click.Context, code: str, enabled: bool) -> None:
    context = _context(ctx)
    alert_type = context.alert_types.find_by_code(code)
    if alert_type is None:
        console.print(f"[red]Alert type not found:[/red] {code}")
        raise SystemExit(1)
    context.alert_types.update(alert_type.id, enabled=enabled)
    console.print(f"[green]{alert_type.name} ({alert_type.code}) {'enabled' if enabled else 'disabled'}[/green]")


@alert_types.command("enable")
@click.argument("code")
@click.pass_context
def alert_types_enable(ctx: click.Context, code: str) -> None:
    """Enable an alert type by code (e.g. TO.W)."""
    _set_alert_type_enabled(ctx, code, True)


@alert_types.command("disable")
@click.argument("code")
@click.pass_context
def alert_types_disable(ctx: click.Context, code: str) -> None:
    """Disable an alert type by code."""
    _set_alert_type_enabled(ctx, code, False)


# Schedule


@cli.group()
def schedule() -> None:
    """Change schedules; a running `serve` applies changes on its next settings check."""
    pass


def _merge_schedule(ctx: click.Context, updates: dict[str, Any], message: str) -> None:
    context = _context(ctx)
    try:
        context.settings_store.merge(updates)
    except WXRError as e:
        fail("Invalid schedule", e)
    context.activity.add("info", "schedule_update", message, updates)
    console.print(f"[green]{message}[/green]")


@schedule.command("frequency")
@click.argument("minutes", type=int)
@click.pass_context
def schedule_frequency(ctx: click.Context, minutes: int) -> None:
    """Set the alert polling frequency in minutes (1-1440)."""
    from wxrelay.scheduling import describe_frequency, frequency_to_cron

    try:
        cron = frequency_to_cron(minutes)
    except WXRError as e:
        fail("Invalid frequency", e)
    _merge_schedule(
        ctx,
        {"schedule_frequency": minutes},
        f"Alert schedule set to {describe_frequency(minutes)} ({cron})",
    )


@schedule.command("forecast-time")
@click.argument("time_of_day")
@click.pass_context
def schedule_forecast_time(ctx: click.Context, time_of_day: str) -> None:
    """Set the daily forecast time as HH:MM."""
    from wxrelay.scheduling import describe_time, time_to_cron

    try:
        cron = time_to_cron(time_of_day)
    except WXRError as e:
        fail("Invalid time", e)
    _merge_schedule(
        ctx,
        {"forecast_time": time_of_day},
        f"Forecast schedule set to {describe_time(time_of_day)} ({cron})",
    )


@schedule.command("enable")
@click.pass_context
def schedule_enable(ctx: click.Context) -> None:
    """Enable alert polling."""
    _merge_schedule(ctx, {"schedule_enabled": True}, "Alert scheduler enabled")


@schedule.command("disable")
@click.pass_context
def schedule_disable(ctx: click.Context) -> None:
    """Disable alert polling."""
    _merge_schedule(ctx, {"schedule_enabled": False}, "Alert scheduler disabled")


@schedule.command("forecast-enable")
@click.pass_context
def schedule_forecast_enable(ctx: click.Context) -> None:
    """Enable the daily forecast."""
    _merge_schedule(ctx, {"forecast_enabled": True}, "Forecast scheduler enabled")


@schedule.command("forecast-disable")
@click.pass_context
def schedule_forecast_disable(ctx: click.Context) -> None:
    """Disable the daily forecast."""
    _merge_schedule(ctx, {"forecast_enabled": False}, "Forecast scheduler disabled")


# Dedup ledger


@cli.group()
def dedup() -> None:
    """Inspect or reset duplicate protection."""
    pass


@dedup.command("stats")
@click.pass_context
def dedup_stats(ctx: click.Context) -> None:
    """Show stored alert ids per location."""
    context = _context(ctx)
    stats = context.ledger.stats()
    names = {location.id: location.label for location in context.locations.get_all()}

    table = Table(title="Duplicate Protection")
    table.add_column("Location", style="cyan")
    table.add_column("Stored IDs", justify="right")
    for location_id, count in stats["per_location"].items():
        table.add_row(names.get(location_id, location_id), str(count))
    console.print(table)
    console.print(
        f"\n[bold]{stats['total_stored_ids']}[/bold] ids across {stats['locations_tracked']} location(s)"
    )


@dedup.command("clear")
@click.option("--location", "-l", "location_id", help="Clear only this location")
@click.confirmation_option(prompt="Cleared alerts may be delivered again. Continue?")
@click.pass_context
def dedup_clear(ctx: click.Context, location_id: str | None) -> None:
    """Clear stored alert ids."""
    context = _context(ctx)
    if location_id:
        context.ledger.clear_for_location(location_id)
        context.activity.add(
            "info", "duplicate_protection", f"Cleared stored alert ids for {location_id}", {"location_id": location_id}
        )
        console.print(f"[green]Cleared stored alert ids for {location_id}[/green]")
    else:
        context.ledger.clear_all()
        context.activity.add("warning", "duplicate_protection", "All stored alert ids cleared")
        console.print("[green]Cleared all stored alert ids[/green]")


# Activity log


@cli.command()
@click.option("--limit", "-n", default=25, show_default=True, help="Number of entries to show")
@click.option("--clear", is_flag=True, help="Clear the activity log")
@click.pass_context
def logs(ctx: click.Context, limit: int, clear: bool) -> None:
    """Show recent activity log entries."""
    context = _context(ctx)

    if clear:
        context.activity.clear()
        console.print("[green]Activity log cleared[/green]")
        return

    entries = context.activity.recent(limit)
    if not entries:
        console.print("[yellow]No activity yet.[/yellow]")
        return

    colors = {"success": "green", "warning": "yellow", "error": "red", "info": "blue"}
    table = Table(title="Activity Log")
    table.add_column("Time")
    table.add_column("Type")
    table.add_column("Action", style="cyan")
    table.add_column("Message")
    for entry in entries:
        color = colors.get(entry["type"], "white")
        table.add_row(
            entry["timestamp"][:19].replace("T", " "),
            f"[{color}]{entry['type']}[/{color}]",
            entry["action"],
            entry["message"],
        )
    console.print(table)


if __name__ == "__main__":
    cli()
