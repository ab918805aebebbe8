"""Command-line front end for the travel journal.

Usage:
    python main.py add-trip "Kraków" --description "Weekend"
    python main.py add-photos 1 /photos/a.jpg /photos/b.heic
    python main.py stats
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
import sys
from typing import Any

import click
from loguru import logger

from app.viewmodels.photo_draft_vm import PhotoDraftVM
from app.viewmodels.stats_vm import StatsVM
from app.viewmodels.trips_vm import TripsVM
from core.errors import JournalError
from core.models import Location
from core.services.stats_service import format_photo_count
from core.services.theme_service import load_dark_mode, save_dark_mode
from core.services.trip_store import STORAGE_KEY, TripStore
from infrastructure.exif_utils import format_date_pl, read_gps_location
from infrastructure.logging import init_logging
from infrastructure.settings import JsonSettings
from infrastructure.storage import build_storage

BASE_DIR = Path(__file__).parent


@click.group()
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(dir_okay=False),
    default=str(BASE_DIR / "settings.json"),
    help="Path to settings.json",
)
@click.option(
    "--log-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Override the log directory",
)
@click.option("--verbose", is_flag=True, help="Also log to stderr")
@click.pass_context
def cli(ctx: click.Context, settings_path: str, log_dir: str | None, verbose: bool) -> None:
    """Travel journal: trips, photos and statistics."""
    try:
        settings = JsonSettings(settings_path)
        storage = build_storage(settings)
    except (OSError, ValueError) as ex:
        raise click.ClickException(str(ex)) from ex
    init_logging(log_dir or settings.get("logging.dir"), settings.get("logging.level", "INFO"))
    if verbose:
        logger.add(sys.stderr, level="DEBUG")

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["storage"] = storage


def _run(ctx: click.Context, action: Callable[[TripStore], Awaitable[Any]]) -> Any:
    """Open the store, run `action` against it and map journal errors."""
    storage = ctx.obj["storage"]
    key = ctx.obj["settings"].get("storage.key", STORAGE_KEY)

    async def runner() -> Any:
        store = await TripStore.open(storage, key=key)
        return await action(store)

    try:
        return asyncio.run(runner())
    except JournalError as ex:
        raise click.ClickException(str(ex)) from ex


@cli.command("trips")
@click.pass_context
def list_trips(ctx: click.Context) -> None:
    """List trips, newest first."""

    async def action(store: TripStore) -> None:
        trips = TripsVM(store).refresh()
        if not trips:
            click.echo("No trips yet.")
            return
        for trip in trips:
            count = format_photo_count(len(store.list_photos_for_trip(trip.id)))
            click.echo(f"[{trip.id}] {trip.title} ({format_date_pl(trip.date)}, {count})")

    _run(ctx, action)


@cli.command("show")
@click.argument("trip_id", type=int)
@click.pass_context
def show_trip(ctx: click.Context, trip_id: int) -> None:
    """Show a trip with its photos."""

    async def action(store: TripStore) -> None:
        detail = TripsVM(store).open_trip(trip_id)
        click.echo(f"{detail.trip.title}")
        if detail.trip.description:
            click.echo(detail.trip.description)
        click.echo(f"Data utworzenia: {detail.date_text}")
        click.echo(detail.photo_count_text)
        for photo in detail.photos:
            line = f"  [{photo.photo_id}] {photo.file_name}"
            if photo.description:
                line += f" - {photo.description}"
            url = photo.map_url()
            if url:
                line += f" <{url}>"
            click.echo(line)

    _run(ctx, action)


@cli.command("add-trip")
@click.argument("title")
@click.option("--description", default="", help="Trip description")
@click.pass_context
def add_trip(ctx: click.Context, title: str, description: str) -> None:
    """Create a trip."""

    async def action(store: TripStore) -> None:
        trip = await store.add_trip(title, description)
        click.echo(f"Trip {trip.id} added: {trip.title}")

    _run(ctx, action)


@cli.command("edit-trip")
@click.argument("trip_id", type=int)
@click.option("--title", required=True, help="New title")
@click.option("--description", default="", help="New description")
@click.pass_context
def edit_trip(ctx: click.Context, trip_id: int, title: str, description: str) -> None:
    """Change a trip's title and description."""

    async def action(store: TripStore) -> None:
        trip = await store.update_trip(trip_id, title, description)
        click.echo(f"Trip {trip.id} updated: {trip.title}")

    _run(ctx, action)


@cli.command("delete-trip")
@click.argument("trip_id", type=int)
@click.pass_context
def delete_trip(ctx: click.Context, trip_id: int) -> None:
    """Delete a trip and all of its photos."""

    async def action(store: TripStore) -> None:
        if await store.delete_trip(trip_id):
            click.echo(f"Trip {trip_id} deleted.")
        else:
            click.echo(f"Trip {trip_id} does not exist; nothing to delete.")

    _run(ctx, action)


@cli.command("add-photos")
@click.argument("trip_id", type=int)
@click.argument("uris", nargs=-1, required=True)
@click.option("--description", default="", help="Description applied to every photo")
@click.option("--lat", type=float, default=None, help="Latitude for every photo")
@click.option("--lon", type=float, default=None, help="Longitude for every photo")
@click.option("--exif/--no-exif", default=True, help="Read GPS from image EXIF")
@click.pass_context
def add_photos(
    ctx: click.Context,
    trip_id: int,
    uris: tuple[str, ...],
    description: str,
    lat: float | None,
    lon: float | None,
    exif: bool,
) -> None:
    """Attach one or more images to a trip in a single save."""
    if (lat is None) != (lon is None):
        raise click.UsageError("--lat and --lon must be given together")
    device_location = Location(lat, lon) if lat is not None and lon is not None else None

    draft = PhotoDraftVM(trip_id)
    draft.replace_selection([(uri, read_gps_location(uri) if exif else None) for uri in uris])
    for _ in draft.uris:
        draft.set_description(description)
        if device_location is not None:
            draft.attach_location(device_location)
        draft.next_image()

    async def action(store: TripStore) -> None:
        _, message = await draft.commit(store)
        click.echo(message)

    _run(ctx, action)


@cli.command("delete-photo")
@click.argument("photo_id", type=int)
@click.pass_context
def delete_photo(ctx: click.Context, photo_id: int) -> None:
    """Delete a single photo."""

    async def action(store: TripStore) -> None:
        if await store.delete_photo(photo_id):
            click.echo(f"Photo {photo_id} deleted.")
        else:
            click.echo(f"Photo {photo_id} does not exist; nothing to delete.")

    _run(ctx, action)


@cli.command("stats")
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Show journal statistics."""

    async def action(store: TripStore) -> None:
        vm = StatsVM(store)
        snap = vm.refresh()
        click.echo(f"Trips: {snap.total_trips}")
        click.echo(f"Photos: {snap.total_photos}")
        click.echo(f"Photos per trip: {snap.photos_per_trip}")
        if vm.is_empty:
            click.echo("Dodaj wycieczki i zdjęcia, aby zobaczyć statystyki.")
            return
        for row in vm.rows:
            bar = "#" * round(row.bar_ratio * 20)
            click.echo(f"  {row.title:<24} {bar:<20} {row.count_text}")

    _run(ctx, action)


@cli.command("clear")
@click.confirmation_option(
    prompt="Delete ALL trips and photos? This cannot be undone.",
)
@click.pass_context
def clear(ctx: click.Context) -> None:
    """Erase every trip and photo."""

    async def action(store: TripStore) -> None:
        await store.clear_all()
        click.echo("All journal data deleted.")

    _run(ctx, action)


@cli.command("theme")
@click.argument("mode", type=click.Choice(["dark", "light", "show"]), default="show")
@click.option("--system", "system_scheme", default=None, help="System color scheme")
@click.pass_context
def theme(ctx: click.Context, mode: str, system_scheme: str | None) -> None:
    """Show or set the theme preference."""
    storage = ctx.obj["storage"]

    async def runner() -> str:
        if mode != "show":
            if not await save_dark_mode(storage, mode == "dark"):
                raise click.ClickException("Could not save theme preference")
        return "dark" if await load_dark_mode(storage, system_scheme) else "light"

    click.echo(f"Theme: {asyncio.run(runner())}")


if __name__ == "__main__":
    cli()  # pylint: disable=no-value-for-parameter
