import asyncio
import logging
from typing import Optional

import typer
from tortoise import Tortoise

from ..core.config import REMOTE_API_KEY, REMOTE_TIMEOUT_SECONDS, REMOTE_URL
from ..features.items import service as items_service
from ..features.items.schemas import SyncOutcome
from ..main import TORTOISE_ORM_CONFIG
from ..remote.client import BaseRemoteStore, PostgrestRemoteStore

logger = logging.getLogger(__name__)

app = typer.Typer(name="gold-inventory", help="CLI for the device's local item store and its cloud sync.")

OUTCOME_COLORS = {
    SyncOutcome.SYNCED: typer.colors.GREEN,
    SyncOutcome.PENDING: typer.colors.YELLOW,
    SyncOutcome.FAILED: typer.colors.RED,
}


# Shared async context manager for database connection
class DBConnection:
    async def __aenter__(self):
        await Tortoise.init(config=TORTOISE_ORM_CONFIG)
        await Tortoise.generate_schemas(safe=True)  # Generate schema if it doesn't exist
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await Tortoise.close_connections()


def _remote_store() -> BaseRemoteStore:
    return PostgrestRemoteStore(REMOTE_URL, REMOTE_API_KEY, timeout=REMOTE_TIMEOUT_SECONDS)


@app.command("refresh")
def refresh_command():
    """Pulls the newest cloud rows and merges them into the local store."""
    asyncio.run(_refresh())


async def _refresh(remote: Optional[BaseRemoteStore] = None):
    remote = remote or _remote_store()
    async with DBConnection():
        try:
            result = await items_service.pull_and_merge(remote)
        finally:
            await remote.aclose()
    typer.secho(f"{result.message} ({len(result.items)} items)", fg=OUTCOME_COLORS[result.outcome])
    if result.outcome != SyncOutcome.SYNCED:
        raise typer.Exit(code=1)


@app.command("next-id")
def next_id_command():
    """Prints the id the next new piece will get."""
    asyncio.run(_next_id())


async def _next_id():
    async with DBConnection():
        typer.echo(await items_service.preview_next_id())


@app.command("list")
def list_command(
    query: Optional[str] = typer.Argument(None, help="Filter by item id or design number."),
):
    """Lists the local items, newest first."""
    asyncio.run(_list_items(query))


async def _list_items(query: Optional[str]):
    async with DBConnection():
        listing = await items_service.list_items(query)
    for item in listing.items:
        typer.echo(
            f"{item.item_id}  {item.status.value:<9} {item.design_no or '-':<12} "
            f"{item.category or '-':<12} {item.net_wt or '-':>9} g"
        )
    counts = ", ".join(f"{name}: {count}" for name, count in listing.counts.items())
    typer.echo(f"{listing.total} item(s) ({counts})")


@app.command("wipe")
def wipe_command(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
):
    """Deletes ALL items, locally and in the cloud."""
    if not yes:
        typer.confirm("Delete every item locally and in the cloud? This cannot be undone", abort=True)
    asyncio.run(_wipe())


async def _wipe(remote: Optional[BaseRemoteStore] = None):
    remote = remote or _remote_store()
    async with DBConnection():
        try:
            result = await items_service.wipe_all(remote)
        finally:
            await remote.aclose()
    typer.secho(result.message, fg=OUTCOME_COLORS[result.outcome])
    if result.outcome != SyncOutcome.SYNCED:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
