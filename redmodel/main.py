from __future__ import annotations

import asyncio
import sys

import typer
from rich.console import Console
from rich.table import Table

from redmodel.config import get_settings
from redmodel.infrastructure.redis_factory import connect_client, normalize_nodes
from redmodel.odm.record_set import RecordSet
from redmodel.utils.codec import kind_of
from redmodel.utils.keys import view_key
from redmodel.utils.logging import configure_logging

app = typer.Typer(help="redmodel CLI.")
console = Console()


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    target = settings.redis_url or ",".join(normalize_nodes(settings.redis_nodes))
    typer.echo(
        f"REDIS={target} db={settings.redis_db} | root={settings.redis_key_root} "
        f"view_cache={settings.view_cache_size} "
        f"repopulate_concurrency={settings.view_repopulate_concurrency}"
    )


async def _ping() -> None:
    client = await connect_client()
    try:
        typer.echo("PONG" if await client.ping() else "no reply")
    finally:
        await client.aclose()


@app.command()
def ping() -> None:
    """
    Connect to Redis (with retries) and PING it.
    """
    configure_logging(level=get_settings().log_level)
    asyncio.run(_ping())


async def _show(namespace: str, record_id: str) -> bool:
    client = await connect_client()
    try:
        record = await RecordSet(client, namespace).get(record_id)
    finally:
        await client.aclose()
    if record is None:
        return False

    table = Table(title=f"{record.key}")
    table.add_column("Field", style="cyan")
    table.add_column("Kind")
    table.add_column("Value", overflow="fold")
    for field, value in record.properties.items():
        table.add_row(field, kind_of(value), repr(value))
    console.print(table)
    return True


@app.command()
def show(
    namespace: str = typer.Argument(..., help="Record namespace."),
    record_id: str = typer.Argument(..., help="Record id."),
) -> None:
    """
    Print a stored record with its hydrated field kinds.
    """
    configure_logging(level=get_settings().log_level)
    if not asyncio.run(_show(namespace, record_id)):
        typer.echo(f"No record {namespace}:{record_id}", err=True)
        raise typer.Exit(code=1)


async def _view_count(name: str) -> int:
    client = await connect_client()
    try:
        return await client.zcard(view_key(name, root=get_settings().redis_key_root))
    finally:
        await client.aclose()


@app.command("view-count")
def view_count(name: str = typer.Argument(..., help="View name.")) -> None:
    """
    Show how many members a view's sorted set holds.
    """
    configure_logging(level=get_settings().log_level)
    typer.echo(str(asyncio.run(_view_count(name))))


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
