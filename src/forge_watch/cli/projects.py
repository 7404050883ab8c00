"""CLI: forgewatch projects, forgewatch sessions"""

import json
from datetime import datetime

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from forge_watch.errors import ForgeWatchError

console = Console()


def _get_client():
    from forge_watch.cli.main import _get_client
    return _get_client()


def _run(coro):
    from forge_watch.cli.main import _run
    return _run(coro)


def _when(ms) -> str:
    if not ms:
        return ""
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M")


@click.command("projects")
@click.option("--json-output", "--json", is_flag=True)
def projects_cmd(json_output):
    """List projects."""

    async def _list():
        async with _get_client() as client:
            with console.status("Loading projects..."):
                listing = await client.projects.list()
        if json_output:
            click.echo(json.dumps(listing.model_dump(by_alias=True), indent=2))
            return
        table = Table(title=f"Projects ({len(listing.projects)})")
        table.add_column("ID", style="bold")
        table.add_column("Name")
        table.add_column("Updated")
        for p in listing.projects:
            name = f"{p.name} [green](current)[/green]" if p.id == listing.current_project_id else p.name
            table.add_row(p.id, name, _when(p.updated_at))
        console.print(table)
        if listing.current_session_id:
            console.print(f"[dim]Current session: {listing.current_session_id}[/dim]")

    try:
        _run(_list())
    except ForgeWatchError as e:
        console.print(f"[red]{escape(e.message)}[/red]")
        raise SystemExit(1)


@click.command("sessions")
@click.argument("project_id")
@click.option("--json-output", "--json", is_flag=True)
def sessions_cmd(project_id, json_output):
    """List sessions of a project."""

    async def _list():
        async with _get_client() as client:
            sessions = await client.projects.sessions(project_id)
        if json_output:
            click.echo(json.dumps([s.model_dump(by_alias=True) for s in sessions], indent=2))
            return
        table = Table(title=f"Sessions of {project_id} ({len(sessions)})")
        table.add_column("ID", style="bold")
        table.add_column("Name")
        table.add_column("Created")
        table.add_column("Updated")
        for s in sessions:
            table.add_row(s.id, s.name, _when(s.created_at), _when(s.updated_at))
        console.print(table)

    try:
        _run(_list())
    except ForgeWatchError as e:
        console.print(f"[red]{escape(e.message)}[/red]")
        raise SystemExit(1)
