"""CLI: forgewatch watch, forgewatch interrupt, forgewatch clear"""

from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.live import Live

from forge_watch.cli.render import ConsoleRenderer
from forge_watch.errors import ForgeWatchError
from forge_watch.interrupt import InterruptOutcome

console = Console()


def _get_client(renderer=None):
    from forge_watch.cli.main import _get_client
    return _get_client(renderer)


def _run(coro):
    from forge_watch.cli.main import _run
    return _run(coro)


@click.command("watch")
@click.argument("project_id", required=False)
@click.argument("session_id", required=False)
@click.option("--once", is_flag=True, help="Print the joined session once and exit.")
def watch_cmd(project_id: Optional[str], session_id: Optional[str], once: bool):
    """Live view of a session (defaults to the server's current one)."""
    renderer = ConsoleRenderer(console)

    async def _watch():
        async with _get_client(renderer) as client:
            with console.status("Joining session..."):
                ctx = await client.watch(project_id, session_id)
            if once:
                console.print(renderer)
                return
            console.print(f"[dim]Watching session {ctx.session_id} (Ctrl+C to exit)[/dim]")
            with Live(renderer, console=console, refresh_per_second=10):
                await client.run_forever()

    try:
        _run(_watch())
    except KeyboardInterrupt:
        pass
    except ForgeWatchError as e:
        console.print(f"[red]{escape(e.message)}[/red]")
        raise SystemExit(1)


@click.command("interrupt")
@click.argument("project_id")
@click.argument("session_id")
def interrupt_cmd(project_id: str, session_id: str):
    """Interrupt the agent running in a session."""
    renderer = ConsoleRenderer(console)

    async def _interrupt() -> bool:
        async with _get_client(renderer) as client:
            with console.status("Joining session..."):
                ctx = await client.watch(project_id, session_id)
            if not ctx.agent_state.busy:
                console.print("[dim]Agent is idle, nothing to interrupt.[/dim]")
                return True
            with console.status("Interrupting..."):
                await client.interrupt_and_wait()
            if ctx.interrupt.last_outcome is InterruptOutcome.COMPLETED:
                console.print("[green]Agent interrupted.[/green]")
                return True
            return False

    try:
        ok = _run(_interrupt())
    except ForgeWatchError as e:
        console.print(f"[red]{escape(e.message)}[/red]")
        raise SystemExit(1)
    if not ok:
        raise SystemExit(1)


@click.command("clear")
@click.argument("session_id")
@click.option("--preserve-tasks", is_flag=True, help="Keep the session's task list.")
def clear_cmd(session_id: str, preserve_tasks: bool):
    """Clear a session's messages and tool logs."""

    async def _clear():
        async with _get_client() as client:
            with console.status("Clearing..."):
                await client.projects.clear_session(session_id, preserve_tasks=preserve_tasks)
        console.print(f"[green]Session {session_id} cleared.[/green]")

    try:
        _run(_clear())
    except ForgeWatchError as e:
        console.print(f"[red]{escape(e.message)}[/red]")
        raise SystemExit(1)
