"""
forge-watch CLI — `forgewatch` command.

Commands:
  forgewatch projects                          List projects
  forgewatch sessions <project-id>             List a project's sessions
  forgewatch watch [project-id session-id]     Live view of a session
  forgewatch interrupt <project-id> <session>  Stop a running agent
  forgewatch clear <session-id>                Clear a session's history
"""

import asyncio
import logging

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
except ImportError:
    raise SystemExit("CLI requires extras: pip install forge-watch[cli]")

from forge_watch import __version__
from forge_watch.client import AsyncForgeWatch
from forge_watch.config import Config, load_config
from forge_watch.renderer import Renderer

console = Console()


def _config() -> Config:
    ctx = click.get_current_context()
    return ctx.find_root().obj


def _get_client(renderer: Renderer = None) -> AsyncForgeWatch:
    return AsyncForgeWatch.from_config(_config(), renderer)


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.version_option(__version__)
@click.option("--url", default=None, help="Server base URL (default http://localhost:3826).")
@click.option("-v", "--verbose", is_flag=True, help="Log protocol traffic.")
@click.pass_context
def main(ctx, url, verbose):
    """forge-watch — watch LocalForge agent sessions live."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )
    ctx.obj = load_config(base_url=url)


# Register subcommands from separate modules
from forge_watch.cli.projects import projects_cmd, sessions_cmd
from forge_watch.cli.watch import clear_cmd, interrupt_cmd, watch_cmd

main.add_command(projects_cmd)
main.add_command(sessions_cmd)
main.add_command(watch_cmd)
main.add_command(interrupt_cmd)
main.add_command(clear_cmd)


if __name__ == "__main__":
    main()
