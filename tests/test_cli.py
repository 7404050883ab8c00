from click.testing import CliRunner
from rich.console import Console

from conftest import T0, end_entry, start_entry

from forge_watch.cli.main import main
from forge_watch.cli.render import ConsoleRenderer
from forge_watch.errors import ServerError
from forge_watch.models.agent import AgentState
from forge_watch.models.task import Task, TaskStatus
from forge_watch.models.tool_log import ToolLogEntry
from forge_watch.projector import project
from forge_watch.renderer import DisplayStatus


def test_help_lists_commands():
    result = CliRunner().invoke(main, ["--help"])
    assert result.exit_code == 0
    for command in ("projects", "sessions", "watch", "interrupt", "clear"):
        assert command in result.output


def test_console_renderer_draws_state():
    console = Console(record=True, width=100)
    renderer = ConsoleRenderer(console)
    entries = [ToolLogEntry.model_validate(start_entry("t1", "GrepTool")), ToolLogEntry.model_validate(end_entry("t1", T0 + 1_500))]
    renderer.show_widget(project("t1", entries, AgentState(), T0))
    renderer.show_thinking(2_000)
    renderer.set_status(DisplayStatus.THINKING, "Thinking...")
    renderer.render_cost("$0.0100")
    renderer.render_tokens("10/1,000,000 tokens")
    renderer.render_tasks([Task(id="a", text="Plan", status=TaskStatus.COMPLETED), Task(id="b", text="Build")], "b")

    console.print(renderer)
    text = console.export_text()
    assert "Tool completed" in text
    assert "1.5s" in text
    assert "$0.0100" in text
    assert "Tasks (1/2)" in text
    assert "[x] Plan" in text


def test_console_renderer_prints_errors():
    console = Console(record=True, width=100)
    renderer = ConsoleRenderer(console)
    renderer.show_error(ServerError.from_message("API_KEY_MISSING"))
    assert "Critical server error" in console.export_text()
