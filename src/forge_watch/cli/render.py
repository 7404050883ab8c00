"""Rich console renderer for `forgewatch watch`."""

from typing import Optional, Sequence

from rich.console import Console, Group
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from forge_watch.errors import ForgeWatchError, InterruptError, ServerError
from forge_watch.models.task import Task, TaskStatus
from forge_watch.projector import (
    DEFAULT_ICON,
    ERROR_ICON,
    SUCCESS_ICON,
    THINKING_ICON,
    ToolWidgetView,
    WidgetPhase,
    format_elapsed,
)
from forge_watch.renderer import DisplayStatus

GLYPHS = {SUCCESS_ICON: "✔", ERROR_ICON: "✖", THINKING_ICON: "…", DEFAULT_ICON: "⚙"}

PHASE_STYLES = {
    WidgetPhase.PENDING: "dim",
    WidgetPhase.ACTIVE: "cyan",
    WidgetPhase.COMPLETED: "green",
    WidgetPhase.ERRORED: "red",
}

STATUS_STYLES = {
    DisplayStatus.IDLE: "green",
    DisplayStatus.THINKING: "yellow",
    DisplayStatus.TOOL_RUNNING: "cyan",
    DisplayStatus.CONNECTING: "dim",
    DisplayStatus.DISCONNECTED: "red",
    DisplayStatus.ERROR: "bold red",
}

TASK_MARKS = {
    TaskStatus.PENDING: "[ ]",
    TaskStatus.IN_PROGRESS: "[~]",
    TaskStatus.COMPLETED: "[x]",
    TaskStatus.ERROR: "[!]",
}


class ConsoleRenderer:
    """Keeps the latest drawn state; rich.live.Live re-renders it via __rich__."""

    def __init__(self, console: Optional[Console] = None, max_widgets: int = 12):
        self._console = console or Console()
        self._max_widgets = max_widgets
        self.widgets: dict[str, ToolWidgetView] = {}
        self.thinking_ms: Optional[float] = None
        self.status = DisplayStatus.CONNECTING
        self.status_text = "Connecting..."
        self.input_enabled = False
        self.tasks: list[Task] = []
        self.selected_task_id: Optional[str] = None
        self.cost = "$0.0000"
        self.tokens = ""

    def show_widget(self, view: ToolWidgetView) -> None:
        self.widgets[view.tool_call_id] = view

    def update_widget(self, view: ToolWidgetView) -> None:
        self.widgets[view.tool_call_id] = view

    def remove_widget(self, tool_call_id: str) -> None:
        self.widgets.pop(tool_call_id, None)

    def show_thinking(self, elapsed_ms: float) -> None:
        self.thinking_ms = elapsed_ms

    def update_thinking(self, elapsed_ms: float) -> None:
        self.thinking_ms = elapsed_ms

    def remove_thinking(self) -> None:
        self.thinking_ms = None

    def set_status(self, status: DisplayStatus, text: str) -> None:
        self.status = status
        self.status_text = text

    def set_input_enabled(self, enabled: bool) -> None:
        self.input_enabled = enabled

    def render_tasks(self, tasks: Sequence[Task], selected_id: Optional[str]) -> None:
        self.tasks = list(tasks)
        self.selected_task_id = selected_id

    def render_cost(self, display: str) -> None:
        self.cost = display

    def render_tokens(self, display: str) -> None:
        self.tokens = display

    def show_error(self, error: ForgeWatchError) -> None:
        if isinstance(error, ServerError) and error.critical:
            self._console.print(f"[bold red]Critical server error:[/bold red] {escape(error.message)}")
        elif isinstance(error, InterruptError):
            self._console.print(f"[yellow]{escape(error.message)}[/yellow]")
        else:
            self._console.print(f"[red]{escape(error.message)}[/red]")

    def show_notice(self, text: str) -> None:
        self._console.print(f"[dim]{escape(text)}[/dim]")

    def __rich__(self) -> Group:
        header = Text.assemble(
            (f"● {self.status_text}", STATUS_STYLES.get(self.status, "")),
            "   ",
            (self.cost, "bold"),
            "   ",
            (self.tokens, "dim"),
        )
        parts: list = [header]

        views = list(self.widgets.values())[-self._max_widgets:]
        if views or self.thinking_ms is not None:
            table = Table(show_header=False, box=None, pad_edge=False)
            table.add_column(width=2)
            table.add_column()
            table.add_column(justify="right")
            for view in views:
                style = PHASE_STYLES[view.phase]
                table.add_row(
                    Text(GLYPHS.get(view.icon, GLYPHS[DEFAULT_ICON]), style=style),
                    Text(view.status_text, style=style),
                    Text(view.display_time, style="dim"),
                )
            if self.thinking_ms is not None:
                table.add_row(
                    Text(GLYPHS[THINKING_ICON], style="yellow"),
                    Text("Thinking...", style="yellow"),
                    Text(format_elapsed(self.thinking_ms), style="dim"),
                )
            parts.append(table)

        if self.tasks:
            done = sum(1 for t in self.tasks if t.status is TaskStatus.COMPLETED)
            tasks = Table(title=f"Tasks ({done}/{len(self.tasks)})", show_header=False, box=None, title_justify="left")
            tasks.add_column()
            for task in self.tasks:
                style = "reverse" if task.id == self.selected_task_id else ""
                tasks.add_row(Text(f"{TASK_MARKS[task.status]} {task.text}", style=style))
            parts.append(tasks)

        return Group(*parts)
