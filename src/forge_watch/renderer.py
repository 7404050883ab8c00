"""
Renderer capability — everything the session view draws goes through here.

The view never touches a UI directly; implementations decide what a widget
looks like. NullRenderer ignores everything and is the base for partial
renderers (tests, headless watchers).
"""

from enum import Enum
from typing import TYPE_CHECKING, Optional, Protocol, Sequence

from forge_watch.errors import ForgeWatchError

if TYPE_CHECKING:
    from forge_watch.models.task import Task
    from forge_watch.projector import ToolWidgetView


class DisplayStatus(str, Enum):
    IDLE = "idle"
    THINKING = "thinking"
    TOOL_RUNNING = "tool_running"
    CONNECTING = "connecting"
    DISCONNECTED = "disconnected"
    ERROR = "error"


DEFAULT_STATUS_TEXT = {
    DisplayStatus.IDLE: "Idle",
    DisplayStatus.THINKING: "Thinking...",
    DisplayStatus.TOOL_RUNNING: "Running tool...",
    DisplayStatus.CONNECTING: "Connecting...",
    DisplayStatus.DISCONNECTED: "Disconnected",
    DisplayStatus.ERROR: "Error",
}


class Renderer(Protocol):
    def show_widget(self, view: "ToolWidgetView") -> None: ...

    def update_widget(self, view: "ToolWidgetView") -> None: ...

    def remove_widget(self, tool_call_id: str) -> None: ...

    def show_thinking(self, elapsed_ms: float) -> None: ...

    def update_thinking(self, elapsed_ms: float) -> None: ...

    def remove_thinking(self) -> None: ...

    def set_status(self, status: DisplayStatus, text: str) -> None: ...

    def set_input_enabled(self, enabled: bool) -> None: ...

    def render_tasks(self, tasks: Sequence["Task"], selected_id: Optional[str]) -> None: ...

    def render_cost(self, display: str) -> None: ...

    def render_tokens(self, display: str) -> None: ...

    def show_error(self, error: ForgeWatchError) -> None: ...

    def show_notice(self, text: str) -> None: ...


class NullRenderer:
    def show_widget(self, view: "ToolWidgetView") -> None:
        pass

    def update_widget(self, view: "ToolWidgetView") -> None:
        pass

    def remove_widget(self, tool_call_id: str) -> None:
        pass

    def show_thinking(self, elapsed_ms: float) -> None:
        pass

    def update_thinking(self, elapsed_ms: float) -> None:
        pass

    def remove_thinking(self) -> None:
        pass

    def set_status(self, status: DisplayStatus, text: str) -> None:
        pass

    def set_input_enabled(self, enabled: bool) -> None:
        pass

    def render_tasks(self, tasks: Sequence["Task"], selected_id: Optional[str]) -> None:
        pass

    def render_cost(self, display: str) -> None:
        pass

    def render_tokens(self, display: str) -> None:
        pass

    def show_error(self, error: ForgeWatchError) -> None:
        pass

    def show_notice(self, text: str) -> None:
        pass
