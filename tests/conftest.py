"""Shared fixtures: a manual clock, a recording renderer and wire payload builders."""

from typing import Any, Optional

import pytest

from forge_watch.clock import ManualClock
from forge_watch.renderer import NullRenderer
from forge_watch.view import ClientSessionView

T0 = 1_700_000_000_000.0


class RecordingRenderer(NullRenderer):
    def __init__(self):
        self.calls: list[tuple[str, Any]] = []
        self.widgets: dict[str, Any] = {}
        self.thinking_ms: Optional[float] = None
        self.statuses: list[tuple[Any, str]] = []
        self.input_enabled: Optional[bool] = None
        self.tasks: list = []
        self.selected_id: Optional[str] = None
        self.cost: Optional[str] = None
        self.tokens: Optional[str] = None
        self.errors: list = []
        self.notices: list[str] = []

    def show_widget(self, view):
        self.calls.append(("show_widget", view.tool_call_id))
        self.widgets[view.tool_call_id] = view

    def update_widget(self, view):
        self.calls.append(("update_widget", view.tool_call_id))
        self.widgets[view.tool_call_id] = view

    def remove_widget(self, tool_call_id):
        self.calls.append(("remove_widget", tool_call_id))
        self.widgets.pop(tool_call_id, None)

    def show_thinking(self, elapsed_ms):
        self.thinking_ms = elapsed_ms

    def update_thinking(self, elapsed_ms):
        self.thinking_ms = elapsed_ms

    def remove_thinking(self):
        self.thinking_ms = None

    def set_status(self, status, text):
        self.statuses.append((status, text))

    def set_input_enabled(self, enabled):
        self.input_enabled = enabled

    def render_tasks(self, tasks, selected_id):
        self.tasks = list(tasks)
        self.selected_id = selected_id

    def render_cost(self, display):
        self.cost = display

    def render_tokens(self, display):
        self.tokens = display

    def show_error(self, error):
        self.errors.append(error)

    def show_notice(self, text):
        self.notices.append(text)

    @property
    def status_text(self) -> Optional[str]:
        return self.statuses[-1][1] if self.statuses else None


def start_entry(tool_call_id: str, tool_name: str = "Bash", ts: float = T0, **extra: Any) -> dict[str, Any]:
    return {"type": "TOOL_START", "toolCallId": tool_call_id, "toolName": tool_name, "timestamp": ts, **extra}


def end_entry(tool_call_id: str, ts: float, result: Any = None, tool_name: str = "Bash", **extra: Any) -> dict[str, Any]:
    return {
        "type": "TOOL_END",
        "toolCallId": tool_call_id,
        "toolName": tool_name,
        "timestamp": ts,
        "result": result if result is not None else {"success": True},
        **extra,
    }


def snapshot_payload(session_id: str = "s1", project_id: str = "p1", **fields: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "sessionId": session_id,
        "projectId": project_id,
        "toolLogs": [],
        "tasks": [],
        "accounting": {"totalUSD": 0, "input": 0, "output": 0},
        "agentState": {"status": "idle"},
    }
    payload.update(fields)
    return payload


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(start_ms=T0)


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture
def sent() -> list:
    return []


@pytest.fixture
def view(renderer, clock, sent) -> ClientSessionView:
    return ClientSessionView(renderer, clock, emit=lambda event, payload: sent.append((event, payload)))
