"""
Tool log projection — turns the log entries of one tool call plus the current
agent state into what its widget should show.

project() is pure: the same entries, agent state and ``now_ms`` always give an
equal ToolWidgetView. A finished call (END entry present) is Completed or
Errored no matter what the agent state says, so a stale "still running"
update can never revive it.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Iterable, Optional

from forge_watch.clock import Clock, TimerGroup, TimerHandle
from forge_watch.models.agent import AgentState
from forge_watch.models.tool_log import ToolLogEntry, ToolLogKind
from forge_watch.renderer import Renderer

logger = logging.getLogger(__name__)

TICK_INTERVAL_S = 0.1

TOOL_ICONS = {
    "Bash": "terminal",
    "BatchTool": "batch_prediction",
    "GlobTool": "find_in_page",
    "GrepTool": "search",
    "LS": "folder_open",
    "View": "visibility",
    "Edit": "edit",
    "Replace": "find_replace",
    "WebFetchTool": "public",
    "DispatchAgentTool": "smart_toy",
    "BashSafety": "security",
}
DEFAULT_ICON = "build"
SUCCESS_ICON = "check_circle"
ERROR_ICON = "error"
THINKING_ICON = "psychology"


class WidgetPhase(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    ERRORED = "errored"

    @property
    def terminal(self) -> bool:
        return self in (WidgetPhase.COMPLETED, WidgetPhase.ERRORED)


def format_elapsed(elapsed_ms: float) -> str:
    seconds = elapsed_ms / 1000
    if seconds < 0:
        return "0.0s"
    if seconds < 10:
        return f"{seconds:.1f}s"
    return f"{int(seconds)}s"


@dataclass(frozen=True)
class ToolWidgetView:
    tool_call_id: str
    tool_name: str
    phase: WidgetPhase
    elapsed_ms: float
    icon: str
    status_text: str
    started_at: float
    ended_at: Optional[float] = None
    args: Optional[Any] = None
    result: Optional[Any] = None

    @property
    def display_time(self) -> str:
        if self.phase is WidgetPhase.PENDING:
            return "---"
        return format_elapsed(self.elapsed_ms)


def project(
    tool_call_id: str,
    entries: Iterable[ToolLogEntry],
    agent_state: AgentState,
    now_ms: float,
) -> Optional[ToolWidgetView]:
    """Project one tool call. Returns None while its START entry is unknown."""
    start: Optional[ToolLogEntry] = None
    end: Optional[ToolLogEntry] = None
    for entry in entries:
        if entry.tool_call_id != tool_call_id:
            continue
        if entry.kind is ToolLogKind.START and start is None:
            start = entry
        elif entry.kind is ToolLogKind.END and end is None:
            end = entry
    if start is None:
        logger.debug("No TOOL_START for %s yet, nothing to render", tool_call_id)
        return None

    name = start.tool_name or "Unknown Tool"
    base = ToolWidgetView(
        tool_call_id=tool_call_id,
        tool_name=name,
        phase=WidgetPhase.PENDING,
        elapsed_ms=0,
        icon=TOOL_ICONS.get(start.tool_name, DEFAULT_ICON),
        status_text=start.descriptive_text or f"{name} started",
        started_at=start.timestamp,
        args=start.args,
    )

    if end is not None:
        failed = end.failed
        return replace(
            base,
            phase=WidgetPhase.ERRORED if failed else WidgetPhase.COMPLETED,
            elapsed_ms=max(0.0, end.timestamp - start.timestamp),
            icon=ERROR_ICON if failed else SUCCESS_ICON,
            status_text=end.descriptive_text or ("Tool failed" if failed else "Tool completed"),
            ended_at=end.timestamp,
            result=end.result,
        )

    if agent_state.is_running(tool_call_id):
        origin = agent_state.start_time or start.timestamp
        return replace(
            base,
            phase=WidgetPhase.ACTIVE,
            elapsed_ms=max(0.0, now_ms - origin),
            status_text=agent_state.status_text or start.descriptive_text or f"Running {name}...",
        )

    return base


class ToolLog:
    """Client copy of a session's append-only tool log."""

    def __init__(self, entries: Iterable[ToolLogEntry] = ()):
        self._entries: list[ToolLogEntry] = []
        self._by_id: dict[str, dict[ToolLogKind, ToolLogEntry]] = {}
        self._started: list[str] = []
        for entry in entries:
            self.append(entry)

    def append(self, entry: ToolLogEntry) -> bool:
        """Append an entry. A second START or END for the same call is dropped."""
        kinds = self._by_id.setdefault(entry.tool_call_id, {})
        if entry.kind in kinds:
            logger.debug("Duplicate %s for %s ignored", entry.kind.value, entry.tool_call_id)
            return False
        kinds[entry.kind] = entry
        self._entries.append(entry)
        if entry.kind is ToolLogKind.START:
            self._started.append(entry.tool_call_id)
        return True

    def entries_for(self, tool_call_id: str) -> list[ToolLogEntry]:
        return list(self._by_id.get(tool_call_id, {}).values())

    def call_ids(self) -> list[str]:
        """Tool calls with a START entry, in the order they started."""
        return list(self._started)

    def clear(self) -> None:
        self._entries.clear()
        self._by_id.clear()
        self._started.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)


class ToolWidgetBoard:
    """Live tool widgets and the thinking indicator, with their tickers.

    Only Active widgets tick. A tick re-derives elapsed time from the widget's
    timer origin, so the number of ticks never changes what is shown.
    """

    def __init__(self, renderer: Renderer, clock: Clock, tick_interval: float = TICK_INTERVAL_S):
        self._renderer = renderer
        self._clock = clock
        self._tick_interval = tick_interval
        self._timers = TimerGroup(clock)
        self._widgets: dict[str, ToolWidgetView] = {}
        self._tickers: dict[str, TimerHandle] = {}
        self._origins: dict[str, float] = {}
        self._thinking_origin: Optional[float] = None
        self._thinking_ticker: Optional[TimerHandle] = None

    def view(self, tool_call_id: str) -> Optional[ToolWidgetView]:
        return self._widgets.get(tool_call_id)

    @property
    def views(self) -> list[ToolWidgetView]:
        return list(self._widgets.values())

    @property
    def thinking(self) -> bool:
        return self._thinking_origin is not None

    @property
    def active_timers(self) -> int:
        return self._timers.active

    def refresh(self, tool_call_id: str, log: ToolLog, agent_state: AgentState) -> Optional[ToolWidgetView]:
        view = project(tool_call_id, log.entries_for(tool_call_id), agent_state, self._clock.now())
        if view is None:
            return None
        if tool_call_id in self._widgets:
            self._renderer.update_widget(view)
        else:
            self._renderer.show_widget(view)
        self._widgets[tool_call_id] = view

        if view.phase is WidgetPhase.ACTIVE:
            self._origins[tool_call_id] = agent_state.start_time or view.started_at
            if tool_call_id not in self._tickers:
                self._tickers[tool_call_id] = self._timers.call_every(
                    self._tick_interval, lambda: self._tick(tool_call_id)
                )
        else:
            self._stop_ticker(tool_call_id)
        return view

    def remove(self, tool_call_id: str) -> None:
        self._stop_ticker(tool_call_id)
        if self._widgets.pop(tool_call_id, None) is not None:
            self._renderer.remove_widget(tool_call_id)

    def show_thinking(self, start_ms: Optional[float] = None) -> None:
        if self._thinking_origin is not None:
            return
        self._thinking_origin = start_ms if start_ms is not None else self._clock.now()
        self._renderer.show_thinking(max(0.0, self._clock.now() - self._thinking_origin))
        self._thinking_ticker = self._timers.call_every(self._tick_interval, self._tick_thinking)

    def remove_thinking(self) -> None:
        if self._thinking_ticker is not None:
            self._thinking_ticker.cancel()
            self._thinking_ticker = None
        if self._thinking_origin is not None:
            self._thinking_origin = None
            self._renderer.remove_thinking()

    def clear(self) -> None:
        """Cancel every ticker, then remove every widget."""
        self._timers.cancel_all()
        self._tickers.clear()
        self._origins.clear()
        self._thinking_ticker = None
        for tool_call_id in list(self._widgets):
            del self._widgets[tool_call_id]
            self._renderer.remove_widget(tool_call_id)
        if self._thinking_origin is not None:
            self._thinking_origin = None
            self._renderer.remove_thinking()

    def _stop_ticker(self, tool_call_id: str) -> None:
        ticker = self._tickers.pop(tool_call_id, None)
        if ticker is not None:
            ticker.cancel()
        self._origins.pop(tool_call_id, None)

    def _tick(self, tool_call_id: str) -> None:
        view = self._widgets.get(tool_call_id)
        origin = self._origins.get(tool_call_id)
        if view is None or origin is None or view.phase is not WidgetPhase.ACTIVE:
            self._stop_ticker(tool_call_id)
            return
        view = replace(view, elapsed_ms=max(0.0, self._clock.now() - origin))
        self._widgets[tool_call_id] = view
        self._renderer.update_widget(view)

    def _tick_thinking(self) -> None:
        if self._thinking_origin is None:
            return
        self._renderer.update_thinking(max(0.0, self._clock.now() - self._thinking_origin))
