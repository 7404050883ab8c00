"""
Client-side session view — the projection of one joined agent session.

Live state arrives as a join snapshot followed by ordered partial updates.
ClientSessionView turns that into widgets, a task list, a cost tally and an
interrupt handshake, and keeps the result consistent across reconnects and
session switches:

- join() is a hard reset. The previous SessionViewContext is torn down (every
  timer cancelled before join returns) and a fresh one is built from the
  snapshot alone.
- While a join is in flight, live events for that session are buffered and
  replayed in arrival order once the snapshot is applied.
- Events tagged with any other session id are dropped.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from forge_watch.clock import Clock, LoopClock, TimerGroup
from forge_watch.cost import CostAccumulator
from forge_watch.errors import InterruptError, JoinError, ServerError, TransportError
from forge_watch.interrupt import INTERRUPT_TIMEOUT_S, InterruptCoordinator, InterruptOutcome, InterruptState
from forge_watch.models.agent import AgentState, AgentStatus
from forge_watch.models.events import (
    UNSCOPED_EVENTS,
    AgentStateUpdate,
    CostUpdate,
    InterruptAcknowledged,
    InterruptComplete,
    InterruptFailed,
    ServerErrorEvent,
    SessionEvent,
    TaskDiffUpdate,
    TokenCount,
    ToolLogAppend,
)
from forge_watch.models.session import SessionSnapshot
from forge_watch.models.task import Task
from forge_watch.projector import TICK_INTERVAL_S, ToolLog, ToolWidgetBoard, ToolWidgetView
from forge_watch.renderer import DEFAULT_STATUS_TEXT, DisplayStatus, NullRenderer, Renderer
from forge_watch.tasks import TaskBoard
from forge_watch.transport.codec import encode_chat_message, encode_interrupt, encode_join

logger = logging.getLogger(__name__)

Emit = Callable[[str, dict[str, Any]], None]

# Reasons reported when this client closed the connection itself.
CLIENT_DISCONNECT_REASONS = {"io client disconnect", "client disconnect"}


@dataclass(frozen=True)
class Projection:
    """Comparable summary of everything a context currently shows."""

    session_id: str
    agent_state: AgentState
    widgets: tuple[ToolWidgetView, ...]
    thinking: bool
    tasks: tuple[Task, ...]
    selected_task_id: Optional[str]
    total_usd: float
    displayed_usd: float
    tokens: tuple[int, int]
    interrupt_state: InterruptState


class SessionViewContext:
    """Everything owned while joined to one session. Built fresh per join."""

    def __init__(
        self,
        session_id: str,
        project_id: Optional[str],
        renderer: Renderer,
        clock: Clock,
        send_interrupt: Callable[[str], None],
        on_interrupt_change: Callable[[InterruptCoordinator], None],
        on_interrupt_error: Callable[[InterruptError], None],
        tick_interval: float = TICK_INTERVAL_S,
        interrupt_timeout: float = INTERRUPT_TIMEOUT_S,
    ):
        self.session_id = session_id
        self.project_id = project_id
        self.timers = TimerGroup(clock)
        self.agent_state = AgentState()
        self.tool_log = ToolLog()
        self.widgets = ToolWidgetBoard(renderer, clock, tick_interval)
        self.tasks = TaskBoard()
        self.cost = CostAccumulator(self.timers, renderer)
        self.interrupt = InterruptCoordinator(
            self.timers,
            send_interrupt,
            on_change=on_interrupt_change,
            on_error=on_interrupt_error,
            timeout_s=interrupt_timeout,
        )

    @property
    def active_timers(self) -> int:
        return self.timers.active + self.widgets.active_timers

    def projection(self) -> Projection:
        return Projection(
            session_id=self.session_id,
            agent_state=self.agent_state,
            widgets=tuple(self.widgets.views),
            thinking=self.widgets.thinking,
            tasks=tuple(self.tasks.tasks),
            selected_task_id=self.tasks.selected_id,
            total_usd=self.cost.total_usd,
            displayed_usd=self.cost.displayed_usd,
            tokens=(self.cost.token_current, self.cost.token_max),
            interrupt_state=self.interrupt.state,
        )

    def close(self) -> None:
        self.interrupt.reset()
        self.cost.close()
        self.widgets.clear()
        self.timers.cancel_all()


class ClientSessionView:
    def __init__(
        self,
        renderer: Optional[Renderer] = None,
        clock: Optional[Clock] = None,
        emit: Optional[Emit] = None,
        tick_interval: float = TICK_INTERVAL_S,
        interrupt_timeout: float = INTERRUPT_TIMEOUT_S,
    ):
        self._renderer: Renderer = renderer or NullRenderer()
        self._clock: Clock = clock or LoopClock()
        self._emit = emit
        self._tick_interval = tick_interval
        self._interrupt_timeout = interrupt_timeout

        self.context: Optional[SessionViewContext] = None
        self._expected: Optional[tuple[Optional[str], str]] = None
        self._buffer: list[SessionEvent] = []

        self.connected = True
        self.join_error: Optional[JoinError] = None
        self._critical_error: Optional[ServerError] = None
        self._released = False
        self._awaiting_reply = False
        self._input_enabled: Optional[bool] = None

    # --- accessors ---

    @property
    def session_id(self) -> Optional[str]:
        return self.context.session_id if self.context else None

    @property
    def expected_session_id(self) -> Optional[str]:
        return self._expected[1] if self._expected else None

    @property
    def joining(self) -> bool:
        return self._expected is not None

    @property
    def agent_state(self) -> AgentState:
        return self.context.agent_state if self.context else AgentState()

    @property
    def input_enabled(self) -> bool:
        ctx = self.context
        if ctx is None or self._expected is not None:
            return False
        if not self.connected or self.join_error is not None or self._critical_error is not None:
            return False
        if ctx.interrupt.outstanding or self._awaiting_reply:
            return False
        return not ctx.agent_state.busy or self._released

    def set_emitter(self, emit: Optional[Emit]) -> None:
        self._emit = emit

    # --- session lifecycle ---

    def expect(self, project_id: Optional[str], session_id: str) -> None:
        """Mark a join as in flight; live events for it are buffered until join()."""
        if self.context is not None and self.context.session_id != session_id:
            self.leave()
        self._expected = (project_id, session_id)
        self._buffer = []
        self._set_status(DisplayStatus.CONNECTING, "Connecting to session...")
        self._sync_input()

    def request_join(self, project_id: Optional[str], session_id: str) -> None:
        """Emit join_session and start buffering for it."""
        self.expect(project_id, session_id)
        self._send(*encode_join(project_id, session_id))

    def join(self, snapshot: SessionSnapshot) -> SessionViewContext:
        """Hard reset onto ``snapshot``, then replay events buffered for it."""
        session_id = snapshot.session_id
        project_id = snapshot.project_id
        buffered: list[SessionEvent] = []
        if self._expected is not None and self._expected[1] == session_id:
            project_id = project_id or self._expected[0]
            buffered = self._buffer
        elif self._expected is not None:
            logger.warning("Snapshot for %s while joining %s", session_id, self._expected[1])

        self._teardown()
        self._expected = None
        self._buffer = []
        self.join_error = None
        self._critical_error = None
        self._released = False
        self._awaiting_reply = False

        ctx = SessionViewContext(
            session_id,
            project_id,
            self._renderer,
            self._clock,
            send_interrupt=lambda sid: self._send(*encode_interrupt(sid)),
            on_interrupt_change=self._interrupt_changed,
            on_interrupt_error=self._renderer.show_error,
            tick_interval=self._tick_interval,
            interrupt_timeout=self._interrupt_timeout,
        )
        self.context = ctx
        self._apply_snapshot(ctx, snapshot)

        if buffered:
            logger.debug("Replaying %d buffered events for %s", len(buffered), session_id)
        for event in buffered:
            self._dispatch(ctx, event)
        self._sync_input()
        logger.info(
            "Joined session %s (%d tool calls, %d tasks, agent %s)",
            session_id, len(ctx.tool_log.call_ids()), len(ctx.tasks), ctx.agent_state.status.value,
        )
        return ctx

    def join_failed(self, session_id: Optional[str], message: str) -> JoinError:
        if self._expected is not None and session_id and self._expected[1] != session_id:
            logger.debug("Join error for %s ignored while joining %s", session_id, self._expected[1])
            return JoinError(message, session_id)
        self._expected = None
        self._buffer = []
        self.join_error = JoinError(f"Failed to load session: {message}", session_id)
        self._renderer.show_error(self.join_error)
        self._set_status(DisplayStatus.ERROR, "Session Error")
        self._sync_input()
        return self.join_error

    def leave(self) -> None:
        """Cancel every timer and drop the session. Safe to call when not joined."""
        self._teardown()
        self.context = None
        self._expected = None
        self._buffer = []
        self._sync_input()

    # --- inbound ---

    def handle_event(self, session_id: Optional[str], event: SessionEvent) -> None:
        if session_id is None and isinstance(event, UNSCOPED_EVENTS):
            self._dispatch(self.context, event)
            return
        if self._expected is not None and session_id == self._expected[1]:
            self._buffer.append(event)
            return
        ctx = self.context
        if ctx is None or session_id != ctx.session_id:
            logger.debug("Ignoring %s for session %s (current: %s)", type(event).__name__, session_id, self.session_id)
            return
        self._dispatch(ctx, event)

    def on_connect(self) -> None:
        """Transport (re)connected: join the active session again."""
        self.connected = True
        if self._expected is not None:
            project_id, session_id = self._expected
        elif self.context is not None:
            project_id, session_id = self.context.project_id, self.context.session_id
        else:
            logger.error("Connected without a session to join")
            self.join_error = JoinError("Could not determine the current session. Select one to watch.")
            self._renderer.show_error(self.join_error)
            self._set_status(DisplayStatus.ERROR, "Session Error")
            self._sync_input()
            return
        logger.info("Connected, joining session %s", session_id)
        self.request_join(project_id, session_id)

    def on_disconnect(self, reason: str = "") -> None:
        self.connected = False
        logger.info("Disconnected from server: %s", reason or "unknown")
        if reason in CLIENT_DISCONNECT_REASONS:
            self._set_status(DisplayStatus.DISCONNECTED, "Offline")
        else:
            self._renderer.show_error(
                TransportError("Disconnected. Attempting to reconnect...", details={"reason": reason})
            )
            self._set_status(DisplayStatus.DISCONNECTED, "Disconnected")
        self._sync_input()

    def on_connect_error(self, error: Any) -> None:
        self.connected = False
        logger.error("Connection error: %s", error)
        self._renderer.show_error(TransportError(f"Failed to connect to the server: {error}", code="connect_error"))
        self._set_status(DisplayStatus.ERROR, "Connection Failed")
        self._sync_input()

    # --- outbound intents ---

    def request_interrupt(self) -> None:
        ctx = self.context
        if ctx is None:
            raise InterruptError("No active session to interrupt.")
        if not self.connected:
            raise TransportError("Cannot interrupt: not connected to the server", code="not_connected")
        ctx.interrupt.request(ctx.session_id)

    def send_message(self, content: str) -> None:
        ctx = self.context
        if ctx is None:
            raise TransportError("No active session joined. Cannot send message.", code="no_session")
        if not content:
            raise ValueError("Message content is required")
        self._send(*encode_chat_message(ctx.session_id, content))
        self._awaiting_reply = True
        self._released = False
        self._set_status(DisplayStatus.THINKING, "Sending...")
        self._sync_input()

    def clear_session_tools(self) -> None:
        """Session-clear: the only operation that empties the tool log."""
        ctx = self.context
        if ctx is None:
            return
        ctx.widgets.clear()
        ctx.tool_log.clear()

    # --- internals ---

    def _apply_snapshot(self, ctx: SessionViewContext, snapshot: SessionSnapshot) -> None:
        state = snapshot.agent_state
        for entry in snapshot.tool_log_entries:
            ctx.tool_log.append(entry)
        for tool_call_id in ctx.tool_log.call_ids():
            ctx.widgets.refresh(tool_call_id, ctx.tool_log, state)

        ctx.tasks.set_all(snapshot.tasks)
        self._renderer.render_tasks(ctx.tasks.tasks, ctx.tasks.selected_id)

        ctx.cost.set(snapshot.cost.total_usd)
        ctx.cost.set_tokens(snapshot.token_info.current, snapshot.token_info.max)

        ctx.agent_state = state
        self._show_agent_status(state)
        if state.status is AgentStatus.THINKING:
            ctx.widgets.show_thinking(state.start_time)
        if snapshot.reconnected_during_processing:
            logger.info("Rejoined %s while the agent is %s", ctx.session_id, state.status.value)
            self._renderer.show_notice(f"Reconnected while the agent is {state.status.value.replace('_', ' ')}")

    def _dispatch(self, ctx: Optional[SessionViewContext], event: SessionEvent) -> None:
        if isinstance(event, ServerErrorEvent):
            self._server_error(ctx, event)
            return
        if isinstance(event, InterruptFailed):
            if ctx is not None:
                ctx.interrupt.error(event.message)
            else:
                self._renderer.show_error(InterruptError(f"Could not interrupt: {event.message}"))
            return
        if ctx is None:
            return

        if isinstance(event, AgentStateUpdate):
            self._apply_agent_state(ctx, event.agent_state)
        elif isinstance(event, ToolLogAppend):
            if ctx.tool_log.append(event.entry):
                ctx.widgets.refresh(event.entry.tool_call_id, ctx.tool_log, ctx.agent_state)
        elif isinstance(event, TaskDiffUpdate):
            ctx.tasks.apply(event.diff)
            self._renderer.render_tasks(ctx.tasks.tasks, ctx.tasks.selected_id)
        elif isinstance(event, CostUpdate):
            ctx.cost.update(event.total_usd)
        elif isinstance(event, TokenCount):
            ctx.cost.set_tokens(event.current, event.max)
        elif isinstance(event, InterruptAcknowledged):
            ctx.interrupt.acknowledge()
            self._set_status(DisplayStatus.THINKING, "Stopping processing...")
        elif isinstance(event, InterruptComplete):
            ctx.interrupt.complete()
            ctx.widgets.remove_thinking()
            self._released = True
            self._set_status(DisplayStatus.IDLE, DEFAULT_STATUS_TEXT[DisplayStatus.IDLE])
            self._sync_input()
        else:
            raise TypeError(f"Unhandled session event: {event!r}")

    def _apply_agent_state(self, ctx: SessionViewContext, state: AgentState) -> None:
        previous = ctx.agent_state
        ctx.agent_state = state
        self._released = False
        self._awaiting_reply = False
        self._show_agent_status(state)

        if state.status is AgentStatus.THINKING:
            ctx.widgets.show_thinking(state.start_time)
        else:
            ctx.widgets.remove_thinking()

        if previous.active_tool_call_id and previous.active_tool_call_id != state.active_tool_call_id:
            ctx.widgets.refresh(previous.active_tool_call_id, ctx.tool_log, state)
        if state.active_tool_call_id:
            ctx.widgets.refresh(state.active_tool_call_id, ctx.tool_log, state)
        self._sync_input()

    def _server_error(self, ctx: Optional[SessionViewContext], event: ServerErrorEvent) -> None:
        error = ServerError.from_message(event.message, {"session_id": event.session_id} if event.session_id else None)
        if ctx is not None:
            ctx.widgets.remove_thinking()
        self._renderer.show_error(error)
        self._set_status(DisplayStatus.ERROR, "Server Error")
        if error.critical:
            self._critical_error = error
        else:
            self._released = True
            self._awaiting_reply = False
        self._sync_input()

    def _interrupt_changed(self, coordinator: InterruptCoordinator) -> None:
        if coordinator.state is InterruptState.IDLE and coordinator.last_outcome in (
            InterruptOutcome.ERRORED,
            InterruptOutcome.TIMED_OUT,
        ):
            self._released = True
        self._sync_input()

    def _show_agent_status(self, state: AgentState) -> None:
        status = DisplayStatus(state.status.value)
        self._set_status(status, state.status_text or DEFAULT_STATUS_TEXT[status])

    def _set_status(self, status: DisplayStatus, text: str) -> None:
        self._renderer.set_status(status, text)

    def _sync_input(self) -> None:
        enabled = self.input_enabled
        if enabled != self._input_enabled:
            self._input_enabled = enabled
            self._renderer.set_input_enabled(enabled)

    def _teardown(self) -> None:
        if self.context is not None:
            self.context.close()
            self.context = None

    def _send(self, event: str, payload: dict[str, Any]) -> None:
        if self._emit is None:
            raise TransportError(f"Cannot emit {event}: no transport attached", code="not_connected")
        self._emit(event, payload)
