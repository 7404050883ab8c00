"""
Wire codec — raw Socket.IO payloads (camelCase dicts) to typed events and back.
"""

import logging
from typing import Any, Callable, Optional

from pydantic import ValidationError

from forge_watch.models.agent import AgentState
from forge_watch.models.events import (
    AgentStateUpdate,
    C2SEvent,
    CostUpdate,
    InterruptAcknowledged,
    InterruptComplete,
    InterruptFailed,
    S2CEvent,
    ServerErrorEvent,
    SessionEvent,
    TaskDiffUpdate,
    TokenCount,
    ToolLogAppend,
)
from forge_watch.models.session import DEFAULT_MAX_TOKENS, SessionSnapshot
from forge_watch.models.task import diff_from_wire
from forge_watch.models.tool_log import ToolLogEntry

logger = logging.getLogger(__name__)


def _agent_state_update(raw: dict[str, Any]) -> SessionEvent:
    if raw.get("agentState") is None:
        raise ValueError("agent_state_update without agentState")
    return AgentStateUpdate(session_id=raw.get("sessionId"), agent_state=AgentState.model_validate(raw["agentState"]))


def _tool_log_append(raw: dict[str, Any]) -> SessionEvent:
    if raw.get("logEntry") is None:
        raise ValueError("tool_log_append without logEntry")
    return ToolLogAppend(session_id=raw.get("sessionId"), entry=ToolLogEntry.model_validate(raw["logEntry"]))


def _task_diff_update(raw: dict[str, Any]) -> SessionEvent:
    return TaskDiffUpdate(session_id=raw.get("sessionId"), diff=diff_from_wire(raw))


def _cost_update(raw: dict[str, Any]) -> SessionEvent:
    # totalUSD arrives as a toFixed(4) string.
    return CostUpdate(session_id=raw.get("sessionId"), total_usd=float(raw.get("totalUSD") or 0))


def _token_count(raw: dict[str, Any]) -> SessionEvent:
    if raw.get("current") is not None:
        return TokenCount(
            session_id=raw.get("sessionId"),
            current=raw["current"],
            max=raw.get("max") or DEFAULT_MAX_TOKENS,
        )
    accounting = raw.get("accounting") or {}
    return TokenCount(
        session_id=raw.get("sessionId"),
        current=(accounting.get("input") or 0) + (accounting.get("output") or 0),
    )


_DECODERS: dict[str, Callable[[dict[str, Any]], SessionEvent]] = {
    S2CEvent.AGENT_STATE_UPDATE: _agent_state_update,
    S2CEvent.TOOL_LOG_APPEND: _tool_log_append,
    S2CEvent.TASK_DIFF_UPDATE: _task_diff_update,
    S2CEvent.COST_UPDATE: _cost_update,
    S2CEvent.TOKEN_COUNT: _token_count,
    S2CEvent.INTERRUPT_ACKNOWLEDGED: lambda raw: InterruptAcknowledged(session_id=raw.get("sessionId")),
    S2CEvent.INTERRUPT_COMPLETE: lambda raw: InterruptComplete(session_id=raw.get("sessionId")),
    S2CEvent.INTERRUPT_ERROR: lambda raw: InterruptFailed(
        session_id=raw.get("sessionId"), message=raw.get("message") or "Unknown error"
    ),
    S2CEvent.ERROR: lambda raw: ServerErrorEvent(
        session_id=raw.get("sessionId"), message=raw.get("message") or "Unknown error occurred"
    ),
}


def decode_event(name: str, raw: Any) -> Optional[SessionEvent]:
    """Decode one inbound session event. Returns None if unknown or malformed."""
    decoder = _DECODERS.get(name)
    if decoder is None:
        logger.debug("No decoder for event %s", name)
        return None
    if not isinstance(raw, dict):
        logger.warning("Dropping %s: payload is %s, not an object", name, type(raw).__name__)
        return None
    try:
        return decoder(raw)
    except (ValidationError, ValueError, TypeError) as e:
        logger.warning("Dropping malformed %s: %s", name, e)
        return None


def decode_snapshot(raw: dict[str, Any]) -> SessionSnapshot:
    """Parse a session_joined payload. Raises pydantic.ValidationError."""
    return SessionSnapshot.model_validate(raw)


def encode_join(project_id: Optional[str], session_id: str) -> tuple[str, dict[str, Any]]:
    return C2SEvent.JOIN_SESSION, {"sessionId": session_id, "projectId": project_id}


def encode_interrupt(session_id: str) -> tuple[str, dict[str, Any]]:
    return C2SEvent.INTERRUPT_SESSION, {"sessionId": session_id}


def encode_chat_message(session_id: str, content: str) -> tuple[str, dict[str, Any]]:
    return C2SEvent.CHAT_MESSAGE, {"sessionId": session_id, "content": content}
