"""
Socket.IO event names and the typed inbound session events.
"""

from typing import Optional, Union

from pydantic import BaseModel

from forge_watch.models.agent import AgentState
from forge_watch.models.session import DEFAULT_MAX_TOKENS
from forge_watch.models.task import TaskDiff
from forge_watch.models.tool_log import ToolLogEntry


class C2SEvent:
    """Client → server."""

    JOIN_SESSION = "join_session"
    INTERRUPT_SESSION = "interrupt_session"
    CHAT_MESSAGE = "chat_message"


class S2CEvent:
    """Server → client."""

    SESSION_JOINED = "session_joined"
    SESSION_JOIN_ERROR = "session_join_error"
    AGENT_STATE_UPDATE = "agent_state_update"
    TOOL_LOG_APPEND = "tool_log_append"
    TASK_DIFF_UPDATE = "task_diff_update"
    COST_UPDATE = "cost_update"
    TOKEN_COUNT = "token_count"
    INTERRUPT_ACKNOWLEDGED = "interrupt_acknowledged"
    INTERRUPT_COMPLETE = "interrupt_complete"
    INTERRUPT_ERROR = "interrupt_error"
    ERROR = "error"


class TransportEvent:
    CONNECT = "connect"
    DISCONNECT = "disconnect"
    CONNECT_ERROR = "connect_error"


class _Event(BaseModel):
    session_id: Optional[str] = None

    model_config = {"frozen": True}


class AgentStateUpdate(_Event):
    agent_state: AgentState


class ToolLogAppend(_Event):
    entry: ToolLogEntry


class TaskDiffUpdate(_Event):
    diff: TaskDiff


class CostUpdate(_Event):
    total_usd: float


class TokenCount(_Event):
    current: int
    max: int = DEFAULT_MAX_TOKENS


class InterruptAcknowledged(_Event):
    pass


class InterruptComplete(_Event):
    pass


class InterruptFailed(_Event):
    message: str = "Unknown error"


class ServerErrorEvent(_Event):
    message: str = "Unknown error occurred"


SessionEvent = Union[
    AgentStateUpdate,
    ToolLogAppend,
    TaskDiffUpdate,
    CostUpdate,
    TokenCount,
    InterruptAcknowledged,
    InterruptComplete,
    InterruptFailed,
    ServerErrorEvent,
]

# Events the server may send without a sessionId; they apply to whatever is joined.
UNSCOPED_EVENTS = (InterruptFailed, ServerErrorEvent)
