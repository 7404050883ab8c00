"""
Agent state — the server's last-broadcast view of what the agent is doing.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator


class AgentStatus(str, Enum):
    IDLE = "idle"
    THINKING = "thinking"
    TOOL_RUNNING = "tool_running"


class AgentState(BaseModel):
    """Replaced wholesale on every agent_state_update, never merged.

    ``active_tool_call_id`` is set iff ``status`` is TOOL_RUNNING. The server
    merges partial updates, so a THINKING state can still carry the id of the
    tool that ran before it; that stale id is dropped here.
    """

    status: AgentStatus = AgentStatus.IDLE
    status_text: Optional[str] = Field(default=None, alias="statusText")
    start_time: Optional[float] = Field(default=None, alias="startTime")
    active_tool_call_id: Optional[str] = Field(default=None, alias="activeToolCallId")

    model_config = {"populate_by_name": True, "frozen": True}

    @model_validator(mode="before")
    @classmethod
    def _drop_stale_tool_id(cls, data: Any) -> Any:
        if isinstance(data, dict):
            status = data.get("status", AgentStatus.IDLE)
            if status not in (AgentStatus.TOOL_RUNNING, AgentStatus.TOOL_RUNNING.value):
                data = {k: v for k, v in data.items() if k not in ("activeToolCallId", "active_tool_call_id")}
        return data

    @model_validator(mode="after")
    def _require_tool_id(self) -> "AgentState":
        if self.status is AgentStatus.TOOL_RUNNING and not self.active_tool_call_id:
            raise ValueError("tool_running state requires activeToolCallId")
        return self

    @property
    def busy(self) -> bool:
        return self.status is not AgentStatus.IDLE

    def is_running(self, tool_call_id: str) -> bool:
        return self.status is AgentStatus.TOOL_RUNNING and self.active_tool_call_id == tool_call_id

