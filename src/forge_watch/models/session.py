"""
Session models — the join snapshot plus REST project/session metadata.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from forge_watch.models.agent import AgentState
from forge_watch.models.task import Task
from forge_watch.models.tool_log import ToolLogEntry, parse_entries

DEFAULT_MAX_TOKENS = 1_000_000


class CostInfo(BaseModel):
    total_usd: float = Field(default=0.0, alias="totalUSD")

    model_config = {"populate_by_name": True}


class TokenInfo(BaseModel):
    current: int = 0
    max: int = DEFAULT_MAX_TOKENS


class SessionSnapshot(BaseModel):
    """session_joined payload: the full state a client rebuilds from on (re)join."""

    session_id: str = Field(alias="sessionId")
    project_id: Optional[str] = Field(default=None, alias="projectId")
    agent_state: AgentState = Field(default_factory=AgentState, alias="agentState")
    tool_log_entries: list[ToolLogEntry] = Field(default_factory=list, alias="toolLogs")
    tasks: list[Task] = Field(default_factory=list)
    cost: CostInfo = Field(default_factory=CostInfo)
    token_info: TokenInfo = Field(default_factory=TokenInfo, alias="tokenInfo")
    tasks_pinned: bool = Field(default=False, alias="tasksPinned")
    working_directory: Optional[str] = Field(default=None, alias="workingDirectory")
    agent_id: Optional[str] = Field(default=None, alias="agentId")
    reconnected_during_processing: bool = Field(default=False, alias="reconnectedDuringProcessing")

    model_config = {"populate_by_name": True}

    @model_validator(mode="before")
    @classmethod
    def _from_accounting(cls, data: Any) -> Any:
        """Older servers send accounting {totalUSD, input, output} instead of cost/tokenInfo."""
        if not isinstance(data, dict) or "accounting" not in data:
            return data
        accounting = data.get("accounting") or {}
        data = dict(data)
        data.setdefault("cost", {"totalUSD": accounting.get("totalUSD") or 0})
        if "tokenInfo" not in data and "token_info" not in data:
            data["tokenInfo"] = {
                "current": (accounting.get("input") or 0) + (accounting.get("output") or 0),
                "max": DEFAULT_MAX_TOKENS,
            }
        return data

    @field_validator("agent_state", mode="before")
    @classmethod
    def _default_agent_state(cls, v: Any) -> Any:
        return AgentState() if v is None else v

    @field_validator("tool_log_entries", mode="before")
    @classmethod
    def _parse_tool_logs(cls, v: Any) -> list[ToolLogEntry]:
        return parse_entries(v)

    @field_validator("tasks", mode="before")
    @classmethod
    def _parse_tasks(cls, v: Any) -> list[Any]:
        return [t if isinstance(t, Task) else Task.from_wire(t) for t in v or []]


class ProjectInfo(BaseModel):
    id: str
    name: str = ""
    created_at: Optional[int] = Field(default=None, alias="createdAt")
    updated_at: Optional[int] = Field(default=None, alias="updatedAt")

    model_config = {"populate_by_name": True}


class SessionInfo(BaseModel):
    id: str
    name: str = ""
    project_id: Optional[str] = Field(default=None, alias="projectId")
    created_at: Optional[int] = Field(default=None, alias="createdAt")
    updated_at: Optional[int] = Field(default=None, alias="updatedAt")

    model_config = {"populate_by_name": True}


class ProjectListing(BaseModel):
    projects: list[ProjectInfo] = []
    current_project_id: Optional[str] = Field(default=None, alias="currentProjectId")
    current_session_id: Optional[str] = Field(default=None, alias="currentSessionId")

    model_config = {"populate_by_name": True}
