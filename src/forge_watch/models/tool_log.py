"""
Tool log entries — one TOOL_START and at most one TOOL_END per tool call.
"""

import logging
from enum import Enum
from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class ToolLogKind(str, Enum):
    START = "TOOL_START"
    END = "TOOL_END"


class ToolLogEntry(BaseModel):
    kind: ToolLogKind = Field(alias="type")
    tool_call_id: str = Field(alias="toolCallId")
    tool_name: str = Field(default="", alias="toolName")
    timestamp: float = 0
    args: Optional[Any] = None
    result: Optional[Any] = None
    descriptive_text: Optional[str] = Field(default=None, alias="descriptiveText")
    log_id: Optional[str] = Field(default=None, alias="logId")

    model_config = {"populate_by_name": True, "frozen": True}

    @property
    def failed(self) -> bool:
        """True for an END whose result reports an error."""
        if self.kind is not ToolLogKind.END or not isinstance(self.result, dict):
            return False
        return bool(self.result.get("error")) or self.result.get("success") is False


def parse_entries(raw: Optional[Iterable[Any]]) -> list[ToolLogEntry]:
    """Parse a snapshot's toolLogs, skipping entries that are not tool calls."""
    entries: list[ToolLogEntry] = []
    for item in raw or ():
        try:
            entries.append(ToolLogEntry.model_validate(item))
        except ValidationError as e:
            logger.debug("Skipping tool log entry %r: %s", item, e)
    return entries
