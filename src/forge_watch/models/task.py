"""
Task list models — tasks and the add/remove/update diffs the server streams.
"""

from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel

UNTITLED_TASK = "Untitled Task"


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ERROR = "error"


class Task(BaseModel):
    id: str
    text: str = UNTITLED_TASK
    status: TaskStatus = TaskStatus.PENDING

    model_config = {"frozen": True}

    @classmethod
    def from_wire(cls, raw: dict[str, Any]) -> "Task":
        """Server tasks carry title/description; the display text prefers title."""
        text = raw.get("title") or raw.get("description") or raw.get("text") or UNTITLED_TASK
        return cls(id=str(raw["id"]), text=text, status=raw.get("status") or TaskStatus.PENDING)


class AddTask(BaseModel):
    kind: Literal["add"] = "add"
    task: Task

    model_config = {"frozen": True}


class RemoveTask(BaseModel):
    kind: Literal["remove"] = "remove"
    task_id: str

    model_config = {"frozen": True}


class UpdateTask(BaseModel):
    """Only the fields that are not None are merged."""

    kind: Literal["update"] = "update"
    task_id: str
    text: Optional[str] = None
    status: Optional[TaskStatus] = None

    model_config = {"frozen": True}


TaskDiff = Union[AddTask, RemoveTask, UpdateTask]


def diff_from_wire(raw: dict[str, Any]) -> TaskDiff:
    """Build a diff from a task_diff_update payload ({type, task?, taskId?})."""
    kind = raw.get("type")
    task = raw.get("task") or {}
    if kind == "add":
        return AddTask(task=Task.from_wire(task))
    if kind == "remove":
        task_id = raw.get("taskId") or task.get("id")
        if not task_id:
            raise ValueError("remove diff without taskId")
        return RemoveTask(task_id=str(task_id))
    if kind == "update":
        task_id = task.get("id") or raw.get("taskId")
        if not task_id:
            raise ValueError("update diff without task id")
        text = next((task[k] for k in ("title", "description", "text") if task.get(k) is not None), None)
        return UpdateTask(task_id=str(task_id), text=text, status=task.get("status"))
    raise ValueError(f"Unknown task diff type: {kind!r}")
