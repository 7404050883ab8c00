"""
Task list diffs — applies add/remove/update in arrival order.
"""

import logging
from typing import Optional, Sequence

from forge_watch.models.task import AddTask, RemoveTask, Task, TaskDiff, TaskStatus, UpdateTask

logger = logging.getLogger(__name__)

# Display order used by the task tracker: finished work first, failures last.
STATUS_WEIGHT = {
    TaskStatus.COMPLETED: 0,
    TaskStatus.IN_PROGRESS: 1,
    TaskStatus.PENDING: 2,
    TaskStatus.ERROR: 3,
}


def _merge(tasks: Sequence[Task], task_id: str, text: Optional[str], status: Optional[TaskStatus]) -> list[Task]:
    changes = {}
    if text is not None:
        changes["text"] = text
    if status is not None:
        changes["status"] = status
    out = []
    found = False
    for task in tasks:
        if task.id == task_id:
            found = True
            task = task.model_copy(update=changes)
        out.append(task)
    if not found:
        # The server can race a remove with an update.
        logger.warning("Update for unknown task %s ignored", task_id)
    return out


def apply_diff(tasks: Sequence[Task], diff: TaskDiff) -> list[Task]:
    """Return the list after ``diff``. The input is never mutated."""
    if isinstance(diff, AddTask):
        if any(t.id == diff.task.id for t in tasks):
            logger.debug("Task %s already present, treating add as update", diff.task.id)
            return _merge(tasks, diff.task.id, diff.task.text, diff.task.status)
        return [*tasks, diff.task]
    if isinstance(diff, RemoveTask):
        remaining = [t for t in tasks if t.id != diff.task_id]
        if len(remaining) == len(tasks):
            logger.debug("Remove for unknown task %s ignored", diff.task_id)
        return remaining
    if isinstance(diff, UpdateTask):
        return _merge(tasks, diff.task_id, diff.text, diff.status)
    raise TypeError(f"Unhandled task diff: {diff!r}")


def next_selection(before: Sequence[Task], removed_id: str, selected_id: Optional[str]) -> Optional[str]:
    """Selection after removing ``removed_id``: predecessor, else new first, else None."""
    if selected_id != removed_id:
        return selected_id
    ids = [t.id for t in before]
    if removed_id not in ids:
        return selected_id
    index = ids.index(removed_id)
    remaining = ids[:index] + ids[index + 1:]
    if not remaining:
        return None
    if index > 0:
        return remaining[index - 1]
    return remaining[0]


class TaskBoard:
    """The session's ordered task list plus the user's current selection."""

    def __init__(self, tasks: Sequence[Task] = ()):
        self._tasks: list[Task] = list(tasks)
        self.selected_id: Optional[str] = None

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks)

    def get(self, task_id: str) -> Optional[Task]:
        return next((t for t in self._tasks if t.id == task_id), None)

    def set_all(self, tasks: Sequence[Task]) -> None:
        """Replace the whole list. Only used when (re)joining a session."""
        self._tasks = list(tasks)
        if self.selected_id is not None and self.get(self.selected_id) is None:
            self.selected_id = None

    def apply(self, diff: TaskDiff) -> list[Task]:
        before = self._tasks
        self._tasks = apply_diff(before, diff)
        if isinstance(diff, RemoveTask):
            self.selected_id = next_selection(before, diff.task_id, self.selected_id)
        return self.tasks

    def select(self, task_id: Optional[str]) -> None:
        if task_id is not None and self.get(task_id) is None:
            raise KeyError(task_id)
        self.selected_id = task_id

    @property
    def completed_count(self) -> int:
        return sum(1 for t in self._tasks if t.status is TaskStatus.COMPLETED)

    def display_order(self) -> list[Task]:
        """Status weight first, then insertion order."""
        indexed = list(enumerate(self._tasks))
        indexed.sort(key=lambda pair: (STATUS_WEIGHT[pair[1].status], pair[0]))
        return [t for _, t in indexed]

    def __len__(self) -> int:
        return len(self._tasks)
