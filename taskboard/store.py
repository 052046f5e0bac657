"""
In-memory task store.

Holds the authoritative board state and provides atomic read/mutate
primitives. Every public method takes the store lock; callers that need
several steps to appear atomic (validate, apply, publish) hold `store.lock`
around them. The lock is re-entrant so nested calls are safe.
"""
import threading
from typing import List, Dict, Any, Optional

from .schema import Column, Task, TaskNotFound, COLUMNS


class TaskStore:
    """Board state: three ordered task lists keyed by column."""

    def __init__(self):
        self.lock = threading.RLock()
        self._columns: Dict[Column, List[Task]] = {column: [] for column in COLUMNS}

    def snapshot(self) -> Dict[str, List[Dict[str, Any]]]:
        """Deep copy of the whole board in wire shape."""
        with self.lock:
            return {
                column.value: [task.to_dict() for task in tasks]
                for column, tasks in self._columns.items()
            }

    def insert(self, column, task: Task) -> None:
        """Append a task to the tail of a column."""
        column = Column.parse(column)
        with self.lock:
            self._columns[column].append(task.copy())

    def replace(self, column, task_id: str, new_task: Task) -> None:
        """Replace the task with `task_id` in `column`, keeping its position."""
        column = Column.parse(column)
        with self.lock:
            tasks = self._columns[column]
            index = self._index(tasks, column, task_id)
            tasks[index] = new_task.copy()

    def relocate(self, task_id: str, source_column, target_column) -> Optional[Task]:
        """
        Move a task from one column to the tail of another.

        Returns the moved task, or None when source and target are the same
        column (nothing to do).
        """
        source = Column.parse(source_column)
        target = Column.parse(target_column)
        if source == target:
            return None
        with self.lock:
            tasks = self._columns[source]
            task = tasks.pop(self._index(tasks, source, task_id))
            self._columns[target].append(task)
            return task.copy()

    def remove(self, column, task_id: str) -> Task:
        """Delete a task from a column and return it."""
        column = Column.parse(column)
        with self.lock:
            tasks = self._columns[column]
            return tasks.pop(self._index(tasks, column, task_id))

    def get(self, column, task_id: str) -> Task:
        """Copy of the task with `task_id` in `column`."""
        column = Column.parse(column)
        with self.lock:
            tasks = self._columns[column]
            return tasks[self._index(tasks, column, task_id)].copy()

    def contains(self, task_id: str) -> bool:
        """True if any column holds a task with this id."""
        with self.lock:
            return any(t.id == task_id for tasks in self._columns.values() for t in tasks)

    def count(self) -> int:
        with self.lock:
            return sum(len(tasks) for tasks in self._columns.values())

    @staticmethod
    def _index(tasks: List[Task], column: Column, task_id: str) -> int:
        for i, task in enumerate(tasks):
            if task.id == task_id:
                return i
        raise TaskNotFound(f"Task {task_id!r} not found in {column.value}")
