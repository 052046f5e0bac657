"""
Mutation processor: validates client operations and applies them to the store.

Each accepted operation produces a Delta which is published to subscribers
(the broadcast coordinator) while the store lock is still held, so the
order subscribers see deltas in is exactly the order mutations were applied.
Validation always happens before the store is touched; a rejected operation
leaves the board unchanged and publishes nothing.
"""
import copy
import logging
from enum import Enum
from dataclasses import dataclass
from typing import Optional, Dict, Any, Callable, List

from .schema import (
    Column,
    Task,
    InvalidPayload,
    make_task_id,
)
from .store import TaskStore

logger = logging.getLogger(__name__)

# Fields a client may set on create/update
TASK_FIELDS = ("title", "description", "priority", "category", "attachments")


class DeltaKind(Enum):
    """Broadcast event name for each kind of accepted mutation."""
    CREATED = "task:created"
    UPDATED = "task:updated"
    MOVED = "task:moved"
    DELETED = "task:deleted"


@dataclass(frozen=True)
class Delta:
    """Minimal description of one accepted mutation."""
    kind: DeltaKind
    column: Optional[Column] = None
    task: Optional[Dict[str, Any]] = None      # wire-shaped task
    task_id: Optional[str] = None
    source_column: Optional[Column] = None
    target_column: Optional[Column] = None

    @property
    def event(self) -> str:
        return self.kind.value

    def to_payload(self) -> Dict[str, Any]:
        """Wire payload for this delta's event."""
        if self.kind in (DeltaKind.CREATED, DeltaKind.UPDATED):
            return {"column": self.column.value, "task": copy.deepcopy(self.task)}
        if self.kind == DeltaKind.MOVED:
            return {
                "taskId": self.task_id,
                "sourceColumn": self.source_column.value,
                "targetColumn": self.target_column.value,
                "task": copy.deepcopy(self.task),
            }
        return {"taskId": self.task_id, "column": self.column.value}

    @classmethod
    def from_event(cls, event: str, payload: Dict[str, Any]) -> "Delta":
        """Parse a broadcast message received from the server."""
        try:
            kind = DeltaKind(event)
        except ValueError:
            raise InvalidPayload(f"Unknown delta event: {event!r}") from None
        if not isinstance(payload, dict):
            raise InvalidPayload(f"{event} payload must be an object")

        if kind == DeltaKind.DELETED:
            return cls(
                kind=kind,
                task_id=payload.get("taskId"),
                column=Column.parse(payload.get("column")),
            )
        task = payload.get("task")
        if not isinstance(task, dict):
            raise InvalidPayload(f"{event} payload is missing task")
        if kind == DeltaKind.MOVED:
            return cls(
                kind=kind,
                task_id=payload.get("taskId"),
                source_column=Column.parse(payload.get("sourceColumn")),
                target_column=Column.parse(payload.get("targetColumn")),
                task=task,
            )
        return cls(
            kind=kind,
            column=Column.parse(payload.get("column")),
            task=task,
            task_id=task.get("id"),
        )


def _require_id(value: Any, key: str) -> str:
    if not isinstance(value, str) or not value:
        raise InvalidPayload(f"{key} is required")
    return value


class MutationProcessor:
    """Applies create/update/move/delete to a TaskStore and publishes deltas."""

    def __init__(
        self,
        store: TaskStore,
        max_attachment_bytes: Optional[int] = None,
        id_factory: Callable[[], str] = make_task_id,
    ):
        self.store = store
        self.max_attachment_bytes = max_attachment_bytes
        self.id_factory = id_factory
        self.subscribers: List[Callable] = []

    def subscribe(self, callback: Callable) -> None:
        """Register `callback(delta, origin)` for every accepted mutation."""
        self.subscribers.append(callback)

    def _emit(self, delta: Delta, origin: Any) -> None:
        for callback in self.subscribers:
            try:
                callback(delta, origin)
            except Exception:
                logger.exception(f"Error in {delta.event} subscriber")

    def _new_id(self) -> str:
        task_id = self.id_factory()
        while self.store.contains(task_id):
            task_id = self.id_factory()
        return task_id

    # ── Operations ───────────────────────────────────────────────────────────

    def create(self, column, fields: Dict[str, Any], origin: Any = None) -> Delta:
        """Create a task at the tail of `column` with a fresh server id."""
        column = Column.parse(column)
        with self.store.lock:
            task = Task.from_payload(fields, self._new_id(), self.max_attachment_bytes)
            self.store.insert(column, task)
            delta = Delta(kind=DeltaKind.CREATED, column=column, task=task.to_dict())
            logger.info(f"Created {task.id} in {column.value}: {task.title!r}")
            self._emit(delta, origin)
        return delta

    def update(self, column, fields: Dict[str, Any], origin: Any = None) -> Delta:
        """
        Replace the fields of an existing task in `column`.

        Fields omitted from the payload, or sent as null, keep their current
        values.
        """
        column = Column.parse(column)
        if not isinstance(fields, dict):
            raise InvalidPayload("task payload must be an object")
        task_id = _require_id(fields.get("id"), "id")
        with self.store.lock:
            merged = self.store.get(column, task_id).to_dict()
            merged.update({
                k: v for k, v in fields.items() if k in TASK_FIELDS and v is not None
            })
            task = Task.from_payload(merged, task_id, self.max_attachment_bytes)
            self.store.replace(column, task_id, task)
            delta = Delta(
                kind=DeltaKind.UPDATED,
                column=column,
                task=task.to_dict(),
                task_id=task_id,
            )
            logger.info(f"Updated {task_id} in {column.value}")
            self._emit(delta, origin)
        return delta

    def move(self, task_id: str, source_column, target_column,
             origin: Any = None) -> Optional[Delta]:
        """Move a task to the tail of another column. Same column is a no-op."""
        task_id = _require_id(task_id, "taskId")
        source = Column.parse(source_column)
        target = Column.parse(target_column)
        if source == target:
            logger.debug(f"Ignoring move of {task_id} within {source.value}")
            return None
        with self.store.lock:
            task = self.store.relocate(task_id, source, target)
            delta = Delta(
                kind=DeltaKind.MOVED,
                task=task.to_dict(),
                task_id=task_id,
                source_column=source,
                target_column=target,
            )
            logger.info(f"Moved {task_id}: {source.value} → {target.value}")
            self._emit(delta, origin)
        return delta

    def delete(self, task_id: str, column, origin: Any = None) -> Delta:
        """Remove a task from `column`."""
        task_id = _require_id(task_id, "taskId")
        column = Column.parse(column)
        with self.store.lock:
            self.store.remove(column, task_id)
            delta = Delta(kind=DeltaKind.DELETED, column=column, task_id=task_id)
            logger.info(f"Deleted {task_id} from {column.value}")
            self._emit(delta, origin)
        return delta

    # ── Seeding ──────────────────────────────────────────────────────────────

    def seed(self, board: Dict[str, Any]) -> int:
        """
        Load initial tasks without publishing deltas.

        `board` is wire-shaped ({column: [task, ...]}). Every task is validated
        like a create; tasks without an id get a fresh one. The whole board is
        validated before anything is inserted. Returns the number of tasks.
        """
        if not isinstance(board, dict):
            raise InvalidPayload("seed board must be an object")

        staged = []
        seen = set()
        for key, tasks in board.items():
            column = Column.parse(key)
            if tasks is None:
                continue
            if not isinstance(tasks, list):
                raise InvalidPayload(f"{column.value} must be a list of tasks")
            for data in tasks:
                task_id = data.get("id") if isinstance(data, dict) else None
                if task_id is None:
                    task_id = self.id_factory()
                    while task_id in seen or self.store.contains(task_id):
                        task_id = self.id_factory()
                task_id = _require_id(task_id, "id")
                if task_id in seen or self.store.contains(task_id):
                    raise InvalidPayload(f"Duplicate task id in seed: {task_id}")
                seen.add(task_id)
                staged.append((column, Task.from_payload(data, task_id, self.max_attachment_bytes)))

        with self.store.lock:
            for column, task in staged:
                self.store.insert(column, task)
        logger.info(f"Seeded {len(staged)} tasks")
        return len(staged)
