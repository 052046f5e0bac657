"""
Task board schema.

Board layout:
  todo → inProgress → done

Columns are a fixed partition key, not entities. Tasks carry their own
attachments; attachments are immutable once added.
"""
import time
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any


def make_task_id() -> str:
    """Generate a sortable unique task ID (ms-precision timestamp + random hex)."""
    ts = int(time.time() * 1000)
    rand = uuid.uuid4().hex[:8]
    return f"task-{ts}-{rand}"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Exceptions
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class BoardError(Exception):
    """Base class for rejected board operations."""

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind, "message": str(self)}


class InvalidColumn(BoardError):
    """Raised when an operation names a column outside the fixed set."""
    pass


class TaskNotFound(BoardError):
    """Raised when a task id is not present in the expected column."""
    pass


class InvalidPayload(BoardError):
    """Raised when a required field is missing or malformed."""
    pass


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Enums
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class Column(Enum):
    """The three board columns. Wire values are case-sensitive."""
    TODO = "todo"
    IN_PROGRESS = "inProgress"
    DONE = "done"

    @classmethod
    def parse(cls, value: Any) -> "Column":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidColumn(f"Invalid column: {value!r}") from None


class Priority(Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @classmethod
    def parse(cls, value: Any) -> "Priority":
        if value is None:
            return cls.MEDIUM
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidPayload(f"Invalid priority: {value!r}") from None


class Category(Enum):
    BUG = "Bug"
    FEATURE = "Feature"
    ENHANCEMENT = "Enhancement"

    @classmethod
    def parse(cls, value: Any) -> "Category":
        if value is None:
            return cls.FEATURE
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidPayload(f"Invalid category: {value!r}") from None


COLUMNS: List[Column] = list(Column)


def empty_board() -> Dict[str, List[Dict[str, Any]]]:
    """Wire-shaped board with every column present and empty."""
    return {column.value: [] for column in COLUMNS}


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Records
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def _optional_str(data: Dict[str, Any], key: str, default: str = "") -> str:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise InvalidPayload(f"{key} must be a string")
    return value


@dataclass(frozen=True)
class Attachment:
    """A file attached to a task. The browser encodes `url` (often a data URL)."""
    name: str
    type: str = ""                 # MIME type, e.g. "image/png"
    url: str = ""                  # URL or payload reference
    size: int = 0                  # bytes

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "type": self.type, "url": self.url, "size": self.size}

    @classmethod
    def from_dict(cls, data: Any, max_bytes: Optional[int] = None) -> "Attachment":
        if not isinstance(data, dict):
            raise InvalidPayload("attachment must be an object")
        name = _optional_str(data, "name").strip()
        if not name:
            raise InvalidPayload("attachment name is required")
        size = data.get("size", 0)
        if size is None:
            size = 0
        if isinstance(size, bool) or not isinstance(size, int) or size < 0:
            raise InvalidPayload(f"Invalid attachment size for {name!r}")
        if max_bytes is not None and size > max_bytes:
            raise InvalidPayload(
                f"Attachment {name!r} is {size} bytes (limit {max_bytes})"
            )
        return cls(
            name=name,
            type=_optional_str(data, "type"),
            url=_optional_str(data, "url"),
            size=size,
        )


@dataclass
class Task:
    """One card on the board."""

    id: str                        # Server-assigned (e.g., task-1718000000000-1a2b3c4d)
    title: str
    description: str = ""
    priority: Priority = Priority.MEDIUM
    category: Category = Category.FEATURE
    attachments: List[Attachment] = field(default_factory=list)

    def copy(self) -> "Task":
        return Task(
            id=self.id,
            title=self.title,
            description=self.description,
            priority=self.priority,
            category=self.category,
            attachments=list(self.attachments),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority.value,
            "category": self.category.value,
            "attachments": [a.to_dict() for a in self.attachments],
        }

    @classmethod
    def from_payload(
        cls,
        data: Dict[str, Any],
        task_id: str,
        max_attachment_bytes: Optional[int] = None,
    ) -> "Task":
        """
        Build a validated task from a client payload.

        Missing optional fields take their defaults (Medium, Feature, no
        attachments). Raises InvalidPayload on any malformed field.
        """
        if not isinstance(data, dict):
            raise InvalidPayload("task payload must be an object")

        title = data.get("title")
        if not isinstance(title, str) or not title.strip():
            raise InvalidPayload("title is required")

        attachments = data.get("attachments")
        if attachments is None:
            attachments = []
        if not isinstance(attachments, list):
            raise InvalidPayload("attachments must be a list")

        return cls(
            id=task_id,
            title=title,
            description=_optional_str(data, "description"),
            priority=Priority.parse(data.get("priority")),
            category=Category.parse(data.get("category")),
            attachments=[
                Attachment.from_dict(a, max_bytes=max_attachment_bytes)
                for a in attachments
            ],
        )
