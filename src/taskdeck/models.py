from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

PRIORITY_RANK = {"high": 3, "medium": 2, "low": 1}
DEFAULT_PRIORITY = "medium"


class FilterMode(str, Enum):
    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"
    OVERDUE = "overdue"


@dataclass(frozen=True, slots=True)
class Task:
    id: int
    name: str
    priority: str = DEFAULT_PRIORITY
    completed: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    due_date: date | None = None
    category: str | None = None
    description: str | None = None
    estimated_time: int | None = None

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("name must not be empty")
        if self.priority not in PRIORITY_RANK:
            raise ValueError(f"unknown priority: {self.priority!r}")

    @property
    def rank(self) -> int:
        return PRIORITY_RANK[self.priority]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "priority": self.priority,
            "completed": self.completed,
            "createdAt": self.created_at.isoformat(),
            "dueDate": self.due_date.isoformat() if self.due_date else None,
            "category": self.category,
            "description": self.description,
            "estimatedTime": self.estimated_time,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Task":
        due = raw.get("dueDate")
        completed = raw.get("completed", False)
        if not isinstance(completed, bool):
            raise ValueError(f"completed must be a boolean, got {completed!r}")
        estimated = raw.get("estimatedTime")
        if estimated is not None and _parse_minutes(estimated) != estimated:
            raise ValueError(f"estimatedTime must be a positive integer, got {estimated!r}")
        return cls(
            id=int(raw["id"]),
            name=str(raw["name"]),
            priority=str(raw.get("priority", DEFAULT_PRIORITY)),
            completed=completed,
            created_at=datetime.fromisoformat(str(raw["createdAt"])),
            due_date=date.fromisoformat(str(due)[:10]) if due else None,
            category=str(raw["category"]) if raw.get("category") else None,
            description=str(raw["description"]) if raw.get("description") else None,
            estimated_time=estimated,
        )


@dataclass(slots=True)
class TaskDraft:
    """Field values as a task form delivers them.

    Any field may be raw text (``"2024-05-01"``, ``"45"``, ``""``) or an
    already typed value; :func:`normalize_draft` turns it into task fields.
    """

    name: str
    priority: str = DEFAULT_PRIORITY
    due_date: date | datetime | str | None = None
    category: str | None = None
    description: str | None = None
    estimated_time: int | str | None = None


@dataclass(slots=True)
class Snapshot:
    tasks: list[Task] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)

    @classmethod
    def empty(cls) -> "Snapshot":
        return cls()


def normalize_draft(draft: TaskDraft) -> dict[str, Any] | None:
    """Return the mutable task fields for ``draft``, or None if the name is blank.

    Optional fields are validated one by one; an unusable value becomes None
    instead of rejecting the whole draft.
    """
    name = (draft.name or "").strip()
    if not name:
        return None
    return {
        "name": name,
        "priority": _parse_priority(draft.priority),
        "due_date": _parse_due_date(draft.due_date),
        "category": _blank_to_none(draft.category),
        "description": _blank_to_none(draft.description),
        "estimated_time": _parse_minutes(draft.estimated_time),
    }


def draft_from_task(task: Task) -> TaskDraft:
    """Prefill values for editing ``task`` in a form."""
    return TaskDraft(
        name=task.name,
        priority=task.priority,
        due_date=task.due_date.isoformat() if task.due_date else "",
        category=task.category or "",
        description=task.description or "",
        estimated_time=str(task.estimated_time) if task.estimated_time else "",
    )


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _parse_priority(value: str | None) -> str:
    key = (value or "").strip().lower()
    return key if key in PRIORITY_RANK else DEFAULT_PRIORITY


def _parse_due_date(value: date | datetime | str | None) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def _parse_minutes(value: int | str | None) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        minutes = value
    elif isinstance(value, str):
        try:
            minutes = int(value.strip())
        except ValueError:
            return None
    else:
        return None
    return minutes if minutes > 0 else None
