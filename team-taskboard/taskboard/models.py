from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from taskboard.errors import ValidationFailure


PRIORITIES = ("low", "medium", "high")
STATUSES = ("pending", "in-progress", "completed")
ALL = "all"

PRIORITY_LABELS = {"low": "Low", "medium": "Medium", "high": "High"}
STATUS_LABELS = {"pending": "Pending", "in-progress": "In Progress", "completed": "Completed"}

TITLE_MAX_LENGTH = 512
NAME_MAX_LENGTH = 128


def _parse_ts(raw: Any) -> Optional[datetime]:
    if raw is None or isinstance(raw, datetime):
        return raw
    try:
        return datetime.fromisoformat(str(raw).rstrip("Z"))
    except ValueError:
        return None


@dataclass(frozen=True)
class Task:
    id: str
    title: str
    created_by: str
    assigned_to: str
    priority: str
    status: str
    created_at: Optional[datetime] = None
    description: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        return cls(
            id=str(data["id"]),
            title=data.get("title") or "",
            created_by=data.get("created_by") or "",
            assigned_to=data.get("assigned_to") or "",
            priority=data.get("priority") or "medium",
            status=data.get("status") or "pending",
            created_at=_parse_ts(data.get("created_at")),
            description=data.get("description") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["created_at"] = self.created_at.isoformat() + "Z" if self.created_at else None
        return d


@dataclass(frozen=True)
class TaskCandidate:
    """A task that has not been sent to the backend yet (no id, no created_at)."""

    title: str
    created_by: str
    assigned_to: str
    priority: str = "medium"
    status: str = "pending"
    description: str = ""

    def validate(self) -> "TaskCandidate":
        """Return a whitespace-normalised copy or raise ValidationFailure."""
        cleaned = TaskCandidate(
            title=(self.title or "").strip(),
            created_by=(self.created_by or "").strip(),
            assigned_to=(self.assigned_to or "").strip(),
            priority=(self.priority or "").strip().lower(),
            status=(self.status or "").strip().lower(),
            description=(self.description or "").strip(),
        )
        errors: Dict[str, str] = {}
        if not cleaned.title:
            errors["title"] = "Title is required"
        elif len(cleaned.title) > TITLE_MAX_LENGTH:
            errors["title"] = f"Title must be at most {TITLE_MAX_LENGTH} characters"
        for name in ("created_by", "assigned_to"):
            value = getattr(cleaned, name)
            if not value:
                errors[name] = "This field is required"
            elif len(value) > NAME_MAX_LENGTH:
                errors[name] = f"Must be at most {NAME_MAX_LENGTH} characters"
        if cleaned.priority not in PRIORITIES:
            errors["priority"] = f"Priority must be one of: {', '.join(PRIORITIES)}"
        if cleaned.status not in STATUSES:
            errors["status"] = f"Status must be one of: {', '.join(STATUSES)}"
        if errors:
            raise ValidationFailure(errors)
        return cleaned

    def to_values(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Session:
    """Backend-issued session as seen by the UI."""

    access_token: str
    user_id: str
    email: str
    username: str = ""
    email_confirmed_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def is_confirmed(self) -> bool:
        return self.email_confirmed_at is not None

    @property
    def display_name(self) -> str:
        return self.username or self.email
