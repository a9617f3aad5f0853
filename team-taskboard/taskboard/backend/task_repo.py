"""Task table access.

Functions take the database URL explicitly, like the other repo modules, and
let SQLAlchemy errors propagate; :class:`taskboard.backend.client.BackendClient`
turns them into ``BackendRequestFailure``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import select

from taskboard.backend.db import get_sessionmaker
from taskboard.backend.models import TaskRecord


WRITABLE_FIELDS = ("title", "description", "created_by", "assigned_to", "priority", "status")


def list_tasks(database_url: str) -> List[Dict[str, Any]]:
    sm = get_sessionmaker(database_url)
    with sm() as s:
        rows = s.execute(
            select(TaskRecord).order_by(TaskRecord.created_at.desc(), TaskRecord.id)
        ).scalars().all()
        return [r.to_dict() for r in rows]


def insert_task(database_url: str, values: Dict[str, Any]) -> Dict[str, Any]:
    """Insert one task; ``id`` and ``created_at`` are always assigned here."""
    sm = get_sessionmaker(database_url)
    with sm() as s:
        r = TaskRecord(**{k: values[k] for k in WRITABLE_FIELDS if k in values})
        s.add(r)
        s.commit()
        return r.to_dict()


def update_task(database_url: str, task_id: str, values: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Apply a partial update. Returns None when the task does not exist."""
    sm = get_sessionmaker(database_url)
    with sm() as s:
        r = s.get(TaskRecord, task_id)
        if r is None:
            return None
        for k in WRITABLE_FIELDS:
            if k in values:
                setattr(r, k, values[k])
        s.commit()
        return r.to_dict()


def delete_task(database_url: str, task_id: str) -> bool:
    sm = get_sessionmaker(database_url)
    with sm() as s:
        r = s.get(TaskRecord, task_id)
        if r is None:
            return False
        s.delete(r)
        s.commit()
        return True
