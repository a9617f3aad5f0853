"""Task access, the cached task snapshot and the real-time bridge."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Callable, List, Optional, Sequence, Tuple

from taskboard.backend.client import TASKS_CHANNEL, BackendClient
from taskboard.backend.realtime import ChangeEvent, Subscription
from taskboard.errors import AuthRequiredFailure, BackendRequestFailure, TaskAccessFailure, ValidationFailure
from taskboard.models import STATUSES, Task, TaskCandidate
from taskboard.session import TASKS, AuthState, SessionContext, redirect_for

logger = logging.getLogger(__name__)


class TaskAccessService:
    """The only way pages read or write tasks.

    Every call needs a verified session. Backend errors come out as
    TaskAccessFailure; nothing is changed locally on failure.
    """

    def __init__(self, backend: BackendClient, context: SessionContext):
        self.backend = backend
        self.context = context

    def _authorize(self) -> None:
        self.context.require(AuthState.VERIFIED)

    def list(self) -> List[Task]:
        self._authorize()
        try:
            rows = self.backend.fetch_tasks()
        except BackendRequestFailure as e:
            raise TaskAccessFailure(str(e), code=e.code) from e
        return [Task.from_dict(r) for r in rows]

    def create(self, candidate: TaskCandidate) -> Task:
        self._authorize()
        cleaned = candidate.validate()
        try:
            row = self.backend.insert_task(cleaned.to_values())
        except BackendRequestFailure as e:
            raise TaskAccessFailure(str(e), code=e.code) from e
        return Task.from_dict(row)

    def update_status(self, task_id: str, new_status: str) -> Task:
        self._authorize()
        if new_status not in STATUSES:
            raise ValidationFailure({"status": f"Status must be one of: {', '.join(STATUSES)}"})
        try:
            row = self.backend.update_task(task_id, {"status": new_status})
        except BackendRequestFailure as e:
            raise TaskAccessFailure(str(e), code=e.code) from e
        if row is None:
            raise TaskAccessFailure("Task not found", code="not_found")
        return Task.from_dict(row)

    def delete(self, task_id: str) -> None:
        self._authorize()
        try:
            deleted = self.backend.delete_task(task_id)
        except BackendRequestFailure as e:
            raise TaskAccessFailure(str(e), code=e.code) from e
        if not deleted:
            raise TaskAccessFailure("Task not found", code="not_found")


class TaskCache:
    """Immutable snapshot of the task collection plus a stale flag.

    The snapshot is replaced wholesale on every successful fetch. A failed
    fetch keeps the previous snapshot and leaves the cache stale.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._tasks: Tuple[Task, ...] = ()
        self._stale = True
        self.fetch_count = 0

    @property
    def is_stale(self) -> bool:
        with self._lock:
            return self._stale

    @property
    def snapshot(self) -> Tuple[Task, ...]:
        with self._lock:
            return self._tasks

    def invalidate(self) -> None:
        with self._lock:
            self._stale = True

    def get(self, loader: Callable[[], Sequence[Task]]) -> Tuple[Task, ...]:
        if not self.is_stale:
            return self.snapshot
        # Clear first: an event arriving during the fetch marks it stale again.
        with self._lock:
            self._stale = False
        try:
            fresh = tuple(loader())
        except Exception:
            self.invalidate()
            raise
        with self._lock:
            self._tasks = fresh
            self.fetch_count += 1
            return self._tasks


class RealtimeBridge:
    """Marks a TaskCache stale on any change to the tasks table.

    The feed holds the bridge weakly, so keep a reference for as long as it
    should listen (the task page keeps it in its ViewResources).
    """

    def __init__(self, backend: BackendClient, cache: TaskCache):
        self.backend = backend
        self.cache = cache
        self._sub: Optional[Subscription] = None

    @property
    def active(self) -> bool:
        return self._sub is not None and self._sub.active

    def _on_change(self, event: ChangeEvent) -> None:
        logger.debug("tasks %s %s, invalidating cache", event.kind, event.record_id)
        self.cache.invalidate()

    def start(self) -> "RealtimeBridge":
        if not self.active:
            self._sub = self.backend.subscribe(TASKS_CHANNEL, self._on_change)
            # Writes made while nobody was listening were missed.
            self.cache.invalidate()
        return self

    def stop(self) -> None:
        if self._sub is not None:
            self._sub.unsubscribe()
            self._sub = None

    def __enter__(self) -> "RealtimeBridge":
        return self.start()

    def __exit__(self, *exc) -> None:
        self.stop()


def load_task_view(
    context: SessionContext, service: TaskAccessService, cache: TaskCache
) -> Tuple[Optional[str], Tuple[Task, ...]]:
    """Gate the task view and return ``(redirect, tasks)``.

    When a redirect is due no task data is fetched.
    """
    target = redirect_for(context.state, TASKS)
    if target is not None:
        return target, ()
    try:
        return None, cache.get(service.list)
    except AuthRequiredFailure as e:
        return e.redirect_to, ()
