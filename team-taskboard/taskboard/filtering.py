"""Search and categorical filters for the task list.

Everything here is a pure function of its inputs so the task page can call
it on every keystroke.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

from taskboard.models import ALL, STATUSES, Task


SEARCH_FIELDS = ("title", "created_by", "assigned_to")


def _field_contains(task: Task, name: str, needle: str) -> bool:
    value = getattr(task, name, None)
    if not isinstance(value, str) or not value:
        return False
    return needle in value.lower()


def matches_search(task: Task, search: Optional[str]) -> bool:
    if not search:
        return True
    needle = search.lower()
    return any(_field_contains(task, name, needle) for name in SEARCH_FIELDS)


def matches_selector(value: Optional[str], selector: Optional[str]) -> bool:
    if not selector or selector == ALL:
        return True
    return value == selector


def filter_tasks(
    tasks: Iterable[Task],
    search: Optional[str] = "",
    priority: Optional[str] = ALL,
    status: Optional[str] = ALL,
) -> List[Task]:
    """Return the tasks matching all three criteria, in input order.

    ``search`` is a case-insensitive substring match against title, creator
    and assignee. ``priority`` and ``status`` are either ``"all"`` or an exact
    value. The input is never modified.
    """
    return [
        t
        for t in tasks
        if matches_search(t, search)
        and matches_selector(getattr(t, "priority", None), priority)
        and matches_selector(getattr(t, "status", None), status)
    ]


def status_counts(tasks: Sequence[Task]) -> Dict[str, int]:
    """Count tasks per status, always including every known status."""
    counts = {s: 0 for s in STATUSES}
    for t in tasks:
        if t.status in counts:
            counts[t.status] += 1
    return counts
