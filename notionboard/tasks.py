# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Tasks, grouping by status, and search filtering."""

from dataclasses import dataclass, field
from datetime import date, datetime

NO_STATUS = "No Status"

# Property values as they come out of Notion: text, numbers, flags, or nothing
Scalar = str | int | float | bool | None


@dataclass(frozen=True)
class Task:
    """A task loaded from the Notion database."""

    id: str
    title: str
    status: str = NO_STATUS
    priority: str | None = None
    assignee: str | None = None
    due_date: date | None = None
    created_time: datetime | None = None
    last_edited_time: datetime | None = None
    properties: dict[str, Scalar] = field(default_factory=dict)
    url: str = ""


# Status label -> tasks in fetch order
GroupedView = dict[str, list[Task]]


def group_by_status(tasks: list[Task]) -> GroupedView:
    """Group tasks by status label, keeping first-seen status order."""
    grouped: GroupedView = {}
    for task in tasks:
        status = task.status.strip() if task.status else ""
        grouped.setdefault(status or NO_STATUS, []).append(task)
    return grouped


def count_tasks(view: GroupedView) -> int:
    """Total number of tasks across all status groups."""
    return sum(len(tasks) for tasks in view.values())


class TaskIndex:
    """Source of truth for the loaded task set.

    Every load replaces the previous view wholesale; nothing is merged.
    """

    def __init__(self) -> None:
        self._view: GroupedView = {}

    @property
    def view(self) -> GroupedView:
        return self._view

    @property
    def statuses(self) -> list[str]:
        return list(self._view)

    def load(self, tasks: list[Task]) -> GroupedView:
        """Replace the canonical view with the given tasks."""
        self._view = group_by_status(tasks)
        return self._view

    def __len__(self) -> int:
        return count_tasks(self._view)


def _searchable_values(task: Task) -> list[str]:
    values = [task.title, task.assignee, task.priority]
    values.extend(str(v) for v in task.properties.values() if v is not None)
    return [v for v in values if v]


def matches(task: Task, query: str) -> bool:
    """Case-insensitive substring match over title, assignee, priority and properties."""
    needle = query.strip().lower()
    return any(needle in value.lower() for value in _searchable_values(task))


def filter_view(canonical: GroupedView, query: str | None) -> GroupedView | None:
    """Derive a filtered view for a query.

    Returns None for a blank query, meaning no filter is active. Status groups
    with no matches are left out entirely.
    """
    if query is None or not query.strip():
        return None
    filtered: GroupedView = {}
    for status, tasks in canonical.items():
        hits = [task for task in tasks if matches(task, query)]
        if hits:
            filtered[status] = hits
    return filtered
