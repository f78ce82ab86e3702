# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Board state, navigation, and column rendering.

BoardState is the single owner of everything the board shows: the task index,
the search query and its filtered view, the selection, and the horizontal
column offset. The functions here take the state and update it in place;
rendering reads it and returns plain column descriptions for the surface.
"""

from dataclasses import dataclass, field
from enum import Enum

from rich.text import Text

from notionboard.detail import priority_style
from notionboard.layout import (
    Layout,
    compute_layout,
    shows_priority,
    truncate_title,
    visible_widths,
)
from notionboard.tasks import GroupedView, Task, TaskIndex, filter_view


class Mode(Enum):
    """Which part of the UI currently receives input."""

    BOARD = "board"
    DETAIL = "detail"
    SEARCH = "search"
    EDITOR = "editor"


@dataclass
class Selection:
    """Selected status column and row within it."""

    status: str | None = None
    row: int = 0


@dataclass
class BoardState:
    index: TaskIndex = field(default_factory=TaskIndex)
    query: str | None = None
    filtered: GroupedView | None = None
    selection: Selection = field(default_factory=Selection)
    column_offset: int = 0
    mode: Mode = Mode.BOARD

    @property
    def active_view(self) -> GroupedView:
        """The filtered view while a query is active, else the canonical one."""
        if self.filtered is not None:
            return self.filtered
        return self.index.view

    @property
    def statuses(self) -> list[str]:
        return list(self.active_view)

    @property
    def layout(self) -> Layout:
        return compute_layout(len(self.active_view))

    @property
    def filter_active(self) -> bool:
        return self.query is not None


def selected_task(state: BoardState) -> Task | None:
    """The task under the selection, if the selection is valid."""
    status = state.selection.status
    if status is None:
        return None
    tasks = state.active_view.get(status)
    if not tasks or not 0 <= state.selection.row < len(tasks):
        return None
    return tasks[state.selection.row]


def max_column_offset(state: BoardState) -> int:
    return max(0, len(state.active_view) - state.layout.max_visible_columns)


def _clamp_offset(state: BoardState) -> None:
    state.column_offset = max(0, min(state.column_offset, max_column_offset(state)))


def _scroll_to(state: BoardState, index: int) -> None:
    visible = state.layout.max_visible_columns
    if index < state.column_offset:
        state.column_offset = index
    elif index >= state.column_offset + visible:
        state.column_offset = index - visible + 1
    _clamp_offset(state)


def revalidate_selection(state: BoardState) -> None:
    """Make the selection valid for the active view.

    A selection that no longer points at a task resets to the first status at
    row 0. An empty view leaves no selection.
    """
    view = state.active_view
    if not view:
        state.selection = Selection()
        state.column_offset = 0
        return
    status = state.selection.status
    if status not in view or not 0 <= state.selection.row < len(view[status]):
        state.selection = Selection(status=next(iter(view)), row=0)
    _clamp_offset(state)
    _scroll_to(state, state.statuses.index(state.selection.status))


def load_tasks(state: BoardState, tasks: list[Task]) -> GroupedView:
    """Replace the task set, re-derive any active filter, and fix up the selection."""
    view = state.index.load(tasks)
    if state.query is not None:
        state.filtered = filter_view(view, state.query)
    revalidate_selection(state)
    return view


def move_column(state: BoardState, delta: int) -> bool:
    """Move the selection to a neighbouring column. Returns True if it moved."""
    statuses = state.statuses
    if not statuses:
        return False
    current = statuses.index(state.selection.status) if state.selection.status in statuses else 0
    target = max(0, min(len(statuses) - 1, current + delta))
    changed = statuses[target] != state.selection.status
    if changed:
        state.selection = Selection(status=statuses[target], row=0)
    _scroll_to(state, target)
    return changed


def move_row(state: BoardState, delta: int) -> bool:
    """Move the selection within the current column. Returns True if it moved."""
    status = state.selection.status
    tasks = state.active_view.get(status) if status is not None else None
    if not tasks:
        return False
    row = max(0, min(len(tasks) - 1, state.selection.row + delta))
    changed = row != state.selection.row
    state.selection.row = row
    return changed


def apply_query(state: BoardState, query: str | None) -> None:
    """Filter the board by a query; a blank query clears the filter."""
    filtered = filter_view(state.index.view, query)
    if filtered is None:
        clear_query(state)
        return
    state.query = query.strip()
    state.filtered = filtered
    revalidate_selection(state)


def clear_query(state: BoardState) -> None:
    """Drop the filter and return to the canonical view."""
    state.query = None
    state.filtered = None
    revalidate_selection(state)


@dataclass
class ColumnView:
    """Everything needed to draw one status column."""

    status: str
    label: str
    width: int  # grid units
    items: list[Text]
    selected: bool
    highlighted: int | None


def format_task_line(task: Task, width: int) -> Text:
    """A task title cut to the column, with a priority badge when it fits."""
    line = Text()
    if shows_priority(width, task.priority):
        line.append(f"[{task.priority[0].upper()}]", style=priority_style(task.priority))
        line.append(" ")
    line.append(truncate_title(task.title, width, task.priority))
    return line


def visible_statuses(state: BoardState) -> list[str]:
    start = state.column_offset
    return state.statuses[start : start + state.layout.max_visible_columns]


def build_columns(state: BoardState) -> list[ColumnView]:
    """Describe the visible columns for the current state."""
    statuses = visible_statuses(state)
    widths = visible_widths(state.layout, len(statuses))
    columns = []
    for status, width in zip(statuses, widths):
        tasks = state.active_view[status]
        selected = status == state.selection.status
        columns.append(
            ColumnView(
                status=status,
                label=f"{status} ({len(tasks)})",
                width=width,
                items=[format_task_line(task, width) for task in tasks],
                selected=selected,
                highlighted=state.selection.row if selected and tasks else None,
            )
        )
    return columns


def scroll_indicator(state: BoardState) -> str | None:
    """Status text for horizontal scrolling, or None when everything fits."""
    total = len(state.active_view)
    visible = state.layout.max_visible_columns
    if total <= visible:
        return None
    start = state.column_offset
    end = min(start + visible, total)
    left = "← " if start > 0 else "  "
    right = " →" if end < total else "  "
    return f"{left}Showing columns {start + 1}-{end} of {total}{right}"
