# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Board layout: column widths in grid units and text budgets.

The board is a fixed 12-unit grid. Columns get a uniform width picked from the
number of statuses, and the last visible column absorbs whatever is left so a
row always fills the grid exactly.
"""

from dataclasses import dataclass

GRID_WIDTH = 12

# Rough terminal cells per grid unit, and border/padding per column
CELLS_PER_UNIT = 13
CELL_MARGIN = 2

# "[H] " badge in front of a title
PRIORITY_PREFIX = 4
PRIORITY_MIN_UNITS = 2


@dataclass(frozen=True)
class Layout:
    """Column sizing for a given number of statuses."""

    column_width: int
    max_visible_columns: int


def column_width(status_count: int, grid_width: int = GRID_WIDTH) -> int:
    """Pick the uniform column width for a status count."""
    if status_count <= 3:
        return 4
    if status_count <= 4:
        return 3
    if status_count <= 6:
        return 2
    return max(2, grid_width // min(status_count, 8))


def compute_layout(status_count: int, grid_width: int = GRID_WIDTH) -> Layout:
    """Compute column width and how many columns fit on the grid."""
    width = column_width(status_count, grid_width)
    return Layout(column_width=width, max_visible_columns=grid_width // width)


def visible_widths(layout: Layout, visible_count: int, grid_width: int = GRID_WIDTH) -> list[int]:
    """Widths for each visible column; the last one takes the remainder."""
    if visible_count <= 0:
        return []
    widths = [layout.column_width] * (visible_count - 1)
    widths.append(grid_width - layout.column_width * (visible_count - 1))
    return widths


def char_budget(width_units: int) -> int:
    """Approximate number of characters a column of this width can show."""
    return width_units * CELLS_PER_UNIT - CELL_MARGIN


def shows_priority(width_units: int, priority: str | None) -> bool:
    """Whether a priority badge fits in front of titles in this column."""
    return width_units >= PRIORITY_MIN_UNITS and bool(priority)


def truncate_title(title: str, width_units: int, priority: str | None = None) -> str:
    """Hard-cut a title to fit its column, leaving room for the priority badge."""
    budget = char_budget(width_units)
    if shows_priority(width_units, priority):
        budget -= PRIORITY_PREFIX
    if budget > 0 and len(title) > budget:
        return title[:budget]
    return title
