# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Task detail rendering: field sections, colour bands, and scrolling."""

from dataclasses import dataclass
from datetime import date, datetime

from rich.text import Text

from notionboard.tasks import Task

# Severity bands shared by priority and due-date colouring
STYLE_URGENT = "bright_red"
STYLE_ALERT = "bright_red"
STYLE_WARN = "bright_yellow"
STYLE_OK = "bright_green"
STYLE_INFO = "bright_cyan"
STYLE_NEUTRAL = "white"

LABEL_STYLE = "cyan"
HEADING_STYLE = "bold yellow"
HINT_STYLE = "bright_black"

# Optional fields shown after the core ones; first alias present wins
FIELD_ALIASES: list[tuple[str, tuple[str, ...]]] = [
    ("Bug Type", ("Bug Type", "Bug type", "Type")),
    ("Hours", ("Hours", "# Hours", "Estimated Hours")),
    ("Reference", ("Reference", "Ref", "Link")),
    ("Description", ("Description", "Summary")),
    ("Screenshot", ("Screenshot", "Screenshot URL", "Image")),
]

# Aliases of the core fields, which have dedicated sections
CORE_ALIASES: tuple[str, ...] = (
    "Status",
    "Title",
    "Name",
    "Task",
    "Priority",
    "Assignee",
    "Person",
    "Due Date",
    "Due",
    "Date",
)

EXCLUDED_PROPERTIES: frozenset[str] = frozenset(
    CORE_ALIASES + tuple(alias for _, aliases in FIELD_ALIASES for alias in aliases)
)

DETAIL_HINT = "Press Esc to close, Ctrl+O to open in browser, Ctrl+E to edit, ↑↓ or j/k to scroll"

LINE_STEP = 1
PAGE_STEP = 10


def priority_style(priority: str | None) -> str:
    """Colour for a priority label."""
    if not priority:
        return STYLE_NEUTRAL
    lowered = priority.lower()
    if "high" in lowered or "urgent" in lowered:
        return STYLE_URGENT
    if "medium" in lowered:
        return STYLE_WARN
    if "low" in lowered:
        return STYLE_OK
    return STYLE_NEUTRAL


@dataclass(frozen=True)
class DueInfo:
    """Relative description and colour band for a due date."""

    text: str
    style: str


def describe_due_date(due: date, today: date | None = None) -> DueInfo:
    """Describe a due date relative to today, in whole calendar days."""
    today = today or date.today()
    days = (due - today).days
    if days < 0:
        return DueInfo(f"({-days}d overdue)", STYLE_ALERT)
    if days == 0:
        return DueInfo("(Today)", STYLE_WARN)
    if days == 1:
        return DueInfo("(Tomorrow)", STYLE_WARN)
    if days <= 7:
        return DueInfo(f"({days}d)", STYLE_INFO)
    return DueInfo(f"({due:%b} {due.day})", STYLE_NEUTRAL)


def format_timestamp(value: datetime) -> str:
    """Format a timestamp like "Jan 5, 2026, 02:30 PM" in local time."""
    local = value.astimezone() if value.tzinfo else value
    return f"{local:%b} {local.day}, {local:%Y, %I:%M %p}"


def _present(value) -> bool:
    return value is not None and value != "" and value is not False


def resolve_alias(properties: dict, aliases: tuple[str, ...]):
    """Return the first non-empty value among the aliases, or None."""
    for key in aliases:
        value = properties.get(key)
        if _present(value):
            return value
    return None


def _field(text: Text, label: str, value, style: str = "") -> None:
    text.append(f"{label}:", style=LABEL_STYLE)
    text.append(" ")
    text.append(str(value), style=style)
    text.append("\n")


def _heading(text: Text, title: str) -> None:
    text.append("\n")
    text.append(f"=== {title} ===", style=HEADING_STYLE)
    text.append("\n\n")


def build_detail(task: Task, body: str | None, today: date | None = None) -> Text:
    """Build the full detail text for a task."""
    text = Text()
    text.append("=== Task Details ===", style=HEADING_STYLE)
    text.append("\n\n")

    _field(text, "Title", task.title)
    _field(text, "Status", task.status)
    if task.created_time:
        _field(text, "Created", format_timestamp(task.created_time))
    if task.last_edited_time:
        _field(text, "Updated", format_timestamp(task.last_edited_time))
    if task.priority:
        _field(text, "Priority", task.priority, priority_style(task.priority))
    if task.assignee:
        _field(text, "Assignee", task.assignee)
    if task.due_date:
        due = describe_due_date(task.due_date, today)
        _field(text, "Due Date", f"{task.due_date.isoformat()} {due.text}", due.style)

    for label, aliases in FIELD_ALIASES:
        value = resolve_alias(task.properties, aliases)
        if value is not None:
            _field(text, label, value)

    extra = [
        (key, value)
        for key, value in task.properties.items()
        if _present(value) and key not in EXCLUDED_PROPERTIES
    ]
    if extra:
        _heading(text, "Properties")
        for key, value in extra:
            _field(text, key, value)

    if body:
        _heading(text, "Content")
        text.append(body)
        text.append("\n")

    text.append("\n")
    text.append(DETAIL_HINT, style=HINT_STYLE)
    return text


@dataclass
class DetailScroll:
    """Vertical scroll position of the detail view, clamped to the content."""

    offset: int = 0
    limit: int = 0

    def set_limit(self, limit: int) -> None:
        self.limit = max(0, limit)
        self.offset = min(self.offset, self.limit)

    def scroll(self, delta: int) -> int:
        self.offset = max(0, min(self.limit, self.offset + delta))
        return self.offset

    def line(self, direction: int) -> int:
        return self.scroll(direction * LINE_STEP)

    def page(self, direction: int) -> int:
        return self.scroll(direction * PAGE_STEP)
