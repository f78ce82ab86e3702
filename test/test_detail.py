# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Tests for task detail rendering."""

from datetime import date, datetime, timezone

import pytest

from notionboard.detail import (
    DETAIL_HINT,
    PAGE_STEP,
    STYLE_ALERT,
    STYLE_INFO,
    STYLE_NEUTRAL,
    STYLE_OK,
    STYLE_URGENT,
    STYLE_WARN,
    DetailScroll,
    build_detail,
    describe_due_date,
    priority_style,
    resolve_alias,
)

TODAY = date(2026, 10, 19)


@pytest.mark.parametrize(
    "due,text,style",
    [
        (date(2026, 10, 16), "(3d overdue)", STYLE_ALERT),
        (date(2026, 10, 18), "(1d overdue)", STYLE_ALERT),
        (date(2026, 10, 19), "(Today)", STYLE_WARN),
        (date(2026, 10, 20), "(Tomorrow)", STYLE_WARN),
        (date(2026, 10, 24), "(5d)", STYLE_INFO),
        (date(2026, 10, 26), "(7d)", STYLE_INFO),
        (date(2026, 10, 29), "(Oct 29)", STYLE_NEUTRAL),
    ],
)
def test_describe_due_date_bands(due, text, style):
    info = describe_due_date(due, TODAY)
    assert info.text == text
    assert info.style == style


@pytest.mark.parametrize(
    "priority,style",
    [
        ("High", STYLE_URGENT),
        ("Urgent", STYLE_URGENT),
        ("Medium", STYLE_WARN),
        ("low", STYLE_OK),
        ("Someday", STYLE_NEUTRAL),
        (None, STYLE_NEUTRAL),
    ],
)
def test_priority_style(priority, style):
    assert priority_style(priority) == style


def test_resolve_alias_first_present_wins():
    properties = {"Bug type": "", "Type": "Crash", "Bug Type": None}
    assert resolve_alias(properties, ("Bug Type", "Bug type", "Type")) == "Crash"


def test_resolve_alias_missing():
    assert resolve_alias({}, ("Hours",)) is None


def test_build_detail_core_fields(make_task):
    task = make_task(
        title="Fix login",
        status="To Do",
        priority="High",
        assignee="Dana",
        due_date=date(2026, 10, 20),
        created_time=datetime(2026, 1, 5, 14, 30, tzinfo=timezone.utc),
    )
    plain = build_detail(task, None, TODAY).plain
    assert plain.startswith("=== Task Details ===")
    assert "Title: Fix login" in plain
    assert "Status: To Do" in plain
    assert "Priority: High" in plain
    assert "Assignee: Dana" in plain
    assert "Due Date: 2026-10-20 (Tomorrow)" in plain
    assert "Created: " in plain
    assert "=== Content ===" not in plain
    assert plain.endswith(DETAIL_HINT)


def test_build_detail_aliases_and_extra_properties(make_task):
    task = make_task(
        properties={
            "Name": "A task",
            "Type": "UI",
            "Estimated Hours": 4,
            "Sprint": "12",
            "Empty": "",
        }
    )
    plain = build_detail(task, None, TODAY).plain
    assert "Bug Type: UI" in plain
    assert "Hours: 4" in plain
    assert "=== Properties ===" in plain
    assert "Sprint: 12" in plain
    assert "Empty" not in plain
    # Aliased and core properties aren't repeated under Properties
    assert "Name: A task" not in plain
    assert "Type: UI" not in plain.split("=== Properties ===")[1]


def test_build_detail_no_properties_heading_without_extras(make_task):
    plain = build_detail(make_task(properties={"Status": "To Do"}), None, TODAY).plain
    assert "=== Properties ===" not in plain


def test_build_detail_content(make_task):
    plain = build_detail(make_task(), "First line\nSecond line", TODAY).plain
    assert "=== Content ===" in plain
    assert "First line\nSecond line" in plain


def test_detail_scroll_clamps():
    scroll = DetailScroll()
    scroll.set_limit(15)
    assert scroll.line(-1) == 0
    assert scroll.line(1) == 1
    assert scroll.page(1) == 1 + PAGE_STEP
    assert scroll.page(1) == 15
    assert scroll.page(-1) == 5
    assert scroll.page(-1) == 0


def test_detail_scroll_limit_shrinks_offset():
    scroll = DetailScroll(offset=20, limit=30)
    scroll.set_limit(8)
    assert scroll.offset == 8
    scroll.set_limit(-3)
    assert scroll.limit == 0
    assert scroll.offset == 0
