# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Tests for the external editor round-trip."""

import contextlib
import subprocess
from datetime import date
from unittest.mock import patch

import pytest

from notionboard.editor import (
    PLACEHOLDER,
    EditorPhase,
    EditorSession,
    EditorSpawnError,
    MalformedEditError,
    Outcome,
    extract_body,
    is_unchanged,
    render_edit_file,
    slugify_title,
)
from notionboard.notion import FetchError, UpdateError


class FakeClient:
    """Records calls instead of talking to Notion."""

    def __init__(self, body="Original body", fetch_error=None, update_error=None):
        self.body = body
        self.fetch_error = fetch_error
        self.update_error = update_error
        self.updates = []

    def fetch_body(self, page_id):
        if self.fetch_error:
            raise self.fetch_error
        return self.body

    def update_body(self, page_id, content):
        self.updates.append((page_id, content))
        if self.update_error:
            raise self.update_error


class RecordingSuspend:
    """Stand-in for App.suspend that tracks enter/exit."""

    def __init__(self):
        self.entered = 0
        self.exited = 0

    @contextlib.contextmanager
    def __call__(self):
        self.entered += 1
        try:
            yield
        finally:
            self.exited += 1


def editor_writes(text, returncode=0):
    """Fake subprocess.run that replaces the file content."""

    def fake_run(argv):
        if text is not None:
            with open(argv[-1], "w") as f:
                f.write(text)
        return subprocess.CompletedProcess(argv, returncode)

    return fake_run


@pytest.fixture
def session_for(tmp_path, make_task):
    def factory(client, **task_kwargs):
        task = make_task("abc-123", title="Fix: login / bug!!", status="To Do", **task_kwargs)
        return EditorSession(
            task,
            client,
            ["vi"],
            backup_dir=tmp_path,
            temp_dir=tmp_path,
        )

    return factory


def run_session(session, fake_run):
    session.prepare()
    with patch("notionboard.editor.subprocess.run", side_effect=fake_run):
        exit_code = session.run(contextlib.nullcontext)
    return session.reconcile(exit_code)


# Tests for the file format


def test_render_edit_file(make_task):
    task = make_task(
        title="Fix login",
        status="To Do",
        priority="High",
        assignee="Dana",
        due_date=date(2026, 10, 20),
    )
    assert render_edit_file(task, "Body") == (
        "# Fix login\n\n"
        "Status: To Do\n"
        "Priority: High\n"
        "Assignee: Dana\n"
        "Due Date: 2026-10-20\n\n"
        "---\n\n"
        "Body"
    )


def test_render_edit_file_placeholder(make_task):
    assert render_edit_file(make_task(), "").endswith(f"---\n\n{PLACEHOLDER}")


def test_extract_body_strips_surrounding_blank_lines():
    text = "# Title\n\nStatus: x\n\n  ---  \n\n\nLine one\n\nLine two\n\n"
    assert extract_body(text) == "Line one\n\nLine two"


def test_extract_body_uses_first_separator():
    assert extract_body("head\n---\nbody\n---\nmore") == "body\n---\nmore"


def test_extract_body_missing_separator():
    with pytest.raises(MalformedEditError):
        extract_body("# Title\n\nno separator here")


def test_is_unchanged():
    assert is_unchanged("Body", "Body\n")
    assert is_unchanged(PLACEHOLDER, "")
    assert not is_unchanged(PLACEHOLDER, "Body")
    assert not is_unchanged("Body!", "Body")


def test_slugify_title():
    assert slugify_title("Fix: login / bug!!") == "Fix-login-bug"
    assert len(slugify_title("a" * 50)) == 30


# Tests for EditorSession


def test_prepare_writes_file(session_for):
    session = session_for(FakeClient())
    path = session.prepare()
    assert path.name == "notion-task-abc123.md"
    assert "---\n\nOriginal body" in path.read_text()
    assert session.phase is EditorPhase.PREPARING


def test_prepare_fetch_failure_writes_nothing(session_for, tmp_path):
    session = session_for(FakeClient(fetch_error=FetchError("boom")))
    with pytest.raises(FetchError):
        session.prepare()
    assert session.phase is EditorPhase.IDLE
    assert not list(tmp_path.glob("notion-task-*"))


def test_untouched_edit_is_unchanged(session_for, tmp_path):
    client = FakeClient()
    result = run_session(session_for(client), editor_writes(None))
    assert result.outcome is Outcome.UNCHANGED
    assert result.message == "No changes detected in edited content"
    assert client.updates == []
    assert not list(tmp_path.glob("notion-task-*"))


def test_untouched_placeholder_is_unchanged(session_for):
    client = FakeClient(body="")
    result = run_session(session_for(client), editor_writes(None))
    assert result.outcome is Outcome.UNCHANGED
    assert client.updates == []


def test_changed_edit_updates_once_and_backs_up(session_for, tmp_path):
    client = FakeClient()
    session = session_for(client)
    result = run_session(session, editor_writes("# x\n\n---\n\nNew body\n"))
    assert result.outcome is Outcome.SAVED
    assert client.updates == [("abc-123", "New body")]
    assert result.path.parent == tmp_path
    assert result.path.name.startswith("notion-backup-Fix-login-bug-")
    assert "## Updated Content:\nNew body" in result.path.read_text()
    assert result.message.startswith("✓ Content updated in Notion! Backup saved: ")
    assert session.phase is EditorPhase.IDLE
    assert not session.path.exists()


def test_reconcile_is_deterministic(session_for):
    outcomes = []
    for _ in range(2):
        client = FakeClient()
        outcomes.append(run_session(session_for(client), editor_writes("---\nSame edit")).outcome)
    assert outcomes == [Outcome.SAVED, Outcome.SAVED]


def test_nonzero_exit_is_aborted(session_for):
    client = FakeClient()
    result = run_session(session_for(client), editor_writes("---\nchanged", returncode=1))
    assert result.outcome is Outcome.ABORTED
    assert result.message == "Editor closed without saving"
    assert client.updates == []


def test_missing_separator_is_malformed(session_for):
    client = FakeClient()
    result = run_session(session_for(client), editor_writes("all the header is gone"))
    assert result.outcome is Outcome.MALFORMED
    assert "missing --- separator" in result.message
    assert client.updates == []


def test_update_failure_writes_record(session_for, tmp_path):
    client = FakeClient(update_error=UpdateError("HTTP 500: oops"))
    result = run_session(session_for(client), editor_writes("---\nKeep me"))
    assert result.outcome is Outcome.FAILED
    assert len(client.updates) == 1
    assert result.path.name.startswith("notion-edit-failed-Fix-login-bug-")
    text = result.path.read_text()
    assert "Error: HTTP 500: oops" in text
    assert "## Edited Content:\nKeep me" in text
    assert result.message.startswith("⚠ Notion sync failed: HTTP 500: oops. Saved locally: ")


def test_spawn_failure_exits_suspend(session_for):
    session = session_for(FakeClient())
    session.prepare()
    suspend = RecordingSuspend()
    with patch("notionboard.editor.subprocess.run", side_effect=FileNotFoundError("vi")):
        with pytest.raises(EditorSpawnError):
            session.run(suspend)
    assert suspend.entered == 1
    assert suspend.exited == 1
    assert session.phase is EditorPhase.IDLE
    assert not session.path.exists()


def test_suspend_failure_removes_file(session_for):
    """A surface that refuses to suspend still leaves no temp file behind."""
    session = session_for(FakeClient())
    session.prepare()

    def refuse():
        raise RuntimeError("cannot suspend")

    with pytest.raises(RuntimeError):
        session.run(refuse)
    assert session.phase is EditorPhase.IDLE
    assert not session.path.exists()


def test_run_passes_file_to_editor(session_for):
    session = session_for(FakeClient())
    path = session.prepare()
    with patch(
        "notionboard.editor.subprocess.run",
        return_value=subprocess.CompletedProcess([], 0),
    ) as mock_run:
        assert session.run(contextlib.nullcontext) == 0
    mock_run.assert_called_once_with(["vi", str(path)])
    assert session.phase is EditorPhase.RECONCILING


@pytest.mark.parametrize(
    "text",
    [
        "# T\n\nStatus: x\n\n---\n\nHello",
        "# T\n\nStatus: x\n---\nHello\n",
        "# T\n\nStatus: x\n\n\n---\n\n\n\nHello\n\n\n",
    ],
)
def test_extract_body_blank_lines_around_separator(text):
    assert extract_body(text) == "Hello"
