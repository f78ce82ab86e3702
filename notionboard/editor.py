# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""External editor round-trip for a task's page content.

A session writes the task to a temp file (a short header, a "---" line, then
the body), hands the terminal to the user's editor, and on return compares the
text after the separator with what was fetched. Changed text is pushed to
Notion; a local copy is always written so an edit is never lost.
"""

import contextlib
import logging
import re
import subprocess
import tempfile
import time
from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from notionboard.notion import UpdateError
from notionboard.tasks import Task

logger = logging.getLogger(__name__)

SEPARATOR = "---"
PLACEHOLDER = "(No content available for editing)"
BACKUP_PREFIX = "notion-backup"
FAILED_PREFIX = "notion-edit-failed"
SLUG_MAX = 30


def current_time_ms() -> int:
    """Return current time in milliseconds since epoch."""
    return int(time.time() * 1000)


class MalformedEditError(Exception):
    """The edited file no longer has a separator line."""


class EditorSpawnError(Exception):
    """The editor command could not be started."""


class EditorPhase(Enum):
    IDLE = "idle"
    PREPARING = "preparing"
    SUSPENDED = "suspended"
    RECONCILING = "reconciling"


class Outcome(Enum):
    SAVED = "saved"
    UNCHANGED = "unchanged"
    ABORTED = "aborted"
    MALFORMED = "malformed"
    FAILED = "failed"
    ERROR = "error"


@dataclass
class EditResult:
    """What happened to an edit, with the status line to show."""

    outcome: Outcome
    message: str
    path: Path | None = None


def render_edit_file(task: Task, body: str) -> str:
    """Build the editable text for a task."""
    lines = [f"# {task.title}", "", f"Status: {task.status}"]
    if task.priority:
        lines.append(f"Priority: {task.priority}")
    if task.assignee:
        lines.append(f"Assignee: {task.assignee}")
    if task.due_date:
        lines.append(f"Due Date: {task.due_date.isoformat()}")
    header = "\n".join(lines)
    return f"{header}\n\n{SEPARATOR}\n\n{body or PLACEHOLDER}"


def extract_body(text: str) -> str:
    """Return everything after the first separator line, stripped.

    Raises:
        MalformedEditError: If there is no separator line.
    """
    lines = text.split("\n")
    for i, line in enumerate(lines):
        if line.strip() == SEPARATOR:
            return "\n".join(lines[i + 1 :]).strip()
    raise MalformedEditError("missing --- separator")


def is_unchanged(candidate: str, original: str) -> bool:
    """Whether an edited body is the same as what was fetched."""
    original = original.strip()
    if candidate == original:
        return True
    return not original and candidate == PLACEHOLDER


def slugify_title(title: str) -> str:
    """Filename-safe short form of a title."""
    cleaned = re.sub(r"[^a-zA-Z0-9\s]", "", title)[:SLUG_MAX].strip()
    return re.sub(r"\s+", "-", cleaned)


def local_copy_path(directory: Path, prefix: str, title: str) -> Path:
    """A timestamped, never-reused path for a local copy of an edit."""
    slug = slugify_title(title)
    stamp = current_time_ms()
    path = directory / f"{prefix}-{slug}-{stamp}.md"
    while path.exists():
        stamp += 1
        path = directory / f"{prefix}-{slug}-{stamp}.md"
    return path


def write_backup(directory: Path, task: Task, body: str) -> Path:
    path = local_copy_path(directory, BACKUP_PREFIX, task.title)
    path.write_text(
        f"# {task.title}\n\n"
        f"Task ID: {task.id}\n"
        f"Status: {task.status}\n"
        f"Updated: {datetime.now().astimezone().isoformat()}\n\n"
        f"## Updated Content:\n{body}"
    )
    return path


def write_failure_record(directory: Path, task: Task, body: str, error: str) -> Path:
    path = local_copy_path(directory, FAILED_PREFIX, task.title)
    path.write_text(
        f"# {task.title}\n\n"
        f"Task ID: {task.id}\n"
        f"Status: {task.status}\n"
        f"Error: {error}\n\n"
        f"## Edited Content:\n{body}"
    )
    return path


class EditorSession:
    """One edit of one task, from fetch to cleanup.

    Phases run IDLE -> PREPARING -> SUSPENDED -> RECONCILING -> IDLE. The
    client only needs fetch_body(page_id) and update_body(page_id, text).
    """

    def __init__(
        self,
        task: Task,
        client,
        editor: list[str],
        backup_dir: Path | None = None,
        temp_dir: Path | None = None,
    ) -> None:
        self.task = task
        self.client = client
        self.editor = editor
        self.backup_dir = backup_dir or Path.cwd()
        self.temp_dir = temp_dir or Path(tempfile.gettempdir())
        self.phase = EditorPhase.IDLE
        self.path: Path | None = None
        self.original = ""

    def prepare(self) -> Path:
        """Fetch the current body and write the editable file.

        Raises:
            FetchError: If the body can't be fetched; no file is written.
        """
        self.phase = EditorPhase.PREPARING
        path = self.temp_dir / f"notion-task-{self.task.id.replace('-', '')}.md"
        try:
            self.original = self.client.fetch_body(self.task.id)
            path.write_text(render_edit_file(self.task, self.original))
        except Exception:
            self.phase = EditorPhase.IDLE
            raise
        self.path = path
        logger.debug(f"Wrote edit file {path}")
        return path

    def launch(self) -> int:
        """Run the editor on the file and return its exit code.

        Raises:
            EditorSpawnError: If the editor can't be started.
        """
        try:
            result = subprocess.run([*self.editor, str(self.path)])
        except OSError as exc:
            raise EditorSpawnError(str(exc)) from exc
        return result.returncode

    def run(self, suspend: Callable[[], AbstractContextManager]) -> int:
        """Launch the editor inside the suspend scope.

        The scope is exited on every path, spawn failure included, before the
        exit code or error reaches the caller. Any error here, including a
        surface that can't suspend, removes the temp file before re-raising.
        """
        self.phase = EditorPhase.SUSPENDED
        try:
            with suspend():
                return self.launch()
        except Exception:
            self.cleanup()
            self.phase = EditorPhase.IDLE
            raise
        finally:
            if self.phase is EditorPhase.SUSPENDED:
                self.phase = EditorPhase.RECONCILING

    def reconcile(self, exit_code: int) -> EditResult:
        """Decide what to do with the edited file, then remove it."""
        self.phase = EditorPhase.RECONCILING
        try:
            return self._reconcile(exit_code)
        finally:
            self.cleanup()
            self.phase = EditorPhase.IDLE

    def _reconcile(self, exit_code: int) -> EditResult:
        if exit_code != 0:
            return EditResult(Outcome.ABORTED, "Editor closed without saving")

        try:
            candidate = extract_body(self.path.read_text())
        except MalformedEditError:
            return EditResult(
                Outcome.MALFORMED,
                "Editor closed - no content section found (missing --- separator)",
            )
        except OSError as exc:
            return EditResult(Outcome.ERROR, f"Error processing edited file: {exc}")

        if is_unchanged(candidate, self.original):
            return EditResult(Outcome.UNCHANGED, "No changes detected in edited content")

        try:
            self.client.update_body(self.task.id, candidate)
        except UpdateError as exc:
            logger.warning(f"Update failed for {self.task.id}: {exc}")
            try:
                path = write_failure_record(self.backup_dir, self.task, candidate, str(exc))
            except OSError as write_exc:
                return EditResult(
                    Outcome.ERROR,
                    f"Notion sync failed: {exc}; local save failed: {write_exc}",
                )
            return EditResult(
                Outcome.FAILED,
                f"⚠ Notion sync failed: {exc}. Saved locally: {path.name}",
                path=path,
            )

        try:
            path = write_backup(self.backup_dir, self.task, candidate)
        except OSError as exc:
            return EditResult(
                Outcome.ERROR,
                f"Content updated in Notion, but backup failed: {exc}",
            )
        return EditResult(
            Outcome.SAVED,
            f"✓ Content updated in Notion! Backup saved: {path.name}",
            path=path,
        )

    def cleanup(self) -> None:
        """Remove the temp file if it's still there."""
        if self.path is None:
            return
        with contextlib.suppress(FileNotFoundError):
            self.path.unlink()
