# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Kanban board TUI for a Notion database, using Textual."""

import asyncio
import logging

from textual import work
from textual.app import App, ComposeResult, SuspendNotSupported
from textual.binding import Binding
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.theme import Theme
from textual.widgets import Footer, Header, Input, OptionList, Static
from textual.widgets.option_list import Option

from notionboard import config
from notionboard.board import (
    BoardState,
    ColumnView,
    Mode,
    apply_query,
    build_columns,
    clear_query,
    load_tasks,
    move_column,
    move_row,
    scroll_indicator,
    selected_task,
)
from notionboard.config import resolve_editor
from notionboard.detail import DetailScroll, build_detail
from notionboard.editor import EditorSession, EditorSpawnError, Outcome
from notionboard.notion import FetchError
from notionboard.tasks import Task, count_tasks

logger = logging.getLogger(__name__)

# Notion-inspired theme: dark canvas, blue accents
NOTION_THEME = Theme(
    name="notion",
    primary="#2383e2",  # Notion blue - title bar, focus
    secondary="#5555ff",
    accent="#ff55ff",  # Magenta - key hints
    foreground="#ffffff",
    background="#000000",
    surface="#1a1a1a",  # Very dark gray - bars and panels
    panel="#3a3a3a",  # Column borders
    success="#55ff55",
    warning="#ffff55",  # Selected column border
    error="#ff5555",
    dark=True,
    variables={
        "footer-key-foreground": "#ff55ff",
        "footer-description-foreground": "#888888",
    },
)

# Actions only reachable from the board itself
BOARD_ACTIONS = frozenset(
    {
        "quit",
        "escape",
        "refresh",
        "column",
        "row",
        "open_detail",
        "search",
        "browser",
        "edit",
    }
)


class StatusColumn(OptionList):
    """One status lane of the board.

    Columns never take focus; the app owns the selection and pushes it here.
    """

    can_focus = False

    def __init__(self, column: ColumnView) -> None:
        super().__init__(*[Option(item) for item in column.items])
        self.status = column.status
        self.border_title = column.label
        self.styles.width = f"{column.width}fr"
        self.set_class(column.selected, "-selected")
        self._initial_highlight = column.highlighted

    def on_mount(self) -> None:
        self.highlighted = self._initial_highlight


class SearchInput(Input):
    """Query input shown while searching."""

    BINDINGS = [
        Binding("escape", "cancel", "Clear/Close"),
    ]

    def action_cancel(self) -> None:
        self.app.cancel_search()


class DetailBody(VerticalScroll):
    """Scrollable detail content, driven by DetailScreen's own bindings."""

    can_focus = False


class DetailScreen(ModalScreen):
    """Modal screen showing one task's fields and page content."""

    BINDINGS = [
        Binding("escape", "close", "Close"),
        Binding("up,k", "scroll_lines(-1)", "Up", show=False),
        Binding("down,j", "scroll_lines(1)", "Down", show=False),
        Binding("pageup", "scroll_page(-1)", "Page up", show=False),
        Binding("pagedown", "scroll_page(1)", "Page down", show=False),
        Binding("ctrl+o", "browser", "Browser"),
        Binding("ctrl+e", "edit", "Edit"),
    ]

    CSS = """
    DetailScreen {
        align: center middle;
        height: 100%;
    }

    #detail-container {
        width: 90%;
        height: 90%;
        background: $surface;
        border: solid $warning;
        border-title-color: $warning;
        border-title-style: bold;
        padding: 0 1;
    }

    #detail-body {
        padding: 1 1;
    }
    """

    def __init__(self, task_data: Task, body: str | None):
        super().__init__()
        self.task_data = task_data
        self._body = body
        self._scroll = DetailScroll()

    def compose(self) -> ComposeResult:
        with Vertical(id="detail-container") as container:
            container.border_title = f" {self.task_data.title} "
            with DetailBody(id="detail-scroll"):
                yield Static(build_detail(self.task_data, self._body), id="detail-body")

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool | None:
        # Nothing here runs while the editor owns the terminal
        return self.app.state.mode is Mode.DETAIL

    def update_body(self, body: str | None) -> None:
        """Re-render the content after it changed remotely."""
        self._body = body
        self.query_one("#detail-body", Static).update(build_detail(self.task_data, body))

    def _scroll_by(self, step) -> None:
        scroller = self.query_one(DetailBody)
        self._scroll.offset = round(scroller.scroll_y)
        self._scroll.set_limit(round(scroller.max_scroll_y))
        scroller.scroll_to(y=step(), animate=False)

    def action_scroll_lines(self, direction: int) -> None:
        self._scroll_by(lambda: self._scroll.line(direction))

    def action_scroll_page(self, direction: int) -> None:
        self._scroll_by(lambda: self._scroll.page(direction))

    def action_browser(self) -> None:
        self.app.open_in_browser(self.task_data)

    def action_edit(self) -> None:
        self.app.start_edit(self.task_data)

    def action_close(self) -> None:
        self.dismiss()


class BoardApp(App):
    """Notion kanban board application."""

    TITLE = "Notion Tasks Board"

    # Keys go to the board until search is opened
    AUTO_FOCUS = None

    CSS = """
    Screen {
        layout: vertical;
        background: $background;
    }

    Header {
        background: $primary;
        color: $text;
    }

    Footer {
        background: $surface;
    }

    #board {
        height: 1fr;
        border: solid $primary;
        border-title-color: $text;
        border-subtitle-color: $text-muted;
    }

    StatusColumn {
        height: 100%;
        border: solid $panel;
        border-title-color: $text;
        background: $background;
    }

    StatusColumn.-selected {
        border: solid $warning;
        border-title-color: $warning;
    }

    StatusColumn > .option-list--option-highlighted {
        background: $panel;
    }

    StatusColumn.-selected > .option-list--option-highlighted {
        background: $primary;
        text-style: bold;
    }

    #board-empty {
        width: 100%;
        content-align: center middle;
        color: $text-muted;
    }

    #search {
        display: none;
        margin: 0 1;
    }

    #status-bar {
        height: 1;
        background: $surface;
        color: $text;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("ctrl+c", "quit", "Quit", show=False, priority=True),
        Binding("escape", "escape", "Quit", show=False),
        Binding("r", "refresh", "Refresh"),
        Binding("left,h", "column(-1)", "Column", show=False),
        Binding("right,l", "column(1)", "Column", show=False),
        Binding("up,k", "row(-1)", "Task", show=False),
        Binding("down,j", "row(1)", "Task", show=False),
        Binding("enter", "open_detail", "Details"),
        Binding("slash", "search", "Search"),
        Binding("ctrl+o", "browser", "Browser"),
        Binding("ctrl+e", "edit", "Edit"),
    ]

    def __init__(self, client=None, state: BoardState | None = None):
        super().__init__()
        self.client = client
        self.state = state or BoardState()
        self.status_message = ""
        self._detail: DetailScreen | None = None
        self._editor: EditorSession | None = None

    def compose(self) -> ComposeResult:
        """Create the UI layout."""
        yield Header()
        board = Horizontal(id="board")
        board.border_title = "Task Board"
        yield board
        yield SearchInput(
            placeholder="Filter tasks (Enter to keep, Esc to clear)", id="search", disabled=True
        )
        yield Static(id="status-bar")
        yield Footer()

    async def on_mount(self) -> None:
        """Initialize when app is mounted."""
        self.register_theme(NOTION_THEME)
        self.theme = "notion"

        await self.render_board()
        if self.client is not None:
            self.set_status("Connecting to Notion...")
            self.refresh_tasks()

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool | None:
        if action in BOARD_ACTIONS and self.state.mode is not Mode.BOARD:
            return False
        return True

    def set_status(self, message: str) -> None:
        """Show a message on the status line."""
        self.status_message = message
        self.query_one("#status-bar", Static).update(f" {message} ")

    # Rendering

    async def render_board(self) -> None:
        """Rebuild the visible columns from the current state."""
        board = self.query_one("#board", Horizontal)
        await board.remove_children()
        columns = build_columns(self.state)
        if columns:
            await board.mount_all([StatusColumn(column) for column in columns])
        else:
            if self.state.filter_active:
                message = f"No tasks match '{self.state.query}'"
            else:
                message = "No tasks found"
            await board.mount(Static(message, id="board-empty"))
        board.border_subtitle = scroll_indicator(self.state) or ""

    def _sync_highlight(self) -> None:
        """Move the row highlight without rebuilding the columns."""
        selection = self.state.selection
        for column in self.query(StatusColumn):
            if column.status == selection.status:
                column.highlighted = selection.row

    # Loading

    @work(exclusive=True, group="load")
    async def refresh_tasks(self) -> None:
        """Fetch the full task set and rebuild the board."""
        self.set_status("Fetching tasks from Notion...")
        try:
            tasks = await asyncio.to_thread(self.client.fetch_tasks)
        except FetchError as exc:
            logger.error(f"Task load failed: {exc}")
            self.notify(str(exc), title="Error", severity="error")
            self.set_status(f"Error: {exc}")
            return

        view = load_tasks(self.state, tasks)
        await self.render_board()
        self.sub_title = f"{count_tasks(view)} tasks"
        self.set_status(f"Loaded {count_tasks(view)} tasks across {len(view)} statuses")
        if self.state.filter_active:
            self._report_filter()

    # Board actions

    def action_refresh(self) -> None:
        if self.client is not None:
            self.refresh_tasks()

    async def action_escape(self) -> None:
        if self.state.filter_active:
            clear_query(self.state)
            await self.render_board()
            self.set_status("Filter cleared")
            return
        self.exit()

    async def action_column(self, delta: int) -> None:
        move_column(self.state, delta)
        await self.render_board()

    def action_row(self, delta: int) -> None:
        if move_row(self.state, delta):
            self._sync_highlight()

    def action_open_detail(self) -> None:
        task = selected_task(self.state)
        if task is None or self.client is None:
            return
        self.state.mode = Mode.DETAIL
        self.set_status("Loading task details...")
        self.open_detail(task)

    def action_browser(self) -> None:
        task = selected_task(self.state)
        if task is not None:
            self.open_in_browser(task)

    def action_edit(self) -> None:
        task = selected_task(self.state)
        if task is not None:
            self.start_edit(task)

    # Search

    def action_search(self) -> None:
        self.state.mode = Mode.SEARCH
        search = self.query_one(SearchInput)
        search.value = self.state.query or ""
        search.display = True
        search.disabled = False
        search.focus()

    def _report_filter(self) -> None:
        view = self.state.active_view
        if view:
            self.set_status(
                f"Filter '{self.state.query}': {count_tasks(view)} tasks in {len(view)} statuses"
            )
        else:
            self.set_status(f"No tasks match '{self.state.query}'")

    async def on_input_changed(self, event: Input.Changed) -> None:
        if self.state.mode is not Mode.SEARCH:
            return
        apply_query(self.state, event.value)
        await self.render_board()
        if self.state.filter_active:
            self._report_filter()
        else:
            self.set_status("Ready")

    def on_input_submitted(self, event: Input.Submitted) -> None:
        # The submitting Enter ends here, so it never reaches the board
        event.stop()
        self._leave_search()

    def cancel_search(self) -> None:
        """Escape in search: clear an active filter, otherwise close search."""
        if self.state.filter_active:
            clear_query(self.state)
            self.query_one(SearchInput).value = ""
            self.call_later(self.render_board)
            self.set_status("Filter cleared")
            return
        self._leave_search()

    def _leave_search(self) -> None:
        search = self.query_one(SearchInput)
        search.display = False
        search.disabled = True
        self.set_focus(None)
        self.state.mode = Mode.BOARD
        if not self.state.filter_active:
            self.set_status("Ready")

    # Detail view

    @work(exclusive=True, group="detail")
    async def open_detail(self, task: Task) -> None:
        """Fetch a task's content, then show it in the detail screen."""
        try:
            body = await asyncio.to_thread(self.client.fetch_body, task.id)
        except FetchError as exc:
            logger.error(f"Detail fetch failed for {task.id}: {exc}")
            self.state.mode = Mode.BOARD
            self.set_status(f"Error fetching task content: {exc}")
            return

        self._detail = DetailScreen(task, body)
        self.push_screen(self._detail, self._on_detail_closed)
        self.set_status(f"Viewing: {task.title}")

    def _on_detail_closed(self, _result=None) -> None:
        self._detail = None
        self.state.mode = Mode.BOARD
        # The view may have changed while the detail was open
        self.call_later(self.render_board)
        self.set_status("Ready")

    @work(exclusive=True, group="detail-refresh")
    async def refresh_detail(self, task: Task) -> None:
        """Reload an open detail view's content in place."""
        try:
            body = await asyncio.to_thread(self.client.fetch_body, task.id)
        except FetchError as exc:
            logger.warning(f"Detail refresh failed for {task.id}: {exc}")
            return
        if self._detail is not None and self._detail.task_data.id == task.id:
            self._detail.update_body(body)

    # Browser and editor

    def open_in_browser(self, task: Task) -> None:
        if not task.url:
            return
        self.open_url(task.url)
        self.set_status(f"Opened in browser: {task.title}")

    def start_edit(self, task: Task) -> None:
        """Begin an editor session unless one is already running."""
        if self._editor is not None or self.client is None:
            return
        self.edit_task(task)

    @work(exclusive=True, group="editor")
    async def edit_task(self, task: Task) -> None:
        """Round-trip a task's content through the external editor."""
        resume_mode = self.state.mode
        session = EditorSession(task, self.client, resolve_editor())
        self._editor = session
        self.state.mode = Mode.EDITOR
        try:
            self.set_status("Fetching task content for editing...")
            try:
                await asyncio.to_thread(session.prepare)
            except (FetchError, OSError) as exc:
                logger.error(f"Edit prepare failed for {task.id}: {exc}")
                self.set_status(f"Error fetching task content: {exc}")
                return

            self.set_status(f"Opening {task.title} in {session.editor[0]}...")
            try:
                # Blocks the event loop until the editor exits
                exit_code = session.run(self.suspend)
            except EditorSpawnError as exc:
                logger.error(f"Editor spawn failed: {exc}")
                self.set_status(f"Error opening editor: {exc}")
                return
            except SuspendNotSupported:
                logger.error("Terminal can't be handed to an editor")
                self.set_status("Error opening editor: this terminal can't be suspended")
                return
            finally:
                self.refresh(layout=True, repaint=True)

            if exit_code == 0:
                self.set_status("Syncing changes to Notion...")
            result = await asyncio.to_thread(session.reconcile, exit_code)
            logger.info(f"Edit of {task.id} finished: {result.outcome.value}")
            self.set_status(result.message)
            if result.outcome is Outcome.SAVED and self._detail is not None:
                if self._detail.task_data.id == task.id:
                    self.refresh_detail(task)
        finally:
            self._editor = None
            self.state.mode = resume_mode


def run_tui(client) -> int:
    """Run the TUI application.

    Args:
        client: NotionClient used for all remote calls.

    Returns:
        Exit code (0 for success).
    """
    # The TUI owns the terminal, so logs go to a file
    config.DATA_DIR.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(config.LOG_FILE)
    handler.setLevel(logging.DEBUG)
    formatter = logging.Formatter(
        "%(asctime)s.%(msecs)03d %(name)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)
    board_logger = logging.getLogger("notionboard")
    board_logger.setLevel(logging.DEBUG)
    board_logger.addHandler(handler)

    try:
        app = BoardApp(client=client)
        app.run()
        return 0
    finally:
        board_logger.removeHandler(handler)
        handler.close()
