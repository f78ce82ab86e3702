# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Notion REST client: database tasks and page body text."""

import logging
import re
from datetime import date, datetime
from typing import Any

import requests

from notionboard.tasks import NO_STATUS, Task

logger = logging.getLogger(__name__)

API_URL = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"
PAGE_SIZE = 100
MAX_TEXT_LENGTH = 2000  # Notion's limit per rich text object

TITLE_ALIASES = ("Name", "Title", "Task")
ASSIGNEE_ALIASES = ("Assignee", "Person")
DUE_ALIASES = ("Due Date", "Due", "Date")

NUMBERED_RE = re.compile(r"^\d+\. ")


class NotionError(RuntimeError):
    pass


class FetchError(NotionError):
    """Fetching tasks or page content failed."""


class UpdateError(NotionError):
    """Notion rejected a content update."""


def rich_text_to_plain(items: list[dict] | None) -> str:
    """Concatenate the plain text of a rich text array."""
    if not isinstance(items, list):
        return ""
    return "".join(item.get("plain_text", "") for item in items)


def property_value(prop: dict) -> Any:
    """Flatten a Notion property into a displayable scalar."""
    kind = prop.get("type")
    value = prop.get(kind) if kind else None
    if kind in ("title", "rich_text"):
        return rich_text_to_plain(value)
    if kind in ("number", "url", "email", "phone_number"):
        return value
    if kind in ("select", "status"):
        return value.get("name") if value else None
    if kind == "multi_select":
        return ", ".join(option["name"] for option in value or [])
    if kind == "date":
        return value.get("start") if value else None
    if kind == "people":
        names = [p.get("name") or p.get("person", {}).get("email") for p in value or []]
        return ", ".join(n for n in names if n)
    if kind == "checkbox":
        return "Yes" if value else "No"
    return None


def _first(properties: dict, aliases: tuple[str, ...]) -> dict | None:
    for key in aliases:
        if key in properties:
            return properties[key]
    return None


def page_title(properties: dict) -> str:
    prop = _first(properties, TITLE_ALIASES)
    if prop is None:
        prop = next((p for p in properties.values() if p.get("type") == "title"), None)
    if prop is None:
        return "Untitled"
    items = prop.get("title") or []
    return (items[0].get("plain_text") if items else "") or "Untitled"


def page_status(properties: dict) -> str:
    prop = properties.get("Status")
    if prop and prop.get("type") in ("select", "status"):
        value = prop.get(prop["type"])
        if value and value.get("name"):
            return value["name"]
    return NO_STATUS


def page_priority(properties: dict) -> str | None:
    prop = properties.get("Priority")
    if prop and prop.get("type") == "select" and prop.get("select"):
        return prop["select"].get("name") or None
    return None


def page_assignee(properties: dict) -> str | None:
    prop = _first(properties, ASSIGNEE_ALIASES)
    if prop and prop.get("type") == "people" and prop.get("people"):
        person = prop["people"][0]
        return person.get("name") or person.get("person", {}).get("email") or None
    return None


def parse_date(value: str | None) -> date | None:
    """Parse the calendar date from a Notion date or datetime string."""
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def page_due_date(properties: dict) -> date | None:
    prop = _first(properties, DUE_ALIASES)
    if prop and prop.get("type") == "date" and prop.get("date"):
        return parse_date(prop["date"].get("start"))
    return None


def page_to_task(page: dict) -> Task:
    """Convert a database query result into a Task."""
    properties = page.get("properties", {})
    return Task(
        id=page["id"],
        title=page_title(properties),
        status=page_status(properties),
        priority=page_priority(properties),
        assignee=page_assignee(properties),
        due_date=page_due_date(properties),
        created_time=parse_timestamp(page.get("created_time")),
        last_edited_time=parse_timestamp(page.get("last_edited_time")),
        properties={key: property_value(prop) for key, prop in properties.items()},
        url=page.get("url", ""),
    )


def block_to_text(block: dict) -> str | None:
    """Extract display text from a block, or None for unsupported blocks."""
    kind = block.get("type")
    data = block.get(kind) if kind else None
    if data is None:
        return None
    text = rich_text_to_plain(data.get("rich_text") or data.get("text") or [])
    if kind in ("paragraph", "heading_1", "heading_2", "heading_3", "quote", "callout"):
        return text
    if kind in ("bulleted_list_item", "numbered_list_item"):
        return f"• {text}"
    if kind == "to_do":
        return f"{'☑' if data.get('checked') else '☐'} {text}"
    if kind == "toggle":
        return f"▸ {text}"
    if kind == "code":
        return f"```{data.get('language', '')}\n{text}\n```"
    if kind == "divider":
        return "---"
    return None


def _rich_text(content: str) -> list[dict]:
    chunks = [content[i : i + MAX_TEXT_LENGTH] for i in range(0, len(content), MAX_TEXT_LENGTH)]
    return [{"type": "text", "text": {"content": chunk}} for chunk in chunks or [""]]


def _block(kind: str, content: str, **extra) -> dict:
    return {"object": "block", "type": kind, kind: {"rich_text": _rich_text(content), **extra}}


def text_to_blocks(content: str) -> list[dict]:
    """Parse edited plain text back into Notion blocks.

    Blank lines are dropped; each remaining line becomes one block, except
    fenced code which is collected into a single code block.
    """
    lines = content.split("\n")
    blocks = []
    i = 0
    while i < len(lines):
        line = lines[i].strip()
        if not line:
            pass
        elif line.startswith("```"):
            code = []
            i += 1
            while i < len(lines) and not lines[i].startswith("```"):
                code.append(lines[i])
                i += 1
            blocks.append(_block("code", "\n".join(code), language="plain text"))
        elif line == "---":
            blocks.append({"object": "block", "type": "divider", "divider": {}})
        elif line.startswith("### "):
            blocks.append(_block("heading_3", line[4:]))
        elif line.startswith("## "):
            blocks.append(_block("heading_2", line[3:]))
        elif line.startswith("# "):
            blocks.append(_block("heading_1", line[2:]))
        elif line.startswith(("- ", "* ")):
            blocks.append(_block("bulleted_list_item", line[2:]))
        elif NUMBERED_RE.match(line):
            blocks.append(_block("numbered_list_item", NUMBERED_RE.sub("", line, count=1)))
        elif line.startswith("> "):
            blocks.append(_block("quote", line[2:]))
        else:
            blocks.append(_block("paragraph", line))
        i += 1
    return blocks


class NotionClient:
    """Thin client for the parts of the Notion API the board uses.

    Every call is made once; failures are raised to the caller rather than
    retried.
    """

    def __init__(
        self,
        token: str,
        database_id: str,
        session: requests.Session | None = None,
        timeout: int = 30,
    ) -> None:
        self.database_id = database_id
        self.session = session or requests.Session()
        self.timeout = timeout
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Notion-Version": NOTION_VERSION,
            "Content-Type": "application/json",
        }

    def _request(self, method: str, path: str, **kwargs) -> dict:
        url = f"{API_URL}/{path}"
        try:
            response = self.session.request(
                method, url, headers=self.headers, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as exc:
            raise NotionError(f"network error: {exc}") from exc
        if response.status_code >= 400:
            try:
                message = response.json().get("message", response.text)
            except ValueError:
                message = response.text
            raise NotionError(f"HTTP {response.status_code}: {message}")
        try:
            return response.json()
        except ValueError as exc:
            raise NotionError(f"invalid response body: {exc}") from exc

    def _paginate(self, method: str, path: str, **kwargs) -> list[dict]:
        results: list[dict] = []
        cursor = None
        while True:
            if method == "POST":
                body = {**kwargs.get("json", {}), "page_size": PAGE_SIZE}
                if cursor:
                    body["start_cursor"] = cursor
                payload = self._request(method, path, json=body)
            else:
                params = {"page_size": PAGE_SIZE}
                if cursor:
                    params["start_cursor"] = cursor
                payload = self._request(method, path, params=params)
            results.extend(payload.get("results", []))
            if not payload.get("has_more"):
                return results
            cursor = payload.get("next_cursor")

    def fetch_tasks(self) -> list[Task]:
        """Fetch every page of the database, draining pagination."""
        query = {"sorts": [{"property": "Status", "direction": "ascending"}]}
        try:
            pages = self._paginate("POST", f"databases/{self.database_id}/query", json=query)
        except NotionError as exc:
            raise FetchError(f"Failed to fetch tasks: {exc}") from exc
        logger.debug(f"Fetched {len(pages)} pages from database {self.database_id}")
        return [page_to_task(page) for page in pages]

    def _children(self, page_id: str) -> list[dict]:
        return self._paginate("GET", f"blocks/{page_id}/children")

    def fetch_body(self, page_id: str) -> str:
        """Fetch a page's blocks as plain text, one block per line."""
        try:
            blocks = self._children(page_id)
        except NotionError as exc:
            raise FetchError(f"Failed to fetch page content: {exc}") from exc
        lines = [text for text in (block_to_text(b) for b in blocks) if text]
        return "\n".join(lines)

    def update_body(self, page_id: str, content: str) -> None:
        """Replace a page's blocks with blocks parsed from content.

        Raises:
            UpdateError: If the existing blocks can't be listed or the new
                blocks can't be appended.
        """
        try:
            existing = self._children(page_id)
        except NotionError as exc:
            raise UpdateError(str(exc)) from exc

        for block in existing:
            if block.get("type") == "unsupported":
                continue
            try:
                self._request("DELETE", f"blocks/{block['id']}")
            except NotionError as exc:
                logger.warning(f"Failed to delete block {block['id']}: {exc}")

        blocks = text_to_blocks(content)
        for start in range(0, len(blocks), PAGE_SIZE):
            try:
                self._request(
                    "PATCH",
                    f"blocks/{page_id}/children",
                    json={"children": blocks[start : start + PAGE_SIZE]},
                )
            except NotionError as exc:
                raise UpdateError(str(exc)) from exc
        logger.info(f"Updated page {page_id} with {len(blocks)} blocks")
