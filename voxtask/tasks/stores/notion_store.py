"""
Notion Task Store

Keeps tasks as pages of a Notion database. The database is looked up by title
through the search endpoint and created under ``NOTION_PARENT_PAGE_ID`` when
missing. Deleting archives the page.

``version`` is the page's ``last_edited_time``. Notion does not support
conditional writes, so the check happens between a fresh read and the PATCH;
a write landing in between is not detected.

API Documentation: https://developers.notion.com/reference
"""

from __future__ import annotations

import asyncio
import logging
import os
from datetime import date, datetime
from typing import Any

import httpx

from voxtask.errors import NotFoundError, PartialDeleteError, StoreError
from voxtask.tasks.models import Category, Priority, Task, TaskScope, TaskStatus

from .base import CollectionRef, TaskStore, check_version, clean_title, sort_tasks


logger = logging.getLogger(__name__)

NOTION_API_BASE = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"

# Database property names
PROP_TITLE = "Task"
PROP_STATUS = "Status"
PROP_PRIORITY = "Priority"
PROP_CATEGORY = "Category"
PROP_DATE = "Date"
PROP_DUE = "Due"

_STATUS_LABELS = {TaskStatus.TODO: "Todo", TaskStatus.DONE: "Done"}
_PRIORITY_COLORS = {Priority.HIGH: "red", Priority.MEDIUM: "yellow", Priority.LOW: "green"}
_CATEGORY_COLORS = {
    Category.WORK: "blue",
    Category.PERSONAL: "purple",
    Category.SHOPPING: "orange",
    Category.EMAIL: "pink",
    Category.OTHER: "gray",
}


def _label(value: str) -> str:
    return value.capitalize()


def database_schema() -> dict[str, Any]:
    """Property schema for a newly created task database."""
    return {
        PROP_TITLE: {"title": {}},
        PROP_STATUS: {
            "select": {
                "options": [
                    {"name": "Todo", "color": "red"},
                    {"name": "Done", "color": "green"},
                ]
            }
        },
        PROP_PRIORITY: {
            "select": {
                "options": [{"name": _label(p.value), "color": c} for p, c in _PRIORITY_COLORS.items()]
            }
        },
        PROP_CATEGORY: {
            "select": {
                "options": [{"name": _label(c.value), "color": col} for c, col in _CATEGORY_COLORS.items()]
            }
        },
        PROP_DATE: {"date": {}},
        PROP_DUE: {"date": {}},
    }


def _select(props: dict[str, Any], name: str) -> str | None:
    select = (props.get(name) or {}).get("select")
    return select.get("name") if select else None


def _date(props: dict[str, Any], name: str) -> date | None:
    value = (props.get(name) or {}).get("date")
    if value and value.get("start"):
        return date.fromisoformat(value["start"][:10])
    return None


def _timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def page_to_task(page: dict[str, Any]) -> Task:
    props = page.get("properties", {})
    title_parts = (props.get(PROP_TITLE) or {}).get("title") or []
    status_label = _select(props, PROP_STATUS) or "Todo"
    created_at = _timestamp(page.get("created_time"))

    return Task(
        id=page["id"],
        text="".join(part.get("plain_text", "") for part in title_parts),
        status=TaskStatus.DONE if status_label.lower() == "done" else TaskStatus.TODO,
        priority=Priority.parse(_select(props, PROP_PRIORITY)),
        category=Category.parse(_select(props, PROP_CATEGORY)),
        plan_date=_date(props, PROP_DATE),
        due_date=_date(props, PROP_DUE),
        created_at=created_at,
        archived=bool(page.get("archived") or page.get("in_trash")),
        version=page.get("last_edited_time"),
        sequence=int(created_at.timestamp() * 1000) if created_at else 0,
    )


class NotionTaskStore(TaskStore):
    """
    Task store backed by a Notion database.

    Requires NOTION_API_KEY. NOTION_PARENT_PAGE_ID is only needed when the
    database has to be created.
    """

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        collection: CollectionRef | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        super().__init__(collection)
        config = config or {}
        self._api_key = config.get("api_key") or os.getenv("NOTION_API_KEY")
        self._api_base = config.get("api_base") or NOTION_API_BASE
        self._parent_page_id = config.get("parent_page_id") or os.getenv("NOTION_PARENT_PAGE_ID")
        self._timeout = float(config.get("timeout_seconds", 30.0))

        # HTTP client (lazy init unless injected)
        self._client = client

    @property
    def name(self) -> str:
        return "notion"

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            if not self._api_key:
                raise StoreError("NOTION_API_KEY is not configured")
            self._client = httpx.AsyncClient(
                base_url=self._api_base,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Notion-Version": NOTION_VERSION,
                    "Content-Type": "application/json",
                },
                timeout=self._timeout,
            )
        return self._client

    async def _request(
        self,
        method: str,
        endpoint: str,
        data: dict[str, Any] | None = None,
        missing: str | None = None,
    ) -> dict[str, Any]:
        """Make API request with error handling.

        ``missing`` names the task to report in ``NotFoundError`` on a 404;
        without it a 404 is a ``StoreError``.
        """
        client = await self._get_client()

        try:
            response = await client.request(method, endpoint, json=data)
            response.raise_for_status()
            return response.json() if response.content else {}

        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 404 and missing is not None:
                raise NotFoundError(missing) from e
            logger.error(f"Notion API error: {status} - {e.response.text}")
            raise StoreError(f"Notion API error: {status}") from e
        except httpx.RequestError as e:
            logger.error(f"Notion request error: {e}")
            raise StoreError(f"Notion request error: {e}") from e

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    # =========================================================================
    # Collection
    # =========================================================================

    async def _find_database(self) -> str | None:
        result = await self._request(
            "POST",
            "/search",
            {
                "query": self.collection.name,
                "filter": {"property": "object", "value": "database"},
            },
        )
        for item in result.get("results", []):
            title = "".join(part.get("plain_text", "") for part in item.get("title", []))
            if title == self.collection.name and not item.get("archived"):
                return item["id"]
        return None

    async def ensure_collection(self) -> str:
        if self.collection.is_resolved:
            return self.collection.collection_id

        database_id = await self._find_database()
        if database_id is None:
            if not self._parent_page_id:
                raise StoreError(
                    f"Notion database '{self.collection.name}' not found and NOTION_PARENT_PAGE_ID is not set"
                )
            created = await self._request(
                "POST",
                "/databases",
                {
                    "parent": {"type": "page_id", "page_id": self._parent_page_id},
                    "title": [{"type": "text", "text": {"content": self.collection.name}}],
                    "properties": database_schema(),
                },
            )
            database_id = created["id"]
            logger.info(f"Created Notion database '{self.collection.name}' ({database_id})")

        self.collection.set(database_id)
        return database_id

    # =========================================================================
    # Tasks
    # =========================================================================

    async def create(
        self,
        text: str,
        priority: Priority | None = None,
        category: Category | None = None,
        plan_date: date | None = None,
        due_date: date | None = None,
    ) -> Task:
        title = clean_title(text)
        database_id = await self.ensure_collection()

        properties: dict[str, Any] = {
            PROP_TITLE: {"title": [{"text": {"content": title}}]},
            PROP_STATUS: {"select": {"name": _STATUS_LABELS[TaskStatus.TODO]}},
            PROP_PRIORITY: {"select": {"name": _label((priority or Priority.MEDIUM).value)}},
            PROP_CATEGORY: {"select": {"name": _label((category or Category.OTHER).value)}},
            PROP_DATE: {"date": {"start": (plan_date or date.today()).isoformat()}},
        }
        if due_date:
            properties[PROP_DUE] = {"date": {"start": due_date.isoformat()}}

        page = await self._request(
            "POST",
            "/pages",
            {"parent": {"database_id": database_id}, "properties": properties},
        )
        return page_to_task(page)

    async def get(self, task_id: str) -> Task:
        page = await self._request("GET", f"/pages/{task_id}", missing=task_id)
        task = page_to_task(page)
        if task.archived:
            raise NotFoundError(task_id)
        return task

    async def _patch(self, task_id: str, body: dict[str, Any]) -> Task:
        page = await self._request("PATCH", f"/pages/{task_id}", body, missing=task_id)
        return page_to_task(page)

    async def complete(self, task_id: str, expected_version: str | None = None) -> Task:
        task = await self.get(task_id)
        check_version(task, expected_version)
        if task.is_done:
            return task
        return await self._patch(
            task_id, {"properties": {PROP_STATUS: {"select": {"name": _STATUS_LABELS[TaskStatus.DONE]}}}}
        )

    async def update(self, task_id: str, new_text: str, expected_version: str | None = None) -> Task:
        title = clean_title(new_text)
        task = await self.get(task_id)
        check_version(task, expected_version)
        return await self._patch(
            task_id, {"properties": {PROP_TITLE: {"title": [{"text": {"content": title}}]}}}
        )

    async def delete(self, task_id: str, expected_version: str | None = None) -> None:
        task = await self.get(task_id)
        check_version(task, expected_version)
        await self._patch(task_id, {"archived": True})

    async def delete_all(self, scope: TaskScope | None = None) -> int:
        tasks = await self.list(scope or TaskScope.everything())
        results = await asyncio.gather(
            *(self._patch(task.id, {"archived": True}) for task in tasks), return_exceptions=True
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        archived = len(tasks) - len(failures)
        if failures:
            for failure in failures:
                logger.error(f"Archiving Notion page failed: {failure!r}")
            raise PartialDeleteError(archived, len(tasks))
        logger.info(f"Archived {archived} Notion pages")
        return archived

    async def list(self, scope: TaskScope | None = None) -> list[Task]:
        scope = scope or TaskScope.today()
        database_id = await self.ensure_collection()

        filters: list[dict[str, Any]] = []
        if scope.plan_date is not None:
            filters.append({"property": PROP_DATE, "date": {"equals": scope.plan_date.isoformat()}})
        if not scope.include_done:
            filters.append(
                {"property": PROP_STATUS, "select": {"does_not_equal": _STATUS_LABELS[TaskStatus.DONE]}}
            )

        body: dict[str, Any] = {
            "page_size": 100,
            "sorts": [{"timestamp": "created_time", "direction": "ascending"}],
        }
        if len(filters) == 1:
            body["filter"] = filters[0]
        elif filters:
            body["filter"] = {"and": filters}

        pages: list[dict[str, Any]] = []
        while True:
            result = await self._request("POST", f"/databases/{database_id}/query", body)
            pages.extend(result.get("results", []))
            if not result.get("has_more") or not result.get("next_cursor"):
                break
            body["start_cursor"] = result["next_cursor"]

        tasks = [page_to_task(page) for page in pages]
        # created_time is minute-precision; result order breaks the ties
        for index, task in enumerate(tasks):
            task.sequence = index
        return sort_tasks([t for t in tasks if scope.contains(t)])
