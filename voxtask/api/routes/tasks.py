"""
Tasks Route - read-only task list and collection maintenance

- GET  /api/tasks                        - Tasks in scope (today by default)
- POST /api/tasks/collection/invalidate  - Forget the cached collection id
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Query, Request

from voxtask.api.models import TaskListResponse, TaskModel
from voxtask.errors import StoreError
from voxtask.tasks.models import TaskScope
from voxtask.tasks.stores.base import TaskStore

logger = logging.getLogger(__name__)


router = APIRouter()


def _store(request: Request) -> TaskStore:
    return request.app.state.store


@router.get("", response_model=TaskListResponse, response_model_by_alias=True)
async def list_tasks(
    request: Request,
    scope: str = Query(default="today", pattern="^(today|all)$"),
    include_done: bool = Query(default=True),
) -> TaskListResponse:
    """List tasks in list order: open first, then by priority, then by creation."""
    store = _store(request)
    task_scope = TaskScope.today() if scope == "today" else TaskScope.everything()
    task_scope.include_done = include_done

    try:
        collection_id = await store.ensure_collection()
        tasks = await store.list(task_scope)
    except StoreError as e:
        logger.error(f"Failed to list tasks: {e}")
        raise HTTPException(status_code=503, detail=e.user_message) from e

    done = sum(1 for t in tasks if t.is_done)
    return TaskListResponse(
        tasks=[TaskModel.from_task(t) for t in tasks],
        stats={"total": len(tasks), "todo": len(tasks) - done, "done": done},
        collection_id=collection_id,
    )


@router.post("/collection/invalidate")
async def invalidate_collection(request: Request) -> dict[str, Any]:
    """Drop the cached collection id; the next command looks it up again."""
    collection = _store(request).collection
    previous = collection.collection_id
    collection.invalidate()
    logger.info(f"Collection cache invalidated (was {previous})")
    return {"success": True, "previousCollectionId": previous}
