"""
SQLite Task Store

Default backend. Collections and tasks live in one SQLite file
(``data/tasks.db`` unless configured otherwise). Tasks are soft-deleted by
setting ``archived = 1``; ``version`` is an integer bumped on every write and
checked in the UPDATE's WHERE clause.

Dependencies:
    - sqlite3 (stdlib)
    - uuid (stdlib)
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any

from voxtask.errors import ConflictError, NotFoundError, StoreError
from voxtask.tasks import DB_PATH
from voxtask.tasks.models import Category, Priority, Task, TaskScope, TaskStatus

from .base import CollectionRef, TaskStore, check_version, clean_title, sort_tasks


logger = logging.getLogger(__name__)


def generate_id() -> str:
    """Generate a short unique ID."""
    return uuid.uuid4().hex[:12]


def _parse_date(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


def row_to_task(row: sqlite3.Row) -> Task:
    return Task(
        id=row["id"],
        text=row["text"],
        status=TaskStatus(row["status"]),
        priority=Priority(row["priority"]),
        category=Category(row["category"]),
        plan_date=_parse_date(row["plan_date"]),
        due_date=_parse_date(row["due_date"]),
        created_at=datetime.fromisoformat(row["created_at"]) if row["created_at"] else None,
        archived=bool(row["archived"]),
        version=str(row["version"]),
        sequence=row["seq"],
    )


class SQLiteTaskStore(TaskStore):
    """Row/table task store on a local SQLite file."""

    def __init__(self, config: dict[str, Any] | None = None, collection: CollectionRef | None = None):
        super().__init__(collection)
        config = config or {}
        self.db_path = Path(config.get("db_path") or DB_PATH)

    @property
    def name(self) -> str:
        return "sqlite"

    def get_connection(self) -> sqlite3.Connection:
        """Get database connection, creating tables if needed."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row

        cursor = conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS collections (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL UNIQUE,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS tasks (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                collection_id TEXT NOT NULL,
                text TEXT NOT NULL,
                status TEXT DEFAULT 'todo' CHECK(status IN ('todo', 'done')),
                priority TEXT DEFAULT 'medium' CHECK(priority IN ('high', 'medium', 'low')),
                category TEXT DEFAULT 'other'
                    CHECK(category IN ('work', 'personal', 'shopping', 'email', 'other')),
                plan_date TEXT,
                due_date TEXT,
                created_at TEXT NOT NULL,
                archived INTEGER DEFAULT 0,
                version INTEGER DEFAULT 1,
                FOREIGN KEY(collection_id) REFERENCES collections(id)
            )
        """)
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_tasks_collection ON tasks(collection_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_tasks_plan_date ON tasks(plan_date)")
        conn.commit()
        return conn

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self.get_connection()
        except sqlite3.Error as e:
            logger.error(f"Task database unavailable at {self.db_path}: {e}")
            raise StoreError(f"Task database unavailable: {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error(f"Task database error: {e}")
            raise StoreError(f"Task database error: {e}") from e
        finally:
            conn.close()

    # =========================================================================
    # Collection
    # =========================================================================

    async def ensure_collection(self) -> str:
        if self.collection.is_resolved:
            return self.collection.collection_id

        with self._connection() as conn:
            row = conn.execute(
                "SELECT id FROM collections WHERE name = ?", (self.collection.name,)
            ).fetchone()
            if row:
                collection_id = row["id"]
            else:
                collection_id = generate_id()
                conn.execute(
                    "INSERT INTO collections (id, name) VALUES (?, ?)",
                    (collection_id, self.collection.name),
                )
                logger.info(f"Created task collection '{self.collection.name}' ({collection_id})")

        self.collection.set(collection_id)
        return collection_id

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
        collection_id = await self.ensure_collection()
        task_id = generate_id()

        with self._connection() as conn:
            conn.execute(
                """
                INSERT INTO tasks (id, collection_id, text, priority, category, plan_date, due_date, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    task_id,
                    collection_id,
                    title,
                    (priority or Priority.MEDIUM).value,
                    (category or Category.OTHER).value,
                    (plan_date or date.today()).isoformat(),
                    due_date.isoformat() if due_date else None,
                    datetime.now().isoformat(),
                ),
            )
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()

        return row_to_task(row)

    async def get(self, task_id: str) -> Task:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM tasks WHERE id = ? AND archived = 0", (task_id,)
            ).fetchone()
        if row is None:
            raise NotFoundError(task_id)
        return row_to_task(row)

    def _write(self, task: Task, assignments: str, params: tuple[Any, ...]) -> Task:
        """Apply an UPDATE guarded by the version the caller last saw."""
        with self._connection() as conn:
            cursor = conn.execute(
                f"UPDATE tasks SET {assignments}, version = version + 1 "
                "WHERE id = ? AND version = ? AND archived = 0",
                (*params, task.id, int(task.version)),
            )
            if cursor.rowcount == 0:
                row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task.id,)).fetchone()
                if row is None or row["archived"]:
                    raise NotFoundError(task.id)
                raise ConflictError(task.id, task.version, str(row["version"]))
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task.id,)).fetchone()
        return row_to_task(row)

    async def complete(self, task_id: str, expected_version: str | None = None) -> Task:
        task = await self.get(task_id)
        check_version(task, expected_version)
        if task.is_done:
            return task
        return self._write(task, "status = ?", (TaskStatus.DONE.value,))

    async def update(self, task_id: str, new_text: str, expected_version: str | None = None) -> Task:
        title = clean_title(new_text)
        task = await self.get(task_id)
        check_version(task, expected_version)
        return self._write(task, "text = ?", (title,))

    async def delete(self, task_id: str, expected_version: str | None = None) -> None:
        task = await self.get(task_id)
        check_version(task, expected_version)
        self._write(task, "archived = ?", (1,))

    async def delete_all(self, scope: TaskScope | None = None) -> int:
        scope = scope or TaskScope.everything()
        collection_id = await self.ensure_collection()
        where, params = self._scope_clause(collection_id, scope)

        with self._connection() as conn:
            cursor = conn.execute(
                f"UPDATE tasks SET archived = 1, version = version + 1 WHERE {where}", params
            )
            count = cursor.rowcount

        logger.info(f"Archived {count} tasks in collection {collection_id}")
        return count

    async def list(self, scope: TaskScope | None = None) -> list[Task]:
        scope = scope or TaskScope.today()
        collection_id = await self.ensure_collection()
        where, params = self._scope_clause(collection_id, scope)

        with self._connection() as conn:
            rows = conn.execute(f"SELECT * FROM tasks WHERE {where}", params).fetchall()

        return sort_tasks([row_to_task(row) for row in rows])

    @staticmethod
    def _scope_clause(collection_id: str, scope: TaskScope) -> tuple[str, list[Any]]:
        conditions = ["collection_id = ?", "archived = 0"]
        params: list[Any] = [collection_id]
        if scope.plan_date is not None:
            conditions.append("plan_date = ?")
            params.append(scope.plan_date.isoformat())
        if not scope.include_done:
            conditions.append("status = ?")
            params.append(TaskStatus.TODO.value)
        return " AND ".join(conditions), params
