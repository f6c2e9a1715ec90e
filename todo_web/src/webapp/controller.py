"""
View-model controller for the todo list.

Holds the visible todos and the pending input fields, calls the store for
every user action, and reconciles the results into local state. Failures
are never raised to the caller: every action returns an ActionResult and
the presentation layer decides how to show it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from .models import TodoPriority
from .repositories import RemoteError, TodoStore
from .schemas import Todo
from .utils import todo_stats

logger = logging.getLogger(__name__)

LOAD_FAILED_MESSAGE = "获取任务失败，请检查网络连接"
SUBMIT_FAILED_MESSAGE = "添加失败，请重试"
TOGGLE_FAILED_MESSAGE = "更新任务失败"
REMOVE_FAILED_MESSAGE = "删除任务失败"


class ActionStatus(str, Enum):
    OK = "ok"
    SKIPPED = "skipped"
    FAILED = "failed"


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class ActionResult:
    """
    Outcome of a controller action.

    - OK: the store call succeeded and local state was reconciled
    - SKIPPED: the action was rejected locally; no store call was made
    - FAILED: the store call raised RemoteError; `error` holds it
    """

    status: ActionStatus
    message: Optional[str] = None
    error: Optional[RemoteError] = None

    @property
    def ok(self) -> bool:
        return self.status is ActionStatus.OK

    @classmethod
    def success(cls) -> "ActionResult":
        return cls(ActionStatus.OK)

    @classmethod
    def skipped(cls, message: str) -> "ActionResult":
        return cls(ActionStatus.SKIPPED, message=message)

    @classmethod
    def failed(cls, message: str, error: RemoteError) -> "ActionResult":
        return cls(ActionStatus.FAILED, message=message, error=error)


class TodoController:
    """
    Mediates between UI actions and the todo store.

    The store is passed in; the controller never creates one. All store calls
    are awaited on the caller's event loop and local state is only touched
    after they return, so no locking is needed.
    """

    def __init__(self, store: TodoStore) -> None:
        self._store = store
        self.todos: List[Todo] = []
        self.draft_text: str = ""
        self.draft_priority: TodoPriority = TodoPriority.MEDIUM
        self.last_error: Optional[str] = None

    def _fail(self, message: str, exc: RemoteError) -> ActionResult:
        self.last_error = message
        return ActionResult.failed(message, exc)

    async def load(self) -> ActionResult:
        """Replace the local list with the store's active rows."""
        try:
            rows = await self._store.list_active()
        except RemoteError as exc:
            logger.error(f"Failed to fetch todos: {exc.message}")
            return self._fail(LOAD_FAILED_MESSAGE, exc)
        self.todos = rows
        self.last_error = None
        return ActionResult.success()

    def set_draft(self, text: Optional[str] = None, priority: Optional[TodoPriority] = None) -> None:
        if text is not None:
            self.draft_text = text
        if priority is not None:
            self.draft_priority = TodoPriority(priority)

    async def submit(self, text: Optional[str] = None, priority: Optional[TodoPriority] = None) -> ActionResult:
        """
        Insert a new todo from the given values, or from the draft when omitted.

        Blank text is rejected without calling the store. On success the
        created rows are put at the top of the list, the pending text is
        cleared and the list is reloaded from the store. If that reload
        fails, the merged list is kept as is.
        """
        text = self.draft_text if text is None else text
        priority = self.draft_priority if priority is None else TodoPriority(priority)
        if not text.strip():
            return ActionResult.skipped("Todo text must not be empty")

        try:
            created = await self._store.insert(text, priority)
        except RemoteError as exc:
            logger.error(f"Failed to add todo: {exc.message}")
            return self._fail(SUBMIT_FAILED_MESSAGE, exc)

        self.todos = [*created, *self.todos]
        self.draft_text = ""
        self.last_error = None
        await self.load()
        return ActionResult.success()

    def find(self, todo_id: str) -> Optional[Todo]:
        return next((t for t in self.todos if t.id == todo_id), None)

    async def toggle(self, todo_id: str) -> ActionResult:
        """Flip `completed` of a visible todo, then reload the list."""
        current = self.find(todo_id)
        if current is None:
            return ActionResult.skipped("Todo not found")

        try:
            await self._store.set_completed(todo_id, not current.completed)
        except RemoteError as exc:
            logger.error(f"Failed to update todo {todo_id}: {exc.message}")
            return self._fail(TOGGLE_FAILED_MESSAGE, exc)
        return await self.load()

    async def remove(self, todo_id: str) -> ActionResult:
        """Soft-delete a visible todo, then reload the list."""
        if self.find(todo_id) is None:
            return ActionResult.skipped("Todo not found")

        try:
            await self._store.soft_delete(todo_id)
        except RemoteError as exc:
            logger.error(f"Failed to delete todo {todo_id}: {exc.message}")
            return self._fail(REMOVE_FAILED_MESSAGE, exc)
        return await self.load()

    def stats(self) -> Dict[str, Any]:
        return todo_stats(t.completed for t in self.todos)
