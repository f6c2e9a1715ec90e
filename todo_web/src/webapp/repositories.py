from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from datetime import timedelta
from threading import RLock
from typing import List, Optional

from .models import TodoPriority, TodoRow
from .schemas import Todo
from .settings import ConfigurationError, Settings
from .utils import utc_now


class RemoteError(Exception):
    """
    Any failure of a todo store call: network, authentication, or a query or
    validation rejection. Callers do not distinguish between these.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


# PUBLIC_INTERFACE
class TodoStore(ABC):
    """Contract of the `todos` table as seen by the client."""

    backend: str = "unknown"

    @abstractmethod
    async def list_active(self) -> List[Todo]:
        """Return every row with delete_flag = false, newest created_at first."""

    @abstractmethod
    async def insert(self, text: str, priority: TodoPriority) -> List[Todo]:
        """Insert one uncompleted, undeleted row and return the created row(s)."""

    @abstractmethod
    async def set_completed(self, todo_id: str, completed: bool) -> None:
        """Set completed and updated_at on the row matching todo_id. Missing ids are a no-op."""

    @abstractmethod
    async def soft_delete(self, todo_id: str) -> None:
        """Set delete_flag and updated_at on the row matching todo_id. Missing ids are a no-op."""

    async def aclose(self) -> None:
        """Release any resources held by the store."""
        return None


class InMemoryTodoStore(TodoStore):
    """
    Process-local store with the same semantics as the hosted table, suitable
    for local development and tests.
    """

    backend = "memory"

    def __init__(self) -> None:
        self._lock = RLock()
        self._rows: dict[str, TodoRow] = {}
        self._last_created = None

    def _next_created_at(self):
        # Keep created_at strictly increasing so ordering is deterministic.
        with self._lock:
            now = utc_now()
            if self._last_created is not None and now <= self._last_created:
                now = self._last_created + timedelta(microseconds=1)
            self._last_created = now
            return now

    async def list_active(self) -> List[Todo]:
        with self._lock:
            rows = [r for r in self._rows.values() if not r["delete_flag"]]
            rows.sort(key=lambda r: r["created_at"], reverse=True)
            return [Todo(**r) for r in rows]

    async def insert(self, text: str, priority: TodoPriority) -> List[Todo]:
        row: TodoRow = {
            "id": str(uuid.uuid4()),
            "text": text,
            "completed": False,
            "priority": TodoPriority(priority).value,
            "delete_flag": False,
            "created_at": self._next_created_at(),
            "updated_at": utc_now(),
        }
        with self._lock:
            self._rows[row["id"]] = row
        return [Todo(**row)]

    async def set_completed(self, todo_id: str, completed: bool) -> None:
        with self._lock:
            row = self._rows.get(todo_id)
            if row is None:
                return
            row["completed"] = completed
            row["updated_at"] = utc_now()

    async def soft_delete(self, todo_id: str) -> None:
        with self._lock:
            row = self._rows.get(todo_id)
            if row is None:
                return
            row["delete_flag"] = True
            row["updated_at"] = utc_now()

    def get(self, todo_id: str) -> Optional[Todo]:
        """Return a row by id whether or not it is soft-deleted."""
        with self._lock:
            row = self._rows.get(todo_id)
            return None if row is None else Todo(**row)


# PUBLIC_INTERFACE
def get_store(settings: Settings) -> TodoStore:
    """
    Factory to return the configured store based on settings.
    - supabase: SupabaseTodoStore talking to the hosted table
    - memory: InMemoryTodoStore

    Raises:
        ConfigurationError: if the supabase backend lacks its URL or key.
    """
    if settings.store_backend == "memory":
        return InMemoryTodoStore()

    if not settings.supabase_url or not settings.supabase_anon_key:
        raise ConfigurationError("Missing required configuration: SUPABASE_URL and SUPABASE_ANON_KEY")

    from .remote import SupabaseTodoStore

    return SupabaseTodoStore(
        url=settings.supabase_url,
        api_key=settings.supabase_anon_key,
        timeout=settings.supabase_timeout,
    )
