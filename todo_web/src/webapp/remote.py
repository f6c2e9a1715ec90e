from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from .models import TodoPriority
from .repositories import RemoteError, TodoStore
from .schemas import Todo
from .utils import utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Cols:
    table: str = "todos"
    id: str = "id"
    text: str = "text"
    completed: str = "completed"
    priority: str = "priority"
    delete_flag: str = "delete_flag"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


_COLS = _Cols()


def _error_message(response: httpx.Response) -> str:
    """Pull the `message` field out of a PostgREST error body, if there is one."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"HTTP {response.status_code} {response.reason_phrase}".strip()


class SupabaseTodoStore(TodoStore):
    """
    Todo store backed by a hosted Supabase table, spoken to through its
    PostgREST endpoint (`{url}/rest/v1/todos`).

    All failures, including timeouts and non-2xx responses, are raised as
    RemoteError.
    """

    backend = "supabase"

    def __init__(
        self,
        url: str,
        api_key: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=f"{url.rstrip('/')}/rest/v1",
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def _request(
        self,
        method: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        prefer: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        headers = {"Prefer": prefer} if prefer else None
        logger.debug(f"{method} /{_COLS.table} params={params}")
        try:
            response = await self._client.request(
                method, f"/{_COLS.table}", params=params, json=json, headers=headers
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise RemoteError(_error_message(exc.response), status_code=exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            raise RemoteError(str(exc) or exc.__class__.__name__) from exc

        if not response.content:
            return []
        try:
            data = response.json()
        except ValueError as exc:
            raise RemoteError("Malformed response from todo store", status_code=response.status_code) from exc
        return data if isinstance(data, list) else [data]

    @staticmethod
    def _to_todos(rows: List[Dict[str, Any]]) -> List[Todo]:
        try:
            return [Todo.model_validate(r) for r in rows]
        except ValueError as exc:
            raise RemoteError(f"Unexpected row shape from todo store: {exc}") from exc

    async def list_active(self) -> List[Todo]:
        rows = await self._request(
            "GET",
            params={
                "select": "*",
                _COLS.delete_flag: "eq.false",
                "order": f"{_COLS.created_at}.desc",
            },
        )
        return self._to_todos(rows)

    async def insert(self, text: str, priority: TodoPriority) -> List[Todo]:
        payload = [
            {
                _COLS.text: text,
                _COLS.completed: False,
                _COLS.priority: TodoPriority(priority).value,
                _COLS.delete_flag: False,
                _COLS.updated_at: utc_now().isoformat(),
            }
        ]
        rows = await self._request("POST", json=payload, prefer="return=representation")
        return self._to_todos(rows)

    async def set_completed(self, todo_id: str, completed: bool) -> None:
        await self._request(
            "PATCH",
            params={_COLS.id: f"eq.{todo_id}"},
            json={_COLS.completed: completed, _COLS.updated_at: utc_now().isoformat()},
            prefer="return=minimal",
        )

    async def soft_delete(self, todo_id: str) -> None:
        await self._request(
            "PATCH",
            params={_COLS.id: f"eq.{todo_id}"},
            json={_COLS.delete_flag: True, _COLS.updated_at: utc_now().isoformat()},
            prefer="return=minimal",
        )

    async def aclose(self) -> None:
        await self._client.aclose()
