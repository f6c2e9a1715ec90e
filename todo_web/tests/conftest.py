import pytest

from src.webapp.repositories import InMemoryTodoStore, RemoteError


class FlakyStore(InMemoryTodoStore):
    """In-memory store that records calls and fails the operations named in `failing`."""

    def __init__(self) -> None:
        super().__init__()
        self.failing: set = set()
        self.calls: list = []

    def _check(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failing:
            raise RemoteError(f"{name} unavailable", status_code=503)

    async def list_active(self):
        self._check("list_active")
        return await super().list_active()

    async def insert(self, text, priority):
        self._check("insert")
        return await super().insert(text, priority)

    async def set_completed(self, todo_id, completed):
        self._check("set_completed")
        return await super().set_completed(todo_id, completed)

    async def soft_delete(self, todo_id):
        self._check("soft_delete")
        return await super().soft_delete(todo_id)


@pytest.fixture
def store() -> FlakyStore:
    return FlakyStore()
