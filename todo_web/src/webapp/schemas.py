from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import TodoPriority
from .utils import display_icon


# PUBLIC_INTERFACE
class Todo(BaseModel):
    """
    A row of the remote `todos` table.

    Unknown columns returned by the store are ignored.
    """

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "id": "0b6b3a4e-5d0f-4a53-9d1e-2f6f4c1f7a10",
                "text": "Buy milk",
                "completed": False,
                "priority": "medium",
                "delete_flag": False,
                "created_at": "2025-01-25T10:15:30.123456+00:00",
                "updated_at": "2025-01-25T10:15:30.100000+00:00",
            }
        },
    )

    id: str = Field(..., description="Store-assigned unique identifier")
    text: str = Field(..., description="Todo content")
    completed: bool = Field(default=False, description="Completion status flag")
    priority: TodoPriority = Field(default=TodoPriority.MEDIUM, description="low, medium or high")
    delete_flag: bool = Field(default=False, description="Soft-delete marker")
    created_at: datetime = Field(..., description="Store-assigned creation timestamp")
    updated_at: Optional[datetime] = Field(default=None, description="Last client-side write timestamp")


# PUBLIC_INTERFACE
class TodoSubmit(BaseModel):
    """
    Body for submitting a new todo.

    Omitted fields fall back to the pending draft held by the controller.
    """

    model_config = ConfigDict(json_schema_extra={"example": {"text": "Buy milk", "priority": "medium"}})

    text: Optional[str] = Field(default=None, description="Todo content; must not be blank")
    priority: Optional[TodoPriority] = Field(default=None, description="low, medium or high")


# PUBLIC_INTERFACE
class DraftUpdate(BaseModel):
    """Partial update of the pending input fields."""

    text: Optional[str] = Field(default=None, description="Pending todo text")
    priority: Optional[TodoPriority] = Field(default=None, description="Pending priority")


class DraftOut(BaseModel):
    text: str = Field(..., description="Pending todo text")
    priority: TodoPriority = Field(..., description="Pending priority")


class TodoItemOut(Todo):
    icon: str = Field(..., description="Display icon for the row")

    @classmethod
    def from_todo(cls, todo: Todo) -> "TodoItemOut":
        return cls(**todo.model_dump(), icon=display_icon(todo.completed, todo.priority))


class TodoStatsOut(BaseModel):
    total: int = Field(..., description="Number of visible todos")
    completed: int = Field(..., description="Number of completed todos")
    pending: int = Field(..., description="Number of todos still to do")
    summary: str = Field(..., description="Display line, e.g. '待完成：1 | 已完成：0'")


# PUBLIC_INTERFACE
class TodoViewOut(BaseModel):
    """
    Snapshot of the controller state returned by every endpoint.
    """

    items: List[TodoItemOut] = Field(..., description="Visible todos, newest first")
    stats: TodoStatsOut = Field(..., description="Counts over the visible todos")
    draft: DraftOut = Field(..., description="Pending input fields")
    last_error: Optional[str] = Field(default=None, description="Message of the most recent failed action")
