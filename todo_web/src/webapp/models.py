from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional, TypedDict


# PUBLIC_INTERFACE
class TodoPriority(str, Enum):
    """Priority levels accepted by the `todos` table."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


PRIORITY_ICONS = {
    TodoPriority.HIGH: "🔴",
    TodoPriority.MEDIUM: "🟡",
    TodoPriority.LOW: "🟢",
}
COMPLETED_ICON = "✅"


# PUBLIC_INTERFACE
class TodoRow(TypedDict):
    """
    A row of the `todos` table as held by process-local stores.

    Fields:
    - id: Opaque unique identifier (UUID string), assigned by the store
    - text: Todo content
    - completed: Boolean completion flag
    - priority: One of low/medium/high
    - delete_flag: Soft-delete marker; flagged rows are hidden from reads
    - created_at: Store-assigned creation timestamp (display sort key)
    - updated_at: Client-supplied timestamp of the last write
    """

    id: str
    text: str
    completed: bool
    priority: str
    delete_flag: bool
    created_at: datetime
    updated_at: Optional[datetime]
