from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable

from .models import COMPLETED_ICON, PRIORITY_ICONS, TodoPriority


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# PUBLIC_INTERFACE
def display_icon(completed: bool, priority: TodoPriority | str) -> str:
    """Return the checkmark for completed todos, otherwise the priority icon."""
    if completed:
        return COMPLETED_ICON
    return PRIORITY_ICONS[TodoPriority(priority)]


# PUBLIC_INTERFACE
def todo_stats(completed_flags: Iterable[bool]) -> Dict[str, Any]:
    """
    Count visible todos by completion state.

    Args:
        completed_flags: The `completed` value of every visible todo.

    Returns:
        Dict with keys: total, completed, pending, summary.
    """
    flags = list(completed_flags)
    done = sum(1 for f in flags if f)
    pending = len(flags) - done
    return {
        "total": len(flags),
        "completed": done,
        "pending": pending,
        "summary": f"待完成：{pending} | 已完成：{done}",
    }
