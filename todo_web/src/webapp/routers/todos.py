from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse

from ..controller import ActionResult, ActionStatus, TodoController
from ..schemas import DraftOut, DraftUpdate, TodoItemOut, TodoStatsOut, TodoSubmit, TodoViewOut

router = APIRouter(
    prefix="/api/v1/todos",
    tags=["todos"],
)

_FAILURE_RESPONSES = {502: {"description": "The todo store call failed"}}


async def get_controller(request: Request) -> TodoController:
    """
    Dependency returning the controller built during application startup.
    """
    return request.app.state.controller


def _view(controller: TodoController) -> TodoViewOut:
    return TodoViewOut(
        items=[TodoItemOut.from_todo(t) for t in controller.todos],
        stats=TodoStatsOut(**controller.stats()),
        draft=DraftOut(text=controller.draft_text, priority=controller.draft_priority),
        last_error=controller.last_error,
    )


def _failure_response(result: ActionResult) -> Optional[JSONResponse]:
    if result.status is not ActionStatus.FAILED:
        return None
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={
            "error": "RemoteError",
            "message": result.message,
            "detail": result.error.message if result.error else None,
        },
    )


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=TodoViewOut,
    summary="Get View State",
    description="Return the visible todos (newest first), their stats and the pending input fields.",
)
async def get_view(controller: TodoController = Depends(get_controller)) -> TodoViewOut:
    """
    Current view state, without contacting the store.
    """
    return _view(controller)


# PUBLIC_INTERFACE
@router.post(
    "/refresh",
    response_model=TodoViewOut,
    summary="Refresh Todos",
    description="Reload the visible todos from the store.",
    responses=_FAILURE_RESPONSES,
)
async def refresh(controller: TodoController = Depends(get_controller)):
    """
    Re-fetch the active rows and replace the local list.
    """
    result = await controller.load()
    failure = _failure_response(result)
    if failure is not None:
        return failure
    return _view(controller)


# PUBLIC_INTERFACE
@router.put(
    "/draft",
    response_model=TodoViewOut,
    summary="Update Draft",
    description="Update the pending text and/or priority used by the next submit.",
)
async def update_draft(payload: DraftUpdate, controller: TodoController = Depends(get_controller)) -> TodoViewOut:
    """
    Partial update of the pending input fields.
    """
    controller.set_draft(text=payload.text, priority=payload.priority)
    return _view(controller)


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=TodoViewOut,
    status_code=status.HTTP_201_CREATED,
    summary="Submit Todo",
    description=(
        "Create a new todo from the body, falling back to the draft for omitted fields. "
        "Blank text is rejected without contacting the store."
    ),
    responses={
        201: {"description": "Todo created; the refreshed view state is returned"},
        422: {"description": "Validation error"},
        **_FAILURE_RESPONSES,
    },
)
async def submit_todo(
    payload: Optional[TodoSubmit] = None,
    controller: TodoController = Depends(get_controller),
):
    """
    Submit a new todo.
    """
    payload = payload or TodoSubmit()
    result = await controller.submit(text=payload.text, priority=payload.priority)
    if result.status is ActionStatus.SKIPPED:
        return JSONResponse(
            status_code=422,
            content={
                "error": "ValidationError",
                "message": "Request validation failed",
                "detail": [{"loc": ["body", "text"], "msg": result.message, "type": "value_error"}],
            },
        )
    failure = _failure_response(result)
    if failure is not None:
        return failure
    return _view(controller)


# PUBLIC_INTERFACE
@router.post(
    "/{todo_id}/toggle",
    response_model=TodoViewOut,
    summary="Toggle Todo",
    description="Flip the completion flag of a visible todo and reload the list.",
    responses={
        200: {"description": "Todo toggled"},
        404: {"description": "Todo not found"},
        **_FAILURE_RESPONSES,
    },
)
async def toggle_todo(todo_id: str, controller: TodoController = Depends(get_controller)):
    """
    Toggle a todo. Returns 404 if the id is not in the visible list.
    """
    result = await controller.toggle(todo_id)
    if result.status is ActionStatus.SKIPPED:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Todo not found")
    failure = _failure_response(result)
    if failure is not None:
        return failure
    return _view(controller)


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    response_model=TodoViewOut,
    summary="Delete Todo",
    description="Soft-delete a todo (sets delete_flag) and reload the list.",
    responses={
        200: {"description": "Todo deleted"},
        404: {"description": "Todo not found"},
        **_FAILURE_RESPONSES,
    },
)
async def delete_todo(todo_id: str, controller: TodoController = Depends(get_controller)):
    """
    Soft-delete a todo. Returns 404 if the id is not in the visible list.
    """
    result = await controller.remove(todo_id)
    if result.status is ActionStatus.SKIPPED:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Todo not found")
    failure = _failure_response(result)
    if failure is not None:
        return failure
    return _view(controller)
