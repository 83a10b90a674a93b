from __future__ import annotations

from typing import Any, List

from fastapi import APIRouter, Depends, Request, status

from ..errors import NotFoundError, PersistenceError
from ..models import TaskEntity
from ..repositories import TaskStore
from ..schemas import Envelope, ErrorEnvelope, TaskCreate, TaskOut, TaskUpdate
from ..utils import parse_json_body, success_envelope
from ..validation import validate_create_payload, validate_id, validate_update_payload

router = APIRouter(
    prefix="/api/tasks",
    tags=["tasks"],
)

_ERROR_RESPONSES = {
    400: {"model": ErrorEnvelope, "description": "Invalid id or request body"},
    500: {"model": ErrorEnvelope, "description": "Storage failure"},
}


def _json_request_body(model: type) -> dict:
    # The body is parsed by hand; this only documents it.
    return {
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": model.model_json_schema()}},
        }
    }


def get_store(request: Request) -> TaskStore:
    """
    Dependency returning the TaskStore attached to the running application.
    """
    return request.app.state.store


def path_task_id(task_id: str) -> int:
    """
    Dependency validating the `{task_id}` path segment; malformed ids are a 400,
    not a FastAPI 422.
    """
    return validate_id(task_id)


async def json_body(request: Request) -> Any:
    """
    Dependency reading the raw request body and decoding it as JSON.
    """
    return parse_json_body(await request.body())


def _require(store: TaskStore, task_id: int) -> TaskEntity:
    item = store.get_by_id(task_id)
    if item is None:
        raise NotFoundError(task_id)
    return item


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=Envelope[List[TaskOut]],
    response_model_exclude_unset=True,
    summary="List Tasks",
    description="Return every task, newest first.",
    responses={200: {"description": "Tasks retrieved"}, 500: _ERROR_RESPONSES[500]},
)
def list_tasks(store: TaskStore = Depends(get_store)) -> Any:
    """
    List all tasks sorted by creation time, descending.
    """
    return success_envelope(store.list_all())


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=Envelope[TaskOut],
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Create a task from a non-empty title (at most 200 characters) and return it.",
    responses={201: {"description": "Task created"}, **_ERROR_RESPONSES},
    openapi_extra=_json_request_body(TaskCreate),
)
def create_task(body: Any = Depends(json_body), store: TaskStore = Depends(get_store)) -> Any:
    """
    Create a new task; the title is trimmed before it is stored.
    """
    title = validate_create_payload(body)
    return success_envelope(store.create(title))


# PUBLIC_INTERFACE
@router.get(
    "/{task_id}",
    response_model=Envelope[TaskOut],
    response_model_exclude_unset=True,
    summary="Get Task",
    description="Get a single task by ID.",
    responses={
        200: {"description": "Task found"},
        404: {"model": ErrorEnvelope, "description": "Task not found"},
        **_ERROR_RESPONSES,
    },
)
def get_task(valid_id: int = Depends(path_task_id), store: TaskStore = Depends(get_store)) -> Any:
    return success_envelope(_require(store, valid_id))


# PUBLIC_INTERFACE
@router.patch(
    "/{task_id}",
    response_model=Envelope[TaskOut],
    response_model_exclude_unset=True,
    summary="Update Task",
    description="Change the title and/or completion status of a task. Omitted fields are kept.",
    responses={
        200: {"description": "Task updated"},
        404: {"model": ErrorEnvelope, "description": "Task not found"},
        **_ERROR_RESPONSES,
    },
    openapi_extra=_json_request_body(TaskUpdate),
)
def update_task(
    valid_id: int = Depends(path_task_id),
    body: Any = Depends(json_body),
    store: TaskStore = Depends(get_store),
) -> Any:
    """
    Partial update of a task.
    """
    patch = validate_update_payload(body)
    updated = store.update(valid_id, patch)
    if updated is None:
        raise NotFoundError(valid_id)
    return success_envelope(updated)


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    response_model=Envelope[Any],
    response_model_exclude_unset=True,
    summary="Delete Task",
    description="Permanently delete a task by ID. Responds with null data.",
    responses={
        200: {"description": "Task deleted"},
        404: {"model": ErrorEnvelope, "description": "Task not found"},
        **_ERROR_RESPONSES,
    },
)
def delete_task(valid_id: int = Depends(path_task_id), store: TaskStore = Depends(get_store)) -> Any:
    """
    Delete a task. Returns 404 if it does not exist.
    """
    _require(store, valid_id)
    if not store.delete(valid_id):
        raise PersistenceError("failed to delete task")
    return success_envelope(None)
