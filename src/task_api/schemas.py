from __future__ import annotations

from datetime import datetime
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


# PUBLIC_INTERFACE
class TaskCreate(BaseModel):
    """
    Request body for creating a task. Documents the payload in OpenAPI; the
    body itself is parsed and validated by the validation module so that each
    failure gets its own message.
    """

    model_config = ConfigDict(json_schema_extra={"example": {"title": "Buy milk"}})

    title: str = Field(..., description="Task title, 1..200 characters after trimming", max_length=200)


# PUBLIC_INTERFACE
class TaskUpdate(BaseModel):
    """
    Request body for updating a task. At least one field must be provided;
    omitted fields keep their stored value.
    """

    model_config = ConfigDict(json_schema_extra={"example": {"completed": True}})

    title: Optional[str] = Field(default=None, description="New title", max_length=200)
    completed: Optional[bool] = Field(default=None, description="New completion status")


# PUBLIC_INTERFACE
class TaskOut(BaseModel):
    """
    Schema returned by the API for a task.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "title": "Buy milk",
                "completed": False,
                "createdAt": "2025-01-25T10:15:30Z",
            }
        },
    )

    id: int = Field(..., description="Unique identifier of the task")
    title: str = Field(..., description="Task title")
    completed: bool = Field(..., description="Completion status flag")
    created_at: datetime = Field(..., alias="createdAt", description="Creation timestamp")


# PUBLIC_INTERFACE
class Envelope(BaseModel, Generic[T]):
    """
    Uniform response wrapper: `data` on success, `error` on failure.
    """

    success: bool = Field(..., description="Whether the request succeeded")
    data: Optional[T] = Field(default=None, description="Response payload")
    error: Optional[str] = Field(default=None, description="Error message when success is false")


# PUBLIC_INTERFACE
class ErrorEnvelope(BaseModel):
    """
    Failure form of the envelope, used to document error responses.
    """

    model_config = ConfigDict(json_schema_extra={"example": {"success": False, "error": "task not found"}})

    success: bool = Field(default=False, description="Always false")
    error: str = Field(..., description="What went wrong")
