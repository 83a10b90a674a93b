from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, TypedDict

from pydantic import BaseModel, ConfigDict, Field


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    A lightweight domain model representing a stored task, shared by every
    storage backend.

    Fields:
    - id: Unique positive integer identifier, assigned by the store
    - title: Short title (1..200 chars, trimmed before it reaches the store)
    - completed: Boolean completion flag
    - created_at: UTC creation timestamp (datetime), the list sort key
    """

    id: int
    title: str
    completed: bool
    created_at: datetime


# PUBLIC_INTERFACE
class TaskPatch(BaseModel):
    """
    Partial update of a task.

    Both fields are optional. Presence is tracked through the model's set
    fields rather than by comparing against None, so `TaskPatch()` is an empty
    patch while `TaskPatch(completed=False)` explicitly clears the flag.
    """

    model_config = ConfigDict(frozen=True)

    title: Optional[str] = Field(default=None, description="New title for the task")
    completed: Optional[bool] = Field(default=None, strict=True, description="New completion status")

    @property
    def has_title(self) -> bool:
        return "title" in self.model_fields_set

    @property
    def has_completed(self) -> bool:
        return "completed" in self.model_fields_set

    @property
    def is_empty(self) -> bool:
        return not (self.has_title or self.has_completed)

    def changes(self) -> Dict[str, Any]:
        """Return only the fields that were supplied."""
        return {name: getattr(self, name) for name in ("title", "completed") if name in self.model_fields_set}
