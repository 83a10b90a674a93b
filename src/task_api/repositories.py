from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from enum import Enum
from threading import Lock, RLock
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .models import TaskEntity, TaskPatch
from .settings import Settings, get_settings
from .validation import parse_patch, validate_id, validate_title

logger = logging.getLogger(__name__)

# Example tasks served when the database cannot be reached: (title, completed)
FALLBACK_SEED: Tuple[Tuple[str, bool], ...] = (
    ("Welcome! This task list is running without a database", False),
    ("Tick a task to mark it as completed", True),
)


# PUBLIC_INTERFACE
class Repository(ABC):
    """Abstract repository contract for task storage backends.

    Implementations receive already validated arguments; validation lives in
    TaskStore.
    """

    @abstractmethod
    def list_all(self) -> List[TaskEntity]:
        """Return every task, newest first (created_at desc, then id desc)."""

    @abstractmethod
    def get(self, task_id: int) -> Optional[TaskEntity]:
        """Return a TaskEntity by id, or None if not found."""

    @abstractmethod
    def create(self, title: str) -> TaskEntity:
        """Create and return a new TaskEntity."""

    @abstractmethod
    def update(self, task_id: int, patch: TaskPatch) -> Optional[TaskEntity]:
        """Apply the supplied fields of `patch`. Return the updated entity or None if not found."""

    @abstractmethod
    def delete(self, task_id: int) -> bool:
        """Delete a TaskEntity by id. Return True if deleted, False if not found."""

    def close(self) -> None:
        """Release any resources held by the backend."""


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory repository, used as the database fallback.
    """

    def __init__(self, seed: Iterable[Tuple[str, bool]] = ()) -> None:
        self._lock = RLock()
        self._items: Dict[int, TaskEntity] = {}
        self._next_id = 1
        self._last_created: Optional[datetime] = None
        for title, completed in seed:
            entity = self.create(title)
            if completed:
                self.update(entity["id"], TaskPatch(completed=True))

    def _now(self) -> datetime:
        # Timestamps are strictly increasing so that ordering never depends on ties.
        now = datetime.now(timezone.utc)
        if self._last_created is not None and now <= self._last_created:
            now = self._last_created + timedelta(microseconds=1)
        self._last_created = now
        return now

    def list_all(self) -> List[TaskEntity]:
        with self._lock:
            items = sorted(self._items.values(), key=lambda t: (t["created_at"], t["id"]), reverse=True)
            return [t.copy() for t in items]

    def get(self, task_id: int) -> Optional[TaskEntity]:
        with self._lock:
            item = self._items.get(task_id)
            return None if item is None else item.copy()

    def create(self, title: str) -> TaskEntity:
        with self._lock:
            entity: TaskEntity = {
                "id": self._next_id,
                "title": title,
                "completed": False,
                "created_at": self._now(),
            }
            self._next_id += 1
            self._items[entity["id"]] = entity
            return entity.copy()

    def update(self, task_id: int, patch: TaskPatch) -> Optional[TaskEntity]:
        with self._lock:
            existing = self._items.get(task_id)
            if existing is None:
                return None

            updated = existing.copy()
            updated.update(patch.changes())  # type: ignore[typeddict-item]
            self._items[task_id] = updated
            return updated.copy()

    def delete(self, task_id: int) -> bool:
        with self._lock:
            return self._items.pop(task_id, None) is not None


class StoreMode(str, Enum):
    CONNECTED = "connected"
    FALLBACK = "fallback"


# PUBLIC_INTERFACE
class TaskStore:
    """
    Task persistence with a relational backend and an in-memory fallback.

    The backend is chosen once, on first use: `connect` is called to open the
    database repository. If it raises, the store switches to an in-memory
    repository seeded with example tasks and stays there for its lifetime.
    Every operation validates its arguments and raises InvalidInputError on
    bad input.
    """

    def __init__(
        self,
        connect: Optional[Callable[[], Repository]],
        *,
        seed: Iterable[Tuple[str, bool]] = FALLBACK_SEED,
    ) -> None:
        self._connect = connect
        self._seed = tuple(seed)
        self._lock = Lock()
        self._backend: Optional[Repository] = None
        self._mode: Optional[StoreMode] = None

    @property
    def mode(self) -> Optional[StoreMode]:
        """Current mode, or None before the first operation."""
        return self._mode

    def ensure_ready(self) -> StoreMode:
        """Connect (or fall back) if that has not happened yet and return the mode."""
        self._repository()
        mode = self._mode
        if mode is None:
            raise RuntimeError("task store was closed while it was being opened")
        return mode

    def _repository(self) -> Repository:
        backend = self._backend
        if backend is not None:
            return backend
        with self._lock:
            if self._backend is not None:
                return self._backend
            if self._connect is None:
                logger.info("No database configured; serving tasks from memory")
                self._use_fallback()
            else:
                try:
                    self._backend = self._connect()
                except Exception as exc:
                    logger.warning("Database unavailable, falling back to in-memory task store: %s", exc)
                    self._use_fallback()
                else:
                    self._mode = StoreMode.CONNECTED
                    logger.info("Task store connected to the database")
            return self._backend  # type: ignore[return-value]

    def _use_fallback(self) -> None:
        self._backend = InMemoryRepository(seed=self._seed)
        self._mode = StoreMode.FALLBACK

    def list_all(self) -> List[TaskEntity]:
        return self._repository().list_all()

    def get_by_id(self, task_id: Any) -> Optional[TaskEntity]:
        return self._repository().get(validate_id(task_id))

    def create(self, title: Any) -> TaskEntity:
        return self._repository().create(validate_title(title))

    def update(self, task_id: Any, patch: Union[TaskPatch, Mapping[str, Any]]) -> Optional[TaskEntity]:
        """
        Apply a partial update. An empty patch returns the stored task unchanged.
        """
        task_id = validate_id(task_id)
        patch = parse_patch(patch)
        repo = self._repository()
        if patch.is_empty:
            return repo.get(task_id)
        return repo.update(task_id, patch)

    def delete(self, task_id: Any) -> bool:
        return self._repository().delete(validate_id(task_id))

    def close(self) -> None:
        """Release the connection pool; the next operation reconnects lazily."""
        with self._lock:
            backend, mode = self._backend, self._mode
            if mode is StoreMode.CONNECTED and backend is not None:
                backend.close()
                self._backend = None
                self._mode = None


# PUBLIC_INTERFACE
def build_store(settings: Optional[Settings] = None) -> TaskStore:
    """
    Build the TaskStore configured by settings.
    - memory: in-memory store only
    - mysql: database store (MYSQL_* or DATABASE_URL), falling back to memory
    """
    settings = settings or get_settings()
    if settings.persistence_backend == "memory":
        return TaskStore(None)

    from .db import connect_sql_repository

    return TaskStore(lambda: connect_sql_repository(settings))
