from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import sqlalchemy as sa
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError

from .errors import PersistenceError
from .models import TaskEntity, TaskPatch
from .repositories import Repository
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

metadata = sa.MetaData()

# Largest value a signed 64-bit integer column can hold
MAX_TASK_ID = 2**63 - 1

tasks_table = sa.Table(
    "tasks",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("title", sa.String(255), nullable=False),
    sa.Column("completed", sa.Boolean, nullable=False, server_default=sa.text("0")),
    sa.Column("created_at", sa.TIMESTAMP, nullable=False, server_default=sa.func.current_timestamp()),
    sa.Index("idx_created_at", "created_at"),
    mysql_engine="InnoDB",
    mysql_charset="utf8mb4",
    mysql_collate="utf8mb4_unicode_ci",
    sqlite_autoincrement=True,
)


def database_url(settings: Settings) -> Union[str, URL]:
    """DATABASE_URL when set, otherwise a MySQL URL built from the MYSQL_* settings."""
    if settings.database_url:
        return settings.database_url
    return URL.create(
        "mysql+pymysql",
        username=settings.mysql_user,
        password=settings.mysql_password or None,
        host=settings.mysql_host,
        port=settings.mysql_port,
        database=settings.mysql_database,
        query={"charset": "utf8mb4"},
    )


def driver_connect_args(settings: Settings, url: URL) -> Dict[str, Any]:
    """Arguments handed to the DBAPI `connect()` call for this backend."""
    backend = url.get_backend_name()
    connect_args: Dict[str, Any] = {}
    if backend == "sqlite":
        # Route handlers run in a thread pool
        connect_args["check_same_thread"] = False
    elif backend == "mysql":
        connect_args["connect_timeout"] = settings.mysql_connect_timeout
        # CURRENT_TIMESTAMP is rendered in the session time zone; _as_utc expects UTC
        connect_args["init_command"] = "SET time_zone = '+00:00'"
        if settings.mysql_ssl:
            connect_args["ssl"] = (
                {"ca": settings.mysql_ssl_ca} if settings.mysql_ssl_ca else {"check_hostname": False}
            )
    return connect_args


def build_engine(settings: Settings) -> Engine:
    url = sa.engine.make_url(database_url(settings))

    engine_kwargs: Dict[str, Any] = {}
    if url.get_backend_name() != "sqlite":
        engine_kwargs.update(
            pool_size=settings.mysql_connection_limit,
            max_overflow=0,
            pool_pre_ping=True,
            pool_recycle=3600,
        )

    return sa.create_engine(url, connect_args=driver_connect_args(settings, url), **engine_kwargs)


def _as_utc(value: datetime) -> datetime:
    # TIMESTAMP columns come back naive; they are read as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SQLRepository(Repository):
    """
    Repository over the `tasks` table. Every operation runs in its own
    transaction on a pooled connection; driver errors become PersistenceError.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @property
    def engine(self) -> Engine:
        return self._engine

    def init_schema(self) -> None:
        """Create the tasks table and its created_at index if absent."""
        metadata.create_all(self._engine)
        logger.info("Ensured table %r exists", tasks_table.name)

    def _row_to_entity(self, row: sa.Row) -> TaskEntity:
        m = row._mapping
        return {
            "id": int(m["id"]),
            "title": str(m["title"]),
            "completed": bool(m["completed"]),
            "created_at": _as_utc(m["created_at"]),
        }

    def _select_one(self, conn: sa.Connection, task_id: int) -> Optional[sa.Row]:
        return conn.execute(sa.select(tasks_table).where(tasks_table.c.id == task_id)).first()

    def _fail(self, action: str, exc: SQLAlchemyError) -> PersistenceError:
        logger.error("Failed to %s: %s", action, exc, exc_info=True)
        message = str(getattr(exc, "orig", None) or exc)
        return PersistenceError(message, original_error=exc)

    def list_all(self) -> List[TaskEntity]:
        stmt = sa.select(tasks_table).order_by(tasks_table.c.created_at.desc(), tasks_table.c.id.desc())
        try:
            with self._engine.connect() as conn:
                return [self._row_to_entity(r) for r in conn.execute(stmt)]
        except SQLAlchemyError as exc:
            raise self._fail("list tasks", exc) from exc

    def get(self, task_id: int) -> Optional[TaskEntity]:
        if task_id > MAX_TASK_ID:
            return None
        try:
            with self._engine.connect() as conn:
                row = self._select_one(conn, task_id)
        except SQLAlchemyError as exc:
            raise self._fail("get task", exc) from exc
        return self._row_to_entity(row) if row else None

    def create(self, title: str) -> TaskEntity:
        try:
            with self._engine.begin() as conn:
                result = conn.execute(tasks_table.insert().values(title=title, completed=False))
                row = self._select_one(conn, result.inserted_primary_key[0])
        except SQLAlchemyError as exc:
            raise self._fail("create task", exc) from exc
        if row is None:
            raise PersistenceError("created task could not be read back")
        return self._row_to_entity(row)

    def update(self, task_id: int, patch: TaskPatch) -> Optional[TaskEntity]:
        if task_id > MAX_TASK_ID:
            return None
        try:
            with self._engine.begin() as conn:
                if self._select_one(conn, task_id) is None:
                    return None
                changes = patch.changes()
                if changes:
                    conn.execute(tasks_table.update().where(tasks_table.c.id == task_id).values(**changes))
                row = self._select_one(conn, task_id)
        except SQLAlchemyError as exc:
            raise self._fail("update task", exc) from exc
        return self._row_to_entity(row) if row else None

    def delete(self, task_id: int) -> bool:
        if task_id > MAX_TASK_ID:
            return False
        try:
            with self._engine.begin() as conn:
                result = conn.execute(tasks_table.delete().where(tasks_table.c.id == task_id))
        except SQLAlchemyError as exc:
            raise self._fail("delete task", exc) from exc
        return result.rowcount > 0

    def close(self) -> None:
        self._engine.dispose()


# PUBLIC_INTERFACE
def connect_sql_repository(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> SQLRepository:
    """
    Open the pooled engine, verify a connection and create the schema.

    Raises whatever the driver raises when the database is unreachable; the
    caller decides whether to fall back.
    """
    engine = engine or build_engine(settings or get_settings())
    try:
        with engine.connect() as conn:
            conn.execute(sa.text("SELECT 1"))
        repo = SQLRepository(engine)
        repo.init_schema()
    except Exception:
        engine.dispose()
        raise
    return repo
