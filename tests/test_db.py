import pytest
import sqlalchemy as sa

from task_api.db import (
    SQLRepository,
    build_engine,
    connect_sql_repository,
    database_url,
    driver_connect_args,
    tasks_table,
)
from task_api.errors import ErrorKind, PersistenceError
from task_api.models import TaskPatch


class TestDatabaseUrl:
    def test_built_from_mysql_settings(self, settings_factory):
        url = database_url(
            settings_factory(
                database_url=None,
                mysql_host="db.internal",
                mysql_user="tasks",
                mysql_password="p@ss:word",
                mysql_database="task_manager",
                mysql_port=3307,
            )
        )
        assert url.drivername == "mysql+pymysql"
        assert url.host == "db.internal"
        assert url.port == 3307
        assert url.username == "tasks"
        assert url.password == "p@ss:word"
        assert url.database == "task_manager"
        assert url.query["charset"] == "utf8mb4"

    def test_database_url_overrides(self, settings_factory):
        assert database_url(settings_factory(database_url="sqlite:///x.db")) == "sqlite:///x.db"

    def test_mysql_engine_pool_size(self, settings_factory):
        engine = build_engine(settings_factory(database_url=None, mysql_connection_limit=4, mysql_ssl=True))
        try:
            assert engine.url.get_backend_name() == "mysql"
            assert engine.pool.size() == 4
        finally:
            engine.dispose()

    def test_mysql_session_runs_in_utc(self, settings_factory):
        settings = settings_factory(database_url=None, mysql_connect_timeout=5)
        args = driver_connect_args(settings, sa.engine.make_url(database_url(settings)))
        assert args["init_command"] == "SET time_zone = '+00:00'"
        assert args["connect_timeout"] == 5
        assert "ssl" not in args

    def test_mysql_tls_connect_args(self, settings_factory):
        settings = settings_factory(database_url=None, mysql_ssl=True, mysql_ssl_ca="/etc/ssl/ca.pem")
        args = driver_connect_args(settings, sa.engine.make_url(database_url(settings)))
        assert args["ssl"] == {"ca": "/etc/ssl/ca.pem"}
        assert args["init_command"] == "SET time_zone = '+00:00'"

    def test_sqlite_connect_args(self, settings_factory):
        settings = settings_factory(database_url="sqlite:///x.db")
        assert driver_connect_args(settings, sa.engine.make_url("sqlite:///x.db")) == {"check_same_thread": False}


class TestSchema:
    def test_table_and_index_created(self, sqlite_engine):
        connect_sql_repository(engine=sqlite_engine)
        inspector = sa.inspect(sqlite_engine)
        assert "tasks" in inspector.get_table_names()
        columns = {c["name"] for c in inspector.get_columns("tasks")}
        assert columns == {"id", "title", "completed", "created_at"}
        indexes = {i["name"]: i["column_names"] for i in inspector.get_indexes("tasks")}
        assert indexes["idx_created_at"] == ["created_at"]

    def test_schema_creation_is_idempotent(self, sqlite_engine):
        repo = connect_sql_repository(engine=sqlite_engine)
        repo.create("survives")
        connect_sql_repository(engine=sqlite_engine)
        assert [t["title"] for t in SQLRepository(sqlite_engine).list_all()] == ["survives"]

    def test_defaults_applied_by_database(self, sqlite_engine):
        connect_sql_repository(engine=sqlite_engine)
        with sqlite_engine.begin() as conn:
            conn.execute(tasks_table.insert().values(title="raw insert"))
        task = SQLRepository(sqlite_engine).list_all()[0]
        assert task["completed"] is False
        assert task["created_at"].tzinfo is not None


class TestPersistenceFailures:
    def test_id_beyond_column_range_matches_nothing(self, sqlite_engine):
        repo = connect_sql_repository(engine=sqlite_engine)
        repo.create("kept")
        huge = 2**64
        assert repo.get(huge) is None
        assert repo.update(huge, TaskPatch(completed=True)) is None
        assert repo.delete(huge) is False
        assert [t["title"] for t in repo.list_all()] == ["kept"]

    def test_driver_errors_are_wrapped(self, sqlite_engine):
        repo = connect_sql_repository(engine=sqlite_engine)
        with sqlite_engine.begin() as conn:
            conn.execute(sa.text("DROP TABLE tasks"))

        for call in (repo.list_all, lambda: repo.get(1), lambda: repo.create("x"), lambda: repo.delete(1)):
            with pytest.raises(PersistenceError) as excinfo:
                call()
            assert excinfo.value.kind is ErrorKind.PERSISTENCE_FAILURE
            assert "no such table" in excinfo.value.detail
            assert isinstance(excinfo.value.original_error, sa.exc.SQLAlchemyError)

    def test_connect_failure_propagates(self, tmp_path, settings_factory):
        settings = settings_factory(database_url=f"sqlite:///{tmp_path / 'nope' / 'tasks.db'}")
        with pytest.raises(sa.exc.OperationalError):
            connect_sql_repository(settings)
