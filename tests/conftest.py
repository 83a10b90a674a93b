import dataclasses
import os

import pytest
import sqlalchemy as sa
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

# Never reach for a real MySQL server while importing the app module in tests
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")

from task_api.db import connect_sql_repository  # noqa: E402
from task_api.main import create_app  # noqa: E402
from task_api.repositories import TaskStore  # noqa: E402
from task_api.settings import get_settings  # noqa: E402


def _make_settings(**overrides):
    return dataclasses.replace(get_settings(), **overrides)


@pytest.fixture
def settings_factory():
    return _make_settings


@pytest.fixture
def settings():
    return _make_settings(persistence_backend="memory")


@pytest.fixture
def sqlite_engine():
    engine = sa.create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    yield engine
    engine.dispose()


@pytest.fixture
def memory_store():
    return TaskStore(None, seed=())


@pytest.fixture
def sql_store(sqlite_engine):
    return TaskStore(lambda: connect_sql_repository(engine=sqlite_engine), seed=())


@pytest.fixture(params=["memory", "sqlite"])
def store(request):
    return request.getfixturevalue({"memory": "memory_store", "sqlite": "sql_store"}[request.param])


@pytest.fixture
def client(store, settings):
    app = create_app(store=store, settings=settings)
    with TestClient(app) as c:
        yield c
