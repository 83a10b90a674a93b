from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .errors import ErrorKind, TaskError
from .logging_setup import setup_logging
from .repositories import TaskStore, build_store
from .routers import tasks as tasks_router
from .settings import Settings, get_settings
from .utils import error_envelope

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "tasks",
        "description": "Create, list, complete and delete tasks.",
    },
]


async def task_error_handler(request: Request, exc: TaskError) -> JSONResponse:
    """
    Convert a TaskError into the failure envelope with the status of its kind.
    """
    if exc.kind is ErrorKind.PERSISTENCE_FAILURE:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.kind.value, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Last-resort handler: any other exception becomes a 500 envelope carrying
    its message when it has one.
    """
    logger.error("Unhandled exception in %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content=error_envelope(str(exc) or "internal server error"))


# PUBLIC_INTERFACE
def create_app(store: Optional[TaskStore] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application around a TaskStore.

    Args:
        store: Store to serve; built from settings when omitted.
        settings: Settings to use; read from the environment when omitted.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)
    task_store = store if store is not None else build_store(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        app.state.store.close()

    app = FastAPI(
        title="Task Manager Backend",
        description="REST API for a task list backed by MySQL, with an in-memory fallback.",
        version="0.1.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.store = task_store
    app.state.settings = settings

    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(TaskError, task_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # PUBLIC_INTERFACE
    @app.get("/", summary="Health Check", tags=["health"])
    def health_check(request: Request):
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health and the active store mode.
        """
        mode = request.app.state.store.ensure_ready()
        return {"message": "Healthy", "backend": mode.value}

    app.include_router(tasks_router.router)
    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn using HOST/PORT from the environment."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
