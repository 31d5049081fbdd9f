"""
todosync Server — HTTP Surface for the Store
=============================================
FastAPI application exposing the Store to clients.

Launch:
    python -m todosync.cli serve          # Via CLI
    python -m todosync.server             # Direct, settings from env

Endpoints:
    GET  /, /hello            → {"msg": "ECHO", "payload": ...} liveness probe
    GET  /db, /all            → {"projectList": [...], "todoList": [...]}
    POST /db                  → Replace the whole state, echo the body
    GET  /db/tasks/{task_id}  → One task, 404 if unknown
    POST /sync                → Apply an ordered patch list, return the new state
"""

from __future__ import annotations

import logging
import time
from typing import Any

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from todosync import __version__
from todosync.config import ServerConfig, configure_logging
from todosync.errors import PersistenceError, ValidationError
from todosync.merger import PatchMerger
from todosync.models import decode_patches, decode_state
from todosync.storage import JsonFileBackend
from todosync.store import Store

logger = logging.getLogger(__name__)


def create_app(store: Store) -> FastAPI:
    """Build the app around an explicitly owned Store."""
    app = FastAPI(title="todosync", version=__version__)
    app.state.store = store

    # ─── Middleware & Errors ──────────────────────────────

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = (time.perf_counter() - start) * 1000
        logger.info("%s %s %d %.1fms", request.method, request.url.path,
                    response.status_code, elapsed)
        return response

    @app.exception_handler(ValidationError)
    async def on_validation_error(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=422,
            content=jsonable_encoder({"detail": str(exc), "errors": exc.errors}),
        )

    @app.exception_handler(PersistenceError)
    async def on_persistence_error(request: Request, exc: PersistenceError):
        logger.error("Persistence failure on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    # ─── Routes — Probe ───────────────────────────────────

    @app.get("/")
    @app.get("/hello")
    async def hello():
        return {"msg": "ECHO", "payload": "payload"}

    # ─── Routes — State ───────────────────────────────────

    @app.get("/db")
    @app.get("/all")
    async def get_db():
        return JSONResponse(store.get_state())

    @app.post("/db")
    async def post_db(payload: Any = Body(...)):
        state = decode_state(payload)
        store.replace_state(state.project_list, state.todo_list)
        return JSONResponse(state.to_json())

    @app.get("/db/tasks/{task_id}")
    async def get_task(task_id: str):
        task = store.get_task_by_id(task_id)
        if task is None:
            raise HTTPException(status_code=404, detail=f"Unknown task '{task_id}'")
        return JSONResponse(task.to_json())

    # ─── Routes — Sync ────────────────────────────────────

    @app.post("/sync")
    async def sync(payload: Any = Body(...)):
        patches = decode_patches(payload)
        result = store.apply_patches(patches)
        body = store.get_state()
        if result.warnings:
            body["warnings"] = result.warnings
        return JSONResponse(body)

    return app


def build_store(config: ServerConfig) -> Store:
    """Open the configured file-backed Store, seeding it if asked."""
    store = Store(
        backend=JsonFileBackend(config.db_path),
        merger=PatchMerger(stale_guard=config.stale_guard),
    )
    if config.seed is not None and store.seed(config.seed):
        logger.info("Seeded empty store with seed %d", config.seed)
    return store


def run_server(config: ServerConfig = None):
    """Launch the todosync server."""
    import uvicorn

    config = config or ServerConfig.from_env()
    configure_logging(config.log_level)
    app = create_app(build_store(config))

    print(f"\n─── todosync ───")
    print(f"  http://localhost:{config.port}")
    print(f"  store: {config.db_path}")
    print(f"  Press Ctrl+C to stop\n")

    uvicorn.run(app, host=config.host, port=config.port, log_level="warning")


if __name__ == "__main__":
    run_server()
