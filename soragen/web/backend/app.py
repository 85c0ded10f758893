"""FastAPI application factory."""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncGenerator, Callable

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from soragen.config import Config, load_config
from soragen.errors import InternalError
from soragen.kie.client import KieClient
from soragen.tasks import JobSubmitter
from soragen.tasks.models import utcnow

from .config import WebConfig
from .dependencies import get_config
from .routers import callback_router, health_router, tasks_router
from .services.task_service import TaskService
from .websocket.manager import WebSocketManager

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    service: TaskService = app.state.task_service
    ws_manager: WebSocketManager = app.state.ws_manager
    ws_manager.set_event_loop(asyncio.get_running_loop())
    if app.state.start_scheduler:
        service.start()
    logger.info(
        "Video queue ready (max concurrent tasks: %d)",
        service.admission.max_concurrent,
    )

    yield

    # Shutdown
    await service.stop()


def create_app(
    config: WebConfig | None = None,
    app_config: Config | None = None,
    submitter: JobSubmitter | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        config: Optional web configuration. Uses defaults if not provided.
        app_config: Optional queue/API configuration. Loaded from
            ``config.config_path`` and the environment if not provided.
        submitter: Optional job submitter. A Kie.ai client if not provided.
        clock: Source of the current time for the task core.

    Returns:
        The FastAPI application.
    """
    if config is None:
        config = get_config()
    if app_config is None:
        app_config = load_config(config.config_path)
    if submitter is None:
        submitter = KieClient(app_config.kie)

    ws_manager = WebSocketManager()
    service = TaskService(submitter, config=app_config.queue, clock=clock)
    service.notifier.subscribe(ws_manager.on_task_event)

    app = FastAPI(
        title="Sora Video Generator API",
        description="Queue for Sora 2 text-to-video jobs on Kie.ai",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.task_service = service
    app.state.ws_manager = ws_manager
    app.state.start_scheduler = config.start_scheduler

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Report malformed request bodies as 400."""
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(InternalError)
    async def domain_error_handler(request: Request, exc: InternalError) -> JSONResponse:
        logger.error("Failed %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": str(exc)},
        )

    @app.exception_handler(Exception)
    async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    # Include routers
    app.include_router(tasks_router, prefix="/api")
    app.include_router(callback_router, prefix="/api")
    app.include_router(health_router)

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket, client_id: str | None = None):
        """WebSocket endpoint for real-time task updates."""
        cid = client_id or f"client_{id(websocket)}"

        await ws_manager.connect(websocket, cid)
        await ws_manager.send_snapshot(cid, service.list_tasks())
        try:
            while True:
                try:
                    data = json.loads(await websocket.receive_text())
                except ValueError:
                    logger.debug("Ignoring non-JSON frame from %s", cid)
                    continue
                # Clients may ask for a fresh snapshot after missing updates
                if isinstance(data, dict) and data.get("type") == "refresh":
                    await ws_manager.send_snapshot(cid, service.list_tasks())
        except WebSocketDisconnect:
            pass
        finally:
            ws_manager.disconnect(cid)

    if config.static_dir is not None:
        if config.static_dir.is_dir():
            app.mount("/", StaticFiles(directory=config.static_dir, html=True), name="static")
        else:
            logger.warning("Static directory not found: %s", config.static_dir)

    return app
