"""FastAPI application for the CropAI web server."""

import asyncio
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cropai import __version__
from core.interfaces.persistence import StorageError
from modules.web.api import camera, chat, images, system, team, websocket
from modules.web.state import AppState

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for application startup and shutdown."""
    logger.info("Starting CropAI web server")
    state: AppState = getattr(app.state, "app_state", None)

    if state is not None:
        orchestrator = state.orchestrator
        websocket.setup_event_broadcasting(orchestrator.event_bus, asyncio.get_running_loop())
        orchestrator.roster.add_listener(websocket.broadcast_roster)
        await asyncio.to_thread(orchestrator.roster.start)

    yield

    if state is not None:
        orchestrator.roster.remove_listener(websocket.broadcast_roster)
        orchestrator.roster.stop()
        orchestrator.camera.stop()
        websocket.teardown_event_broadcasting(orchestrator.event_bus)
    logger.info("Shutting down CropAI web server")


async def storage_error_handler(request: Request, exc: StorageError):
    """Answer unhandled persistence failures with 502."""
    logger.error(f"Storage error on {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"detail": str(exc)})


def create_app(state: AppState = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        state: Application state (optional, for dependency injection)

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="CropAI API",
        description="Crop image capture, disease analysis and project information API",
        version=__version__,
        lifespan=lifespan
    )

    server_settings = state.orchestrator.settings.server if state else None
    prefix = server_settings.api_prefix if server_settings else "/api/v1"

    if server_settings is None or server_settings.enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=server_settings.cors_origins if server_settings else ["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    if state:
        app.state.app_state = state

    app.add_exception_handler(StorageError, storage_error_handler)

    app.include_router(camera.router, prefix=f"{prefix}/camera", tags=["camera"])
    app.include_router(images.router, prefix=f"{prefix}/images", tags=["images"])
    app.include_router(team.router, prefix=prefix, tags=["team"])
    app.include_router(chat.router, prefix=f"{prefix}/chat", tags=["chat"])
    app.include_router(system.router, prefix=f"{prefix}/system", tags=["system"])
    app.include_router(websocket.router, prefix="/ws", tags=["websocket"])

    logger.info("FastAPI application created")
    return app
