"""
FastAPI service recognizing people against a gallery of known identities.

Endpoints
---------
POST /recognize        – identify the face (or every face) in an image
POST /add              – store a labeled training image
POST /train            – rebuild the gallery from the stored samples
POST /train/async      – rebuild in the background (poll /tasks/{id})
GET  /samples          – training samples per identity
GET  /gallery/status   – active gallery version and size
"""
import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import config
from .exceptions import FaceGalleryError
from .routes import router
from .services import Services, build_services

logger = logging.getLogger(__name__)


def setup_logging(level: str = config.LOG_LEVEL):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=config.LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def initial_rebuild(services: Services):
    """Train at start-up; a failure leaves the empty gallery active."""
    logger.info("Training...")
    try:
        services.builder.rebuild()
    except FaceGalleryError as e:
        logger.error(f"Failed to train at start-up: {e.message}")


def create_app(
    services_factory: Callable[[], Services] = build_services,
    rebuild_on_startup: Optional[bool] = None,
) -> FastAPI:
    """Build the application.

    Services are created when the app starts, so importing this module does
    not load the recognition model.
    """
    if rebuild_on_startup is None:
        rebuild_on_startup = config.REBUILD_ON_STARTUP

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging()
        logger.info("Creating recognizer...")
        services = services_factory()
        app.state.services = services
        if rebuild_on_startup:
            initial_rebuild(services)
        logger.info("listening...")
        yield
        services.runner.shutdown()

    app = FastAPI(title="Face Gallery API", version="1.0.0", lifespan=lifespan)

    @app.exception_handler(FaceGalleryError)
    async def face_gallery_error_handler(request: Request, exc: FaceGalleryError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"results": [], "error": exc.to_dict()})

    app.include_router(router)
    return app


app = create_app()


def run():
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    uvicorn.run("facegallery.main:app", host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    run()
