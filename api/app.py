"""
FastAPI Application Entry Point

This module creates and configures the FastAPI application for the
Face Enrollment & Recognition API.

The application provides:
- REST endpoints for enrolling, listing and removing faces
- REST endpoints for detection and recognition
- Health check and statistics endpoints

Components (descriptor store, recognizer, detector) are built in
create_app() / the lifespan handler and kept on app.state; routes reach
them through dependencies rather than module-level singletons.

Usage:
    # From project root:
    uvicorn api.app:app --host 0.0.0.0 --port 8000 --reload

    # Or run directly:
    python -m api.app
"""

import logging
import threading
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routes import faces_router, recognition_router
from api.schemas import HealthResponse, StatsResponse
from facerec.config import get_config, get_section
from facerec.descriptor_store import DEFAULT_NAMESPACE_KEY, DescriptorStore
from facerec.exceptions import (
    DetectorError,
    EnrollmentAborted,
    FaceRecError,
    InvalidInput,
    MissingDescriptor,
    MultipleFacesDetected,
    NoFaceDetected,
    PersistenceError,
)
from facerec.face_detector import FaceDetector
from facerec.image_io import DEFAULT_MAX_UPLOAD_BYTES
from facerec.kv_backends import create_backend
from facerec.recognizer import FaceRecognizer


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

API_NAME = "Face Enrollment & Recognition API"
API_VERSION = "0.1.0"

# Exception type -> HTTP status code, most specific first
ERROR_STATUS_CODES = [
    (EnrollmentAborted, 409),
    (InvalidInput, 422),
    (MissingDescriptor, 422),
    (NoFaceDetected, 422),
    (MultipleFacesDetected, 422),
    (DetectorError, 503),
    (PersistenceError, 500),
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Runs on startup:
    - Open the descriptor store (unless one was injected)
    - Build the recognizer and the detector (model loads lazily)

    Runs on shutdown:
    - Detach the recognizer and close the store it opened
    """
    logger.info("=" * 60)
    logger.info(f"Starting {API_NAME}")
    logger.info("=" * 60)

    state = app.state
    config = state.config if state.config is not None else get_config()
    owned_store = False

    if state.store is None:
        storage_config = get_section("storage", config)
        logger.info("Opening descriptor store...")
        state.store = DescriptorStore(
            create_backend(storage_config),
            namespace_key=storage_config.get("namespace_key", DEFAULT_NAMESPACE_KEY),
        ).open()
        owned_store = True

    owned_recognizer = False
    if state.recognizer is None:
        state.recognizer = FaceRecognizer.from_config(state.store, get_section("recognition", config))
        owned_recognizer = True

    if state.detector is None:
        state.detector = FaceDetector(get_section("detection", config))

    upload_config = get_section("upload", config)
    state.max_upload_bytes = int(
        upload_config.get("max_file_size_mb", DEFAULT_MAX_UPLOAD_BYTES / (1024 * 1024)) * 1024 * 1024
    )

    logger.info(f"Descriptor store ready: {state.store.count} faces enrolled")
    logger.info("API startup complete!")

    yield

    logger.info("Shutting down API...")
    if owned_recognizer:
        state.recognizer.close()
    if owned_store:
        state.store.close()
    logger.info("Shutdown complete")


def create_app(
    config: Optional[Dict[str, Any]] = None,
    store: Optional[DescriptorStore] = None,
    recognizer: Optional[FaceRecognizer] = None,
    detector: Optional[FaceDetector] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Configuration dict (default: config.yaml via get_config()).
        store: Pre-opened descriptor store. Built from config if omitted.
        recognizer: Recognizer to serve. Built over the store if omitted.
        detector: Face detector. Built from config if omitted.

    Returns:
        Configured FastAPI application.
    """
    app = FastAPI(
        title=API_NAME,
        description="""
API for enrolling faces and recognizing them in images.

## Features
- **Enrollment**: Register a face from an image or a raw descriptor
- **Recognition**: Match every face in an image against enrolled faces
- **Management**: List, inspect and remove enrolled faces

Images are sent as base64 strings in JSON bodies.
        """,
        version=API_VERSION,
        lifespan=lifespan,
    )

    if recognizer is not None and store is None:
        store = recognizer.store

    app.state.config = config
    app.state.store = store
    app.state.recognizer = recognizer
    app.state.detector = detector
    app.state.store_lock = threading.Lock()
    app.state.max_upload_bytes = DEFAULT_MAX_UPLOAD_BYTES

    # Configure CORS for browser clients
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(FaceRecError)
    async def face_rec_error_handler(request: Request, exc: FaceRecError):
        status_code = 400
        for error_type, code in ERROR_STATUS_CODES:
            if isinstance(exc, error_type):
                status_code = code
                break
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        else:
            logger.info(f"{request.method} {request.url.path} rejected: {exc}")
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    app.include_router(faces_router)
    app.include_router(recognition_router)

    # ============================================================
    # System Endpoints
    # ============================================================

    @app.get("/health", response_model=HealthResponse, tags=["system"])
    def health_check(request: Request):
        """
        Check the health of the API and its dependencies.

        Returns status of:
        - Face model (loaded/not loaded)
        - ONNX Runtime execution providers
        - Number of enrolled faces
        """
        state = request.app.state
        model_loaded = bool(state.detector is not None and state.detector.is_initialized)
        providers = FaceDetector.available_providers()

        return HealthResponse(
            status="healthy" if model_loaded else "degraded",
            model_loaded=model_loaded,
            providers=providers,
            enrolled_faces=state.store.count if state.store is not None else 0,
        )

    @app.get("/stats", response_model=StatsResponse, tags=["system"])
    def stats(request: Request):
        """Enrollment statistics."""
        return StatsResponse(**request.app.state.recognizer.get_stats())

    @app.get("/", tags=["system"])
    def root():
        """Root endpoint with API information."""
        return {
            "name": API_NAME,
            "version": API_VERSION,
            "docs": "/docs",
            "health": "/health",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    from facerec.config import get_server_config

    server = get_server_config()

    logger.info(f"Starting server on {server['host']}:{server['port']}")
    uvicorn.run(
        "api.app:app",
        host=server["host"],
        port=server["port"],
        reload=True,
        log_level="info",
    )
