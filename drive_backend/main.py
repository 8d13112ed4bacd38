"""
Drive Stream Backend - API service for the music player widget
FastAPI service exposing the range-aware Drive streaming proxy and folder listing
"""
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Request
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from drive_backend.cors import CorsPolicy
from drive_backend.dependencies import get_config_manager, get_cors_policy, get_drive_client, get_streaming_proxy
from drive_backend.drive_client import DriveFolderClient
from drive_backend.endpoints.stream import router as stream_router
from drive_backend.endpoints.tracks import router as tracks_router
from drive_backend.middleware.preflight import PreflightMiddleware
from drive_backend.streaming_proxy import StreamingProxy
from drive_shared.config.config_manager import ConfigManager

logger = logging.getLogger(__name__)


def configure_logging(level: str):
    logging.basicConfig(level=level, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')


class HealthResponse(BaseModel):
    service: str
    status: str
    version: str
    api_key_configured: bool
    metrics: Dict[str, Any]
    listing: Dict[str, Any]


def create_app(config_manager: Optional[ConfigManager] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config_manager: Preloaded configuration; loaded from env files and the
            process environment at start-up when omitted
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Load configuration once and own the upstream HTTP clients."""
        config = config_manager or ConfigManager()
        configure_logging(config.log_level)

        cors_policy = CorsPolicy(config.allowed_origin)
        app.state.config_manager = config
        app.state.cors_policy = cors_policy
        app.state.streaming_proxy = StreamingProxy(config, cors_policy)
        app.state.drive_client = DriveFolderClient(config)

        if not config.api_key_configured:
            logger.warning("GOOGLE_DRIVE_API_KEY not configured - stream and listing requests will fail")

        yield

        await app.state.streaming_proxy.cleanup()
        await app.state.drive_client.cleanup()

    app = FastAPI(
        title="Drive Stream Backend",
        version="1.0.0",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "stream", "description": "Range-aware streaming of Drive audio files"},
            {"name": "tracks", "description": "Audio track listing of Drive folders"},
        ],
    )

    app.include_router(stream_router)
    app.include_router(tracks_router)

    app.add_middleware(PreflightMiddleware)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Framework errors (unknown path, wrong method) in the same JSON shape, with CORS."""
        response = request.app.state.cors_policy.json_response({"error": exc.detail}, status_code=exc.status_code)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.get("/health")
    async def health_check(
        config: ConfigManager = Depends(get_config_manager),
        cors: CorsPolicy = Depends(get_cors_policy),
        proxy: StreamingProxy = Depends(get_streaming_proxy),
        client: DriveFolderClient = Depends(get_drive_client),
    ) -> JSONResponse:
        """Health check endpoint showing proxy state and counters"""
        health = HealthResponse(
            service="drive-stream",
            status="ready" if proxy.is_initialized() and client.is_initialized() else "degraded",
            version=config.version,
            api_key_configured=config.api_key_configured,
            metrics=proxy.get_performance_metrics(),
            listing=client.get_stats(),
        )
        return cors.json_response(health.model_dump())

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = ConfigManager().api_port
    uvicorn.run(app, host="0.0.0.0", port=port)
