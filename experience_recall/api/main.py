"""
FastAPI application for the recall engine.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routes import router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    logger.info("Starting recall API server...")
    try:
        from .dependencies import get_engine
        get_engine()
        logger.info("Recall engine ready")
    except Exception as e:
        logger.error(f"Failed to initialize recall engine: {e}", exc_info=True)
        raise

    yield

    logger.info("Shutting down recall API server...")


def create_app(preload: bool = True) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        preload: Initialize the engine at startup (disable when a test installs one)
    """
    app = FastAPI(
        title="Experience Recall API",
        description="Quality-filtered search over experience records",
        version="1.0.0",
        lifespan=lifespan if preload else None
    )

    cors_origins = os.getenv("CORS_ORIGINS", "*").split(",")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/api/v1", tags=["recall"])

    @app.get("/")
    async def root():
        return {
            "message": "Experience Recall API",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/api/v1/health"
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    from experience_recall.utils import setup_logging

    setup_logging()
    port = int(os.getenv("API_PORT", "8000"))
    uvicorn.run(app, host="0.0.0.0", port=port)
