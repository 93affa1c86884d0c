# src/siwe_gate/main.py
"""Main entry point for the SIWE Gate application."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from siwe_gate.api.v1 import auth_router, system_router
from siwe_gate.core.settings import settings
from siwe_gate.services.nonce_store import get_nonce_store
from siwe_gate.services.sweeper import NonceSweepWorker

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_logging()
    worker: NonceSweepWorker | None = None
    if settings.nonce_sweep_enabled:
        worker = NonceSweepWorker(get_nonce_store(), settings.nonce_sweep_interval_seconds)
        await worker.start()
        logger.info("Nonce sweep running every %.1fs", worker.interval)
    app.state.sweep_worker = worker
    try:
        yield
    finally:
        if worker:
            await worker.stop()


# Initialize FastAPI app
app = FastAPI(
    title="SIWE Gate API",
    description="Sign-In with Ethereum challenge/response authentication",
    version=settings.app_version,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Include API routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(system_router, prefix="/api/v1")


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Sign-In with Ethereum challenge/response authentication",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("siwe_gate.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
