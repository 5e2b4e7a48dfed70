# src/yappin/main.py
"""Main entry point for the Yappin' API."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from yappin.api.v1 import (
    auth_router,
    groups_router,
    invites_router,
    messages_router,
    notifications_router,
    social_router,
    users_router,
    yaps_router,
)
from yappin.api.v1.dependencies import close_store
from yappin.api.v1.errors import register_exception_handlers
from yappin.core.settings import settings

logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)

# Initialize FastAPI app
app = FastAPI(
    title="Yappin' API",
    description="Short posts, follows, groups and direct messages",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

register_exception_handlers(app)

# Include API routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")
app.include_router(social_router, prefix="/api/v1")
app.include_router(yaps_router, prefix="/api/v1")
app.include_router(groups_router, prefix="/api/v1")
app.include_router(messages_router, prefix="/api/v1")
app.include_router(notifications_router, prefix="/api/v1")
app.include_router(invites_router, prefix="/api/v1")


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await close_store()


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
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("yappin.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
