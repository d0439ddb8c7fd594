# chatrelay/main.py

from __future__ import annotations

import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from chatrelay.core import state
from chatrelay.core.config import settings
from chatrelay.core.logging import setup_logging, get_logger
from chatrelay.api.routes import health, metrics, upload
from chatrelay.api import websocket as websocket_module

# Configure logging first
setup_logging()
logger = get_logger(__name__)

# FastAPI app
app = FastAPI(title="chatrelay - Real-time Multi-room Chat")

# CORS (relaxed by default, override with CORS_ORIGINS)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# REST routes
app.include_router(health.router)
app.include_router(metrics.router)
app.include_router(upload.router)

# WebSocket routes
app.include_router(websocket_module.router)

# Uploaded files, served read-only
os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
app.mount(settings.UPLOAD_URL_PREFIX, StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

# Client application, if one is shipped alongside
if os.path.isdir(settings.PUBLIC_DIR):
    app.mount("/", StaticFiles(directory=settings.PUBLIC_DIR, html=True), name="public")


@app.on_event("startup")
async def startup_event():
    logger.info("🚀 Server running on http://localhost:%d", settings.PORT)
    logger.info("📁 Upload directory: %s", os.path.abspath(settings.UPLOAD_DIR))


@app.on_event("shutdown")
async def on_shutdown():
    await state.connection_manager.shutdown()


def run() -> None:
    import uvicorn
    uvicorn.run(
        "chatrelay.main:app",
        host=settings.HOST,
        port=settings.PORT,
        ws_max_size=settings.MAX_EVENT_BYTES,
    )


if __name__ == "__main__":
    run()
