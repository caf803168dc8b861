"""FastAPI application entry point for the Tree Identifier."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.agents.page_controller import PageSessions
from app.api.routes import page_router, router, set_client
from app.config import settings
from app.models.gemini import GeminiWrapper
from app.services.image_loader import default_image_path

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Client setup
# ---------------------------------------------------------------------------


def build_client() -> GeminiWrapper:
    """Create the Gemini client from settings."""
    logger.info(
        "Initializing analysis client (mock=%s, model=%s).",
        settings.MOCK_ANALYSIS, settings.GEMINI_MODEL,
    )
    client = GeminiWrapper(
        settings.GEMINI_MODEL,
        settings.GEMINI_API_KEY,
        api_url=settings.GEMINI_API_URL,
        timeout=settings.REQUEST_TIMEOUT,
        mock=settings.MOCK_ANALYSIS,
    )
    client.load()
    return client


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    logger.info("Starting Tree Identifier.")
    if not default_image_path().is_file():
        logger.warning("Default image missing at %s.", default_image_path())

    client = build_client()
    set_client(client, PageSessions(client, default_image=default_image_path()))

    yield

    # Shutdown
    logger.info("Shutting down Tree Identifier.")


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Tree Identifier API",
    version="0.1.0",
    description="Educational tree identification from a single photo.",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api/v1")
app.include_router(page_router)

# Ensure the static directory exists so the StaticFiles mount does not fail.
os.makedirs(settings.STATIC_DIR, exist_ok=True)
app.mount("/static", StaticFiles(directory=settings.STATIC_DIR), name="static")


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health")
def health_check() -> dict[str, str]:
    return {
        "status": "ok",
        "mock_mode": str(settings.MOCK_ANALYSIS),
        "model": settings.GEMINI_MODEL,
    }
