"""Application settings loaded from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings

_BACKEND_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.0-flash"
    GEMINI_API_URL: str = "https://generativelanguage.googleapis.com/v1beta/models"
    REQUEST_TIMEOUT: float = 60.0

    MOCK_ANALYSIS: bool = False

    STATIC_DIR: str = str(_BACKEND_DIR / "static")
    DEFAULT_IMAGE: str = "default-tree.png"
    MAX_UPLOAD_BYTES: int = 20 * 1024 * 1024

    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    model_config = {"env_prefix": "TREEID_", "env_file": ".env", "extra": "ignore"}


settings = Settings()
