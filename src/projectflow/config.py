"""Configuration management for ProjectFlow."""

import os

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _parse_cors_origins() -> list[str]:
    """Parse CORS origins from environment variable."""
    cors_env = os.getenv("CORS_ALLOW_ORIGINS")
    if cors_env:
        return cors_env.split(",")
    return ["*"]


class Settings(BaseModel):
    """Application settings."""

    # Server settings
    host: str = os.getenv("HOST", "127.0.0.1")
    port: int = int(os.getenv("PORT", "8000"))
    debug: bool = os.getenv("DEBUG", "false").lower() == "true"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS settings (comma-separated list of allowed origins, or * for all)
    cors_allow_origins: list[str] = _parse_cors_origins()

    # Formula limits - guard against pathological input
    max_formula_length: int = int(os.getenv("MAX_FORMULA_LENGTH", "2000"))
    max_formula_depth: int = int(os.getenv("MAX_FORMULA_DEPTH", "64"))
    max_rows_per_request: int = int(os.getenv("MAX_ROWS_PER_REQUEST", "5000"))

    # Evaluate formulas referenced by other formulas instead of substituting 0
    formula_chaining: bool = os.getenv("FORMULA_CHAINING", "false").lower() == "true"


settings = Settings()
