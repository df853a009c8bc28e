"""Runtime settings for tablerepo.

Environment variables are loaded from a ``.env`` file using ``python-dotenv``
and exposed through an immutable Pydantic settings object.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

# Load environment variables from a .env file if present
load_dotenv()

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
DEFAULT_DATABASE = ":memory:"
DEFAULT_CHUNK_SIZE = 1000
DEFAULT_ENSURE_RETRIES = 3
DEFAULT_LOG_FILE = "logs/tablerepo.log"
_TRUE_SET = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Immutable settings object used across the package."""

    database: str = DEFAULT_DATABASE
    chunk_size: int = Field(DEFAULT_CHUNK_SIZE, gt=0)
    ensure_retries: int = Field(DEFAULT_ENSURE_RETRIES, ge=1)
    log_queries: bool = False
    log_file: Path = Path(DEFAULT_LOG_FILE)

    model_config = ConfigDict(frozen=True)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from None


def _build_settings() -> Settings:
    """Construct the ``Settings`` instance based on environment variables."""

    chunk_size = _env_int("TABLEREPO_CHUNK_SIZE", DEFAULT_CHUNK_SIZE)
    if chunk_size <= 0:
        raise RuntimeError("TABLEREPO_CHUNK_SIZE must be positive")
    retries = _env_int("TABLEREPO_ENSURE_RETRIES", DEFAULT_ENSURE_RETRIES)
    if retries < 1:
        raise RuntimeError("TABLEREPO_ENSURE_RETRIES must be at least 1")

    log_queries = os.getenv("TABLEREPO_LOG_QUERIES", "false").strip().lower() in _TRUE_SET

    return Settings(
        database=os.getenv("TABLEREPO_DATABASE", DEFAULT_DATABASE),
        chunk_size=chunk_size,
        ensure_retries=retries,
        log_queries=log_queries,
        log_file=Path(os.getenv("TABLEREPO_LOG_FILE", DEFAULT_LOG_FILE)),
    )


# Public settings instance
settings = _build_settings()
