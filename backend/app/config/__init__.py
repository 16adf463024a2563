"""
Application configuration and settings
"""

import os
from pathlib import Path

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()

# Model configuration
from .models import (
    ModelConfig,
    PipelineModels,
    ACTIVE_PIPELINE,
    DEFAULT_PIPELINE_MODELS,
    COST_OPTIMIZED_PIPELINE,
    get_model_config,
    get_model_name,
    list_pipeline_steps,
)

from .constants import (
    API_TITLE,
    API_DESCRIPTION,
    API_VERSION,
    CORS_ORIGINS,
    STUCK_ITEM_TIMEOUT_MINUTES,
)

# Base directories
APP_DIR = Path(__file__).parent.parent
BACKEND_DIR = APP_DIR.parent


def get_data_dir() -> Path:
    """Resolve the storage root, honouring CONVEYOR_DATA_DIR at call time."""
    raw = os.getenv("CONVEYOR_DATA_DIR")
    data_dir = Path(raw) if raw else BACKEND_DIR / "conveyor_data"
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


# Gemini API
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int, minimum: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return max(int(raw), minimum)
    except (TypeError, ValueError):
        return default


# Scheduled runner
RUNNER_ENABLED = _env_bool("CONVEYOR_RUNNER_ENABLED", True)
RUNNER_INTERVAL_MINUTES = _env_int("CONVEYOR_RUNNER_INTERVAL_MINUTES", 60, 1)
STUCK_TIMEOUT_MINUTES = _env_int("CONVEYOR_STUCK_TIMEOUT_MINUTES", STUCK_ITEM_TIMEOUT_MINUTES, 1)

# Full-article fetch
FETCH_TIMEOUT_SECONDS = _env_int("CONVEYOR_FETCH_TIMEOUT_SECONDS", 15, 1)

# RSS feeds used by the default source provider (comma separated)
RSS_FEED_URLS = [
    url.strip() for url in os.getenv("CONVEYOR_RSS_FEEDS", "").split(",") if url.strip()
]
