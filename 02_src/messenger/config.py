"""Project-level configuration and path helpers."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_DB_PATH = DATA_DIR / "messenger.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

DATA_DIR.mkdir(parents=True, exist_ok=True)
LOGS_DIR.mkdir(parents=True, exist_ok=True)


PathLike = Union[str, Path]

DEFAULT_CORS_ORIGINS = ("http://localhost:5173",)


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


@dataclass
class Settings:
    """Runtime settings for the chat service."""

    jwt_secret: str
    jwt_algorithm: str = "HS256"
    presence_debounce_seconds: float = 0.1
    friendship_cache_ttl: float = 30.0
    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))


def load_settings() -> Settings:
    """Build Settings from environment variables."""
    secret = os.getenv("JWT_SECRET")
    if not secret:
        raise ValueError("JWT_SECRET environment variable not set")

    origins = os.getenv("CORS_ORIGINS", ",".join(DEFAULT_CORS_ORIGINS))

    return Settings(
        jwt_secret=secret,
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        presence_debounce_seconds=int(os.getenv("PRESENCE_DEBOUNCE_MS", "100")) / 1000,
        friendship_cache_ttl=float(os.getenv("FRIENDSHIP_CACHE_TTL", "30")),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
    )
