"""
Configuration - environment-driven settings for the tutor service.

Reads a local .env (if present) and exposes a cached Settings object.

Keys:
    OPENAI_API_KEY  -> credential for the completion service (empty = demo mode)
    OPENAI_MODEL    -> model identifier sent upstream
    REDIS_HOST / REDIS_PORT / REDIS_PASSWORD -> progress store connection
    STORE_BACKEND   -> "redis" or "memory"
    LOG_LEVEL       -> logging level name
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env
load_dotenv()


@dataclass(frozen=True)
class Settings:
    openai_api_key: str = ""
    openai_model: str = "gpt-4.1-mini"
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    store_backend: str = "redis"
    log_level: str = "INFO"

    @property
    def demo_mode(self) -> bool:
        """No credential configured -> canned replies instead of upstream calls."""
        return not self.openai_api_key


def load_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY", "").strip(),
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4.1-mini"),
        redis_host=os.getenv("REDIS_HOST", "localhost"),
        redis_port=int(os.getenv("REDIS_PORT", 6379)),
        redis_password=os.getenv("REDIS_PASSWORD", None),
        store_backend=os.getenv("STORE_BACKEND", "redis").lower(),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


@lru_cache()
def get_settings() -> Settings:
    return load_settings()
