"""
Configuration settings for redmodel.

Uses Pydantic Settings to load environment variables for the Redis connection,
key naming, view defaults and logging.
"""
from __future__ import annotations

import json
from functools import lru_cache
from typing import Annotated, Any, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    # Redis
    redis_url: Optional[str] = Field(None, alias="REDIS_URL")
    redis_nodes: Annotated[List[str], NoDecode] = Field(default_factory=lambda: ["127.0.0.1:6379"], alias="REDIS_NODES")
    redis_db: int = Field(0, alias="REDIS_DB")
    redis_socket_timeout: float = Field(5.0, alias="REDIS_SOCKET_TIMEOUT")
    redis_connect_attempts: int = Field(3, alias="REDIS_CONNECT_ATTEMPTS")
    redis_key_root: str = Field("redmodel", alias="REDIS_KEY_ROOT")

    # Views
    view_cache_size: int = Field(0, alias="VIEW_CACHE_SIZE")
    view_repopulate_concurrency: int = Field(4, alias="VIEW_REPOPULATE_CONCURRENCY")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("redis_nodes", mode="before")
    @classmethod
    def _split_nodes(cls, value: Any) -> Any:
        # REDIS_NODES may be one "host:port", a comma list or a JSON array
        if isinstance(value, str):
            text = value.strip()
            if text.startswith("["):
                return json.loads(text)
            return [node.strip() for node in text.split(",") if node.strip()]
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
