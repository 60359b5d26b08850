"""
Configuration for the sitehub MCP server.
"""

import logging
import sys

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from cache import DEFAULT_TTL, SHORT_TTL


class Settings(BaseSettings):
    """
    Server configuration loaded from environment variables (or a .env file).

    Environment variables:
        SUPABASE_URL: Base URL of the backend project (PostgREST lives under /rest/v1)
        SUPABASE_KEY: API key sent as both `apikey` and bearer token
        CACHE_DEFAULT_TTL_MS: TTL for the projects and profiles caches. Default: 300000
        POSTS_CACHE_TTL_MS: TTL for the posts and comments caches. Default: 60000
        HTTP_TIMEOUT: Backend request timeout in seconds. Default: 30
        LOG_LEVEL: Root log level. Default: INFO
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    supabase_url: str = Field(
        default="http://localhost:54321",
        alias="SUPABASE_URL",
        description="Backend base URL",
    )

    supabase_key: str = Field(
        default="",
        alias="SUPABASE_KEY",
        description="Backend API key",
    )

    cache_default_ttl_ms: int = Field(
        default=DEFAULT_TTL,
        alias="CACHE_DEFAULT_TTL_MS",
        description="Default cache TTL in milliseconds",
    )

    posts_cache_ttl_ms: int = Field(
        default=SHORT_TTL,
        alias="POSTS_CACHE_TTL_MS",
        description="Posts cache TTL in milliseconds",
    )

    http_timeout: float = Field(
        default=30.0,
        alias="HTTP_TIMEOUT",
        description="Backend request timeout in seconds",
    )

    log_level: str = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Root log level name",
    )

    @property
    def rest_url(self) -> str:
        """PostgREST endpoint derived from supabase_url."""
        return self.supabase_url.rstrip("/") + "/rest/v1"


# Global settings instance
settings = Settings()


def configure_logging(level: str = "INFO") -> None:
    """Send log records to stderr; stdout is reserved for the MCP stdio transport."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
