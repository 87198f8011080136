"""Configuration management with Pydantic Settings.

Environment variables are loaded from:
1. Environment variables (highest priority)
2. .env file (development)
3. Defaults (lowest priority)
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Logging level."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Logging format."""

    JSON = "json"
    TEXT = "text"


class RedisSettings(BaseSettings):
    """Redis connection and pool configuration."""

    model_config = SettingsConfigDict(env_prefix="REDIS_")

    host: str = Field(default="localhost", description="Redis host")
    port: int = Field(default=6379, description="Redis port")
    password: str | None = Field(default=None, description="Redis password")

    pool_size: int = Field(default=10, description="Max connections per command pool")
    connect_timeout_seconds: float = Field(
        default=5.0, description="Dial timeout for new connections"
    )
    socket_timeout_seconds: float | None = Field(
        default=None, description="Read/write timeout for established connections"
    )
    channel_prefix: str = Field(
        default="CMND", description="Prefix of the default publish channel"
    )

    @field_validator("pool_size")
    @classmethod
    def validate_pool_size(cls, v: int) -> int:
        """Ensure the pool holds at least one connection."""
        return max(1, v)

    @property
    def address(self) -> str:
        """Build host:port address."""
        return f"{self.host}:{self.port}"


class FarmSettings(BaseSettings):
    """Store registry layout.

    FARM_STORES is a JSON object mapping store code to db index,
    e.g. FARM_STORES='{"intraday": 3, "history": 4}'.
    """

    model_config = SettingsConfigDict(env_prefix="FARM_")

    stores: dict[str, int] = Field(
        default_factory=dict, description="Store code to Redis db index"
    )

    @field_validator("stores")
    @classmethod
    def validate_stores(cls, v: dict[str, int]) -> dict[str, int]:
        """Reject empty codes and negative db indexes."""
        for code, db in v.items():
            if not code:
                raise ValueError("store code must not be empty")
            if db < 0:
                raise ValueError(f"db index for store {code!r} must be >= 0")
        return v


class Settings(BaseSettings):
    """Main application settings.

    All settings can be overridden via environment variables.
    For nested settings, use the appropriate prefix (e.g., REDIS_HOST).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(default="redisfarm", description="Application name")
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        alias="ENV",
        description="Deployment environment",
    )

    # Logging configuration
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    log_format: LogFormat = Field(default=LogFormat.JSON, description="Logging format")

    # Nested settings
    redis: RedisSettings = Field(default_factory=RedisSettings)
    farm: FarmSettings = Field(default_factory=FarmSettings)

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == Environment.DEVELOPMENT


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses LRU cache to avoid re-parsing environment variables.
    """
    return Settings()
