"""Application configuration using pydantic-settings."""
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: str
    db_pool_size: int = Field(default=10, validation_alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=10, validation_alias="DB_MAX_OVERFLOW")
    # Seconds before a single store statement is abandoned
    db_command_timeout: float = Field(default=5.0, validation_alias="DB_COMMAND_TIMEOUT")

    # Auth - tokens are issued elsewhere, this service only verifies them
    jwt_secret: str = Field(default="change-me", validation_alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(
        default="http://localhost:5173",
        validation_alias="CORS_ORIGINS",
    )

    # Redis - profile, user and post caches
    redis_url: str = Field(default="redis://localhost:6379", validation_alias="REDIS_URL")
    redis_enabled: bool = Field(default=True, validation_alias="REDIS_ENABLED")
    redis_pool_size: int = Field(default=20, validation_alias="REDIS_POOL_SIZE")
    # Short budget: a slow cache is treated as a miss
    redis_socket_timeout: float = Field(default=0.5, validation_alias="REDIS_SOCKET_TIMEOUT")

    # Cache TTLs in seconds
    profile_cache_ttl: int = Field(default=300, validation_alias="PROFILE_CACHE_TTL")
    user_cache_ttl: int = Field(default=600, validation_alias="USER_CACHE_TTL")
    post_cache_ttl: int = Field(default=300, validation_alias="POST_CACHE_TTL")
    search_cache_ttl: int = Field(default=60, validation_alias="SEARCH_CACHE_TTL")

    # Field length limits
    max_bio_length: int = Field(default=500, validation_alias="MAX_BIO_LENGTH")
    max_post_title_length: int = Field(default=300, validation_alias="MAX_POST_TITLE_LENGTH")
    max_post_content_length: int = Field(
        default=20_000, validation_alias="MAX_POST_CONTENT_LENGTH",
    )

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        if not self.cors_origins_str:
            return []
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
