# app/core/config.py - Environment driven configuration
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """
    Settings for the Taskboard API: database, cache tier and logging
    """
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Database Settings
    DATABASE_URL: str = Field(..., description="Async SQLAlchemy database URL (postgresql+asyncpg://...)")
    DB_POOL_SIZE: int = Field(20, description="Database connection pool size")
    DB_MAX_OVERFLOW: int = Field(0, description="Database max overflow connections")
    DB_COMMAND_TIMEOUT: int = Field(5, description="asyncpg command timeout in seconds")

    # Application Settings
    ENVIRONMENT: str = Field("development", description="Environment name")
    LOG_LEVEL: str = Field("INFO", description="Log level")

    # Logging Configuration
    ENABLE_JSON_LOGGING: bool = Field(False, description="Enable JSON structured logging")

    # Tracing Configuration
    ENABLE_OTEL_EXPORTER: bool = Field(True, description="Enable OpenTelemetry spans for requests and queries")
    ENABLE_OTEL_CONSOLE_EXPORT: bool = Field(False, description="Print finished spans to stdout")
    ENABLE_EXTERNAL_TRACING: bool = Field(False, description="Export spans to an OTLP collector")
    OTLP_ENDPOINT: str = Field("http://localhost:4317", description="OTLP gRPC endpoint for external tracing")

    # Cache Settings
    CACHE_ENABLED: bool = Field(False, description="Use Redis as the read-through cache tier")
    REDIS_URL: str = Field("redis://localhost:6379/0", description="Redis connection URL")
    CACHE_KEY_PREFIX: str = Field("taskboard", description="Namespace prepended to every cache key")
    CACHE_SOCKET_TIMEOUT: float = Field(1.0, description="Redis socket timeout in seconds")
    CACHE_CONNECT_TIMEOUT: float = Field(1.0, description="Redis connect timeout in seconds")

    # Cache TTLs (seconds)
    CACHE_TTL_TASK: int = Field(300, ge=1, description="TTL for single task entries")
    CACHE_TTL_TASKS: int = Field(60, ge=1, description="TTL for unpaginated task lists")
    CACHE_TTL_TASKS_PAGE: int = Field(60, ge=1, description="TTL for paginated task lists")

    # Pagination
    DEFAULT_PAGE_LIMIT: int = Field(20, ge=1, description="Page size used when only a page is given")
    MAX_PAGE_LIMIT: int = Field(100, ge=1, description="Largest page size accepted from clients")

    @property
    def uses_postgres(self) -> bool:
        """True when the configured database is PostgreSQL"""
        return self.DATABASE_URL.startswith("postgresql")

    @property
    def should_use_json_logging(self) -> bool:
        """Use JSON logging in production or when explicitly enabled"""
        return self.ENVIRONMENT == "production" or self.ENABLE_JSON_LOGGING


# Create settings instance
settings = Settings()
