"""Application configuration."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="null",
    )

    # Application
    app_name: str = Field(default="Clinic Booking API", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    api_v1_prefix: str = Field(default="/api/v1", alias="API_V1_PREFIX")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    # Database
    database_url: str = Field(..., alias="DATABASE_URL")
    database_pool_timeout: int = Field(default=10, alias="DATABASE_POOL_TIMEOUT")

    # Appointment store
    store_timeout_seconds: float = Field(default=5.0, gt=0, alias="STORE_TIMEOUT_SECONDS")
    store_read_retries: int = Field(default=2, ge=0, le=5, alias="STORE_READ_RETRIES")

    # Redis
    redis_host: str = Field(default="localhost", alias="REDIS_HOST")
    redis_port: int = Field(default=6379, alias="REDIS_PORT")
    redis_username: str = Field(default="default", alias="REDIS_USERNAME")
    redis_password: str = Field(default="", alias="REDIS_PASSWORD")
    redis_decode_responses: bool = Field(default=True, alias="REDIS_DECODE_RESPONSES")

    # JWT
    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=30, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Clinic schedule
    clinic_timezone: str = Field(default="UTC", alias="CLINIC_TIMEZONE")
    clinic_opening_hour: int = Field(default=9, ge=0, le=23, alias="CLINIC_OPENING_HOUR")
    clinic_closing_hour: int = Field(default=17, ge=0, le=23, alias="CLINIC_CLOSING_HOUR")
    slot_interval_minutes: int = Field(default=30, ge=5, le=120, alias="SLOT_INTERVAL_MINUTES")

    # Auto-expiry of unconfirmed appointments
    confirmation_deadline_hours: float = Field(
        default=6,
        gt=0,
        alias="CONFIRMATION_DEADLINE_HOURS",
        description="Pending appointments this close to their start are auto-cancelled",
    )
    sweeper_enabled: bool = Field(default=True, alias="SWEEPER_ENABLED")
    sweep_interval_minutes: float = Field(default=15, gt=0, alias="SWEEP_INTERVAL_MINUTES")
    sweep_initial_delay_seconds: float = Field(
        default=10,
        ge=0,
        alias="SWEEP_INITIAL_DELAY_SECONDS",
        description="Delay before the first sweep so the database can come up",
    )

    # CORS
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as a list."""
        if isinstance(self.cors_origins_str, str):
            return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]
        return [self.cors_origins_str]

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")

    @property
    def sweep_interval_seconds(self) -> float:
        """Sweep cadence in seconds."""
        return self.sweep_interval_minutes * 60


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]


# Global settings instance
settings = get_settings()
