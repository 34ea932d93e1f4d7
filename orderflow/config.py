from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import Optional
from functools import lru_cache
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # App Settings
    APP_NAME: str = "Orderflow Delivery Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    API_PREFIX: str = "/api/v1"

    # CORS - accepts JSON string, comma-separated, or list
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # JWT Settings (tokens are issued by the external identity gateway)
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Key-value store backend: memory, sql or redis
    KV_BACKEND: str = "sql"

    # Database (sql backend)
    DATABASE_URL: str = "sqlite+aiosqlite:///./orderflow.db"
    DB_POOL_SIZE: int = 10  # Base number of connections in pool
    DB_MAX_OVERFLOW: int = 20  # Extra connections allowed beyond pool_size
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for connection from pool
    DB_POOL_RECYCLE: int = 1800  # Recycle connections after 30 minutes

    # Redis (redis backend)
    REDIS_URL: Optional[str] = None  # e.g., "redis://localhost:6379/0"
    REDIS_NAMESPACE: str = "orderflow"

    # Delivery estimate
    FULFILLMENT_ORIGIN_LAT: float = 28.6139
    FULFILLMENT_ORIGIN_LNG: float = 77.2090
    AVERAGE_SPEED_KMH: float = 30.0
    HANDLING_BUFFER_MINUTES: int = 15

    # Hand-off OTP
    OTP_LENGTH: int = 6
    OTP_MAX_ATTEMPTS: int = 5

    # Remote order API (used by the dual-mode client)
    REMOTE_API_URL: str = "http://localhost:8000/api/v1"
    REMOTE_TIMEOUT_SECONDS: float = 10.0

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(',') if origin.strip()]
        return v

    @field_validator('KV_BACKEND')
    @classmethod
    def validate_kv_backend(cls, v: str) -> str:
        backend = v.strip().lower()
        if backend not in ("memory", "sql", "redis"):
            raise ValueError("KV_BACKEND must be one of: memory, sql, redis")
        return backend

    @field_validator('OTP_LENGTH')
    @classmethod
    def validate_otp_length(cls, v: int) -> int:
        if not 4 <= v <= 10:
            raise ValueError("OTP_LENGTH must be between 4 and 10")
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        return self.CORS_ORIGINS


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
