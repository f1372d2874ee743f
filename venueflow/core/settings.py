"""
Configuration & Environment Management for VenueFlow
"""

import logging
import secrets
from functools import lru_cache
from typing import List, Literal, Union

from pydantic import Field
from pydantic_settings import BaseSettings as PydanticBaseSettings
from pydantic_settings import SettingsConfigDict

logger = logging.getLogger(__name__)


class DatabaseSettings(PydanticBaseSettings):
    """Database configuration settings"""

    URL: str = "sqlite+aiosqlite:///./venueflow.db"

    # Connection Pool Settings
    POOL_SIZE: int = 20
    MAX_OVERFLOW: int = 30
    POOL_TIMEOUT: int = 30
    POOL_RECYCLE: int = 3600
    POOL_PRE_PING: bool = True
    ECHO: bool = False

    # Create tables on startup when migrations are not used
    AUTO_CREATE_TABLES: bool = True

    # PostgreSQL timeouts
    COMMAND_TIMEOUT: int = 60
    STATEMENT_TIMEOUT: str = "60s"
    LOCK_TIMEOUT: str = "30s"

    model_config = SettingsConfigDict(
        env_prefix="DB_", case_sensitive=True, env_file=".env", extra="ignore"
    )

    @property
    def database_url(self) -> str:
        """Database URL with an async driver"""
        if self.URL.startswith("postgresql://"):
            return self.URL.replace("postgresql://", "postgresql+asyncpg://", 1)
        return self.URL

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


class RedisSettings(PydanticBaseSettings):
    """Redis configuration settings"""

    HOST: str = "localhost"
    PORT: int = 6379
    DB: int = 0
    PASSWORD: Union[str, None] = None

    model_config = SettingsConfigDict(
        env_prefix="REDIS_", case_sensitive=True, env_file=".env", extra="ignore"
    )

    @property
    def redis_url(self) -> str:
        """Generate Redis URL"""
        auth = f":{self.PASSWORD}@" if self.PASSWORD else ""
        return f"redis://{auth}{self.HOST}:{self.PORT}/{self.DB}"


class SecuritySettings(PydanticBaseSettings):
    """Security and authentication settings"""

    SECRET_KEY: str = secrets.token_urlsafe(32)
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    PASSWORD_BCRYPT_ROUNDS: int = 12
    PASSWORD_MIN_LENGTH: int = 6

    model_config = SettingsConfigDict(
        env_prefix="SECURITY_", case_sensitive=True, env_file=".env", extra="ignore"
    )


class AdmissionSettings(PydanticBaseSettings):
    """Serialization of head-approve admission control"""

    LOCK_BACKEND: Literal["memory", "redis"] = "memory"
    LOCK_TIMEOUT_SECONDS: int = 30
    LOCK_WAIT_SECONDS: float = 10.0
    LOCK_POLL_INTERVAL: float = 0.05

    model_config = SettingsConfigDict(
        env_prefix="ADMISSION_", case_sensitive=True, env_file=".env", extra="ignore"
    )


class MonitoringSettings(PydanticBaseSettings):
    """Monitoring and observability settings"""

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"
    ENABLE_PROMETHEUS: bool = True

    model_config = SettingsConfigDict(
        env_prefix="MONITORING_", case_sensitive=True, env_file=".env", extra="ignore"
    )


class Settings(PydanticBaseSettings):
    """Main application settings"""

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    VERSION: str = "1.0.0"

    # API Configuration
    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "VenueFlow"
    PROJECT_DESCRIPTION: str = "Institutional event approval and venue allocation"

    # CORS Configuration (comma separated)
    BACKEND_CORS_ORIGINS: str = "http://localhost:3000"

    @property
    def cors_origins(self) -> List[str]:
        return [i.strip() for i in self.BACKEND_CORS_ORIGINS.split(",") if i.strip()]

    # User Management
    USERS_OPEN_REGISTRATION: bool = True
    SEED_DEMO_DATA: bool = False

    # Component Settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    admission: AdmissionSettings = Field(default_factory=AdmissionSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        return self.database.database_url

    @property
    def REDIS_URL(self) -> str:
        return self.redis.redis_url


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
