"""
Configuration Management

Centralized configuration using Pydantic Settings for type safety
and environment variable integration.
"""

from typing import Optional
from functools import lru_cache

from pydantic_settings import BaseSettings
from pydantic import Field, field_validator

from .constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE


_ENV_CONFIG = {
    "env_file": ".env",
    "env_file_encoding": "utf-8",
    "case_sensitive": True,
    "extra": "ignore"
}


class DatabaseSettings(BaseSettings):
    """Database configuration settings"""
    
    DB_URL: str = Field(default="sqlite+aiosqlite:///:memory:")
    
    # Connection pool settings (ignored for SQLite)
    DB_POOL_SIZE: int = Field(default=5)
    DB_MAX_OVERFLOW: int = Field(default=10)
    DB_POOL_TIMEOUT: int = Field(default=30)
    DB_POOL_RECYCLE: int = Field(default=3600)
    
    # Session behaviour
    DB_ECHO: bool = Field(default=False)
    DB_EXPIRE_ON_COMMIT: bool = Field(default=False)
    DB_AUTOFLUSH: bool = Field(default=True)
    
    model_config = _ENV_CONFIG
    
    @property
    def is_sqlite(self) -> bool:
        """Whether the configured URL targets SQLite"""
        return self.DB_URL.startswith("sqlite")


class LoggingSettings(BaseSettings):
    """Logging configuration settings"""
    
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="console")  # json or console
    LOG_SQL_QUERIES: bool = Field(default=False)
    ENABLE_STRUCTURED_LOGGING: bool = Field(default=False)
    
    model_config = _ENV_CONFIG
    
    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'Log level must be one of {valid_levels}')
        return v.upper()
    
    @field_validator('LOG_FORMAT')
    @classmethod
    def validate_log_format(cls, v):
        if v.lower() not in ('json', 'console'):
            raise ValueError('Log format must be json or console')
        return v.lower()


class Settings(BaseSettings):
    """Main library settings"""
    
    # Environment
    ENVIRONMENT: str = Field(default="development")
    SERVICE_NAME: str = Field(default="datacore")
    
    # Paging defaults
    DEFAULT_PAGE_SIZE: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)
    MAX_PAGE_SIZE: int = Field(default=MAX_PAGE_SIZE, ge=1)
    
    # Sub-settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    
    model_config = _ENV_CONFIG
    
    @field_validator('ENVIRONMENT')
    @classmethod
    def validate_environment(cls, v):
        valid_envs = ['development', 'staging', 'production', 'testing']
        if v not in valid_envs:
            raise ValueError(f'Environment must be one of {valid_envs}')
        return v
    
    @property
    def is_testing(self) -> bool:
        return self.ENVIRONMENT == "testing"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings"""
    return Settings()


def clear_settings_cache() -> None:
    """Drop the cached settings so the next call re-reads the environment"""
    get_settings.cache_clear()


def get_database_url(override: Optional[str] = None) -> str:
    """Resolve the database URL, preferring an explicit override"""
    return override or get_settings().database.DB_URL
