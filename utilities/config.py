"""
Configuration management using environment variables.
Handles API, database, auth and logging settings with validation and defaults.
"""

from typing import List, Optional
from pathlib import Path

from pydantic import validator
from pydantic_settings import BaseSettings


class AppConfig(BaseSettings):
    """
    Configuration class for the Bookworm API.
    Uses pydantic BaseSettings for environment variable management.
    """

    # API Settings
    api_title: str = "Bookworm API"
    api_version: str = "1.0.0"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 5000
    debug: bool = False

    # MongoDB Configuration
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_database: str = "bookworm"

    # Auth Settings
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expire_days: int = 30
    cookie_name: str = "jwt"
    cookie_secure: bool = False

    # CORS Settings
    cors_origins: List[str] = ["*"]

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = "json"
    log_file: Optional[str] = None

    @validator('jwt_expire_days')
    def validate_expire_days(cls, v):
        """Ensure token lifetime is reasonable."""
        if v < 1 or v > 365:
            raise ValueError('jwt_expire_days must be between 1 and 365')
        return v

    @validator('log_level')
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'log_level must be one of: {valid_levels}')
        return v.upper()

    @validator('log_format')
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ['json', 'console']
        if v.lower() not in valid_formats:
            raise ValueError(f'log_format must be one of: {valid_formats}')
        return v.lower()

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        if self.log_file:
            return Path(self.log_file)
        return None


# Global configuration instance
config = AppConfig()
