"""
Configuration management using environment variables.
Handles watcher and logging settings with validation and defaults.
"""

from typing import Any, Dict, Optional
from pathlib import Path

from pydantic import Field, validator
from pydantic_settings import BaseSettings

from watcher.models import DEFAULT_RATE, DEFAULT_USER_AGENT, MINIMUM_RATE


class WatcherConfig(BaseSettings):
    """
    Configuration class for watcher settings.
    Uses pydantic BaseSettings for environment variable management.
    """

    # Watcher Configuration
    rate: int = Field(default=DEFAULT_RATE, description="Cycle interval in milliseconds")
    immediate: bool = Field(default=True, description="Run a forced cycle on start")
    user_agent: str = Field(default=DEFAULT_USER_AGENT)
    request_timeout: float = Field(default=30.0, description="Per-request timeout in seconds")
    match_by: str = Field(default="name", description="Previous-entry lookup: name or index")

    # Logging Configuration
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")
    log_file: Optional[str] = Field(default=None)

    # Development/Testing
    debug: bool = Field(default=False)

    @validator('rate')
    def validate_rate(cls, v):
        """Ensure cycles run at most every half hour."""
        if v < MINIMUM_RATE:
            raise ValueError(f'rate must be at least {MINIMUM_RATE}ms')
        return v

    @validator('user_agent')
    def validate_user_agent(cls, v):
        """Ensure user agent is set."""
        if not v.strip():
            raise ValueError('user_agent must not be empty')
        return v

    @validator('request_timeout')
    def validate_timeout(cls, v):
        """Ensure timeout is reasonable."""
        if v < 1 or v > 300:
            raise ValueError('request_timeout must be between 1 and 300 seconds')
        return v

    @validator('match_by')
    def validate_match_by(cls, v):
        """Ensure lookup strategy is known."""
        valid_strategies = ['name', 'index']
        if v.lower() not in valid_strategies:
            raise ValueError(f'match_by must be one of: {valid_strategies}')
        return v.lower()

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
        env_prefix = "TRAIN_WATCHER_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        if self.log_file:
            return Path(self.log_file)
        return None

    def get_watcher_options(self) -> Dict[str, Any]:
        """Keyword arguments for constructing a watcher from these settings."""
        return {
            "rate": self.rate,
            "immediate": self.immediate,
            "user_agent": self.user_agent,
            "request_timeout": self.request_timeout,
            "match_by": self.match_by,
        }


# Global configuration instance
config = WatcherConfig()
