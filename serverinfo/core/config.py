"""
Server Info Configuration

Centralized configuration with:
- Environment-based configuration (SERVERINFO_ prefix)
- Type-safe settings with Pydantic
- JSON file loading
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings


class LogLevel(str, Enum):
    """Logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class RouteConfig(BaseModel):
    """Where the info is served and the basic auth credentials guarding it."""
    model_config = ConfigDict(populate_by_name=True)

    path: str = "/serverInfo"
    user: str = "insecure"
    password: str = Field(default="secureme", alias="pass")

    @field_validator("path")
    @classmethod
    def normalize_path(cls, v: str) -> str:
        """Ensure a leading slash and no trailing slash."""
        v = "/" + v.strip("/")
        if v == "/":
            raise ValueError("path cannot be the site root")
        return v


class SamplerConfig(BaseModel):
    """Configuration for the process sampler."""
    loop_interval_ms: float = Field(default=10000.0, gt=0)


class MonitoringConfig(BaseModel):
    """Configuration for logging."""
    log_level: LogLevel = LogLevel.INFO
    log_format: Literal["json", "text"] = "json"


class ServerInfoConfig(BaseSettings):
    """
    Main configuration.

    Environment variables are prefixed with SERVERINFO_ and nested with a
    double underscore, e.g. SERVERINFO_ROUTE__PATH=/metrics.
    """

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # Require HTTP basic auth on the info route. The doc route stays public.
    basic_auth: bool = False

    route: RouteConfig = Field(default_factory=RouteConfig)
    sampler: SamplerConfig = Field(default_factory=SamplerConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = {
        "env_prefix": "SERVERINFO_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
    }

    @classmethod
    def from_file(cls, config_path: Path) -> "ServerInfoConfig":
        """Load configuration from a JSON file."""
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            config_data = json.load(f)

        return cls(**config_data)


# Global configuration instance (lazy loaded)
_config: Optional[ServerInfoConfig] = None


def get_config() -> ServerInfoConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = ServerInfoConfig()
    return _config


def set_config(config: ServerInfoConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration to default."""
    global _config
    _config = None
