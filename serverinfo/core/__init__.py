"""Server info core: configuration."""

from serverinfo.core.config import (
    LogLevel,
    MonitoringConfig,
    RouteConfig,
    SamplerConfig,
    ServerInfoConfig,
    get_config,
    reset_config,
    set_config,
)

__all__ = [
    "LogLevel",
    "MonitoringConfig",
    "RouteConfig",
    "SamplerConfig",
    "ServerInfoConfig",
    "get_config",
    "reset_config",
    "set_config",
]
