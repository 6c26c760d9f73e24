"""
Server Info - Main entry point

Builds the FastAPI application serving the aggregated runtime metrics.
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Optional

import structlog
import uvicorn
from fastapi import FastAPI

from serverinfo import __version__
from serverinfo.api.routes import setup_routes
from serverinfo.core.config import ServerInfoConfig, get_config, set_config
from serverinfo.info.aggregator import FactsSource, ServerInfo
from serverinfo.info.observers import MultiplexerObserverSource, ObserverInfo, ObserverSource
from serverinfo.info.process import ProcessInfo
from serverinfo.info.sessions import InMemorySessionSource, SessionInfo, SessionSource
from serverinfo.info.sockets import InMemorySocketSource, SocketInfo, SocketSource


# Configure structured logging
def setup_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """Configure structured logging."""
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    renderer = (
        structlog.processors.JSONRenderer()
        if log_format == "json"
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger(__name__)


@dataclass
class InfoSources:
    """The read-only data sources the sections report on."""
    observers: ObserverSource = field(default_factory=MultiplexerObserverSource)
    sessions: SessionSource = field(default_factory=InMemorySessionSource)
    sockets: SocketSource = field(default_factory=InMemorySocketSource)
    facts: Optional[FactsSource] = field(default_factory=dict)
    process: Optional[Any] = None


def build_server_info(
    config: ServerInfoConfig,
    sources: Optional[InfoSources] = None,
) -> ServerInfo:
    """Create the aggregator with the standard sections."""
    sources = sources or InfoSources()
    return ServerInfo(
        sections=[
            ("sockets", SocketInfo(sources.sockets)),
            ("sessions", SessionInfo(sources.sessions)),
            ("mongo", ObserverInfo(sources.observers)),
            ("process", ProcessInfo(
                process=sources.process,
                interval_ms=config.sampler.loop_interval_ms,
            )),
        ],
        facts=sources.facts,
        strict=config.debug,
    )


def create_app(
    config: Optional[ServerInfoConfig] = None,
    sources: Optional[InfoSources] = None,
    server_info: Optional[ServerInfo] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Optional configuration override
        sources: Data sources for the standard sections
        server_info: Prebuilt aggregator, replacing the standard sections

    Returns:
        Configured FastAPI application
    """
    if config:
        set_config(config)
    else:
        config = get_config()

    setup_logging(config.monitoring.log_level.value, config.monitoring.log_format)

    info = server_info or build_server_info(config, sources)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        logger.info("Starting server info", path=config.route.path)
        info.start()

        yield

        logger.info("Shutting down server info")
        await info.shutdown()

    app = FastAPI(
        title="Server Info",
        description="Runtime metrics: process, sessions, sockets and observers.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.server_info = info

    setup_routes(app, info, route=config.route, basic_auth=config.basic_auth)
    return app


def run_server(
    host: Optional[str] = None,
    port: Optional[int] = None,
    reload: bool = False,
) -> None:
    """
    Run the server.

    Args:
        host: Host to bind to
        port: Port to bind to
        reload: Enable auto-reload for development
    """
    config = get_config()
    if host is not None:
        config.host = host
    if port is not None:
        config.port = port
    set_config(config)

    uvicorn.run(
        "serverinfo.main:create_app",
        factory=True,
        host=config.host,
        port=config.port,
        reload=reload,
        log_level=config.monitoring.log_level.value.lower(),
    )


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Server Info")
    parser.add_argument("--host", default=None, help="Host to bind to")
    parser.add_argument("--port", type=int, default=None, help="Port to bind to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")

    args = parser.parse_args()

    run_server(host=args.host, port=args.port, reload=args.reload)
