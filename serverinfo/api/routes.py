"""
Server Info API Routes

FastAPI routes serving the aggregated info and its documentation:
- GET <path>      the collected metrics
- GET <path>/doc  the metric descriptions, never behind authentication
"""

from __future__ import annotations

import secrets
from typing import Callable, Optional

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials

import structlog

from serverinfo.core.config import RouteConfig
from serverinfo.info.aggregator import ServerInfo

logger = structlog.get_logger(__name__)


basic_scheme = HTTPBasic(auto_error=False)


def basic_auth_guard(user: str, password: str) -> Callable:
    """Build a dependency checking HTTP basic credentials against user/password."""
    expected_user = user.encode("utf-8")
    expected_password = password.encode("utf-8")

    async def guard(
        credentials: Optional[HTTPBasicCredentials] = Depends(basic_scheme),
    ) -> None:
        valid = credentials is not None and (
            secrets.compare_digest(credentials.username.encode("utf-8"), expected_user)
            & secrets.compare_digest(credentials.password.encode("utf-8"), expected_password)
        )
        if not valid:
            logger.warning("Rejected server info request: bad credentials")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid credentials",
                headers={"WWW-Authenticate": "Basic"},
            )

    return guard


def setup_routes(
    app: FastAPI,
    server_info: ServerInfo,
    route: Optional[RouteConfig] = None,
    basic_auth: bool = False,
) -> None:
    """
    Register the info and doc routes.

    Args:
        app: Application to extend
        server_info: Aggregator answering the requests
        route: Path and credentials, defaults to RouteConfig()
        basic_auth: Guard the info route (not the doc route) with HTTP basic auth
    """
    route = route or RouteConfig()
    info_dependencies = [Depends(basic_auth_guard(route.user, route.password))] if basic_auth else []

    @app.get(f"{route.path}/doc")
    async def server_info_doc():
        """Describe the metrics served by the info route."""
        return JSONResponse(content=server_info.describe())

    @app.get(route.path, dependencies=info_dependencies)
    async def server_info_collect():
        """Collect and serve the current metrics."""
        return JSONResponse(content=server_info.collect())

    logger.info("Server info routes registered", path=route.path, basic_auth=basic_auth)
