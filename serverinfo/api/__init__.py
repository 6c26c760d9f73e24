"""Server Info API Module - FastAPI routes for the info and doc endpoints."""

from serverinfo.api.routes import basic_auth_guard, setup_routes

__all__ = [
    "basic_auth_guard",
    "setup_routes",
]
