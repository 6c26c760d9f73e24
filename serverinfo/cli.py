"""
Server Info Command Line Interface

Runs the server or fetches the info from a running one.
"""

from __future__ import annotations

import argparse
import asyncio
import json
from typing import Optional

import httpx

DEFAULT_URL = "http://localhost:8000"
DEFAULT_PATH = "/serverInfo"


def main(argv: Optional[list[str]] = None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="serverinfo",
        description="Server Info - runtime telemetry aggregator CLI",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Server command
    server_parser = subparsers.add_parser("server", help="Start the server")
    server_parser.add_argument("--host", default=None, help="Host to bind to")
    server_parser.add_argument("--port", type=int, default=None, help="Port")
    server_parser.add_argument("--reload", action="store_true", help="Auto-reload")

    # Info command
    info_parser = subparsers.add_parser("info", help="Fetch the current metrics")
    info_parser.add_argument("--url", default=DEFAULT_URL, help="Server URL")
    info_parser.add_argument("--path", default=DEFAULT_PATH, help="Info path")
    info_parser.add_argument("--user", default=None, help="Basic auth user")
    info_parser.add_argument("--password", default=None, help="Basic auth password")

    # Doc command
    doc_parser = subparsers.add_parser("doc", help="Fetch the metric descriptions")
    doc_parser.add_argument("--url", default=DEFAULT_URL, help="Server URL")
    doc_parser.add_argument("--path", default=DEFAULT_PATH, help="Info path")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "server":
        from serverinfo.main import run_server
        run_server(host=args.host, port=args.port, reload=args.reload)
        return 0

    if args.command == "info":
        auth = (args.user, args.password or "") if args.user else None
        return asyncio.run(cmd_get(f"{args.url}{args.path}", auth))

    if args.command == "doc":
        return asyncio.run(cmd_get(f"{args.url}{args.path}/doc"))

    return 1


async def cmd_get(url: str, auth: Optional[tuple[str, str]] = None) -> int:
    """GET a JSON document and print it."""
    async with httpx.AsyncClient(auth=auth) as client:
        response = await client.get(url, timeout=10.0)

        if response.status_code == 200:
            print(json.dumps(response.json(), indent=2))
            return 0

        print(f"Error: {response.status_code}")
        print(response.text)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
