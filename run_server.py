#!/usr/bin/env python3
"""MSSQL MCP CLI - start the server on one of its transports.

Usage:
    python run_server.py            # MCP over stdio (default)
    python run_server.py stdio
    python run_server.py http       # FastAPI on $HOST:$PORT
    python run_server.py http --port 8080
"""

from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv

load_dotenv()

from mssql_mcp.config import get_config  # noqa: E402
from mssql_mcp.errors import ConfigError  # noqa: E402
from mssql_mcp.logs import configure_logging  # noqa: E402

logger = logging.getLogger("mssql_mcp")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="SQL Server MCP server")
    parser.add_argument("transport", nargs="?", choices=("stdio", "http"), default="stdio")
    parser.add_argument("--host", default=None, help="HTTP bind address (default $HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="HTTP port (default $PORT or 3000)")
    args = parser.parse_args(argv)

    try:
        config = get_config()
    except ConfigError as e:
        sys.stderr.write(f"Configuration error: {e}\n")
        return 2
    configure_logging(config.log_level, config.log_file)

    if args.transport == "http":
        import uvicorn

        host = args.host or config.http_host
        port = args.port or config.http_port
        logger.info("MSSQL MCP HTTP server is running on %s:%s", host, port)
        uvicorn.run("mssql_mcp.api.main:app", host=host, port=port, log_config=None)
        return 0

    from mssql_mcp.mcp_servers import mssql_server

    logger.info("Starting MSSQL MCP server on stdio")
    try:
        mssql_server.main()
    except KeyboardInterrupt:
        logger.info("Received SIGINT. Exiting...")
    except Exception:
        logger.exception("Server error")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
