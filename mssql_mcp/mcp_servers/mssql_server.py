"""SQL Server MCP server - thin wrapper around mssql_mcp/tools/sql_tools.py.

Run standalone:  python -m mssql_mcp.mcp_servers.mssql_server
External use:    Claude Desktop, Cursor, or any MCP client via stdio

Core logic lives in mssql_mcp/core (single source of truth). Blocking
database work runs in the default executor via ``ainvoke``.
"""

from __future__ import annotations

import json
from typing import Any

from dotenv import load_dotenv
from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ResourceError, ToolError

load_dotenv()

from mssql_mcp.config import get_config  # noqa: E402
from mssql_mcp.logs import configure_logging  # noqa: E402
from mssql_mcp.tools.sql_tools import execute_sql as _execute_sql  # noqa: E402
from mssql_mcp.tools.sql_tools import get_table_schema as _get_table_schema  # noqa: E402
from mssql_mcp.tools.sql_tools import list_databases as _list_databases  # noqa: E402
from mssql_mcp.tools.sql_tools import list_tables as _list_tables  # noqa: E402
from mssql_mcp.tools.sql_tools import read_table as _read_table  # noqa: E402

mcp = FastMCP("MSSQL MCP")


def _unwrap(result: dict[str, Any]) -> str:
    """Envelope -> text content; error envelopes become isError results."""
    if result.get("isError"):
        raise ToolError(result["payload"])
    return result["payload"]


@mcp.tool()
async def execute_sql(query: str, db_key: str | None = None) -> str:
    """Execute an SQL query on the SQL Server (multi-database support)."""
    return _unwrap(await _execute_sql.ainvoke({"query": query, "db_key": db_key}))


@mcp.tool()
async def get_table_schema(table: str, db_key: str | None = None) -> str:
    """Retrieve the schema of a specified table (multi-database support)."""
    return _unwrap(await _get_table_schema.ainvoke({"table": table, "db_key": db_key}))


@mcp.tool()
async def list_databases() -> str:
    """List all configured databases in the application."""
    return _unwrap(await _list_databases.ainvoke({}))


@mcp.tool()
async def list_tables(db_key: str | None = None) -> str:
    """List SQL Server base tables as mssql://<table>/data resources."""
    return json.dumps(await _list_tables.ainvoke({"db_key": db_key}), indent=2)


@mcp.resource("mssql://{table}/data", mime_type="text/plain")
async def table_data(table: str) -> str:
    """First rows of a table as CSV."""
    result = await _read_table.ainvoke({"uri": f"mssql://{table}/data"})
    if result.get("isError"):
        raise ResourceError(result["payload"])
    return result["payload"]


def main() -> None:
    config = get_config()
    configure_logging(config.log_level, config.log_file)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
