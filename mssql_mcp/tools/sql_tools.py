"""LangChain tool wrappers for the SQL Server operations.

Single source of truth: the MCP server and the HTTP API both call these.
Each tool returns the envelope wire form ``{"isError": bool, "payload": str}``
(``list_tables`` returns the resource list).
"""

from __future__ import annotations

import logging
from typing import Any

from langchain_core.tools import tool
from pydantic import ValidationError as PydanticValidationError

from mssql_mcp.config import ResponseFormat
from mssql_mcp.core.formatting import normalize
from mssql_mcp.core.service import get_service
from mssql_mcp.errors import ConfigError, ErrorKind
from mssql_mcp.models import Failure, ResponseEnvelope

logger = logging.getLogger(__name__)


@tool
def execute_sql(query: str, db_key: str | None = None) -> dict[str, Any]:
    """Execute an SQL query on the SQL Server (multi-database support).

    SELECT statements run in a READ COMMITTED transaction. Other statements
    run directly and report the affected row count. DROP, TRUNCATE, EXEC,
    GRANT and similar statements are blocked.

    Args:
        query: The SQL query to execute.
        db_key: Database key (e.g. "maindb"). Optional in single-db mode.
    """
    try:
        service = get_service()
    except ConfigError as e:
        return _config_error("execute_sql", e)
    return service.execute_sql(query, db_key).to_dict()


@tool
def get_table_schema(table: str, db_key: str | None = None) -> dict[str, Any]:
    """Retrieve the columns of a table: name, data type and max length.

    Args:
        table: The name of the table.
        db_key: Database key. Optional in single-db mode.
    """
    try:
        service = get_service()
    except ConfigError as e:
        return _config_error("get_table_schema", e)
    return service.get_table_schema(table, db_key).to_dict()


@tool
def list_databases() -> dict[str, Any]:
    """List all configured databases (credentials masked) and the default key."""
    try:
        service = get_service()
    except ConfigError as e:
        return _config_error("list_databases", e)
    return service.list_databases().to_dict()


@tool
def list_tables(db_key: str | None = None) -> list[dict[str, Any]]:
    """List base tables as resources with uri, name, description and mimeType.

    Args:
        db_key: Database key. Optional in single-db mode.
    """
    try:
        service = get_service()
    except ConfigError as e:
        logger.error("list_tables: configuration error: %s", e)
        return []
    return service.list_resources(db_key)


@tool
def read_table(uri: str, db_key: str | None = None) -> dict[str, Any]:
    """Read the first rows of a table as CSV text.

    Args:
        uri: Resource URI in the form "mssql://<table>/data".
        db_key: Database key. Optional in single-db mode.
    """
    try:
        service = get_service()
    except ConfigError as e:
        return _config_error("read_table", e, ResponseFormat.CSV)
    return service.read_resource(uri, db_key).to_dict()


TOOLS = [execute_sql, get_table_schema, list_databases, list_tables, read_table]
_BY_NAME = {t.name: t for t in TOOLS}


def list_tools() -> list[dict[str, Any]]:
    """Tool catalog: name, description and JSON input schema."""
    return [
        {
            "name": t.name,
            "description": t.description,
            "inputSchema": t.get_input_schema().model_json_schema(),
        }
        for t in TOOLS
    ]


def call_tool(name: str, arguments: dict[str, Any] | None = None) -> Any:
    """Dispatch a tool call by name."""
    selected = _BY_NAME.get(name)
    if selected is None:
        return _invalid(f"Unknown tool: {name}")
    try:
        return selected.invoke(arguments or {})
    except PydanticValidationError as e:
        logger.error("Invalid arguments for tool %s: %s", name, e)
        return _invalid(f"Invalid arguments for {name}: {e.errors(include_url=False)}")


def _invalid(message: str) -> dict[str, Any]:
    return ResponseEnvelope(
        is_error=True, payload=message, error_kind=ErrorKind.VALIDATION,
    ).to_dict()


def _config_error(
    name: str, exc: ConfigError, response_format: ResponseFormat = ResponseFormat.JSON,
) -> dict[str, Any]:
    """Envelope for a configuration that could not be loaded."""
    logger.error("%s: configuration error: %s", name, exc)
    return normalize(Failure(str(exc), exc.kind), response_format).to_dict()
