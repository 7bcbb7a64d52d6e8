"""Base tables exposed as readable resources (``mssql://<table>/data``)."""

from __future__ import annotations

import logging
from typing import Any

from mssql_mcp.config import AppConfig, resolve
from mssql_mcp.core.engine import close_quietly, run_read_only
from mssql_mcp.db import Driver
from mssql_mcp.errors import ConfigError, MssqlMcpError, ValidationError
from mssql_mcp.models import ExecutionOutcome, Failure, ResultShape, Success

logger = logging.getLogger(__name__)

RESOURCE_SCHEME = "mssql"
RESOURCE_PREFIX = f"{RESOURCE_SCHEME}://"

TABLES_QUERY = """
SELECT TABLE_NAME
FROM INFORMATION_SCHEMA.TABLES
WHERE TABLE_TYPE = 'BASE TABLE'
ORDER BY TABLE_NAME
"""


def resource_uri(table: str) -> str:
    return f"{RESOURCE_PREFIX}{table}/data"


def parse_resource_uri(uri: str) -> str:
    """Return the table named by ``mssql://<table>/data``."""
    if not uri or not uri.startswith(RESOURCE_PREFIX):
        raise ValidationError(f"Invalid URI scheme: {uri}")
    parts = uri[len(RESOURCE_PREFIX):].split("/")
    table = parts[0].strip()
    if not table or len(parts) > 2 or (len(parts) == 2 and parts[1] not in ("", "data")):
        raise ValidationError(f"Invalid resource URI: {uri}")
    return table


def quote_identifier(name: str) -> str:
    """Bracket-quote a (possibly schema-qualified) table name."""
    parts = [p.strip() for p in name.split(".")]
    if any(not p for p in parts):
        raise ValidationError(f"Invalid table name: {name}")
    return ".".join("[" + p.replace("]", "]]") + "]" for p in parts)


def list_table_resources(config: AppConfig, driver: Driver, database_key: str | None = None) -> list[dict[str, Any]]:
    descriptor = resolve(config, database_key)
    connection = driver.connect(descriptor)
    try:
        result = run_read_only(connection, TABLES_QUERY, context=f"list_resources on {descriptor.target_database}")
    finally:
        close_quietly(connection, "list_resources")

    resources = []
    for row in result.rows:
        name = row.get("TABLE_NAME", next(iter(row.values()), None))
        resources.append({
            "uri": resource_uri(name),
            "name": f"Table: {name}",
            "description": f"Data in table: {name}",
            "mimeType": "text/plain",
        })
    return resources


def read_table(uri: str, config: AppConfig, driver: Driver, database_key: str | None = None) -> ExecutionOutcome:
    """Top-N rows of the table behind ``uri``."""
    try:
        table = parse_resource_uri(uri)
        quoted = quote_identifier(table)
    except ValidationError as e:
        logger.error("read_resource: %s", e)
        return Failure(str(e), e.kind)

    try:
        descriptor = resolve(config, database_key)
    except ConfigError as e:
        logger.error("read_resource: configuration error for key %r: %s", database_key, e)
        return Failure(str(e), e.kind, table=table)
    db = descriptor.target_database

    sql = f"SELECT TOP {int(config.resource_row_limit)} * FROM {quoted}"
    context = f"read_resource {uri} on {db}"
    connection = None
    try:
        connection = driver.connect(descriptor)
        result = run_read_only(connection, sql, context=context)
        return Success(db=db, shape=ResultShape.RECORDS, rows=result.rows, columns=result.columns, table=table)
    except MssqlMcpError as e:
        logger.error("Database error reading resource %s: %s", uri, e)
        return Failure(f"Database error: {e}", e.kind, db=db, table=table)
    finally:
        if connection is not None:
            close_quietly(connection, context)
