"""Column metadata for a single table from INFORMATION_SCHEMA.COLUMNS."""

from __future__ import annotations

import logging

from mssql_mcp.config import AppConfig, resolve
from mssql_mcp.core.engine import close_quietly, run_read_only
from mssql_mcp.db import Driver
from mssql_mcp.errors import ConfigError, ErrorKind, MssqlMcpError, NotFoundError
from mssql_mcp.models import ExecutionOutcome, Failure, ResultShape, Success

logger = logging.getLogger(__name__)

# The table name is always bound, never formatted into the statement.
COLUMNS_QUERY = """
SELECT COLUMN_NAME, DATA_TYPE, CHARACTER_MAXIMUM_LENGTH
FROM INFORMATION_SCHEMA.COLUMNS
WHERE TABLE_NAME = :table_name
ORDER BY ORDINAL_POSITION
"""


def inspect(table: str, config: AppConfig, driver: Driver, database_key: str | None = None) -> ExecutionOutcome:
    table = (table or "").strip()
    if not table:
        return Failure("Parameter 'table' is required", ErrorKind.VALIDATION)

    try:
        descriptor = resolve(config, database_key)
    except ConfigError as e:
        logger.error("get_table_schema: configuration error for key %r: %s", database_key, e)
        return Failure(str(e), e.kind, table=table)
    db = descriptor.target_database

    context = f"get_table_schema {table} on {db}"
    connection = None
    try:
        connection = driver.connect(descriptor)
        result = run_read_only(connection, COLUMNS_QUERY, {"table_name": table}, context=context)
        if not result.rows:
            raise NotFoundError(f"Table '{table}' not found or has no columns")
        return Success(
            db=db,
            shape=ResultShape.SCHEMA,
            rows=result.rows,
            columns=result.columns,
            table=table,
        )
    except MssqlMcpError as e:
        logger.error("Error retrieving schema for table '%s' on %s: %s", table, db, e)
        return Failure(str(e), e.kind, db=db, table=table)
    finally:
        if connection is not None:
            close_quietly(connection, context)
