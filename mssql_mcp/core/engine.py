"""Execution engine: resolve -> classify -> connect -> run -> release.

Read-only statements run inside a READ COMMITTED transaction that is always
committed or rolled back; anything else runs directly on the connection and
reports the affected-row count. The connection is closed on every path.
"""

from __future__ import annotations

import logging

from mssql_mcp.config import AppConfig, resolve
from mssql_mcp.core.safety import classify, references_table_catalog
from mssql_mcp.db import READ_COMMITTED, Connection, Driver, QueryResult
from mssql_mcp.errors import ConfigError, ErrorKind, MssqlMcpError
from mssql_mcp.models import ExecutionOutcome, Failure, QueryRequest, ResultShape, Success

logger = logging.getLogger(__name__)

UNSAFE_MESSAGE = "Query contains potentially unsafe operations and was blocked for security"
MISSING_QUERY_MESSAGE = "Parameter 'query' is required"


def rollback_quietly(connection: Connection, context: str) -> None:
    """Roll back; a failure here is logged and never replaces the original error."""
    try:
        connection.rollback()
    except Exception as e:  # noqa: BLE001
        logger.error("Rollback error (%s): %s", context, e)


def close_quietly(connection: Connection, context: str) -> None:
    try:
        connection.close()
    except Exception as e:  # noqa: BLE001
        logger.error("Error releasing connection (%s): %s", context, e)


def run_read_only(connection: Connection, sql: str, params: dict | None = None, context: str = "") -> QueryResult:
    """Run one read inside READ COMMITTED; roll back if it or the commit fails."""
    connection.begin_transaction(READ_COMMITTED)
    try:
        result = connection.query(sql, params)
        connection.commit()
    except Exception:
        rollback_quietly(connection, context)
        raise
    return result


def execute(request: QueryRequest, config: AppConfig, driver: Driver) -> ExecutionOutcome:
    raw_sql = request.raw_sql or ""
    if not raw_sql.strip():
        return Failure(MISSING_QUERY_MESSAGE, ErrorKind.VALIDATION)

    try:
        descriptor = resolve(config, request.database_key)
    except ConfigError as e:
        logger.error("execute_sql: configuration error for key %r: %s", request.database_key, e)
        return Failure(str(e), e.kind)
    db = descriptor.target_database

    verdict = classify(raw_sql)
    if not verdict.permitted:
        logger.warning("execute_sql: blocked unsafe statement on %s: %.200s", db, raw_sql)
        return Failure(UNSAFE_MESSAGE, ErrorKind.VALIDATION, db=db)

    context = f"execute_sql on {db}"
    connection = None
    try:
        connection = driver.connect(descriptor)
        if verdict.is_read_only:
            result = run_read_only(connection, raw_sql, context=context)
            shape = ResultShape.TABLES if references_table_catalog(raw_sql) else ResultShape.RECORDS
            return Success(db=db, shape=shape, rows=result.rows, columns=result.columns)

        result = connection.query(raw_sql)
        # Row-returning statements (WITH ... SELECT, INSERT ... OUTPUT) report -1.
        affected = result.rowcount if result.rowcount >= 0 else len(result.rows)
        return Success(db=db, shape=ResultShape.MUTATION, rows_affected=affected)
    except MssqlMcpError as e:
        logger.error("Error executing SQL query on %s: %s", db, e)
        return Failure(str(e), e.kind, db=db)
    finally:
        if connection is not None:
            close_quietly(connection, context)
