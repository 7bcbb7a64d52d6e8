"""The five operations both transports expose.

Every method is an error boundary: whatever goes wrong is logged and turned
into an error envelope (or an empty list), never raised to the transport.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from mssql_mcp.config import AppConfig, ResponseFormat, get_config, mask_settings
from mssql_mcp.core import engine, resources, schema
from mssql_mcp.core.formatting import normalize, to_json
from mssql_mcp.db import Driver, SqlAlchemyDriver
from mssql_mcp.errors import ErrorKind
from mssql_mcp.models import Failure, QueryRequest, ResponseEnvelope

logger = logging.getLogger(__name__)


def _internal_error(operation: str, exc: Exception) -> Failure:
    logger.exception("Unexpected error in %s", operation)
    return Failure(f"{type(exc).__name__}: {exc}", ErrorKind.INTERNAL)


class MssqlService:
    def __init__(self, config: AppConfig, driver: Driver | None = None):
        self.config = config
        self.driver = driver or SqlAlchemyDriver(config.odbc_driver)

    def list_resources(self, database_key: str | None = None) -> list[dict[str, Any]]:
        try:
            return resources.list_table_resources(self.config, self.driver, database_key)
        except Exception as e:  # noqa: BLE001
            logger.error("Failed to list resources (key=%r): %s", database_key, e)
            return []

    def read_resource(self, uri: str, database_key: str | None = None) -> ResponseEnvelope:
        """Top rows of one table, always as delimited text."""
        try:
            outcome = resources.read_table(uri, self.config, self.driver, database_key)
        except Exception as e:  # noqa: BLE001
            outcome = _internal_error(f"read_resource {uri}", e)
        return normalize(outcome, ResponseFormat.CSV)

    def execute_sql(self, query: str, database_key: str | None = None) -> ResponseEnvelope:
        try:
            outcome = engine.execute(QueryRequest(query, database_key), self.config, self.driver)
        except Exception as e:  # noqa: BLE001
            outcome = _internal_error("execute_sql", e)
        return normalize(outcome, self.config.response_format)

    def get_table_schema(self, table: str, database_key: str | None = None) -> ResponseEnvelope:
        try:
            outcome = schema.inspect(table, self.config, self.driver, database_key)
        except Exception as e:  # noqa: BLE001
            outcome = _internal_error(f"get_table_schema {table}", e)
        return normalize(outcome, self.config.response_format)

    def describe_databases(self) -> dict[str, Any]:
        keys = list(self.config.databases)
        return {
            "availableDatabases": keys,
            "configurations": {key: mask_settings(s) for key, s in self.config.databases.items()},
            "count": len(keys),
            "defaultDatabase": self.config.default_key,
        }

    def list_databases(self) -> ResponseEnvelope:
        try:
            return ResponseEnvelope(is_error=False, payload=to_json(self.describe_databases()))
        except Exception as e:  # noqa: BLE001
            return normalize(_internal_error("list_databases", e), ResponseFormat.JSON)


@lru_cache(maxsize=1)
def get_service() -> MssqlService:
    """Process-wide service built from the process-wide config."""
    return MssqlService(get_config())
