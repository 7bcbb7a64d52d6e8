"""Shared fixtures: an in-memory fake of the driver capability."""

from __future__ import annotations

import re
from typing import Any, Callable, Mapping

import pytest

from mssql_mcp.config import AppConfig, get_config, load_config
from mssql_mcp.core.service import MssqlService, get_service
from mssql_mcp.db import QueryResult
from mssql_mcp.errors import DatabaseError
from mssql_mcp.tools import sql_tools

SINGLE_ENV = {
    "MSSQL_SERVER": "db.local",
    "MSSQL_USER": "app",
    "MSSQL_PASSWORD": "s3cret",
    "MSSQL_DATABASE": "Sales",
}

ORDERS_COLUMNS = [
    {"COLUMN_NAME": "Id", "DATA_TYPE": "int", "CHARACTER_MAXIMUM_LENGTH": None},
    {"COLUMN_NAME": "Name", "DATA_TYPE": "varchar", "CHARACTER_MAXIMUM_LENGTH": 50},
]

ORDERS_ROWS = [
    {"Id": 1, "Name": "Widget"},
    {"Id": 2, "Name": "Bolts, assorted"},
]

_TOP_TABLE = re.compile(r"FROM\s+\[([^\]]+)\]", re.IGNORECASE)


class FakeConnection:
    def __init__(self, driver: "FakeDriver"):
        self.driver = driver

    def begin_transaction(self, isolation_level: str) -> None:
        self.driver.events.append(("begin", isolation_level))

    def query(self, sql: str, params: Mapping[str, Any] | None = None) -> QueryResult:
        self.driver.events.append(("query", sql, dict(params) if params else None))
        if self.driver.fail_on_query:
            raise DatabaseError(self.driver.fail_on_query)
        return self.driver.respond(sql, params)

    def commit(self) -> None:
        self.driver.events.append(("commit",))
        if self.driver.fail_on_commit:
            raise DatabaseError(self.driver.fail_on_commit)

    def rollback(self) -> None:
        self.driver.events.append(("rollback",))
        if self.driver.fail_on_rollback:
            raise DatabaseError(self.driver.fail_on_rollback)

    def close(self) -> None:
        self.driver.events.append(("close",))
        self.driver.closed += 1


class FakeDriver:
    """Records every call; answers catalog queries from ``tables``."""

    def __init__(
        self,
        tables: dict[str, dict[str, list]] | None = None,
        responder: Callable[[str, Mapping[str, Any] | None], QueryResult] | None = None,
    ):
        self.tables = tables or {}
        self.responder = responder
        self.connects: list = []
        self.events: list[tuple] = []
        self.closed = 0
        self.fail_on_connect: str | None = None
        self.fail_on_query: str | None = None
        self.fail_on_commit: str | None = None
        self.fail_on_rollback: str | None = None
        self.rowcount = 1

    def connect(self, descriptor) -> FakeConnection:
        self.connects.append(descriptor)
        if self.fail_on_connect:
            raise DatabaseError(self.fail_on_connect)
        return FakeConnection(self)

    def event_names(self) -> list[str]:
        return [e[0] for e in self.events]

    def respond(self, sql: str, params: Mapping[str, Any] | None) -> QueryResult:
        if self.responder is not None:
            return self.responder(sql, params)
        upper = sql.upper()
        if "INFORMATION_SCHEMA.COLUMNS" in upper:
            table = self.tables.get((params or {}).get("table_name"), {})
            columns = ["COLUMN_NAME", "DATA_TYPE", "CHARACTER_MAXIMUM_LENGTH"]
            return QueryResult(columns=columns, rows=list(table.get("columns", [])))
        if "INFORMATION_SCHEMA.TABLES" in upper:
            rows = [{"TABLE_NAME": name} for name in sorted(self.tables)]
            return QueryResult(columns=["TABLE_NAME"], rows=rows)
        match = _TOP_TABLE.search(sql)
        if match and match.group(1) in self.tables:
            rows = list(self.tables[match.group(1)].get("rows", []))
            columns = list(rows[0]) if rows else []
            return QueryResult(columns=columns, rows=rows)
        if upper.lstrip().startswith("SELECT"):
            return QueryResult(columns=[], rows=[])
        return QueryResult(rowcount=self.rowcount)


@pytest.fixture
def config() -> AppConfig:
    return load_config(SINGLE_ENV)


@pytest.fixture
def fake_db() -> FakeDriver:
    return FakeDriver(tables={
        "Orders": {"columns": ORDERS_COLUMNS, "rows": ORDERS_ROWS},
        "Users": {"columns": [], "rows": []},
    })


@pytest.fixture
def service(config, fake_db) -> MssqlService:
    return MssqlService(config, fake_db)


@pytest.fixture
def installed_service(monkeypatch, service) -> MssqlService:
    """Make the agent tools (and both transports) use ``service``."""
    monkeypatch.setattr(sql_tools, "get_service", lambda: service)
    return service


@pytest.fixture
def unloadable_config(monkeypatch):
    """Process environment whose configuration fails to load."""
    monkeypatch.delenv("MSSQL_DATABASES", raising=False)
    monkeypatch.setenv("MSSQL_PORT", "abc")
    get_config.cache_clear()
    get_service.cache_clear()
    yield
    get_config.cache_clear()
    get_service.cache_clear()
