"""Driver capability: connect, query, transaction control, release.

The core only talks to the ``Driver``/``Connection`` protocols below. The
production driver is SQLAlchemy Core over ``mssql+pyodbc``; every connect
builds its own NullPool engine and ``close`` disposes it, so no connection
outlives the call that opened it.
"""

from __future__ import annotations

import datetime as dt
import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping, Protocol

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool

from mssql_mcp.config import DEFAULT_ODBC_DRIVER, ConnectionDescriptor
from mssql_mcp.errors import DatabaseError
from mssql_mcp.models import Record, Scalar

logger = logging.getLogger(__name__)

READ_COMMITTED = "READ COMMITTED"
AUTOCOMMIT = "AUTOCOMMIT"


@dataclass
class QueryResult:
    columns: list[str] = field(default_factory=list)
    rows: list[Record] = field(default_factory=list)
    rowcount: int = -1


class Connection(Protocol):
    def query(self, sql: str, params: Mapping[str, Any] | None = None) -> QueryResult: ...

    def begin_transaction(self, isolation_level: str) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def close(self) -> None: ...


class Driver(Protocol):
    def connect(self, descriptor: ConnectionDescriptor) -> Connection: ...


def to_scalar(value: Any) -> Scalar:
    """Convert a DBAPI value into a JSON-safe scalar."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return int(value)
        as_float = float(value)
        # Wide DECIMAL/MONEY values that a float cannot hold stay exact as text.
        return as_float if Decimal(repr(as_float)) == value else str(value)
    if isinstance(value, (dt.datetime, dt.date, dt.time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    if isinstance(value, uuid.UUID):
        return str(value)
    return str(value)


def _driver_message(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


def build_url(descriptor: ConnectionDescriptor, odbc_driver: str = DEFAULT_ODBC_DRIVER) -> URL:
    return URL.create(
        "mssql+pyodbc",
        username=descriptor.user,
        password=descriptor.password,
        host=descriptor.host,
        port=descriptor.port,
        database=descriptor.target_database,
        query={
            "driver": odbc_driver,
            "Encrypt": "yes" if descriptor.encrypt else "no",
            "TrustServerCertificate": "yes" if descriptor.trust_certificate else "no",
        },
    )


class SqlAlchemyConnection:
    """One live connection; owns (and disposes) its engine."""

    def __init__(self, engine: Engine):
        self._engine = engine
        try:
            self._conn = engine.connect()
        except SQLAlchemyError as e:
            engine.dispose()
            raise DatabaseError(_driver_message(e)) from e
        self._tx = None

    def begin_transaction(self, isolation_level: str) -> None:
        try:
            self._conn.execution_options(isolation_level=isolation_level)
            self._tx = self._conn.begin()
        except SQLAlchemyError as e:
            raise DatabaseError(_driver_message(e)) from e

    def query(self, sql: str, params: Mapping[str, Any] | None = None) -> QueryResult:
        try:
            if self._tx is None and not self._conn.in_transaction():
                # No explicit transaction: let the statement run on its own.
                self._conn.execution_options(isolation_level=AUTOCOMMIT)
            if params:
                result = self._conn.execute(text(sql), dict(params))
            else:
                # Raw caller SQL goes to the DBAPI untouched (no :name parsing).
                result = self._conn.exec_driver_sql(sql)
            if not result.returns_rows:
                return QueryResult(rowcount=result.rowcount)
            columns = list(result.keys())
            rows = [
                {col: to_scalar(value) for col, value in zip(columns, row)}
                for row in result.fetchall()
            ]
            return QueryResult(columns=columns, rows=rows, rowcount=result.rowcount)
        except SQLAlchemyError as e:
            raise DatabaseError(_driver_message(e)) from e

    def commit(self) -> None:
        if self._tx is None:
            return
        try:
            self._tx.commit()
        except SQLAlchemyError as e:
            raise DatabaseError(_driver_message(e)) from e
        finally:
            self._tx = None

    def rollback(self) -> None:
        if self._tx is None:
            return
        try:
            self._tx.rollback()
        except SQLAlchemyError as e:
            raise DatabaseError(_driver_message(e)) from e
        finally:
            self._tx = None

    def close(self) -> None:
        try:
            self._conn.close()
        finally:
            self._engine.dispose()


class SqlAlchemyDriver:
    """Opens a fresh SQL Server connection per call."""

    def __init__(self, odbc_driver: str = DEFAULT_ODBC_DRIVER):
        self.odbc_driver = odbc_driver

    def create_engine(self, descriptor: ConnectionDescriptor) -> Engine:
        return create_engine(build_url(descriptor, self.odbc_driver), poolclass=NullPool)

    def connect(self, descriptor: ConnectionDescriptor) -> SqlAlchemyConnection:
        logger.debug(
            "Connecting to %s/%s", descriptor.host, descriptor.target_database
        )
        try:
            engine = self.create_engine(descriptor)
        except SQLAlchemyError as e:
            raise DatabaseError(_driver_message(e)) from e
        except ImportError as e:
            raise DatabaseError(f"SQL Server driver unavailable: {e}") from e
        return SqlAlchemyConnection(engine)
