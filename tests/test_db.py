"""Driver tests. SqlAlchemyConnection is exercised against a SQLite file."""

import datetime as dt
import uuid
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import NullPool

from mssql_mcp.config import ConnectionDescriptor
from mssql_mcp.db import SqlAlchemyConnection, build_url, to_scalar
from mssql_mcp.errors import DatabaseError, ErrorKind


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'orders.db'}", poolclass=NullPool)
    with engine.begin() as conn:
        conn.exec_driver_sql("CREATE TABLE Orders (Id INTEGER, Name TEXT)")
        conn.exec_driver_sql("INSERT INTO Orders VALUES (1, 'Widget')")
    return engine


@pytest.mark.parametrize("value,expected", [
    (None, None),
    (True, True),
    (7, 7),
    ("x", "x"),
    (Decimal("3"), 3),
    (Decimal("2.50"), 2.5),
    (dt.datetime(2024, 5, 1, 12, 30), "2024-05-01T12:30:00"),
    (dt.date(2024, 5, 1), "2024-05-01"),
    (b"\x01\xff", "01ff"),
    (uuid.UUID("12345678-1234-5678-1234-567812345678"), "12345678-1234-5678-1234-567812345678"),
])
def test_to_scalar(value, expected):
    assert to_scalar(value) == expected


def test_build_url():
    descriptor = ConnectionDescriptor(
        host="db.local", user="app", password="p@ss", target_database="Sales",
        port=1444, encrypt=True,
    )
    url = build_url(descriptor, "ODBC Driver 17 for SQL Server")
    assert url.drivername == "mssql+pyodbc"
    assert (url.host, url.port, url.database) == ("db.local", 1444, "Sales")
    assert url.password == "p@ss"
    assert url.query["driver"] == "ODBC Driver 17 for SQL Server"
    assert url.query["Encrypt"] == "yes"
    assert url.query["TrustServerCertificate"] == "no"


def test_statement_without_transaction_is_committed(engine):
    conn = SqlAlchemyConnection(engine)
    result = conn.query("INSERT INTO Orders VALUES (2, 'Bolts')")
    conn.close()
    assert result.rowcount == 1
    assert result.rows == []

    conn = SqlAlchemyConnection(engine)
    count = conn.query("SELECT COUNT(*) AS n FROM Orders").rows
    conn.close()
    assert count == [{"n": 2}]


def test_transaction_with_bound_parameters(engine):
    conn = SqlAlchemyConnection(engine)
    conn.begin_transaction("SERIALIZABLE")
    result = conn.query("SELECT Id, Name FROM Orders WHERE Id = :id", {"id": 1})
    conn.commit()
    conn.close()
    assert result.columns == ["Id", "Name"]
    assert result.rows == [{"Id": 1, "Name": "Widget"}]


def test_raw_sql_is_not_parsed_for_bind_names(engine):
    conn = SqlAlchemyConnection(engine)
    rows = conn.query("SELECT ':not_a_param' AS v").rows
    conn.close()
    assert rows == [{"v": ":not_a_param"}]


def test_rolled_back_transaction_discards_changes(engine):
    conn = SqlAlchemyConnection(engine)
    conn.begin_transaction("SERIALIZABLE")
    conn.query("DELETE FROM Orders WHERE Id = :id", {"id": 1})
    conn.rollback()
    conn.close()

    conn = SqlAlchemyConnection(engine)
    assert conn.query("SELECT COUNT(*) AS n FROM Orders").rows == [{"n": 1}]
    conn.close()


def test_commit_and_rollback_without_transaction_are_no_ops(engine):
    conn = SqlAlchemyConnection(engine)
    conn.commit()
    conn.rollback()
    conn.close()


def test_bad_sql_raises_database_error(engine):
    conn = SqlAlchemyConnection(engine)
    with pytest.raises(DatabaseError) as excinfo:
        conn.query("SELEC nonsense")
    conn.close()
    assert excinfo.value.kind is ErrorKind.DATABASE
    assert "syntax error" in str(excinfo.value)


def test_connect_failure_raises_database_error(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'missing' / 'x.db'}", poolclass=NullPool)
    with pytest.raises(DatabaseError):
        SqlAlchemyConnection(engine)


def test_wide_decimal_keeps_its_digits():
    wide = Decimal("12345678901234567890.123456789")
    assert to_scalar(wide) == "12345678901234567890.123456789"
    assert to_scalar(Decimal("19.99")) == 19.99
