"""Tests for the LangChain tool wrappers and name-based dispatch."""

import json

from mssql_mcp.tools.sql_tools import (
    TOOLS, call_tool, execute_sql, get_table_schema, list_tables, list_tools,
)


def test_tool_catalog():
    catalog = {t["name"]: t for t in list_tools()}
    assert set(catalog) == {t.name for t in TOOLS}
    assert {"execute_sql", "get_table_schema", "list_databases"} <= set(catalog)
    schema = catalog["execute_sql"]["inputSchema"]
    assert "query" in schema["properties"]
    assert "query" in schema.get("required", [])
    assert catalog["execute_sql"]["description"]


def test_execute_sql_tool(installed_service):
    result = execute_sql.invoke({"query": "SELECT * FROM [Orders]"})
    assert result["isError"] is False
    assert json.loads(result["payload"])["rowCount"] == 2


def test_get_table_schema_tool_not_found(installed_service):
    result = get_table_schema.invoke({"table": "Missing"})
    assert result["isError"] is True
    assert result["errorKind"] == "not_found"


def test_list_tables_tool(installed_service):
    assert [r["name"] for r in list_tables.invoke({})] == ["Table: Orders", "Table: Users"]


def test_call_tool_dispatches(installed_service):
    result = call_tool("execute_sql", {"query": "DROP TABLE Users"})
    assert result["isError"] is True
    assert result["errorKind"] == "validation"


def test_call_tool_unknown_name(installed_service):
    result = call_tool("drop_everything", {})
    assert result == {
        "isError": True, "payload": "Unknown tool: drop_everything", "errorKind": "validation",
    }


def test_call_tool_bad_arguments(installed_service):
    result = call_tool("get_table_schema", {"db_key": "main"})
    assert result["isError"] is True
    assert result["errorKind"] == "validation"
    assert result["payload"].startswith("Invalid arguments for get_table_schema")


def test_tools_report_config_errors(unloadable_config):
    result = execute_sql.invoke({"query": "SELECT 1"})
    assert result["isError"] is True
    assert result["errorKind"] == "config"
    assert "MSSQL_PORT" in json.loads(result["payload"])["error"]
    assert list_tables.invoke({}) == []
