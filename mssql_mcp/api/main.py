"""MSSQL MCP FastAPI backend.

Exposes the same tools as the stdio server over plain HTTP for callers that
cannot speak MCP. Every route is a thin adapter over mssql_mcp/tools.

Run with:
    uvicorn mssql_mcp.api.main:app --port 3000
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel, ConfigDict, Field

load_dotenv()

from mssql_mcp.config import ResponseFormat  # noqa: E402
from mssql_mcp.errors import ConfigError  # noqa: E402
from mssql_mcp.tools import sql_tools  # noqa: E402
from mssql_mcp.tools.sql_tools import (  # noqa: E402
    call_tool, execute_sql, get_table_schema, list_databases, list_tables,
    list_tools, read_table,
)

app = FastAPI(
    title="MSSQL MCP API",
    description="SQL Server tables, schema and ad-hoc queries over HTTP",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# errorKind -> HTTP status
_STATUS = {
    "validation": 400,
    "not_found": 404,
    "config": 500,
    "database": 500,
    "internal": 500,
}


class ExecuteSqlRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: str
    db_key: str | None = Field(default=None, alias="dbKey")


class TableSchemaRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    table: str
    db_key: str | None = Field(default=None, alias="dbKey")


class CallToolRequest(BaseModel):
    name: str
    arguments: dict[str, Any] = {}


async def _run(tool, args: dict[str, Any]) -> Any:
    """Run a (blocking) tool in the default executor."""
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, lambda: tool.invoke(args))


def _text_mode() -> bool:
    try:
        config = sql_tools.get_service().config
    except ConfigError:
        return False
    return config.response_format is ResponseFormat.CSV


def _error_response(result: dict[str, Any]) -> JSONResponse:
    status = _STATUS.get(result.get("errorKind", "internal"), 500)
    payload = result["payload"]
    try:
        body = json.loads(payload)
    except ValueError:
        body = {"error": payload}
    if not isinstance(body, dict) or "error" not in body:
        body = {"error": payload}
    return JSONResponse(status_code=status, content=body)


def _envelope_response(result: dict[str, Any], as_text: bool = False) -> Response:
    """Success payload as JSON, or as text in delimited-text mode."""
    if result.get("isError"):
        return _error_response(result)
    payload = result["payload"]
    if as_text:
        return PlainTextResponse(payload)
    return JSONResponse(content=json.loads(payload))


@app.get("/resources")
async def get_resources(db_key: str | None = Query(default=None, alias="dbKey")):
    """List SQL Server tables as resources."""
    return await _run(list_tables, {"db_key": db_key})


@app.get("/resource")
async def get_resource(
    uri: str | None = None,
    db_key: str | None = Query(default=None, alias="dbKey"),
):
    """Read the first rows of a table. Expects query parameter "uri"."""
    if not uri:
        return JSONResponse(status_code=400, content={"error": "Parameter 'uri' is required"})
    result = await _run(read_table, {"uri": uri, "db_key": db_key})
    if result.get("isError"):
        return _error_response(result)
    return PlainTextResponse(result["payload"])


@app.get("/tools")
async def get_tools():
    """List available MSSQL tools."""
    return list_tools()


@app.post("/execute-sql")
async def post_execute_sql(request: ExecuteSqlRequest):
    return _envelope_response(
        await _run(execute_sql, {"query": request.query, "db_key": request.db_key}),
        as_text=_text_mode(),
    )


@app.post("/get-table-schema")
async def post_table_schema(request: TableSchemaRequest):
    return _envelope_response(
        await _run(get_table_schema, {"table": request.table, "db_key": request.db_key}),
        as_text=_text_mode(),
    )


@app.get("/databases")
async def get_databases():
    return _envelope_response(await _run(list_databases, {}))


@app.post("/call-tool")
async def post_call_tool(request: CallToolRequest):
    """Execute a tool by name; returns the raw envelope."""
    loop = asyncio.get_event_loop()
    result = await loop.run_in_executor(None, lambda: call_tool(request.name, request.arguments))
    if isinstance(result, dict) and result.get("isError"):
        return JSONResponse(status_code=_STATUS.get(result.get("errorKind", "internal"), 500), content=result)
    return result


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok", "tools_available": [t["name"] for t in list_tools()]}
