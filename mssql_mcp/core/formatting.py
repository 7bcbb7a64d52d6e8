"""Turn an ExecutionOutcome into the envelope returned to callers.

Two encodings:
  json - structured object, pretty-printed
  csv  - header line plus one comma-joined line per row
"""

from __future__ import annotations

import csv
import io
import json
from typing import Any, Iterable, Sequence

from mssql_mcp.config import ResponseFormat
from mssql_mcp.models import (
    ExecutionOutcome, Failure, Record, ResponseEnvelope, ResultShape, Success,
)

SUCCESS_MESSAGE = "Query executed successfully"

_ROW_END = "\r\n"


def to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


def to_delimited_text(columns: Sequence[str], rows: Iterable[Record]) -> str:
    """Render rows as CSV. Fields with a comma, quote, CR or LF get quoted."""
    buf = io.StringIO()
    # The writer quotes any field holding a lineterminator character, so use
    # CRLF per row and join the rows with LF.
    writer = csv.writer(buf, lineterminator=_ROW_END, quoting=csv.QUOTE_MINIMAL)
    lines = []
    for values in _value_rows(columns, rows):
        buf.seek(0)
        buf.truncate()
        writer.writerow(values)
        lines.append(buf.getvalue()[:-len(_ROW_END)])
    return "\n".join(lines)


def _value_rows(columns: Sequence[str], rows: Iterable[Record]) -> Iterable[list[Any]]:
    yield list(columns)
    for row in rows:
        yield [_cell(row.get(col)) for col in columns]


def _columns_of(outcome: Success) -> list[str]:
    if outcome.columns:
        return list(outcome.columns)
    return list(outcome.rows[0].keys()) if outcome.rows else []


# ---------------------------------------------------------------------------
# Structured payloads
# ---------------------------------------------------------------------------

def structured_payload(outcome: ExecutionOutcome) -> dict[str, Any]:
    if isinstance(outcome, Failure):
        body: dict[str, Any] = {"error": outcome.message}
        if outcome.db:
            body["db"] = outcome.db
        if outcome.table:
            body["table"] = outcome.table
        return body

    if outcome.shape is ResultShape.TABLES:
        tables = outcome.table_names
        return {"tables": tables, "db": outcome.db, "rowCount": len(tables)}
    if outcome.shape is ResultShape.MUTATION:
        return {
            "message": SUCCESS_MESSAGE,
            "db": outcome.db,
            "rowsAffected": outcome.rows_affected,
        }
    if outcome.shape is ResultShape.SCHEMA:
        return {
            "db": outcome.db,
            "table": outcome.table,
            "columns": outcome.rows,
            "rowCount": len(outcome.rows),
        }
    return {"db": outcome.db, "rowCount": len(outcome.rows), "recordset": outcome.rows}


def delimited_payload(outcome: ExecutionOutcome) -> str:
    if isinstance(outcome, Failure):
        return outcome.message

    if outcome.shape is ResultShape.TABLES:
        header = _columns_of(outcome)[:1] or ["TABLE_NAME"]
        return to_delimited_text(header, ({header[0]: name} for name in outcome.table_names))
    if outcome.shape is ResultShape.MUTATION:
        row = {"message": SUCCESS_MESSAGE, "db": outcome.db, "rowsAffected": outcome.rows_affected}
        return to_delimited_text(list(row), [row])
    return to_delimited_text(_columns_of(outcome), outcome.rows)


def normalize(outcome: ExecutionOutcome, response_format: ResponseFormat = ResponseFormat.JSON) -> ResponseEnvelope:
    if response_format is ResponseFormat.CSV:
        payload = delimited_payload(outcome)
    else:
        payload = to_json(structured_payload(outcome))
    return ResponseEnvelope(
        is_error=outcome.is_error,
        payload=payload,
        error_kind=outcome.kind if isinstance(outcome, Failure) else None,
    )
