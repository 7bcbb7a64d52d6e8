"""Value types passed between the classifier, engine and normalizer.

Nothing here is persisted: a QueryRequest lives for one call, its outcome is
normalized once into a ResponseEnvelope and dropped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from mssql_mcp.errors import ErrorKind

Scalar = Union[str, int, float, bool, None]
# Column name -> value, in column order.
Record = dict[str, Scalar]


@dataclass(frozen=True)
class QueryRequest:
    raw_sql: str
    database_key: str | None = None


@dataclass(frozen=True)
class ClassificationVerdict:
    permitted: bool
    is_read_only: bool


class ResultShape(str, Enum):
    RECORDS = "records"
    TABLES = "tables"
    MUTATION = "mutation"
    SCHEMA = "schema"


@dataclass(frozen=True)
class Success:
    db: str
    shape: ResultShape = ResultShape.RECORDS
    rows: list[Record] = field(default_factory=list)
    columns: list[str] = field(default_factory=list)
    rows_affected: int | None = None
    table: str | None = None

    @property
    def is_error(self) -> bool:
        return False

    @property
    def table_names(self) -> list[Any]:
        """First column of every row (the TABLES shape)."""
        if not self.columns:
            return [next(iter(row.values()), None) for row in self.rows]
        first = self.columns[0]
        return [row.get(first) for row in self.rows]


@dataclass(frozen=True)
class Failure:
    message: str
    kind: ErrorKind = ErrorKind.INTERNAL
    db: str | None = None
    table: str | None = None

    @property
    def is_error(self) -> bool:
        return True


ExecutionOutcome = Union[Success, Failure]


@dataclass(frozen=True)
class ResponseEnvelope:
    is_error: bool
    payload: str
    error_kind: ErrorKind | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"isError": self.is_error, "payload": self.payload}
        if self.error_kind is not None:
            data["errorKind"] = self.error_kind.value
        return data
