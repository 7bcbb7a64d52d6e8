"""Error taxonomy shared by every layer.

Each error maps onto an ErrorKind so transports can pick a status code
without knowing the exception class.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    CONFIG = "config"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    DATABASE = "database"
    INTERNAL = "internal"


class MssqlMcpError(Exception):
    """Base class for errors raised inside the query-mediation layer."""

    kind = ErrorKind.INTERNAL


class ConfigError(MssqlMcpError):
    """Missing/invalid connection settings or an unknown database key."""

    kind = ErrorKind.CONFIG


class ValidationError(MssqlMcpError):
    """Malformed input: bad URI, missing argument, blocked statement."""

    kind = ErrorKind.VALIDATION


class DatabaseError(MssqlMcpError):
    """Driver, connection or transaction failure (carries the driver message)."""

    kind = ErrorKind.DATABASE


class NotFoundError(MssqlMcpError):
    """Table absent or without columns."""

    kind = ErrorKind.NOT_FOUND
