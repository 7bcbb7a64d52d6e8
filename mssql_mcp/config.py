"""Connection configuration for one or many SQL Server databases.

The environment is read exactly once (``get_config``) into an immutable
AppConfig. Everything downstream receives that value explicitly and calls
``resolve`` to turn an optional database key into a ConnectionDescriptor.

Single database:
    MSSQL_SERVER, MSSQL_PORT, MSSQL_USER, MSSQL_PASSWORD, MSSQL_DATABASE,
    MSSQL_ENCRYPT, MSSQL_TRUST_SERVER_CERTIFICATE

Several databases:
    MSSQL_DATABASES=main,reporting
    MSSQL_MAIN_USER=...      MSSQL_REPORTING_DATABASE=...   (and so on)
    MSSQL_DEFAULT_DATABASE=reporting   (optional, first key otherwise)

TLS flags are on only for 1/true/yes/on (any case).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from types import MappingProxyType
from typing import Any, Mapping

from mssql_mcp.errors import ConfigError

DEFAULT_KEY = "default"
DEFAULT_SERVER = "localhost"
DEFAULT_PORT = 1433
DEFAULT_ODBC_DRIVER = "ODBC Driver 18 for SQL Server"
MASK = "********"

_TRUTHY = {"1", "true", "yes", "on"}


class ResponseFormat(str, Enum):
    JSON = "json"
    CSV = "csv"


@dataclass(frozen=True)
class DatabaseSettings:
    """Raw settings for one database key, possibly incomplete."""

    host: str = DEFAULT_SERVER
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    encrypt: bool = False
    trust_certificate: bool = False


@dataclass(frozen=True)
class ConnectionDescriptor:
    host: str
    user: str
    password: str
    target_database: str
    port: int | None = None
    encrypt: bool = False
    trust_certificate: bool = False


@dataclass(frozen=True)
class AppConfig:
    databases: Mapping[str, DatabaseSettings]
    default_key: str
    multi_database: bool = False
    response_format: ResponseFormat = ResponseFormat.JSON
    resource_row_limit: int = 100
    odbc_driver: str = DEFAULT_ODBC_DRIVER
    log_level: str = "INFO"
    log_file: str | None = None
    http_host: str = "0.0.0.0"
    http_port: int = 3000

    def __post_init__(self):
        # Freeze the table so nothing can mutate it after start-up.
        object.__setattr__(self, "databases", MappingProxyType(dict(self.databases)))


# ---------------------------------------------------------------------------
# Environment parsing
# ---------------------------------------------------------------------------

def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in _TRUTHY


def _int(name: str, value: str | None, default: int | None) -> int | None:
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None


def _settings_from_env(env: Mapping[str, str], prefix: str) -> DatabaseSettings:
    """Read one key's settings; server, port and TLS fall back to MSSQL_*."""

    def get(suffix: str, shared: bool = False) -> str | None:
        value = env.get(f"{prefix}{suffix}")
        if value is None and shared:
            value = env.get(f"MSSQL_{suffix}")
        return value

    return DatabaseSettings(
        host=get("SERVER", shared=True) or DEFAULT_SERVER,
        port=_int(f"{prefix}PORT", get("PORT", shared=True), None),
        user=get("USER"),
        password=get("PASSWORD"),
        database=get("DATABASE"),
        encrypt=_flag(get("ENCRYPT", shared=True)),
        trust_certificate=_flag(get("TRUST_SERVER_CERTIFICATE", shared=True)),
    )


def load_config(environ: Mapping[str, str] | None = None) -> AppConfig:
    """Build an AppConfig from environment-style key/value input."""
    env = os.environ if environ is None else environ

    listed_keys = (env.get("MSSQL_DATABASES") or "").strip()
    if listed_keys:
        keys = [k.strip().lower() for k in listed_keys.split(",") if k.strip()]
        databases = {
            key: _settings_from_env(env, f"MSSQL_{key.upper()}_") for key in keys
        }
        default_key = (env.get("MSSQL_DEFAULT_DATABASE") or keys[0]).strip().lower()
        if default_key not in databases:
            raise ConfigError(
                f"MSSQL_DEFAULT_DATABASE '{default_key}' is not listed in MSSQL_DATABASES"
            )
        multi = True
    else:
        databases = {DEFAULT_KEY: _settings_from_env(env, "MSSQL_")}
        default_key = DEFAULT_KEY
        multi = False

    fmt = (env.get("MSSQL_RESPONSE_FORMAT") or ResponseFormat.JSON.value).strip().lower()
    try:
        response_format = ResponseFormat(fmt)
    except ValueError:
        raise ConfigError(f"MSSQL_RESPONSE_FORMAT must be 'json' or 'csv', got {fmt!r}") from None

    return AppConfig(
        databases=databases,
        default_key=default_key,
        multi_database=multi,
        response_format=response_format,
        resource_row_limit=_int("MSSQL_RESOURCE_ROW_LIMIT", env.get("MSSQL_RESOURCE_ROW_LIMIT"), 100),
        odbc_driver=env.get("MSSQL_ODBC_DRIVER") or DEFAULT_ODBC_DRIVER,
        log_level=(env.get("MSSQL_LOG_LEVEL") or "INFO").upper(),
        log_file=env.get("MSSQL_LOG_FILE") or None,
        http_host=env.get("HOST") or "0.0.0.0",
        http_port=_int("PORT", env.get("PORT"), 3000),
    )


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Process-wide configuration, read from os.environ on first use."""
    return load_config()


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def resolve(config: AppConfig, database_key: str | None = None) -> ConnectionDescriptor:
    """Return the descriptor for ``database_key`` (or the default one)."""
    key = (database_key or "").strip().lower() or config.default_key
    settings = config.databases.get(key)
    if settings is None:
        available = ", ".join(config.databases)
        raise ConfigError(f"Unknown database key '{database_key}'. Available: {available}")

    missing = [
        name for name, value in (
            ("user", settings.user),
            ("password", settings.password),
            ("database", settings.database),
        ) if not value
    ]
    if missing:
        raise ConfigError(
            f"Missing required database configuration for '{key}': {', '.join(missing)}"
        )

    return ConnectionDescriptor(
        host=settings.host,
        port=settings.port,
        user=settings.user,
        password=settings.password,
        target_database=settings.database,
        encrypt=settings.encrypt,
        trust_certificate=settings.trust_certificate,
    )


def mask_settings(settings: DatabaseSettings) -> dict[str, Any]:
    """Settings as shown to callers: no plain-text password."""
    return {
        "server": settings.host,
        "port": settings.port or DEFAULT_PORT,
        "database": settings.database,
        "user": settings.user,
        "password": MASK if settings.password else None,
        "options": {
            "encrypt": settings.encrypt,
            "trustServerCertificate": settings.trust_certificate,
        },
    }
