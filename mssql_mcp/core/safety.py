"""Textual safety classification for caller-supplied SQL.

This is a best-effort pre-filter, not a parser and not a security boundary:
comments, dynamic SQL and stored-procedure indirection can all get past it.
Run the server with least-privilege credentials; that is the real control.
"""

from __future__ import annotations

import re

from mssql_mcp.models import ClassificationVerdict

_WHITESPACE = re.compile(r"\s+")

# Matched against the normalized (single-spaced, upper-cased) statement.
_DENY_PATTERNS = [
    # destructive DDL
    re.compile(r"\bDROP\s"),
    re.compile(r"\bTRUNCATE\s"),
    # privilege changes
    re.compile(r"\bALTER\s+ROLE\s"),
    re.compile(r"\b(?:CREATE|ALTER)\s+LOGIN\s"),
    re.compile(r"\b(?:CREATE|ALTER)\s+USER\s"),
    re.compile(r"\bGRANT\s"),
    re.compile(r"\bREVOKE\s"),
    re.compile(r"\bDENY\s"),
    # execution / server reconfiguration
    re.compile(r"\bEXEC(?:\s|\()"),
    re.compile(r"\bEXECUTE(?:\s|\()"),
    re.compile(r"\bXP_CMDSHELL\b"),
    re.compile(r"\bSP_CONFIGURE\b"),
    re.compile(r"\bRECONFIGURE\b"),
]


def normalize_sql(raw_sql: str) -> str:
    """Collapse whitespace runs, trim and upper-case."""
    return _WHITESPACE.sub(" ", raw_sql or "").strip().upper()


def is_safe_query(raw_sql: str) -> bool:
    normalized = normalize_sql(raw_sql)
    return not any(pattern.search(normalized) for pattern in _DENY_PATTERNS)


def is_read_only(raw_sql: str) -> bool:
    return normalize_sql(raw_sql).startswith("SELECT")


def classify(raw_sql: str) -> ClassificationVerdict:
    permitted = is_safe_query(raw_sql)
    return ClassificationVerdict(
        permitted=permitted,
        is_read_only=permitted and is_read_only(raw_sql),
    )


def references_table_catalog(raw_sql: str) -> bool:
    """True for the common ``INFORMATION_SCHEMA.TABLES`` list-tables idiom."""
    return "INFORMATION_SCHEMA.TABLES" in normalize_sql(raw_sql)
