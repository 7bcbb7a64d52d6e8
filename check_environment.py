#!/usr/bin/env python
"""Diagnostic script: Python environment, dependencies and resolved config."""

import json
import os
import sys

from dotenv import load_dotenv

load_dotenv()

print("=" * 60)
print("MSSQL MCP Environment Diagnostic")
print("=" * 60)

print(f"\n1. Python Version: {sys.version}")
print(f"2. Python Executable: {sys.executable}")
print(f"3. Current Directory: {os.getcwd()}")
print(f"4. Virtual Environment: {'Yes' if sys.base_prefix != sys.prefix else 'No'}")

print("\n5. Testing imports:")
imports_to_test = [
    "mcp",
    "fastapi",
    "uvicorn",
    "langchain_core",
    "sqlalchemy",
    "pyodbc",
    "dotenv",
]

for module in imports_to_test:
    try:
        __import__(module)
        print(f"   [OK] {module}")
    except ImportError:
        print(f"   [FAIL] {module} - NOT INSTALLED")

print("\n6. Configuration:")
try:
    from mssql_mcp.config import load_config, resolve
    from mssql_mcp.core.service import MssqlService

    config = load_config()
    print(f"   [OK] mode: {'multi-database' if config.multi_database else 'single database'}")
    print(f"   [OK] response format: {config.response_format.value}")
    for key in config.databases:
        try:
            descriptor = resolve(config, key)
            print(f"   [OK] {key}: {descriptor.host}/{descriptor.target_database}")
        except Exception as e:
            print(f"   [FAIL] {key}: {e}")
    summary = MssqlService(config).describe_databases()
    print(json.dumps(summary, indent=2))
except Exception as e:
    print(f"   [FAIL] Error: {e}")

print("\n7. File existence check:")
files_to_check = ["run_server.py", ".env", "pyproject.toml", "mssql_mcp/core/service.py"]
for filepath in files_to_check:
    exists = "[OK]" if os.path.exists(filepath) else "[MISSING]"
    print(f"   {exists} {filepath}")

print("\n" + "=" * 60)
print("Diagnostic Complete")
print("=" * 60)
