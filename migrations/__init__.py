"""
Database migrations system for SQLite and PostgreSQL compatibility.

This module provides:
- A migrations table to track applied migrations
- Auto-apply migrations at startup
- Schema validation for the kv_store table

Usage:
    from migrations import run_migrations, validate_schema

    run_migrations()
    validate_schema()  # Raises SchemaError if invalid
"""

from .runner import (
    run_migrations,
    get_applied_migrations,
    get_pending_migrations,
    validate_schema,
    repair_schema,
    SchemaError,
    MigrationError,
    EXPECTED_SCHEMA,
)
