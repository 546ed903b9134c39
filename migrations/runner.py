"""
Migration runner with schema validation.

Provides:
- Migration tracking via _migrations table
- Auto-apply pending migrations at startup
- Schema validation to catch missing columns BEFORE app runs
- Auto-repair that recreates a dropped kv_store table
"""

import sys
from typing import List, Dict, Tuple

# Expected schema definition - single source of truth
# Format: {table_name: [column_names]}
EXPECTED_SCHEMA: Dict[str, List[str]] = {
    "kv_store": ["store_key", "store_value", "updated_at"],
}

# SQL to create each table if missing, as (sqlite_sql, postgres_sql)
TABLE_CREATE_SQL: Dict[str, Tuple[str, str]] = {
    "kv_store": (
        """CREATE TABLE IF NOT EXISTS kv_store (
            store_key TEXT PRIMARY KEY,
            store_value TEXT NOT NULL,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )""",
        """CREATE TABLE IF NOT EXISTS kv_store (
            store_key TEXT PRIMARY KEY,
            store_value TEXT NOT NULL,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )"""
    ),
}

class SchemaError(Exception):
    """Raised when schema validation fails."""
    pass


class MigrationError(Exception):
    """Raised when a migration fails to apply."""
    pass


# ============ MIGRATIONS REGISTRY ============
# Migrations are defined here as (name, sql_sqlite, sql_postgres) tuples
# Each migration runs once and is tracked in _migrations table

MIGRATIONS: List[Tuple[str, str, str]] = [
    (
        "001_create_migrations_table",
        """
        CREATE TABLE IF NOT EXISTS _migrations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT UNIQUE NOT NULL,
            applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
        """,
        """
        CREATE TABLE IF NOT EXISTS _migrations (
            id SERIAL PRIMARY KEY,
            name TEXT UNIQUE NOT NULL,
            applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
        """
    ),
    (
        "002_create_kv_store",
        TABLE_CREATE_SQL["kv_store"][0] + ";",
        TABLE_CREATE_SQL["kv_store"][1] + ";",
    ),
]


def _get_db_connection():
    """Get database connection using db module's get_conn."""
    # Import here to avoid circular imports
    import db
    return db.get_conn()


def _is_postgres():
    import db
    return db.is_postgres()


def _table_exists(table: str) -> bool:
    import db
    return db.table_exists(table)


def _column_exists(table: str, column: str) -> bool:
    import db
    return db.column_exists(table, column)


def _create_table_if_missing(table: str) -> bool:
    """
    Create a table if it doesn't exist using TABLE_CREATE_SQL.
    Returns True if table was created, False if it already existed.
    """
    if _table_exists(table) or table not in TABLE_CREATE_SQL:
        return False

    sqlite_sql, postgres_sql = TABLE_CREATE_SQL[table]
    sql = postgres_sql if _is_postgres() else sqlite_sql

    with _get_db_connection() as conn:
        cur = conn.cursor()
        try:
            cur.execute(sql)
            conn.commit()
            return True
        except Exception as e:
            print(f"[migrations] Failed to create table {table}: {e}", file=sys.stderr)
            conn.rollback()
            return False


def repair_schema(verbose: bool = False) -> Dict[str, List[str]]:
    """
    Create missing tables. Missing columns are left for validate_schema()
    to report.

    Returns dict of {table: ["TABLE_CREATED"]}
    """
    repaired: Dict[str, List[str]] = {}

    for table in EXPECTED_SCHEMA:
        if _table_exists(table):
            continue
        if verbose:
            print(f"[migrations] Repairing: Creating table {table}", file=sys.stderr)
        if _create_table_if_missing(table):
            repaired[table] = ["TABLE_CREATED"]

    return repaired


def _ensure_migrations_table():
    """Create _migrations table if it doesn't exist."""
    _, sql_sqlite, sql_postgres = MIGRATIONS[0]
    with _get_db_connection() as conn:
        cur = conn.cursor()
        cur.execute((sql_postgres if _is_postgres() else sql_sqlite).strip().rstrip(';'))
        conn.commit()


def get_applied_migrations() -> List[str]:
    """Get list of already-applied migration names."""
    _ensure_migrations_table()

    with _get_db_connection() as conn:
        cur = conn.cursor()
        cur.execute("SELECT name FROM _migrations ORDER BY id")
        return [row[0] for row in cur.fetchall()]


def get_pending_migrations() -> List[Tuple[str, str, str]]:
    """Get list of migrations that haven't been applied yet."""
    applied = set(get_applied_migrations())
    return [m for m in MIGRATIONS if m[0] not in applied]


def _mark_migration_applied(name: str, conn):
    """Record that a migration has been applied."""
    cur = conn.cursor()
    if _is_postgres():
        cur.execute(
            "INSERT INTO _migrations(name) VALUES(%s) ON CONFLICT (name) DO NOTHING",
            (name,)
        )
    else:
        cur.execute(
            "INSERT OR IGNORE INTO _migrations(name) VALUES(?)",
            (name,)
        )


def run_migrations(verbose: bool = True, auto_repair: bool = True) -> List[str]:
    """
    Apply all pending migrations in order.

    Args:
        verbose: Print progress messages
        auto_repair: If True, recreate missing tables after migrations

    Returns list of applied migration names.
    """
    _ensure_migrations_table()
    applied = []
    is_pg = _is_postgres()

    for name, sql_sqlite, sql_postgres in get_pending_migrations():
        sql = sql_postgres if is_pg else sql_sqlite

        if verbose:
            print(f"[migrations] Applying: {name}")

        try:
            with _get_db_connection() as conn:
                cur = conn.cursor()
                for stmt in sql.strip().split(';'):
                    stmt = stmt.strip()
                    if stmt and not stmt.startswith('--'):
                        cur.execute(stmt)

                _mark_migration_applied(name, conn)
                conn.commit()
                applied.append(name)

        except Exception as e:
            raise MigrationError(f"Migration {name} failed: {e}")

    if verbose and applied:
        print(f"[migrations] Applied {len(applied)} migration(s)")
    elif verbose:
        print("[migrations] Schema up to date")

    if auto_repair:
        repaired = repair_schema(verbose=verbose)
        if repaired and verbose:
            print(f"[migrations] Auto-repaired: {repaired}")

    return applied


def _find_schema_issues() -> Dict[str, List[str]]:
    issues: Dict[str, List[str]] = {}
    for table, expected_columns in EXPECTED_SCHEMA.items():
        if not _table_exists(table):
            issues[table] = ["TABLE_MISSING"]
            continue
        missing = [col for col in expected_columns if not _column_exists(table, col)]
        if missing:
            issues[table] = missing
    return issues


def validate_schema(raise_on_error: bool = True, auto_repair: bool = True) -> Dict[str, List[str]]:
    """
    Validate that all expected tables and columns exist.

    Args:
        raise_on_error: If True, raises SchemaError when issues remain
        auto_repair: If True, attempt to repair before raising error

    Returns:
        Dict of {table: [missing_columns]} (empty if valid)

    Raises:
        SchemaError: If raise_on_error=True and schema is invalid after repair
    """
    # Log to stderr so it shows in Streamlit Cloud logs
    print("[migrations] Validating schema...", file=sys.stderr)

    issues = _find_schema_issues()
    for table, cols in issues.items():
        print(f"[migrations] ISSUE: Table '{table}': {cols}", file=sys.stderr)

    if issues and auto_repair:
        print(f"[migrations] Found {len(issues)} schema issue(s), attempting auto-repair...", file=sys.stderr)
        repair_schema(verbose=True)
        issues = _find_schema_issues()
        if issues:
            print(f"[migrations] Issues remaining after repair: {issues}", file=sys.stderr)

    if issues and raise_on_error:
        error_parts = ["Schema validation failed after auto-repair attempt:"]
        for table, cols in issues.items():
            if cols == ["TABLE_MISSING"]:
                error_parts.append(f"  - Missing table: {table}")
            else:
                error_parts.append(f"  - Table '{table}' missing columns: {cols}")
        error_parts.append("")
        error_parts.append("To fix manually: delete the database file and restart (loses all data)")

        error_message = "\n".join(error_parts)
        print(f"[migrations] FATAL: {error_message}", file=sys.stderr)
        raise SchemaError(error_message)

    if not issues:
        print("[migrations] Schema validation passed", file=sys.stderr)

    return issues


# CLI interface for running migrations directly
if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "validate":
        found = validate_schema(raise_on_error=False)
        sys.exit(1 if found else 0)
    else:
        print("[migrations] Running migrations...")
        done = run_migrations(verbose=True)
        print(f"[migrations] Done. Applied: {done}")
