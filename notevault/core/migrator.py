"""Schema initialisation and additive migrations with automatic tracking.

Handles both fresh and existing databases:
- Fresh database: creates every table from the models, baselines all migrations
- Existing database: creates whatever tables/indexes are missing, then runs
  pending migrations and records them in the schema_migrations table

Migrations are additive SQL files in ``notevault/migrations`` named
``NNN_description.sql``. A migration whose change is already visible in the
live schema (for instance a column added by hand or by an older release) is
baselined instead of executed.

Usage:
    from notevault.core.migrator import run_migrations, MigrationError

    try:
        result = run_migrations(engine, Base)
    except MigrationError as e:
        logger.critical(f"Migration failed: {e}")
        raise SystemExit(1)
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from sqlalchemy import Engine, text, inspect
from sqlalchemy.exc import OperationalError, SQLAlchemyError

logger = logging.getLogger(__name__)


class MigrationError(Exception):
    """Raised when a migration fails to apply."""
    pass


@dataclass
class Migration:
    """A discovered migration file."""
    version: str        # "001"
    name: str           # "add_folder_updated_at"
    file_path: Path
    dialect: Optional[str] = None  # None = any engine

    def __lt__(self, other: "Migration") -> bool:
        return int(self.version) < int(other.version)

    def statements(self) -> list[str]:
        """Split the file into individual statements (sqlite3 runs one per call)."""
        body = "\n".join(
            line for line in self.file_path.read_text().splitlines()
            if not line.strip().startswith("--")
        )
        return [stmt.strip() for stmt in body.split(";") if stmt.strip()]


@dataclass
class MigrationResult:
    """Result of running migrations."""
    applied: int = 0
    skipped: int = 0
    baselined: int = 0


_MIGRATION_PATTERN = re.compile(r"^(\d{3})_(.+)\.sql$")

# First-line marker restricting a migration to one engine: "-- dialect: sqlite"
_DIALECT_PATTERN = re.compile(r"^--\s*dialect:\s*(\w+)\s*$")


def _get_migrations_dir() -> Path:
    return Path(__file__).parent.parent / "migrations"


def _discover_migration_files() -> list[Migration]:
    """Scan the migrations directory for .sql files, skipping rollback scripts."""
    migrations_dir = _get_migrations_dir()

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return []

    migrations = []
    for file_path in sorted(migrations_dir.glob("*.sql")):
        if "rollback" in file_path.name.lower():
            continue

        match = _MIGRATION_PATTERN.match(file_path.name)
        if not match:
            logger.debug(f"Skipping non-migration file: {file_path.name}")
            continue

        dialect = None
        first_line = file_path.read_text().split("\n", 1)[0]
        dialect_match = _DIALECT_PATTERN.match(first_line)
        if dialect_match:
            dialect = dialect_match.group(1)

        migrations.append(
            Migration(version=match.group(1), name=match.group(2), file_path=file_path, dialect=dialect)
        )

    return sorted(migrations)


def _is_fresh_install(engine: Engine) -> bool:
    return "notes" not in inspect(engine).get_table_names()


def _get_schema_state(engine: Engine) -> dict:
    inspector = inspect(engine)
    tables = set(inspector.get_table_names())

    folder_columns = set()
    if "folders" in tables:
        folder_columns = {col["name"] for col in inspector.get_columns("folders")}

    return {"tables": tables, "folder_columns": folder_columns}


# What each migration changes, so an already-upgraded schema can be baselined.
_MIGRATION_CHECKS = {
    "001": lambda s: "updated_at" in s["folder_columns"],
}


def _detect_applied_migrations(engine: Engine, migrations: list[Migration]) -> set[str]:
    state = _get_schema_state(engine)
    applied = set()
    for migration in migrations:
        check = _MIGRATION_CHECKS.get(migration.version)
        if check and check(state):
            applied.add(migration.version)
    return applied


def _ensure_migrations_table(engine: Engine) -> None:
    with engine.connect() as conn:
        conn.execute(text("""
            CREATE TABLE IF NOT EXISTS schema_migrations (
                version VARCHAR(10) PRIMARY KEY,
                name VARCHAR(255) NOT NULL,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """))
        conn.commit()


def _get_applied_versions(engine: Engine) -> set[str]:
    with engine.connect() as conn:
        result = conn.execute(text("SELECT version FROM schema_migrations"))
        return {row[0] for row in result}


def _record_migration(engine: Engine, migration: Migration) -> None:
    with engine.connect() as conn:
        conn.execute(
            text("INSERT OR IGNORE INTO schema_migrations (version, name) VALUES (:version, :name)"),
            {"version": migration.version, "name": migration.name}
        )
        conn.commit()


def _ensure_tables_and_indexes(engine: Engine, base: type) -> None:
    """Create missing tables, and missing indexes on tables that already existed."""
    base.metadata.create_all(bind=engine)
    with engine.begin() as conn:
        for table in base.metadata.sorted_tables:
            for index in table.indexes:
                index.create(bind=conn, checkfirst=True)


def _apply_migration(engine: Engine, migration: Migration) -> None:
    """Execute a migration's statements in one transaction and record it.

    Raises MigrationError on failure. A duplicate-column error means the
    column is already there; the migration is recorded as applied.
    """
    try:
        with engine.begin() as conn:
            for statement in migration.statements():
                conn.execute(text(statement))
    except OperationalError as e:
        if "duplicate column" not in str(e).lower():
            raise MigrationError(f"Failed to apply {migration.version}_{migration.name}: {e}") from e
        logger.info(f"Migration {migration.version} already present in schema")
    except SQLAlchemyError as e:
        raise MigrationError(f"Failed to apply {migration.version}_{migration.name}: {e}") from e

    _record_migration(engine, migration)


def run_migrations(engine: Engine, base: type) -> MigrationResult:
    """Bring the schema up to date. Idempotent.

    Args:
        engine: SQLAlchemy engine
        base: SQLAlchemy declarative base holding the model metadata

    Returns:
        MigrationResult with counts of applied/skipped/baselined migrations

    Raises:
        MigrationError: If a migration fails to apply
    """
    all_migrations = _discover_migration_files()
    migrations = [m for m in all_migrations if m.dialect in (None, engine.dialect.name)]
    logger.debug(f"Discovered {len(migrations)} applicable migration files")

    if _is_fresh_install(engine):
        logger.info("Fresh database - creating tables from models")
        _ensure_tables_and_indexes(engine, base)
        _ensure_migrations_table(engine)
        for migration in migrations:
            _record_migration(engine, migration)
        return MigrationResult(baselined=len(migrations))

    _ensure_tables_and_indexes(engine, base)
    _ensure_migrations_table(engine)

    tracked_versions = _get_applied_versions(engine)
    detected_applied = _detect_applied_migrations(engine, migrations)

    newly_baselined = detected_applied - tracked_versions
    for m in migrations:
        if m.version in newly_baselined:
            _record_migration(engine, m)
            logger.debug(f"Baselined migration {m.version}: {m.name}")

    applied_versions = tracked_versions | detected_applied
    pending = [m for m in migrations if m.version not in applied_versions]

    if not pending:
        if newly_baselined:
            return MigrationResult(baselined=len(newly_baselined))
        return MigrationResult(skipped=len(migrations))

    applied_count = 0
    for migration in pending:
        logger.info(f"Applying migration {migration.version}: {migration.name}")
        _apply_migration(engine, migration)
        applied_count += 1

    logger.info(f"Applied {applied_count} migration(s) successfully")
    return MigrationResult(applied=applied_count)
