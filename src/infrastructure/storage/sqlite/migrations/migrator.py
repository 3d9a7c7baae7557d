"""
Versioned schema migrations for the quote-to-cash database.

Scripts named vNNN_<name>.sql sit next to this module and are applied in
version order. Each applied script is recorded in schema_migrations with
a checksum; a script edited after it ran is reported as drift and never
re-run. An existing database file is copied aside before migrating and
put back if the run blows up.
"""

import asyncio
import hashlib
import re
import shutil
import sys
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import aiosqlite

from src.config import get_logger, get_settings

logger = get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent

_FILENAME = re.compile(r"v(\d+)_(.+)\.sql")

REQUIRED_TABLES = (
    "products",
    "service_records",
    "opportunities",
    "opportunity_items",
    "sales",
    "sale_items",
    "commission_rules",
    "commissions",
    "schema_migrations",
)


@dataclass
class MigrationInfo:
    """A migration script on disk."""

    version: str
    name: str
    path: Path
    checksum: str

    @classmethod
    def from_file(cls, path: Path) -> "MigrationInfo":
        match = _FILENAME.match(path.name)
        if not match:
            raise ValueError(f"Invalid migration filename: {path.name} (expected vNNN_name.sql)")
        digest = hashlib.sha256(path.read_bytes()).hexdigest()
        return cls(version=match.group(1), name=match.group(2), path=path, checksum=digest[:16])


@dataclass
class MigrationResult:
    version: str
    name: str
    success: bool
    execution_time_ms: int
    error: str | None = None


def discover_migrations(directory: Path = MIGRATIONS_DIR) -> list[MigrationInfo]:
    """Migration scripts sorted by version. Misnamed files are skipped."""
    found = []
    for path in directory.glob("v*.sql"):
        try:
            found.append(MigrationInfo.from_file(path))
        except ValueError as e:
            logger.warning("migration_file_ignored", path=str(path), error=str(e))
    return sorted(found, key=lambda m: int(m.version))


async def get_applied_migrations(conn: aiosqlite.Connection) -> dict[str, str]:
    """Applied versions mapped to the checksum they were applied with."""
    try:
        cursor = await conn.execute("SELECT version, checksum FROM schema_migrations")
    except aiosqlite.OperationalError:
        # No schema_migrations table: nothing applied yet
        return {}
    return {version: checksum for version, checksum in await cursor.fetchall()}


def _pending(
    discovered: list[MigrationInfo], applied: dict[str, str]
) -> list[MigrationInfo]:
    pending = []
    for migration in discovered:
        recorded = applied.get(migration.version)
        if recorded is None:
            pending.append(migration)
        elif recorded != migration.checksum:
            logger.warning(
                "migration_drift",
                version=migration.version,
                applied_checksum=recorded,
                file_checksum=migration.checksum,
            )
    return pending


async def apply_migration(
    conn: aiosqlite.Connection,
    migration: MigrationInfo,
) -> MigrationResult:
    """Run one script and record it. A failing script is rolled back."""
    started = time.perf_counter()
    error = None
    try:
        await conn.executescript(migration.path.read_text(encoding="utf-8"))
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        await conn.execute(
            "INSERT OR REPLACE INTO schema_migrations "
            "(version, name, checksum, execution_time_ms) VALUES (?, ?, ?, ?)",
            (migration.version, migration.name, migration.checksum, elapsed_ms),
        )
        await conn.commit()
    except (aiosqlite.Error, OSError) as e:
        await conn.rollback()
        error = str(e)

    elapsed_ms = int((time.perf_counter() - started) * 1000)
    if error:
        logger.error("migration_failed", version=migration.version, error=error)
    else:
        logger.info(
            "migration_applied",
            version=migration.version,
            name=migration.name,
            execution_time_ms=elapsed_ms,
        )
    return MigrationResult(
        version=migration.version,
        name=migration.name,
        success=error is None,
        execution_time_ms=elapsed_ms,
        error=error,
    )


def create_backup(db_path: Path) -> Path:
    """Copy the database file to <stem>.backup_<timestamp>.db beside it."""
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    backup_path = db_path.with_suffix(f".backup_{stamp}.db")
    shutil.copy2(db_path, backup_path)
    logger.info("database_backup_created", backup_path=str(backup_path))
    return backup_path


def restore_backup(db_path: Path, backup_path: Path) -> None:
    shutil.copy2(backup_path, db_path)
    logger.warning("database_restored_from_backup", backup_path=str(backup_path))


async def initialize_database(
    db_path: Path | None = None,
    create_backup_before: bool = True,
) -> list[MigrationResult]:
    """
    Bring the database up to the latest schema version.

    Args:
        db_path: Database file (default from settings)
        create_backup_before: Copy an existing file aside first; the copy
            is deleted once every pending script has applied

    Returns:
        One result per attempted script. Empty when already current.
        Stops after the first failed script.
    """
    db_path = db_path or get_settings().storage.db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)

    backup_path = None
    if create_backup_before and db_path.exists():
        backup_path = create_backup(db_path)

    results: list[MigrationResult] = []
    try:
        async with aiosqlite.connect(db_path) as conn:
            await conn.execute("PRAGMA journal_mode=WAL")
            await conn.execute("PRAGMA foreign_keys=ON")

            pending = _pending(discover_migrations(), await get_applied_migrations(conn))
            logger.info("database_migrating", db_path=str(db_path), pending=len(pending))

            for migration in pending:
                result = await apply_migration(conn, migration)
                results.append(result)
                if not result.success:
                    break
    except Exception as e:
        logger.error("database_initialization_failed", db_path=str(db_path), error=str(e))
        if backup_path is not None:
            restore_backup(db_path, backup_path)
        raise

    if backup_path is not None and all(r.success for r in results):
        backup_path.unlink()

    return results


run_migrations = initialize_database


async def get_migration_status(db_path: Path | None = None) -> dict:
    """Applied and pending versions, without touching the schema."""
    db_path = db_path or get_settings().storage.db_path
    versions = [m.version for m in discover_migrations()]

    applied: dict[str, str] = {}
    if db_path.exists():
        async with aiosqlite.connect(db_path) as conn:
            applied = await get_applied_migrations(conn)

    ordered = sorted(applied, key=int)
    return {
        "exists": db_path.exists(),
        "current_version": ordered[-1] if ordered else None,
        "applied_migrations": ordered,
        "pending_migrations": [v for v in versions if v not in applied],
    }


async def verify_schema_integrity(db_path: Path | None = None) -> list[dict]:
    """PASS/FAIL checks: foreign keys, SQLite integrity, required tables."""
    db_path = db_path or get_settings().storage.db_path

    async with aiosqlite.connect(db_path) as conn:
        cursor = await conn.execute("PRAGMA foreign_key_check")
        violations = len(await cursor.fetchall())

        cursor = await conn.execute("PRAGMA integrity_check")
        (integrity,) = await cursor.fetchone()

        cursor = await conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        tables = {name for (name,) in await cursor.fetchall()}

    missing = [t for t in REQUIRED_TABLES if t not in tables]

    def _status(ok: bool) -> str:
        return "PASS" if ok else "FAIL"

    return [
        {"check": "foreign_keys", "status": _status(violations == 0), "violations": violations},
        {"check": "integrity", "status": _status(integrity == "ok"), "result": integrity},
        {"check": "required_tables", "status": _status(not missing), "missing": missing},
    ]


def main() -> None:
    """python -m src.infrastructure.storage.sqlite.migrations.migrator [migrate|status|verify]"""
    import argparse

    parser = argparse.ArgumentParser(description="Quote-to-cash database migrations")
    parser.add_argument("--db-path", type=Path, help="Database file (default from settings)")
    commands = parser.add_subparsers(dest="command")
    migrate = commands.add_parser("migrate", help="Apply pending migrations (default)")
    migrate.add_argument("--no-backup", action="store_true", help="Skip the pre-migration copy")
    commands.add_parser("status", help="Show applied and pending versions")
    commands.add_parser("verify", help="Run schema integrity checks")
    args = parser.parse_args()

    async def run() -> int:
        if args.command == "status":
            status = await get_migration_status(args.db_path)
            print(f"database:  {'present' if status['exists'] else 'missing'}")
            print(f"version:   {status['current_version'] or '-'}")
            print(f"applied:   {', '.join(status['applied_migrations']) or '-'}")
            print(f"pending:   {', '.join(status['pending_migrations']) or '-'}")
            return 0

        if args.command == "verify":
            checks = await verify_schema_integrity(args.db_path)
            for check in checks:
                print(f"{check['status']:4}  {check['check']}")
            return 0 if all(c["status"] == "PASS" for c in checks) else 1

        results = await initialize_database(
            args.db_path,
            create_backup_before=not getattr(args, "no_backup", False),
        )
        if not results:
            print("schema is up to date")
        for result in results:
            outcome = "ok" if result.success else f"FAILED: {result.error}"
            print(f"v{result.version} {result.name} ({result.execution_time_ms}ms) {outcome}")
        return 0 if all(r.success for r in results) else 1

    sys.exit(asyncio.run(run()))


if __name__ == "__main__":
    main()
