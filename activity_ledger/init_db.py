"""Database initialization script, optionally importing statement files.

Usage:
    python -m activity_ledger.init_db [statement.csv ...]
"""

import sys
from pathlib import Path

import activity_ledger.models  # noqa: F401  (registers tables on Base.metadata)
from activity_ledger.database import Base, SessionLocal, engine
from activity_ledger.services.errors import FatalParseError
from activity_ledger.services.statement_import_service import StatementImportService


def create_tables():
    """Create all database tables."""
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    print("Tables created successfully!")


def import_files(paths: list[str]) -> None:
    """Import statement files in the given order."""
    db = SessionLocal()
    try:
        service = StatementImportService(db)
        for path in paths:
            try:
                summary = service.import_statement(Path(path).name, Path(path).read_bytes())
            except FatalParseError as e:
                print(f"  {path}: not imported ({e})")
                continue

            print(
                f"  {path}: {summary.trades_inserted} trades "
                f"({summary.trades_skipped} already stored), "
                f"{summary.income_inserted} income, {len(summary.errors)} row errors"
            )
            for warning in summary.warnings:
                print(f"    warning: {warning}")
    finally:
        db.close()


def init_db(paths: list[str] | None = None):
    """Initialize database tables and import any given statements."""
    print("Initializing database...")
    create_tables()

    if paths:
        print(f"\nImporting {len(paths)} statement file(s)...")
        import_files(paths)

    print("\nDatabase initialization complete!")


def main():
    init_db(sys.argv[1:])


if __name__ == "__main__":
    main()
