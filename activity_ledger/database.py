"""Database configuration and session management."""

from collections.abc import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from activity_ledger.config import settings


# Base class for ORM models
class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""

    pass


def build_engine(database_url: str, **engine_kwargs):
    """Create an engine, enabling foreign keys for SQLite.

    SQLite ignores ON DELETE CASCADE unless the pragma is switched on per
    connection.
    """
    is_sqlite = database_url.startswith("sqlite")
    connect_args = {"check_same_thread": False} if is_sqlite else {}

    new_engine = create_engine(
        database_url,
        pool_pre_ping=True,  # Enable connection health checks
        echo=False,  # Set to True for SQL query logging in development
        connect_args=connect_args,
        **engine_kwargs,
    )

    if is_sqlite:

        @event.listens_for(new_engine, "connect")
        def _configure_sqlite(dbapi_connection, connection_record):
            # Let SQLAlchemy issue BEGIN itself so SAVEPOINTs nest correctly
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(new_engine, "begin")
        def _begin_sqlite(conn):
            conn.exec_driver_sql("BEGIN")

    return new_engine


engine = build_engine(settings.database_url)

# Create session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,  # Prevent lazy loading errors after commit
)


# Dependency for FastAPI routes
def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency for FastAPI routes.

    Yields:
        Session: SQLAlchemy database session

    Example:
        @app.get("/items")
        def get_items(db: Session = Depends(get_db)):
            return db.query(Item).all()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
