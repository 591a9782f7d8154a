"""Database engine configuration."""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from quiz_engine.core.config import settings


def enable_sqlite_savepoints(engine: Engine) -> None:
    """
    Let SQLAlchemy own BEGIN on pysqlite.

    The driver's implicit transaction handling breaks SAVEPOINT, which the answer
    ledger relies on (``begin_nested``).
    """

    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_db_engine(database_url: str | None = None) -> Engine:
    """Create SQLAlchemy engine."""
    url = database_url or settings.DATABASE_URL
    if url.startswith("sqlite"):
        options = {}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, or every checkout would see an empty database
            options["poolclass"] = StaticPool
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            echo=settings.DB_ECHO,
            **options,
        )
        enable_sqlite_savepoints(engine)
        return engine
    return create_engine(
        url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=5,
        max_overflow=10,
        echo=settings.DB_ECHO,
    )


# Global engine instance
engine = create_db_engine()
