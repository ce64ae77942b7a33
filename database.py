"""Database engine construction and request-scoped storage access."""
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from fastapi import Request


def normalize_postgres_url(url: str) -> str:
    """Hosting providers hand out postgres:// URLs; SQLAlchemy wants postgresql://."""
    if url.startswith("postgres://"):
        return "postgresql://" + url[len("postgres://"):]
    return url


def create_postgres_engine(database_url: str, ssl: bool = True) -> Engine:
    """Pooled Postgres engine."""
    connect_args = {"sslmode": "require"} if ssl else {"sslmode": "disable"}
    return create_engine(
        normalize_postgres_url(database_url),
        pool_pre_ping=True,
        connect_args=connect_args,
    )


def create_sqlite_engine(path: str) -> Engine:
    """File-backed SQLite engine with WAL journaling and enforced foreign keys."""
    engine = create_engine(
        f"sqlite:///{path}",
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode = WAL")
        cursor.execute("PRAGMA synchronous = NORMAL")
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    return engine


def get_storage(request: Request):
    """Storage backend dependency, selected once at startup."""
    return request.app.state.storage
