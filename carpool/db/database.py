"""Database engine and session configuration."""

from collections.abc import Generator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from carpool.config import get_settings

settings = get_settings()

# Seconds a SQLite writer waits for a competing redemption to commit
SQLITE_BUSY_TIMEOUT = 30


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine tuned for the configured backend.

    MySQL gets a checked connection pool. SQLite connections may be shared
    across threads and wait for each other's writes instead of failing, and
    an in-memory SQLite database is kept on a single connection so every
    session sees the same tables.

    Args:
        database_url: SQLAlchemy database URL.
        echo: Log emitted SQL.

    Returns:
        Engine: SQLAlchemy engine.
    """
    if not database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            echo=echo,
            pool_pre_ping=True,
            pool_size=5,
            max_overflow=10,
        )

    kwargs = {
        "echo": echo,
        "connect_args": {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT},
    }
    if ":memory:" in database_url:
        kwargs["poolclass"] = StaticPool
    return create_engine(database_url, **kwargs)


engine = create_db_engine(settings.database_url, echo=settings.debug)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Get database session.

    Yields:
        Session: SQLAlchemy session.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine | None = None) -> None:
    """Create missing tables in debug mode.

    Deployed databases are managed by the Alembic migrations.

    Args:
        bind: Engine to use; defaults to the application engine.
    """
    from carpool.db.models import Base

    if settings.debug:
        Base.metadata.create_all(bind=bind or engine)
