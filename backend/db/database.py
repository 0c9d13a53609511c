"""
Database engine, session factory and declarative base.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from config import settings

_is_sqlite = settings.DATABASE_URL.startswith("sqlite")

engine = create_engine(
    settings.DATABASE_URL,
    # request handlers, background dispatch and the timeout sweep each hold
    # their own connection; wait on SQLite write locks instead of failing
    connect_args={"check_same_thread": False, "timeout": 30} if _is_sqlite else {},
    pool_pre_ping=not _is_sqlite,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def create_tables() -> None:
    """Create missing tables for local runs. Deployed databases use alembic."""
    import models.account  # noqa: F401
    import models.document  # noqa: F401

    Base.metadata.create_all(bind=engine)
