"""
Database connection and session management
Engine and session factory are built once from Settings by the app factory
and stored on app.state; get_db hands one session to each request.
"""

from typing import Iterator, Tuple

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

# Base class for declarative models
Base = declarative_base()


def create_engine_for(database_url: str) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across threads."""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url == "sqlite://":
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10
    )


def create_session_factory(database_url: str) -> Tuple[Engine, sessionmaker]:
    engine = create_engine_for(database_url)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    return engine, SessionLocal


def get_db(request: Request) -> Iterator[Session]:
    """
    Database session dependency for FastAPI
    Yields a database session and ensures it's closed after use
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
