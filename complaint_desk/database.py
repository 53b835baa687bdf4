"""Engine creation and request-scoped sessions."""

from typing import Iterator

from fastapi import Request
from sqlalchemy import Engine, StaticPool
from sqlmodel import Session, SQLModel, create_engine


def make_engine(database_url: str) -> Engine:
    """
    Create the SQLAlchemy engine.

    In-memory SQLite shares one connection so every session sees the same
    database.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url)


def init_db(engine: Engine) -> None:
    # Registers the tables on SQLModel.metadata
    import complaint_desk.entities  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session(request: Request) -> Iterator[Session]:
    with Session(request.app.state.engine) as session:
        yield session
