from __future__ import annotations
import os
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from scopeslug.crud.sql_models import SlugDocumentRow  # noqa: F401  registers the table


def make_engine(db_url: str):
    if db_url in ("sqlite://", "sqlite:///:memory:"):
        # one shared connection, otherwise every checkout sees an empty database
        return create_engine(db_url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    return create_engine(db_url, echo=False)


def get_url(explicit: str | None = None) -> str:
    if explicit:
        return explicit
    env = os.getenv("SCOPESLUG_DB_URL")
    if env:
        return env
    return "sqlite:///scopeslug.db"


def init_db(engine) -> None:
    SQLModel.metadata.create_all(engine)


def get_session(engine):
    with Session(engine) as session:
        yield session
