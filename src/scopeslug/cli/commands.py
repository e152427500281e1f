"""CLI command implementations"""

import logging
from typing import Annotated, Optional

import typer
from sqlmodel import Session, SQLModel

from scopeslug.config import Settings, load_config
from scopeslug.core.collision import next_available
from scopeslug.core.normalize import normalize
from scopeslug.crud.database import init_db, make_engine
from scopeslug.crud.sql_repo import SQLStore


def _fail(msg: str, cause: Exception = None) -> None:
    """Print a user-friendly error to stderr and exit 1."""
    typer.echo(f"Error: {msg}", err=True)
    if cause:
        typer.echo(f"  {cause}", err=True)
    raise typer.Exit(1)


def _settings(overrides: dict = None) -> Settings:
    """Load config with standard CLI error handling and configure logging."""
    try:
        settings = load_config(overrides=overrides)
    except ValueError as e:
        _fail(str(e))
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")
    return settings


def init_cmd(
    reset: Annotated[bool, typer.Option("--reset", help="Drop and recreate all tables")] = False,
    db_url: Annotated[Optional[str], typer.Option("--db-url", help="Database URL")] = None,
    ):
    """Initialize database schema. Use --reset to clear existing data."""
    settings = _settings(overrides={"db_url": db_url})
    engine = make_engine(settings.db_url)
    if reset:
        SQLModel.metadata.drop_all(engine)
        typer.echo("Existing data cleared.")
    init_db(engine)
    typer.echo(f"Database initialized at: {settings.db_url}")


def slugify_cmd(
    text: Annotated[list[str], typer.Argument(help="Field values, joined with a space")],
    reserved: Annotated[Optional[list[str]], typer.Option("--reserved", "-r", help="Reserved word")] = None,
    ):
    """Print the slug the given field values normalize to."""
    _settings()
    candidate = normalize(text)
    if not candidate:
        _fail("Text normalizes to an empty slug")
    typer.echo(next_available(candidate, set(), frozenset(reserved or ())))


def lookup_cmd(
    collection: Annotated[str, typer.Argument(help="Root document type, e.g. Book")],
    value: Annotated[str, typer.Argument(help="Slug to look up")],
    history: Annotated[bool, typer.Option("--history", help="Fall back to historical slugs")] = False,
    db_url: Annotated[Optional[str], typer.Option("--db-url", help="Database URL")] = None,
    ):
    """Find stored documents by current (or historical) slug."""
    settings = _settings(overrides={"db_url": db_url})
    engine = make_engine(settings.db_url)
    init_db(engine)

    try:
        with Session(engine) as session:
            store = SQLStore(session)
            docs = store.find(collection, value)
            if not docs and history:
                docs = store.find(collection, value, history=True)
    except Exception as e:
        _fail("Lookup failed", e)

    if not docs:
        typer.echo(f"No {collection} found for slug '{value}'.")
        raise typer.Exit(1)
    for doc in docs:
        typer.echo(f"  {doc.id}  {doc.type}")
