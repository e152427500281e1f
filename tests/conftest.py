"""Root test configuration: shared document types, stores, and runtime artifact cleanup"""

import re
import shutil
from pathlib import Path

import pytest
from sqlmodel import Session, SQLModel

from scopeslug.core.manager import SlugManager
from scopeslug.core.models import (
    ContainerScoped, Document, LocalFieldScoped, Reference, ReferenceScoped, SlugConfig,
)
from scopeslug.core.registry import TypeRegistry
from scopeslug.crud.database import init_db, make_engine
from scopeslug.crud.memory_repo import MemoryStore
from scopeslug.crud.sql_repo import SQLStore


_PROJECT_ROOT = Path(__file__).parent.parent

_CLEANUP_FILES = ["scopeslug.db", "test.db"]
_CLEANUP_DIRS = []


@pytest.fixture(scope="session", autouse=True)
def cleanup_artifacts():
    """Remove DB files created during the test session."""
    yield
    for name in _CLEANUP_FILES:
        p = _PROJECT_ROOT / name
        if p.exists():
            p.unlink()
    for name in _CLEANUP_DIRS:
        p = _PROJECT_ROOT / name
        if p.exists():
            shutil.rmtree(p)


def caption_slug(doc: Document) -> str:
    """Artist without the parenthesised biography, then the title."""
    identity = re.sub(r"\s*\(.*\)", "", doc.get("identity") or "")
    return f"{identity} {doc.get('title') or ''}"


def build_library(registry: TypeRegistry) -> TypeRegistry:
    """A small library domain exercising every scope kind."""
    registry.define("Book", fields=("title",),
                    slug=SlugConfig(fields=("title",), history=True, index=True))
    registry.define("ComicBook", base="Book")
    registry.define("Subject", fields=("name",), embedded_in="Book",
                    slug=SlugConfig(fields=("name",), history=True, scope=ContainerScoped(parent="Book")))
    registry.define("Author", fields=("first_name", "last_name"),
                    references={
                        "books": Reference(target="Book", many=True, foreign_key="book_ids"),
                        "characters": Reference(target="Character", many=True, foreign_key="character_ids"),
                    },
                    slug=SlugConfig(fields=("first_name", "last_name"),
                                    scope=ReferenceScoped(association="books"), index=True))
    registry.define("Character", fields=("name",),
                    references={"creator": Reference(target="Author", inverse_of="characters")},
                    slug=SlugConfig(fields=("name",), scope=ReferenceScoped(association="creator")))
    registry.define("Person", fields=("name",),
                    slug=SlugConfig(fields=("name",), slug_field="permalink", permanent=True))
    registry.define("Relationship", fields=("name",), embedded_in="Person",
                    slug=SlugConfig(fields=("name",)))
    registry.define("Partner", fields=("name",), embedded_in="Relationship",
                    slug=SlugConfig(fields=("name",)))
    registry.define("Magazine", fields=("title", "publisher_id"),
                    slug=SlugConfig(fields=("title",), scope=LocalFieldScoped(fields=("publisher_id",))))
    registry.define("Caption", fields=("identity", "title", "medium"),
                    slug=SlugConfig(build=caption_slug))
    registry.define("Friend", fields=("name",),
                    slug=SlugConfig(fields=("name",), reserved={"foo", "bar", "en"}))
    return registry


@pytest.fixture(name="registry")
def registry_fixture():
    return build_library(TypeRegistry())


@pytest.fixture(name="store", params=["memory", "sql"])
def store_fixture(request):
    """Each test using a store runs against both the in-memory and the SQL store."""
    if request.param == "memory":
        yield MemoryStore()
        return
    engine = make_engine("sqlite://")
    init_db(engine)
    with Session(engine) as session:
        yield SQLStore(session)
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="manager")
def manager_fixture(store, registry):
    return SlugManager(store, registry)
