"""Unit tests for core/registry.py"""

import pytest

from scopeslug.core.models import (
    ContainerScoped, Document, LocalFieldScoped, Reference, ReferenceScoped, SlugConfig,
)
from scopeslug.core.registry import TypeRegistry, foreign_key_for
from scopeslug.errors import ConfigurationError


@pytest.fixture(name="empty")
def empty_registry_fixture():
    r = TypeRegistry()
    r.define("Book", fields=("title",), slug=SlugConfig(fields=("title",)))
    return r


# --- hierarchy ---

def test_root_of_subtype(registry):
    assert registry.root_of("ComicBook") == "Book"
    assert registry.root_of("Book") == "Book"


def test_descendants_include_self_and_subtypes(registry):
    assert registry.descendants("Book") == {"Book", "ComicBook"}
    assert registry.descendants("ComicBook") == {"ComicBook"}


def test_subtype_inherits_slug_config(registry):
    slug_type = registry.slug_type("ComicBook")
    assert slug_type.root == "Book"
    assert slug_type.config is registry.slug_type("Book").config


def test_untyped_lookup_raises(registry):
    with pytest.raises(ConfigurationError):
        registry.get("Nope")


def test_duplicate_registration_raises(empty):
    with pytest.raises(ConfigurationError, match="already registered"):
        empty.define("Book")


def test_unknown_base_raises(empty):
    with pytest.raises(ConfigurationError, match="unknown base"):
        empty.define("Comic", base="Novel")


def test_failed_registration_is_rolled_back(empty):
    """A type rejected for its slug config is not left half-registered."""
    with pytest.raises(ConfigurationError):
        empty.define("Essay", fields=("title",), slug=SlugConfig(fields=("subtitle",)))
    with pytest.raises(ConfigurationError, match="Unknown document type"):
        empty.get("Essay")


def test_type_without_slug(empty):
    empty.define("Note", fields=("body",))
    assert empty.slug_type("Note") is None
    with pytest.raises(ConfigurationError, match="no slug configuration"):
        empty.require_slug_type("Note")


# --- slug configuration ---

def test_slug_needs_fields_or_build(empty):
    with pytest.raises(ConfigurationError, match="fields or a build"):
        empty.define("Essay", fields=("title",), slug=SlugConfig())


def test_build_function_watches_nothing(registry):
    slug_type = registry.slug_type("Caption")
    assert slug_type.watched == ()
    doc = Document(type="Caption", data={"identity": "Edward Hopper (1882)", "title": "Soir Bleu"})
    assert slug_type.extractor(doc) == ["Edward Hopper Soir Bleu"]


def test_field_extractor_reads_fields_in_order(registry):
    doc = Document(type="Author", data={"last_name": "Deleuze", "first_name": "Gilles"})
    assert registry.slug_type("Author").extractor(doc) == ["Gilles", "Deleuze"]


# --- scopes ---

def test_embedded_type_defaults_to_container_scope(registry):
    slug_type = registry.slug_type("Partner")
    assert slug_type.scope == ContainerScoped(parent="Relationship")
    assert slug_type.parent_root == "Relationship"


def test_container_scope_requires_embedding(empty):
    with pytest.raises(ConfigurationError, match="not embedded"):
        empty.define("Review", fields=("title",),
                     slug=SlugConfig(fields=("title",), scope=ContainerScoped(parent="Book")))


def test_container_scope_unknown_parent(empty):
    empty.define("Chapter", fields=("title",), embedded_in="Book")
    with pytest.raises(ConfigurationError, match="unknown container"):
        empty.define("Section", fields=("title",), embedded_in="Chapter",
                     slug=SlugConfig(fields=("title",), scope=ContainerScoped(parent="Volume")))


def test_reference_scope_uses_foreign_key(registry):
    assert registry.slug_type("Author").scope_field == "book_ids"


def test_reference_scope_default_foreign_key(empty):
    empty.define("Review", fields=("title",), references={"book": Reference(target="Book")},
                 slug=SlugConfig(fields=("title",), scope=ReferenceScoped(association="book")))
    assert empty.slug_type("Review").scope_field == "book_id"


def test_reference_scope_unknown_association(empty):
    with pytest.raises(ConfigurationError, match="unknown association"):
        empty.define("Review", fields=("title",),
                     slug=SlugConfig(fields=("title",), scope=ReferenceScoped(association="book")))


def test_reference_scope_unknown_target(empty):
    with pytest.raises(ConfigurationError, match="unknown target"):
        empty.define("Review", fields=("title",), references={"film": Reference(target="Film")},
                     slug=SlugConfig(fields=("title",), scope=ReferenceScoped(association="film")))


def test_inverse_reference_resolves_owner(registry):
    assert registry.slug_type("Character").owner == ("Author", "character_ids")
    assert registry.slug_type("Character").scope_field is None


def test_inverse_reference_must_exist(empty):
    with pytest.raises(ConfigurationError, match="unknown inverse"):
        empty.define("Review", fields=("title",),
                     references={"book": Reference(target="Book", inverse_of="reviews")},
                     slug=SlugConfig(fields=("title",), scope=ReferenceScoped(association="book")))


def test_inverse_reference_must_list_members(empty):
    empty.define("Shelf", fields=("name",), references={"items": Reference(target="Book", many=True)})
    with pytest.raises(ConfigurationError, match="does not list"):
        empty.define("Label", fields=("name",),
                     references={"shelf": Reference(target="Shelf", inverse_of="items")},
                     slug=SlugConfig(fields=("name",), scope=ReferenceScoped(association="shelf")))


def test_local_field_scope_unknown_field(empty):
    with pytest.raises(ConfigurationError, match="unknown scope field"):
        empty.define("Magazine", fields=("title",),
                     slug=SlugConfig(fields=("title",), scope=LocalFieldScoped(fields=("publisher_id",))))


def test_local_field_scope_accepts_foreign_keys(empty):
    empty.define("Issue", fields=("title",), references={"book": Reference(target="Book")},
                 slug=SlugConfig(fields=("title",), scope=LocalFieldScoped(fields=("book_id",))))
    assert empty.slug_type("Issue").scope == LocalFieldScoped(fields=("book_id",))


# --- foreign_key_for ---

@pytest.mark.parametrize("name,ref,expected", [
    ("book", Reference(target="Book"), "book_id"),
    ("books", Reference(target="Book", many=True), "books_ids"),
    ("owner", Reference(target="Person", foreign_key="person_id"), "person_id"),
])
def test_foreign_key_for(name, ref, expected):
    assert foreign_key_for(name, ref) == expected
