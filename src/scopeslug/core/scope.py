"""Scope resolution: the sibling set a document's slug must be unique within"""

import json
from typing import Any, Optional

from scopeslug.core.models import (
    ContainerScoped, Document, LocalFieldScoped, ReferenceScoped, ScopeQuery, SlugType, Unscoped,
)
from scopeslug.crud.repo import DocumentStore


def _key(kind: str, value: Any) -> str:
    """Deterministic scope key; never equal to the global key '*'."""
    return f"{kind}:{json.dumps(value, sort_keys=True, default=str)}"


def _reference_value(value: Any) -> Any:
    """Id lists are order-independent; each id also becomes a target of the scope."""
    if isinstance(value, (list, tuple, set, frozenset)):
        return sorted(str(v) for v in value)
    return value


def resolve_scope(doc: Document, slug_type: SlugType, store: Optional[DocumentStore] = None) -> ScopeQuery:
    """Scope instance of doc.

    The store is only consulted for inverse reference scopes, where the owning
    document lists its members instead of the member holding a foreign key.
    """
    match slug_type.scope:
        case Unscoped():
            return ScopeQuery(slug_type.root)
        case ContainerScoped():
            return ScopeQuery(slug_type.root, _key("parent", [slug_type.parent_root, doc.parent_id]))
        case ReferenceScoped(association=association) if slug_type.owner:
            owner_collection, owner_field = slug_type.owner
            if store is None:
                raise ValueError(f"Resolving {association!r} scope needs a document store")
            owner = store.find_owner(owner_collection, owner_field, doc.id)
            return ScopeQuery(slug_type.root, _key(association, owner.id if owner else None))
        case ReferenceScoped(association=association):
            value = _reference_value(doc.get(slug_type.scope_field))
            targets = tuple(_key(association, v) for v in value) if isinstance(value, list) else ()
            return ScopeQuery(slug_type.root, _key(association, value), targets)
        case LocalFieldScoped(fields=fields):
            return ScopeQuery(slug_type.root, _key("fields", {name: doc.get(name) for name in fields}))
