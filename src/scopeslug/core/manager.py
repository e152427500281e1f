"""Slug manager: decides when to (re)compute slugs and commits them through the store"""

import logging
from copy import deepcopy
from typing import Optional

from scopeslug.config import Settings, load_config
from scopeslug.core.collision import resolve_unique
from scopeslug.core.history import reclaim, record
from scopeslug.core.models import Document, ReferenceScoped, ScopeQuery, SlugType
from scopeslug.core.normalize import derive, slugify
from scopeslug.core.registry import TypeRegistry
from scopeslug.core.scope import resolve_scope
from scopeslug.crud.repo import DocumentStore
from scopeslug.errors import (
    DocumentNotFound, DuplicateSlugError, EmptyCandidateError, PersistentConflictError,
)


logger = logging.getLogger(__name__)


DEFAULT_MAX_RETRIES = 3


class SlugManager:
    """Runs slug generation inside a document's save.

    Holds no per-document state: every call works from the document and the
    store. Uniqueness under concurrent writers rests on the store's unique
    index; a rejected write re-runs the whole recompute (fresh query, fresh
    suffix) up to max_retries times.
    """

    def __init__(self, store: DocumentStore, registry: TypeRegistry, max_retries: int = DEFAULT_MAX_RETRIES):
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        self.store = store
        self.registry = registry
        self.max_retries = max_retries

    @classmethod
    def from_settings(cls, store: DocumentStore, registry: TypeRegistry, settings: Optional[Settings] = None):
        """Manager configured from Settings (loaded from config.yaml and env when not given)."""
        settings = settings or load_config()
        return cls(store, registry, max_retries=settings.max_retries)

    # --- lifecycle ---

    def save(self, doc: Document) -> Document:
        """Create or update hook: assign a slug where needed, then write."""
        slug_type = self.registry.slug_type(doc.type)
        if slug_type is None:
            return self.store.write(doc, ScopeQuery(self.registry.root_of(doc.type)))

        config = slug_type.config
        current = doc.get(config.slug_field)
        if doc.new_record:
            explicit = bool(current)
            recompute = not explicit
        else:
            explicit = False
            moved = self._scope_changed(doc, slug_type)
            if not current:
                recompute = True
            elif config.permanent:
                # kept across scope moves unless a sibling in the new scope holds it
                recompute = moved and self._held_by_sibling(doc, slug_type, current)
            else:
                recompute = moved or self._slug_source_changed(doc, slug_type)
        return self._commit(doc, slug_type, recompute=recompute, explicit=explicit)

    def backfill(self, doc: Document) -> Document:
        """Generate and persist the slug of a stored document that never had one."""
        slug_type = self.registry.require_slug_type(doc.type)
        if doc.get(slug_type.config.slug_field):
            return doc
        logger.info("Backfilling missing slug for %s %s", doc.type, doc.id)
        return self._commit(doc, slug_type, recompute=True, explicit=False)

    def to_param(self, doc: Document) -> str:
        """Stable routing identifier; reading a missing slug triggers the backfill."""
        slug_type = self.registry.require_slug_type(doc.type)
        if not doc.get(slug_type.config.slug_field):
            self.backfill(doc)
        return doc[slug_type.config.slug_field]

    def delete(self, doc: Document) -> bool:
        """Remove the document; its history leaves the scope with it."""
        return self.store.delete(self.registry.root_of(doc.type), doc.id)

    def reload(self, doc: Document) -> Optional[Document]:
        return self.store.get(self.registry.root_of(doc.type), doc.id)

    def create_indexes(self, type_name: str) -> None:
        """Request the slug index when configured.

        Reference scopes get a plain index: a document can belong to several
        reference targets at once, so the store cannot enforce uniqueness per row.
        """
        slug_type = self.registry.require_slug_type(type_name)
        if not slug_type.config.index:
            return
        unique = not isinstance(slug_type.scope, ReferenceScoped)
        self.store.create_index(slug_type.root, slug_type.config.slug_field, unique)

    # --- lookup ---

    def scope_of(self, doc: Document) -> ScopeQuery:
        slug_type = self.registry.slug_type(doc.type)
        if slug_type is None:
            return ScopeQuery(self.registry.root_of(doc.type))
        return resolve_scope(doc, slug_type, self.store)

    def lookup(self, type_name: str, value: str, scope: Optional[ScopeQuery] = None) -> list[Document]:
        """Documents of type_name (or a subtype) whose current slug, else historical slug, is value."""
        slug_type = self.registry.require_slug_type(type_name)
        types = self.registry.descendants(type_name)
        found = [d for d in self.store.find(slug_type.root, value, scope) if d.type in types]
        if not found and slug_type.config.history:
            found = [d for d in self.store.find(slug_type.root, value, scope, history=True) if d.type in types]
        return found

    def find_by_slug(self, type_name: str, value: str, scope: Optional[ScopeQuery] = None) -> Optional[Document]:
        found = self.lookup(type_name, value, scope)
        return found[0] if found else None

    def find_by_slug_or_fail(self, type_name: str, value: str, scope: Optional[ScopeQuery] = None) -> Document:
        doc = self.find_by_slug(type_name, value, scope)
        if doc is None:
            raise DocumentNotFound(type_name, value)
        return doc

    # --- internals ---

    def _scope_changed(self, doc: Document, slug_type: SlugType) -> bool:
        """True when a scope field or the parent changed since the last write."""
        before = resolve_scope(doc.persisted_copy(), slug_type, self.store)
        return resolve_scope(doc, slug_type, self.store) != before

    def _held_by_sibling(self, doc: Document, slug_type: SlugType, slug: str) -> bool:
        scope = resolve_scope(doc, slug_type, self.store)
        return any(e.slug == slug for e in self.store.query(scope, exclude_id=doc.id))

    def _slug_source_changed(self, doc: Document, slug_type: SlugType) -> bool:
        if slug_type.watched:
            return any(doc.changed(name) for name in slug_type.watched)
        # Custom build functions may read any field; compare what they produce
        return derive(doc, slug_type.extractor) != derive(doc.persisted_copy(), slug_type.extractor)

    def _assign(self, doc: Document, slug_type: SlugType, scope: ScopeQuery) -> bool:
        """Compute the unique slug and set it on doc. Returns False when it is unchanged."""
        config = slug_type.config
        candidate = derive(doc, slug_type.extractor)
        if not candidate:
            if config.fallback is None:
                raise EmptyCandidateError(f"{doc.type} {doc.id}: slugged fields normalize to an empty slug")
            candidate = slugify(config.fallback)

        current = doc.get(config.slug_field)
        final = resolve_unique(self.store, candidate, scope, doc.id, config.reserved, config.history)
        if final == current:
            return False
        record(doc, current, final, config)
        doc[config.slug_field] = final
        logger.debug("Assigned slug %r to %s %s", final, doc.type, doc.id)
        return True

    def _commit(self, doc: Document, slug_type: SlugType, recompute: bool, explicit: bool) -> Document:
        config = slug_type.config
        original_slug = doc.get(config.slug_field)
        original_history = deepcopy(doc.get(config.history_field))

        for attempt in range(1, self.max_retries + 1):
            scope = resolve_scope(doc, slug_type, self.store)
            assigned = False
            if recompute:
                doc[config.slug_field] = original_slug
                if original_history is None:
                    doc.data.pop(config.history_field, None)
                else:
                    doc[config.history_field] = deepcopy(original_history)
                assigned = self._assign(doc, slug_type, scope)
            try:
                self.store.write(doc, scope, config.slug_field)
            except DuplicateSlugError as exc:
                if explicit:
                    raise
                logger.warning("Slug write lost a race (attempt %d/%d): %s", attempt, self.max_retries, exc)
                recompute = True
                continue
            if assigned and config.history:
                reclaim(self.store, scope, doc[config.slug_field], doc.id)
            return doc

        raise PersistentConflictError(
            f"Could not write a unique slug for {doc.type} {doc.id} after {self.max_retries} attempts")
