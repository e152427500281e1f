import logging
from dataclasses import dataclass, field

from scopeslug.core.models import Document, ScopeQuery, SlugEntry
from scopeslug.crud.repo import DocumentStore
from scopeslug.errors import DuplicateSlugError


logger = logging.getLogger(__name__)


@dataclass
class _Record:
    doc: Document
    scope_key: str
    slug_field: str
    targets: tuple[str, ...] = ()

    @property
    def slug(self) -> str | None:
        return self.doc.get(self.slug_field)

    @property
    def history(self) -> list[str]:
        return self.doc.get(f"{self.slug_field}_history") or []


def _load(rec: _Record) -> Document:
    doc = rec.doc.model_copy(deep=True)
    doc.mark_persisted()
    return doc


@dataclass
class MemoryStore(DocumentStore):
    """Dict-backed store; enforces unique slug indexes like a real database would."""
    _records: dict[str, dict[str, _Record]] = field(default_factory=dict)
    _indexes: dict[str, dict[str, bool]] = field(default_factory=dict)

    def _collection(self, collection: str) -> dict[str, _Record]:
        return self._records.setdefault(collection, {})

    def get(self, collection: str, doc_id: str) -> Document | None:
        rec = self._collection(collection).get(doc_id)
        return _load(rec) if rec else None

    def query(self, scope: ScopeQuery, exclude_id: str | None = None) -> list[SlugEntry]:
        return [
            SlugEntry(id=rec.doc.id, slug=rec.slug, history=tuple(rec.history))
            for rec in self._collection(scope.collection).values()
            if scope.matches(rec.scope_key, rec.targets) and rec.doc.id != exclude_id
        ]

    def find(
        self, collection: str, value: str, scope: ScopeQuery | None = None, history: bool = False,
        ) -> list[Document]:
        return [
            _load(rec) for rec in self._collection(collection).values()
            if (scope is None or scope.matches(rec.scope_key, rec.targets))
            and (value in rec.history if history else rec.slug == value)
        ]

    def find_owner(self, collection: str, field: str, member_id: str) -> Document | None:
        for rec in self._collection(collection).values():
            if member_id in (rec.doc.get(field) or []):
                return _load(rec)
        return None

    def write(self, doc: Document, scope: ScopeQuery, slug_field: str = "slug") -> Document:
        slug = doc.get(slug_field)
        if slug is not None and self._indexes.get(scope.collection, {}).get(slug_field):
            for rec in self._collection(scope.collection).values():
                if rec.doc.id != doc.id and rec.scope_key == scope.key and rec.slug == slug:
                    raise DuplicateSlugError(scope.collection, scope.key, slug)

        stored = doc.model_copy(deep=True)
        self._collection(scope.collection)[doc.id] = _Record(stored, scope.key, slug_field, scope.targets)
        doc.mark_persisted()
        return doc

    def delete(self, collection: str, doc_id: str) -> bool:
        return self._collection(collection).pop(doc_id, None) is not None

    def remove_history(self, scope: ScopeQuery, value: str, exclude_id: str | None = None) -> list[str]:
        touched = []
        for rec in self._collection(scope.collection).values():
            if not scope.matches(rec.scope_key, rec.targets) or rec.doc.id == exclude_id \
                    or value not in rec.history:
                continue
            rec.doc[f"{rec.slug_field}_history"] = [h for h in rec.history if h != value]
            touched.append(rec.doc.id)
        return touched

    def create_index(self, collection: str, field: str, unique: bool) -> None:
        self._indexes.setdefault(collection, {})[field] = unique
        logger.debug("Created %s index on %s.%s", "unique" if unique else "plain", collection, field)

    def index_information(self, collection: str) -> dict[str, bool]:
        return dict(self._indexes.get(collection, {}))
