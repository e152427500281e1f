from __future__ import annotations
import logging
from copy import deepcopy
from datetime import datetime

from sqlalchemy import inspect, text
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from scopeslug.core.models import Document, ScopeQuery, SlugEntry
from scopeslug.crud.repo import DocumentStore
from scopeslug.crud.sql_models import SlugDocumentRow
from scopeslug.errors import DuplicateSlugError


logger = logging.getLogger(__name__)


def _row_to_doc(r: SlugDocumentRow) -> Document:
    doc = Document(id=r.id, type=r.type, parent_id=r.parent_id, data=deepcopy(r.data or {}))
    doc.mark_persisted()
    return doc


def _index_name(collection: str, field: str) -> str:
    return f"{collection.lower()}_{field}_1"


class SQLStore(DocumentStore):
    def __init__(self, session: Session):
        self.session = session

    def _row(self, collection: str, doc_id: str) -> SlugDocumentRow | None:
        return self.session.get(SlugDocumentRow, (collection, doc_id))

    def _rows(self, collection: str, scope: ScopeQuery | None = None, *criteria) -> list[SlugDocumentRow]:
        stmt = select(SlugDocumentRow).where(SlugDocumentRow.collection == collection, *criteria)
        if scope is None:
            return list(self.session.exec(stmt).all())
        if not scope.targets:
            stmt = stmt.where(SlugDocumentRow.scope_key == scope.key)
        # Target overlap is a JSON list intersection; decide it here for every backend
        return [r for r in self.session.exec(stmt).all() if scope.matches(r.scope_key, r.scope_targets or ())]

    def _slug_taken(self, scope: ScopeQuery, slug: str, doc_id: str) -> bool:
        """True if another row holds slug under the same scope key (what a unique slug index covers)."""
        stmt = (
            select(SlugDocumentRow.id)
            .where(SlugDocumentRow.collection == scope.collection)
            .where(SlugDocumentRow.scope_key == scope.key)
            .where(SlugDocumentRow.slug == slug)
            .where(SlugDocumentRow.id != doc_id)
        )
        return self.session.exec(stmt).first() is not None

    def get(self, collection: str, doc_id: str) -> Document | None:
        row = self._row(collection, doc_id)
        return _row_to_doc(row) if row else None

    def query(self, scope: ScopeQuery, exclude_id: str | None = None) -> list[SlugEntry]:
        return [
            SlugEntry(id=r.id, slug=r.slug, history=tuple(r.slug_history or ()))
            for r in self._rows(scope.collection, scope)
            if r.id != exclude_id
        ]

    def find(
        self, collection: str, value: str, scope: ScopeQuery | None = None, history: bool = False,
        ) -> list[Document]:
        if history:
            # JSON containment differs per backend; filter history lists here
            rows = [r for r in self._rows(collection, scope) if value in (r.slug_history or [])]
        else:
            rows = self._rows(collection, scope, SlugDocumentRow.slug == value)
        return [_row_to_doc(r) for r in rows]

    def find_owner(self, collection: str, field: str, member_id: str) -> Document | None:
        for r in self._rows(collection):
            if member_id in ((r.data or {}).get(field) or []):
                return _row_to_doc(r)
        return None

    def write(self, doc: Document, scope: ScopeQuery, slug_field: str = "slug") -> Document:
        row = self._row(scope.collection, doc.id)
        if row is None:
            row = SlugDocumentRow(collection=scope.collection, id=doc.id, type=doc.type, scope_key=scope.key)
        row.type = doc.type
        row.parent_id = doc.parent_id
        row.scope_key = scope.key
        row.scope_targets = list(scope.targets)
        row.slug_field = slug_field
        row.slug = doc.get(slug_field)
        row.slug_history = list(doc.get(f"{slug_field}_history") or [])
        row.data = deepcopy(doc.data)
        row.updated_at = datetime.now()
        slug = row.slug
        self.session.add(row)
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            if slug is not None and self.index_information(scope.collection).get(slug_field) \
                    and self._slug_taken(scope, slug, doc.id):
                raise DuplicateSlugError(scope.collection, scope.key, slug) from e
            raise
        doc.mark_persisted()
        return doc

    def delete(self, collection: str, doc_id: str) -> bool:
        row = self._row(collection, doc_id)
        if row is None:
            return False
        self.session.delete(row)
        self.session.commit()
        return True

    def remove_history(self, scope: ScopeQuery, value: str, exclude_id: str | None = None) -> list[str]:
        touched = []
        for r in self._rows(scope.collection, scope):
            if r.id == exclude_id or value not in (r.slug_history or []):
                continue
            history = [h for h in r.slug_history if h != value]
            data = deepcopy(r.data)
            data[f"{r.slug_field}_history"] = history
            r.slug_history = history
            r.data = data
            self.session.add(r)
            touched.append(r.id)
        if touched:
            self.session.commit()
        return touched

    def create_index(self, collection: str, field: str, unique: bool) -> None:
        """Partial index over (scope_key, slug) restricted to one collection.

        Collection and field names are validated identifiers (see TYPE_NAME_PATTERN).
        """
        name = _index_name(collection, field)
        kind = "UNIQUE INDEX" if unique else "INDEX"
        self.session.execute(text(
            f"CREATE {kind} IF NOT EXISTS {name} "
            f"ON slug_documents (collection, scope_key, slug) "
            f"WHERE collection = '{collection}'"
        ))
        self.session.commit()
        logger.debug("Created index %s (unique=%s)", name, unique)

    def index_information(self, collection: str) -> dict[str, bool]:
        prefix = f"{collection.lower()}_"
        indexes = inspect(self.session.connection()).get_indexes(SlugDocumentRow.__tablename__)
        return {
            ix["name"][len(prefix):-2]: bool(ix["unique"])
            for ix in indexes
            if ix["name"].startswith(prefix) and ix["name"].endswith("_1")
        }
