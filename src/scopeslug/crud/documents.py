"""Document collection facade: create/save/delete and slug lookups for one type"""

from copy import deepcopy
from typing import Any, Optional

from scopeslug.core.manager import SlugManager
from scopeslug.core.models import Document, ScopeQuery
from scopeslug.errors import DocumentNotFound


class DocumentCollection:
    """Documents of one type, optionally bound to where new members go.

    - parent: embedding document (container scopes)
    - defaults: field values applied to new documents, e.g. reference ids
    - owner: (document, list field) that lists members (inverse reference scopes)

    Lookups on a bound collection stay within the bound scope.
    """

    def __init__(
        self,
        manager: SlugManager,
        type_name: str,
        parent: Optional[Document] = None,
        defaults: Optional[dict[str, Any]] = None,
        owner: Optional[tuple[Document, str]] = None,
        ):
        manager.registry.get(type_name)
        self.manager = manager
        self.type_name = type_name
        self.parent = parent
        self.defaults = defaults or {}
        self.owner = owner

    def __repr__(self) -> str:
        return f"DocumentCollection({self.type_name!r})"

    def build(self, **data) -> Document:
        """New, unsaved document carrying the collection's bindings."""
        return Document(
            type=self.type_name,
            parent_id=self.parent.id if self.parent else None,
            data={**deepcopy(self.defaults), **data},
        )

    def create(self, **data) -> Document:
        doc = self.build(**data)
        if self.owner:
            owner, field = self.owner
            owner[field] = [*(owner.get(field) or []), doc.id]
            self.manager.save(owner)
        return self.manager.save(doc)

    def save(self, doc: Document) -> Document:
        return self.manager.save(doc)

    def delete(self, doc: Document) -> bool:
        return self.manager.delete(doc)

    def reload(self, doc: Document) -> Optional[Document]:
        return self.manager.reload(doc)

    def to_param(self, doc: Document) -> str:
        return self.manager.to_param(doc)

    def _scope(self) -> Optional[ScopeQuery]:
        if self.parent is None and not self.defaults:
            return None
        return self.manager.scope_of(self.build())

    def find_all_by_slug(self, value: str) -> list[Document]:
        docs = self.manager.lookup(self.type_name, value, self._scope())
        if self.owner:
            owner, field = self.owner
            members = set(owner.get(field) or [])
            docs = [d for d in docs if d.id in members]
        return docs

    def find_by_slug(self, value: str) -> Optional[Document]:
        docs = self.find_all_by_slug(value)
        return docs[0] if docs else None

    def find_by_slug_or_fail(self, value: str) -> Document:
        doc = self.find_by_slug(value)
        if doc is None:
            raise DocumentNotFound(self.type_name, value)
        return doc

    def create_indexes(self) -> None:
        self.manager.create_indexes(self.type_name)

    def index_information(self) -> dict[str, bool]:
        return self.manager.store.index_information(self.manager.registry.root_of(self.type_name))
