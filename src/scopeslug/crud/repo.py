from __future__ import annotations
from abc import ABC, abstractmethod

from scopeslug.core.models import Document, ScopeQuery, SlugEntry


class DocumentStore(ABC):
    """Persistence boundary consumed by the slug engine.

    Documents are grouped by collection (the root type of their hierarchy) and
    tagged with the key (and targets) of the slug scope they were last written
    in. Scope membership is decided by ScopeQuery.matches.
    """

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Document | None:
        raise NotImplementedError

    @abstractmethod
    def query(self, scope: ScopeQuery, exclude_id: str | None = None) -> list[SlugEntry]:
        """Slug and history of every document in the scope except exclude_id."""
        raise NotImplementedError

    @abstractmethod
    def find(
        self, collection: str, value: str, scope: ScopeQuery | None = None, history: bool = False,
        ) -> list[Document]:
        """Documents whose current slug (or, with history=True, a history entry) equals value.

        With a scope, only documents matching it (see ScopeQuery.matches).
        """
        raise NotImplementedError

    @abstractmethod
    def find_owner(self, collection: str, field: str, member_id: str) -> Document | None:
        """The document whose list field contains member_id."""
        raise NotImplementedError

    @abstractmethod
    def write(self, doc: Document, scope: ScopeQuery, slug_field: str = "slug") -> Document:
        """Insert or update under scope.key and scope.targets.

        Raises DuplicateSlugError when a unique slug index rejects the write.
        """
        raise NotImplementedError

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def remove_history(self, scope: ScopeQuery, value: str, exclude_id: str | None = None) -> list[str]:
        """Drop value from the history of other documents in the scope. Returns touched ids."""
        raise NotImplementedError

    @abstractmethod
    def create_index(self, collection: str, field: str, unique: bool) -> None:
        raise NotImplementedError

    @abstractmethod
    def index_information(self, collection: str) -> dict[str, bool]:
        """Slug indexes of a collection: field name -> unique flag."""
        raise NotImplementedError
