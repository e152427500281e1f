"""Slug history ledger: retired slugs per document and their release"""

import logging
from typing import Iterable, Optional

from scopeslug.core.models import Document, ScopeQuery, SlugConfig, SlugEntry
from scopeslug.crud.repo import DocumentStore


logger = logging.getLogger(__name__)


def record(doc: Document, old_slug: Optional[str], new_slug: str, config: SlugConfig) -> bool:
    """Append old_slug to the document's history. Returns True if it was appended.

    No-op for new records, when history is disabled, when there was no previous
    slug or when nothing changed. A value already recorded is not appended again;
    new_slug leaves the history since it is current again.
    """
    if not config.history or doc.new_record or not old_slug or old_slug == new_slug:
        return False
    history = [h for h in doc.get(config.history_field) or [] if h != new_slug]
    appended = old_slug not in history
    if appended:
        history.append(old_slug)
    doc[config.history_field] = history
    return appended


def reclaim(store: DocumentStore, scope: ScopeQuery, value: str, excluding_id: str) -> list[str]:
    """Release value from the history of every other document in the scope."""
    touched = store.remove_history(scope, value, exclude_id=excluding_id)
    if touched:
        logger.info("Reclaimed %r from history of %s in %s", value, touched, scope.collection)
    return touched


def in_use(entries: Iterable[SlugEntry], history: bool = True) -> set[str]:
    """Current slugs of the entries, plus their history entries when history is True."""
    taken: set[str] = set()
    for e in entries:
        if e.slug:
            taken.add(e.slug)
        if history:
            taken.update(e.history)
    return taken
