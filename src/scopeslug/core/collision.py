"""Collision resolution: pick the final unique slug within a scope"""

import logging
import re
from itertools import count
from typing import AbstractSet, Iterable

from scopeslug.core.history import in_use
from scopeslug.core.models import ScopeQuery, SlugEntry
from scopeslug.core.normalize import DELIMITER
from scopeslug.crud.repo import DocumentStore


logger = logging.getLogger(__name__)


def family_pattern(candidate: str) -> re.Pattern:
    """Matches candidate and its counter-suffixed variants (candidate-1, candidate-2, ...)."""
    return re.compile(rf"^{re.escape(candidate)}(?:{DELIMITER}(\d+))?$")


def next_available(candidate: str, taken: AbstractSet[str], reserved: AbstractSet[str] = frozenset()) -> str:
    """candidate if free, else candidate-<n> for the smallest free n >= 1."""
    if candidate not in taken and candidate not in reserved:
        return candidate
    for n in count(1):
        slug = f"{candidate}{DELIMITER}{n}"
        if slug not in taken and slug not in reserved:
            return slug


def history_reclaimable(candidate: str, scope: ScopeQuery, entries: Iterable[SlugEntry]) -> bool:
    """History entries stop blocking candidate when nobody holds its family as a current slug.

    Only applies inside a bounded scope; in the global scope retired slugs keep
    pointing at their old owner.
    """
    if scope.is_global:
        return False
    pattern = family_pattern(candidate)
    return not any(e.slug and pattern.match(e.slug) for e in entries)


def resolve_unique(
    store: DocumentStore,
    candidate: str,
    scope: ScopeQuery,
    self_id: str | None,
    reserved: AbstractSet[str] = frozenset(),
    history: bool = False,
    ) -> str:
    """Final slug for candidate within scope, excluding the document's own entries.

    Read-only: history released by a reclaim is removed later, after the write.
    """
    entries = store.query(scope, exclude_id=self_id)
    use_history = history and not history_reclaimable(candidate, scope, entries)
    slug = next_available(candidate, in_use(entries, history=use_history), reserved)
    if slug != candidate:
        logger.debug("Slug %r taken in %s/%s; using %r", candidate, scope.collection, scope.key, slug)
    return slug
