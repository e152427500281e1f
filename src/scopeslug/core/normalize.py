"""Slug text derivation: transliteration and normalization"""

import re
from typing import Any, Iterable

from unidecode import unidecode

from scopeslug.core.models import Document, FieldExtractor


DELIMITER = "-"

_non_alnum_re = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """Convert text to a lowercase, hyphen-separated ASCII slug.

    Non-ASCII characters are transliterated with unidecode's static table;
    anything it cannot map is dropped.
    """
    text = unidecode(text).lower()
    return _non_alnum_re.sub(DELIMITER, text).strip(DELIMITER)


def normalize(values: Iterable[Any]) -> str:
    """Join field values with a single space and slugify the result.

    None becomes an empty string; other non-strings are stringified.
    """
    return slugify(" ".join("" if v is None else str(v) for v in values))


def derive(doc: Document, extractor: FieldExtractor) -> str:
    """Candidate slug for a document using its type's field extractor."""
    return normalize(extractor(doc))
