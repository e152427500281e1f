"""Slug engine error taxonomy"""


class SlugError(Exception):
    """Base class for all errors raised by the slug engine."""


class ConfigurationError(SlugError):
    """A document type declares a scope, field or reference that does not resolve."""


class DocumentNotFound(SlugError):
    """No document matches the requested slug."""

    def __init__(self, type_name: str, value: str):
        super().__init__(f"No {type_name} found for slug {value!r}")
        self.type_name = type_name
        self.value = value


class DuplicateSlugError(SlugError):
    """The store rejected a write because the slug is already held in its scope."""

    def __init__(self, collection: str, scope_key: str, value: str):
        super().__init__(f"Slug {value!r} already in use in {collection} scope {scope_key!r}")
        self.collection = collection
        self.scope_key = scope_key
        self.value = value


class PersistentConflictError(SlugError):
    """Every retry of the recompute-and-write loop lost a uniqueness race."""


class EmptyCandidateError(SlugError, ValueError):
    """Slugged fields normalize to an empty string and no fallback is configured."""
