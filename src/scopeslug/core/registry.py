"""Document type registry: hierarchy roots and slug configuration resolution"""

import logging
from typing import Optional

from scopeslug.core.models import (
    ContainerScoped, Document, DocumentType, FieldExtractor, LocalFieldScoped,
    Reference, ReferenceScoped, SlugConfig, SlugType, Unscoped,
)
from scopeslug.errors import ConfigurationError


logger = logging.getLogger(__name__)


def foreign_key_for(name: str, ref: Reference) -> str:
    """Field holding the target id(s) of a reference: explicit, else '<name>_id' / '<name>_ids'."""
    if ref.foreign_key:
        return ref.foreign_key
    return f"{name}_ids" if ref.many else f"{name}_id"


def _field_extractor(fields: tuple[str, ...]) -> FieldExtractor:
    def extract(doc: Document) -> list:
        return [doc.get(name) for name in fields]
    return extract


def _build_extractor(build) -> FieldExtractor:
    def extract(doc: Document) -> list:
        return [build(doc)]
    return extract


class TypeRegistry:
    """Holds document type declarations and their resolved slug configuration.

    Types must be registered after their base, embedding parent and any
    reference target used for scoping. Every configuration problem raises
    ConfigurationError here, never during slug generation.
    """

    def __init__(self):
        self._types: dict[str, DocumentType] = {}
        self._slug_types: dict[str, SlugType] = {}

    def define(self, name: str, **kwargs) -> DocumentType:
        """Shorthand for register(DocumentType(name=name, ...))."""
        return self.register(DocumentType(name=name, **kwargs))

    def register(self, doc_type: DocumentType) -> DocumentType:
        if doc_type.name in self._types:
            raise ConfigurationError(f"Type {doc_type.name!r} is already registered")
        if doc_type.base and doc_type.base not in self._types:
            raise ConfigurationError(f"{doc_type.name}: unknown base type {doc_type.base!r}")
        if doc_type.embedded_in and doc_type.embedded_in not in self._types:
            raise ConfigurationError(f"{doc_type.name}: unknown parent type {doc_type.embedded_in!r}")

        self._types[doc_type.name] = doc_type
        try:
            config = self._slug_config(doc_type.name)
            if config is not None:
                self._slug_types[doc_type.name] = self._resolve(doc_type.name, config)
        except ConfigurationError:
            del self._types[doc_type.name]
            raise
        logger.debug("Registered %s (root %s)", doc_type.name, self.root_of(doc_type.name))
        return doc_type

    def get(self, name: str) -> DocumentType:
        try:
            return self._types[name]
        except KeyError:
            raise ConfigurationError(f"Unknown document type {name!r}") from None

    def lineage(self, name: str) -> list[DocumentType]:
        """The type followed by its ancestors, root last."""
        chain = [self.get(name)]
        while chain[-1].base:
            chain.append(self.get(chain[-1].base))
        return chain

    def root_of(self, name: str) -> str:
        return self.lineage(name)[-1].name

    def descendants(self, name: str) -> set[str]:
        """The type itself plus every registered subtype."""
        return {t for t in self._types if any(a.name == name for a in self.lineage(t))}

    def fields_of(self, name: str) -> set[str]:
        return {f for t in self.lineage(name) for f in t.fields}

    def references_of(self, name: str) -> dict[str, Reference]:
        refs: dict[str, Reference] = {}
        for t in reversed(self.lineage(name)):
            refs.update(t.references)
        return refs

    def slug_type(self, name: str) -> Optional[SlugType]:
        self.get(name)
        return self._slug_types.get(name)

    def require_slug_type(self, name: str) -> SlugType:
        slug_type = self.slug_type(name)
        if slug_type is None:
            raise ConfigurationError(f"Type {name!r} has no slug configuration")
        return slug_type

    def _slug_config(self, name: str) -> Optional[SlugConfig]:
        """Nearest slug declaration along the type's lineage."""
        for t in self.lineage(name):
            if t.slug is not None:
                return t.slug
        return None

    def _resolve(self, name: str, config: SlugConfig) -> SlugType:
        known = self.fields_of(name)
        if config.build is None:
            if not config.fields:
                raise ConfigurationError(f"{name}: slug needs fields or a build function")
            missing = [f for f in config.fields if f not in known]
            if missing:
                raise ConfigurationError(f"{name}: unknown slugged field(s) {missing}")
            extractor, watched = _field_extractor(config.fields), config.fields
        else:
            extractor, watched = _build_extractor(config.build), ()

        scope = config.scope
        embedded_in = next((t.embedded_in for t in self.lineage(name) if t.embedded_in), None)
        if isinstance(scope, Unscoped) and embedded_in:
            scope = ContainerScoped(parent=embedded_in)

        resolved = dict(name=name, root=self.root_of(name), config=config,
                        scope=scope, extractor=extractor, watched=watched)

        match scope:
            case Unscoped():
                pass
            case ContainerScoped(parent=parent):
                if parent not in self._types:
                    raise ConfigurationError(f"{name}: unknown container type {parent!r}")
                if not embedded_in or self.root_of(parent) != self.root_of(embedded_in):
                    raise ConfigurationError(f"{name}: not embedded in {parent!r}")
                resolved["parent_root"] = self.root_of(embedded_in)
            case ReferenceScoped(association=association, inverse_of=inverse_of):
                resolved.update(self._resolve_reference(name, association, inverse_of))
            case LocalFieldScoped(fields=fields):
                local = known | {foreign_key_for(n, r) for n, r in self.references_of(name).items()}
                missing = [f for f in fields if f not in local]
                if not fields or missing:
                    raise ConfigurationError(f"{name}: unknown scope field(s) {missing or fields}")

        return SlugType(**resolved)

    def _resolve_reference(self, name: str, association: str, inverse_of: Optional[str]) -> dict:
        ref = self.references_of(name).get(association)
        if ref is None:
            raise ConfigurationError(f"{name}: unknown association {association!r}")
        if ref.target not in self._types:
            raise ConfigurationError(f"{name}.{association}: unknown target type {ref.target!r}")

        inverse_of = inverse_of or ref.inverse_of
        if ref.foreign_key or not inverse_of:
            return {"scope_field": foreign_key_for(association, ref)}

        # No foreign key on this side: the target lists its members instead.
        inverse = self.references_of(ref.target).get(inverse_of)
        if inverse is None:
            raise ConfigurationError(f"{ref.target}: unknown inverse association {inverse_of!r}")
        if not inverse.many or inverse.target not in self._types \
                or self.root_of(inverse.target) != self.root_of(name):
            raise ConfigurationError(
                f"{ref.target}.{inverse_of} does not list {name} documents")
        return {"owner": (self.root_of(ref.target), foreign_key_for(inverse_of, inverse))}
