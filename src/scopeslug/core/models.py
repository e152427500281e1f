"""Document, scope and slug configuration models"""

from copy import deepcopy
from dataclasses import dataclass
from typing import Annotated, Any, Callable, Iterable, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr


GLOBAL_SCOPE_KEY = "*"
TYPE_NAME_PATTERN = r"^[A-Za-z_][A-Za-z0-9_]*$"


class Document(BaseModel):
    """A persisted record: field values live in `data`, slug and history included."""
    id: str = Field(default_factory=lambda: uuid4().hex)
    type: str
    data: dict[str, Any] = Field(default_factory=dict)
    parent_id: Optional[str] = None     # set for documents embedded in another document

    _persisted: Optional[dict[str, Any]] = PrivateAttr(default=None)
    _persisted_parent_id: Optional[str] = PrivateAttr(default=None)

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.data[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    @property
    def new_record(self) -> bool:
        return self._persisted is None

    def mark_persisted(self) -> None:
        """Snapshot the current data and parent as the last persisted state."""
        self._persisted = deepcopy(self.data)
        self._persisted_parent_id = self.parent_id

    def previous(self, key: str, default: Any = None) -> Any:
        """Value of `key` as last persisted (default for new records)."""
        if self._persisted is None:
            return default
        return self._persisted.get(key, default)

    def changed(self, key: str) -> bool:
        return self.new_record or self.previous(key) != self.data.get(key)

    def persisted_copy(self) -> "Document":
        """The document as last persisted (empty data for new records)."""
        return Document(id=self.id, type=self.type, parent_id=self._persisted_parent_id,
                        data=deepcopy(self._persisted or {}))


class Unscoped(BaseModel):
    """Slugs are unique across the whole root collection."""
    model_config = ConfigDict(frozen=True)
    kind: Literal["unscoped"] = "unscoped"


class ContainerScoped(BaseModel):
    """Slugs are unique among siblings embedded in the same parent document."""
    model_config = ConfigDict(frozen=True)
    kind: Literal["container"] = "container"
    parent: str


class ReferenceScoped(BaseModel):
    """Slugs are unique among documents referencing the same target."""
    model_config = ConfigDict(frozen=True)
    kind: Literal["reference"] = "reference"
    association: str
    inverse_of: Optional[str] = None


class LocalFieldScoped(BaseModel):
    """Slugs are unique among documents sharing the values of local fields."""
    model_config = ConfigDict(frozen=True)
    kind: Literal["local"] = "local"
    fields: tuple[str, ...]


Scope = Annotated[
    Union[Unscoped, ContainerScoped, ReferenceScoped, LocalFieldScoped],
    Field(discriminator="kind"),
]


class SlugConfig(BaseModel):
    """Per-type slug declaration."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    fields: tuple[str, ...] = ()
    build: Optional[Callable[[Document], Any]] = Field(
        default=None, description="Custom derivation; overrides `fields`")
    slug_field: str = Field(default="slug", pattern=TYPE_NAME_PATTERN, description="Attribute holding the current slug")
    history: bool = False
    permanent: bool = Field(default=False, description="Never regenerate after first assignment")
    reserved: frozenset[str] = frozenset()
    scope: Scope = Field(default_factory=Unscoped)
    index: bool = False
    fallback: Optional[str] = Field(
        default=None, description="Candidate used when the slugged fields normalize to ''")

    @property
    def history_field(self) -> str:
        return f"{self.slug_field}_history"


class Reference(BaseModel):
    """A named link from a document to one (or, with many=True, several) target documents."""
    model_config = ConfigDict(frozen=True)

    target: str
    foreign_key: Optional[str] = None   # defaults to "<name>_id" ("<name>_ids" when many)
    many: bool = False                  # foreign key holds a list of ids
    inverse_of: Optional[str] = None    # reciprocal reference declared on the target type


class DocumentType(BaseModel):
    """Declaration of a document type and its slug behaviour."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(pattern=TYPE_NAME_PATTERN)
    fields: tuple[str, ...] = ()
    base: Optional[str] = None
    embedded_in: Optional[str] = None
    references: dict[str, Reference] = Field(default_factory=dict)
    slug: Optional[SlugConfig] = None


FieldExtractor = Callable[[Document], list[Any]]


@dataclass(frozen=True)
class SlugType:
    """A registered type with its configuration resolved once at registration."""
    name: str
    root: str
    config: SlugConfig
    scope: Union[Unscoped, ContainerScoped, ReferenceScoped, LocalFieldScoped]
    extractor: FieldExtractor
    watched: tuple[str, ...]                # fields whose change triggers a recompute
    scope_field: Optional[str] = None       # foreign key read for reference scopes
    owner: Optional[tuple[str, str]] = None # (owner collection, owner field) for inverse scopes
    parent_root: Optional[str] = None       # root type of the embedding parent


@dataclass(frozen=True)
class ScopeQuery:
    """Opaque predicate bounding uniqueness checks: one scope instance of a collection.

    `key` identifies the instance a document is written in. Many-to-many
    reference scopes also carry `targets`, one key per referenced document:
    such a scope matches every document sharing at least one target, whatever
    its full key.
    """
    collection: str
    key: str = GLOBAL_SCOPE_KEY
    targets: tuple[str, ...] = ()

    @property
    def is_global(self) -> bool:
        return self.key == GLOBAL_SCOPE_KEY

    def matches(self, key: str, targets: Iterable[str] = ()) -> bool:
        """True if a document stored under key (and targets) belongs to this scope."""
        if self.targets:
            return not set(self.targets).isdisjoint(targets)
        return key == self.key


@dataclass(frozen=True)
class SlugEntry:
    """Slug-bearing projection of a stored document."""
    id: str
    slug: Optional[str]
    history: tuple[str, ...] = ()
