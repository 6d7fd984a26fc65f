"""Pydantic models for the host's element graph.

These mirror rows of the host-owned tables (relations, fields, elements)
plus the transient results produced while resolving reverse relations.
"""

import json
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

ALL_SOURCES = "*"


class RelationEdge(BaseModel):
    """A forward relation: ``source_id`` references ``target_id`` via ``field_id``."""

    id: int | None = None
    field_id: int
    source_id: int
    source_site_id: int | None = None  # None: visible from every site
    target_id: int
    sort_order: int = 1

    model_config = ConfigDict(from_attributes=True)


class FieldRecord(BaseModel):
    """A row of the fields table, as listed by the field registry."""

    id: int
    uid: str
    name: str
    handle: str
    type: str

    model_config = ConfigDict(from_attributes=True)


class FieldConfig(FieldRecord):
    """Settings of a reverse relation field.

    ``target_field_uid`` names the forward field whose edges are inverted.
    ``input_sources`` is either ``"*"`` or an ordered list of ``type:uid``
    specifiers restricting which groups of sources are eligible.
    """

    target_field_uid: str | None = None
    input_sources: Literal["*"] | list[str] = ALL_SOURCES
    target_site_id: int | None = None
    use_target_site: bool = False

    @field_validator("input_sources", mode="before")
    @classmethod
    def parse_input_sources(cls, v: Any) -> Any:
        """Accept a missing value as unrestricted and de-duplicate specifiers."""
        if v is None or v == ALL_SOURCES:
            return ALL_SOURCES
        if isinstance(v, (list, tuple)):
            return list(dict.fromkeys(v))
        return v

    @classmethod
    def from_row(cls, row: Any) -> "FieldConfig":
        """Build a config from a fields row whose ``settings`` column holds JSON."""
        data = dict(row)
        settings = data.pop("settings", None) or {}
        if isinstance(settings, str):
            settings = json.loads(settings)
        return cls(**data, **settings)


class TargetElement(BaseModel):
    """The element a reverse field is attached to.

    Drafts and revisions carry the id of their canonical element in
    ``canonical_id``; relations are only ever recorded against the latter.
    """

    id: int | None = None
    site_id: int | None = None
    canonical_id: int | None = None

    @property
    def is_derivative(self) -> bool:
        return self.canonical_id is not None and self.canonical_id != self.id

    @property
    def effective_canonical_id(self) -> int | None:
        return self.canonical_id if self.is_derivative else self.id


class CandidateSource(BaseModel):
    """An element found on the source side of a reverse relation."""

    id: int
    site_id: int | None = None
    group_ids: set[int] = Field(default_factory=set)
    enabled: bool = True
    date_deleted: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_trashed(self) -> bool:
        return self.date_deleted is not None


class EagerLoadPair(BaseModel):
    """One adjacency entry of an eager-load map.

    ``source`` is the element being hydrated (the edge's target) and
    ``target`` the element to attach to it (the edge's source).
    """

    source: int
    target: int


class EagerLoadMap(BaseModel):
    """Batch adjacency used to hydrate a reverse field for many elements."""

    element_type: str
    pairs: list[EagerLoadPair] = Field(default_factory=list)
    criteria: dict[str, Any] = Field(default_factory=dict)

    def as_tuple(self) -> tuple[str, list[dict[str, int]], dict[str, Any]]:
        """Return the ``(elementType, map, criteria)`` shape eager loaders consume."""
        return (
            self.element_type,
            [pair.model_dump() for pair in self.pairs],
            dict(self.criteria),
        )

    def targets_for(self, source_id: int) -> list[int]:
        """Ids attached to ``source_id``, in relation order."""
        return [pair.target for pair in self.pairs if pair.source == source_id]
