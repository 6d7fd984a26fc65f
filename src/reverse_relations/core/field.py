"""Reverse relation fields.

A reverse field is attached to the target side of a forward relation
field and lists the elements that relate *to* it. It owns no storage:
its value is a query over the forward field's edges with the join
direction flipped, restricted to sources in the configured groups.

Example:
    field = ReverseUsersField.from_database(config, db)

    query = await field.normalize_value(None, entry)
    authors = await field.fetch_related(entry)

    eager = await field.get_eager_loading_map(entries)
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, ClassVar

from reverse_relations.core.errors import FieldNotFoundError, UnknownFieldTypeError
from reverse_relations.core.kinds import CATEGORIES, ENTRIES, USERS, CandidateSourceKind
from reverse_relations.core.query import ElementQuery, build_forward_query
from reverse_relations.core.reverse_query import (
    build_reverse_query,
    edges_to_eager_load_map,
    target_site_id,
)
from reverse_relations.core.sources import resolve_input_source_ids
from reverse_relations.db.models import (
    CandidateSource,
    EagerLoadMap,
    FieldConfig,
    FieldRecord,
    TargetElement,
)
from reverse_relations.db.repositories import (
    ElementRepository,
    FieldRepository,
    GroupRepository,
    RelationRepository,
)

logger = logging.getLogger(__name__)

SaveHook = Callable[[TargetElement, bool], Awaitable[bool]]


@dataclass
class SaveContext:
    """State carried through a single element save.

    Holds the sources each reverse field had before the save, keyed by
    field handle, so the save pipeline can work out which forward edges
    to delete afterwards.
    """

    old_sources: dict[str, list[CandidateSource]] = field(default_factory=dict)

    def stale_source_ids(self, handle: str, new_source_ids: list[int]) -> list[int]:
        """Ids that were related before the save but are missing from the new value."""
        keep = set(new_source_ids)
        stale = [s.id for s in self.old_sources.get(handle, []) if s.id not in keep]
        return list(dict.fromkeys(stale))


class ReverseRelationsField:
    """Shared behaviour of reverse fields; subclasses pick the source kind."""

    kind: ClassVar[CandidateSourceKind]

    def __init__(
        self,
        config: FieldConfig,
        fields: FieldRepository,
        groups: GroupRepository,
        elements: ElementRepository,
        relations: RelationRepository,
    ):
        self.config = config
        self._fields = fields
        self._groups = groups
        self._elements = elements
        self._relations = relations

    @classmethod
    def from_database(cls, config: FieldConfig, db: Any) -> ReverseRelationsField:
        return cls(
            config,
            fields=FieldRepository(db),
            groups=GroupRepository(db),
            elements=ElementRepository(db),
            relations=RelationRepository(db),
        )

    @property
    def handle(self) -> str:
        return self.config.handle

    @property
    def field_type(self) -> str:
        return self.kind.reverse_field_type

    async def _target_field(self) -> FieldRecord:
        """The forward field whose edges this field inverts.

        Raises:
            FieldNotFoundError: If it is not configured or no longer exists
        """
        uid = self.config.target_field_uid
        target = await self._fields.get_field_by_uid(uid) if uid else None
        if target is None:
            raise FieldNotFoundError(self.config.handle, uid)
        return target

    async def normalize_value(
        self,
        value: Any,
        element: TargetElement | None = None,
    ) -> ElementQuery | Any:
        """Turn a raw field value into the query for this field's sources.

        Concrete values (a list of ids, an empty string) and queries pass
        through unchanged; there is nothing to invert in them.
        """
        if isinstance(value, ElementQuery):
            return value
        if isinstance(value, list) or value == "":
            return value

        if element is not None:
            element = await self._elements.get_canonical(element)

        query = build_forward_query(
            self.kind,
            element,
            self.config.id,
            target_site_id(self.config, element),
        )
        if element is None or element.id is None:
            return query

        target_field = await self._target_field()
        input_source_ids = await resolve_input_source_ids(
            self._groups, self.kind, self.config.input_sources
        )
        return build_reverse_query(
            self.kind, element, target_field.id, input_source_ids, query
        )

    async def fetch_related(
        self,
        element: TargetElement,
        any_status: bool = False,
    ) -> list[CandidateSource]:
        """Materialize the field value of ``element``."""
        query = await self.normalize_value(None, element)
        if any_status:
            query.any_status()
        return await self._elements.fetch_sources(query)

    async def get_eager_loading_map(self, elements: list[TargetElement]) -> EagerLoadMap:
        """Compute the source adjacency for a batch of elements in one query.

        The whole batch is read in the site of its first element; mixed-site
        batches are not supported.
        """
        target_field = await self._target_field()

        first = elements[0] if elements else None
        site_id = first.site_id if first else None
        if any(e.site_id != site_id for e in elements):
            logger.debug(
                f"Eager-loading '{self.handle}' for a mixed-site batch using site {site_id}"
            )

        input_source_ids = await resolve_input_source_ids(
            self._groups, self.kind, self.config.input_sources
        )
        edges = await self._relations.fetch_eager_load_edges(
            self.kind,
            [e.id for e in elements],
            site_id,
            target_field.id,
            input_source_ids,
        )
        return edges_to_eager_load_map(
            self.kind, edges, target_site_id(self.config, first)
        )

    async def capture_old_sources(
        self,
        element: TargetElement,
        is_new: bool = False,
    ) -> list[CandidateSource]:
        """Snapshot the sources related to ``element`` before it is saved.

        Looks at the canonical element in any status, so disabled and
        trashed sources are part of the snapshot. Brand-new canonical
        elements have nothing to snapshot.
        """
        if is_new and not element.is_derivative:
            return []

        canonical_id = element.effective_canonical_id
        if canonical_id is None:
            return []
        canonical = await self._elements.get_element(canonical_id, element.site_id)
        if canonical is None:
            return []

        value = await self.normalize_value(None, canonical)
        if not isinstance(value, ElementQuery):
            return []
        return await self._elements.fetch_sources(value.any_status())

    async def before_element_save(
        self,
        element: TargetElement,
        is_new: bool,
        context: SaveContext,
        next_hook: SaveHook | None = None,
    ) -> bool:
        """Record the current sources in ``context``, then run the host's hook.

        Returns:
            The host hook's verdict, or True when there is none
        """
        if not is_new or element.is_derivative:
            context.old_sources[self.handle] = await self.capture_old_sources(
                element, is_new
            )

        if next_hook is None:
            return True
        return await next_hook(element, is_new)

    async def get_fields(self) -> dict[str, str]:
        """Fields this one can be pointed at, keyed by uid.

        Only fields relating the same kind of element qualify, and never
        another field of this field's own type.
        """
        return {
            f.uid: f"{f.name} ({f.handle})"
            for f in await self._fields.get_all_fields()
            if f.type in self.kind.field_type_family and f.type != self.field_type
        }


class ReverseUsersField(ReverseRelationsField):
    """Users whose user field relates to the element."""

    kind = USERS


class ReverseEntriesField(ReverseRelationsField):
    """Entries whose entries field relates to the element."""

    kind = ENTRIES


class ReverseCategoriesField(ReverseRelationsField):
    """Categories whose categories field relates to the element."""

    kind = CATEGORIES


FIELD_TYPES: dict[str, type[ReverseRelationsField]] = {
    cls.kind.reverse_field_type: cls
    for cls in (ReverseUsersField, ReverseEntriesField, ReverseCategoriesField)
}


def create_field(config: FieldConfig, db: Any) -> ReverseRelationsField:
    """Instantiate the reverse field class matching ``config.type``.

    Raises:
        UnknownFieldTypeError: If the type is not a reverse field type
    """
    field_cls = FIELD_TYPES.get(config.type)
    if field_cls is None:
        raise UnknownFieldTypeError(config.type)
    return field_cls.from_database(config, db)
