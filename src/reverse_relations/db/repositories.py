"""Repository classes for reading the host's element graph.

Each repository wraps one concern of the host schema (fields, groups,
elements, relations) on top of the Database class. All methods are
reads; the host's save pipeline owns every write.
"""

from __future__ import annotations

import logging
from typing import Any

from reverse_relations.core.kinds import (
    ELEMENTS_TABLE,
    FIELDS_TABLE,
    CandidateSourceKind,
)
from reverse_relations.core.query import ElementQuery, in_
from reverse_relations.core.reverse_query import build_eager_load_query
from reverse_relations.core.sources import InputSourceIds
from reverse_relations.db.database import Database
from reverse_relations.db.exceptions import RecordNotFoundError
from reverse_relations.db.models import (
    CandidateSource,
    FieldConfig,
    FieldRecord,
    RelationEdge,
    TargetElement,
)

logger = logging.getLogger(__name__)

_FIELD_COLUMNS = "id, uid, name, handle, type"


class FieldRepository:
    """Field registry backed by the fields table."""

    def __init__(self, db: Database):
        self._db = db

    async def get_field_by_uid(self, uid: str) -> FieldRecord | None:
        row = await self._db.fetchrow(
            f"SELECT {_FIELD_COLUMNS} FROM {FIELDS_TABLE} WHERE uid = $1",
            uid,
        )
        return FieldRecord(**dict(row)) if row else None

    async def get_all_fields(self) -> list[FieldRecord]:
        rows = await self._db.fetch(
            f"SELECT {_FIELD_COLUMNS} FROM {FIELDS_TABLE} ORDER BY name, id"
        )
        return [FieldRecord(**dict(row)) for row in rows]

    async def get_field_config(self, uid: str) -> FieldConfig:
        """Load a field together with its settings.

        Raises:
            RecordNotFoundError: If no field has this uid
        """
        row = await self._db.fetchrow(
            f"SELECT {_FIELD_COLUMNS}, settings FROM {FIELDS_TABLE} WHERE uid = $1",
            uid,
        )
        if not row:
            raise RecordNotFoundError(FIELDS_TABLE, "uid", uid)
        return FieldConfig.from_row(row)


class GroupRepository:
    """Lookups against group tables (user groups, sections, category groups)."""

    def __init__(self, db: Database):
        self._db = db

    async def ids_by_uids(self, table: str, uids: list[str]) -> list[int]:
        """Map uids to ids; uids without a row are left out."""
        if not uids:
            return []
        params: list[Any] = []
        condition = in_("uid", uids).render(params)
        rows = await self._db.fetch(
            f"SELECT id FROM {table} WHERE {condition} ORDER BY id",
            *params,
        )
        return [row["id"] for row in rows]


class ElementRepository:
    """Element lookups and execution of element queries."""

    def __init__(self, db: Database):
        self._db = db

    async def get_element(self, element_id: int, site_id: int | None = None) -> TargetElement | None:
        """Load an element by id, keeping the caller's site context."""
        row = await self._db.fetchrow(
            f"SELECT id, canonical_id FROM {ELEMENTS_TABLE} WHERE id = $1",
            element_id,
        )
        if not row:
            return None
        return TargetElement(id=row["id"], site_id=site_id, canonical_id=row["canonical_id"])

    async def get_canonical(self, element: TargetElement) -> TargetElement:
        """Return the canonical form of ``element``.

        Elements that are not drafts or revisions are their own canonical
        form. A derivative whose canonical row has vanished resolves to itself.
        """
        if not element.is_derivative:
            return element

        canonical = await self.get_element(element.canonical_id, element.site_id)
        if canonical is None:
            logger.debug(
                f"Canonical element {element.canonical_id} of {element.id} not found"
            )
            return element
        return canonical

    async def fetch_sources(self, query: ElementQuery) -> list[CandidateSource]:
        """Execute an element query and hydrate group memberships."""
        sql, args = query.to_sql()
        rows = await self._db.fetch(sql, *args)

        memberships = await self.fetch_memberships(
            query.kind, list(dict.fromkeys(row["id"] for row in rows))
        )
        sources = []
        for row in rows:
            data = dict(row)
            data.setdefault("site_id", query.site_id)
            sources.append(
                CandidateSource(**data, group_ids=memberships.get(data["id"], set()))
            )
        return sources

    async def fetch_memberships(
        self,
        kind: CandidateSourceKind,
        element_ids: list[int],
    ) -> dict[int, set[int]]:
        """Group ids of each element, in one query."""
        if not element_ids:
            return {}
        member = kind.membership_member_column
        group = kind.membership_group_column
        params: list[Any] = []
        condition = in_(member, element_ids).render(params)
        rows = await self._db.fetch(
            f"""
            SELECT {member} AS member_id, {group} AS group_id
            FROM {kind.membership_table}
            WHERE {condition} AND {group} IS NOT NULL
            """,
            *params,
        )
        memberships: dict[int, set[int]] = {}
        for row in rows:
            memberships.setdefault(row["member_id"], set()).add(row["group_id"])
        return memberships


class RelationRepository:
    """Reads of the relations table."""

    def __init__(self, db: Database):
        self._db = db

    async def fetch_eager_load_edges(
        self,
        kind: CandidateSourceKind,
        target_ids: list[int],
        site_id: int | None,
        target_field_id: int,
        input_source_ids: InputSourceIds,
    ) -> list[RelationEdge]:
        """Edges pointing at ``target_ids`` from allowed sources, in sort order."""
        sql, args = build_eager_load_query(
            kind, target_ids, site_id, target_field_id, input_source_ids
        )
        rows = await self._db.fetch(sql, *args)
        return [RelationEdge(**dict(row)) for row in rows]
