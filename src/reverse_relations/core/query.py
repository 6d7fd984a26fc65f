"""Element query composition.

``ElementQuery`` builds the SQL the host's element query engine would run
for a relation field: the element base (elements + kind table, plus the
per-site row for localized kinds), a list of custom joins that reverse
fields may replace wholesale, filter conditions and ordering. Rendering
produces asyncpg-style ``$n`` placeholders and the matching argument list.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from reverse_relations.core.kinds import (
    ELEMENTS_SITES_TABLE,
    ELEMENTS_TABLE,
    RELATIONS_TABLE,
    CandidateSourceKind,
)
from reverse_relations.db.models import TargetElement


class Condition(Protocol):
    def render(self, params: list[Any]) -> str: ...


@dataclass(frozen=True)
class Raw:
    """Literal SQL without parameters, e.g. a column-to-column comparison."""

    sql: str

    def render(self, params: list[Any]) -> str:
        return self.sql


@dataclass(frozen=True)
class Eq:
    column: str
    value: Any

    def render(self, params: list[Any]) -> str:
        if self.value is None:
            return f"{self.column} IS NULL"
        params.append(self.value)
        return f"{self.column} = ${len(params)}"


@dataclass(frozen=True)
class In:
    column: str
    values: tuple[Any, ...]

    def render(self, params: list[Any]) -> str:
        if not self.values:
            return "1 = 0"
        placeholders = []
        for value in self.values:
            params.append(value)
            placeholders.append(f"${len(params)}")
        return f"{self.column} IN ({', '.join(placeholders)})"


@dataclass(frozen=True)
class AllOf:
    conditions: tuple[Condition, ...]

    def render(self, params: list[Any]) -> str:
        return "(" + " AND ".join(c.render(params) for c in self.conditions) + ")"


@dataclass(frozen=True)
class AnyOf:
    conditions: tuple[Condition, ...]

    def render(self, params: list[Any]) -> str:
        return "(" + " OR ".join(c.render(params) for c in self.conditions) + ")"


@dataclass(frozen=True)
class Exists:
    """Semi-join: true when ``table`` has a row matching ``where``.

    Unlike a join it never multiplies the outer rows.
    """

    table: str
    alias: str
    where: Condition

    def render(self, params: list[Any]) -> str:
        return (
            f"EXISTS (SELECT 1 FROM {self.table} AS {self.alias} "
            f"WHERE {self.where.render(params)})"
        )


def raw(sql: str) -> Raw:
    return Raw(sql)


def eq(column: str, value: Any) -> Eq:
    return Eq(column, value)


def in_(column: str, values) -> In:
    return In(column, tuple(values))


def all_of(*conditions: Condition) -> AllOf:
    return AllOf(tuple(conditions))


def any_of(*conditions: Condition) -> AnyOf:
    return AnyOf(tuple(conditions))


def exists(table: str, alias: str, where: Condition) -> Exists:
    return Exists(table, alias, where)


def site_scope(site_id: int | None) -> AnyOf:
    """Edges pinned to ``site_id`` plus edges that apply to every site."""
    column = f"{RELATIONS_TABLE}.source_site_id"
    return any_of(eq(column, None), eq(column, site_id))


@dataclass(frozen=True)
class Join:
    table: str
    alias: str
    on: Condition

    def render(self, params: list[Any]) -> str:
        return f"INNER JOIN {self.table} AS {self.alias} ON {self.on.render(params)}"


@dataclass
class ElementQuery:
    """A lazily executed query for elements of one candidate-source kind."""

    kind: CandidateSourceKind
    site_id: int | None = None
    joins: list[Join] = field(default_factory=list)
    conditions: list[Condition] = field(default_factory=list)
    order_by: list[str] = field(default_factory=list)
    all_statuses: bool = False
    ids: list[int] | None = None

    def inner_join(self, table: str, alias: str, on: Condition) -> ElementQuery:
        self.joins.append(Join(table, alias, on))
        return self

    def where(self, condition: Condition) -> ElementQuery:
        self.conditions.append(condition)
        return self

    def id(self, ids) -> ElementQuery:
        self.ids = list(ids)
        return self

    def any_status(self) -> ElementQuery:
        """Include disabled and soft-deleted elements."""
        self.all_statuses = True
        return self

    def copy(self) -> ElementQuery:
        return ElementQuery(
            kind=self.kind,
            site_id=self.site_id,
            joins=list(self.joins),
            conditions=list(self.conditions),
            order_by=list(self.order_by),
            all_statuses=self.all_statuses,
            ids=None if self.ids is None else list(self.ids),
        )

    @property
    def joins_site_rows(self) -> bool:
        return self.kind.localized and self.site_id is not None

    def to_sql(self) -> tuple[str, list[Any]]:
        """Render the query.

        Returns:
            SQL text with ``$n`` placeholders and its positional arguments
        """
        params: list[Any] = []
        kind_table = self.kind.table

        columns = [
            f"{ELEMENTS_TABLE}.id AS id",
            f"{ELEMENTS_TABLE}.enabled AS enabled",
            f"{ELEMENTS_TABLE}.date_deleted AS date_deleted",
        ]
        lines = [
            f"FROM {ELEMENTS_TABLE}",
            f"INNER JOIN {kind_table} ON {kind_table}.id = {ELEMENTS_TABLE}.id",
        ]
        if self.joins_site_rows:
            columns.append(f"{ELEMENTS_SITES_TABLE}.site_id AS site_id")
            site_join = all_of(
                raw(f"{ELEMENTS_SITES_TABLE}.element_id = {ELEMENTS_TABLE}.id"),
                eq(f"{ELEMENTS_SITES_TABLE}.site_id", self.site_id),
            )
            lines.append(
                f"INNER JOIN {ELEMENTS_SITES_TABLE} ON {site_join.render(params)}"
            )

        lines.extend(join.render(params) for join in self.joins)

        conditions: list[Condition] = []
        if self.ids is not None:
            conditions.append(in_(f"{ELEMENTS_TABLE}.id", self.ids))
        if not self.all_statuses:
            conditions.append(eq(f"{ELEMENTS_TABLE}.enabled", True))
            conditions.append(raw(f"{ELEMENTS_TABLE}.date_deleted IS NULL"))
            if self.joins_site_rows:
                conditions.append(eq(f"{ELEMENTS_SITES_TABLE}.enabled", True))
        conditions.extend(self.conditions)

        where_clause = " AND ".join(c.render(params) for c in conditions) or "TRUE"
        sql = f"SELECT {', '.join(columns)}\n" + "\n".join(lines)
        sql += f"\nWHERE {where_clause}"
        if self.order_by:
            sql += f"\nORDER BY {', '.join(self.order_by)}"
        return sql, params


def build_forward_query(
    kind: CandidateSourceKind,
    element: TargetElement | None,
    field_id: int,
    site_id: int | None,
) -> ElementQuery:
    """The query a native relation field builds for ``element``'s own edges.

    Sources are ``element`` itself and targets are the kind's elements,
    ordered as the author arranged them. Without a saved element nothing
    can be related, so the query matches no ids.
    """
    query = ElementQuery(kind=kind, site_id=site_id)
    if element is None or element.id is None:
        return query.id([])

    query.inner_join(
        RELATIONS_TABLE,
        RELATIONS_TABLE,
        all_of(
            raw(f"{RELATIONS_TABLE}.target_id = {ELEMENTS_TABLE}.id"),
            eq(f"{RELATIONS_TABLE}.source_id", element.id),
            eq(f"{RELATIONS_TABLE}.field_id", field_id),
            site_scope(element.site_id),
        ),
    )
    query.order_by = [f"{RELATIONS_TABLE}.sort_order"]
    return query
