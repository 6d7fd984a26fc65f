"""Reverse relation query construction.

Forward relation fields own edges ``source -> target``. A reverse field
attached to the target presents the sources, so both builders here flip
the join direction of the native field:

* ``build_reverse_query`` rewrites one element's lazy field query.
* ``build_eager_load_query`` fetches the adjacency for a whole batch of
  elements in one statement, in relation sort order.

Neither function touches the database.
"""

from typing import Any

from reverse_relations.core.kinds import (
    ELEMENTS_TABLE,
    MEMBERSHIP_ALIAS,
    RELATIONS_TABLE,
    CandidateSourceKind,
)
from reverse_relations.core.query import (
    Condition,
    ElementQuery,
    all_of,
    eq,
    exists,
    in_,
    raw,
    site_scope,
)
from reverse_relations.core.sources import InputSourceIds
from reverse_relations.db.models import (
    ALL_SOURCES,
    EagerLoadMap,
    EagerLoadPair,
    FieldConfig,
    RelationEdge,
    TargetElement,
)

EDGE_COLUMNS = tuple(RelationEdge.model_fields)


def _membership_filter(kind: CandidateSourceKind, group_ids: set[int]) -> Condition:
    """Sources with at least one membership in ``group_ids``.

    A semi-join, so a source in several allowed groups still matches once.
    """
    return exists(
        kind.membership_table,
        MEMBERSHIP_ALIAS,
        all_of(
            raw(
                f"{MEMBERSHIP_ALIAS}.{kind.membership_member_column} = "
                f"{RELATIONS_TABLE}.source_id"
            ),
            in_(f"{MEMBERSHIP_ALIAS}.{kind.membership_group_column}", sorted(group_ids)),
        ),
    )


def build_reverse_query(
    kind: CandidateSourceKind,
    element: TargetElement,
    target_field_id: int,
    input_source_ids: InputSourceIds,
    base_query: ElementQuery,
) -> ElementQuery:
    """Rewrite a native relation query to find the sources relating to ``element``.

    The joins inherited from ``base_query`` point the other way (``element``
    as source) and are dropped rather than extended. ``element`` must
    already be canonical.

    Args:
        kind: Candidate-source kind being queried
        element: Canonical element the reverse field belongs to
        target_field_id: Id of the forward field whose edges are inverted
        input_source_ids: ``"*"`` or the group ids sources must belong to
        base_query: Query produced by the native field; left untouched

    Returns:
        A new query; ordering is inherited from ``base_query``
    """
    query = base_query.copy()
    query.joins = []
    query.inner_join(
        RELATIONS_TABLE,
        RELATIONS_TABLE,
        all_of(
            raw(f"{RELATIONS_TABLE}.source_id = {ELEMENTS_TABLE}.id"),
            eq(f"{RELATIONS_TABLE}.target_id", element.id),
            eq(f"{RELATIONS_TABLE}.field_id", target_field_id),
            site_scope(element.site_id),
        ),
    )

    if input_source_ids != ALL_SOURCES:
        query.where(_membership_filter(kind, input_source_ids))

    return query


def build_eager_load_query(
    kind: CandidateSourceKind,
    target_ids: list[int],
    site_id: int | None,
    target_field_id: int,
    input_source_ids: InputSourceIds,
) -> tuple[str, list[Any]]:
    """Build the single query behind a reverse field's eager-load map.

    Selects whole relation edges whose target is in ``target_ids``,
    restricted to sources of ``kind`` in the allowed groups.

    Returns:
        SQL text with ``$n`` placeholders and its positional arguments
    """
    params: list[Any] = []
    conditions: list[Condition] = [
        eq(f"{RELATIONS_TABLE}.field_id", target_field_id),
        in_(f"{RELATIONS_TABLE}.target_id", target_ids),
        site_scope(site_id),
    ]
    if input_source_ids != ALL_SOURCES:
        conditions.append(_membership_filter(kind, input_source_ids))

    columns = ", ".join(f"{RELATIONS_TABLE}.{column}" for column in EDGE_COLUMNS)
    where_clause = " AND ".join(c.render(params) for c in conditions)
    sql = (
        f"SELECT {columns}\n"
        f"FROM {RELATIONS_TABLE}\n"
        f"INNER JOIN {kind.table} ON {RELATIONS_TABLE}.source_id = {kind.table}.id\n"
        f"WHERE {where_clause}\n"
        f"ORDER BY {RELATIONS_TABLE}.sort_order ASC, {RELATIONS_TABLE}.id ASC"
    )
    return sql, params


def edges_to_eager_load_map(
    kind: CandidateSourceKind,
    edges: list[RelationEdge],
    site_id: int | None,
) -> EagerLoadMap:
    """Invert edges into hydration pairs, keeping their order.

    Pairs are named from the point of view of the hydration consumer:
    ``source`` is the element being hydrated (the edge's target) and
    ``target`` is the related element (the edge's source).
    """
    return EagerLoadMap(
        element_type=kind.element_type,
        pairs=[EagerLoadPair(source=edge.target_id, target=edge.source_id) for edge in edges],
        criteria={"siteId": site_id},
    )


def target_site_id(config: FieldConfig, element: TargetElement | None) -> int | None:
    """Site the related elements are materialized in.

    A field pinned to a target site always uses it; otherwise related
    elements are loaded in the site of the element being resolved.
    """
    if config.use_target_site and config.target_site_id is not None:
        return config.target_site_id
    if element is not None:
        return element.site_id
    return None
