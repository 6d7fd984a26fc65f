"""Resolution of a reverse field's allowed input sources to group ids."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Literal

from reverse_relations.core.kinds import CandidateSourceKind
from reverse_relations.db.models import ALL_SOURCES

if TYPE_CHECKING:
    from reverse_relations.db.repositories import GroupRepository

logger = logging.getLogger(__name__)

InputSourceIds = Literal["*"] | set[int]


def parse_input_source_uids(input_sources: list[str]) -> list[str]:
    """Extract the uid part of each ``type:uid`` specifier.

    Specifiers without a uid are dropped, like any other stale reference.
    """
    uids = []
    for source in input_sources:
        _, sep, uid = source.partition(":")
        if not sep or not uid:
            logger.debug(f"Ignoring malformed input source '{source}'")
            continue
        uids.append(uid)
    return uids


async def resolve_input_source_ids(
    groups: GroupRepository,
    kind: CandidateSourceKind,
    input_sources: Literal["*"] | list[str],
) -> InputSourceIds:
    """Resolve input source specifiers to internal group ids.

    ``"*"`` passes through unchanged. Uids that no longer exist in the
    kind's group table are silently left out, so the result can be
    smaller than the input, or empty.
    """
    if input_sources == ALL_SOURCES:
        return ALL_SOURCES

    uids = parse_input_source_uids(input_sources)
    if not uids:
        return set()

    ids = set(await groups.ids_by_uids(kind.group_table, uids))
    if len(ids) < len(set(uids)):
        logger.debug(
            f"Resolved {len(ids)} of {len(uids)} {kind.group_table} input sources"
        )
    return ids
