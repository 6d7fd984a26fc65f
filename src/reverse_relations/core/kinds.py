"""Candidate-source kinds.

A kind describes which element table sits on the source side of a reverse
field and how its elements are grouped. The query builders are shared;
only these descriptors differ between reverse user, entry and category
fields.
"""

from dataclasses import dataclass

# Host tables shared by every kind
ELEMENTS_TABLE = "elements"
ELEMENTS_SITES_TABLE = "elements_sites"
RELATIONS_TABLE = "relations"
FIELDS_TABLE = "fields"

# Alias the membership table is joined under; entries and categories carry
# their group column on the kind table itself, which is already joined.
MEMBERSHIP_ALIAS = "memberships"


@dataclass(frozen=True)
class CandidateSourceKind:
    """Descriptor of one kind of element that can appear as a relation source."""

    element_type: str
    table: str
    membership_table: str
    membership_member_column: str
    membership_group_column: str
    group_table: str
    forward_field_type: str
    reverse_field_type: str
    localized: bool = False

    @property
    def field_type_family(self) -> frozenset[str]:
        """Field types that relate to this kind, in either direction."""
        return frozenset({self.forward_field_type, self.reverse_field_type})


USERS = CandidateSourceKind(
    element_type="users",
    table="users",
    membership_table="usergroups_users",
    membership_member_column="user_id",
    membership_group_column="group_id",
    group_table="usergroups",
    forward_field_type="fields.Users",
    reverse_field_type="reverse_relations.ReverseUsers",
)

ENTRIES = CandidateSourceKind(
    element_type="entries",
    table="entries",
    membership_table="entries",
    membership_member_column="id",
    membership_group_column="section_id",
    group_table="sections",
    forward_field_type="fields.Entries",
    reverse_field_type="reverse_relations.ReverseEntries",
    localized=True,
)

CATEGORIES = CandidateSourceKind(
    element_type="categories",
    table="categories",
    membership_table="categories",
    membership_member_column="id",
    membership_group_column="group_id",
    group_table="categorygroups",
    forward_field_type="fields.Categories",
    reverse_field_type="reverse_relations.ReverseCategories",
    localized=True,
)
