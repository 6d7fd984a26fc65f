"""Reverse relations - inverse views over a CMS element relation table."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("reverse-relations")
except PackageNotFoundError:
    __version__ = "0.0.0"

from reverse_relations.core.errors import (
    ConfigurationError,
    FieldNotFoundError,
    ReverseRelationsError,
)
from reverse_relations.core.field import (
    ReverseCategoriesField,
    ReverseEntriesField,
    ReverseRelationsField,
    ReverseUsersField,
    SaveContext,
    create_field,
)

__all__ = [
    "ConfigurationError",
    "FieldNotFoundError",
    "ReverseCategoriesField",
    "ReverseEntriesField",
    "ReverseRelationsField",
    "ReverseUsersField",
    "ReverseRelationsError",
    "SaveContext",
    "create_field",
    "__version__",
]
