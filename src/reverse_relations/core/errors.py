"""Errors raised while resolving reverse relation fields."""


class ReverseRelationsError(Exception):
    """Base exception for reverse relation operations."""

    pass


class ConfigurationError(ReverseRelationsError):
    """Raised when a reverse field's settings cannot be used to build a query."""

    pass


class FieldNotFoundError(ConfigurationError):
    """Raised when the forward field a reverse field points at does not exist.

    Never swallowed: an empty result here would hide a broken field setup.
    """

    def __init__(self, field_handle: str, target_field_uid: str | None):
        self.field_handle = field_handle
        self.target_field_uid = target_field_uid
        if target_field_uid is None:
            message = f"Reverse field '{field_handle}' has no target field configured"
        else:
            message = (
                f"Reverse field '{field_handle}' points at unknown field "
                f"{target_field_uid}"
            )
        super().__init__(message)


class UnknownFieldTypeError(ConfigurationError):
    """Raised when a stored field type has no reverse field implementation."""

    def __init__(self, field_type: str):
        self.field_type = field_type
        super().__init__(f"No reverse field implementation for type '{field_type}'")
