"""Database exception types for reverse relations.

The core only reads the host's relational store; every driver failure is
wrapped into one of these so callers deal with a single hierarchy.
"""


class DatabaseError(Exception):
    """Base exception for all database-related errors."""

    def __init__(self, message: str, cause: Exception | None = None):
        self.message = message
        self.cause = cause
        super().__init__(message)

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message


class ConnectionError(DatabaseError):
    """Raised when the store cannot be reached or the pool is closed."""

    pass


class PoolExhaustedError(ConnectionError):
    """Raised when no pooled connection frees up in time."""

    def __init__(self, timeout: float | None = None):
        self.timeout = timeout
        message = "Connection pool exhausted"
        if timeout:
            message = f"{message} after {timeout:.1f}s timeout"
        super().__init__(message)


class QueryError(DatabaseError):
    """Raised when a read query fails."""

    def __init__(
        self,
        message: str,
        query: str | None = None,
        cause: Exception | None = None,
    ):
        self.query = query
        super().__init__(message, cause)


class RecordNotFoundError(QueryError):
    """Raised when a row looked up by a unique column does not exist."""

    def __init__(self, table: str, column: str, value: object):
        self.table = table
        self.column = column
        self.value = value
        super().__init__(f"No row in {table} with {column}={value!r}")
