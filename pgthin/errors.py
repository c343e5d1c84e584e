"""Error classes raised by pgthin and the SQLSTATE lookup table."""

from __future__ import annotations

from typing import Any, Mapping

SUCCESS = "00000"
NO_DATA = "02000"

INTEGRITY_CONSTRAINT_VIOLATION = "23000"
RESTRICT_VIOLATION = "23001"
NOT_NULL_VIOLATION = "23502"
FOREIGN_KEY_VIOLATION = "23503"
UNIQUE_VIOLATION = "23505"
CHECK_VIOLATION = "23514"
SYNTAX_ERROR = "42601"
UNDEFINED_COLUMN = "42703"


class ParseError(ValueError):
    """Raised when a driver value is not in the expected literal form."""

    def __init__(self, message: str, value: object = None) -> None:
        super().__init__(message)
        self.value = value


class ConfigError(ValueError):
    """Raised when connection settings are invalid or cannot be read."""


class DatabaseConnectionError(RuntimeError):
    """Base error for connection-level failures."""


class ConnectionFailedError(DatabaseConnectionError):
    """Raised when the driver cannot open a connection."""


class NotConnectedError(DatabaseConnectionError):
    """Raised when a query is issued without an open connection."""


class ConnectionTimeoutError(DatabaseConnectionError):
    """Raised when the connection stays busy for every dispatch attempt."""


class DatabaseError(RuntimeError):
    """Raised for failed queries whose SQLSTATE has no dedicated class.

    The failing query text and the raw result handle are attached so callers
    can inspect the driver-level details.
    """

    def __init__(
        self,
        message: str,
        *,
        query: str | None = None,
        result: Any = None,
        sqlstate: str | None = None,
    ) -> None:
        super().__init__(message)
        self.query = query
        self.result = result
        self.sqlstate = sqlstate


class IntegrityError(DatabaseError):
    """Generic integrity constraint violation."""


class RestrictError(DatabaseError):
    """A RESTRICT constraint blocked a cascading change."""


class NotNullError(DatabaseError):
    """NULL assigned to a NOT NULL column."""


class ForeignKeyError(DatabaseError):
    """Foreign key constraint violation."""


class UniqueError(DatabaseError):
    """UNIQUE constraint violation.

    Catching this after an insert is usually cheaper than checking for
    duplicates up front.
    """


class CheckError(DatabaseError):
    """CHECK constraint violation."""


class SqlSyntaxError(DatabaseError):
    """The server could not parse the statement."""


class UndefinedColumnError(DatabaseError):
    """The statement references a column that does not exist.

    Often caused by an unquoted string value in a template.
    """


class ResultSetError(RuntimeError):
    """Raised when a result set cannot produce the requested row or object."""


class RowIndexError(ResultSetError, IndexError):
    """Raised for out-of-range row access."""


class UnknownRecordTypeError(ResultSetError, KeyError):
    """Raised when a record type name is not registered."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


ERROR_CLASSES: Mapping[str, tuple[type[DatabaseError], str]] = {
    INTEGRITY_CONSTRAINT_VIOLATION: (IntegrityError, "Integrity violation on"),
    RESTRICT_VIOLATION: (RestrictError, "Restrict violation on"),
    NOT_NULL_VIOLATION: (NotNullError, "Not NULL violation on"),
    FOREIGN_KEY_VIOLATION: (ForeignKeyError, "Foreign key violation on"),
    UNIQUE_VIOLATION: (UniqueError, "Unique violation on"),
    CHECK_VIOLATION: (CheckError, "Check violation on"),
    SYNTAX_ERROR: (SqlSyntaxError, "Syntax error on"),
    UNDEFINED_COLUMN: (UndefinedColumnError, "Undefined column in"),
}


def error_for(sqlstate: str, query: str, result: Any = None) -> DatabaseError:
    """Build the error matching a failed result's SQLSTATE."""

    entry = ERROR_CLASSES.get(sqlstate)
    if entry is None:
        return DatabaseError(
            f"Error code `{sqlstate}` on: `{query}`",
            query=query,
            result=result,
            sqlstate=sqlstate,
        )
    error_class, prefix = entry
    return error_class(f"{prefix}: `{query}`", query=query, result=result, sqlstate=sqlstate)


__all__ = [
    "CHECK_VIOLATION",
    "CheckError",
    "ConfigError",
    "ConnectionFailedError",
    "ConnectionTimeoutError",
    "DatabaseConnectionError",
    "DatabaseError",
    "ERROR_CLASSES",
    "FOREIGN_KEY_VIOLATION",
    "ForeignKeyError",
    "INTEGRITY_CONSTRAINT_VIOLATION",
    "IntegrityError",
    "NOT_NULL_VIOLATION",
    "NO_DATA",
    "NotConnectedError",
    "NotNullError",
    "ParseError",
    "RESTRICT_VIOLATION",
    "RestrictError",
    "ResultSetError",
    "RowIndexError",
    "SUCCESS",
    "SYNTAX_ERROR",
    "SqlSyntaxError",
    "UNDEFINED_COLUMN",
    "UNIQUE_VIOLATION",
    "UndefinedColumnError",
    "UniqueError",
    "UnknownRecordTypeError",
    "error_for",
]
