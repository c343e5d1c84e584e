"""Thin convenience layer over a PostgreSQL driver."""

from __future__ import annotations

__version__ = "0.3.0"

from .config import DatabaseConfig, load_config
from .database import Database
from .errors import (
    CheckError,
    ConfigError,
    ConnectionFailedError,
    ConnectionTimeoutError,
    DatabaseConnectionError,
    DatabaseError,
    ForeignKeyError,
    IntegrityError,
    NotConnectedError,
    NotNullError,
    ParseError,
    RestrictError,
    ResultSetError,
    RowIndexError,
    SqlSyntaxError,
    UndefinedColumnError,
    UniqueError,
    UnknownRecordTypeError,
)
from .models import RawResult
from .parser import parse_bool, parse_int
from .records import RecordTypeRegistry, record_type, record_types
from .results import ResultSet
from .template import sanitize_value, substitute

__all__ = [
    "CheckError",
    "ConfigError",
    "ConnectionFailedError",
    "ConnectionTimeoutError",
    "Database",
    "DatabaseConfig",
    "DatabaseConnectionError",
    "DatabaseError",
    "ForeignKeyError",
    "IntegrityError",
    "NotConnectedError",
    "NotNullError",
    "ParseError",
    "RawResult",
    "RecordTypeRegistry",
    "RestrictError",
    "ResultSet",
    "ResultSetError",
    "RowIndexError",
    "SqlSyntaxError",
    "UndefinedColumnError",
    "UniqueError",
    "UnknownRecordTypeError",
    "__version__",
    "load_config",
    "parse_bool",
    "parse_int",
    "record_type",
    "record_types",
    "sanitize_value",
    "substitute",
]
