"""Result set wrapper returned by :meth:`pgthin.database.Database.query`."""

from __future__ import annotations

import re
from typing import Any, Iterator, Mapping

from .errors import RowIndexError
from .models import RawResult
from .records import RecordTypeRef, RecordTypeRegistry, build_record, record_types

Record = dict[str, Any]

_TRAILING_COUNT = re.compile(r"(\d+)\s*$")


class ResultSet:
    """Rows of a completed query, loaded eagerly as records.

    Every record maps column names to values in the order the driver reported
    the columns. ``next`` and ``next_object`` walk the rows with their own
    cursors; no other accessor moves them.
    """

    def __init__(self, raw: RawResult, *, registry: RecordTypeRegistry | None = None) -> None:
        self._raw = raw
        self._registry = registry or record_types
        self._records: tuple[Record, ...] = tuple(dict(zip(raw.columns, row)) for row in raw.rows)
        self._length = len(self._records)
        self._cursor = 0
        self._object_cursor = 0
        self._object_cache: dict[Any, tuple[Any, ...]] = {}

    @property
    def columns(self) -> tuple[str, ...]:
        return self._raw.columns

    @property
    def status(self) -> str:
        """Command tag reported by the server, e.g. ``INSERT 0 1``."""

        return self._raw.status

    def get(self, row: int = 0) -> Record:
        """Return one record (the first by default)."""

        return self._records[self._check_row(row)]

    def all(self) -> tuple[Record, ...]:
        return self._records

    def next(self) -> Record | None:
        """Return the record after the previous ``next`` call, or ``None`` at the end."""

        if self._cursor >= self._length:
            return None
        record = self._records[self._cursor]
        self._cursor += 1
        return record

    def last(self) -> Record:
        return self._records[self._check_row(self._length - 1)]

    def get_object(
        self,
        record_type: RecordTypeRef,
        row: int = 0,
        extra_fields: Mapping[str, object] | None = None,
    ) -> Any:
        """Build a record type instance from one row.

        Columns are matched to the type's fields by name. ``extra_fields``
        fills in fields the table does not have.
        """

        index = self._check_row(row)
        return build_record(self._registry.resolve(record_type), self._records[index], extra_fields)

    def next_object(self, record_type: RecordTypeRef) -> Any | None:
        if self._object_cursor >= self._length:
            return None
        record = build_record(self._registry.resolve(record_type), self._records[self._object_cursor])
        self._object_cursor += 1
        return record

    def last_object(self, record_type: RecordTypeRef) -> Any:
        return self.get_object(record_type, self._length - 1)

    def all_objects(self, record_type: RecordTypeRef) -> tuple[Any, ...]:
        """Build one instance per row; repeated calls return the cached tuple."""

        factory = self._registry.resolve(record_type)
        cached = self._object_cache.get(factory)
        if cached is None:
            cached = tuple(build_record(factory, record) for record in self._records)
            self._object_cache[factory] = cached
        return cached

    def get_length(self) -> int:
        return self._length

    def is_empty(self) -> bool:
        return self._length == 0

    def get_raw_result(self) -> RawResult:
        """Return the driver result this set was built from."""

        return self._raw

    def affected_rows(self) -> int | None:
        """Row count from the command tag, or ``None`` when it has none."""

        match = _TRAILING_COUNT.search(self._raw.status)
        if match is None:
            return None
        return int(match.group(1))

    def __len__(self) -> int:
        return self._length

    def __iter__(self) -> Iterator[Record]:
        return iter(self._records)

    def __repr__(self) -> str:
        return f"<ResultSet rows={self._length} columns={self.columns!r}>"

    def _check_row(self, row: int) -> int:
        if not 0 <= row < self._length:
            raise RowIndexError(f"Row {row} is out of range for a result set of {self._length} row(s)")
        return row


__all__ = ["Record", "ResultSet"]
