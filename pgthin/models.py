"""Shared dataclasses used by the driver, database and result set modules."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class RawResult:
    """Completed query as reported by the driver.

    ``sqlstate`` is empty for successful statements. Failed statements keep
    the verbose server message and the original driver exception.
    """

    query: str
    sqlstate: str = ""
    status: str = ""
    columns: tuple[str, ...] = ()
    rows: tuple[tuple[object, ...], ...] = ()
    error_message: str | None = None
    error: BaseException | None = field(default=None, compare=False, repr=False)


__all__ = ["RawResult"]
