"""Record types that result rows can be turned into.

A record type is any callable taking the row's columns as keyword arguments:
dataclasses, NamedTuples, pydantic models or plain classes. Types are passed
directly or registered under a name::

    @record_type("person")
    @dataclass
    class Person:
        name: str
        age: int

    results.all_objects("person")
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping

from .errors import ResultSetError, UnknownRecordTypeError

RecordFactory = Callable[..., Any]
RecordTypeRef = str | RecordFactory


@dataclass(frozen=True, slots=True)
class RecordSignature:
    """Fields a record factory accepts."""

    fields: tuple[str, ...]
    required: frozenset[str]
    accepts_extra: bool


class RecordTypeRegistry:
    """Maps record type names to factories."""

    def __init__(self) -> None:
        self._types: dict[str, RecordFactory] = {}

    def register(self, factory: RecordFactory, *, name: str | None = None) -> RecordFactory:
        """Register a factory under ``name`` (defaults to its ``__name__``)."""

        if not callable(factory):
            raise TypeError(f"Record type {factory!r} is not callable")
        key = name or getattr(factory, "__name__", None)
        if not key:
            raise ValueError(f"Record type {factory!r} needs an explicit name")
        self._types[key] = factory
        return factory

    def register_many(self, factories: Iterable[RecordFactory]) -> None:
        for factory in factories:
            self.register(factory)

    def get(self, name: str) -> RecordFactory:
        try:
            return self._types[name]
        except KeyError:
            raise UnknownRecordTypeError(f"Record type '{name}' is not registered") from None

    def resolve(self, ref: RecordTypeRef) -> RecordFactory:
        """Return the factory for a registered name or a factory itself."""

        if isinstance(ref, str):
            return self.get(ref)
        if callable(ref):
            return ref
        raise TypeError(f"Expected a record type name or callable, got {ref!r}")

    def names(self) -> list[str]:
        return sorted(self._types)

    def __contains__(self, name: object) -> bool:
        return name in self._types


record_types = RecordTypeRegistry()


def record_type(
    name: str | None = None,
    *,
    registry: RecordTypeRegistry | None = None,
) -> Callable[[RecordFactory], RecordFactory]:
    """Class decorator registering a record type."""

    target = registry or record_types

    def _decorate(factory: RecordFactory) -> RecordFactory:
        return target.register(factory, name=name)

    return _decorate


def signature_of(factory: RecordFactory) -> RecordSignature:
    """Inspect the keyword fields a factory declares."""

    try:
        params = inspect.signature(factory).parameters.values()
    except (TypeError, ValueError) as exc:
        raise ResultSetError(f"Cannot inspect record type {_describe(factory)}: {exc}") from exc
    fields: list[str] = []
    required: set[str] = set()
    accepts_extra = False
    for param in params:
        if param.kind is inspect.Parameter.VAR_KEYWORD:
            accepts_extra = True
            continue
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.POSITIONAL_ONLY):
            continue
        fields.append(param.name)
        if param.default is inspect.Parameter.empty:
            required.add(param.name)
    return RecordSignature(tuple(fields), frozenset(required), accepts_extra)


def build_record(
    factory: RecordFactory,
    record: Mapping[str, object],
    extra_fields: Mapping[str, object] | None = None,
) -> Any:
    """Construct ``factory`` from a row, matching columns to fields by name.

    ``extra_fields`` supplies values the row does not have and overrides
    columns of the same name.
    """

    values = dict(record)
    if extra_fields:
        values.update(extra_fields)
    signature = signature_of(factory)
    missing = sorted(signature.required - values.keys())
    if missing:
        raise ResultSetError(f"Missing fields for {_describe(factory)}: {', '.join(missing)}")
    if not signature.accepts_extra:
        unknown = [key for key in values if key not in signature.fields]
        if unknown:
            raise ResultSetError(f"Unexpected fields for {_describe(factory)}: {', '.join(unknown)}")
    try:
        return factory(**values)
    except Exception as exc:
        raise ResultSetError(f"Could not construct {_describe(factory)}: {exc}") from exc


def _describe(factory: RecordFactory) -> str:
    return getattr(factory, "__qualname__", None) or repr(factory)


__all__ = [
    "RecordFactory",
    "RecordSignature",
    "RecordTypeRef",
    "RecordTypeRegistry",
    "build_record",
    "record_type",
    "record_types",
    "signature_of",
]
