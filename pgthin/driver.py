"""Native client used by :class:`pgthin.database.Database`."""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from typing import Any, Coroutine, Protocol, TypeVar, runtime_checkable

import asyncpg

from .config import DatabaseConfig
from .errors import ConnectionFailedError, DatabaseConnectionError, NotConnectedError
from .models import RawResult

LOG = logging.getLogger(__name__)

T = TypeVar("T")

_MULTIPLE_COMMANDS = "cannot insert multiple commands into a prepared statement"


@runtime_checkable
class NativeClient(Protocol):
    """Blocking driver surface the database wrapper is built on."""

    def open(self, config: DatabaseConfig) -> None:
        """Open a connection for the given settings."""

    def close(self) -> None:
        """Close the connection if it is open."""

    def is_open(self) -> bool:
        """Whether a connection is currently open."""

    def is_busy(self) -> bool:
        """Whether a previously sent query is still running."""

    def send_query(self, sql: str) -> None:
        """Start running ``sql`` without waiting for it."""

    def get_result(self) -> RawResult:
        """Wait for the last sent query and return its result."""


class AsyncpgClient:
    """Runs asyncpg on a private event loop behind a blocking API."""

    def __init__(self, *, connect_timeout: float = 5.0) -> None:
        self._connect_timeout = connect_timeout
        self._conn: asyncpg.Connection | None = None
        self._pending: concurrent.futures.Future[RawResult] | None = None
        self._loop = asyncio.new_event_loop()
        self._loop_thread = threading.Thread(
            target=self._loop.run_forever,
            name="pgthin-asyncpg-client",
            daemon=True,
        )
        self._loop_thread.start()

    def open(self, config: DatabaseConfig) -> None:
        if self.is_open():
            return
        kwargs = config.connect_kwargs()
        kwargs.setdefault("timeout", self._connect_timeout)
        try:
            self._conn = self._run(asyncpg.connect(**kwargs))
        except Exception as exc:
            raise ConnectionFailedError(f"Error connecting to database '{config.dbname}': {exc}") from exc

    def close(self) -> None:
        conn, self._conn = self._conn, None
        self._pending = None
        if conn is None or conn.is_closed():
            return
        try:
            self._run(conn.close())
        except Exception as exc:
            raise DatabaseConnectionError(f"Error closing connection: {exc}") from exc

    def is_open(self) -> bool:
        return self._conn is not None and not self._conn.is_closed()

    def is_busy(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def send_query(self, sql: str) -> None:
        conn = self._require_connection()
        self._pending = asyncio.run_coroutine_threadsafe(self._execute(conn, sql), self._loop)

    def get_result(self) -> RawResult:
        future, self._pending = self._pending, None
        if future is None:
            raise DatabaseConnectionError("No query has been sent on this connection")
        try:
            return future.result()
        except asyncpg.InterfaceError as exc:
            raise DatabaseConnectionError(str(exc)) from exc
        except OSError as exc:
            raise DatabaseConnectionError(f"Connection lost: {exc}") from exc

    def shutdown(self) -> None:
        """Close the connection and stop the background event loop."""

        try:
            self.close()
        finally:
            if self._loop_thread.is_alive():
                self._loop.call_soon_threadsafe(self._loop.stop)
                self._loop_thread.join(timeout=1)
            if not self._loop_thread.is_alive() and not self._loop.is_closed():
                self._loop.close()

    def __del__(self) -> None:  # pragma: no cover - best effort cleanup
        try:
            self.shutdown()
        except Exception:
            pass

    def _require_connection(self) -> asyncpg.Connection:
        if self._conn is None or self._conn.is_closed():
            raise NotConnectedError("Must be connected to a database before querying.")
        return self._conn

    def _run(self, coro: Coroutine[Any, Any, T]) -> T:
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result()

    async def _execute(self, conn: asyncpg.Connection, sql: str) -> RawResult:
        try:
            try:
                statement = await conn.prepare(sql)
            except asyncpg.PostgresSyntaxError as exc:
                if not _is_multiple_commands(exc):
                    raise
                # Several statements in one string: run them through the
                # simple query protocol, keeping the last command tag.
                status = await conn.execute(sql)
                return RawResult(query=sql, status=status or "")
            columns = tuple(attr.name for attr in statement.get_attributes())
            records = await statement.fetch()
            rows = tuple(tuple(record.values()) for record in records) if columns else ()
            status = statement.get_statusmsg() or ""
            return RawResult(query=sql, status=status, columns=columns, rows=rows)
        except asyncpg.PostgresError as exc:
            sqlstate = getattr(exc, "sqlstate", None) or "XX000"
            LOG.debug("Query failed", extra={"sqlstate": sqlstate, "query": sql})
            return RawResult(
                query=sql,
                sqlstate=sqlstate,
                error_message=_verbose_message(exc, sqlstate),
                error=exc,
            )


def _is_multiple_commands(exc: asyncpg.PostgresError) -> bool:
    # The message is localized; the raising server function is not.
    if getattr(exc, "server_source_function", None) == "exec_parse_message":
        return True
    return _MULTIPLE_COMMANDS in str(exc)


def _verbose_message(exc: asyncpg.PostgresError, sqlstate: str) -> str:
    parts = [f"{getattr(exc, 'severity', None) or 'ERROR'}:  {sqlstate}: {exc}"]
    for label, attr in (("DETAIL", "detail"), ("HINT", "hint"), ("CONTEXT", "context")):
        value = getattr(exc, attr, None)
        if value:
            parts.append(f"{label}:  {value}")
    return "\n".join(parts)


__all__ = ["AsyncpgClient", "NativeClient"]
