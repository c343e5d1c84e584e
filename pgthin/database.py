"""Connection management and query dispatch."""

from __future__ import annotations

import logging
import time
from types import TracebackType
from typing import Callable, Mapping

from .config import DatabaseConfig
from .driver import AsyncpgClient, NativeClient
from .errors import NO_DATA, SUCCESS, ConnectionTimeoutError, NotConnectedError, error_for
from .models import RawResult
from .records import RecordTypeRegistry
from .results import ResultSet
from .template import substitute

LOG = logging.getLogger(__name__)

DEFAULT_RETRY_ATTEMPTS = 5
DEFAULT_RETRY_DELAY = 1.0


class Database:
    """A single connection to one database.

    The connection is not opened on construction; call :meth:`connect` (or use
    the object as a context manager) before issuing queries. Use one instance
    per database and per thread of work: the busy check in :meth:`query` only
    guards against overlapping queries on this instance's connection.
    """

    def __init__(
        self,
        config: DatabaseConfig | Mapping[str, object],
        *,
        client: NativeClient | None = None,
        record_types: RecordTypeRegistry | None = None,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if retry_attempts < 1:
            raise ValueError("retry_attempts must be at least 1")
        self._config = config if isinstance(config, DatabaseConfig) else DatabaseConfig.from_mapping(config)
        self._client = client
        self._owns_client = client is None
        self._record_types = record_types
        self._retry_attempts = retry_attempts
        self._retry_delay = retry_delay
        self._sleep = sleep

    @property
    def config(self) -> DatabaseConfig:
        return self._config

    @property
    def descriptor(self) -> str:
        """Connection string built from the configured fields."""

        return self._config.descriptor()

    @property
    def connection(self) -> NativeClient | None:
        """The open native client, for operations this wrapper does not cover."""

        if self.is_connected:
            return self._client
        return None

    @property
    def is_connected(self) -> bool:
        return self._client is not None and self._client.is_open()

    def connect(self) -> NativeClient:
        """Open the connection and return the native client."""

        client = self._client
        if client is None:
            client = self._client = AsyncpgClient()
        if client.is_open():
            return client
        LOG.info(
            "Connecting to database",
            extra={"dbname": self._config.dbname, "host": self._config.hostname},
        )
        try:
            client.open(self._config)
        except Exception:
            LOG.warning("Connection failed", extra={"dbname": self._config.dbname})
            raise
        return client

    def disconnect(self) -> None:
        """Close the connection if one is open.

        A client created by :meth:`connect` is shut down along with its
        background thread, and the next :meth:`connect` starts a new one.
        """

        client = self._client
        if client is None:
            return
        connected = client.is_open()
        if self._owns_client and isinstance(client, AsyncpgClient):
            self._client = None
            client.shutdown()
        elif connected:
            client.close()
        if connected:
            LOG.info("Disconnected from database", extra={"dbname": self._config.dbname})

    def query(
        self,
        template: str,
        values: Mapping[str, object] | None = None,
        *,
        return_raw: bool = False,
    ) -> ResultSet | RawResult | None:
        """Run a raw SQL statement or a query template.

        ``values`` fills the template's ``$name`` placeholders. Strings are
        escaped but not quoted, so quote string placeholders in the template::

            db.query("SELECT * FROM $table WHERE name = '$name';",
                     {"table": "people", "name": "O'Brien"})

        Returns a :class:`ResultSet`, the raw driver result when
        ``return_raw`` is set, or ``None`` when the server reports no data.
        Failed statements raise the :class:`~pgthin.errors.DatabaseError`
        subclass matching their SQLSTATE.
        """

        client = self._client
        if client is None or not client.is_open():
            raise NotConnectedError("Must be connected to a database before querying.")
        sql = substitute(template, values) if values is not None else template
        self._dispatch(client, sql)
        result = client.get_result()
        return self._handle_result(sql, result, return_raw=return_raw)

    def __enter__(self) -> Database:
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.disconnect()

    def __del__(self) -> None:  # pragma: no cover - best effort cleanup
        try:
            self.disconnect()
        except Exception:
            pass

    def _dispatch(self, client: NativeClient, sql: str) -> None:
        for attempt in range(1, self._retry_attempts + 1):
            if not client.is_busy():
                LOG.debug("Sending query", extra={"query": sql, "attempt": attempt})
                client.send_query(sql)
                return
            LOG.debug("Connection busy", extra={"attempt": attempt})
            if attempt < self._retry_attempts:
                self._sleep(self._retry_delay)
        raise ConnectionTimeoutError("Connection timed out")

    def _handle_result(self, sql: str, result: RawResult, *, return_raw: bool) -> ResultSet | RawResult | None:
        status = result.sqlstate
        if status in ("", SUCCESS):
            if return_raw:
                return result
            return ResultSet(result, registry=self._record_types)
        if status == NO_DATA:
            return None
        error = error_for(status, sql, result)
        LOG.warning(
            "Query failed",
            extra={"sqlstate": status, "error": type(error).__name__, "detail": result.error_message},
        )
        raise error


__all__ = ["DEFAULT_RETRY_ATTEMPTS", "DEFAULT_RETRY_DELAY", "Database"]
