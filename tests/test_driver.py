"""Tests for the asyncpg-backed native client."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import asyncpg
import pytest

from pgthin.config import DatabaseConfig
from pgthin.driver import AsyncpgClient, NativeClient
from pgthin.errors import ConnectionFailedError, DatabaseConnectionError, NotConnectedError


@dataclass
class _Attribute:
    name: str


class _FakeStatement:
    def __init__(self, columns: tuple[str, ...], rows: list[dict[str, object]], status: str) -> None:
        self._columns = columns
        self._rows = rows
        self._status = status
        self.fetches = 0

    def get_attributes(self) -> tuple[_Attribute, ...]:
        return tuple(_Attribute(name) for name in self._columns)

    async def fetch(self) -> list[dict[str, object]]:
        self.fetches += 1
        return self._rows

    def get_statusmsg(self) -> str:
        return self._status


class _FakeConnection:
    def __init__(
        self,
        *,
        columns: tuple[str, ...] = (),
        rows: list[dict[str, object]] | None = None,
        status: str = "INSERT 0 1",
        error: Exception | None = None,
        prepare_error: Exception | None = None,
    ) -> None:
        self.columns = columns
        self.rows = rows or []
        self.status = status
        self.error = error
        self.prepare_error = prepare_error
        self.prepared: list[str] = []
        self.statements: list[_FakeStatement] = []
        self.executed: list[str] = []
        self.closed = False

    async def prepare(self, sql: str) -> _FakeStatement:
        self.prepared.append(sql)
        if self.prepare_error is not None:
            raise self.prepare_error
        if self.error is not None:
            raise self.error
        statement = _FakeStatement(self.columns, self.rows, self.status)
        self.statements.append(statement)
        return statement

    async def execute(self, sql: str) -> str:
        self.executed.append(sql)
        if self.error is not None:
            raise self.error
        return self.status

    async def close(self) -> None:
        self.closed = True

    def is_closed(self) -> bool:
        return self.closed


def _client_for(monkeypatch: pytest.MonkeyPatch, connection: _FakeConnection) -> tuple[AsyncpgClient, list[dict[str, Any]]]:
    calls: list[dict[str, Any]] = []

    async def _connect(**kwargs: Any) -> _FakeConnection:
        calls.append(kwargs)
        return connection

    monkeypatch.setattr("pgthin.driver.asyncpg.connect", _connect)
    return AsyncpgClient(connect_timeout=2.0), calls


def test_client_satisfies_protocol(monkeypatch: pytest.MonkeyPatch) -> None:
    client, _ = _client_for(monkeypatch, _FakeConnection())
    try:
        assert isinstance(client, NativeClient)
    finally:
        client.shutdown()


def test_open_passes_config_kwargs(monkeypatch: pytest.MonkeyPatch) -> None:
    client, calls = _client_for(monkeypatch, _FakeConnection())
    config = DatabaseConfig(dbname="test", hostname="localhost", user="postgres", options="-c search_path=app")
    try:
        client.open(config)

        assert client.is_open() is True
        assert calls == [
            {
                "database": "test",
                "host": "localhost",
                "user": "postgres",
                "server_settings": {"search_path": "app"},
                "timeout": 2.0,
            }
        ]
    finally:
        client.shutdown()


def test_open_failure_raises_connection_failed(monkeypatch: pytest.MonkeyPatch) -> None:
    async def _broken_connect(**kwargs: Any) -> None:
        raise OSError("connection refused")

    monkeypatch.setattr("pgthin.driver.asyncpg.connect", _broken_connect)
    client = AsyncpgClient()
    try:
        with pytest.raises(ConnectionFailedError, match="connection refused"):
            client.open(DatabaseConfig(dbname="test"))
        assert client.is_open() is False
    finally:
        client.shutdown()


def test_select_returns_columns_and_rows(monkeypatch: pytest.MonkeyPatch) -> None:
    connection = _FakeConnection(
        columns=("name", "age"),
        rows=[{"name": "Bob 1", "age": 1}, {"name": "Bob 2", "age": 2}],
        status="SELECT 2",
    )
    client, _ = _client_for(monkeypatch, connection)
    try:
        client.open(DatabaseConfig(dbname="test"))
        client.send_query("SELECT * FROM test;")
        result = client.get_result()

        assert result.sqlstate == ""
        assert result.columns == ("name", "age")
        assert result.rows == (("Bob 1", 1), ("Bob 2", 2))
        assert result.status == "SELECT 2"
        assert connection.prepared == ["SELECT * FROM test;"]
        assert client.is_busy() is False
    finally:
        client.shutdown()


def test_empty_select_keeps_columns(monkeypatch: pytest.MonkeyPatch) -> None:
    client, _ = _client_for(monkeypatch, _FakeConnection(columns=("name",)))
    try:
        client.open(DatabaseConfig(dbname="test"))
        client.send_query("SELECT name FROM test WHERE false")
        result = client.get_result()

        assert result.columns == ("name",)
        assert result.rows == ()
    finally:
        client.shutdown()


def test_commands_run_as_prepared_statements(monkeypatch: pytest.MonkeyPatch) -> None:
    connection = _FakeConnection(status="INSERT 0 1")
    client, _ = _client_for(monkeypatch, connection)
    try:
        client.open(DatabaseConfig(dbname="test"))
        client.send_query("INSERT INTO test VALUES ('Bob', 1);")
        result = client.get_result()

        assert result.status == "INSERT 0 1"
        assert result.columns == ()
        assert result.rows == ()
        assert connection.prepared == ["INSERT INTO test VALUES ('Bob', 1);"]
        assert connection.statements[0].fetches == 1
        assert connection.executed == []
    finally:
        client.shutdown()


@pytest.mark.parametrize(
    "statement",
    [
        "EXPLAIN SELECT * FROM test",
        "(SELECT name FROM test)",
        "/* listing */ SELECT name FROM test",
        "-- listing\nSELECT name FROM test",
        "INSERT INTO test VALUES ('Bob', 1) RETURNING name",
    ],
)
def test_row_returning_statements_keep_rows(monkeypatch: pytest.MonkeyPatch, statement: str) -> None:
    connection = _FakeConnection(columns=("name",), rows=[{"name": "Bob"}], status="SELECT 1")
    client, _ = _client_for(monkeypatch, connection)
    try:
        client.open(DatabaseConfig(dbname="test"))
        client.send_query(statement)
        result = client.get_result()

        assert result.columns == ("name",)
        assert result.rows == (("Bob",),)
        assert connection.executed == []
    finally:
        client.shutdown()


def test_multiple_statements_fall_back_to_execute(monkeypatch: pytest.MonkeyPatch) -> None:
    error = asyncpg.exceptions.PostgresSyntaxError("cannot insert multiple commands into a prepared statement")
    connection = _FakeConnection(status="INSERT 0 1", prepare_error=error)
    client, _ = _client_for(monkeypatch, connection)
    sql = "DELETE FROM test; INSERT INTO test VALUES ('Bob', 1);"
    try:
        client.open(DatabaseConfig(dbname="test"))
        client.send_query(sql)
        result = client.get_result()

        assert result.sqlstate == ""
        assert result.status == "INSERT 0 1"
        assert connection.executed == [sql]
    finally:
        client.shutdown()


def test_other_syntax_errors_become_failed_results(monkeypatch: pytest.MonkeyPatch) -> None:
    error = asyncpg.exceptions.PostgresSyntaxError('syntax error at or near "BAD"')
    connection = _FakeConnection(prepare_error=error)
    client, _ = _client_for(monkeypatch, connection)
    try:
        client.open(DatabaseConfig(dbname="test"))
        client.send_query("BAD SQL")
        result = client.get_result()

        assert result.sqlstate == "42601"
        assert result.error is error
        assert connection.executed == []
    finally:
        client.shutdown()


def test_server_errors_become_failed_results(monkeypatch: pytest.MonkeyPatch) -> None:
    error = asyncpg.exceptions.UniqueViolationError("duplicate key value violates unique constraint")
    client, _ = _client_for(monkeypatch, _FakeConnection(error=error))
    try:
        client.open(DatabaseConfig(dbname="test"))
        client.send_query("INSERT INTO test VALUES ('Bob', 1);")
        result = client.get_result()

        assert result.sqlstate == "23505"
        assert result.error is error
        assert result.error_message is not None
        assert "duplicate key value" in result.error_message
    finally:
        client.shutdown()


def test_interface_errors_are_raised(monkeypatch: pytest.MonkeyPatch) -> None:
    error = asyncpg.InterfaceError("another operation is in progress")
    client, _ = _client_for(monkeypatch, _FakeConnection(error=error))
    try:
        client.open(DatabaseConfig(dbname="test"))
        client.send_query("INSERT INTO test VALUES ('Bob', 1);")
        with pytest.raises(DatabaseConnectionError, match="another operation"):
            client.get_result()
    finally:
        client.shutdown()


def test_send_requires_open_connection(monkeypatch: pytest.MonkeyPatch) -> None:
    client, _ = _client_for(monkeypatch, _FakeConnection())
    try:
        with pytest.raises(NotConnectedError):
            client.send_query("SELECT 1")
        with pytest.raises(DatabaseConnectionError):
            client.get_result()
    finally:
        client.shutdown()


def test_close_is_idempotent(monkeypatch: pytest.MonkeyPatch) -> None:
    connection = _FakeConnection()
    client, _ = _client_for(monkeypatch, connection)
    try:
        client.open(DatabaseConfig(dbname="test"))
        client.close()
        client.close()

        assert connection.closed is True
        assert client.is_open() is False
    finally:
        client.shutdown()
