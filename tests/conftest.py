from __future__ import annotations

from typing import Any

import psycopg2.errors
import pytest
from psycopg2 import sql

from schema_reset.client import (
    LIST_TABLES_SQL,
    RELAX_ENFORCEMENT_SQL,
    RESTORE_ENFORCEMENT_SQL,
)
from schema_reset.config import ConnectionConfig


class FakeDatabase:
    """In-memory stand-in for a PostgreSQL server with transactional DDL."""

    def __init__(self, schemas: dict[str, list[str]] | None = None) -> None:
        self.tables: dict[str, set[str]] = {
            name: set(tables) for name, tables in (schemas or {}).items()
        }
        # table -> tables removed along with it by DROP ... CASCADE
        self.cascades: dict[str, set[str]] = {}
        # table -> tables its foreign keys point at
        self.references: dict[str, set[str]] = {}
        self.fail_drop: dict[str, Exception] = {}
        self.fail_statement: dict[str, Exception] = {}
        self.connect_error: Exception | None = None
        self.statements: list[Any] = []
        self.connections: list[FakeConnection] = []

    def connect(self, **params: Any) -> FakeConnection:
        if self.connect_error is not None:
            raise self.connect_error
        connection = FakeConnection(self, params)
        self.connections.append(connection)
        return connection


class FakeConnection:
    def __init__(self, db: FakeDatabase, params: dict[str, Any]) -> None:
        self.db = db
        self.params = params
        self.closed = False
        self.committed = False
        self.rolled_back = False
        self.replication_role = "origin"
        self._pending: dict[str, set[str]] | None = None

    def working_tables(self) -> dict[str, set[str]]:
        if self._pending is None:
            self._pending = {name: set(t) for name, t in self.db.tables.items()}
        return self._pending

    def cursor(self) -> FakeCursor:
        return FakeCursor(self)

    def commit(self) -> None:
        if self._pending is not None:
            self.db.tables = self._pending
        self._pending = None
        self.committed = True

    def rollback(self) -> None:
        self._pending = None
        self.replication_role = "origin"
        self.rolled_back = True

    def close(self) -> None:
        self._pending = None
        self.closed = True


class FakeCursor:
    def __init__(self, connection: FakeConnection) -> None:
        self.connection = connection
        self._rows: list[tuple[str]] = []

    def __enter__(self) -> FakeCursor:
        return self

    def __exit__(self, *exc_info: Any) -> bool:
        return False

    def execute(self, statement: Any, params: Any = None) -> None:
        db = self.connection.db
        db.statements.append(statement)
        working = self.connection.working_tables()

        if isinstance(statement, sql.Composed):
            schema, table = [
                part.strings[0] for part in statement.seq if isinstance(part, sql.Identifier)
            ]
            if table in db.fail_drop:
                raise db.fail_drop[table]
            existing = working.setdefault(schema, set())
            cascade = any(
                isinstance(part, sql.SQL) and "CASCADE" in part.string
                for part in statement.seq
            )
            referencing = {
                other
                for other in existing
                if other != table and table in db.references.get(other, set())
            }
            if referencing and not cascade:
                raise psycopg2.errors.DependentObjectsStillExist(
                    f"cannot drop table {table} because other objects depend on it"
                )
            existing.discard(table)
            for dependent in db.cascades.get(table, set()):
                existing.discard(dependent)
            return

        if statement in db.fail_statement:
            raise db.fail_statement[statement]
        if statement == RELAX_ENFORCEMENT_SQL:
            self.connection.replication_role = "replica"
        elif statement == RESTORE_ENFORCEMENT_SQL:
            self.connection.replication_role = "origin"
        elif statement == LIST_TABLES_SQL:
            self._rows = [(name,) for name in sorted(working.get(params[0], set()))]
        else:
            raise AssertionError(f"Unexpected statement: {statement!r}")

    def fetchall(self) -> list[tuple[str]]:
        return self._rows


@pytest.fixture
def fake_db(monkeypatch: pytest.MonkeyPatch) -> FakeDatabase:
    db = FakeDatabase()
    monkeypatch.setattr("schema_reset.client.psycopg2.connect", db.connect)
    return db


@pytest.fixture
def connection_config() -> ConnectionConfig:
    return ConnectionConfig(
        host="db.internal",
        port=5432,
        user="postgres",
        password="s3cret-pw",
        database="test_db",
    )
