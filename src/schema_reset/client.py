"""Drop every table in a PostgreSQL schema inside one transaction.

WARNING: ``SchemaResetter.reset`` irreversibly deletes all tables, and the data
they hold, in the target schema. There is no backup and no undo once the
transaction commits.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from typing import Any, Iterator

import psycopg2
import psycopg2.errors
from psycopg2 import sql

from .config import DEFAULT_SCHEMA, ConnectionConfig
from .errors import (
    DatabaseConnectionError,
    DropError,
    MetadataQueryError,
    PrivilegeError,
    ResetError,
)
from .guardrails import ensure_connection_complete, sanitize_identifier
from .logging_utils import connection_extra, log_extra
from .models import ResetResult

LIST_TABLES_SQL = (
    "SELECT tablename FROM pg_catalog.pg_tables "
    "WHERE schemaname = %s ORDER BY tablename"
)
RELAX_ENFORCEMENT_SQL = "SET session_replication_role = replica"
RESTORE_ENFORCEMENT_SQL = "SET session_replication_role = DEFAULT"


def drop_table_statement(schema: str, table: str) -> sql.Composed:
    return sql.SQL("DROP TABLE IF EXISTS {}.{} CASCADE").format(
        sql.Identifier(schema), sql.Identifier(table)
    )


def _error_message(exc: psycopg2.Error) -> str:
    return (getattr(exc, "pgerror", None) or str(exc)).strip()


def _translate(
    exc: psycopg2.Error,
    fallback: type[ResetError],
    message: str,
    schema: str,
    table: str | None = None,
) -> ResetError:
    if isinstance(exc, psycopg2.errors.InsufficientPrivilege):
        return PrivilegeError(
            f"{message}: permission denied ({_error_message(exc)})", schema, table
        )
    return fallback(f"{message}: {_error_message(exc)}", schema, table)


@contextmanager
def relaxed_enforcement(cursor: Any, schema: str) -> Iterator[None]:
    """Suspend foreign-key and trigger enforcement for the enclosed block.

    Enforcement is restored explicitly on normal exit. On an error exit the
    caller rolls back the transaction, which also reverts the SET.
    """
    try:
        cursor.execute(RELAX_ENFORCEMENT_SQL)
    except psycopg2.Error as exc:
        raise _translate(
            exc, ResetError, "Could not disable referential integrity", schema
        ) from exc
    yield
    try:
        cursor.execute(RESTORE_ENFORCEMENT_SQL)
    except psycopg2.Error as exc:
        raise _translate(
            exc, ResetError, "Could not restore referential integrity", schema
        ) from exc


class SchemaResetter:
    def __init__(self, connection: ConnectionConfig) -> None:
        self._connection = connection
        self._log = logging.getLogger(__name__)

    def list_tables(
        self, schema: str = DEFAULT_SCHEMA, request_id: str | None = None
    ) -> list[str]:
        safe_schema = sanitize_identifier(schema, "schema")
        ensure_connection_complete(self._connection)
        connection = self._connect(safe_schema, request_id)
        try:
            with connection.cursor() as cursor:
                tables = self._fetch_tables(cursor, safe_schema, request_id)
            connection.rollback()
        finally:
            connection.close()
        return tables

    def reset(
        self, schema: str = DEFAULT_SCHEMA, request_id: str | None = None
    ) -> ResetResult:
        """Drop every table in ``schema`` in a single transaction.

        Parameters:
        schema (str): Target schema, validated as a plain identifier
        request_id (str | None): Request tracking ID for log correlation

        Returns:
        ResetResult: The schema and the tables that were dropped

        Raises:
        GuardrailError: If the schema name is not a valid identifier
        ConfigError: If the connection descriptor is incomplete
        ResetError: A subclass describing the failure; nothing was dropped
        """
        safe_schema = sanitize_identifier(schema, "schema")
        ensure_connection_complete(self._connection)
        request_id = request_id or str(uuid.uuid4())

        connection = self._connect(safe_schema, request_id)
        try:
            try:
                with connection.cursor() as cursor:
                    with relaxed_enforcement(cursor, safe_schema):
                        tables = self._fetch_tables(cursor, safe_schema, request_id)
                        for table in tables:
                            self._drop_table(cursor, safe_schema, table, request_id)
                connection.commit()
            except psycopg2.Error as exc:
                self._rollback(connection, request_id)
                self._log.warning(
                    "Schema reset commit failed, rolled back",
                    extra=log_extra(request_id=request_id, schema=safe_schema),
                )
                raise _translate(
                    exc, ResetError, f"Could not commit reset of schema {safe_schema}", safe_schema
                ) from exc
            except ResetError as exc:
                self._rollback(connection, request_id)
                self._log.warning(
                    "Schema reset failed, rolled back",
                    extra=log_extra(
                        request_id=request_id,
                        schema=safe_schema,
                        table=exc.table,
                        error_kind=type(exc).__name__,
                        error_message=str(exc),
                    ),
                )
                raise
        finally:
            connection.close()

        self._log.info(
            "Schema reset committed",
            extra=log_extra(
                request_id=request_id, schema=safe_schema, table_count=len(tables)
            ),
        )
        return ResetResult(schema=safe_schema, dropped_tables=tables)

    def _connect(self, schema: str, request_id: str | None) -> Any:
        cfg = self._connection
        try:
            connection = psycopg2.connect(
                host=cfg.host,
                port=cfg.port,
                user=cfg.user,
                password=cfg.password,
                dbname=cfg.database,
                connect_timeout=cfg.connect_timeout,
                application_name="schema-reset",
            )
        except psycopg2.Error as exc:
            self._log.warning(
                "Database connection failed",
                extra=connection_extra(
                    cfg, request_id=request_id, error_message=_error_message(exc)
                ),
            )
            raise DatabaseConnectionError(
                f"Could not connect to {cfg.host}:{cfg.port}/{cfg.database} "
                f"as {cfg.user}: {_error_message(exc)}",
                schema,
            ) from exc
        self._log.info(
            "Connected", extra=connection_extra(cfg, request_id=request_id)
        )
        return connection

    def _rollback(self, connection: Any, request_id: str | None) -> None:
        # Closing a broken connection discards the open transaction server-side.
        try:
            connection.rollback()
        except psycopg2.Error as exc:
            self._log.warning(
                "Rollback failed, transaction discarded on close",
                extra=log_extra(request_id=request_id, error_message=_error_message(exc)),
            )

    def _fetch_tables(self, cursor: Any, schema: str, request_id: str | None) -> list[str]:
        try:
            cursor.execute(LIST_TABLES_SQL, (schema,))
            rows = cursor.fetchall()
        except psycopg2.Error as exc:
            raise _translate(
                exc, MetadataQueryError, f"Could not list tables in schema {schema}", schema
            ) from exc
        tables = [row[0] for row in rows]
        self._log.info(
            "Tables discovered",
            extra=log_extra(request_id=request_id, schema=schema, table_count=len(tables)),
        )
        return tables

    def _drop_table(self, cursor: Any, schema: str, table: str, request_id: str | None) -> None:
        try:
            cursor.execute(drop_table_statement(schema, table))
        except psycopg2.Error as exc:
            raise _translate(
                exc, DropError, f"Could not drop table {schema}.{table}", schema, table
            ) from exc
        self._log.debug(
            "Table dropped", extra=log_extra(request_id=request_id, schema=schema, table=table)
        )
