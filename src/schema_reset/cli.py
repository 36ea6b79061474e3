"""Command line entry point: ``schema-reset``.

``schema-reset reset-schema`` drops EVERY table in the target schema. The data
is gone once the command reports success.
"""

from __future__ import annotations

import argparse
import getpass
import os
import sys
from typing import Mapping, Sequence

from .client import SchemaResetter
from .config import AppConfig, load_config, load_env_file
from .errors import ConfigError, GuardrailError, ResetError
from .guardrails import ensure_confirmed, sanitize_identifier
from .logging_utils import configure_logging

EXIT_ABORTED = 1
EXIT_CONFIG = 2


def _add_connection_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="YAML config file (default: $SCHEMA_RESET_CONFIG)")
    parser.add_argument("--env-file", help="Load variables such as PGPASSWORD from a .env file")
    parser.add_argument("--host", help="Database host (default: $PGHOST or 127.0.0.1)")
    parser.add_argument("--port", type=int, help="Database port (default: $PGPORT or 5432)")
    parser.add_argument("--user", help="Database user (default: $PGUSER or postgres)")
    parser.add_argument("--database", help="Database name (default: $PGDATABASE or test_db)")
    parser.add_argument("--schema", help="Target schema (default: public)")
    parser.add_argument("--log-level", help="Logging level (default: info)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="schema-reset",
        description="Drop all tables in a PostgreSQL schema in a single transaction.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    reset_parser = subparsers.add_parser(
        "reset-schema",
        help="Drop ALL tables in the schema (irreversible)",
        description=(
            "Irreversibly drop every table in the schema, cascading to dependent "
            "objects. The password is read from PGPASSWORD or prompted for."
        ),
    )
    _add_connection_arguments(reset_parser)
    reset_parser.add_argument(
        "--yes",
        action="store_true",
        help="Skip the interactive confirmation",
    )

    list_parser = subparsers.add_parser("list-tables", help="List the tables in the schema")
    _add_connection_arguments(list_parser)
    return parser


def _load(args: argparse.Namespace, environ: Mapping[str, str]) -> AppConfig:
    env = dict(environ)
    if args.env_file:
        env = {**load_env_file(args.env_file), **env}
    overrides = {
        "host": args.host,
        "port": args.port,
        "user": args.user,
        "database": args.database,
        "schema": args.schema,
        "log_level": args.log_level,
    }
    return load_config(args.config or env.get("SCHEMA_RESET_CONFIG"), env, overrides)


def _with_password(config: AppConfig) -> AppConfig:
    if config.connection.password:
        return config
    password = getpass.getpass(
        f"Enter PostgreSQL password for user {config.connection.user}: "
    )
    config.connection = config.connection.with_password(password)
    return config


def _confirm(resetter: SchemaResetter, config: AppConfig) -> None:
    schema = config.reset.schema
    tables = resetter.list_tables(schema)
    if not tables:
        return
    print(
        f"The following {len(tables)} tables in schema '{schema}' of database "
        f"'{config.connection.database}' will be DROPPED:"
    )
    for table in tables:
        print(f"  {table}")
    try:
        answer: str | None = input(f"Type '{schema}' to confirm: ")
    except EOFError:
        answer = None
    ensure_confirmed(schema, answer)


def _reset(args: argparse.Namespace, config: AppConfig) -> int:
    resetter = SchemaResetter(config.connection)
    if config.reset.require_confirmation and not args.yes:
        try:
            _confirm(resetter, config)
        except GuardrailError as exc:
            print(f"Aborted: {exc}", file=sys.stderr)
            return EXIT_ABORTED

    result = resetter.reset(config.reset.schema)
    print(
        f"All {result.table_count} tables in schema '{result.schema}' of database "
        f"'{config.connection.database}' have been dropped."
    )
    return 0


def _list(config: AppConfig) -> int:
    for table in SchemaResetter(config.connection).list_tables(config.reset.schema):
        print(table)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        try:
            config = _load(args, os.environ)
        finally:
            # Child processes must not inherit the password.
            os.environ.pop("PGPASSWORD", None)
        configure_logging(config.observability.log_level)
        sanitize_identifier(config.reset.schema, "schema")
        config = _with_password(config)
        if args.command == "reset-schema":
            return _reset(args, config)
        return _list(config)
    except (ConfigError, GuardrailError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_CONFIG
    except ResetError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code


if __name__ == "__main__":
    sys.exit(main())
