from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import ConfigError

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 5432
DEFAULT_USER = "postgres"
DEFAULT_DATABASE = "test_db"
DEFAULT_SCHEMA = "public"

# Environment variable -> connection field, libpq names where they exist.
_ENV_CONNECTION_KEYS = {
    "PGHOST": "host",
    "PGPORT": "port",
    "PGUSER": "user",
    "PGPASSWORD": "password",
    "PGDATABASE": "database",
}
_ENV_SCHEMA_KEY = "SCHEMA_RESET_SCHEMA"


@dataclass
class ConnectionConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    user: str = DEFAULT_USER
    password: str = field(default="", repr=False)
    database: str = DEFAULT_DATABASE
    connect_timeout: int = 10

    def with_password(self, password: str) -> ConnectionConfig:
        return replace(self, password=password)


@dataclass
class ResetConfig:
    schema: str = DEFAULT_SCHEMA
    require_confirmation: bool = True


@dataclass
class ServerConfig:
    allow_remote_reset: bool = False


@dataclass
class ObservabilityConfig:
    log_level: str = "info"


@dataclass
class AppConfig:
    connection: ConnectionConfig
    reset: ResetConfig
    server: ServerConfig
    observability: ObservabilityConfig


def _resolve_env(value: Any, env: Mapping[str, str]) -> Any:
    if isinstance(value, str):
        if value.startswith("${") and value.endswith("}"):
            key = value[2:-1]
            if key not in env:
                raise ConfigError(f"Environment variable {key} is required but not set")
            return env[key]
        return value
    if isinstance(value, list):
        return [_resolve_env(v, env) for v in value]
    if isinstance(value, dict):
        return {k: _resolve_env(v, env) for k, v in value.items()}
    return value


def parse_env_line(line: str) -> tuple[str, str] | None:
    """Parse a single .env line into a key/value pair."""
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None

    if stripped.startswith("export "):
        stripped = stripped[len("export ") :].strip()

    if "=" not in stripped:
        return None

    key, value = stripped.split("=", 1)
    key = key.strip()
    value = value.strip()

    if not key:
        return None

    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        value = value[1:-1]

    return key, value


def load_env_file(path: str | Path) -> dict[str, str]:
    """Load a .env file into a dictionary of strings.

    The last value wins for duplicate keys.
    """
    env_path = Path(path)
    if not env_path.is_file():
        raise ConfigError(f"Env file not found: {env_path}")
    env: dict[str, str] = {}
    try:
        text = env_path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ConfigError(f"Env file is not valid UTF-8: {env_path}") from exc
    for line in text.splitlines():
        parsed = parse_env_line(line)
        if parsed is not None:
            key, value = parsed
            env[key] = value
    return env


def _parse_port(value: Any) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Port must be an integer, got {value!r}") from exc
    if not 0 < port < 65536:
        raise ConfigError(f"Port must be between 1 and 65535, got {port}")
    return port


def _parse_timeout(value: Any) -> int:
    try:
        timeout = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"connect_timeout must be an integer, got {value!r}") from exc
    if timeout <= 0:
        raise ConfigError("connect_timeout must be greater than 0")
    return timeout


def _text(raw: Mapping[str, Any], key: str, default: str) -> str:
    value = raw.get(key, default)
    # A bare `key:` in YAML is null, not the string "None".
    return "" if value is None else str(value)


def _section(raw: Mapping[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"Config section {name} must be a mapping")
    return dict(value)


def _parse_bool(value: Any, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in {"true", "yes", "1", "on"}:
        return True
    if isinstance(value, str) and value.lower() in {"false", "no", "0", "off"}:
        return False
    raise ConfigError(f"{field_name} must be a boolean, got {value!r}")


def _read_yaml(path: str | Path | None, env: Mapping[str, str]) -> dict[str, Any]:
    if path is None:
        return {}
    config_path = Path(path)
    if not config_path.is_file():
        raise ConfigError(f"Config file not found: {config_path}")
    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except (yaml.YAMLError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Could not parse config file {config_path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError("Config file must contain a mapping at the top level")
    return _resolve_env(raw, env)


def load_config(
    path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> AppConfig:
    """Build the application config.

    Later sources win: YAML file, then environment, then ``overrides``
    (typically CLI flags; ``None`` values are ignored). The password may be
    left empty here and supplied later by the caller.
    """
    env = os.environ if env is None else env
    resolved = _read_yaml(path, env)

    connection_raw = _section(resolved, "connection")
    reset_raw = _section(resolved, "reset")
    server_raw = _section(resolved, "server")
    observability_raw = _section(resolved, "observability")

    for env_key, field_name in _ENV_CONNECTION_KEYS.items():
        if env.get(env_key):
            connection_raw[field_name] = env[env_key]
    if env.get(_ENV_SCHEMA_KEY):
        reset_raw["schema"] = env[_ENV_SCHEMA_KEY]

    for key, value in (overrides or {}).items():
        if value is None:
            continue
        if key == "schema":
            reset_raw["schema"] = value
        elif key == "log_level":
            observability_raw = {**observability_raw, "log_level": value}
        else:
            connection_raw[key] = value

    connection = ConnectionConfig(
        host=_text(connection_raw, "host", DEFAULT_HOST),
        port=_parse_port(connection_raw.get("port", DEFAULT_PORT)),
        user=_text(connection_raw, "user", DEFAULT_USER),
        password=_text(connection_raw, "password", ""),
        database=_text(connection_raw, "database", DEFAULT_DATABASE),
        connect_timeout=_parse_timeout(connection_raw.get("connect_timeout", 10)),
    )
    if not connection.host or not connection.user or not connection.database:
        raise ConfigError("Connection host, user, and database are required")

    reset = ResetConfig(
        schema=_text(reset_raw, "schema", DEFAULT_SCHEMA),
        require_confirmation=_parse_bool(
            reset_raw.get("require_confirmation", True), "require_confirmation"
        ),
    )
    server = ServerConfig(
        allow_remote_reset=_parse_bool(
            server_raw.get("allow_remote_reset", False), "allow_remote_reset"
        ),
    )
    observability = ObservabilityConfig(
        log_level=_text(observability_raw, "log_level", "info") or "info",
    )

    return AppConfig(
        connection=connection,
        reset=reset,
        server=server,
        observability=observability,
    )
