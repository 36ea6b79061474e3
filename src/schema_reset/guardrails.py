from __future__ import annotations

import re

from .config import ConnectionConfig
from .errors import ConfigError, GuardrailError

_IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_$]*")
# PostgreSQL truncates identifiers longer than NAMEDATALEN - 1 bytes.
_MAX_IDENTIFIER_LENGTH = 63


def sanitize_identifier(identifier: str, field_name: str) -> str:
    if not identifier or len(identifier) > _MAX_IDENTIFIER_LENGTH:
        raise GuardrailError(f"Invalid identifier for {field_name}")
    if not _IDENTIFIER_RE.fullmatch(identifier):
        raise GuardrailError(f"Invalid identifier for {field_name}")
    return identifier


def ensure_connection_complete(connection: ConnectionConfig) -> None:
    missing = [
        name
        for name in ("host", "user", "password", "database")
        if not getattr(connection, name)
    ]
    if missing:
        raise ConfigError(f"Connection is missing required fields: {', '.join(missing)}")


def ensure_confirmed(schema: str, confirmation: str | None) -> None:
    """Require the caller to repeat the schema name before a destructive reset."""
    if confirmation is None or confirmation.strip() != schema:
        raise GuardrailError(
            f"Confirmation does not match schema '{schema}'; nothing was dropped"
        )


def ensure_remote_reset_allowed(allowed: bool) -> None:
    if not allowed:
        raise GuardrailError("Remote schema reset is disabled by server.allow_remote_reset")
