from __future__ import annotations


class ConfigError(ValueError):
    """Configuration is missing or invalid."""


class GuardrailError(RuntimeError):
    """Request violates a safety check (identifier, confirmation, server policy)."""


class ResetError(RuntimeError):
    """Schema reset failed; the transaction was rolled back."""

    exit_code = 1

    def __init__(self, message: str, schema: str | None = None, table: str | None = None) -> None:
        super().__init__(message)
        self.schema = schema
        self.table = table


class DatabaseConnectionError(ResetError):
    """Host unreachable, authentication rejected or database missing."""

    exit_code = 3


class PrivilegeError(ResetError):
    """The role lacks a privilege needed for the reset."""

    exit_code = 4


class MetadataQueryError(ResetError):
    """Catalog introspection failed."""

    exit_code = 5


class DropError(ResetError):
    """A DROP TABLE statement failed for a reason other than the table being absent."""

    exit_code = 6
