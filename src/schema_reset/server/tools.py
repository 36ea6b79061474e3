"""MCP tools exposed by the schema-reset server.

``reset_schema`` irreversibly drops every table in a schema. It is refused
unless ``server.allow_remote_reset`` is enabled and the caller repeats the
schema name in ``confirm``.
"""

from __future__ import annotations

import asyncio
import threading
import uuid
from typing import Any

from ..client import SchemaResetter
from ..config import AppConfig
from ..guardrails import ensure_confirmed, ensure_remote_reset_allowed, sanitize_identifier


def _request_id(value: str | None = None) -> str:
    """Generate a unique request ID for tracing."""
    return value or str(uuid.uuid4())


def load_tools(mcp_server: Any, resetter: SchemaResetter, config: AppConfig) -> None:
    """Register the schema tools with the MCP server.

    Args:
        mcp_server: The FastMCP server instance to register tools with
        resetter: SchemaResetter bound to the configured database
        config: Application config supplying the default schema and reset policy
    """
    reset_lock = threading.Lock()

    def _locked_reset(schema: str, request_id: str) -> dict[str, Any]:
        with reset_lock:
            return resetter.reset(schema, request_id).as_dict()

    @mcp_server.tool()
    async def list_tables(
        schema: str | None = None, request_id: str | None = None
    ) -> dict[str, Any]:
        """List the tables in a schema of the configured database.

        Args:
            schema: Schema name; defaults to the configured schema
            request_id: Optional request ID for tracing

        Returns:
            dict: The schema name and its table names
        """
        rid = _request_id(request_id)
        target = sanitize_identifier(schema or config.reset.schema, "schema")
        tables = await asyncio.to_thread(resetter.list_tables, target, rid)
        return {"schema": target, "tables": tables}

    @mcp_server.tool()
    async def reset_schema(
        schema: str, confirm: str, request_id: str | None = None
    ) -> dict[str, Any]:
        """DESTRUCTIVE: drop every table in the schema, cascading to dependents.

        All tables and their data are permanently deleted in one transaction.
        On any failure nothing is dropped. Only call this when the user has
        explicitly asked to wipe the schema.

        Args:
            schema: Schema to wipe
            confirm: Must repeat the schema name exactly
            request_id: Optional request ID for tracing

        Returns:
            dict: The schema, the dropped table names and their count
        """
        ensure_remote_reset_allowed(config.server.allow_remote_reset)
        target = sanitize_identifier(schema, "schema")
        ensure_confirmed(target, confirm)
        rid = _request_id(request_id)
        return await asyncio.to_thread(_locked_reset, target, rid)
