"""FastAPI application for the schema-reset MCP server.

The FastMCP HTTP app carries the tools; a plain FastAPI route provides the
health check. Both are combined into one ASGI application.
"""

from __future__ import annotations

import os
from pathlib import Path

from fastapi import FastAPI
from fastmcp import FastMCP

from ..client import SchemaResetter
from ..config import AppConfig, load_config
from ..guardrails import ensure_connection_complete
from ..logging_utils import configure_logging
from .tools import load_tools


def _config_path() -> Path:
    """Get the configuration file path from environment or default."""
    path = os.environ.get("SCHEMA_RESET_CONFIG", "config.example.yml")
    return Path(path)


def create_app(config: AppConfig) -> FastAPI:
    """Build the combined FastAPI/FastMCP application for a loaded config."""
    ensure_connection_complete(config.connection)
    resetter = SchemaResetter(config.connection)

    mcp_server = FastMCP(name="schema-reset")
    load_tools(mcp_server, resetter, config)
    mcp_app = mcp_server.http_app()

    app = FastAPI(
        title="Schema Reset MCP Server",
        version="0.1.0",
        lifespan=mcp_app.lifespan,
    )

    @app.get("/", include_in_schema=False)
    async def health_check() -> dict:
        """Health check endpoint."""
        return {
            "message": "Schema Reset MCP Server is running",
            "status": "healthy",
            "database": config.connection.database,
            "remote_reset_enabled": config.server.allow_remote_reset,
        }

    return FastAPI(
        title="Schema Reset MCP App",
        routes=[
            *mcp_app.routes,
            *app.routes,
        ],
        lifespan=mcp_app.lifespan,
    )


def create_combined_app(config_path: Path | None = None) -> FastAPI:
    """Uvicorn factory: load the config file and build the application."""
    config = load_config(config_path or _config_path())
    configure_logging(config.observability.log_level)
    return create_app(config)
