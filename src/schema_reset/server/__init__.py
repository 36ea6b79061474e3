"""MCP server entry point: ``schema-reset-server``."""

import argparse

import uvicorn


def main() -> None:
    """Start the MCP server using uvicorn.

    Configuration is read from the YAML file named by ``SCHEMA_RESET_CONFIG``.
    The server binds to 127.0.0.1 unless ``--host`` says otherwise.
    """
    parser = argparse.ArgumentParser(description="Start the schema-reset MCP server")
    parser.add_argument(
        "--host", default="127.0.0.1", help="Interface to bind (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--port", type=int, default=8000, help="Port to run the server on (default: 8000)"
    )
    args = parser.parse_args()

    uvicorn.run(
        "schema_reset.server.app:create_combined_app",
        factory=True,
        host=args.host,
        port=args.port,
    )
