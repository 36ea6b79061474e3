"""Drop every table in a PostgreSQL schema in a single transaction."""

# Submodules are imported explicitly by callers:
# from schema_reset.client import SchemaResetter
# from schema_reset.config import load_config
# from schema_reset.cli import main

__all__ = [
    "cli",
    "client",
    "config",
    "server",
]
