from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .config import ConnectionConfig


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def log_extra(**kwargs: Any) -> dict[str, Any]:
    return {k: v for k, v in kwargs.items() if v is not None}


def connection_extra(connection: ConnectionConfig, **kwargs: Any) -> dict[str, Any]:
    """Log fields describing a connection target. The password is never included."""
    return log_extra(
        host=connection.host,
        port=connection.port,
        database=connection.database,
        db_user=connection.user,
        **kwargs,
    )
