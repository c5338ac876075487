"""
Process bootstrap helpers for DJStore.

Callers (an API layer, the admin CLI, tests) use these to turn
environment configuration into a ready store:

    config = StoreConfig.from_env()
    setup_logging(config)
    store = await open_store(config)

Configuration is entirely via environment variables.
See config.py for all available settings.
"""

from __future__ import annotations

import logging

import json_log_formatter

from .config import StoreConfig
from .errors import StoreNotFoundError
from .store import DjStore

logger = logging.getLogger(__name__)


def setup_logging(config: StoreConfig) -> None:
    """Configure logging based on configuration.

    Args:
        config: Store configuration
    """
    level = getattr(logging, config.observability.log_level.upper(), logging.INFO)

    if config.observability.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]


async def open_store(config: StoreConfig | None = None, create: bool = True) -> DjStore:
    """Build a store, initializing its database unless create is False.

    Args:
        config: Optional store configuration (loaded from env if not provided)
        create: Create the database and schema if missing. With False the
            store must already exist; nothing is written to disk.

    Returns:
        Ready DjStore

    Raises:
        StoreNotFoundError: If create=False and the database is missing
    """
    config = config or StoreConfig.from_env()
    config.log_config()

    store = DjStore.from_config(config)
    if create:
        await store.initialize()
    elif not store.engine.exists():
        raise StoreNotFoundError(
            f"Store database not found: {store.engine.db_path}",
            db_path=str(store.engine.db_path),
        )

    logger.info("DJStore ready", extra={"db_path": str(store.engine.db_path)})
    return store
