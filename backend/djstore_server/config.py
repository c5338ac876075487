"""
Configuration management for DJStore.

All configuration is done via environment variables.
This module provides typed configuration classes with validation.

Invariants:
    - All settings have sensible defaults for local development
    - Production deployments MUST set an explicit DJSTORE_DATA_DIR

How to change safely:
    - Add new settings with defaults that maintain backward compatibility
    - Never change DJSTORE_DB_NAME on an existing deployment; the counter
      and every collection live in that one file
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

LOG_FORMATS = ("json", "text")


@dataclass(frozen=True)
class StorageConfig:
    """Local storage configuration.

    Attributes:
        data_dir: Directory for the SQLite database
        db_name: SQLite file name inside data_dir
        wal_mode: SQLite WAL mode enabled
        busy_timeout_ms: SQLite busy timeout in milliseconds
        cache_size_pages: SQLite cache size in pages (negative = KB)
    """

    data_dir: str = "./data"
    db_name: str = "djstore.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000
    cache_size_pages: int = -64000  # 64MB

    @classmethod
    def from_env(cls) -> StorageConfig:
        """Load configuration from environment variables."""
        return cls(
            data_dir=os.getenv("DJSTORE_DATA_DIR", "./data"),
            db_name=os.getenv("DJSTORE_DB_NAME", "djstore.db"),
            wal_mode=os.getenv("SQLITE_WAL_MODE", "true").lower() == "true",
            busy_timeout_ms=int(os.getenv("SQLITE_BUSY_TIMEOUT_MS", "5000")),
            cache_size_pages=int(os.getenv("SQLITE_CACHE_SIZE", "-64000")),
        )


@dataclass(frozen=True)
class PaginationConfig:
    """Paging limits for list queries.

    Attributes:
        default_per_page: Page size used when a caller passes none
        max_per_page: Upper bound applied to caller-supplied page sizes
    """

    default_per_page: int = 10
    max_per_page: int = 100

    @classmethod
    def from_env(cls) -> PaginationConfig:
        """Load configuration from environment variables."""
        return cls(
            default_per_page=int(os.getenv("DJSTORE_DEFAULT_PER_PAGE", "10")),
            max_per_page=int(os.getenv("DJSTORE_MAX_PER_PAGE", "100")),
        )


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "json"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "json"),
        )


@dataclass
class StoreConfig:
    """Complete store configuration.

    Attributes:
        storage: Local storage configuration
        pagination: Paging limits
        observability: Logging configuration
    """

    storage: StorageConfig = field(default_factory=StorageConfig)
    pagination: PaginationConfig = field(default_factory=PaginationConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> StoreConfig:
        """Load complete configuration from environment variables.

        Raises:
            ValueError: If configuration is invalid.
        """
        config = cls(
            storage=StorageConfig.from_env(),
            pagination=PaginationConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )

        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if not self.storage.db_name:
            raise ValueError("DJSTORE_DB_NAME must not be empty")

        if self.pagination.default_per_page <= 0:
            raise ValueError("DJSTORE_DEFAULT_PER_PAGE must be positive")
        if self.pagination.max_per_page <= 0:
            raise ValueError("DJSTORE_MAX_PER_PAGE must be positive")
        if self.pagination.default_per_page > self.pagination.max_per_page:
            raise ValueError("DJSTORE_DEFAULT_PER_PAGE must not exceed DJSTORE_MAX_PER_PAGE")

        if self.observability.log_format not in LOG_FORMATS:
            raise ValueError(
                f"Invalid LOG_FORMAT '{self.observability.log_format}'. "
                f"Must be one of: {', '.join(LOG_FORMATS)}"
            )

        if not os.path.exists(self.storage.data_dir):
            logger.warning(
                f"Data directory does not exist: {self.storage.data_dir}. "
                "It will be created on first write."
            )

    def log_config(self) -> None:
        """Log configuration."""
        logger.info(
            "Store configuration loaded",
            extra={
                "data_dir": self.storage.data_dir,
                "db_name": self.storage.db_name,
                "wal_mode": self.storage.wal_mode,
                "default_per_page": self.pagination.default_per_page,
                "max_per_page": self.pagination.max_per_page,
                "log_level": self.observability.log_level,
            },
        )
