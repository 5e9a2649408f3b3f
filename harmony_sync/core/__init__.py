"""
Core module for harmony-sync.

Foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - logger: Logging system with multiple outputs
    - config: Configuration loading and validation (harmony_sync.core.config)
    - database: Thread-safe SQLite playlist store (harmony_sync.core.database)
    - progress: Rich progress bars (harmony_sync.core.progress)

config, database and progress depend on the matching and sync packages,
so they are imported from their modules rather than re-exported here.

Usage:
    from harmony_sync.core import HarmonyError, CatalogError, get_logger
    from harmony_sync.core.config import load_config
"""

from harmony_sync.core.exceptions import (
    CatalogError,
    ConfigError,
    DatabaseError,
    HarmonyError,
    ValidationError,
)
from harmony_sync.core.logger import (
    get_logger,
    log_match_failure,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    # Exceptions
    "HarmonyError",
    "ConfigError",
    "DatabaseError",
    "ValidationError",
    "CatalogError",
    # Logger
    "setup_logging",
    "get_logger",
    "log_match_failure",
    "shutdown_logging",
]
