"""Storage backends for planboard."""

from pathlib import Path
from typing import Optional

from planboard.config import Config
from planboard.logging_config import get_logger
from planboard.storage.base import Collection, PlannerStore
from planboard.storage.document_store import DocumentStore
from planboard.storage.local_store import LocalStore

logger = get_logger(__name__)

__all__ = ["Collection", "PlannerStore", "DocumentStore", "LocalStore", "create_store"]


def local_store_url(path: str) -> str:
    """SQLAlchemy URL for a local store file path."""
    return f"sqlite+aiosqlite:///{Path(path).expanduser()}"


def create_store(config: Optional[Config] = None) -> PlannerStore:
    """
    Build the storage backend selected by configuration.

    The store is returned uninitialized; call ``initialize()`` (or use it as
    an async context manager) before touching its collections.

    Args:
        config: Configuration to read; defaults to Config()

    Returns:
        DocumentStore or LocalStore

    Raises:
        ValueError: If the configured backend is unknown
    """
    config = config or Config()
    storage_config = config.get_storage_config()
    backend = storage_config['backend']

    if backend == "document":
        logger.info("Using document store backend")
        return DocumentStore(storage_config['database_url'])
    if backend == "local":
        logger.info(f"Using local store backend at {storage_config['local_path']}")
        return LocalStore(local_store_url(storage_config['local_path']))

    raise ValueError(f"Unknown storage backend: '{backend}' (expected 'document' or 'local')")
