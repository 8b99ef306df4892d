"""Remote storage client entry point and lifecycle management."""
from typing import Callable, Optional

import httpx

from core.logging_config import get_logger
from domain.offload.credentials import StorageCredentials
from .client import BunnyStorageClient
from .exceptions import ConfigurationError, StorageError
from .urls import UrlCodec

logger = get_logger(__name__)

# Global storage client instance
_storage_client: Optional[BunnyStorageClient] = None


async def init_storage_client(
    credentials_provider: Callable[[], StorageCredentials],
    *,
    user_agent: str = "MediaOffload/1.0",
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> BunnyStorageClient:
    """Initialize the process-wide storage client."""
    global _storage_client

    if _storage_client is not None:
        logger.warning("Storage client already initialized")
        return _storage_client

    _storage_client = BunnyStorageClient(
        credentials_provider, user_agent=user_agent, transport=transport
    )
    credentials = credentials_provider()
    logger.info(
        "Storage client initialized",
        storage_zone=credentials.storage_zone,
        configured=credentials.is_well_formed(),
    )
    return _storage_client


def get_storage_client() -> Optional[BunnyStorageClient]:
    """Get storage client instance, or None if not initialized."""
    return _storage_client


async def shutdown_storage_client() -> None:
    """Close the underlying HTTP connection pool."""
    global _storage_client

    if _storage_client is None:
        return

    try:
        await _storage_client.aclose()
        logger.info("Storage client shutdown")
    finally:
        _storage_client = None


__all__ = [
    # Lifecycle
    "init_storage_client",
    "get_storage_client",
    "shutdown_storage_client",
    # Client
    "BunnyStorageClient",
    "UrlCodec",
    # Exceptions
    "StorageError",
    "ConfigurationError",
]
