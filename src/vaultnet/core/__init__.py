"""vaultnet core - configuration, defaults and the error taxonomy."""

from .config import ConfigProvider, VaultSettings, VaultTimeouts, parse_strategy
from .exceptions import (
    AllNodesUnreachableError,
    BlobNotFoundError,
    ConfigError,
    ConsistencyViolationError,
    ContentTypeRejectedError,
    IntegrityViolationError,
    NodeRequestError,
    NodeTimeoutError,
    NoNodesAvailableError,
    RetrievalFailedError,
    UploadFailedError,
    VaultError,
)

__all__ = [
    # Config
    "ConfigProvider",
    "VaultSettings",
    "VaultTimeouts",
    "parse_strategy",
    # Exceptions
    "VaultError",
    "ConfigError",
    "NoNodesAvailableError",
    "NodeRequestError",
    "NodeTimeoutError",
    "BlobNotFoundError",
    "RetrievalFailedError",
    "AllNodesUnreachableError",
    "IntegrityViolationError",
    "ConsistencyViolationError",
    "UploadFailedError",
    "ContentTypeRejectedError",
]
