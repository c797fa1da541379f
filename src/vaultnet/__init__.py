"""vaultnet - verified storage access for untrusted vault nodes.

vaultnet provides:
- Content addressing (SHA-256 CIDs) checked on every read
- Ordered node selection with content-type preferences
- Sequential, signed uploads with per-node fallback
- Raced, primary-only and cross-verified reads
- Node health probes and ranking
"""

__version__ = "0.3.0"

from .core import (
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
    VaultSettings,
    VaultTimeouts,
)
from .network import Ed25519Signer, StaticRegistry, VaultClient, create_vault_client
from .storage import (
    AuthorizationType,
    ContentType,
    RetrievalStrategy,
    VaultNode,
    digest,
    verify,
)

__all__ = [
    "__version__",
    "VaultClient",
    "create_vault_client",
    "VaultSettings",
    "VaultTimeouts",
    "StaticRegistry",
    "Ed25519Signer",
    "AuthorizationType",
    "ContentType",
    "RetrievalStrategy",
    "VaultNode",
    "digest",
    "verify",
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
