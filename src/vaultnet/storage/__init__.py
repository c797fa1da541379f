"""vaultnet storage primitives - content addressing and data models.

Example usage:
    from vaultnet.storage import digest, verify

    cid = digest(payload)
    verify(payload, cid)  # raises IntegrityViolationError on mismatch
"""

from .content import digest, is_valid_cid, normalize_cid, verify
from .models import (
    ALL_CONTENT_TYPES,
    AuthorizationType,
    ConsistentRead,
    ContentType,
    NodeCapabilities,
    NodeHealth,
    ReplicationStatus,
    RetrievalStrategy,
    StorageAuthorization,
    StoreResponse,
    VaultNode,
    fastest_healthy,
)

__all__ = [
    # Content addressing
    "digest",
    "verify",
    "normalize_cid",
    "is_valid_cid",
    # Models
    "ALL_CONTENT_TYPES",
    "AuthorizationType",
    "ContentType",
    "RetrievalStrategy",
    "StorageAuthorization",
    "NodeCapabilities",
    "VaultNode",
    "NodeHealth",
    "ReplicationStatus",
    "StoreResponse",
    "ConsistentRead",
    "fastest_healthy",
]
