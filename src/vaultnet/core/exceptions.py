"""Typed errors raised by vaultnet.

Every failure that crosses the client boundary is a ``VaultError`` with a
stable ``code`` so presentation layers can tell "not found" apart from
"tampered" and "unreachable" without parsing messages.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional


class VaultError(Exception):
    """Base exception for vault errors."""

    code = "VAULT_ERROR"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for presentation layers."""
        return {"code": self.code, "message": self.message}


class ConfigError(VaultError):
    """Raised for invalid settings values."""

    code = "CONFIG_ERROR"


class NoNodesAvailableError(VaultError):
    """Raised when no candidate node could be resolved."""

    code = "NO_NODES_AVAILABLE"


# =============================================================================
# NODE-LEVEL ERRORS
# =============================================================================


class NodeRequestError(VaultError):
    """A single node failed to serve a request.

    ``status`` is the HTTP status when the node answered, None for
    transport failures.
    """

    code = "NODE_REQUEST_FAILED"

    def __init__(
        self,
        message: str,
        node_url: str = "",
        status: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.node_url = node_url
        self.status = status

    @property
    def is_not_found(self) -> bool:
        return self.status == 404

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["node_url"] = self.node_url
        result["status"] = self.status
        return result


class NodeTimeoutError(NodeRequestError):
    """Raised when a per-request time bound was exceeded."""

    code = "TIMEOUT"


# =============================================================================
# READ ERRORS
# =============================================================================


class BlobNotFoundError(VaultError):
    """Every attempted source agrees the content does not exist."""

    code = "BLOB_NOT_FOUND"

    def __init__(self, cid: str, message: str = "") -> None:
        super().__init__(message or f"Blob not found: {cid}")
        self.cid = cid


class RetrievalFailedError(VaultError):
    """Reading a blob failed for reasons other than absence."""

    code = "RETRIEVAL_FAILED"

    def __init__(
        self,
        message: str,
        errors: Optional[Mapping[str, Exception]] = None,
    ) -> None:
        super().__init__(message)
        self.errors: Dict[str, Exception] = dict(errors or {})

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["errors"] = {url: str(e) for url, e in self.errors.items()}
        return result


class AllNodesUnreachableError(RetrievalFailedError):
    """No node answered a verify-all read successfully."""

    code = "ALL_NODES_UNREACHABLE"


class IntegrityViolationError(VaultError):
    """Retrieved bytes do not hash to the requested CID.

    Always fatal: the node returned fabricated or corrupted data.
    """

    code = "INTEGRITY_VIOLATION"

    def __init__(self, expected: str, actual: str, node_url: str = "") -> None:
        super().__init__(
            "DATA INTEGRITY VIOLATION: Received data does not match CID. "
            f"Expected: {expected[:16]}..., Got: {actual[:16]}... "
            "The vault node returned fake or tampered data."
        )
        self.expected = expected
        self.actual = actual
        self.node_url = node_url

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["expected"] = self.expected
        result["actual"] = self.actual
        return result


class ConsistencyViolationError(VaultError):
    """Healthy nodes returned different bytes for the same CID."""

    code = "CONSISTENCY_VIOLATION"

    def __init__(self, reference_node: str, divergent_nodes: List[str]) -> None:
        super().__init__(
            f"DATA CONSISTENCY VIOLATION: {len(divergent_nodes)} node(s) returned "
            f"different data than {reference_node}. "
            f"Inconsistent: {', '.join(divergent_nodes)}"
        )
        self.reference_node = reference_node
        self.divergent_nodes = list(divergent_nodes)

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["reference_node"] = self.reference_node
        result["divergent_nodes"] = self.divergent_nodes
        return result


# =============================================================================
# WRITE ERRORS
# =============================================================================


class UploadFailedError(VaultError):
    """A node refused or failed to store a payload."""

    code = "UPLOAD_FAILED"

    def __init__(
        self,
        message: str,
        node_url: str = "",
        status: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.node_url = node_url
        self.status = status

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["node_url"] = self.node_url
        result["status"] = self.status
        return result


class ContentTypeRejectedError(UploadFailedError):
    """The node does not store this content type; the next node is tried."""

    code = "CONTENT_TYPE_REJECTED"
