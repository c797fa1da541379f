"""
vaultnet Network - node selection, uploads, reads and health probes.

Vault nodes are independently operated and untrusted: every read is
verified against its CID, and verify-all reads cross-check nodes for
byte-level agreement.
"""

from vaultnet.network.client import VaultClient, create_vault_client
from vaultnet.network.crypto import (
    Ed25519Signer,
    SignedMessage,
    Signer,
    create_signature_message,
    verify_authorization,
)
from vaultnet.network.directory import (
    CachedRegistry,
    NodeDirectory,
    NodeRegistry,
    StaticRegistry,
)
from vaultnet.network.fanout import FanOutError, first_success, settle_all
from vaultnet.network.health import (
    assign_content_type_nodes,
    fastest_healthy,
    probe,
    probe_nodes,
)
from vaultnet.network.retrieval import Retriever
from vaultnet.network.upload import Uploader, UploadContext, build_authorization

__all__ = [
    # Client
    "VaultClient",
    "create_vault_client",
    # Signing
    "Signer",
    "SignedMessage",
    "Ed25519Signer",
    "create_signature_message",
    "verify_authorization",
    # Directory
    "NodeDirectory",
    "NodeRegistry",
    "StaticRegistry",
    "CachedRegistry",
    # Fan-out
    "FanOutError",
    "first_success",
    "settle_all",
    # Health
    "probe",
    "probe_nodes",
    "fastest_healthy",
    "assign_content_type_nodes",
    # Paths
    "Uploader",
    "UploadContext",
    "build_authorization",
    "Retriever",
]
