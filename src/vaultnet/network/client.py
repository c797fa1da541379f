"""
vaultnet Client - composition root for vault storage access.

``VaultClient`` wires a configuration provider, a node registry and a
signer into the node directory, upload path and read path. Each client is
an explicit instance; there is no module-level singleton.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import aiohttp

from ..core import defaults
from ..core.config import ConfigProvider, VaultSettings, VaultTimeouts
from ..core.exceptions import ConfigError
from ..storage.models import (
    AuthorizationType,
    ConsistentRead,
    ContentType,
    NodeHealth,
    StoreResponse,
    VaultNode,
)
from .crypto import Signer
from .directory import CachedRegistry, NodeDirectory, NodeRegistry, StaticRegistry
from .health import probe, probe_nodes
from .retrieval import Retriever
from .upload import Uploader, UploadContext

logger = logging.getLogger(__name__)


@dataclass
class VaultClient:
    """
    Client for storing and retrieving blobs on vault nodes.

    Example:
        client = VaultClient(
            config=VaultSettings(primary_node_url="https://vault1.example.com"),
            registry=StaticRegistry.from_urls(["https://vault2.example.com"]),
            signer=Ed25519Signer.generate(),
        )
        cid = await client.upload_media(image_bytes, media_id="avatar-1")
        data = await client.retrieve(cid)

    Attributes:
        config: Source of primary node, strategy and content-type preferences
        registry: Source of registered vault nodes
        signer: Signs storage authorizations; required for uploads only
        session: Shared aiohttp session; the caller owns its lifecycle
    """

    config: ConfigProvider
    registry: Optional[NodeRegistry] = None
    signer: Optional[Signer] = None
    timeouts: VaultTimeouts = field(default_factory=VaultTimeouts)
    default_url: str = defaults.DEFAULT_VAULT_URL
    session: Optional[aiohttp.ClientSession] = None

    def __post_init__(self) -> None:
        self.directory = NodeDirectory(
            config=self.config,
            registry=self.registry,
            default_url=self.default_url,
        )
        self.retriever = Retriever(
            directory=self.directory,
            config=self.config,
            timeouts=self.timeouts,
            session=self.session,
        )
        self._uploader: Optional[Uploader] = None

    @property
    def uploader(self) -> Uploader:
        if self.signer is None:
            raise ConfigError("A signer is required to upload to vault nodes")
        if self._uploader is None:
            self._uploader = Uploader(
                directory=self.directory,
                signer=self.signer,
                timeouts=self.timeouts,
                session=self.session,
            )
        return self._uploader

    # -------------------------------------------------------------------------
    # NODE SELECTION
    # -------------------------------------------------------------------------

    def get_vault_url(self) -> str:
        """The configured primary node."""
        return self.config.primary_node()

    async def resolve_candidates(self, content_type: Optional[ContentType] = None) -> List[str]:
        return await self.directory.resolve_candidates(content_type)

    async def check_health(self, url: Optional[str] = None) -> NodeHealth:
        """Probe the primary node, or ``url`` if given."""
        return await probe(url or self.get_vault_url(), self.timeouts, self.session)

    async def probe_nodes(self, nodes: Optional[Iterable[VaultNode]] = None) -> List[VaultNode]:
        """Probe ``nodes`` (default: all active registry nodes), fastest first."""
        if nodes is None:
            nodes = await self.registry.active_nodes() if self.registry is not None else []
        return await probe_nodes(nodes, self.timeouts, self.session)

    # -------------------------------------------------------------------------
    # UPLOADS
    # -------------------------------------------------------------------------

    async def store(
        self,
        payload: bytes,
        auth_type: AuthorizationType,
        context: Optional[UploadContext] = None,
        mime_type: str = defaults.DEFAULT_MIME_TYPE,
    ) -> StoreResponse:
        return await self.uploader.store(payload, auth_type, context, mime_type)

    async def upload_group_post(self, data: bytes, group_posts_address: str) -> str:
        """Upload a group post, returning its CID."""
        result = await self.store(
            data,
            AuthorizationType.GROUP_POST,
            UploadContext(group_posts_address=group_posts_address),
        )
        return result.cid

    async def upload_group_comment(self, data: bytes, group_posts_address: str, post_id: int) -> str:
        """Upload a comment on a group post, returning its CID."""
        result = await self.store(
            data,
            AuthorizationType.GROUP_COMMENT,
            UploadContext(group_posts_address=group_posts_address, post_id=post_id),
        )
        return result.cid

    async def upload_message(self, data: bytes, thread_id: str, participants: List[str]) -> str:
        """Upload a message thread file, returning its CID."""
        result = await self.store(
            data,
            AuthorizationType.MESSAGE,
            UploadContext(thread_id=thread_id, participants=list(participants)),
        )
        return result.cid

    async def upload_media(self, data: bytes, media_id: str) -> str:
        """Upload media (images, profile pictures), returning its CID."""
        result = await self.store(data, AuthorizationType.MEDIA, UploadContext(media_id=media_id))
        return result.cid

    async def upload_listing(self, data: bytes, listing_id: str) -> str:
        """Upload a marketplace listing, returning its CID."""
        result = await self.store(data, AuthorizationType.LISTING, UploadContext(listing_id=listing_id))
        return result.cid

    # -------------------------------------------------------------------------
    # READS
    # -------------------------------------------------------------------------

    async def retrieve(self, cid: str, content_type: Optional[ContentType] = None) -> bytes:
        return await self.retriever.retrieve(cid, content_type)

    async def retrieve_verified(
        self,
        cid: str,
        content_type: Optional[ContentType] = None,
    ) -> ConsistentRead:
        return await self.retriever.retrieve_verified(cid, content_type)

    async def get_blob_with_fallback(self, cid: str) -> bytes:
        """Deprecated: ``retrieve`` already falls back according to the strategy."""
        warnings.warn(
            "get_blob_with_fallback() is deprecated, use retrieve()",
            DeprecationWarning,
            stacklevel=2,
        )
        return await self.retrieve(cid)

    # -------------------------------------------------------------------------
    # STATS
    # -------------------------------------------------------------------------

    def get_stats(self) -> Dict[str, int]:
        stats = {
            "uploads": 0,
            "upload_attempts": 0,
            "content_type_rejections": 0,
            "upload_timeouts": 0,
        }
        if self._uploader is not None:
            stats.update(self._uploader.get_stats())
        stats.update(self.retriever.get_stats())
        return stats


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def create_vault_client(
    node_urls: Optional[List[str]] = None,
    settings: Optional[VaultSettings] = None,
    signer: Optional[Signer] = None,
    registry_ttl: Optional[float] = None,
    **kwargs,
) -> VaultClient:
    """
    Create a client from settings (default: the environment) and node URLs.

    Args:
        node_urls: Registry node URLs, in registry order
        settings: Settings to use instead of ``VaultSettings.from_env()``
        signer: Signer for uploads
        registry_ttl: If set, cache the registry snapshot for this many seconds

    Returns:
        Configured VaultClient
    """
    registry: NodeRegistry = StaticRegistry.from_urls(node_urls or [])
    if registry_ttl is not None:
        registry = CachedRegistry(inner=registry, ttl=registry_ttl)
    return VaultClient(
        config=settings or VaultSettings.from_env(),
        registry=registry,
        signer=signer,
        **kwargs,
    )
