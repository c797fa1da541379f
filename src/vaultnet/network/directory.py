"""
vaultnet Node Directory - ordered candidate nodes for each operation.

Candidate order (first occurrence wins, URLs deduplicated):

1. The preferred node for the content type, if one is configured
2. The configured primary node
3. Active registry nodes in registry order (unless strategy is "primary")
4. The last-resort default node

Content-type specialists are therefore tried before generic fallbacks,
while the default node guarantees a deterministic last resort even when
the registry cannot be reached.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Protocol, Set

from ..core import defaults
from ..core.config import ConfigProvider
from ..core.exceptions import NoNodesAvailableError
from ..storage.models import ContentType, RetrievalStrategy, VaultNode

logger = logging.getLogger(__name__)


# =============================================================================
# REGISTRIES
# =============================================================================


class NodeRegistry(Protocol):
    """Source of registered vault nodes."""

    async def active_nodes(self) -> List[VaultNode]: ...


class StaticRegistry:
    """Registry backed by a fixed node list."""

    def __init__(self, nodes: Optional[Iterable[VaultNode]] = None) -> None:
        self._nodes = list(nodes or [])

    @classmethod
    def from_urls(cls, urls: Iterable[str]) -> "StaticRegistry":
        return cls(
            VaultNode(node_id=f"node-{i}", url=url)
            for i, url in enumerate(urls)
        )

    async def active_nodes(self) -> List[VaultNode]:
        return [node for node in self._nodes if node.active]


@dataclass
class CachedRegistry:
    """
    Caches another registry's node list for ``ttl`` seconds.

    Registry lookups can be slow (on-chain reads); node membership changes
    rarely, so a short-lived snapshot is reused across operations.
    """

    inner: NodeRegistry
    ttl: float = defaults.NODE_CACHE_TTL_SECONDS
    _nodes: List[VaultNode] = field(default_factory=list)
    _fetched_at: float = 0

    def _cache_valid(self) -> bool:
        if not self._fetched_at:
            return False
        return time.monotonic() - self._fetched_at < self.ttl

    async def active_nodes(self) -> List[VaultNode]:
        if not self._cache_valid():
            self._nodes = list(await self.inner.active_nodes())
            self._fetched_at = time.monotonic()
            logger.debug(f"Refreshed registry cache with {len(self._nodes)} nodes")
        return list(self._nodes)

    def invalidate(self) -> None:
        self._nodes = []
        self._fetched_at = 0


# =============================================================================
# DIRECTORY
# =============================================================================


@dataclass
class NodeDirectory:
    """
    Resolves the ordered, deduplicated candidate URLs for an operation.

    Example:
        directory = NodeDirectory(config=settings, registry=StaticRegistry(nodes))
        urls = await directory.resolve_candidates(ContentType.MESSAGES)
    """

    config: ConfigProvider
    registry: Optional[NodeRegistry] = None
    default_url: str = defaults.DEFAULT_VAULT_URL

    async def resolve_candidates(
        self,
        content_type: Optional[ContentType] = None,
    ) -> List[str]:
        """
        Resolve candidate node URLs, most preferred first.

        Returns:
            A fresh list; later configuration changes do not affect it

        Raises:
            NoNodesAvailableError: If no candidate could be resolved
        """
        urls: List[str] = []
        seen: Set[str] = set()

        def add(url: Optional[str]) -> None:
            if not url:
                return
            url = url.rstrip("/")
            if url not in seen:
                urls.append(url)
                seen.add(url)

        if content_type is not None:
            add(self.config.node_for_content_type(ContentType(content_type)))

        add(self.config.primary_node())

        if RetrievalStrategy(self.config.fallback_strategy()) != RetrievalStrategy.PRIMARY:
            for node in await self._registry_nodes():
                if node.active:
                    add(node.url)

        add(self.default_url)

        if not urls:
            raise NoNodesAvailableError("No vault nodes available")
        return urls

    async def _registry_nodes(self) -> List[VaultNode]:
        if self.registry is None:
            return []
        try:
            return list(await self.registry.active_nodes())
        except Exception as e:
            # Degrade to primary + default nodes
            logger.warning(f"Failed to fetch vault nodes from registry: {e}")
            return []
