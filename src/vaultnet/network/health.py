"""
vaultnet Health Probe - reachability, latency and capabilities of nodes.

Probes feed node ranking and the per-content-type auto-assignment in
``VaultSettings``. They are never run implicitly by uploads or reads.

Protocol:
- GET /health     -> {"status": "healthy"}  (healthy iff status == "healthy")
- GET /node/info  -> {"contentTypes": [...] | "all", "allowedGuilds", "blockedGuilds"}

A probe never raises: any failure degrades to ``healthy=False``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Dict, Iterable, List, Optional

import aiohttp

from ..core.config import VaultTimeouts
from ..core.defaults import UNREACHABLE_LATENCY_MS
from ..storage.models import (
    ContentType,
    NodeCapabilities,
    NodeHealth,
    VaultNode,
    fastest_healthy,
)
from .transport import request_timeout, session_scope

__all__ = [
    "probe",
    "fetch_capabilities",
    "probe_nodes",
    "fastest_healthy",
    "assign_content_type_nodes",
]

logger = logging.getLogger(__name__)


async def probe(
    url: str,
    timeouts: Optional[VaultTimeouts] = None,
    session: Optional[aiohttp.ClientSession] = None,
) -> NodeHealth:
    """
    Probe a node's liveness endpoint, then its capabilities.

    Args:
        url: Base URL of the vault node
        timeouts: Time bounds for the liveness and capabilities requests
        session: Session to reuse; a temporary one is opened otherwise

    Returns:
        NodeHealth for the node
    """
    async with session_scope(session) as scoped:
        return await _probe(url.rstrip("/"), timeouts or VaultTimeouts(), scoped)


async def _probe(
    url: str,
    timeouts: VaultTimeouts,
    session: aiohttp.ClientSession,
) -> NodeHealth:
    start_time = time.monotonic()
    try:
        async with session.get(
            f"{url}/health",
            timeout=request_timeout(timeouts.liveness),
        ) as resp:
            data = await resp.json(content_type=None)
    except asyncio.TimeoutError:
        logger.warning(f"Health probe timeout for {url}")
        return NodeHealth(url=url, healthy=False, latency_ms=UNREACHABLE_LATENCY_MS, status="timeout")
    except (aiohttp.ClientError, ValueError) as e:
        logger.warning(f"Health probe failed for {url}: {e}")
        return NodeHealth(url=url, healthy=False, latency_ms=UNREACHABLE_LATENCY_MS, status="unreachable")

    latency_ms = (time.monotonic() - start_time) * 1000
    status = data.get("status", "unknown") if isinstance(data, dict) else "unknown"

    if status != "healthy":
        logger.debug(f"Node {url} reported status {status!r}")
        return NodeHealth(url=url, healthy=False, latency_ms=latency_ms, status=str(status))

    capabilities = await fetch_capabilities(url, timeouts, session)
    return NodeHealth(
        url=url,
        healthy=True,
        latency_ms=latency_ms,
        status=status,
        capabilities=capabilities,
    )


async def fetch_capabilities(
    url: str,
    timeouts: VaultTimeouts,
    session: aiohttp.ClientSession,
) -> Optional[NodeCapabilities]:
    """Best-effort read of /node/info. Returns None on any failure."""
    try:
        async with session.get(
            f"{url}/node/info",
            timeout=request_timeout(timeouts.capabilities),
        ) as resp:
            if resp.status != 200:
                logger.debug(f"Node {url} has no capabilities info (HTTP {resp.status})")
                return None
            data = await resp.json(content_type=None)
        return NodeCapabilities.from_dict(data)
    except Exception as e:
        logger.debug(f"Capabilities lookup failed for {url}: {e}")
        return None


async def probe_nodes(
    nodes: Iterable[VaultNode],
    timeouts: Optional[VaultTimeouts] = None,
    session: Optional[aiohttp.ClientSession] = None,
) -> List[VaultNode]:
    """
    Probe every node concurrently.

    Returns:
        Copies of the nodes annotated with health, fastest first
    """
    nodes = list(nodes)
    if not nodes:
        return []

    async with session_scope(session) as scoped:
        results = await asyncio.gather(*(probe(node.url, timeouts, scoped) for node in nodes))

    ranked = [node.with_health(health) for node, health in zip(nodes, results)]
    ranked.sort(key=lambda n: n.latency_ms if n.latency_ms is not None else UNREACHABLE_LATENCY_MS)

    healthy_count = sum(1 for n in ranked if n.healthy)
    logger.info(f"Probed {len(ranked)} vault nodes, {healthy_count} healthy")
    return ranked


def assign_content_type_nodes(
    ranked_nodes: Iterable[VaultNode],
    guild: Optional[str] = None,
) -> Dict[ContentType, str]:
    """
    Pick a node for each content type from a latency-ranked node list.

    The fastest healthy specialist that accepts the type wins; failing
    that, the fastest healthy generalist. Nodes without capability info
    count as generalists. Types no healthy node accepts are left out.
    """
    healthy = [node for node in ranked_nodes if node.healthy]
    assignment: Dict[ContentType, str] = {}

    for content_type in ContentType:
        specialist: Optional[VaultNode] = None
        generalist: Optional[VaultNode] = None
        for node in healthy:
            capabilities = node.capabilities or NodeCapabilities()
            if not capabilities.accepts(content_type, guild):
                continue
            if capabilities.is_specialist:
                specialist = specialist or node
            else:
                generalist = generalist or node
        chosen = specialist or generalist
        if chosen is not None:
            assignment[content_type] = chosen.url

    return assignment
