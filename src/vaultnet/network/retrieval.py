"""
vaultnet Read Path - strategy-driven retrieval with integrity enforcement.

Strategies:
- auto: race every candidate node, the first successful response wins
- primary: only ask the configured primary node
- all: ask every candidate, require byte-for-byte agreement

Whatever the strategy, the payload is checked against the requested CID
before it is returned. A mismatch is an ``IntegrityViolationError`` and is
never retried silently.

Protocol:
- GET /blob/{cid} -> {"ciphertext": base64}; 404 when absent
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import functools
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import aiohttp

from ..core.config import ConfigProvider, VaultTimeouts
from ..core.defaults import CID_LOG_PREFIX
from ..core.exceptions import (
    AllNodesUnreachableError,
    BlobNotFoundError,
    ConsistencyViolationError,
    IntegrityViolationError,
    NodeRequestError,
    NodeTimeoutError,
    RetrievalFailedError,
)
from ..storage.content import verify
from ..storage.models import ConsistentRead, ContentType, RetrievalStrategy
from .directory import NodeDirectory
from .fanout import FanOutError, first_success, settle_all
from .transport import request_timeout, session_scope

logger = logging.getLogger(__name__)


@dataclass
class Retriever:
    """
    Retrieves blobs by CID according to the configured strategy.

    Example:
        retriever = Retriever(directory=directory, config=settings)
        data = await retriever.retrieve(cid)
    """

    directory: NodeDirectory
    config: ConfigProvider
    timeouts: VaultTimeouts = field(default_factory=VaultTimeouts)
    session: Optional[aiohttp.ClientSession] = None

    _stats: Dict[str, int] = field(default_factory=lambda: {
        "retrievals": 0,
        "race_wins": 0,
        "integrity_violations": 0,
        "consistency_violations": 0,
    })

    # -------------------------------------------------------------------------
    # PUBLIC API
    # -------------------------------------------------------------------------

    async def retrieve(self, cid: str, content_type: Optional[ContentType] = None) -> bytes:
        """
        Retrieve and verify a blob.

        Args:
            cid: Content identifier of the blob
            content_type: Optional type used to put its preferred node first

        Raises:
            NoNodesAvailableError: If no candidate node could be resolved
            BlobNotFoundError: If every source answered 404
            RetrievalFailedError: If nodes failed for other reasons
            ConsistencyViolationError: If nodes disagree (strategy "all")
            IntegrityViolationError: If the bytes do not hash to ``cid``
        """
        strategy = RetrievalStrategy(self.config.fallback_strategy())
        self._stats["retrievals"] += 1

        if strategy is RetrievalStrategy.ALL:
            result = await self._verify_consistency(cid, content_type)
            return result.data

        if strategy is RetrievalStrategy.AUTO:
            node_url, data = await self._race(cid, content_type)
        else:
            node_url = self.config.primary_node().rstrip("/")
            data = await self._from_primary(cid, node_url)

        self._check_integrity(data, cid, node_url)
        return data

    async def retrieve_verified(
        self,
        cid: str,
        content_type: Optional[ContentType] = None,
    ) -> ConsistentRead:
        """Cross-check every candidate node regardless of the configured strategy."""
        self._stats["retrievals"] += 1
        return await self._verify_consistency(cid, content_type)

    def get_stats(self) -> Dict[str, int]:
        return dict(self._stats)

    # -------------------------------------------------------------------------
    # STRATEGIES
    # -------------------------------------------------------------------------

    async def _from_primary(self, cid: str, node_url: str) -> bytes:
        async with session_scope(self.session) as session:
            try:
                return await self._fetch_blob(session, node_url, cid)
            except NodeRequestError as e:
                if e.is_not_found:
                    raise BlobNotFoundError(cid) from e
                raise RetrievalFailedError(
                    f"Failed to retrieve blob: {e}", {node_url: e}
                ) from e

    async def _race(
        self,
        cid: str,
        content_type: Optional[ContentType],
    ) -> Tuple[str, bytes]:
        node_urls = await self.directory.resolve_candidates(content_type)

        async with session_scope(self.session) as session:
            branches = {
                url: functools.partial(self._fetch_blob, session, url, cid)
                for url in node_urls
            }
            try:
                winner, data = await first_success(branches)
            except FanOutError as e:
                errors = e.errors
                if errors and all(
                    isinstance(err, NodeRequestError) and err.is_not_found
                    for err in errors.values()
                ):
                    raise BlobNotFoundError(cid) from None
                summary = ", ".join(str(err) for err in errors.values())
                raise RetrievalFailedError(f"All nodes failed: {summary}", errors) from None

        self._stats["race_wins"] += 1
        logger.info(f"Race winner: {winner}")
        return winner, data

    async def _verify_consistency(
        self,
        cid: str,
        content_type: Optional[ContentType],
    ) -> ConsistentRead:
        node_urls = await self.directory.resolve_candidates(content_type)
        logger.info(
            f"Verifying consistency across {len(node_urls)} nodes "
            f"for CID {cid[:CID_LOG_PREFIX]}..."
        )

        async with session_scope(self.session) as session:
            successes, failures = await settle_all({
                url: functools.partial(self._fetch_checked_ciphertext, session, url, cid)
                for url in node_urls
            })

        if not successes:
            raise AllNodesUnreachableError(
                f"All {len(node_urls)} nodes failed to respond", failures
            )

        # Agreement is on the payload exactly as served, before decoding
        reference_url, reference_ciphertext = next(iter(successes.items()))
        divergent = [
            url for url, ciphertext in successes.items()
            if ciphertext != reference_ciphertext
        ]
        if divergent:
            self._stats["consistency_violations"] += 1
            logger.error(
                f"Consistency violation for CID {cid[:CID_LOG_PREFIX]}...: "
                f"reference node {reference_url}, inconsistent nodes {divergent}"
            )
            raise ConsistencyViolationError(reference_url, divergent)

        if failures:
            logger.warning(f"{len(failures)} node(s) failed to respond: {list(failures)}")

        reference = decode_ciphertext(reference_url, reference_ciphertext)
        self._check_integrity(reference, cid, reference_url)
        logger.info(f"Consistency verified: {len(successes)}/{len(node_urls)} nodes agree")
        return ConsistentRead(
            data=reference,
            verified_nodes=len(successes),
            total_nodes=len(node_urls),
            failed_nodes=list(failures),
        )

    # -------------------------------------------------------------------------
    # NODE REQUESTS
    # -------------------------------------------------------------------------

    async def _fetch_blob(
        self,
        session: aiohttp.ClientSession,
        node_url: str,
        cid: str,
    ) -> bytes:
        """Fetch and decode one node's copy of a blob."""
        ciphertext = await self._fetch_ciphertext(session, node_url, cid)
        return decode_ciphertext(node_url, ciphertext)

    async def _fetch_checked_ciphertext(
        self,
        session: aiohttp.ClientSession,
        node_url: str,
        cid: str,
    ) -> str:
        """Fetch one node's ciphertext as served, rejecting undecodable bodies."""
        ciphertext = await self._fetch_ciphertext(session, node_url, cid)
        decode_ciphertext(node_url, ciphertext)
        return ciphertext

    async def _fetch_ciphertext(
        self,
        session: aiohttp.ClientSession,
        node_url: str,
        cid: str,
    ) -> str:
        """
        GET one node's copy of a blob.

        Raises:
            NodeTimeoutError: The read timeout elapsed
            NodeRequestError: Non-2xx status (``status`` set), transport
                failure or a body without ciphertext
        """
        try:
            async with session.get(
                f"{node_url}/blob/{cid}",
                timeout=request_timeout(self.timeouts.read),
            ) as resp:
                if not 200 <= resp.status < 300:
                    raise NodeRequestError(
                        f"{node_url}: HTTP {resp.status}", node_url, resp.status
                    )
                data = await resp.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise NodeTimeoutError(f"{node_url}: timeout", node_url) from e
        except aiohttp.ClientError as e:
            raise NodeRequestError(f"{node_url}: {e}", node_url) from e
        except ValueError as e:
            raise NodeRequestError(f"{node_url}: invalid JSON ({e})", node_url) from e

        ciphertext = data.get("ciphertext") if isinstance(data, dict) else None
        if not isinstance(ciphertext, str):
            raise NodeRequestError(f"{node_url}: response has no ciphertext", node_url)
        return ciphertext

    def _check_integrity(self, data: bytes, cid: str, node_url: str) -> None:
        try:
            verify(data, cid, node_url=node_url)
        except IntegrityViolationError:
            self._stats["integrity_violations"] += 1
            raise


def decode_ciphertext(node_url: str, ciphertext: str) -> bytes:
    """Decode a node's base64 ciphertext, raising NodeRequestError if invalid."""
    try:
        return base64.b64decode(ciphertext, validate=True)
    except (binascii.Error, ValueError) as e:
        raise NodeRequestError(f"{node_url}: invalid base64 ({e})", node_url) from e
