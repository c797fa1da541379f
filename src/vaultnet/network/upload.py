"""
vaultnet Upload Path - authorized, sequential delivery of payloads.

Uploads are never raced. Candidate nodes are tried strictly in order so a
write cannot land twice through concurrent attempts:

- 2xx: the store response is returned immediately
- "does not accept" / HTTP 403: the node refuses this content type, try next
- timeout: try next
- anything else: fail without trying the remaining nodes

Protocol:
- POST /store {"ciphertext": base64, "mimeType": str, "authorization": {...}}
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
import secrets
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import aiohttp

from ..core.config import VaultTimeouts
from ..core.defaults import CONTENT_TYPE_REJECTION_MARKER, DEFAULT_MIME_TYPE, NONCE_BYTES
from ..core.exceptions import (
    ContentTypeRejectedError,
    NodeTimeoutError,
    NoNodesAvailableError,
    UploadFailedError,
    VaultError,
)
from ..storage.content import digest
from ..storage.models import AuthorizationType, ContentType, StorageAuthorization, StoreResponse
from .crypto import Signer, create_signature_message
from .directory import NodeDirectory
from .transport import request_timeout, session_scope

logger = logging.getLogger(__name__)


@dataclass
class UploadContext:
    """Type-specific context attached to an authorization."""

    group_posts_address: Optional[str] = None
    post_id: Optional[int] = None
    thread_id: Optional[str] = None
    participants: Optional[List[str]] = None
    token_address: Optional[str] = None
    media_id: Optional[str] = None
    listing_id: Optional[str] = None

    def context_string(self, auth_type: AuthorizationType) -> str:
        """The context value embedded in the signed message."""
        if auth_type in (AuthorizationType.GROUP_POST, AuthorizationType.GROUP_COMMENT):
            return self.group_posts_address or ""
        if auth_type is AuthorizationType.MESSAGE:
            return self.thread_id or ""
        if auth_type is AuthorizationType.MEDIA:
            return self.media_id or ""
        if auth_type is AuthorizationType.LISTING:
            return self.listing_id or ""
        return ""


def generate_nonce() -> str:
    """Unguessable replay-protection token."""
    return secrets.token_hex(NONCE_BYTES)


def build_authorization(
    signer: Signer,
    auth_type: Union[AuthorizationType, str],
    payload: bytes,
    context: Optional[UploadContext] = None,
) -> StorageAuthorization:
    """
    Create a signed authorization for storing ``payload``.

    The content hash is the CID of the exact bytes that will be sent.
    """
    auth_type = AuthorizationType(auth_type)
    context = context or UploadContext()

    content_hash = digest(payload)
    timestamp = int(time.time() * 1000)
    nonce = generate_nonce()

    message = create_signature_message(
        auth_type,
        content_hash,
        context.context_string(auth_type),
        timestamp,
        nonce,
    )
    signed = signer.sign(message)

    return StorageAuthorization(
        type=auth_type,
        sender=signed.address,
        signature=signed.signature,
        timestamp=timestamp,
        nonce=nonce,
        content_hash=content_hash,
        group_posts_address=context.group_posts_address,
        post_id=context.post_id,
        thread_id=context.thread_id,
        participants=context.participants,
        token_address=context.token_address,
    )


def _error_message(body: str, status: int) -> str:
    """Pull a human-readable message out of a failed store response."""
    fallback = f"Vault upload failed: {status}"
    try:
        data = json.loads(body)
    except ValueError:
        return body or fallback
    if isinstance(data, dict):
        return data.get("message") or data.get("error") or fallback
    return body or fallback


@dataclass
class Uploader:
    """
    Stores payloads on the first candidate node that accepts them.

    Example:
        uploader = Uploader(directory=directory, signer=Ed25519Signer.generate())
        response = await uploader.store(data, AuthorizationType.MEDIA,
                                        UploadContext(media_id="avatar-1"))
    """

    directory: NodeDirectory
    signer: Signer
    timeouts: VaultTimeouts = field(default_factory=VaultTimeouts)
    session: Optional[aiohttp.ClientSession] = None

    _stats: Dict[str, int] = field(default_factory=lambda: {
        "uploads": 0,
        "upload_attempts": 0,
        "content_type_rejections": 0,
        "upload_timeouts": 0,
    })

    async def store(
        self,
        payload: bytes,
        auth_type: Union[AuthorizationType, str],
        context: Optional[UploadContext] = None,
        mime_type: str = DEFAULT_MIME_TYPE,
    ) -> StoreResponse:
        """
        Authorize and store a payload.

        Returns:
            The StoreResponse of the node that accepted the payload

        Raises:
            NoNodesAvailableError: If no candidate node could be resolved
            ContentTypeRejectedError / NodeTimeoutError: The last fallback
                error, when every candidate refused or timed out
            UploadFailedError: On any other node failure (not retried)
        """
        auth_type = AuthorizationType(auth_type)
        authorization = build_authorization(self.signer, auth_type, payload, context)
        content_type = ContentType.for_authorization(auth_type)

        body = {
            "ciphertext": base64.b64encode(payload).decode("ascii"),
            "mimeType": mime_type,
            "authorization": authorization.to_dict(),
        }

        node_urls = await self.directory.resolve_candidates(content_type)
        last_error: Optional[VaultError] = None

        async with session_scope(self.session) as session:
            for node_url in node_urls:
                self._stats["upload_attempts"] += 1
                logger.debug(f"Trying to store {content_type.value} on {node_url}...")
                try:
                    response = await self._store_on_node(session, node_url, body)
                except ContentTypeRejectedError as e:
                    self._stats["content_type_rejections"] += 1
                    logger.info(f"Node {node_url} doesn't accept {content_type.value}, trying next...")
                    last_error = e
                    continue
                except NodeTimeoutError as e:
                    self._stats["upload_timeouts"] += 1
                    logger.warning(f"Node {node_url} timed out, trying next...")
                    last_error = e
                    continue

                self._stats["uploads"] += 1
                logger.info(f"Stored {content_type.value} on {node_url} (cid {response.cid[:16]}...)")
                return response

        if last_error is not None:
            raise last_error
        raise NoNodesAvailableError(f"No nodes available for {content_type.value} content")

    async def _store_on_node(
        self,
        session: aiohttp.ClientSession,
        node_url: str,
        body: Dict[str, Any],
    ) -> StoreResponse:
        """
        POST the payload to a single node and classify the outcome.

        Raises:
            ContentTypeRejectedError: Node does not accept the content type
            NodeTimeoutError: The write timeout elapsed
            UploadFailedError: Any other failure
        """
        status: Optional[int] = None
        try:
            async with session.post(
                f"{node_url}/store",
                json=body,
                timeout=request_timeout(self.timeouts.write),
            ) as resp:
                status = resp.status
                if 200 <= status < 300:
                    data = await resp.json(content_type=None)
                    if not isinstance(data, dict):
                        raise UploadFailedError(
                            f"Unexpected store response from {node_url}", node_url, status
                        )
                    return StoreResponse.from_dict(data, node_url=node_url)
                error_body = await resp.text()
        except asyncio.TimeoutError as e:
            raise NodeTimeoutError(f"Node {node_url} timed out", node_url=node_url) from e
        except aiohttp.ClientError as e:
            raise UploadFailedError(f"Connection error: {e}", node_url) from e
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            raise UploadFailedError(
                f"Invalid store response from {node_url}: {e}", node_url, status
            ) from e

        message = _error_message(error_body, status)
        if CONTENT_TYPE_REJECTION_MARKER in message or status == 403:
            raise ContentTypeRejectedError(message, node_url, status)
        raise UploadFailedError(message, node_url, status)

    def get_stats(self) -> Dict[str, int]:
        return dict(self._stats)
