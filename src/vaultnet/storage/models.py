"""Data models for vault storage.

Wire dictionaries use the vault node's camelCase keys; Python attributes
are snake_case.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Union


class AuthorizationType(str, Enum):
    """What a storage authorization permits the sender to store."""

    GROUP_POST = "group_post"
    GROUP_COMMENT = "group_comment"
    MESSAGE = "message"
    MEDIA = "media"
    LISTING = "listing"


class ContentType(str, Enum):
    """Content categories vault nodes advertise and specialise in."""

    MESSAGES = "messages"
    POSTS = "posts"
    MEDIA = "media"
    LISTINGS = "listings"

    @classmethod
    def for_authorization(cls, auth_type: Union[AuthorizationType, str]) -> "ContentType":
        """Map an authorization type to the content type used for node ranking."""
        mapping = {
            AuthorizationType.MESSAGE: cls.MESSAGES,
            AuthorizationType.GROUP_POST: cls.POSTS,
            AuthorizationType.GROUP_COMMENT: cls.POSTS,
            AuthorizationType.MEDIA: cls.MEDIA,
            AuthorizationType.LISTING: cls.LISTINGS,
        }
        return mapping[AuthorizationType(auth_type)]


class RetrievalStrategy(str, Enum):
    """How reads are spread across nodes.

    AUTO races every candidate, PRIMARY only asks the primary node and
    ALL cross-checks every reachable node.
    """

    AUTO = "auto"
    PRIMARY = "primary"
    ALL = "all"


ALL_CONTENT_TYPES = "all"


# =============================================================================
# AUTHORIZATION
# =============================================================================


@dataclass
class StorageAuthorization:
    """A signed permission to store one payload."""

    type: AuthorizationType
    sender: str
    signature: str
    timestamp: int  # milliseconds since epoch
    nonce: str
    content_hash: str
    group_posts_address: Optional[str] = None
    post_id: Optional[int] = None
    thread_id: Optional[str] = None
    participants: Optional[List[str]] = None
    token_address: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire format, omitting unset context fields."""
        result: Dict[str, Any] = {
            "type": AuthorizationType(self.type).value,
            "sender": self.sender,
            "signature": self.signature,
            "timestamp": self.timestamp,
            "nonce": self.nonce,
            "contentHash": self.content_hash,
        }
        if self.group_posts_address:
            result["groupPostsAddress"] = self.group_posts_address
        if self.post_id is not None:
            result["postId"] = self.post_id
        if self.thread_id:
            result["threadId"] = self.thread_id
        if self.participants:
            result["participants"] = list(self.participants)
        if self.token_address:
            result["tokenAddress"] = self.token_address
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StorageAuthorization":
        return cls(
            type=AuthorizationType(data["type"]),
            sender=data.get("sender", ""),
            signature=data.get("signature", ""),
            timestamp=int(data.get("timestamp", 0)),
            nonce=data.get("nonce", ""),
            content_hash=data.get("contentHash", ""),
            group_posts_address=data.get("groupPostsAddress"),
            post_id=data.get("postId"),
            thread_id=data.get("threadId"),
            participants=data.get("participants"),
            token_address=data.get("tokenAddress"),
        )


# =============================================================================
# NODES
# =============================================================================


@dataclass(frozen=True)
class NodeCapabilities:
    """What a node advertises on /node/info."""

    content_types: Union[FrozenSet[ContentType], str] = ALL_CONTENT_TYPES
    allowed_guilds: FrozenSet[str] = frozenset()
    blocked_guilds: FrozenSet[str] = frozenset()

    @property
    def is_specialist(self) -> bool:
        """True when the node only stores a listed set of content types."""
        return self.content_types != ALL_CONTENT_TYPES

    def accepts(self, content_type: Union[ContentType, str], guild: Optional[str] = None) -> bool:
        if self.is_specialist and ContentType(content_type) not in self.content_types:
            return False
        if guild is not None:
            if guild in self.blocked_guilds:
                return False
            if self.allowed_guilds and guild not in self.allowed_guilds:
                return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        if self.is_specialist:
            content_types: Any = sorted(ct.value for ct in self.content_types)
        else:
            content_types = ALL_CONTENT_TYPES
        return {
            "contentTypes": content_types,
            "allowedGuilds": sorted(self.allowed_guilds),
            "blockedGuilds": sorted(self.blocked_guilds),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NodeCapabilities":
        raw_types = data.get("contentTypes", ALL_CONTENT_TYPES)
        if raw_types == ALL_CONTENT_TYPES or raw_types is None:
            content_types: Union[FrozenSet[ContentType], str] = ALL_CONTENT_TYPES
        else:
            known = {ct.value for ct in ContentType}
            # Unknown types advertised by newer nodes are ignored
            content_types = frozenset(ContentType(t) for t in raw_types if t in known)
        return cls(
            content_types=content_types,
            allowed_guilds=frozenset(data.get("allowedGuilds") or []),
            blocked_guilds=frozenset(data.get("blockedGuilds") or []),
        )


@dataclass
class VaultNode:
    """A storage endpoint known to the registry."""

    node_id: str
    url: str
    active: bool = True
    healthy: Optional[bool] = None
    latency_ms: Optional[float] = None
    capabilities: Optional[NodeCapabilities] = None

    def __post_init__(self) -> None:
        self.url = self.url.rstrip("/")

    def with_health(self, health: "NodeHealth") -> "VaultNode":
        """Return a copy annotated with a probe result."""
        return replace(
            self,
            healthy=health.healthy,
            latency_ms=health.latency_ms,
            capabilities=health.capabilities or self.capabilities,
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "nodeId": self.node_id,
            "url": self.url,
            "active": self.active,
        }
        if self.healthy is not None:
            result["healthy"] = self.healthy
        if self.latency_ms is not None:
            result["latency"] = self.latency_ms
        if self.capabilities is not None:
            result.update(self.capabilities.to_dict())
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VaultNode":
        capabilities = None
        if "contentTypes" in data:
            capabilities = NodeCapabilities.from_dict(data)
        return cls(
            node_id=data.get("nodeId", ""),
            url=data.get("url", ""),
            active=bool(data.get("active", True)),
            healthy=data.get("healthy"),
            latency_ms=data.get("latency"),
            capabilities=capabilities,
        )


def fastest_healthy(ranked_nodes: Iterable[VaultNode]) -> Optional[VaultNode]:
    """First healthy node of a latency-ranked list."""
    return next((node for node in ranked_nodes if node.healthy), None)


@dataclass
class NodeHealth:
    """Result of probing a single node."""

    url: str
    healthy: bool
    latency_ms: float
    status: str = "unknown"
    capabilities: Optional[NodeCapabilities] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "url": self.url,
            "healthy": self.healthy,
            "latencyMs": round(self.latency_ms, 1),
            "status": self.status,
        }
        if self.capabilities is not None:
            result["capabilities"] = self.capabilities.to_dict()
        return result


# =============================================================================
# RESULTS
# =============================================================================


@dataclass
class ReplicationStatus:
    target: int
    confirmed: int


@dataclass
class StoreResponse:
    """Result of a node accepting a payload."""

    success: bool
    cid: str
    timestamp: int
    replication_status: Optional[ReplicationStatus] = None
    node_url: str = ""

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "success": self.success,
            "cid": self.cid,
            "timestamp": self.timestamp,
        }
        if self.replication_status is not None:
            result["replicationStatus"] = {
                "target": self.replication_status.target,
                "confirmed": self.replication_status.confirmed,
            }
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any], node_url: str = "") -> "StoreResponse":
        """
        Parse a node's store response.

        Raises:
            ValueError: If a field is missing its expected type
        """
        cid = data.get("cid", "")
        if not isinstance(cid, str):
            raise ValueError(f"cid must be a string, got {type(cid).__name__}")
        replication = data.get("replicationStatus")
        if replication is not None and not isinstance(replication, dict):
            raise ValueError("replicationStatus must be an object")

        try:
            timestamp = int(data.get("timestamp", 0))
            replication_status = ReplicationStatus(
                target=int(replication.get("target", 0)),
                confirmed=int(replication.get("confirmed", 0)),
            ) if replication else None
        except TypeError as e:
            raise ValueError(f"Malformed store response: {e}") from e

        return cls(
            success=bool(data.get("success", False)),
            cid=cid,
            timestamp=timestamp,
            replication_status=replication_status,
            node_url=node_url,
        )


@dataclass
class ConsistentRead:
    """Payload agreed on by every node that answered a verify-all read."""

    data: bytes
    verified_nodes: int
    total_nodes: int
    failed_nodes: List[str] = field(default_factory=list)
