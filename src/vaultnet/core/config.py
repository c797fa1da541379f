"""Configuration for vaultnet clients.

The storage client only needs read-only access to three settings, so it
depends on the ``ConfigProvider`` protocol. ``VaultSettings`` is the
bundled implementation: an in-memory settings store that can be loaded
from the environment and persisted to a JSON file.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Protocol, Union

from ..storage.models import ContentType, RetrievalStrategy, VaultNode, fastest_healthy
from . import defaults
from .exceptions import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VaultTimeouts:
    """Per-request time bounds in seconds."""

    liveness: float = defaults.LIVENESS_TIMEOUT
    capabilities: float = defaults.CAPABILITIES_TIMEOUT
    read: float = defaults.READ_TIMEOUT
    write: float = defaults.WRITE_TIMEOUT


class ConfigProvider(Protocol):
    """Read-only settings the storage client consumes."""

    def primary_node(self) -> str: ...

    def fallback_strategy(self) -> RetrievalStrategy: ...

    def node_for_content_type(self, content_type: ContentType) -> Optional[str]: ...


def parse_strategy(value: Union[str, RetrievalStrategy]) -> RetrievalStrategy:
    """Parse a strategy name, raising ConfigError for unknown values."""
    try:
        return RetrievalStrategy(value)
    except ValueError:
        valid = ", ".join(s.value for s in RetrievalStrategy)
        raise ConfigError(f"Unknown fallback strategy {value!r} (expected one of: {valid})") from None


@dataclass
class VaultSettings:
    """
    Settings store for vault node selection.

    Content-type preferences resolve in two layers: a manual override set
    by the user wins; otherwise the node picked by the last health-based
    auto-assignment is used.

    Example:
        settings = VaultSettings(primary_node_url="https://vault1.example.com")
        settings.set_content_type_node(ContentType.MEDIA, "https://media.example.com")
        settings.save(Path("~/.vaultnet/settings.json").expanduser())
    """

    primary_node_url: str = defaults.DEFAULT_VAULT_URL
    strategy: RetrievalStrategy = RetrievalStrategy.AUTO
    content_type_overrides: Dict[ContentType, str] = field(default_factory=dict)
    auto_assigned: Dict[ContentType, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.primary_node_url = self.primary_node_url.rstrip("/")
        self.strategy = parse_strategy(self.strategy)

    # -------------------------------------------------------------------------
    # ConfigProvider
    # -------------------------------------------------------------------------

    def primary_node(self) -> str:
        return self.primary_node_url or defaults.DEFAULT_VAULT_URL

    def fallback_strategy(self) -> RetrievalStrategy:
        return self.strategy

    def node_for_content_type(self, content_type: ContentType) -> Optional[str]:
        content_type = ContentType(content_type)
        return (
            self.content_type_overrides.get(content_type)
            or self.auto_assigned.get(content_type)
        )

    # -------------------------------------------------------------------------
    # MUTATION
    # -------------------------------------------------------------------------

    def set_primary_node(self, url: str) -> None:
        self.primary_node_url = url.rstrip("/")
        logger.debug(f"Primary vault node set to {self.primary_node_url}")

    def set_fallback_strategy(
        self,
        strategy: Union[str, RetrievalStrategy],
        ranked_nodes: Optional[Iterable[VaultNode]] = None,
    ) -> None:
        """
        Change the retrieval strategy.

        Switching to ``auto`` with a latency-ranked node list also makes
        the fastest healthy node the primary.
        """
        self.strategy = parse_strategy(strategy)
        if self.strategy is RetrievalStrategy.AUTO and ranked_nodes is not None:
            fastest = fastest_healthy(ranked_nodes)
            if fastest is not None:
                logger.info(
                    f"Auto-selecting fastest node: {fastest.url} ({fastest.latency_ms}ms)"
                )
                self.set_primary_node(fastest.url)

    def set_content_type_node(self, content_type: Union[str, ContentType], url: str) -> None:
        self.content_type_overrides[ContentType(content_type)] = url.rstrip("/")

    def clear_content_type_node(self, content_type: Union[str, ContentType]) -> None:
        self.content_type_overrides.pop(ContentType(content_type), None)

    def apply_auto_assignment(self, assignment: Dict[ContentType, str]) -> None:
        """Replace the health-derived content-type assignment."""
        self.auto_assigned = {ContentType(k): v.rstrip("/") for k, v in assignment.items()}

    def reset_to_defaults(self) -> None:
        self.primary_node_url = defaults.DEFAULT_VAULT_URL
        self.strategy = RetrievalStrategy.AUTO
        self.content_type_overrides.clear()
        self.auto_assigned.clear()

    # -------------------------------------------------------------------------
    # PERSISTENCE
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "primary_node": self.primary_node_url,
            "fallback_strategy": self.strategy.value,
            "content_type_overrides": {k.value: v for k, v in self.content_type_overrides.items()},
            "auto_assigned": {k.value: v for k, v in self.auto_assigned.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VaultSettings":
        try:
            return cls(
                primary_node_url=data.get("primary_node") or defaults.DEFAULT_VAULT_URL,
                strategy=data.get("fallback_strategy", RetrievalStrategy.AUTO.value),
                content_type_overrides={
                    ContentType(k): v for k, v in (data.get("content_type_overrides") or {}).items()
                },
                auto_assigned={
                    ContentType(k): v for k, v in (data.get("auto_assigned") or {}).items()
                },
            )
        except ValueError as e:
            raise ConfigError(f"Invalid vault settings: {e}") from e

    def save(self, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2, sort_keys=True))

    @classmethod
    def load(cls, path: Path) -> "VaultSettings":
        try:
            data = json.loads(Path(path).read_text())
        except json.JSONDecodeError as e:
            raise ConfigError(f"Settings file {path} is not valid JSON: {e}") from e
        return cls.from_dict(data)

    @classmethod
    def from_env(cls) -> "VaultSettings":
        """
        Build settings from the environment.

        Environment Variables:
            VAULTNET_SETTINGS_FILE      JSON settings file to start from
            VAULTNET_PRIMARY_NODE       Primary node URL
            VAULTNET_FALLBACK_STRATEGY  auto, primary or all
        """
        settings_file = os.environ.get("VAULTNET_SETTINGS_FILE")
        if settings_file and Path(settings_file).exists():
            settings = cls.load(Path(settings_file))
        else:
            settings = cls()

        primary = os.environ.get("VAULTNET_PRIMARY_NODE")
        if primary:
            settings.set_primary_node(primary)
        strategy = os.environ.get("VAULTNET_FALLBACK_STRATEGY")
        if strategy:
            settings.strategy = parse_strategy(strategy)
        return settings
