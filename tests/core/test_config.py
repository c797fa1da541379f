"""Tests for vaultnet settings (core/config.py).

Tests cover:
- Strategy parsing
- Content-type preference layering (override over auto-assignment)
- Auto-selection of the fastest node when switching to auto
- JSON persistence and environment loading
"""

from __future__ import annotations

import json

import pytest

from vaultnet.core import defaults
from vaultnet.core.config import VaultSettings, VaultTimeouts, parse_strategy
from vaultnet.core.exceptions import ConfigError
from vaultnet.storage.models import ContentType, RetrievalStrategy, VaultNode


class TestParseStrategy:
    def test_known_values(self):
        assert parse_strategy("auto") is RetrievalStrategy.AUTO
        assert parse_strategy("primary") is RetrievalStrategy.PRIMARY
        assert parse_strategy(RetrievalStrategy.ALL) is RetrievalStrategy.ALL

    def test_unknown_value_raises_config_error(self):
        with pytest.raises(ConfigError) as exc_info:
            parse_strategy("fastest")
        assert "fastest" in str(exc_info.value)
        assert exc_info.value.code == "CONFIG_ERROR"


class TestTimeouts:
    def test_defaults(self):
        timeouts = VaultTimeouts()
        assert timeouts.liveness == defaults.LIVENESS_TIMEOUT
        assert timeouts.read == defaults.READ_TIMEOUT
        assert timeouts.write == defaults.WRITE_TIMEOUT

    def test_read_and_write_bounds_ordering(self):
        """Writes carry larger payloads than reads."""
        timeouts = VaultTimeouts()
        assert timeouts.capabilities <= timeouts.liveness <= timeouts.read <= timeouts.write


class TestVaultSettings:
    def test_defaults(self):
        settings = VaultSettings()
        assert settings.primary_node() == defaults.DEFAULT_VAULT_URL
        assert settings.fallback_strategy() is RetrievalStrategy.AUTO
        assert settings.node_for_content_type(ContentType.MEDIA) is None

    def test_trailing_slash_stripped(self):
        settings = VaultSettings(primary_node_url="https://vault1.example.com/")
        assert settings.primary_node() == "https://vault1.example.com"

    def test_string_strategy_coerced(self):
        settings = VaultSettings(strategy="all")
        assert settings.fallback_strategy() is RetrievalStrategy.ALL

    def test_override_wins_over_auto_assignment(self):
        settings = VaultSettings()
        settings.apply_auto_assignment({ContentType.MEDIA: "https://auto.example.com"})
        assert settings.node_for_content_type(ContentType.MEDIA) == "https://auto.example.com"

        settings.set_content_type_node(ContentType.MEDIA, "https://manual.example.com/")
        assert settings.node_for_content_type(ContentType.MEDIA) == "https://manual.example.com"

        settings.clear_content_type_node(ContentType.MEDIA)
        assert settings.node_for_content_type(ContentType.MEDIA) == "https://auto.example.com"

    def test_clear_missing_override_is_noop(self):
        settings = VaultSettings()
        settings.clear_content_type_node("posts")
        assert settings.content_type_overrides == {}

    def test_switch_to_auto_selects_fastest_healthy(self):
        ranked = [
            VaultNode(node_id="a", url="https://down.example.com", healthy=False, latency_ms=1.0),
            VaultNode(node_id="b", url="https://fast.example.com", healthy=True, latency_ms=12.0),
            VaultNode(node_id="c", url="https://slow.example.com", healthy=True, latency_ms=80.0),
        ]
        settings = VaultSettings(strategy="primary")
        settings.set_fallback_strategy("auto", ranked)

        assert settings.fallback_strategy() is RetrievalStrategy.AUTO
        assert settings.primary_node() == "https://fast.example.com"

    def test_switch_to_primary_keeps_primary(self):
        ranked = [VaultNode(node_id="b", url="https://fast.example.com", healthy=True, latency_ms=1.0)]
        settings = VaultSettings(primary_node_url="https://mine.example.com")
        settings.set_fallback_strategy(RetrievalStrategy.PRIMARY, ranked)
        assert settings.primary_node() == "https://mine.example.com"

    def test_invalid_strategy_rejected(self):
        settings = VaultSettings()
        with pytest.raises(ConfigError):
            settings.set_fallback_strategy("random")
        assert settings.fallback_strategy() is RetrievalStrategy.AUTO

    def test_reset_to_defaults(self):
        settings = VaultSettings(primary_node_url="https://x.example.com", strategy="all")
        settings.set_content_type_node(ContentType.POSTS, "https://p.example.com")
        settings.apply_auto_assignment({ContentType.MEDIA: "https://m.example.com"})

        settings.reset_to_defaults()

        assert settings.primary_node() == defaults.DEFAULT_VAULT_URL
        assert settings.fallback_strategy() is RetrievalStrategy.AUTO
        assert settings.node_for_content_type(ContentType.POSTS) is None
        assert settings.node_for_content_type(ContentType.MEDIA) is None


class TestPersistence:
    def test_save_and_load(self, tmp_path):
        settings = VaultSettings(primary_node_url="https://vault1.example.com", strategy="all")
        settings.set_content_type_node(ContentType.MESSAGES, "https://msg.example.com")
        settings.apply_auto_assignment({ContentType.LISTINGS: "https://shop.example.com"})

        path = tmp_path / "nested" / "settings.json"
        settings.save(path)
        loaded = VaultSettings.load(path)

        assert loaded == settings
        data = json.loads(path.read_text())
        assert data["fallback_strategy"] == "all"
        assert data["content_type_overrides"] == {"messages": "https://msg.example.com"}

    def test_load_invalid_json(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError):
            VaultSettings.load(path)

    def test_from_dict_unknown_content_type(self):
        with pytest.raises(ConfigError):
            VaultSettings.from_dict({"content_type_overrides": {"videos": "https://v.example.com"}})

    def test_from_dict_empty_uses_defaults(self):
        settings = VaultSettings.from_dict({})
        assert settings.primary_node() == defaults.DEFAULT_VAULT_URL
        assert settings.fallback_strategy() is RetrievalStrategy.AUTO


class TestFromEnv:
    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("VAULTNET_PRIMARY_NODE", "https://env.example.com/")
        monkeypatch.setenv("VAULTNET_FALLBACK_STRATEGY", "primary")

        settings = VaultSettings.from_env()

        assert settings.primary_node() == "https://env.example.com"
        assert settings.fallback_strategy() is RetrievalStrategy.PRIMARY

    def test_env_applies_on_top_of_settings_file(self, monkeypatch, tmp_path):
        path = tmp_path / "settings.json"
        stored = VaultSettings(primary_node_url="https://file.example.com", strategy="all")
        stored.set_content_type_node(ContentType.MEDIA, "https://media.example.com")
        stored.save(path)

        monkeypatch.setenv("VAULTNET_SETTINGS_FILE", str(path))
        monkeypatch.setenv("VAULTNET_FALLBACK_STRATEGY", "auto")

        settings = VaultSettings.from_env()

        assert settings.primary_node() == "https://file.example.com"
        assert settings.fallback_strategy() is RetrievalStrategy.AUTO
        assert settings.node_for_content_type(ContentType.MEDIA) == "https://media.example.com"

    def test_missing_settings_file_ignored(self, monkeypatch, tmp_path):
        monkeypatch.setenv("VAULTNET_SETTINGS_FILE", str(tmp_path / "absent.json"))
        assert VaultSettings.from_env() == VaultSettings()

    def test_invalid_env_strategy(self, monkeypatch):
        monkeypatch.setenv("VAULTNET_FALLBACK_STRATEGY", "sometimes")
        with pytest.raises(ConfigError):
            VaultSettings.from_env()
