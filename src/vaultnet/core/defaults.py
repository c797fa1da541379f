"""Centralized configurable defaults for vaultnet.

All tunable parameters in one place. Values that operators commonly
change can be overridden through the environment.
"""

from __future__ import annotations

import os

# Last-resort vault node, used when no preference, primary or registry
# node is available
DEFAULT_VAULT_URL = os.environ.get("VAULTNET_DEFAULT_NODE_URL", "http://localhost:5001")

# Per-request timeouts (seconds)
LIVENESS_TIMEOUT = float(os.environ.get("VAULTNET_LIVENESS_TIMEOUT", "5"))
CAPABILITIES_TIMEOUT = float(os.environ.get("VAULTNET_CAPABILITIES_TIMEOUT", "3"))
READ_TIMEOUT = float(os.environ.get("VAULTNET_READ_TIMEOUT", "10"))
WRITE_TIMEOUT = float(os.environ.get("VAULTNET_WRITE_TIMEOUT", "30"))

# Registry snapshot cache
NODE_CACHE_TTL_SECONDS = 5 * 60

# Latency recorded for nodes that did not answer a probe
UNREACHABLE_LATENCY_MS = 9999.0

# Upload payload defaults
DEFAULT_MIME_TYPE = "application/octet-stream"
NONCE_BYTES = 16

# Node rejection marker for content types it does not store
CONTENT_TYPE_REJECTION_MARKER = "does not accept"

# Length of digest prefixes shown in logs and error messages
CID_LOG_PREFIX = 16
