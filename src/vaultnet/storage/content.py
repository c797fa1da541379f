"""Content addressing for vault payloads.

A content identifier (CID) is the lower-case hex SHA-256 digest of the
exact payload bytes. It is both the storage key and the integrity anchor:
every read is checked against it before the bytes are handed back.
"""

from __future__ import annotations

import hashlib
import logging
import re

from ..core.defaults import CID_LOG_PREFIX
from ..core.exceptions import IntegrityViolationError

logger = logging.getLogger(__name__)

_CID_RE = re.compile(r"^[0-9a-f]{64}$")


def digest(data: bytes) -> str:
    """Compute the CID of ``data``. No normalization is applied."""
    return hashlib.sha256(data).hexdigest()


def normalize_cid(cid: str) -> str:
    """Strip an optional ``0x`` prefix and lower-case."""
    cid = cid.strip().lower()
    if cid.startswith("0x"):
        cid = cid[2:]
    return cid


def is_valid_cid(cid: str) -> bool:
    return bool(_CID_RE.match(normalize_cid(cid)))


def verify(data: bytes, expected_cid: str, node_url: str = "") -> None:
    """
    Check that ``data`` hashes to ``expected_cid``.

    Args:
        data: Payload bytes as returned by a node
        expected_cid: The CID that was requested
        node_url: Node that served the bytes, recorded for forensics

    Raises:
        IntegrityViolationError: If the digest does not match
    """
    expected = normalize_cid(expected_cid)
    actual = digest(data)
    if actual != expected:
        logger.error(
            f"Data integrity violation from {node_url or 'unknown node'}: "
            f"expected {expected[:CID_LOG_PREFIX]}..., got {actual[:CID_LOG_PREFIX]}..."
        )
        raise IntegrityViolationError(expected=expected, actual=actual, node_url=node_url)
