"""Shared fixtures for vaultnet tests.

``FakeVaultNode`` is a real HTTP vault node served on localhost by
aiohttp's test server. Tests start nodes with ``serve_nodes`` and point
clients at their URLs, so requests go through the real aiohttp client
stack including timeouts.
"""

from __future__ import annotations

import asyncio
import base64
import socket
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from vaultnet.core.config import VaultSettings, VaultTimeouts
from vaultnet.network.crypto import Ed25519Signer
from vaultnet.storage.content import digest


class FakeVaultNode:
    """In-process vault node with scriptable behaviour.

    Attributes:
        blobs: Stored payloads keyed by CID
        delay: Seconds every request stalls before answering
        health_status: Value reported by /health
        capabilities: Body of /node/info, or None for a 404
        blob_status: If set, /blob/{cid} answers with this status
        store_mode: "ok", "reject" (does not accept), "forbidden" (403)
            or "error" (500)
    """

    def __init__(
        self,
        blobs: Optional[Dict[str, bytes]] = None,
        delay: float = 0.0,
        health_status: str = "healthy",
        capabilities: Optional[Dict[str, Any]] = None,
        blob_status: Optional[int] = None,
        store_mode: str = "ok",
    ) -> None:
        self.blobs = dict(blobs or {})
        self.delay = delay
        self.health_status = health_status
        self.capabilities = capabilities
        self.blob_status = blob_status
        self.store_mode = store_mode

        self.blob_requests = 0
        self.store_requests: List[Dict[str, Any]] = []
        self.server: Optional[TestServer] = None
        self._url: Optional[str] = None
        self._released: Optional[asyncio.Event] = None

    @property
    def url(self) -> str:
        assert self._url is not None, "node not started"
        return self._url

    def put(self, data: bytes) -> str:
        cid = digest(data)
        self.blobs[cid] = data
        return cid

    async def start(self) -> None:
        self._released = asyncio.Event()
        app = web.Application()
        app.router.add_get("/health", self.handle_health)
        app.router.add_get("/node/info", self.handle_info)
        app.router.add_get("/blob/{cid}", self.handle_blob)
        app.router.add_post("/store", self.handle_store)
        self.server = TestServer(app)
        await self.server.start_server()
        # aiohttp resets TestServer.port on close; keep the URL for
        # assertions made after the node has stopped.
        self._url = f"http://{self.server.host}:{self.server.port}"

    async def stop(self) -> None:
        if self._released is not None:
            self._released.set()
        if self.server is not None:
            await self.server.close()

    async def _stall(self) -> None:
        if self.delay <= 0:
            return
        try:
            await asyncio.wait_for(self._released.wait(), self.delay)
        except asyncio.TimeoutError:
            pass

    # -- handlers -------------------------------------------------------------

    async def handle_health(self, request: web.Request) -> web.Response:
        await self._stall()
        return web.json_response({"status": self.health_status})

    async def handle_info(self, request: web.Request) -> web.Response:
        if self.capabilities is None:
            return web.json_response({"error": "Not found"}, status=404)
        return web.json_response(self.capabilities)

    async def handle_blob(self, request: web.Request) -> web.Response:
        self.blob_requests += 1
        await self._stall()
        if self.blob_status is not None:
            return web.json_response({"error": "Unavailable"}, status=self.blob_status)
        data = self.blobs.get(request.match_info["cid"])
        if data is None:
            return web.json_response({"error": "Blob not found"}, status=404)
        return web.json_response({"ciphertext": base64.b64encode(data).decode("ascii")})

    async def handle_store(self, request: web.Request) -> web.Response:
        body = await request.json()
        self.store_requests.append(body)
        await self._stall()

        if self.store_mode == "reject":
            return web.json_response(
                {"error": "This node does not accept this content type"}, status=400
            )
        if self.store_mode == "forbidden":
            return web.json_response({"error": "Forbidden"}, status=403)
        if self.store_mode == "error":
            return web.json_response({"error": "Disk full"}, status=500)

        cid = self.put(base64.b64decode(body["ciphertext"]))
        return web.json_response({
            "success": True,
            "cid": cid,
            "timestamp": int(time.time() * 1000),
            "replicationStatus": {"target": 3, "confirmed": 1},
        })


@asynccontextmanager
async def serve_nodes(*nodes: FakeVaultNode):
    """Run fake nodes for the duration of the block."""
    try:
        for node in nodes:
            await node.start()
        yield nodes
    finally:
        for node in nodes:
            await node.stop()


def closed_port_url() -> str:
    """URL of a localhost port nothing listens on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return f"http://127.0.0.1:{port}"


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def fast_timeouts():
    """Short per-request bounds so timeout paths run quickly."""
    return VaultTimeouts(liveness=0.3, capabilities=0.3, read=0.3, write=0.3)


@pytest.fixture
def signer():
    return Ed25519Signer.generate()


@pytest.fixture
def settings():
    return VaultSettings(primary_node_url="http://primary.invalid")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep host configuration out of tests."""
    for name in (
        "VAULTNET_PRIMARY_NODE",
        "VAULTNET_FALLBACK_STRATEGY",
        "VAULTNET_SETTINGS_FILE",
        "VAULTNET_NODES",
        "VAULTNET_SIGNING_KEY",
    ):
        monkeypatch.delenv(name, raising=False)
