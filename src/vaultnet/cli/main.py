#!/usr/bin/env python3
"""
vaultnet CLI - inspect vault nodes and move blobs in and out of them.

Commands:
  vaultnet digest <file>                 Print the CID of a file
  vaultnet health [URL ...]              Probe nodes, fastest first
  vaultnet candidates [--content-type T] Show the candidate node order
  vaultnet get <cid> [--out FILE]        Retrieve and verify a blob
  vaultnet put <file> --type T           Store a file (needs a signing key)

Environment Variables:
  VAULTNET_PRIMARY_NODE       Primary node URL
  VAULTNET_FALLBACK_STRATEGY  auto, primary or all
  VAULTNET_NODES              Comma-separated registry node URLs
  VAULTNET_SETTINGS_FILE      JSON settings file
  VAULTNET_SIGNING_KEY        Hex Ed25519 private key seed for uploads

Example:
  # Fetch a blob, cross-checking every node
  vaultnet get 3a7bd3e2... --strategy all --out blob.bin

  # Probe nodes and store the content-type assignment
  vaultnet --node https://vault2.example.com health --assign --save
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import List

from ..core.config import VaultSettings
from ..core.exceptions import (
    ConfigError,
    ConsistencyViolationError,
    IntegrityViolationError,
    VaultError,
)
from ..network.client import VaultClient, create_vault_client
from ..network.crypto import Ed25519Signer
from ..network.health import assign_content_type_nodes, probe_nodes
from ..network.upload import UploadContext
from ..storage.content import digest
from ..storage.models import AuthorizationType, ContentType, RetrievalStrategy, VaultNode

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_TAMPERED = 2


# =============================================================================
# HELPERS
# =============================================================================


def get_node_urls(args: argparse.Namespace) -> List[str]:
    """Registry nodes from --node flags, else VAULTNET_NODES."""
    if args.node:
        return [url.rstrip("/") for url in args.node]
    env_nodes = os.environ.get("VAULTNET_NODES", "")
    return [url.strip().rstrip("/") for url in env_nodes.split(",") if url.strip()]


def get_settings(args: argparse.Namespace) -> VaultSettings:
    settings = VaultSettings.from_env()
    if args.primary:
        settings.set_primary_node(args.primary)
    if getattr(args, "strategy", None):
        settings.set_fallback_strategy(args.strategy)
    return settings


def get_client(args: argparse.Namespace, with_signer: bool = False) -> VaultClient:
    signer = None
    if with_signer:
        key = os.environ.get("VAULTNET_SIGNING_KEY")
        if not key:
            raise ConfigError("VAULTNET_SIGNING_KEY is not set")
        signer = Ed25519Signer.from_hex(key)
    return create_vault_client(
        node_urls=get_node_urls(args),
        settings=get_settings(args),
        signer=signer,
    )


def report_error(error: VaultError) -> int:
    """Print a typed error and map it to an exit code."""
    print(f"❌ [{error.code}] {error}", file=sys.stderr)
    if isinstance(error, (IntegrityViolationError, ConsistencyViolationError)):
        return EXIT_TAMPERED
    return EXIT_ERROR


# =============================================================================
# COMMANDS
# =============================================================================


def cmd_digest(args: argparse.Namespace) -> int:
    """Print the CID of a file."""
    path = Path(args.file)
    if not path.is_file():
        print(f"❌ No such file: {path}", file=sys.stderr)
        return EXIT_ERROR
    print(digest(path.read_bytes()))
    return EXIT_OK


async def cmd_health(args: argparse.Namespace) -> int:
    """Probe nodes and print them fastest first."""
    urls = args.urls or get_node_urls(args)
    settings = get_settings(args)
    if not urls:
        urls = [settings.primary_node()]

    nodes = [VaultNode(node_id=f"node-{i}", url=url) for i, url in enumerate(urls)]
    ranked = await probe_nodes(nodes)

    assignment = assign_content_type_nodes(ranked) if args.assign else {}
    if args.assign and args.save:
        settings_file = os.environ.get("VAULTNET_SETTINGS_FILE")
        if not settings_file:
            print("❌ VAULTNET_SETTINGS_FILE is not set", file=sys.stderr)
            return EXIT_ERROR
        settings.apply_auto_assignment(assignment)
        settings.save(Path(settings_file))

    if args.json:
        result = {"nodes": [node.to_dict() for node in ranked]}
        if args.assign:
            result["assignment"] = {k.value: v for k, v in assignment.items()}
        print(json.dumps(result, indent=2))
        return EXIT_OK

    healthy = sum(1 for node in ranked if node.healthy)
    print(f"Vault Nodes ({healthy}/{len(ranked)} healthy):\n")
    print(f"{'URL':<48}  {'Status':<8}  {'Latency':>9}  Content types")
    print("-" * 90)
    for node in ranked:
        icon = "🟢" if node.healthy else "🔴"
        latency = f"{node.latency_ms:.0f}ms" if node.healthy else "-"
        types = node.capabilities.to_dict()["contentTypes"] if node.capabilities else "?"
        if isinstance(types, list):
            types = ",".join(types)
        print(f"{node.url:<48}  {icon:<8}  {latency:>9}  {types}")

    if args.assign:
        print("\nContent-type assignment:")
        for content_type in ContentType:
            print(f"   {content_type.value:<10} {assignment.get(content_type, '-')}")

    return EXIT_OK


async def cmd_candidates(args: argparse.Namespace) -> int:
    """Print the resolved candidate order."""
    client = get_client(args)
    content_type = ContentType(args.content_type) if args.content_type else None
    try:
        urls = await client.resolve_candidates(content_type)
    except VaultError as e:
        return report_error(e)

    for position, url in enumerate(urls, start=1):
        print(f"{position}. {url}")
    return EXIT_OK


async def cmd_get(args: argparse.Namespace) -> int:
    """Retrieve a blob and verify it against its CID."""
    client = get_client(args)
    try:
        if args.verify_all:
            result = await client.retrieve_verified(args.cid)
            data = result.data
            print(
                f"✅ Consistency verified: {result.verified_nodes}/{result.total_nodes} nodes agree",
                file=sys.stderr,
            )
        else:
            data = await client.retrieve(args.cid)
    except VaultError as e:
        return report_error(e)

    if args.out:
        Path(args.out).write_bytes(data)
        print(f"✅ Wrote {len(data)} bytes to {args.out}", file=sys.stderr)
    else:
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()
    return EXIT_OK


async def cmd_put(args: argparse.Namespace) -> int:
    """Store a file on the first node that accepts it."""
    path = Path(args.file)
    if not path.is_file():
        print(f"❌ No such file: {path}", file=sys.stderr)
        return EXIT_ERROR

    auth_type = AuthorizationType(args.type)
    context = UploadContext(participants=args.participant or None, post_id=args.post_id)
    if auth_type in (AuthorizationType.GROUP_POST, AuthorizationType.GROUP_COMMENT):
        context.group_posts_address = args.context_id
    elif auth_type is AuthorizationType.MESSAGE:
        context.thread_id = args.context_id
    elif auth_type is AuthorizationType.MEDIA:
        context.media_id = args.context_id
    else:
        context.listing_id = args.context_id

    try:
        client = get_client(args, with_signer=True)
        response = await client.store(path.read_bytes(), auth_type, context, mime_type=args.mime_type)
    except VaultError as e:
        return report_error(e)

    if args.json:
        result = response.to_dict()
        result["node"] = response.node_url
        print(json.dumps(result, indent=2))
    else:
        print(f"✅ Stored on {response.node_url}")
        print(f"   CID: {response.cid}")
        if response.replication_status:
            status = response.replication_status
            print(f"   Replication: {status.confirmed}/{status.target}")
    return EXIT_OK


# =============================================================================
# PARSER
# =============================================================================


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="vaultnet",
        description="Verified storage access for vault nodes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Verbose output",
    )
    parser.add_argument(
        "--node",
        action="append",
        metavar="URL",
        help="Registry node URL, repeatable (env: VAULTNET_NODES)",
    )
    parser.add_argument(
        "--primary",
        metavar="URL",
        help="Primary node URL (env: VAULTNET_PRIMARY_NODE)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # digest command
    digest_parser = subparsers.add_parser("digest", help="Print the CID of a file")
    digest_parser.add_argument("file", help="File to hash")

    # health command
    health_parser = subparsers.add_parser("health", help="Probe vault nodes")
    health_parser.add_argument("urls", nargs="*", help="Node URLs (default: configured nodes)")
    health_parser.add_argument(
        "--assign",
        action="store_true",
        help="Compute the per-content-type node assignment",
    )
    health_parser.add_argument(
        "--save",
        action="store_true",
        help="Save the assignment to VAULTNET_SETTINGS_FILE",
    )
    health_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # candidates command
    candidates_parser = subparsers.add_parser("candidates", help="Show candidate node order")
    candidates_parser.add_argument(
        "--content-type",
        "-c",
        choices=[ct.value for ct in ContentType],
        help="Content type whose preferred node goes first",
    )

    # get command
    get_parser = subparsers.add_parser("get", help="Retrieve and verify a blob")
    get_parser.add_argument("cid", help="Content identifier")
    get_parser.add_argument(
        "--strategy",
        "-s",
        choices=[s.value for s in RetrievalStrategy],
        help="Retrieval strategy (env: VAULTNET_FALLBACK_STRATEGY)",
    )
    get_parser.add_argument("--out", "-o", metavar="FILE", help="Write the blob to FILE")
    get_parser.add_argument(
        "--verify-all",
        action="store_true",
        help="Cross-check every node and report agreement",
    )

    # put command
    put_parser = subparsers.add_parser("put", help="Store a file")
    put_parser.add_argument("file", help="File to store")
    put_parser.add_argument(
        "--type",
        "-t",
        required=True,
        choices=[t.value for t in AuthorizationType],
        help="Authorization type",
    )
    put_parser.add_argument(
        "--context-id",
        default="",
        help="Group posts address, thread, media or listing id",
    )
    put_parser.add_argument("--post-id", type=int, help="Parent post id for comments")
    put_parser.add_argument(
        "--participant",
        action="append",
        help="Thread participant address, repeatable",
    )
    put_parser.add_argument(
        "--mime-type",
        default="application/octet-stream",
        help="MIME type recorded with the blob",
    )
    put_parser.add_argument("--json", action="store_true", help="Output as JSON")

    return parser


async def async_main(args: argparse.Namespace) -> int:
    """Dispatch async commands."""
    commands = {
        "health": cmd_health,
        "candidates": cmd_candidates,
        "get": cmd_get,
        "put": cmd_put,
    }
    handler = commands.get(args.command)
    if handler is None:
        return EXIT_OK
    return await handler(args)


def main(argv: List[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)

    if not args.command:
        parser.print_help()
        return EXIT_OK

    if args.command == "digest":
        return cmd_digest(args)

    try:
        return asyncio.run(async_main(args))
    except VaultError as e:
        return report_error(e)


if __name__ == "__main__":
    sys.exit(main())
