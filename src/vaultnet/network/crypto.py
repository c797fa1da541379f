"""
Signing for vault storage authorizations.

Provides:
- The canonical authorization message vault nodes verify
- A ``Signer`` protocol callers implement with their own key custody
- ``Ed25519Signer``, a local signer backed by an Ed25519 key

The sender address of an Ed25519 signer is its raw public key in hex.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

from ..core.exceptions import ConfigError
from ..storage.models import AuthorizationType, StorageAuthorization

# Must match the template the vault nodes rebuild before verifying
SIGNATURE_MESSAGE_TEMPLATE = (
    "HASHD Vault Storage Request\n"
    "Type: {type}\n"
    "Content Hash: {content_hash}\n"
    "Context: {context}\n"
    "Timestamp: {timestamp}\n"
    "Nonce: {nonce}"
)


@dataclass(frozen=True)
class SignedMessage:
    """Signature over a message plus the address that produced it."""
    address: str
    signature: str


class Signer(Protocol):
    """Anything that can sign authorization messages."""

    def sign(self, message: str) -> SignedMessage: ...


def create_signature_message(
    auth_type: Union[AuthorizationType, str],
    content_hash: str,
    context: str,
    timestamp: int,
    nonce: str,
) -> str:
    """Build the canonical message signed for a storage authorization."""
    return SIGNATURE_MESSAGE_TEMPLATE.format(
        type=AuthorizationType(auth_type).value,
        content_hash=content_hash,
        context=context,
        timestamp=timestamp,
        nonce=nonce,
    )


class Ed25519Signer:
    """Signs authorization messages with a local Ed25519 key."""

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key = private_key
        self.address = private_key.public_key().public_bytes_raw().hex()

    @classmethod
    def generate(cls) -> "Ed25519Signer":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_hex(cls, seed_hex: str) -> "Ed25519Signer":
        """Load a signer from a hex-encoded 32-byte private key seed."""
        try:
            seed = bytes.fromhex(seed_hex.strip())
            return cls(Ed25519PrivateKey.from_private_bytes(seed))
        except ValueError as e:
            raise ConfigError(f"Invalid Ed25519 signing key: {e}") from e

    def sign(self, message: str) -> SignedMessage:
        signature = self._private_key.sign(message.encode())
        return SignedMessage(address=self.address, signature=signature.hex())


def verify_authorization(authorization: StorageAuthorization, context: str) -> bool:
    """
    Check an authorization's signature against its sender key.

    Args:
        authorization: The authorization as sent to the node
        context: The context string the authorization was signed with

    Returns:
        True if the signature is valid, False otherwise
    """
    message = create_signature_message(
        authorization.type,
        authorization.content_hash,
        context,
        authorization.timestamp,
        authorization.nonce,
    )
    try:
        public_key = Ed25519PublicKey.from_public_bytes(bytes.fromhex(authorization.sender))
        public_key.verify(bytes.fromhex(authorization.signature), message.encode())
        return True
    except InvalidSignature:
        return False
    except (ValueError, TypeError):
        return False
