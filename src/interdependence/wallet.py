"""
Wallet provider contract and a local Ed25519 wallet.

Signing is delegated to a wallet provider exposing three capabilities:
requesting account access, signing a message and reporting the signer's
address. :class:`Ed25519Wallet` implements them with the ``cryptography``
package so signatures can be produced outside a browser.

Provides:
- WalletProvider: protocol accepted by the relay's sign request
- Ed25519Wallet: local wallet backed by a 32-byte seed
- verify_message(message, signature_hex, address): check a signature
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Protocol, runtime_checkable

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

__all__ = ["Ed25519Wallet", "WalletProvider", "verify_message"]


@runtime_checkable
class WalletProvider(Protocol):
    """Capabilities a wallet must expose for declaration signing."""

    async def request_accounts(self) -> list[str]:
        """Ask the wallet for account access and return the granted accounts."""

    async def sign_message(self, message: str) -> str:
        """Sign ``message`` and return the signature as text."""

    async def get_address(self) -> str:
        """Return the address of the signing account."""


class Ed25519Wallet:
    """
    Wallet that signs declaration text with an Ed25519 key.

    Args:
    ----
        private_key: 32-byte Ed25519 seed.

    Attributes:
    ----------
        address: Hex-encoded public key, used as the signer address.

    """

    def __init__(self, private_key: bytes) -> None:
        if len(private_key) != 32:
            raise ValueError("private_key must be exactly 32 bytes for Ed25519")
        self._priv = Ed25519PrivateKey.from_private_bytes(bytes(private_key))
        pub_bytes = self._priv.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        self.address = pub_bytes.hex()
        self._unlocked = False

    @classmethod
    def generate(cls) -> Ed25519Wallet:
        """Return a wallet with a random seed, for testing."""

        return cls(os.urandom(32))

    @classmethod
    def from_seed_hex(cls, seed_hex: str) -> Ed25519Wallet:
        """Build a wallet from a hex seed, allowing an optional ``0x`` prefix."""

        seed = seed_hex.strip()
        if seed.startswith(("0x", "0X")):
            seed = seed[2:]
        try:
            raw = bytes.fromhex(seed)
        except ValueError as exc:
            raise ValueError("Wallet seed must be hex encoded") from exc
        return cls(raw)

    @classmethod
    def from_key_file(cls, path: str | Path) -> Ed25519Wallet:
        return cls.from_seed_hex(Path(path).read_text(encoding="utf-8"))

    async def request_accounts(self) -> list[str]:
        self._unlocked = True
        return [self.address]

    async def sign_message(self, message: str) -> str:
        """
        Sign the UTF-8 bytes of ``message``.

        The message is the declaration text itself, which binds the signature
        to the content being endorsed.
        """
        if not self._unlocked:
            raise PermissionError("Account access has not been requested")
        return self._priv.sign(message.encode("utf-8")).hex()

    async def get_address(self) -> str:
        return self.address


def verify_message(message: str, signature_hex: str, address: str) -> bool:
    """
    Verify an Ed25519 signature over ``message``.

    Returns ``False`` for malformed hex, keys of the wrong length or a
    signature that does not match.
    """
    pk = address
    if pk.startswith(("0x", "0X")):
        pk = pk[2:]
    # 64 hex chars = 32-byte Ed25519 public key
    if len(pk) != 64:
        return False
    try:
        pub = Ed25519PublicKey.from_public_bytes(bytes.fromhex(pk))
        pub.verify(bytes.fromhex(signature_hex), message.encode("utf-8"))
    except (ValueError, InvalidSignature):
        return False
    return True
