"""Interdependence - publish, co-sign and resolve declarations on Arweave."""

from __future__ import annotations

from importlib import import_module
from typing import Any, TYPE_CHECKING

__all__ = [
    "ArweaveLedgerClient",
    "DeclarationResolver",
    "Ed25519Wallet",
    "RelayClient",
    "ResolvedDeclaration",
    "SignatureAggregator",
    "SignatureRecord",
    "collect_signatures",
    "resolve_declaration",
]

if TYPE_CHECKING:
    from .ledger import ArweaveLedgerClient
    from .models import ResolvedDeclaration, SignatureRecord
    from .relay import RelayClient
    from .resolver import DeclarationResolver, resolve_declaration
    from .signatures import SignatureAggregator, collect_signatures
    from .wallet import Ed25519Wallet


def __getattr__(name: str) -> Any:
    """Lazily import submodules to avoid eager dependency loading."""

    module_map = {
        "ArweaveLedgerClient": "ledger",
        "DeclarationResolver": "resolver",
        "Ed25519Wallet": "wallet",
        "RelayClient": "relay",
        "ResolvedDeclaration": "models",
        "SignatureAggregator": "signatures",
        "SignatureRecord": "models",
        "collect_signatures": "signatures",
        "resolve_declaration": "resolver",
    }

    if name not in module_map:
        raise AttributeError(name)

    module = import_module(f".{module_map[name]}", __name__)
    return getattr(module, name)
