# src/chainplan/core/futures/__init__.py
"""
Modelo de grafo de futures do Chainplan.

API pública:
    - FutureKind, FutureRef, Future e subclasses por tipo
    - ContractHandle
    - compute_future_fingerprint
"""

from .hashing import compute_future_fingerprint
from .types import (
    CONTRACT_KINDS,
    TRANSACTION_KINDS,
    AccountRefFuture,
    CallFuture,
    ContractAtFuture,
    ContractHandle,
    DeployContractFuture,
    Future,
    FutureKind,
    FutureRef,
    LiteralFuture,
    ReadEventArgumentFuture,
    StaticCallFuture,
)

__all__ = [
    "CONTRACT_KINDS",
    "TRANSACTION_KINDS",
    "AccountRefFuture",
    "CallFuture",
    "ContractAtFuture",
    "ContractHandle",
    "DeployContractFuture",
    "Future",
    "FutureKind",
    "FutureRef",
    "LiteralFuture",
    "ReadEventArgumentFuture",
    "StaticCallFuture",
    "compute_future_fingerprint",
]
