# src/chainplan/core/network/__init__.py
"""
Contratos dos colaboradores externos da deployment.

- NetworkClient: envio de transações, leituras estáticas e receipts
- ArtifactResolver: nome de contrato → ABI + bytecode
"""

from .interfaces import Artifact, ArtifactResolver, DirectoryArtifactResolver, NetworkClient, Receipt

__all__ = [
    "Artifact",
    "ArtifactResolver",
    "DirectoryArtifactResolver",
    "NetworkClient",
    "Receipt",
]
