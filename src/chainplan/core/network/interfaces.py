# src/chainplan/core/network/interfaces.py
"""
Protocolos dos colaboradores externos do engine.

O engine nunca fala diretamente com um nó RPC nem com um compilador:
depende apenas destes contratos estruturais, que podem ser implementados
por um cliente real ou por dublês de teste.

Contrato de `NetworkClient`:
    - send_deployment_transaction(...) → tx_id
    - send_call_transaction(...)       → tx_id
    - static_call(...)                 → valor decodificado
    - wait_for_receipt(tx_id)          → Receipt (mapping)
    - get_pending_transaction(future_id) → tx_id já enviado para o future, ou None

Formato de Receipt (mapping):
    {
      "status": 1 | 0,
      "contract_address": "0x..." | None,
      "logs": [{"address": "0x...", "topics": ["0x..", ...], "data": "0x..."}],
      "revert_reason": "..."          # opcional, apenas quando status == 0
    }

Erros esperados do colaborador:
    - TransientNetworkError / ReceiptTimeoutError → retryable
    - InsufficientFundsError / NonceConflictError → fatais
    - TimeoutError / ConnectionError (builtins)   → tratados como transitórios
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Protocol, Sequence, Union, runtime_checkable


Receipt = Mapping[str, Any]


@dataclass(frozen=True)
class Artifact:
    """ABI + bytecode de um contrato compilado."""
    contract_name: str
    abi: Sequence[Mapping[str, Any]]
    bytecode: str = ""

    def entries(self, type_: str, name: Optional[str] = None) -> list:
        return [
            e for e in self.abi
            if e.get("type") == type_ and (name is None or e.get("name") == name)
        ]

    @property
    def constructor(self) -> Optional[Mapping[str, Any]]:
        found = self.entries("constructor")
        return found[0] if found else None


@runtime_checkable
class ArtifactResolver(Protocol):
    def load_artifact(self, contract_name: str) -> Artifact:
        ...


@runtime_checkable
class NetworkClient(Protocol):
    def send_deployment_transaction(
        self,
        bytecode: str,
        args: Sequence[Any],
        *,
        future_id: str,
        overrides: Mapping[str, Any],
        constructor: Optional[Mapping[str, Any]] = None,
    ) -> str:
        ...

    def send_call_transaction(
        self,
        address: str,
        abi_entry: Mapping[str, Any],
        args: Sequence[Any],
        *,
        future_id: str,
        overrides: Mapping[str, Any],
    ) -> str:
        ...

    def static_call(
        self,
        address: str,
        abi_entry: Mapping[str, Any],
        args: Sequence[Any],
        *,
        overrides: Mapping[str, Any],
    ) -> Any:
        ...

    def wait_for_receipt(self, tx_id: str) -> Receipt:
        ...

    def get_pending_transaction(self, future_id: str) -> Optional[str]:
        ...


class DirectoryArtifactResolver:
    """
    Resolve artefatos a partir de um diretório de arquivos `<Contrato>.json`.

    Cada arquivo deve conter ao menos `abi` (lista) e `bytecode` (hex).
    Artefatos lidos são mantidos em cache.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        self._cache: Dict[str, Artifact] = {}

    def load_artifact(self, contract_name: str) -> Artifact:
        if contract_name in self._cache:
            return self._cache[contract_name]

        path = self.root / f"{contract_name}.json"
        if not path.exists():
            raise FileNotFoundError(f"Artifact not found for contract '{contract_name}': {path}")

        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)

        abi = data.get("abi")
        if not isinstance(abi, list):
            raise ValueError(f"Artifact '{path}' must contain an 'abi' list")

        artifact = Artifact(contract_name=contract_name, abi=tuple(abi), bytecode=str(data.get("bytecode") or ""))
        self._cache[contract_name] = artifact
        return artifact
