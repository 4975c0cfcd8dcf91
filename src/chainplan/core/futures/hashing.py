"""
Fingerprint canônico de futures do Chainplan.

O fingerprint representa a **identidade de conteúdo** de um future
(tipo, contrato, método, argumentos, overrides e dependências) e é
gravado no journal junto ao registro `completed`.

Uso:
    - detectar, numa nova execução, que um future já concluído foi
      alterado no módulo (o journal não pode ser reaproveitado)

Política de hashing (v1):
    - Serialização JSON canônica (chaves ordenadas, separadores compactos)
    - FutureRef → {"$ref": id}; bytes → {"$bytes": hex}; tuplas → listas
    - Codificação UTF-8
    - SHA-256

Limites explícitos:
    - Não inclui valores resolvidos, apenas a definição
    - Não persiste nada
"""

import hashlib
import json
from typing import Any

from .types import Future, FutureRef


def _canonical(value: Any) -> Any:
    if isinstance(value, FutureRef):
        return {"$ref": value.id}
    if isinstance(value, (bytes, bytearray)):
        return {"$bytes": bytes(value).hex()}
    if isinstance(value, (list, tuple)):
        return [_canonical(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _canonical(v) for k, v in value.items()}
    return value


def compute_future_fingerprint(future: Future) -> str:
    """
    Gera o fingerprint SHA-256 determinístico de um future.

    Futures estruturalmente equivalentes (mesmo conteúdo de `describe()`)
    produzem o mesmo fingerprint, independentemente da ordem de chaves.

    Returns:
        str: Hash hexadecimal SHA-256 (64 caracteres).
    """
    payload = _canonical(future.describe())
    raw = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()
