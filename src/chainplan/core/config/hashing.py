# src/chainplan/core/config/hashing.py
"""
Hash canônico da configuração efetiva.

Política de hashing (v1):
    - JSON canônico (chaves ordenadas, separadores compactos)
    - UTF-8
    - SHA-256

O hash acompanha o evento "plan ready" do log estruturado (emitido por
`deploy`) para associar uma execução à configuração que a produziu.
"""

import hashlib
import json
from typing import Any, Dict


def compute_config_hash(config: Dict[str, Any]) -> str:
    """
    Gera o hash SHA-256 determinístico da configuração.

    Configurações estruturalmente equivalentes produzem o mesmo hash,
    independentemente da ordem original das chaves.

    Raises:
        TypeError: Se `config` não for um dicionário.
    """
    if not isinstance(config, dict):
        raise TypeError(f"Config to hash must be a dict, got: {type(config).__name__}")

    canonical_json = json.dumps(
        config,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()
