# src/chainplan/core/journal/codec.py
"""
Codec de valores resolvidos para o journal (JSON).

Tipos especiais:
    - ContractHandle → {"$contract": {"address", "contract_name", "abi"}}
    - bytes          → {"$bytes": "<hex>"}
    - tuple          → {"$tuple": [...]}

Listas, dicts e escalares JSON passam sem transformação. A decodificação
é o inverso exato, de forma que o valor reaproveitado de um registro
`completed` é igual ao valor produzido na execução original.
"""

from __future__ import annotations

from typing import Any

from chainplan.core.futures.types import ContractHandle


def encode_value(value: Any) -> Any:
    if isinstance(value, ContractHandle):
        return {
            "$contract": {
                "address": value.address,
                "contract_name": value.contract_name,
                "abi": [dict(e) for e in value.abi],
            }
        }
    if isinstance(value, (bytes, bytearray)):
        return {"$bytes": bytes(value).hex()}
    if isinstance(value, tuple):
        return {"$tuple": [encode_value(v) for v in value]}
    if isinstance(value, list):
        return [encode_value(v) for v in value]
    if isinstance(value, dict):
        return {str(k): encode_value(v) for k, v in value.items()}
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    raise TypeError(f"Value of type {type(value).__name__} cannot be stored in the journal")


def decode_value(data: Any) -> Any:
    if isinstance(data, list):
        return [decode_value(v) for v in data]
    if isinstance(data, dict):
        if len(data) == 1:
            if "$contract" in data:
                c = data["$contract"]
                return ContractHandle(
                    address=c["address"],
                    contract_name=c["contract_name"],
                    abi=tuple(c.get("abi") or ()),
                )
            if "$bytes" in data:
                return bytes.fromhex(data["$bytes"])
            if "$tuple" in data:
                return tuple(decode_value(v) for v in data["$tuple"])
        return {k: decode_value(v) for k, v in data.items()}
    return data
