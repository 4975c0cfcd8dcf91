# src/chainplan/core/engine/events.py
"""
Localização e decodificação de eventos em receipts.

Fluxo de `read_event_argument`:
    1. localizar a entrada `event` no ABI do emissor, por nome ou por
       assinatura completa ("Transfer(address,address,uint256)")
    2. validar que o argumento existe na assinatura
    3. filtrar logs do receipt por topic0 = keccak(assinatura) e pelo
       endereço do emissor
    4. escolher a ocorrência `index` e decodificar o argumento

Argumentos indexados vêm dos topics; os demais do campo `data`.
Argumentos indexados de tipo dinâmico (string, bytes, arrays, tuplas)
só existem como hash no topic e são retornados como os 32 bytes brutos.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence, Union

from eth_abi import decode as abi_decode
from eth_hash.auto import keccak

from chainplan.core.exceptions import (
    AmbiguousEventError,
    ArgumentNotFoundError,
    EventNotFoundError,
    ResolutionError,
)


def _canonical_type(param: Mapping[str, Any]) -> str:
    type_ = str(param["type"])
    if type_.startswith("tuple"):
        inner = ",".join(_canonical_type(c) for c in param.get("components") or ())
        return f"({inner}){type_[len('tuple'):]}"
    return type_


def entry_signature(entry: Mapping[str, Any]) -> str:
    """Assinatura canônica `Nome(tipo1,tipo2,...)` de uma entrada do ABI."""
    inputs = entry.get("inputs") or ()
    return f"{entry.get('name', '')}(" + ",".join(_canonical_type(i) for i in inputs) + ")"


def event_topic(entry: Mapping[str, Any]) -> str:
    return "0x" + keccak(entry_signature(entry).encode("utf-8")).hex()


def hex_to_bytes(value: Union[str, bytes]) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    text = str(value)
    return bytes.fromhex(text[2:] if text.startswith(("0x", "0X")) else text)


def _to_hex(value: Union[str, bytes]) -> str:
    return "0x" + hex_to_bytes(value).hex()


def _is_dynamic(type_: str) -> bool:
    return type_ in ("string", "bytes") or type_.endswith("]") or type_.startswith("tuple")


def find_event_entry(
    abi: Sequence[Mapping[str, Any]],
    event: str,
    *,
    future_id: str,
    kind: str,
    contract_name: str,
) -> Mapping[str, Any]:
    """
    Localiza a entrada do evento no ABI.

    Raises:
        EventNotFoundError: Se o evento não estiver declarado no ABI.
        AmbiguousEventError: Se o nome for sobrecarregado e não houver assinatura.
    """
    events = [e for e in abi if e.get("type") == "event"]
    details = {"future_id": future_id, "kind": kind, "event": event, "contract": contract_name}

    if "(" in event:
        wanted = event.replace(" ", "")
        candidates = [e for e in events if entry_signature(e) == wanted]
    else:
        candidates = [e for e in events if e.get("name") == event]

    if not candidates:
        raise EventNotFoundError(
            message=f"Future '{future_id}' ({kind}): event '{event}' is not declared by contract '{contract_name}'",
            details=details,
        )
    if len(candidates) > 1:
        raise AmbiguousEventError(
            message=(
                f"Future '{future_id}' ({kind}): event '{event}' is overloaded on '{contract_name}'; "
                "use the full signature"
            ),
            details={**details, "candidates": [entry_signature(e) for e in candidates]},
            hint="Informe a assinatura completa, ex.: Transfer(address,address,uint256).",
        )
    if candidates[0].get("anonymous"):
        raise ResolutionError(
            message=f"Future '{future_id}' ({kind}): anonymous event '{event}' cannot be located by topic",
            details=details,
        )
    return candidates[0]


def decode_log(entry: Mapping[str, Any], log: Mapping[str, Any]) -> Dict[str, Any]:
    """Decodifica todos os argumentos de um log para o evento `entry`."""
    inputs: List[Mapping[str, Any]] = list(entry.get("inputs") or ())
    topics = list(log.get("topics") or ())[1:]

    values: Dict[str, Any] = {}
    indexed = [i for i in inputs if i.get("indexed")]
    for param, topic in zip(indexed, topics):
        type_ = _canonical_type(param)
        raw = hex_to_bytes(topic)
        values[param["name"]] = raw if _is_dynamic(str(param["type"])) else abi_decode([type_], raw)[0]

    plain = [i for i in inputs if not i.get("indexed")]
    if plain:
        decoded = abi_decode([_canonical_type(p) for p in plain], hex_to_bytes(log.get("data") or b""))
        for param, value in zip(plain, decoded):
            values[param["name"]] = value

    return values


def read_event_argument(
    receipt: Mapping[str, Any],
    entry: Mapping[str, Any],
    *,
    emitter_address: str,
    argument: str,
    index: int,
    future_id: str,
    kind: str,
) -> Any:
    """
    Retorna o valor de `argument` na ocorrência `index` do evento emitido
    por `emitter_address` no receipt.

    Raises:
        ArgumentNotFoundError: Se o argumento não existir na assinatura.
        EventNotFoundError: Se não houver a ocorrência pedida.
    """
    signature = entry_signature(entry)
    names = [i.get("name") for i in entry.get("inputs") or ()]
    if argument not in names:
        raise ArgumentNotFoundError(
            message=f"Future '{future_id}' ({kind}): event '{signature}' has no argument '{argument}'",
            details={"future_id": future_id, "kind": kind, "event": signature, "argument": argument, "arguments": names},
        )

    topic0 = event_topic(entry)
    emitter = emitter_address.lower()
    matches = [
        log for log in receipt.get("logs") or ()
        if log.get("topics")
        and _to_hex(log["topics"][0]).lower() == topic0
        and str(log.get("address", "")).lower() == emitter
    ]

    if len(matches) <= index:
        raise EventNotFoundError(
            message=(
                f"Future '{future_id}' ({kind}): event '{signature}' occurrence {index} "
                f"not emitted by {emitter_address} (found {len(matches)})"
            ),
            details={
                "future_id": future_id,
                "kind": kind,
                "event": signature,
                "emitter": emitter_address,
                "index": index,
                "found": len(matches),
            },
        )

    return decode_log(entry, matches[index])[argument]
