# src/chainplan/core/engine/dispatch.py
"""
Resolução por tipo de future (switch sobre FutureKind).

Cada função recebe o future e o `DispatchContext` e devolve um `Outcome`
(valor resolvido + tx_id, quando houver transação). As funções leem os
valores das dependências, já resolvidos em batches anteriores, e nunca
escrevem valores no journal: apenas anexam o tx_id ao registro
`in-flight` logo após o envio, para que uma interrupção possa ser
reconciliada sem reenvio.

Reconciliação (transações):
    1. tx_id já registrado no journal para o future
    2. senão, `network.get_pending_transaction(future_id)`
    3. senão, envio novo
    Uma transação encontrada é aguardada, nunca reenviada. Se o receipt
    expira e a rede já não conhece a transação (descartada do mempool),
    o future é reenviado como novo.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

from eth_abi import decode as abi_decode

from chainplan.core.config.settings import EngineSettings
from chainplan.core.context import DeploymentContext
from chainplan.core.errors import TRANSACTION_REVERTED
from chainplan.core.exceptions import (
    ArgumentNotFoundError,
    ExecutionError,
    MissingParameterError,
    ReceiptTimeoutError,
    ResolutionError,
    TransactionRevertedError,
    UnknownAccountError,
    UnknownMethodError,
)
from chainplan.core.futures.types import (
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
from chainplan.core.journal import DeploymentJournal, RecordStatus
from chainplan.core.network.interfaces import Artifact, NetworkClient, Receipt

from .events import entry_signature, find_event_entry, hex_to_bytes, read_event_argument


# selector de Error(string)
_ERROR_SELECTOR = bytes.fromhex("08c379a0")


@dataclass(frozen=True)
class Outcome:
    value: Any
    tx_id: Optional[str] = None


@dataclass
class DispatchContext:
    """Estado compartilhado (somente leitura para os workers, exceto receipts)."""
    network: NetworkClient
    settings: EngineSettings
    journal: DeploymentJournal
    ctx: DeploymentContext
    artifacts: Mapping[str, Artifact]
    values: Mapping[str, Any]
    receipts: Dict[str, Receipt]


# ---------------------------------------------------------------------------
# Valores de dependências
# ---------------------------------------------------------------------------

def resolve_argument(value: Any, values: Mapping[str, Any]) -> Any:
    """Substitui FutureRef pelo valor resolvido; contratos viram endereços."""
    if isinstance(value, FutureRef):
        value = values[value.id]
    if isinstance(value, ContractHandle):
        return value.address
    if isinstance(value, tuple):
        return tuple(resolve_argument(v, values) for v in value)
    if isinstance(value, list):
        return [resolve_argument(v, values) for v in value]
    if isinstance(value, dict):
        return {k: resolve_argument(v, values) for k, v in value.items()}
    return value


def _handle(ref: FutureRef, dc: DispatchContext) -> ContractHandle:
    handle = dc.values[ref.id]
    if not isinstance(handle, ContractHandle):
        raise ResolutionError(
            message=f"Future '{ref.id}' did not resolve to a contract",
            details={"future_id": ref.id},
        )
    if not handle.abi and handle.contract_name in dc.artifacts:
        handle = ContractHandle(
            address=handle.address,
            contract_name=handle.contract_name,
            abi=tuple(dc.artifacts[handle.contract_name].abi),
        )
    return handle


def _overrides(future: Future, dc: DispatchContext) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    sender = getattr(future, "sender", None)
    if sender is not None:
        out["from"] = resolve_argument(sender, dc.values)
    value = getattr(future, "value", None)
    if value is not None:
        out["value"] = resolve_argument(value, dc.values)
    return out


def find_function_entry(
    handle: ContractHandle,
    method: str,
    nargs: int,
    *,
    future_id: str,
    kind: str,
) -> Mapping[str, Any]:
    """Localiza a função por nome (ou assinatura completa) no ABI do contrato."""
    functions = [e for e in handle.abi if e.get("type") == "function"]
    if "(" in method:
        wanted = method.replace(" ", "")
        candidates = [e for e in functions if entry_signature(e) == wanted]
    else:
        candidates = [e for e in functions if e.get("name") == method]
        if len(candidates) > 1:
            candidates = [e for e in candidates if len(e.get("inputs") or ()) == nargs]

    details = {"future_id": future_id, "kind": kind, "method": method, "contract": handle.contract_name}
    if not candidates:
        raise UnknownMethodError(
            message=f"Future '{future_id}' ({kind}): contract '{handle.contract_name}' has no method '{method}'",
            details=details,
        )
    if len(candidates) > 1:
        raise UnknownMethodError(
            message=(
                f"Future '{future_id}' ({kind}): method '{method}' is overloaded on "
                f"'{handle.contract_name}'; use the full signature"
            ),
            details={**details, "candidates": [entry_signature(e) for e in candidates]},
        )
    return candidates[0]


# ---------------------------------------------------------------------------
# Transações
# ---------------------------------------------------------------------------

def decode_revert_reason(receipt: Receipt) -> Optional[str]:
    reason = receipt.get("revert_reason")
    if reason:
        return str(reason)
    data = receipt.get("revert_data")
    if data:
        raw = hex_to_bytes(data)
        if raw[:4] == _ERROR_SELECTOR:
            return abi_decode(["string"], raw[4:])[0]
    return None


def _reverted_transactions(future_id: str, dc: DispatchContext) -> set:
    return {
        r.tx_id
        for r in dc.journal.records()
        if r.future_id == future_id
        and r.status is RecordStatus.FAILED
        and r.tx_id is not None
        and (r.error or {}).get("type") == TRANSACTION_REVERTED
    }


def _known_transaction(future: Future, dc: DispatchContext) -> Optional[str]:
    record = dc.journal.latest(future.id)
    if record is not None and record.tx_id is not None:
        return record.tx_id
    tx_id = dc.network.get_pending_transaction(future.id)
    # uma transação revertida nunca é reaproveitada
    if tx_id is not None and tx_id in _reverted_transactions(future.id, dc):
        return None
    return tx_id


def _send(future: Future, dc: DispatchContext, send: Callable[[], str]) -> str:
    tx_id = send()
    dc.journal.record_in_flight(future.id, tx_id=tx_id)
    dc.ctx.log(future_id=future.id, level="INFO", message="transaction sent", tx_id=tx_id)
    return tx_id


def _dropped(future: Future, tx_id: str, dc: DispatchContext) -> bool:
    """
    Consulta a rede após um receipt expirado.

    Retorna True quando a rede não conhece mais nenhuma transação do future.
    Uma transação diferente ainda pendente passa a ser a aguardada.
    """
    pending = dc.network.get_pending_transaction(future.id)
    if pending is None or pending in _reverted_transactions(future.id, dc):
        return True
    if pending != tx_id:
        dc.journal.record_in_flight(future.id, tx_id=pending)
        dc.ctx.log(future_id=future.id, level="INFO", message="transaction reconciled", tx_id=pending)
    return False


def _transact(future: Future, dc: DispatchContext, send: Callable[[], str]) -> Tuple[str, Receipt]:
    tx_id = _known_transaction(future, dc)
    if tx_id is None:
        tx_id = _send(future, dc, send)
    else:
        if dc.journal.latest(future.id).tx_id != tx_id:
            dc.journal.record_in_flight(future.id, tx_id=tx_id)
        dc.ctx.log(future_id=future.id, level="INFO", message="transaction reconciled", tx_id=tx_id)

    try:
        receipt = dc.network.wait_for_receipt(tx_id)
    except ReceiptTimeoutError:
        if not _dropped(future, tx_id, dc):
            raise
        dc.ctx.log(
            future_id=future.id,
            level="WARNING",
            message="transaction dropped by the network",
            tx_id=tx_id,
        )
        tx_id = _send(future, dc, send)
        receipt = dc.network.wait_for_receipt(tx_id)
    dc.receipts[future.id] = receipt

    if not receipt.get("status"):
        reason = decode_revert_reason(receipt)
        raise TransactionRevertedError(
            message=(
                f"Future '{future.id}' ({future.kind.value}): transaction {tx_id} reverted"
                + (f": {reason}" if reason else "")
            ),
            details={
                "future_id": future.id,
                "kind": future.kind.value,
                "tx_id": tx_id,
                "revert_reason": reason,
            },
        )
    return tx_id, receipt


def _receipt_for(source_id: str, dc: DispatchContext) -> Receipt:
    receipt = dc.receipts.get(source_id)
    if receipt is not None:
        return receipt

    record = dc.journal.latest(source_id)
    if record is None or record.tx_id is None:
        raise ResolutionError(
            message=f"Future '{source_id}' has no recorded transaction to read events from",
            details={"future_id": source_id},
        )
    receipt = dc.network.wait_for_receipt(record.tx_id)
    dc.receipts[source_id] = receipt
    return receipt


# ---------------------------------------------------------------------------
# Funções por tipo
# ---------------------------------------------------------------------------

def _deploy_contract(future: DeployContractFuture, dc: DispatchContext) -> Outcome:
    artifact = dc.artifacts[future.contract_name]
    args = resolve_argument(future.args, dc.values)
    overrides = _overrides(future, dc)

    tx_id, receipt = _transact(
        future,
        dc,
        lambda: dc.network.send_deployment_transaction(
            artifact.bytecode,
            args,
            future_id=future.id,
            overrides=overrides,
            constructor=artifact.constructor,
        ),
    )
    address = receipt.get("contract_address")
    if not address:
        raise ExecutionError(
            message=f"Future '{future.id}' ({future.kind.value}): receipt of {tx_id} has no contract address",
            details={"future_id": future.id, "kind": future.kind.value, "tx_id": tx_id},
        )
    return Outcome(
        value=ContractHandle(address=address, contract_name=future.contract_name, abi=tuple(artifact.abi)),
        tx_id=tx_id,
    )


def _contract_at(future: ContractAtFuture, dc: DispatchContext) -> Outcome:
    address = resolve_argument(future.address, dc.values)
    if not isinstance(address, str) or not address:
        raise ResolutionError(
            message=f"Future '{future.id}' ({future.kind.value}): address did not resolve to a string",
            details={"future_id": future.id, "kind": future.kind.value, "address": repr(address)},
        )
    artifact = dc.artifacts[future.contract_name]
    return Outcome(value=ContractHandle(address=address, contract_name=future.contract_name, abi=tuple(artifact.abi)))


def _call(future: CallFuture, dc: DispatchContext) -> Outcome:
    handle = _handle(future.contract, dc)
    args = resolve_argument(future.args, dc.values)
    entry = find_function_entry(handle, future.method, len(args), future_id=future.id, kind=future.kind.value)
    overrides = _overrides(future, dc)

    tx_id, _ = _transact(
        future,
        dc,
        lambda: dc.network.send_call_transaction(
            handle.address,
            entry,
            args,
            future_id=future.id,
            overrides=overrides,
        ),
    )
    return Outcome(value=None, tx_id=tx_id)


def _select_output(future: StaticCallFuture, entry: Mapping[str, Any], value: Any) -> Any:
    if future.output is None:
        return value

    outputs: Sequence[Mapping[str, Any]] = entry.get("outputs") or ()
    if isinstance(future.output, int):
        position = future.output
    else:
        names = [o.get("name") for o in outputs]
        if future.output not in names:
            raise ArgumentNotFoundError(
                message=f"Future '{future.id}' ({future.kind.value}): method '{future.method}' has no output '{future.output}'",
                details={"future_id": future.id, "kind": future.kind.value, "output": future.output, "outputs": names},
            )
        position = names.index(future.output)

    if len(outputs) == 1 and position == 0 and not isinstance(value, (list, tuple)):
        return value
    try:
        return value[position]
    except (IndexError, TypeError, KeyError) as e:
        raise ArgumentNotFoundError(
            message=f"Future '{future.id}' ({future.kind.value}): output {future.output!r} is not available",
            details={"future_id": future.id, "kind": future.kind.value, "output": future.output},
        ) from e


def _static_call(future: StaticCallFuture, dc: DispatchContext) -> Outcome:
    handle = _handle(future.contract, dc)
    args = resolve_argument(future.args, dc.values)
    entry = find_function_entry(handle, future.method, len(args), future_id=future.id, kind=future.kind.value)
    value = dc.network.static_call(handle.address, entry, args, overrides=_overrides(future, dc))
    return Outcome(value=_select_output(future, entry, value))


def _read_event_argument(future: ReadEventArgumentFuture, dc: DispatchContext) -> Outcome:
    emitter = _handle(future.emitter, dc)
    entry = find_event_entry(
        emitter.abi,
        future.event,
        future_id=future.id,
        kind=future.kind.value,
        contract_name=emitter.contract_name,
    )
    receipt = _receipt_for(future.source.id, dc)
    value = read_event_argument(
        receipt,
        entry,
        emitter_address=emitter.address,
        argument=future.argument,
        index=future.index,
        future_id=future.id,
        kind=future.kind.value,
    )
    return Outcome(value=value)


def _account(future: AccountRefFuture, dc: DispatchContext) -> Outcome:
    accounts = dc.settings.accounts
    if future.index >= len(accounts):
        raise UnknownAccountError(
            message=(
                f"Future '{future.id}' ({future.kind.value}): account {future.index} is not configured "
                f"({len(accounts)} accounts available)"
            ),
            details={"future_id": future.id, "kind": future.kind.value, "index": future.index},
            hint="Adicione a conta em `accounts` na configuração.",
        )
    return Outcome(value=accounts[future.index])


def _literal(future: LiteralFuture, dc: DispatchContext) -> Outcome:
    found, value = dc.settings.parameter(future.module, future.name)
    if found:
        return Outcome(value=value)
    if future.has_default:
        return Outcome(value=resolve_argument(future.default, dc.values))
    raise MissingParameterError(
        message=f"Future '{future.id}' ({future.kind.value}): parameter '{future.name}' has no value",
        details={"future_id": future.id, "kind": future.kind.value, "module": future.module, "parameter": future.name},
        hint=f"Defina `parameters.{future.module}.{future.name}` na configuração.",
    )


DISPATCH: Dict[FutureKind, Callable[[Any, DispatchContext], Outcome]] = {
    FutureKind.DEPLOY_CONTRACT: _deploy_contract,
    FutureKind.CONTRACT_AT: _contract_at,
    FutureKind.CALL: _call,
    FutureKind.STATIC_CALL: _static_call,
    FutureKind.READ_EVENT_ARGUMENT: _read_event_argument,
    FutureKind.ACCOUNT_REF: _account,
    FutureKind.LITERAL: _literal,
}


def dispatch(future: Future, dc: DispatchContext) -> Outcome:
    return DISPATCH[future.kind](future, dc)
