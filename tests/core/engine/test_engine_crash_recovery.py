# tests/core/engine/test_engine_crash_recovery.py
"""
Testes de retomada após interrupção do processo.

A interrupção é simulada por uma BaseException (SimulatedCrash), que o
engine não captura: registros ficam `in-flight` no journal em arquivo e
uma nova execução (novo processo, novo DeploymentJournal) os reconcilia.

Os testes asseguram que:
- futures concluídos antes da interrupção não são reenviados
- uma transação enviada mas não registrada é encontrada via
  `get_pending_transaction` e aguardada, nunca reenviada
- um tx_id já registrado no journal é aguardado diretamente
"""

import pytest

from chainplan import FutureStatus, build_module, deploy
from chainplan.core.journal import DeploymentJournal, RecordStatus
from tests._doubles import SimulatedCrash, run_engine


def _pair(m):
    a = m.contract("Token", ["A", 1], id="A")
    b = m.contract("Proxy", [a], id="B")
    return {"a": a, "b": b}


PAIR = build_module("Pair", _pair)


def _journal(tmp_path):
    return DeploymentJournal(tmp_path / "journal.jsonl")


def test_crash_before_dependent_starts_does_not_resubmit(network, artifacts, dummy_config, tmp_path):
    network.crash_before_send.add("Pair#B")

    with pytest.raises(SimulatedCrash):
        deploy(PAIR, network=network, artifacts=artifacts, config=dummy_config, journal=_journal(tmp_path))

    interrupted = _journal(tmp_path).load()
    assert interrupted["Pair#A"].status is RecordStatus.COMPLETED
    assert interrupted["Pair#B"].status is RecordStatus.IN_FLIGHT
    assert interrupted["Pair#B"].tx_id is None

    result = run_engine(PAIR, network=network, artifacts=artifacts, config=dummy_config, journal=_journal(tmp_path))

    assert result.ok
    assert result.statuses == {"Pair#A": FutureStatus.REUSED, "Pair#B": FutureStatus.COMPLETED}
    assert len(network.transactions("Pair#A")) == 1
    assert len(network.transactions("Pair#B")) == 1
    assert result.exports["b"].contract_name == "Proxy"


def test_crash_after_send_reconciles_pending_transaction(network, artifacts, dummy_config, tmp_path):
    network.crash_after_send.add("Pair#B")

    with pytest.raises(SimulatedCrash):
        deploy(PAIR, network=network, artifacts=artifacts, config=dummy_config, journal=_journal(tmp_path))

    sends_before = len(network.sends("Pair#B"))
    result = run_engine(PAIR, network=network, artifacts=artifacts, config=dummy_config, journal=_journal(tmp_path))

    assert result.ok
    assert len(network.sends("Pair#B")) == sends_before == 1
    assert network.transactions("Pair#B") == [network.by_future["Pair#B"]]
    assert ("pending", "Pair#B") in network.calls

    record = _journal(tmp_path).latest("Pair#B")
    assert record.status is RecordStatus.COMPLETED
    assert record.tx_id == network.by_future["Pair#B"]


def test_recorded_transaction_is_awaited_without_lookup(network, artifacts, dummy_config, tmp_path):
    """
    A interrupção acontece aguardando o receipt: o tx_id já está no
    journal, portanto a retomada não consulta o mempool.
    """
    network.receipt_errors["Pair#B"] = [SimulatedCrash("Pair#B")]

    with pytest.raises(SimulatedCrash):
        deploy(PAIR, network=network, artifacts=artifacts, config=dummy_config, journal=_journal(tmp_path))

    recorded = _journal(tmp_path).latest("Pair#B")
    assert recorded.status is RecordStatus.IN_FLIGHT
    assert recorded.tx_id is not None

    calls_before = len(network.calls)
    result = run_engine(PAIR, network=network, artifacts=artifacts, config=dummy_config, journal=_journal(tmp_path))

    assert result.ok
    resumed_calls = network.calls[calls_before:]
    assert resumed_calls == [("receipt", recorded.tx_id)]
    assert len(network.transactions("Pair#B")) == 1
