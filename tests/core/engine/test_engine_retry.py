# tests/core/engine/test_engine_retry.py
"""
Testes da política de retry do engine.

Os testes asseguram que:
- falhas transitórias são re-tentadas até `max_attempts`
- re-tentar nunca reenvia uma transação já enviada (reconciliação)
- falhas fatais não são re-tentadas
- tentativas esgotadas viram `failed` e a retomada reaproveita o tx
- uma transação descartada pela rede é enviada de novo
"""

import pytest

from chainplan import FutureStatus, build_module, deploy
from chainplan.core.context import DeploymentContext
from chainplan.core.exceptions import InsufficientFundsError, ReceiptTimeoutError, TransientNetworkError
from chainplan.core.journal import DeploymentJournal, RecordStatus
from tests._doubles import run_engine


def _single(m):
    token = m.contract("Token", ["Tok", 1])
    mint = m.call(token, "mint", ["0x00000000000000000000000000000000000000a1", 1])
    return {"token": token, "mint": mint}


SINGLE = build_module("Single", _single)


def _transient(msg="rpc unavailable"):
    return TransientNetworkError(message=msg)


def test_transient_receipt_failure_is_retried_without_resend(network, artifacts, dummy_config):
    network.receipt_errors["Single#Token"] = [_transient()]
    ctx = DeploymentContext.create(config=dummy_config)

    result = deploy(SINGLE, network=network, artifacts=artifacts, config=dummy_config, ctx=ctx)

    assert result.ok
    assert len(network.sends("Single#Token")) == 1
    retries = [e for e in ctx.events_for("Single#Token") if e["message"] == "retrying after transient failure"]
    assert len(retries) == 1
    assert retries[0]["attempt"] == 1
    assert retries[0]["level"] == "WARNING"


def test_builtin_connection_error_before_send_is_retried(network, artifacts, dummy_config):
    network.send_errors["Single#Token"] = [ConnectionError("connection refused")]

    result = deploy(SINGLE, network=network, artifacts=artifacts, config=dummy_config)

    assert result.ok
    assert len(network.sends("Single#Token")) == 2
    assert len(network.transactions("Single#Token")) == 1


def test_exhausted_attempts_fail_and_resume_reuses_transaction(network, artifacts, dummy_config):
    network.receipt_errors["Single#Token"] = [ReceiptTimeoutError(message="timed out") for _ in range(3)]
    journal = DeploymentJournal()

    result = run_engine(SINGLE, network=network, artifacts=artifacts, config=dummy_config, journal=journal)

    assert isinstance(result.failure, ReceiptTimeoutError)
    assert result.statuses["Single#Token"] is FutureStatus.FAILED
    assert result.statuses["Single#Token.mint"] is FutureStatus.NOT_RUN
    assert result.errors["Single#Token"]["retryable"] is True
    failed = journal.latest("Single#Token")
    assert failed.status is RecordStatus.FAILED
    assert failed.tx_id == network.by_future["Single#Token"]
    assert len(network.sends("Single#Token")) == 1

    resumed = run_engine(SINGLE, network=network, artifacts=artifacts, config=dummy_config, journal=journal)

    assert resumed.ok
    assert len(network.sends("Single#Token")) == 1
    assert journal.latest("Single#Token").tx_id == failed.tx_id


def test_transaction_dropped_by_the_network_is_sent_again(network, artifacts, dummy_config):
    network.receipt_errors["Single#Token"] = [ReceiptTimeoutError(message="timed out") for _ in range(3)]
    journal = DeploymentJournal()

    first = run_engine(SINGLE, network=network, artifacts=artifacts, config=dummy_config, journal=journal)

    assert isinstance(first.failure, ReceiptTimeoutError)
    dropped = journal.latest("Single#Token").tx_id
    assert dropped is not None

    # o nó descarta a transação: nenhum receipt e nada pendente
    network.mempool_visible = False
    network.receipt_errors["Single#Token"] = [ReceiptTimeoutError(message="timed out")]
    ctx = DeploymentContext.create(config=dummy_config)

    resumed = run_engine(
        SINGLE, network=network, artifacts=artifacts, config=dummy_config, journal=journal, ctx=ctx
    )

    assert resumed.ok
    assert len(network.sends("Single#Token")) == 2
    resent = journal.latest("Single#Token").tx_id
    assert resent != dropped
    assert resent == network.by_future["Single#Token"]
    assert ("pending", "Single#Token") in network.calls
    warnings = [e for e in ctx.events_for("Single#Token") if e["message"] == "transaction dropped by the network"]
    assert [w["tx_id"] for w in warnings] == [dropped]


def test_max_attempts_is_configurable(network, artifacts, dummy_config):
    dummy_config["engine"]["max_attempts"] = 1
    network.receipt_errors["Single#Token"] = [_transient()]

    with pytest.raises(TransientNetworkError):
        deploy(SINGLE, network=network, artifacts=artifacts, config=dummy_config)

    assert [c for c in network.calls if c[0] == "receipt"] == [("receipt", "0xtx0001")]


def test_fatal_failure_is_not_retried(network, artifacts, dummy_config):
    network.send_errors["Single#Token"] = [InsufficientFundsError(message="insufficient funds for gas")]
    journal = DeploymentJournal()

    with pytest.raises(InsufficientFundsError):
        deploy(SINGLE, network=network, artifacts=artifacts, config=dummy_config, journal=journal)

    assert len(network.sends("Single#Token")) == 1
    assert network.transactions("Single#Token") == []
    error = journal.latest("Single#Token").error
    assert error["type"] == "EXECUTION_ERROR"
    assert error["retryable"] is False
    assert error["details"]["future_id"] == "Single#Token"
    assert error["details"]["kind"] == "DeployContract"
    assert "Single#Token" in error["message"]
