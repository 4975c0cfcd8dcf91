# tests/core/engine/test_engine_idempotence.py
"""
Testes de idempotência do engine.

Uma segunda execução com o mesmo journal não executa nenhuma ação de
rede e produz os mesmos exports; futures concluídos são reaproveitados.
"""

from chainplan import FutureStatus, build_module, deploy
from chainplan.core.context import DeploymentContext
from chainplan.core.journal import DeploymentJournal, RecordStatus
from tests._doubles import run_engine

A1 = "0x00000000000000000000000000000000000000a1"


def _system(m):
    owner = m.account(0)
    token = m.contract("Token", ["Tok", 1000], from_=owner)
    mint = m.call(token, "mint", [owner, 5], from_=owner)
    balance = m.static_call(token, "balanceOf", [owner], after=[mint])
    return {"token": token, "balance": balance}


SYSTEM = build_module("System", _system)


def test_first_run_executes_every_future(network, artifacts, dummy_config):
    network.static_results["balanceOf"] = 1005
    journal = DeploymentJournal()

    result = deploy(SYSTEM, network=network, artifacts=artifacts, config=dummy_config, journal=journal)

    assert result.ok
    assert result.exports["token"].address == "0x" + f"{1:040x}"
    assert result.exports["token"].contract_name == "Token"
    assert result.exports["balance"] == 1005
    assert set(result.statuses.values()) == {FutureStatus.COMPLETED}

    deploy_call = network.sends("System#Token")[0]
    assert deploy_call[2] == ("Tok", 1000)
    assert deploy_call[3] == {"from": A1}
    assert network.sends("System#Token.mint")[0][2] == (A1, 5)
    assert journal.status_summary()["completed"] == 4


def test_second_run_makes_no_network_calls(network, artifacts, dummy_config, tmp_path):
    network.static_results["balanceOf"] = 1005
    path = tmp_path / "journal.jsonl"

    first = deploy(SYSTEM, network=network, artifacts=artifacts, config=dummy_config, journal=DeploymentJournal(path))
    calls_after_first = len(network.calls)

    ctx = DeploymentContext.create(config=dummy_config)
    second = deploy(
        SYSTEM,
        network=network,
        artifacts=artifacts,
        config=dummy_config,
        journal=DeploymentJournal(path),
        ctx=ctx,
    )

    assert len(network.calls) == calls_after_first
    assert second.exports == first.exports
    assert second.exports["token"].abi
    assert set(second.statuses.values()) == {FutureStatus.REUSED}
    assert [e["message"] for e in ctx.events_for("System#Token")] == ["reused from journal"]


def test_partial_journal_resumes_from_first_unresolved(network, artifacts, dummy_config):
    """Apenas os futures sem registro `completed` são executados."""
    network.static_results["balanceOf"] = 1
    journal = DeploymentJournal()
    journal.record_in_flight("System#account.0")
    journal.record_completed("System#account.0", A1)

    result = run_engine(SYSTEM, network=network, artifacts=artifacts, config=dummy_config, journal=journal)

    assert result.statuses["System#account.0"] is FutureStatus.REUSED
    assert result.statuses["System#Token"] is FutureStatus.COMPLETED
    assert journal.latest("System#Token").status is RecordStatus.COMPLETED


def test_unknown_journal_records_become_warnings(network, artifacts, dummy_config):
    network.static_results["balanceOf"] = 1
    journal = DeploymentJournal()
    journal.record_in_flight("Legacy#Token")
    journal.record_completed("Legacy#Token", "0x01")
    ctx = DeploymentContext.create(config=dummy_config)

    result = run_engine(SYSTEM, network=network, artifacts=artifacts, config=dummy_config, journal=journal, ctx=ctx)

    assert result.ok
    assert list(ctx.warnings) == ["Legacy#Token"]
