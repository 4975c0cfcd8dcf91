# tests/core/engine/test_engine_batches.py
"""
Testes de despacho por batches.

Os testes asseguram que:
- futures de um mesmo batch são despachados concorrentemente
- uma falha não cancela os demais futures do mesmo batch
- nenhum batch posterior a uma falha é iniciado
"""

import threading

from chainplan import FutureStatus, build_module
from chainplan.core.exceptions import InsufficientFundsError
from chainplan.core.journal import DeploymentJournal, RecordStatus
from tests._doubles import run_engine


def test_independent_futures_run_concurrently(network, artifacts, dummy_config):
    barrier = threading.Barrier(2, timeout=5)

    def rendezvous(address, args):
        barrier.wait()
        return 1

    network.static_results["balanceOf"] = rendezvous

    def parallel(m):
        token = m.contract("Token", ["Tok", 1])
        a = m.static_call(token, "balanceOf", ["0x01"], id="a")
        b = m.static_call(token, "balanceOf", ["0x02"], id="b")
        return {"a": a, "b": b}

    result = run_engine(build_module("Parallel", parallel), network=network, artifacts=artifacts, config=dummy_config)

    assert result.ok
    assert result.exports == {"a": 1, "b": 1}


def test_failure_keeps_siblings_and_stops_later_batches(network, artifacts, dummy_config):
    network.send_errors["Siblings#Bad"] = [InsufficientFundsError(message="insufficient funds")]
    journal = DeploymentJournal()

    def siblings(m):
        good = m.contract("Token", ["Good", 1], id="Good")
        bad = m.contract("Token", ["Bad", 1], id="Bad")
        later = m.contract("Proxy", [good], id="Later")
        return {"good": good, "bad": bad, "later": later}

    result = run_engine(build_module("Siblings", siblings), network=network, artifacts=artifacts, config=dummy_config, journal=journal)

    assert isinstance(result.failure, InsufficientFundsError)
    assert result.statuses == {
        "Siblings#Good": FutureStatus.COMPLETED,
        "Siblings#Bad": FutureStatus.FAILED,
        "Siblings#Later": FutureStatus.NOT_RUN,
    }
    assert journal.latest("Siblings#Good").status is RecordStatus.COMPLETED
    assert journal.latest("Siblings#Bad").status is RecordStatus.FAILED
    assert journal.latest("Siblings#Later") is None
    assert "good" in result.exports and "later" not in result.exports
