# tests/core/futures/test_future_types.py
"""
Testes do modelo de futures: ids, dependências e fingerprint.

Os testes asseguram que:
- dependências são descobertas em argumentos aninhados e em `after`
- dependências preservam a ordem de primeira ocorrência, sem repetição
- o fingerprint identifica o conteúdo do future (e não o id)
"""

import dataclasses

import pytest

from chainplan.core.futures import (
    CallFuture,
    ContractHandle,
    DeployContractFuture,
    FutureKind,
    FutureRef,
    ReadEventArgumentFuture,
    compute_future_fingerprint,
)


def _deploy(args=(), after=(), fid="M#Token"):
    return DeployContractFuture(
        id=fid, module="M", after=tuple(after),
        contract_name="Token", args=tuple(args), sender=None, value=None,
    )


def test_kind_and_local_id():
    f = _deploy()
    assert f.kind is FutureKind.DEPLOY_CONTRACT
    assert f.kind.value == "DeployContract"
    assert f.local_id == "Token"


def test_dependencies_in_first_occurrence_order_without_duplicates():
    f = CallFuture(
        id="M#Token.mint", module="M", after=("M#Extra", "M#Token"),
        contract=FutureRef("M#Token"), method="mint",
        args=(FutureRef("M#account.0"), [FutureRef("M#Token")], {"x": FutureRef("M#param.n")}),
        sender=FutureRef("M#account.0"), value=None,
    )

    assert f.dependencies == ("M#Token", "M#account.0", "M#param.n", "M#Extra")


def test_read_event_argument_depends_on_source_and_emitter():
    f = ReadEventArgumentFuture(
        id="M#Proxy.AdminChanged.newAdmin.0", module="M", after=(),
        source=FutureRef("M#Proxy"), emitter=FutureRef("M#Proxy"),
        event="AdminChanged", argument="newAdmin", index=0,
    )

    assert f.dependencies == ("M#Proxy",)


def test_futures_are_immutable():
    f = _deploy()
    with pytest.raises(dataclasses.FrozenInstanceError):
        f.contract_name = "Other"  # type: ignore[misc]


def test_fingerprint_ignores_id_but_tracks_content():
    a = _deploy(args=("Name", 1), fid="M#A")
    b = _deploy(args=("Name", 1), fid="M#B")
    c = _deploy(args=("Name", 2), fid="M#A")

    assert compute_future_fingerprint(a) == compute_future_fingerprint(b)
    assert compute_future_fingerprint(a) != compute_future_fingerprint(c)
    assert len(compute_future_fingerprint(a)) == 64


def test_fingerprint_distinguishes_refs_from_strings():
    by_ref = _deploy(args=(FutureRef("M#X"),), fid="M#A")
    by_str = _deploy(args=("M#X",), fid="M#A")

    assert compute_future_fingerprint(by_ref) != compute_future_fingerprint(by_str)


def test_contract_handle_equality_ignores_abi():
    a = ContractHandle(address="0x01", contract_name="Token", abi=({"type": "function", "name": "x"},))
    b = ContractHandle(address="0x01", contract_name="Token")

    assert a == b
    assert a != ContractHandle(address="0x02", contract_name="Token")
