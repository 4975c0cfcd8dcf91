# tests/core/module/test_module_builder.py
"""
Testes do ModuleBuilder.

Os testes asseguram que:
- operações registram futures em ordem de declaração com ids derivados
- `id=` sobrescreve o id derivado; ids duplicados são rejeitados
- argumentos aceitam apenas literais e futures em escopo
- `read_event_argument` infere o emissor
- o retorno da rotina é validado em `finalize`
"""

import pytest

from chainplan.core.exceptions import (
    BuildError,
    DuplicateFutureIdError,
    InvalidArgumentError,
    InvalidModuleResultError,
    UnknownFutureError,
)
from chainplan.core.futures.types import FutureKind, FutureRef
from chainplan.core.module import ModuleBuilder, build_module


def test_default_ids_follow_module_and_operation():
    m = ModuleBuilder("Core")
    owner = m.account(0)
    token = m.contract("Token", ["Name", 100])
    proxy = m.contract_at("Proxy", "0x00000000000000000000000000000000000000ff")
    mint = m.call(token, "mint", [owner, 10])
    bal = m.static_call(token, "balanceOf", [owner])
    ev = m.read_event_argument(mint, "Transfer", "value")
    supply = m.parameter("supply", 1000)

    assert owner.id == "Core#account.0"
    assert token.id == "Core#Token"
    assert proxy.id == "Core#Proxy"
    assert mint.id == "Core#Token.mint"
    assert bal.id == "Core#Token.balanceOf"
    assert ev.id == "Core#Token.Transfer.value.0"
    assert supply.id == "Core#param.supply"
    assert supply.kind is FutureKind.LITERAL

    module = m.finalize({"token": token})
    assert [f.id for f in module.futures] == [
        "Core#account.0",
        "Core#Token",
        "Core#Proxy",
        "Core#Token.mint",
        "Core#Token.balanceOf",
        "Core#Token.Transfer.value.0",
        "Core#param.supply",
    ]


def test_account_and_parameter_are_memoized():
    m = ModuleBuilder("Core")
    assert m.account(1) is m.account(1)
    assert m.parameter("name") is m.parameter("name")


def test_parameter_redeclared_with_other_default_is_rejected():
    m = ModuleBuilder("Core")
    supply = m.parameter("supply", 1000)

    assert m.parameter("supply", 1000) is supply
    assert m.parameter("supply") is supply
    with pytest.raises(InvalidArgumentError):
        m.parameter("supply", 2000)

    m.parameter("name")
    with pytest.raises(InvalidArgumentError):
        m.parameter("name", "Token")


def test_parameter_default_future_is_a_dependency():
    m = ModuleBuilder("Core")
    owner = m.parameter("owner", default=m.account(0))

    assert owner.default == FutureRef("Core#account.0")
    assert owner.dependencies == ("Core#account.0",)


def test_futures_become_refs_and_options_are_recorded():
    m = ModuleBuilder("Core")
    owner = m.account(0)
    impl = m.contract("Impl")
    proxy = m.contract("Proxy", [impl], from_=owner, value=5, after=[owner])

    assert proxy.args == (FutureRef("Core#Impl"),)
    assert proxy.sender == FutureRef("Core#account.0")
    assert proxy.value == 5
    assert proxy.after == ("Core#account.0",)
    assert proxy.dependencies == ("Core#Impl", "Core#account.0")


def test_explicit_id_overrides_and_duplicates_fail():
    m = ModuleBuilder("Core")
    m.contract("Token", ["A", 1], id="TokenA")
    m.contract("Token", ["B", 1], id="TokenB")
    m.contract("Token", ["C", 1])

    with pytest.raises(DuplicateFutureIdError) as exc:
        m.contract("Token", ["D", 1])

    assert exc.value.details["future_id"] == "Core#Token"
    assert isinstance(exc.value, BuildError)


def test_future_from_another_builder_is_not_in_scope():
    other = ModuleBuilder("Other")
    foreign = other.contract("Token")

    m = ModuleBuilder("Core")
    with pytest.raises(UnknownFutureError) as exc:
        m.call(foreign, "mint", [])

    assert exc.value.details["future_id"] == "Other#Token"
    assert exc.value.details["kind"] == "DeployContract"


def test_unsupported_argument_type_is_rejected():
    m = ModuleBuilder("Core")
    with pytest.raises(InvalidArgumentError):
        m.contract("Token", [object()])


def test_call_requires_a_contract_future():
    m = ModuleBuilder("Core")
    owner = m.account(0)
    with pytest.raises(InvalidArgumentError):
        m.call(owner, "mint", [])


def test_invalid_account_index_and_local_id():
    m = ModuleBuilder("Core")
    with pytest.raises(InvalidArgumentError):
        m.account(-1)
    with pytest.raises(InvalidArgumentError):
        m.contract("Token", id="bad#id")


def test_read_event_argument_infers_emitter():
    """
    - deploy: o emissor padrão é o próprio contrato implantado
    - call: o emissor padrão é o contrato chamado
    - emitter= explícito prevalece
    """
    m = ModuleBuilder("Core")
    factory = m.contract("Factory")
    proxy = m.contract("Proxy", [factory])
    create = m.call(factory, "create", ["x"])

    on_deploy = m.read_event_argument(proxy, "AdminChanged", "newAdmin")
    on_call = m.read_event_argument(create, "Created", "instance")
    explicit = m.read_event_argument(create, "Upgraded", "implementation", emitter=proxy, index=1)

    assert on_deploy.emitter == FutureRef("Core#Proxy")
    assert on_call.emitter == FutureRef("Core#Factory")
    assert explicit.emitter == FutureRef("Core#Proxy")
    assert explicit.source == FutureRef("Core#Factory.create")
    assert explicit.id == "Core#Proxy.Upgraded.implementation.1"


def test_read_event_argument_requires_transaction_future():
    m = ModuleBuilder("Core")
    token = m.contract("Token")
    bal = m.static_call(token, "balanceOf", ["0x01"])
    with pytest.raises(InvalidArgumentError):
        m.read_event_argument(bal, "Transfer", "value")


def test_finalize_validates_the_routine_result():
    m = ModuleBuilder("Core")
    token = m.contract("Token")

    with pytest.raises(InvalidModuleResultError):
        m.finalize([token])
    with pytest.raises(InvalidModuleResultError):
        m.finalize({"token": "0x01"})

    module = m.finalize(None)
    assert dict(module.exports) == {}


def test_finalized_builder_rejects_new_futures():
    m = ModuleBuilder("Core")
    token = m.contract("Token")
    module = m.finalize({"token": token})

    assert module.exports["token"] is token
    with pytest.raises(InvalidArgumentError):
        m.contract("Late")


def test_use_module_without_resolver_is_an_error():
    m = ModuleBuilder("Core")
    with pytest.raises(InvalidArgumentError):
        m.use_module(build_module("Sub", lambda b: {}))


@pytest.mark.parametrize("name", ["", "  ", "A#B"])
def test_build_module_rejects_invalid_names(name):
    with pytest.raises(ValueError):
        build_module(name, lambda m: {})
