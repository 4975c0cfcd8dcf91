# tests/core/module/test_module_registry.py
"""
Testes do ModuleRegistry (um nome → uma rotina).
"""

import pytest

from chainplan.core.exceptions import DuplicateModuleNameError, ModuleIdentityMismatchError
from chainplan.core.module import ModuleRegistry, build_module


def _routine(m):
    return {}


def _other_routine(m):
    return {}


def test_same_definition_is_idempotent():
    reg = ModuleRegistry()
    d = build_module("Core", _routine)

    reg.add(d)
    reg.add(d)
    reg.add(build_module("Core", _routine))

    assert [x.name for x in reg.list()] == ["Core"]
    assert reg.has("Core")
    assert reg.get("Core") is d


def test_distinct_routines_with_same_name_fail():
    reg = ModuleRegistry()
    reg.add(build_module("Core", _routine))

    with pytest.raises(DuplicateModuleNameError) as exc:
        reg.add(build_module("Core", _other_routine))

    assert exc.value.details["module"] == "Core"


def test_recreated_closure_is_an_identity_mismatch():
    """
    Uma closure recriada tem o mesmo módulo/qualname, mas não é o mesmo
    objeto: a identidade do módulo não pode ser garantida.
    """
    def make():
        def routine(m):
            return {}
        return routine

    reg = ModuleRegistry()
    reg.add(build_module("Core", make()))

    with pytest.raises(ModuleIdentityMismatchError):
        reg.add(build_module("Core", make()))


def test_registration_order_is_preserved():
    reg = ModuleRegistry()
    reg.add(build_module("B", _routine))
    reg.add(build_module("A", _other_routine))

    assert [d.name for d in reg.list()] == ["B", "A"]


def test_only_definitions_are_accepted():
    with pytest.raises(TypeError):
        ModuleRegistry().add(_routine)  # type: ignore[arg-type]
