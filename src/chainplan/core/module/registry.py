# src/chainplan/core/module/registry.py
"""
Registro estrutural de definições de módulo.

Este módulo define o `ModuleRegistry`, responsável por registrar
definições de módulo por nome e garantir que um mesmo nome corresponda
sempre à mesma rotina construtora dentro de uma deployment.

Política de identidade (v1):
    - mesma definição, ou mesma rotina por referência → aceito (idempotente)
    - rotina que aparenta ser a mesma (mesmo módulo Python e qualname),
      mas não é o mesmo objeto → ModuleIdentityMismatchError
      (ex.: closure recriada, módulo recarregado)
    - rotinas genuinamente distintas com o mesmo nome → DuplicateModuleNameError

Decisões arquiteturais:
    - Identidade é por referência da rotina; não há comparação estrutural
    - Conflitos nunca são resolvidos por merge silencioso
    - A ordem de registro é preservada separadamente

Limites explícitos:
    - Não executa rotinas
    - Não resolve composição nem ordena futures
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from chainplan.core.exceptions import DuplicateModuleNameError, ModuleIdentityMismatchError

from .builder import ModuleDefinition


def _routine_location(definition: ModuleDefinition) -> tuple:
    routine = definition.routine
    return (
        getattr(routine, "__module__", None),
        getattr(routine, "__qualname__", None),
    )


@dataclass
class ModuleRegistry:
    """
    Registro canônico de definições de módulo por nome.

    Invariantes:
        - Cada nome aponta para exatamente uma rotina
        - `list()` reflete a ordem de registro
    """

    _definitions: Dict[str, ModuleDefinition] = field(default_factory=dict, init=False, repr=False)
    _order: List[str] = field(default_factory=list, init=False, repr=False)

    def add(self, definition: ModuleDefinition) -> None:
        if not isinstance(definition, ModuleDefinition):
            raise TypeError("ModuleRegistry accepts only ModuleDefinition instances")

        name = definition.name
        known = self._definitions.get(name)
        if known is None:
            self._definitions[name] = definition
            self._order.append(name)
            return

        if known is definition or known.routine is definition.routine:
            return

        details = {
            "module": name,
            "registered": ".".join(str(p) for p in _routine_location(known)),
            "incoming": ".".join(str(p) for p in _routine_location(definition)),
        }
        if _routine_location(known) == _routine_location(definition):
            raise ModuleIdentityMismatchError(
                message=f"Module '{name}' was used with a routine that is not the same object",
                details=details,
                hint="Declare o módulo uma única vez (build_module) e reutilize a mesma definição.",
            )
        raise DuplicateModuleNameError(
            message=f"Duplicate module name: {name}",
            details=details,
            hint="Renomeie um dos módulos; nomes identificam módulos de forma única na deployment.",
        )

    def has(self, name: str) -> bool:
        return name in self._definitions

    def get(self, name: str) -> ModuleDefinition:
        return self._definitions[name]

    def list(self) -> List[ModuleDefinition]:
        return [self._definitions[n] for n in self._order]
