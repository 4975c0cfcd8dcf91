# src/chainplan/core/module/composition.py
"""
Resolver de composição de módulos.

Dado um módulo raiz, expande recursivamente cada `use_module`, executando
cada rotina distinta exatamente uma vez (memoização por nome) e produzindo
um único grafo mesclado com todos os futures da deployment.

Decisões arquiteturais:
    - A identidade de um módulo é seu nome; o ModuleRegistry garante que
      o nome corresponda sempre à mesma rotina
    - A ordem de composição é a ordem de conclusão: sub-módulos aparecem
      antes dos módulos que os usam
    - Arestas entre módulos são ids comuns; o grafo mesclado não distingue
      fronteiras de módulo

Invariantes:
    - Cada rotina executa no máximo uma vez por resolução
    - Um sub-módulo usado em vários pontos produz os mesmos exports
    - Composição cíclica (A usa B que usa A) é erro fatal

Limites explícitos:
    - Não ordena futures (responsabilidade do planner)
    - Não executa ações de rede
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

from chainplan.core.exceptions import CyclicDependencyError
from chainplan.core.futures.types import Future

from .builder import Module, ModuleBuilder, ModuleDefinition
from .registry import ModuleRegistry


@dataclass(frozen=True)
class DeploymentGraph:
    """
    Grafo mesclado de uma deployment.

    Campos:
        - root: módulo raiz (seus exports formam o resultado da deployment)
        - modules: módulos distintos em ordem de composição
    """
    root: Module
    modules: Tuple[Module, ...]

    @property
    def futures(self) -> Tuple[Future, ...]:
        return tuple(f for m in self.modules for f in m.futures)

    def module_rank(self, name: str) -> int:
        for i, m in enumerate(self.modules):
            if m.name == name:
                return i
        raise KeyError(name)

    def ranks(self) -> Dict[str, Tuple[int, int]]:
        """Chave de desempate por future: (ordem de composição, ordem de declaração)."""
        out: Dict[str, Tuple[int, int]] = {}
        for mi, m in enumerate(self.modules):
            for fi, f in enumerate(m.futures):
                out[f.id] = (mi, fi)
        return out


class CompositionResolver:
    """Executa rotinas de módulo com memoização por nome."""

    def __init__(self, registry: ModuleRegistry | None = None):
        self.registry = registry if registry is not None else ModuleRegistry()
        self._modules: Dict[str, Module] = {}
        self._order: List[str] = []
        self._stack: List[str] = []

    def resolve(self, definition: ModuleDefinition) -> Module:
        if not isinstance(definition, ModuleDefinition):
            raise TypeError("use_module expects a ModuleDefinition (see build_module)")

        self.registry.add(definition)
        name = definition.name

        if name in self._stack:
            cycle = self._stack[self._stack.index(name):] + [name]
            raise CyclicDependencyError(
                message=f"Cyclic module composition: {' -> '.join(cycle)}",
                details={"cycle": cycle, "kind": "module"},
            )

        cached = self._modules.get(name)
        if cached is not None:
            return cached

        self._stack.append(name)
        try:
            builder = ModuleBuilder(name, compose=self.resolve)
            module = builder.finalize(definition.routine(builder))
        finally:
            self._stack.pop()

        self._modules[name] = module
        self._order.append(name)
        return module

    def modules(self) -> Tuple[Module, ...]:
        return tuple(self._modules[n] for n in self._order)


def resolve_deployment(definition: ModuleDefinition, *, registry: ModuleRegistry | None = None) -> DeploymentGraph:
    """
    Resolve a composição a partir do módulo raiz e retorna o grafo mesclado.

    Raises:
        DuplicateModuleNameError / ModuleIdentityMismatchError: conflito de nomes.
        CyclicDependencyError: composição cíclica de módulos.
        BuildError: qualquer erro de build levantado pelas rotinas.
    """
    resolver = CompositionResolver(registry)
    root = resolver.resolve(definition)
    return DeploymentGraph(root=root, modules=resolver.modules())
