# src/chainplan/core/engine/planner.py
"""
Planejador de execução da deployment (DAG de futures).

Este módulo é responsável por validar a estrutura do grafo mesclado de
futures e produzir uma ordem de execução topológica determinística,
agrupada em batches de futures independentes.

O planner opera exclusivamente em nível estrutural, analisando:
    - identificadores de futures
    - dependências inferidas (argumentos) e explícitas (`after`)
    - formação de ciclos
    - consistência do grafo

Decisões arquiteturais:
    - Utiliza ordenação topológica determinística (Kahn com fila de prioridade)
    - Empates são resolvidos por ordem de declaração dentro do módulo e,
      em seguida, pela ordem de composição dos módulos
    - Batches são níveis de profundidade: batch(v) = 1 + max(batch(dep))
    - Erros estruturais são tratados como falhas fatais

Invariantes:
    - Para toda aresta u → v, u aparece em um batch estritamente anterior a v
    - Todos os futures aparecem exatamente uma vez na ordem final
    - A mesma definição de deployment produz sempre o mesmo plano

Limites explícitos:
    - Não executa futures
    - Não consulta o journal
    - Não decide políticas de retry
"""

from __future__ import annotations

import heapq
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple, Union

from chainplan.core.exceptions import CyclicDependencyError, UnknownFutureError
from chainplan.core.futures.types import Future
from chainplan.core.module.composition import DeploymentGraph


@dataclass(frozen=True)
class ExecutionPlan:
    """
    Plano de execução: ordem linear + batches de futures independentes.

    `order` é a concatenação dos batches; dentro de cada batch os futures
    seguem a chave de desempate (composição, declaração).
    """
    order: Tuple[Future, ...]
    batches: Tuple[Tuple[Future, ...], ...]

    @property
    def futures_by_id(self) -> Dict[str, Future]:
        return {f.id: f for f in self.order}

    def get(self, future_id: str) -> Future:
        for f in self.order:
            if f.id == future_id:
                return f
        raise KeyError(future_id)

    def batch_index(self, future_id: str) -> int:
        for i, batch in enumerate(self.batches):
            if any(f.id == future_id for f in batch):
                return i
        raise KeyError(future_id)


def _find_cycle(remaining: Set[str], deps: Mapping[str, Tuple[str, ...]], rank: Mapping[str, Tuple[int, int]]) -> List[str]:
    """Percorre dependências restantes a partir do menor rank até repetir um nó."""
    start = min(remaining, key=lambda fid: rank[fid])
    path: List[str] = []
    position: Dict[str, int] = {}
    node = start
    while node not in position:
        position[node] = len(path)
        path.append(node)
        node = min((d for d in deps[node] if d in remaining), key=lambda fid: rank[fid])
    return path[position[node]:] + [node]


def plan_execution(
    futures: Union[DeploymentGraph, Iterable[Future]],
    *,
    ranks: Optional[Mapping[str, Tuple[int, int]]] = None,
) -> ExecutionPlan:
    """
    Valida e produz o plano de execução topológico e determinístico.

    Args:
        futures: grafo mesclado (`DeploymentGraph`) ou coleção de futures.
        ranks: chave de desempate opcional por id; para um DeploymentGraph
            é derivada da ordem de composição e de declaração, para uma
            coleção simples é a posição de entrada.

    Returns:
        ExecutionPlan: ordem linear e batches.

    Raises:
        ValueError: Se algum future possuir id inválido ou duplicado.
        UnknownFutureError: Se uma dependência não existir no grafo.
        CyclicDependencyError: Se houver ciclo (details["cycle"] lista os ids).
    """
    if isinstance(futures, DeploymentGraph):
        ranks = ranks or futures.ranks()
        future_list = list(futures.futures)
    else:
        future_list = list(futures)

    by_id: Dict[str, Future] = {}
    for f in future_list:
        fid = getattr(f, "id", None)
        if not isinstance(fid, str) or not fid.strip():
            raise ValueError("future.id must be a non-empty string")
        if fid in by_id:
            raise ValueError(f"Duplicate future id: {fid}")
        by_id[fid] = f

    rank: Dict[str, Tuple[int, int]] = {}
    for pos, fid in enumerate(by_id):
        rank[fid] = tuple(ranks[fid]) if ranks is not None and fid in ranks else (0, pos)

    deps: Dict[str, Tuple[str, ...]] = {}
    for fid, f in by_id.items():
        for dep in f.dependencies:
            if dep not in by_id:
                raise UnknownFutureError(
                    message=f"Future '{fid}' ({f.kind.value}) depends on unknown future '{dep}'",
                    details={"future_id": fid, "kind": f.kind.value, "dependency": dep},
                )
        deps[fid] = f.dependencies

    # Kahn determinístico
    incoming: Dict[str, int] = {fid: len(d) for fid, d in deps.items()}
    outgoing: Dict[str, List[str]] = {fid: [] for fid in by_id}
    for fid, dlist in deps.items():
        for dep in dlist:
            outgoing[dep].append(fid)

    ready: List[Tuple[Tuple[int, int], str]] = [(rank[fid], fid) for fid, c in incoming.items() if c == 0]
    heapq.heapify(ready)
    depth: Dict[str, int] = {}

    while ready:
        _, fid = heapq.heappop(ready)
        depth[fid] = 1 + max((depth[d] for d in deps[fid]), default=-1)
        for child in outgoing[fid]:
            incoming[child] -= 1
            if incoming[child] == 0:
                heapq.heappush(ready, (rank[child], child))

    if len(depth) != len(by_id):
        cycle = _find_cycle(set(by_id) - set(depth), deps, rank)
        raise CyclicDependencyError(
            message=f"Cyclic dependency between futures: {' -> '.join(cycle)}",
            details={"cycle": cycle, "future_id": cycle[0], "kind": by_id[cycle[0]].kind.value},
        )

    levels: Dict[int, List[Future]] = {}
    for fid in sorted(by_id, key=lambda i: (depth[i], rank[i])):
        levels.setdefault(depth[fid], []).append(by_id[fid])

    batches = tuple(tuple(levels[d]) for d in sorted(levels))
    order = tuple(f for batch in batches for f in batch)
    return ExecutionPlan(order=order, batches=batches)
