# src/chainplan/core/futures/types.py
"""
Tipos canônicos do grafo de futures do Chainplan.

Um future representa o resultado diferido de uma ação de deployment
(deploy de contrato, chamada, leitura estática, leitura de argumento de
evento, referência a conta, parâmetro literal). Futures são nós de um
grafo explícito, endereçados por identificadores estáveis.

Componentes principais:
    - FutureKind      → enum fechado de tipos de future (tag do variant)
    - FutureRef       → referência por id usada dentro de argumentos
    - Future          → base imutável; uma subclasse frozen por FutureKind
    - ContractHandle  → valor resolvido de futures que produzem contratos

Princípios fundamentais:
    - Futures são imutáveis após registrados
    - Arestas de dependência são dados (ids), nunca referências estruturais
    - Um future nunca carrega resultado; valores vivem no journal/engine

Invariantes:
    - `id` segue o formato "<módulo>#<id local>"
    - `dependencies` preserva a ordem de primeira ocorrência e não repete ids
    - Argumentos contêm apenas literais ou FutureRef

Limites explícitos:
    - Não valida escopo (responsabilidade do ModuleBuilder)
    - Não ordena futures (responsabilidade do planner)
    - Não executa ações de rede
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Sequence, Tuple, Union


class FutureKind(str, Enum):
    """
    Tipos de future suportados pelo Chainplan.

    Os valores são strings para facilitar serialização no journal e
    leitura humana em mensagens de erro e relatórios.
    """
    DEPLOY_CONTRACT = "DeployContract"
    CONTRACT_AT = "DeployedContractAt"
    STATIC_CALL = "StaticCall"
    CALL = "Call"
    READ_EVENT_ARGUMENT = "ReadEventArgument"
    ACCOUNT_REF = "AccountRef"
    LITERAL = "Literal"


# Kinds cujo valor resolvido é um ContractHandle.
CONTRACT_KINDS = frozenset({FutureKind.DEPLOY_CONTRACT, FutureKind.CONTRACT_AT})

# Kinds que enviam transação e, portanto, possuem receipt.
TRANSACTION_KINDS = frozenset({FutureKind.DEPLOY_CONTRACT, FutureKind.CALL})


@dataclass(frozen=True)
class FutureRef:
    """Referência a outro future por id, usada dentro de argumentos."""
    id: str


@dataclass(frozen=True)
class ContractHandle:
    """
    Contrato resolvido: endereço + vínculo com nome/ABI.

    A igualdade considera apenas endereço e nome do contrato; o ABI
    acompanha o handle para interação posterior, mas não participa da
    comparação.
    """
    address: str
    contract_name: str
    abi: Sequence[Mapping[str, Any]] = field(default=(), compare=False, repr=False)


def collect_refs(value: Any, out: List[str]) -> None:
    """Acumula, em ordem, os ids de FutureRef contidos em `value` (recursivo)."""
    if isinstance(value, FutureRef):
        out.append(value.id)
    elif isinstance(value, (list, tuple)):
        for item in value:
            collect_refs(item, out)
    elif isinstance(value, dict):
        for item in value.values():
            collect_refs(item, out)


@dataclass(frozen=True)
class Future:
    """
    Base imutável de todos os futures.

    Campos comuns:
        - id: "<módulo>#<id local>", único no grafo mesclado
        - module: nome do módulo que registrou o future
        - after: ids de dependências explícitas sem fluxo de dados

    Subclasses declaram `kind` (ClassVar) e seus próprios campos; qualquer
    campo pode conter FutureRef, e `dependencies` os descobre todos.
    """
    kind: ClassVar[FutureKind]

    id: str
    module: str
    after: Tuple[str, ...]

    @property
    def local_id(self) -> str:
        return self.id.split("#", 1)[1] if "#" in self.id else self.id

    def _payload_fields(self) -> Tuple[Any, ...]:
        return ()

    @property
    def dependencies(self) -> Tuple[str, ...]:
        ids: List[str] = []
        for value in self._payload_fields():
            collect_refs(value, ids)
        ids.extend(self.after)

        seen = set()
        ordered: List[str] = []
        for fid in ids:
            if fid not in seen:
                seen.add(fid)
                ordered.append(fid)
        return tuple(ordered)

    def describe(self) -> Dict[str, Any]:
        """Conteúdo canônico (sem o id) usado em fingerprint e relatórios."""
        return {"kind": self.kind.value, "after": list(self.after)}


@dataclass(frozen=True)
class DeployContractFuture(Future):
    kind: ClassVar[FutureKind] = FutureKind.DEPLOY_CONTRACT

    contract_name: str
    args: Tuple[Any, ...]
    sender: Optional[Any]
    value: Optional[Any]

    def _payload_fields(self) -> Tuple[Any, ...]:
        return (self.args, self.sender, self.value)

    def describe(self) -> Dict[str, Any]:
        d = super().describe()
        d.update(contract_name=self.contract_name, args=self.args, sender=self.sender, value=self.value)
        return d


@dataclass(frozen=True)
class ContractAtFuture(Future):
    kind: ClassVar[FutureKind] = FutureKind.CONTRACT_AT

    contract_name: str
    address: Union[str, FutureRef]

    def _payload_fields(self) -> Tuple[Any, ...]:
        return (self.address,)

    def describe(self) -> Dict[str, Any]:
        d = super().describe()
        d.update(contract_name=self.contract_name, address=self.address)
        return d


@dataclass(frozen=True)
class CallFuture(Future):
    kind: ClassVar[FutureKind] = FutureKind.CALL

    contract: FutureRef
    method: str
    args: Tuple[Any, ...]
    sender: Optional[Any]
    value: Optional[Any]

    def _payload_fields(self) -> Tuple[Any, ...]:
        return (self.contract, self.args, self.sender, self.value)

    def describe(self) -> Dict[str, Any]:
        d = super().describe()
        d.update(contract=self.contract, method=self.method, args=self.args, sender=self.sender, value=self.value)
        return d


@dataclass(frozen=True)
class StaticCallFuture(Future):
    kind: ClassVar[FutureKind] = FutureKind.STATIC_CALL

    contract: FutureRef
    method: str
    args: Tuple[Any, ...]
    sender: Optional[Any]
    output: Union[str, int, None]

    def _payload_fields(self) -> Tuple[Any, ...]:
        return (self.contract, self.args, self.sender)

    def describe(self) -> Dict[str, Any]:
        d = super().describe()
        d.update(contract=self.contract, method=self.method, args=self.args, sender=self.sender, output=self.output)
        return d


@dataclass(frozen=True)
class ReadEventArgumentFuture(Future):
    kind: ClassVar[FutureKind] = FutureKind.READ_EVENT_ARGUMENT

    source: FutureRef
    emitter: FutureRef
    event: str
    argument: str
    index: int

    def _payload_fields(self) -> Tuple[Any, ...]:
        return (self.source, self.emitter)

    def describe(self) -> Dict[str, Any]:
        d = super().describe()
        d.update(
            source=self.source,
            emitter=self.emitter,
            event=self.event,
            argument=self.argument,
            index=self.index,
        )
        return d


@dataclass(frozen=True)
class AccountRefFuture(Future):
    kind: ClassVar[FutureKind] = FutureKind.ACCOUNT_REF

    index: int

    def describe(self) -> Dict[str, Any]:
        d = super().describe()
        d.update(index=self.index)
        return d


@dataclass(frozen=True)
class LiteralFuture(Future):
    """Parâmetro de módulo, resolvido a partir da configuração (ou default)."""
    kind: ClassVar[FutureKind] = FutureKind.LITERAL

    name: str
    default: Any
    has_default: bool

    def _payload_fields(self) -> Tuple[Any, ...]:
        return (self.default,)

    def describe(self) -> Dict[str, Any]:
        d = super().describe()
        d.update(name=self.name, default=self.default, has_default=self.has_default)
        return d
