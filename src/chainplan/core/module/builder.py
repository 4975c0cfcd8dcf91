# src/chainplan/core/module/builder.py
"""
Module Builder do Chainplan.

Este módulo define o contexto explícito (`ModuleBuilder`) passado à rotina
de um módulo. A rotina é executada uma única vez, de forma síncrona, e
cada operação declarativa registra um future imutável em ordem de
declaração.

Operações expostas à rotina:
    - account(index)                     → AccountRef
    - parameter(name, default)           → Literal (resolvido por configuração)
    - contract(name, args)               → DeployContract
    - contract_at(name, address)         → DeployedContractAt
    - call(contract, method, args)       → Call
    - static_call(contract, method, args)→ StaticCall
    - read_event_argument(future, ...)   → ReadEventArgument
    - use_module(definition)             → exports do sub-módulo

Opções reconhecidas (keyword-only):
    - id: sobrescreve o id local derivado automaticamente
    - from_: conta remetente (literal ou future)
    - value: valor enviado na transação
    - after: dependências explícitas sem fluxo de dados

Princípios fundamentais:
    - Não existe builder "corrente" global: o contexto é sempre explícito
    - Futures só podem consumir literais ou futures em escopo
      (registrados por este builder ou importados via use_module)
    - Erros estruturais são detectados no build, antes de qualquer rede

Invariantes:
    - Ids de futures são únicos dentro de um módulo
    - A ordem de declaração é preservada (desempate do planner)
    - Um Module produzido é imutável

Limites explícitos:
    - Não executa rotinas de sub-módulos (delegado ao resolver de composição)
    - Não ordena futures
    - Não acessa rede nem artefatos
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from chainplan.core.exceptions import (
    DuplicateFutureIdError,
    InvalidArgumentError,
    InvalidModuleResultError,
    UnknownFutureError,
)
from chainplan.core.futures.types import (
    CONTRACT_KINDS,
    TRANSACTION_KINDS,
    AccountRefFuture,
    CallFuture,
    ContractAtFuture,
    DeployContractFuture,
    Future,
    FutureRef,
    LiteralFuture,
    ReadEventArgumentFuture,
    StaticCallFuture,
)


_MISSING = object()

_LITERAL_TYPES = (type(None), bool, int, str, bytes)


@dataclass(frozen=True)
class ModuleDefinition:
    """
    Definição preguiçosa de um módulo: nome + rotina construtora.

    A rotina recebe um `ModuleBuilder` e retorna um mapa
    nome de export → future. Ela só é executada pelo resolver de
    composição, no máximo uma vez por deployment.
    """
    name: str
    routine: Callable[["ModuleBuilder"], Mapping[str, Future]]


def build_module(name: str, routine: Callable[["ModuleBuilder"], Mapping[str, Future]]) -> ModuleDefinition:
    """Declara um módulo sem executá-lo."""
    if not isinstance(name, str) or not name.strip():
        raise ValueError("module name must be a non-empty string")
    if "#" in name:
        raise ValueError(f"module name must not contain '#': {name}")
    if not callable(routine):
        raise TypeError(f"module routine must be callable: {name}")
    return ModuleDefinition(name=name, routine=routine)


@dataclass(frozen=True)
class Module:
    """
    Módulo construído: grafo nomeado e ordenado de futures.

    Campos:
        - name: nome do módulo
        - futures: futures registrados, em ordem de declaração
        - exports: nome → future retornado pela rotina
        - submodules: nomes dos módulos compostos, na ordem de primeiro uso
    """
    name: str
    futures: Tuple[Future, ...]
    exports: Mapping[str, Future]
    submodules: Tuple[str, ...]

    def get(self, future_id: str) -> Future:
        for f in self.futures:
            if f.id == future_id:
                return f
        raise KeyError(future_id)


class ModuleBuilder:
    """
    Contexto explícito de construção de um módulo.

    Registra futures em ordem de declaração e valida, a cada operação,
    que argumentos são literais ou futures em escopo. Ao final,
    `finalize` converte o retorno da rotina no `Module` imutável.
    """

    def __init__(
        self,
        name: str,
        *,
        compose: Optional[Callable[[ModuleDefinition], Module]] = None,
    ):
        self.name = name
        self._compose = compose
        self._futures: List[Future] = []
        self._scope: Dict[str, Future] = {}
        self._accounts: Dict[int, AccountRefFuture] = {}
        self._parameters: Dict[str, LiteralFuture] = {}
        self._submodules: List[str] = []
        self._finalized = False

    # ------------------------------------------------------------------
    # Escopo e normalização de argumentos
    # ------------------------------------------------------------------

    def _future_id(self, local_id: str) -> str:
        if not isinstance(local_id, str) or not local_id.strip():
            raise InvalidArgumentError(
                message=f"Module '{self.name}': future id must be a non-empty string",
                details={"module": self.name, "id": local_id},
            )
        if "#" in local_id:
            raise InvalidArgumentError(
                message=f"Module '{self.name}': future id must not contain '#': {local_id}",
                details={"module": self.name, "id": local_id},
            )
        return f"{self.name}#{local_id}"

    def _require_in_scope(self, future: Future, *, operation: str) -> Future:
        known = self._scope.get(future.id)
        if known is not future:
            raise UnknownFutureError(
                message=(
                    f"Module '{self.name}': {operation} received future '{future.id}' "
                    f"({future.kind.value}) that is not in scope"
                ),
                details={"module": self.name, "future_id": future.id, "kind": future.kind.value},
                hint="Use apenas futures registrados neste módulo ou retornados por use_module.",
            )
        return future

    def _normalize(self, value: Any, *, operation: str) -> Any:
        if isinstance(value, Future):
            return FutureRef(self._require_in_scope(value, operation=operation).id)
        if isinstance(value, _LITERAL_TYPES):
            return value
        if isinstance(value, (list, tuple)):
            return tuple(self._normalize(v, operation=operation) for v in value)
        if isinstance(value, dict):
            return {str(k): self._normalize(v, operation=operation) for k, v in value.items()}
        raise InvalidArgumentError(
            message=(
                f"Module '{self.name}': {operation} received unsupported argument "
                f"of type {type(value).__name__}"
            ),
            details={"module": self.name, "operation": operation, "type": type(value).__name__},
        )

    def _after(self, after: Sequence[Future], *, operation: str) -> Tuple[str, ...]:
        ids = []
        for f in after or ():
            if not isinstance(f, Future):
                raise InvalidArgumentError(
                    message=f"Module '{self.name}': {operation} 'after' accepts only futures",
                    details={"module": self.name, "operation": operation},
                )
            ids.append(self._require_in_scope(f, operation=operation).id)
        return tuple(ids)

    def _contract_ref(self, contract: Any, *, operation: str) -> FutureRef:
        if not isinstance(contract, Future) or contract.kind not in CONTRACT_KINDS:
            raise InvalidArgumentError(
                message=f"Module '{self.name}': {operation} requires a contract future",
                details={"module": self.name, "operation": operation},
            )
        return FutureRef(self._require_in_scope(contract, operation=operation).id)

    def _record(self, future: Future) -> Future:
        if self._finalized:
            raise InvalidArgumentError(
                message=f"Module '{self.name}' is already built; cannot record '{future.id}'",
                details={"module": self.name, "future_id": future.id, "kind": future.kind.value},
            )
        if future.id in self._scope:
            raise DuplicateFutureIdError(
                message=f"Duplicate future id: {future.id}",
                details={"module": self.name, "future_id": future.id, "kind": future.kind.value},
                hint="Informe `id=` explícito para distinguir futures do mesmo contrato/método.",
            )
        self._futures.append(future)
        self._scope[future.id] = future
        return future

    # ------------------------------------------------------------------
    # Operações declarativas
    # ------------------------------------------------------------------

    def account(self, index: int) -> AccountRefFuture:
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise InvalidArgumentError(
                message=f"Module '{self.name}': account index must be a non-negative int",
                details={"module": self.name, "index": index},
            )
        if index not in self._accounts:
            self._accounts[index] = self._record(
                AccountRefFuture(id=self._future_id(f"account.{index}"), module=self.name, after=(), index=index)
            )
        return self._accounts[index]

    def parameter(self, name: str, default: Any = _MISSING) -> LiteralFuture:
        if name not in self._parameters:
            has_default = default is not _MISSING
            self._parameters[name] = self._record(
                LiteralFuture(
                    id=self._future_id(f"param.{name}"),
                    module=self.name,
                    after=(),
                    name=name,
                    default=self._normalize(default, operation="parameter") if has_default else None,
                    has_default=has_default,
                )
            )
            return self._parameters[name]

        known = self._parameters[name]
        if default is not _MISSING:
            normalized = self._normalize(default, operation="parameter")
            if not known.has_default or known.default != normalized:
                raise InvalidArgumentError(
                    message=(
                        f"Module '{self.name}': parameter '{name}' was already declared "
                        "with a different default"
                    ),
                    details={"module": self.name, "parameter": name},
                )
        return known

    def contract(
        self,
        name: str,
        args: Sequence[Any] = (),
        *,
        id: Optional[str] = None,
        from_: Any = None,
        value: Any = None,
        after: Sequence[Future] = (),
    ) -> DeployContractFuture:
        op = f"contract({name})"
        return self._record(
            DeployContractFuture(
                id=self._future_id(id or name),
                module=self.name,
                after=self._after(after, operation=op),
                contract_name=name,
                args=self._normalize(tuple(args), operation=op),
                sender=self._normalize(from_, operation=op),
                value=self._normalize(value, operation=op),
            )
        )

    def contract_at(
        self,
        name: str,
        address: Union[str, Future],
        *,
        id: Optional[str] = None,
        after: Sequence[Future] = (),
    ) -> ContractAtFuture:
        op = f"contract_at({name})"
        if not isinstance(address, (str, Future)):
            raise InvalidArgumentError(
                message=f"Module '{self.name}': {op} address must be a string or a future",
                details={"module": self.name, "operation": op},
            )
        return self._record(
            ContractAtFuture(
                id=self._future_id(id or name),
                module=self.name,
                after=self._after(after, operation=op),
                contract_name=name,
                address=self._normalize(address, operation=op),
            )
        )

    def call(
        self,
        contract: Future,
        method: str,
        args: Sequence[Any] = (),
        *,
        id: Optional[str] = None,
        from_: Any = None,
        value: Any = None,
        after: Sequence[Future] = (),
    ) -> CallFuture:
        op = f"call({method})"
        ref = self._contract_ref(contract, operation=op)
        return self._record(
            CallFuture(
                id=self._future_id(id or f"{contract.local_id}.{method}"),
                module=self.name,
                after=self._after(after, operation=op),
                contract=ref,
                method=method,
                args=self._normalize(tuple(args), operation=op),
                sender=self._normalize(from_, operation=op),
                value=self._normalize(value, operation=op),
            )
        )

    def static_call(
        self,
        contract: Future,
        method: str,
        args: Sequence[Any] = (),
        *,
        output: Union[str, int, None] = None,
        id: Optional[str] = None,
        from_: Any = None,
        after: Sequence[Future] = (),
    ) -> StaticCallFuture:
        op = f"static_call({method})"
        ref = self._contract_ref(contract, operation=op)
        return self._record(
            StaticCallFuture(
                id=self._future_id(id or f"{contract.local_id}.{method}"),
                module=self.name,
                after=self._after(after, operation=op),
                contract=ref,
                method=method,
                args=self._normalize(tuple(args), operation=op),
                sender=self._normalize(from_, operation=op),
                output=output,
            )
        )

    def read_event_argument(
        self,
        future: Future,
        event: str,
        argument: str,
        *,
        emitter: Optional[Future] = None,
        index: int = 0,
        id: Optional[str] = None,
        after: Sequence[Future] = (),
    ) -> ReadEventArgumentFuture:
        op = f"read_event_argument({event}.{argument})"
        if not isinstance(future, Future) or future.kind not in TRANSACTION_KINDS:
            raise InvalidArgumentError(
                message=f"Module '{self.name}': {op} requires a deploy or call future",
                details={"module": self.name, "operation": op},
            )
        source = self._require_in_scope(future, operation=op)

        if emitter is None:
            # call: o emissor padrão é o contrato chamado
            emitter = source if isinstance(source, DeployContractFuture) else self._scope.get(source.contract.id)
            if emitter is None:
                raise InvalidArgumentError(
                    message=(
                        f"Module '{self.name}': {op} cannot infer the emitter of '{source.id}'; "
                        "pass emitter= explicitly"
                    ),
                    details={"module": self.name, "future_id": source.id, "kind": source.kind.value},
                )
        emitter_ref = self._contract_ref(emitter, operation=op)

        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise InvalidArgumentError(
                message=f"Module '{self.name}': {op} index must be a non-negative int",
                details={"module": self.name, "operation": op, "index": index},
            )

        event_name = event.split("(", 1)[0]
        return self._record(
            ReadEventArgumentFuture(
                id=self._future_id(id or f"{emitter.local_id}.{event_name}.{argument}.{index}"),
                module=self.name,
                after=self._after(after, operation=op),
                source=FutureRef(source.id),
                emitter=emitter_ref,
                event=event,
                argument=argument,
                index=index,
            )
        )

    def use_module(self, definition: "ModuleDefinition") -> Mapping[str, Future]:
        """Compõe outro módulo e traz seus exports para o escopo deste builder."""
        if self._compose is None:
            raise InvalidArgumentError(
                message=f"Module '{self.name}': use_module requires a composition resolver",
                details={"module": self.name},
            )
        module = self._compose(definition)
        for f in module.exports.values():
            self._scope.setdefault(f.id, f)
        if module.name not in self._submodules:
            self._submodules.append(module.name)
        return MappingProxyType(dict(module.exports))

    # ------------------------------------------------------------------
    # Finalização
    # ------------------------------------------------------------------

    def finalize(self, result: Any) -> Module:
        """Valida o retorno da rotina e produz o Module imutável."""
        if result is None:
            result = {}
        if not isinstance(result, Mapping):
            raise InvalidModuleResultError(
                message=(
                    f"Module '{self.name}' must return a mapping of export name to future, "
                    f"got {type(result).__name__}"
                ),
                details={"module": self.name, "type": type(result).__name__},
            )

        exports: Dict[str, Future] = {}
        for export_name, future in result.items():
            if not isinstance(export_name, str) or not isinstance(future, Future):
                raise InvalidModuleResultError(
                    message=f"Module '{self.name}': export '{export_name}' is not a future",
                    details={"module": self.name, "export": str(export_name)},
                )
            exports[export_name] = self._require_in_scope(future, operation=f"export '{export_name}'")

        self._finalized = True
        return Module(
            name=self.name,
            futures=tuple(self._futures),
            exports=MappingProxyType(exports),
            submodules=tuple(self._submodules),
        )
