"""
Chainplan — Canonical Exceptions (v1)

Este módulo define as exceções tipadas do Chainplan.

Objetivo:
- Permitir que builder, resolver, planner e engine levantem exceções semânticas
- Facilitar o mapeamento determinístico para ErrorPayload (journal e resultado)
- Evitar ValueError/RuntimeError genéricos em guardrails críticos

Famílias:
- BuildError        → fatais, detectados antes de qualquer ação de rede
- ResolutionError   → fatais para o future afetado e seus dependentes
- ExecutionError    → falhas de rede/transação (retryable ou fatais)
- ResumabilityError → journal corrompido ou divergente do plano

Regras:
- Exceções carregam apenas dados estruturados (serializáveis) em `details`.
- Exceções associadas a um future sempre carregam `future_id` e `kind`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True, eq=False)
class ChainplanException(Exception):
    """Base class para exceções internas do Chainplan.

    Importante:
    - Sempre carregar dados estruturados em `details`
    - Mensagem deve ser curta, humana e citar o future quando houver
    """

    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    hint: Optional[str] = None

    def __str__(self) -> str:
        return self.message

    @property
    def future_id(self) -> Optional[str]:
        return self.details.get("future_id")

    @property
    def retryable(self) -> bool:
        return False


# ---------------------------------------------------------------------------
# Build-time
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class BuildError(ChainplanException):
    """Erro estrutural detectado ao construir ou planejar a deployment."""


@dataclass(frozen=True, eq=False)
class UnknownFutureError(BuildError):
    """Future referenciado não pertence ao escopo do builder ou ao grafo."""


@dataclass(frozen=True, eq=False)
class DuplicateFutureIdError(BuildError):
    """Dois futures do mesmo módulo com o mesmo identificador."""


@dataclass(frozen=True, eq=False)
class InvalidArgumentError(BuildError):
    """Argumento de uma operação do builder não é literal nem future válido."""


@dataclass(frozen=True, eq=False)
class InvalidModuleResultError(BuildError):
    """A rotina do módulo retornou algo que não é um mapa nome → future."""


@dataclass(frozen=True, eq=False)
class CyclicDependencyError(BuildError):
    """O grafo de futures (ou de módulos) contém um ciclo."""


@dataclass(frozen=True, eq=False)
class DuplicateModuleNameError(BuildError):
    """Duas rotinas distintas declaram o mesmo nome de módulo."""


@dataclass(frozen=True, eq=False)
class ModuleIdentityMismatchError(BuildError):
    """O mesmo nome de módulo foi usado com rotinas não idênticas por referência."""


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class ResolutionError(ChainplanException):
    """Falha ao resolver o valor de um future a partir de dados já obtidos."""


@dataclass(frozen=True, eq=False)
class EventNotFoundError(ResolutionError):
    """Nenhum log do receipt corresponde ao evento declarado."""


@dataclass(frozen=True, eq=False)
class ArgumentNotFoundError(ResolutionError):
    """O argumento não existe na assinatura do evento."""


@dataclass(frozen=True, eq=False)
class AmbiguousEventError(ResolutionError):
    """Nome de evento sobrecarregado sem assinatura completa."""


@dataclass(frozen=True, eq=False)
class UnknownMethodError(ResolutionError):
    """Método (ou sobrecarga) inexistente no ABI do contrato."""


@dataclass(frozen=True, eq=False)
class UnknownAccountError(ResolutionError):
    """Índice de conta fora da lista configurada."""


@dataclass(frozen=True, eq=False)
class MissingParameterError(ResolutionError):
    """Parâmetro de módulo sem valor configurado nem default."""


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class ExecutionError(ChainplanException):
    """Falha ao executar a ação de rede de um future."""


@dataclass(frozen=True, eq=False)
class TransientNetworkError(ExecutionError):
    """Falha transitória de RPC; a ação pode ser tentada novamente."""

    @property
    def retryable(self) -> bool:
        return True


@dataclass(frozen=True, eq=False)
class ReceiptTimeoutError(TransientNetworkError):
    """O colaborador de rede esgotou o tempo aguardando o receipt."""


@dataclass(frozen=True, eq=False)
class TransactionRevertedError(ExecutionError):
    """Transação minerada com status de falha (revert)."""


@dataclass(frozen=True, eq=False)
class InsufficientFundsError(ExecutionError):
    """Conta remetente sem saldo para a transação."""


@dataclass(frozen=True, eq=False)
class NonceConflictError(ExecutionError):
    """Nonce em conflito não resolvido pela reconciliação."""


# ---------------------------------------------------------------------------
# Resumability
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class ResumabilityError(ChainplanException):
    """O journal não permite retomar a deployment com segurança."""


@dataclass(frozen=True, eq=False)
class JournalCorruptedError(ResumabilityError):
    """Registro do journal ilegível ou inválido."""


@dataclass(frozen=True, eq=False)
class JournalTransitionError(ResumabilityError):
    """Transição de status proibida (ex.: sobrescrever um registro completed)."""


@dataclass(frozen=True, eq=False)
class FutureMismatchError(ResumabilityError):
    """Future já concluído foi alterado desde a execução registrada."""
