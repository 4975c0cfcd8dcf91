"""
Chainplan — Canonical Error Structures (v1)

Este módulo define o padrão canônico de payloads de erro do Chainplan.
Payloads são gravados no journal (registros `failed`) e expostos no
`DeploymentResult`, devendo ser:

- explícitos
- serializáveis
- rastreáveis (sempre citam o future afetado)
- acionáveis

Nenhuma decisão implícita é permitida.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from .exceptions import (
    ArgumentNotFoundError,
    BuildError,
    ChainplanException,
    CyclicDependencyError,
    DuplicateModuleNameError,
    EventNotFoundError,
    ExecutionError,
    ModuleIdentityMismatchError,
    ResolutionError,
    ResumabilityError,
    TransactionRevertedError,
    UnknownFutureError,
)


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ErrorPayload:
    """
    Payload canônico de erro do Chainplan.

    Campos:
    - type: código estável do erro (não é texto livre)
    - message: mensagem curta, humana e objetiva (cita o future)
    - details: dados estruturados relevantes para diagnóstico
    - hint: ação sugerida ao operador (onde corrigir)
    - retryable: indica se uma nova execução pode ter sucesso sem mudanças
    """

    type: str
    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None
    retryable: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Retorna representação serializável do erro."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Catálogo canônico de tipos de erro (v1)
# ---------------------------------------------------------------------------

# Build-time
UNKNOWN_FUTURE = "UNKNOWN_FUTURE"
CYCLIC_DEPENDENCY = "CYCLIC_DEPENDENCY"
DUPLICATE_MODULE_NAME = "DUPLICATE_MODULE_NAME"
MODULE_IDENTITY_MISMATCH = "MODULE_IDENTITY_MISMATCH"
BUILD_ERROR = "BUILD_ERROR"

# Resolução
EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
ARGUMENT_NOT_FOUND = "ARGUMENT_NOT_FOUND"
RESOLUTION_ERROR = "RESOLUTION_ERROR"

# Execução
TRANSACTION_REVERTED = "TRANSACTION_REVERTED"
EXECUTION_ERROR = "EXECUTION_ERROR"
UNEXPECTED_ERROR = "UNEXPECTED_ERROR"

# Journal
RESUMABILITY_ERROR = "RESUMABILITY_ERROR"


# Ordem importa: classes mais específicas primeiro.
_CODES = (
    (UnknownFutureError, UNKNOWN_FUTURE),
    (CyclicDependencyError, CYCLIC_DEPENDENCY),
    (DuplicateModuleNameError, DUPLICATE_MODULE_NAME),
    (ModuleIdentityMismatchError, MODULE_IDENTITY_MISMATCH),
    (BuildError, BUILD_ERROR),
    (EventNotFoundError, EVENT_NOT_FOUND),
    (ArgumentNotFoundError, ARGUMENT_NOT_FOUND),
    (ResolutionError, RESOLUTION_ERROR),
    (TransactionRevertedError, TRANSACTION_REVERTED),
    (ExecutionError, EXECUTION_ERROR),
    (ResumabilityError, RESUMABILITY_ERROR),
)


def error_code_for(exc: BaseException) -> str:
    for cls, code in _CODES:
        if isinstance(exc, cls):
            return code
    return UNEXPECTED_ERROR


def exception_to_payload(
    exc: Exception,
    *,
    future_id: Optional[str] = None,
    kind: Optional[str] = None,
) -> ErrorPayload:
    """Converte exceções em ErrorPayload (serializável, acionável).

    Regras:
    - ChainplanException: já vem com message/details/hint.
    - Outras exceções: encapsuladas como UNEXPECTED_ERROR sem stack trace.
    - `future_id`/`kind` do chamador completam details quando ausentes.
    """
    if isinstance(exc, ChainplanException):
        details = dict(exc.details or {})
        message = str(exc) or "Erro de execução"
        hint = exc.hint
        retryable = exc.retryable
    else:
        details = {"exception_class": exc.__class__.__name__}
        message = str(exc) or "Erro inesperado durante execução"
        hint = "Verifique o log estruturado da deployment e o colaborador de rede"
        retryable = False

    if future_id is not None:
        details.setdefault("future_id", future_id)
    if kind is not None:
        details.setdefault("kind", kind)

    return ErrorPayload(
        type=error_code_for(exc),
        message=message,
        details=details,
        hint=hint,
        retryable=retryable,
    )
