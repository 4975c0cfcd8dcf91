# src/chainplan/core/engine/retry.py
"""
Classificação de falhas e política de retry do engine.

Retryable:
    - ChainplanException com `retryable=True` (TransientNetworkError,
      ReceiptTimeoutError)
    - builtins TimeoutError e ConnectionError (clientes RPC costumam
      levantá-los diretamente)

Todo o resto é fatal para o future: revert, saldo insuficiente, conflito
de nonce, erros de resolução.

A espera entre tentativas é exponencial e limitada:
    espera(n) = min(backoff_seconds * 2 ** (n - 1), max_backoff_seconds)
"""

from __future__ import annotations

from typing import Callable, Optional

from tenacity import RetryCallState, Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from chainplan.core.config.settings import EngineSettings
from chainplan.core.exceptions import ChainplanException


RETRYABLE_BUILTINS = (TimeoutError, ConnectionError)


def is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, ChainplanException):
        return exc.retryable
    return isinstance(exc, RETRYABLE_BUILTINS)


def build_retrying(
    settings: EngineSettings,
    *,
    before_sleep: Optional[Callable[[RetryCallState], None]] = None,
) -> Retrying:
    """Cria o controlador tenacity para uma execução de future."""
    kwargs = dict(
        stop=stop_after_attempt(settings.max_attempts),
        wait=wait_exponential(multiplier=settings.backoff_seconds, max=settings.max_backoff_seconds),
        retry=retry_if_exception(is_retryable),
        reraise=True,
    )
    if before_sleep is not None:
        kwargs["before_sleep"] = before_sleep
    return Retrying(**kwargs)
