# tests/core/engine/test_retry_classification.py
"""
Testes da classificação de falhas (retryable vs fatal) e do controlador
tenacity construído a partir das settings.
"""

import pytest

from chainplan.core.config import EngineSettings
from chainplan.core.engine.retry import build_retrying, is_retryable
from chainplan.core.exceptions import (
    InsufficientFundsError,
    NonceConflictError,
    ReceiptTimeoutError,
    TransactionRevertedError,
    TransientNetworkError,
    UnknownMethodError,
)


@pytest.mark.parametrize(
    "exc,expected",
    [
        (TransientNetworkError(message="x"), True),
        (ReceiptTimeoutError(message="x"), True),
        (TimeoutError("x"), True),
        (ConnectionResetError("x"), True),
        (TransactionRevertedError(message="x"), False),
        (InsufficientFundsError(message="x"), False),
        (NonceConflictError(message="x"), False),
        (UnknownMethodError(message="x"), False),
        (ValueError("x"), False),
    ],
)
def test_is_retryable(exc, expected):
    assert is_retryable(exc) is expected


def test_retrying_stops_after_max_attempts():
    settings = EngineSettings(max_attempts=2, backoff_seconds=0.0, max_backoff_seconds=0.0)
    attempts = []

    def flaky():
        attempts.append(1)
        raise TransientNetworkError(message="down")

    with pytest.raises(TransientNetworkError):
        build_retrying(settings)(flaky)

    assert len(attempts) == 2


def test_retrying_does_not_retry_fatal_errors():
    settings = EngineSettings(max_attempts=5, backoff_seconds=0.0, max_backoff_seconds=0.0)
    attempts = []
    slept = []

    def fatal():
        attempts.append(1)
        raise InsufficientFundsError(message="no gas")

    with pytest.raises(InsufficientFundsError):
        build_retrying(settings, before_sleep=slept.append)(fatal)

    assert len(attempts) == 1
    assert slept == []


def test_retrying_returns_value_after_recovery():
    settings = EngineSettings(max_attempts=3, backoff_seconds=0.0, max_backoff_seconds=0.0)
    outcomes = [TimeoutError("slow"), "ok"]

    def recovering():
        item = outcomes.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    assert build_retrying(settings)(recovering) == "ok"
