# src/chainplan/core/config/settings.py
"""
Settings tipados do engine, derivados da configuração efetiva.

Chaves reconhecidas (v1):

    engine:
      max_attempts: 3            # tentativas por future (>= 1)
      backoff_seconds: 0.5       # espera inicial entre tentativas
      max_backoff_seconds: 8.0   # teto da espera exponencial
      max_workers: 4             # futures despachados em paralelo por batch
    journal:
      path: deployments/journal.jsonl
    accounts: ["0x...", "0x..."]
    parameters:
      <Módulo>:
        <parâmetro>: <valor>

Chaves desconhecidas são ignoradas; chaves reconhecidas com tipo
inválido geram `InvalidSettingError`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import InvalidSettingError


DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_SECONDS = 0.5
DEFAULT_MAX_BACKOFF_SECONDS = 8.0
DEFAULT_MAX_WORKERS = 4


@dataclass(frozen=True)
class EngineSettings:
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    backoff_seconds: float = DEFAULT_BACKOFF_SECONDS
    max_backoff_seconds: float = DEFAULT_MAX_BACKOFF_SECONDS
    max_workers: int = DEFAULT_MAX_WORKERS
    journal_path: Optional[str] = None
    accounts: Tuple[str, ...] = ()
    parameters: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)

    def parameter(self, module: str, name: str) -> Tuple[bool, Any]:
        """Retorna (encontrado, valor) para `parameters.<module>.<name>`."""
        values = self.parameters.get(module) or {}
        if name in values:
            return True, values[name]
        return False, None


def _section(config: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = config.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise InvalidSettingError(f"'{key}' must be a mapping, got: {type(value).__name__}")
    return value


def _positive_int(section: Mapping[str, Any], key: str, default: int, *, path: str) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidSettingError(f"'{path}' must be an int >= 1, got: {value!r}")
    return value


def _non_negative_number(section: Mapping[str, Any], key: str, default: float, *, path: str) -> float:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise InvalidSettingError(f"'{path}' must be a number >= 0, got: {value!r}")
    return float(value)


def resolve_settings(config: Optional[Mapping[str, Any]] = None) -> EngineSettings:
    """
    Valida a configuração efetiva e produz `EngineSettings`.

    Args:
        config: Configuração resolvida (ex.: retorno de `load_config`);
            None equivale a `{}`.

    Raises:
        InvalidSettingError: Se alguma chave reconhecida for inválida.
    """
    config = config or {}
    if not isinstance(config, Mapping):
        raise InvalidSettingError(f"config must be a mapping, got: {type(config).__name__}")

    engine = _section(config, "engine")
    max_attempts = _positive_int(engine, "max_attempts", DEFAULT_MAX_ATTEMPTS, path="engine.max_attempts")
    max_workers = _positive_int(engine, "max_workers", DEFAULT_MAX_WORKERS, path="engine.max_workers")
    backoff = _non_negative_number(engine, "backoff_seconds", DEFAULT_BACKOFF_SECONDS, path="engine.backoff_seconds")
    max_backoff = _non_negative_number(
        engine, "max_backoff_seconds", DEFAULT_MAX_BACKOFF_SECONDS, path="engine.max_backoff_seconds"
    )
    if max_backoff < backoff:
        raise InvalidSettingError(
            f"'engine.max_backoff_seconds' ({max_backoff}) must be >= 'engine.backoff_seconds' ({backoff})"
        )

    journal = _section(config, "journal")
    journal_path = journal.get("path")
    if journal_path is not None and not isinstance(journal_path, str):
        raise InvalidSettingError(f"'journal.path' must be a string, got: {type(journal_path).__name__}")

    accounts = config.get("accounts") or []
    if not isinstance(accounts, (list, tuple)) or not all(isinstance(a, str) for a in accounts):
        raise InvalidSettingError("'accounts' must be a list of address strings")

    parameters = _section(config, "parameters")
    params: Dict[str, Dict[str, Any]] = {}
    for module, values in parameters.items():
        if not isinstance(values, Mapping):
            raise InvalidSettingError(f"'parameters.{module}' must be a mapping, got: {type(values).__name__}")
        params[str(module)] = dict(values)

    return EngineSettings(
        max_attempts=max_attempts,
        backoff_seconds=backoff,
        max_backoff_seconds=max_backoff,
        max_workers=max_workers,
        journal_path=journal_path,
        accounts=tuple(accounts),
        parameters=params,
    )
