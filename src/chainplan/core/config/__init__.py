# src/chainplan/core/config/__init__.py

"""
Camada de configuração do Chainplan.

A configuração de uma deployment é:
    - declarativa
    - determinística
    - separada da definição dos módulos

Responsabilidades do pacote:
    - Carregar arquivos de configuração (defaults + overrides locais)
    - Resolver a configuração final via deep-merge determinístico
    - Gerar hash canônico para rastreabilidade
    - Validar e tipar as chaves reconhecidas pelo engine (`EngineSettings`)

Invariantes:
    - A configuração final é um dicionário puro (dict)
    - Conflitos estruturais são tratados como erro

Limites explícitos:
    - Não executa futures
    - Não acessa rede
"""

from .errors import (
    ConfigError,
    ConfigTypeConflictError,
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    InvalidSettingError,
    UnsupportedConfigFormatError,
)
from .hashing import compute_config_hash
from .loader import load_config
from .merge import deep_merge
from .settings import EngineSettings, resolve_settings

__all__ = [
    "ConfigError",
    "ConfigTypeConflictError",
    "DefaultsNotFoundError",
    "EngineSettings",
    "InvalidConfigRootTypeError",
    "InvalidSettingError",
    "UnsupportedConfigFormatError",
    "compute_config_hash",
    "deep_merge",
    "load_config",
    "resolve_settings",
]
