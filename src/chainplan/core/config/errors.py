# src/chainplan/core/config/errors.py
"""
Exceções da camada de configuração do Chainplan.

Todas herdam de `ConfigError` e representam falhas estruturais fatais,
detectadas antes de qualquer ação de rede.
"""


class ConfigError(Exception):
    """Base para erros de carregamento, merge e validação de configuração."""


class DefaultsNotFoundError(ConfigError):
    """
    O arquivo de configuração base (defaults) não existe.

    Sem defaults não existe configuração efetiva; o loader não tenta
    inferir nem criar um arquivo.
    """


class UnsupportedConfigFormatError(ConfigError):
    """
    Extensão de arquivo não suportada.

    Formatos suportados (v1):
        - YAML (.yaml, .yml)
        - JSON (.json)
    """


class InvalidConfigRootTypeError(ConfigError):
    """O conteúdo raiz da configuração não é um dicionário."""


class ConfigTypeConflictError(ConfigError):
    """
    Conflito de tipos durante o deep-merge.

    Exemplo:
        - base:     {"engine": {"max_attempts": 3}}
        - override: {"engine": "fast"}
    """


class InvalidSettingError(ConfigError):
    """Uma chave reconhecida pelo engine possui tipo ou valor inválido."""
