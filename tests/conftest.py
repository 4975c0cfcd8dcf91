# tests/conftest.py
"""
Fixtures compartilhados para testes do Chainplan.

Este módulo define fixtures reutilizáveis que fornecem:
- configurações mínimas e determinísticas
- um colaborador de rede em memória (FakeNetwork)
- um resolvedor de artefatos em memória (FakeArtifacts)
- um DeploymentContext controlado

Decisões arquiteturais:
    - Dublês de teste implementam os protocolos por duck typing
    - Endereços e tx ids são determinísticos (contadores)
    - Falhas (transitórias, revert, crash) são injetadas por future_id
    - Nenhuma fixture acessa rede real

Invariantes:
    - FakeNetwork registra toda chamada em `calls`, em ordem
    - Uma interrupção simulada usa BaseException, nunca Exception
"""

from datetime import datetime, timezone

import pytest

from chainplan.core.context import DeploymentContext
from tests._doubles import FACTORY_ABI, PROXY_ABI, TOKEN_ABI, FakeArtifacts, FakeNetwork


# =====================================================
# Fixtures
# =====================================================

@pytest.fixture
def network():
    return FakeNetwork()


@pytest.fixture
def artifacts():
    return FakeArtifacts({"Token": TOKEN_ABI, "Proxy": PROXY_ABI, "Factory": FACTORY_ABI})


@pytest.fixture
def dummy_config() -> dict:
    """
    Configuração mínima e válida para executar o engine em testes.

    - backoff zerado para que retries não durmam
    - duas contas configuradas
    """
    return {
        "engine": {"max_attempts": 3, "backoff_seconds": 0, "max_backoff_seconds": 0, "max_workers": 4},
        "accounts": [
            "0x00000000000000000000000000000000000000a1",
            "0x00000000000000000000000000000000000000a2",
        ],
        "parameters": {},
    }


@pytest.fixture
def dummy_ctx(dummy_config):
    return DeploymentContext(
        deployment_id="deploy-test-001",
        created_at=datetime(2026, 1, 16, 0, 0, 0, tzinfo=timezone.utc).isoformat(),
        config=dummy_config,
    )


@pytest.fixture
def config_defaults_yaml() -> str:
    return """\
engine:
  max_attempts: 3
  backoff_seconds: 0.5
  max_backoff_seconds: 8.0
  max_workers: 4
journal:
  path: deployments/journal.jsonl
accounts:
  - "0x00000000000000000000000000000000000000a1"
parameters:
  Token:
    supply: 1000
"""


@pytest.fixture
def config_local_yaml() -> str:
    return """\
engine:
  max_workers: 1
accounts:
  - "0x00000000000000000000000000000000000000b1"
  - "0x00000000000000000000000000000000000000b2"
parameters:
  Token:
    name: LocalToken
"""
