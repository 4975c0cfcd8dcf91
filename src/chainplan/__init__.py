# src/chainplan/__init__.py
"""
Chainplan — orquestração declarativa e retomável de deployments de contratos.

Uma deployment é descrita por módulos: rotinas que, a partir de um
builder explícito, declaram futures (deploys, chamadas, leituras de
eventos...). O Chainplan compõe os módulos, ordena os futures em batches
topológicos e os executa contra um colaborador de rede, registrando cada
resultado num journal durável para que re-execuções sejam idempotentes.

Arquitetura em alto nível:
    - core.futures → grafo de futures
    - core.module  → builder, registro e composição de módulos
    - core.engine  → planner, engine, dispatch por tipo, eventos, retry
    - core.journal → journal append-only
    - core.config  → configuração e settings
    - report       → relatório markdown derivado do journal
    - deploy       → ponto de entrada
"""

from .core.engine import DeploymentResult, ExecutionEngine, ExecutionPlan, FutureStatus, plan_execution
from .core.futures import ContractHandle, Future, FutureKind
from .core.journal import DeploymentJournal
from .core.module import ModuleBuilder, ModuleDefinition, build_module, resolve_deployment
from .deploy import deploy

__all__ = [
    "ContractHandle",
    "DeploymentJournal",
    "DeploymentResult",
    "ExecutionEngine",
    "ExecutionPlan",
    "Future",
    "FutureKind",
    "FutureStatus",
    "ModuleBuilder",
    "ModuleDefinition",
    "build_module",
    "deploy",
    "plan_execution",
    "resolve_deployment",
]
