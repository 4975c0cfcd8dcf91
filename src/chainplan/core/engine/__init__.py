# src/chainplan/core/engine/__init__.py
"""
Engine do Chainplan: planejamento e execução da deployment.

Componentes principais:
    - planner  → ordenação topológica determinística em batches
    - engine   → execução batch a batch, consultando e atualizando o journal
    - dispatch → resolução por tipo de future
    - events   → localização e decodificação de eventos em receipts
    - retry    → classificação de falhas e backoff limitado

Invariantes:
    - Um future só executa após todas as suas dependências
    - Um batch só inicia quando o anterior chegou a estado terminal
    - Cada ação on-chain é submetida no máximo uma vez por deployment
"""

from .engine import DeploymentResult, ExecutionEngine, FutureStatus
from .planner import ExecutionPlan, plan_execution

__all__ = [
    "DeploymentResult",
    "ExecutionEngine",
    "ExecutionPlan",
    "FutureStatus",
    "plan_execution",
]
