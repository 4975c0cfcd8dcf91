# src/chainplan/deploy.py
"""
Ponto de entrada da orquestração: `deploy(...)`.

Fluxo:
    definição do módulo raiz
        → resolve_deployment (composição, erros de build)
        → plan_execution (ordem topológica em batches)
        → ExecutionEngine (journal + colaboradores)
        → exports resolvidos

Erros de build e de planejamento são levantados antes de qualquer ação de
rede. Falhas de execução são registradas no journal e a primeira delas é
re-levantada; os registros `completed` anteriores são preservados, de
modo que uma nova chamada retoma a partir do primeiro future não resolvido.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from chainplan.core.config import compute_config_hash, resolve_settings
from chainplan.core.context import DEPLOYMENT_SCOPE, DeploymentContext
from chainplan.core.engine import DeploymentResult, ExecutionEngine, plan_execution
from chainplan.core.journal import DeploymentJournal
from chainplan.core.module import ModuleDefinition, ModuleRegistry, resolve_deployment
from chainplan.core.network import ArtifactResolver, NetworkClient


def deploy(
    definition: ModuleDefinition,
    *,
    network: NetworkClient,
    artifacts: ArtifactResolver,
    config: Optional[Dict[str, Any]] = None,
    journal: Optional[DeploymentJournal] = None,
    deployment_id: Optional[str] = None,
    registry: Optional[ModuleRegistry] = None,
    ctx: Optional[DeploymentContext] = None,
) -> DeploymentResult:
    """
    Resolve, planeja e executa a deployment do módulo raiz.

    Args:
        definition: módulo raiz (ver `build_module`).
        network: colaborador de rede.
        artifacts: resolvedor de artefatos de contratos.
        config: configuração efetiva (ex.: `load_config(...)`).
        journal: journal a usar; por padrão, `journal.path` da configuração
            (ou um journal em memória quando ausente).
        deployment_id: identificador da execução no log estruturado.
        registry: registro de módulos compartilhado entre chamadas.
        ctx: contexto pré-criado (o log estruturado fica disponível ao chamador).

    Returns:
        DeploymentResult: exports do módulo raiz e status por future.

    Raises:
        BuildError: erro estrutural (nenhuma ação de rede foi executada).
        ConfigError: configuração inválida.
        ResumabilityError: journal corrompido ou divergente.
        Exception: a primeira falha de execução, após registrada no journal.
    """
    config = dict(config or {})
    settings = resolve_settings(config)

    graph = resolve_deployment(definition, registry=registry)
    plan = plan_execution(graph)

    if journal is None:
        journal = DeploymentJournal(settings.journal_path)
    if ctx is None:
        ctx = DeploymentContext.create(config=config, deployment_id=deployment_id)

    ctx.log(
        future_id=DEPLOYMENT_SCOPE,
        level="INFO",
        message="plan ready",
        module=definition.name,
        modules=[m.name for m in graph.modules],
        config_hash=compute_config_hash(config),
    )

    engine = ExecutionEngine(
        plan=plan,
        network=network,
        artifacts=artifacts,
        journal=journal,
        ctx=ctx,
        settings=settings,
        exports=graph.root.exports,
    )
    result = engine.run()
    result.raise_for_failure()
    return result
