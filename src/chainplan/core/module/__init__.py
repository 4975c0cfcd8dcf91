# src/chainplan/core/module/__init__.py
"""
# Módulos — Chainplan

Um módulo é um grafo nomeado e imutável de futures, produzido por uma
única execução de sua rotina construtora.

## Componentes

- **builder**: `ModuleBuilder`, `ModuleDefinition`, `build_module`, `Module`
- **registry**: `ModuleRegistry` (um nome → uma rotina)
- **composition**: `resolve_deployment`, `DeploymentGraph`

## Invariantes

- Ids de futures são únicos dentro de um módulo
- Cada rotina executa no máximo uma vez por deployment
- Módulos construídos são imutáveis e compartilhados apenas para leitura
"""

from .builder import Module, ModuleBuilder, ModuleDefinition, build_module
from .composition import CompositionResolver, DeploymentGraph, resolve_deployment
from .registry import ModuleRegistry

__all__ = [
    "CompositionResolver",
    "DeploymentGraph",
    "Module",
    "ModuleBuilder",
    "ModuleDefinition",
    "ModuleRegistry",
    "build_module",
    "resolve_deployment",
]
