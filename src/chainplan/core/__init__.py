# src/chainplan/core/__init__.py
"""
Core do Chainplan.

Componentes principais:
    - futures  → grafo de futures (tipos, referências, fingerprint)
    - module   → builder, registro e composição de módulos
    - engine   → planejamento em batches e execução
    - journal  → registro durável por future (retomada idempotente)
    - network  → protocolos dos colaboradores externos
    - config   → configuração (load, merge, hashing, settings)

O core não depende de CLI nem de um cliente RPC concreto.
"""
