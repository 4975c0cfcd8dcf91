# src/chainplan/core/context.py
"""
DeploymentContext — contexto canônico de uma execução de deployment.

O contexto é criado uma vez por execução e passado ao engine. Ele é o
único meio de:
- registrar logs estruturados de execução (por future)
- coletar warnings não fatais associados a futures
- expor a configuração efetiva usada na execução

Princípios fundamentais:
- Isolamento por execução (cada deployment possui seu próprio contexto)
- Eventos são dados, não texto: cada evento é um dict serializável
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


# future_id usado por eventos que não pertencem a um future específico.
DEPLOYMENT_SCOPE = "deployment"


@dataclass
class DeploymentContext:
    """
    Contexto de execução compartilhado de uma deployment.

    Campos canônicos:
    - deployment_id: identificador da execução
    - created_at: timestamp UTC (ISO 8601) de criação do contexto
    - config: configuração efetiva (defaults + local deep-merge)
    - warnings: warnings por future_id
    - events: log estruturado de eventos, em ordem de emissão
    """

    deployment_id: str
    created_at: str
    config: Dict[str, Any]

    warnings: Dict[str, List[str]] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)

    # workers do engine registram eventos concorrentemente
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    @classmethod
    def create(cls, *, config: Optional[Dict[str, Any]] = None, deployment_id: Optional[str] = None) -> "DeploymentContext":
        return cls(
            deployment_id=deployment_id or uuid.uuid4().hex,
            created_at=datetime.now(timezone.utc).isoformat(),
            config=dict(config or {}),
        )

    # -----------------------------
    # Logging & warnings
    # -----------------------------
    def log(self, *, future_id: str, level: str, message: str, **extra: Any) -> None:
        event = {
            "deployment_id": self.deployment_id,
            "future_id": future_id,
            "level": level,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        event.update(extra)
        with self._lock:
            self.events.append(event)

    def add_warning(self, *, future_id: str, message: str) -> None:
        with self._lock:
            self.warnings.setdefault(future_id, []).append(message)

    def events_for(self, future_id: str) -> List[Dict[str, Any]]:
        return [e for e in self.events if e["future_id"] == future_id]
