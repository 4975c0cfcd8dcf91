# src/chainplan/core/engine/engine.py
"""
Engine de execução de deployments do Chainplan.

Consome o plano (batches topológicos) e o journal e resolve cada future,
garantindo que cada ação on-chain seja submetida uma única vez ao longo
de todas as execuções de uma deployment.

Ciclo de execução:
    1. Pre-flight (antes de qualquer ação de rede):
        - leitura e verificação de integridade do journal
        - reconciliação de fingerprints de futures já concluídos
        - carregamento de artefatos de todos os contratos do plano
    2. Para cada batch, em ordem:
        - futures `completed` no journal são reaproveitados
        - os demais são marcados `in-flight` e despachados em paralelo
        - cada resultado é registrado (`completed` / `failed`)
    3. Após um batch com falha, nenhum batch posterior é iniciado.

Decisões arquiteturais:
    - O engine é o único escritor do journal (workers apenas anexam tx_id)
    - Exceções viram ErrorPayload no journal e no resultado
    - Apenas `Exception` é capturada: uma interrupção do processo
      propaga e deixa os registros `in-flight` para reconciliação
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from tenacity import RetryCallState

from chainplan.core.config.settings import EngineSettings
from chainplan.core.context import DEPLOYMENT_SCOPE, DeploymentContext
from chainplan.core.errors import TRANSACTION_REVERTED, exception_to_payload
from chainplan.core.exceptions import ChainplanException, ExecutionError, FutureMismatchError, ResolutionError
from chainplan.core.futures.hashing import compute_future_fingerprint
from chainplan.core.futures.types import CONTRACT_KINDS, Future
from chainplan.core.journal import DeploymentJournal, RecordStatus, encode_value
from chainplan.core.network.interfaces import Artifact, ArtifactResolver, NetworkClient, Receipt

from .dispatch import DispatchContext, Outcome, dispatch
from .planner import ExecutionPlan
from .retry import build_retrying


class FutureStatus(str, Enum):
    COMPLETED = "completed"
    REUSED = "reused"
    FAILED = "failed"
    NOT_RUN = "not_run"


@dataclass(frozen=True)
class DeploymentResult:
    """
    Resultado agregado de uma execução de deployment.

    Campos:
        - exports: nome de export do módulo raiz → valor resolvido
        - statuses: future_id → FutureStatus
        - values: future_id → valor resolvido (concluídos e reaproveitados)
        - errors: future_id → ErrorPayload serializado
        - failure: primeira exceção da execução (None em caso de sucesso)
    """
    exports: Dict[str, Any] = field(default_factory=dict)
    statuses: Dict[str, FutureStatus] = field(default_factory=dict)
    values: Dict[str, Any] = field(default_factory=dict)
    errors: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    failure: Optional[Exception] = field(default=None, compare=False, repr=False)

    @property
    def ok(self) -> bool:
        return self.failure is None

    def raise_for_failure(self) -> None:
        if self.failure is not None:
            raise self.failure


class ExecutionEngine:
    """Engine canônico do Chainplan (plano + journal + colaboradores)."""

    def __init__(
        self,
        *,
        plan: ExecutionPlan,
        network: NetworkClient,
        artifacts: ArtifactResolver,
        journal: DeploymentJournal,
        ctx: DeploymentContext,
        settings: EngineSettings,
        exports: Optional[Mapping[str, Future]] = None,
    ):
        self.plan = plan
        self.network = network
        self.artifacts = artifacts
        self.journal = journal
        self.ctx = ctx
        self.settings = settings
        self.exports = dict(exports or {})

        self._fingerprints: Dict[str, str] = {}
        self._loaded_artifacts: Dict[str, Artifact] = {}
        self._receipts: Dict[str, Receipt] = {}

    # ------------------------------------------------------------------
    # Pre-flight
    # ------------------------------------------------------------------

    def _preflight(self) -> None:
        latest = self.journal.load()

        for future in self.plan.order:
            fingerprint = compute_future_fingerprint(future)
            self._fingerprints[future.id] = fingerprint

            record = latest.get(future.id)
            if record is None or record.status is not RecordStatus.COMPLETED:
                continue
            if record.fingerprint is not None and record.fingerprint != fingerprint:
                raise FutureMismatchError(
                    message=(
                        f"Future '{future.id}' ({future.kind.value}) changed after it was completed; "
                        "the journal cannot be reused"
                    ),
                    details={
                        "future_id": future.id,
                        "kind": future.kind.value,
                        "recorded": record.fingerprint,
                        "current": fingerprint,
                    },
                    hint="Use um novo id para o future alterado ou inicie um novo journal.",
                )

        known = set(self._fingerprints)
        for fid in sorted(set(latest) - known):
            self.ctx.add_warning(future_id=fid, message="journal record has no matching future in the plan")

        for future in self.plan.order:
            if future.kind not in CONTRACT_KINDS:
                continue
            name = future.contract_name
            if name in self._loaded_artifacts:
                continue
            try:
                self._loaded_artifacts[name] = self.artifacts.load_artifact(name)
            except ChainplanException:
                raise
            except Exception as e:
                raise ResolutionError(
                    message=f"Future '{future.id}' ({future.kind.value}): artifact for '{name}' could not be loaded: {e}",
                    details={"future_id": future.id, "kind": future.kind.value, "contract": name},
                ) from e

    def _carried_transaction(self, future_id: str) -> Optional[str]:
        """tx_id de uma falha anterior que não foi revert (ex.: timeout esgotado)."""
        record = self.journal.latest(future_id)
        if record is None or record.status is not RecordStatus.FAILED or record.tx_id is None:
            return None
        if (record.error or {}).get("type") == TRANSACTION_REVERTED:
            return None
        return record.tx_id

    # ------------------------------------------------------------------
    # Execução de um future
    # ------------------------------------------------------------------

    def _log_retry(self, future: Future):
        def before_sleep(state: RetryCallState) -> None:
            exc = state.outcome.exception() if state.outcome is not None else None
            self.ctx.log(
                future_id=future.id,
                level="WARNING",
                message="retrying after transient failure",
                attempt=state.attempt_number,
                error=str(exc),
            )
        return before_sleep

    def _execute(self, future: Future, dc: DispatchContext) -> Outcome:
        retrying = build_retrying(self.settings, before_sleep=self._log_retry(future))
        outcome = retrying(dispatch, future, dc)
        # o valor precisa ser gravável antes de o resultado chegar ao journal
        try:
            encode_value(outcome.value)
        except TypeError as e:
            raise ExecutionError(
                message=f"Future '{future.id}' ({future.kind.value}): {e}",
                details={"future_id": future.id, "kind": future.kind.value, "tx_id": outcome.tx_id},
                hint="Converta o valor para um tipo JSON (int, str, bytes, tuple, list, dict).",
            ) from e
        return outcome

    def _run_one(self, future: Future, dc: DispatchContext) -> Tuple[Optional[Outcome], Optional[Exception]]:
        try:
            return self._execute(future, dc), None
        except Exception as e:
            return None, e

    def _payload_for(self, future: Future, exc: Exception) -> Dict[str, Any]:
        if isinstance(exc, ChainplanException):
            exc.details.setdefault("future_id", future.id)
            exc.details.setdefault("kind", future.kind.value)
        payload = exception_to_payload(exc, future_id=future.id, kind=future.kind.value).to_dict()
        if future.id not in payload["message"]:
            payload["message"] = f"Future '{future.id}' ({future.kind.value}): {payload['message']}"
        return payload

    # ------------------------------------------------------------------
    # Execução do plano
    # ------------------------------------------------------------------

    def run(self) -> DeploymentResult:
        self._preflight()

        values: Dict[str, Any] = {}
        statuses: Dict[str, FutureStatus] = {f.id: FutureStatus.NOT_RUN for f in self.plan.order}
        errors: Dict[str, Dict[str, Any]] = {}
        failure: Optional[Exception] = None

        self.ctx.log(
            future_id=DEPLOYMENT_SCOPE,
            level="INFO",
            message="deployment started",
            futures=len(self.plan.order),
            batches=len(self.plan.batches),
        )

        dc = DispatchContext(
            network=self.network,
            settings=self.settings,
            journal=self.journal,
            ctx=self.ctx,
            artifacts=self._loaded_artifacts,
            values=values,
            receipts=self._receipts,
        )

        for batch_index, batch in enumerate(self.plan.batches):
            pending: List[Future] = []
            for future in batch:
                record = self.journal.latest(future.id)
                if record is not None and record.status is RecordStatus.COMPLETED:
                    values[future.id] = record.value
                    statuses[future.id] = FutureStatus.REUSED
                    self.ctx.log(future_id=future.id, level="INFO", message="reused from journal")
                else:
                    pending.append(future)

            if not pending:
                continue

            for future in pending:
                self.journal.record_in_flight(
                    future.id,
                    tx_id=self._carried_transaction(future.id),
                    fingerprint=self._fingerprints[future.id],
                )
                self.ctx.log(future_id=future.id, level="INFO", message="dispatched", batch=batch_index)

            workers = min(self.settings.max_workers, len(pending))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="chainplan") as pool:
                submitted = [(f, pool.submit(self._run_one, f, dc)) for f in pending]
                outcomes = [(f, fut.result()) for f, fut in submitted]

            for future, (outcome, exc) in outcomes:
                if exc is None:
                    self.journal.record_completed(
                        future.id,
                        outcome.value,
                        tx_id=outcome.tx_id,
                        fingerprint=self._fingerprints[future.id],
                    )
                    values[future.id] = outcome.value
                    statuses[future.id] = FutureStatus.COMPLETED
                    self.ctx.log(future_id=future.id, level="INFO", message="completed", tx_id=outcome.tx_id)
                else:
                    payload = self._payload_for(future, exc)
                    tx_id = self.journal.latest(future.id).tx_id
                    self.journal.record_failed(future.id, payload, tx_id=tx_id)
                    statuses[future.id] = FutureStatus.FAILED
                    errors[future.id] = payload
                    self.ctx.log(
                        future_id=future.id,
                        level="ERROR",
                        message="failed",
                        error_type=payload["type"],
                        error=payload["message"],
                    )
                    if failure is None:
                        failure = exc

            if failure is not None:
                break

        exports = {name: values[f.id] for name, f in self.exports.items() if f.id in values}
        self.ctx.log(
            future_id=DEPLOYMENT_SCOPE,
            level="ERROR" if failure is not None else "INFO",
            message="deployment failed" if failure is not None else "deployment finished",
        )
        return DeploymentResult(
            exports=exports,
            statuses=statuses,
            values=dict(values),
            errors=errors,
            failure=failure,
        )
