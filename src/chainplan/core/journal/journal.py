# src/chainplan/core/journal/journal.py
"""
Journal de execução do Chainplan.

O journal é o único estado mutável compartilhado de uma deployment: um
registro durável, append-only, do resultado de cada future. É
consultado a cada execução para pular futures já concluídos e para
reconciliar futures que ficaram `in-flight` após uma interrupção.

Formato de persistência (v1):
    - JSON Lines: um registro por linha, nunca reescrito
    - registro: {future_id, status, timestamp, value?, tx_id?, fingerprint?, error?}
    - o estado de um future é o último registro com seu id

Máquina de estados por future:

    (nenhum) / pending / failed ──► in-flight ──► completed (terminal)
                                        │
                                        └──────► failed

    - in-flight → in-flight é permitido (anexar o tx_id após o envio)
    - completed nunca é sobrescrito

Decisões arquiteturais:
    - UTC é o timezone canônico dos timestamps
    - Cada append é seguido de flush + fsync
    - Appends são serializados por lock (workers do engine registram tx_id)
    - Qualquer linha ilegível torna o journal inutilizável (fatal)

Limites explícitos:
    - Não decide o que executar (responsabilidade do engine)
    - Não compacta nem migra arquivos
"""

from __future__ import annotations

import json
import os
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from chainplan.core.exceptions import JournalCorruptedError, JournalTransitionError

from .codec import decode_value, encode_value


class RecordStatus(str, Enum):
    PENDING = "pending"
    IN_FLIGHT = "in-flight"
    COMPLETED = "completed"
    FAILED = "failed"


# status anterior → status permitidos em seguida
_TRANSITIONS = {
    None: {RecordStatus.IN_FLIGHT},
    RecordStatus.PENDING: {RecordStatus.IN_FLIGHT},
    RecordStatus.FAILED: {RecordStatus.IN_FLIGHT},
    RecordStatus.IN_FLIGHT: {RecordStatus.IN_FLIGHT, RecordStatus.COMPLETED, RecordStatus.FAILED},
    RecordStatus.COMPLETED: set(),
}


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class JournalRecord:
    """Registro imutável do journal (valor já decodificado)."""
    future_id: str
    status: RecordStatus
    timestamp: str
    value: Any = None
    tx_id: Optional[str] = None
    fingerprint: Optional[str] = None
    error: Optional[Dict[str, Any]] = field(default=None)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "future_id": self.future_id,
            "status": self.status.value,
            "timestamp": self.timestamp,
        }
        if self.status is RecordStatus.COMPLETED:
            out["value"] = encode_value(self.value)
        if self.tx_id is not None:
            out["tx_id"] = self.tx_id
        if self.fingerprint is not None:
            out["fingerprint"] = self.fingerprint
        if self.error is not None:
            out["error"] = self.error
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JournalRecord":
        return cls(
            future_id=data["future_id"],
            status=RecordStatus(data["status"]),
            timestamp=data["timestamp"],
            value=decode_value(data.get("value")),
            tx_id=data.get("tx_id"),
            fingerprint=data.get("fingerprint"),
            error=data.get("error"),
        )


class DeploymentJournal:
    """
    Journal append-only de uma deployment.

    Com `path=None` o journal vive apenas em memória (útil em testes e
    execuções descartáveis); caso contrário, é persistido em JSON Lines.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path is not None else None
        self._records: List[JournalRecord] = []
        self._latest: Dict[str, JournalRecord] = {}
        self._lock = threading.Lock()
        self._loaded = False

    # ------------------------------------------------------------------
    # Leitura
    # ------------------------------------------------------------------

    def load(self) -> Dict[str, JournalRecord]:
        """
        Lê o arquivo (se existir) e reconstrói o último registro por future.

        Idempotente: chamadas seguintes retornam o estado em memória.

        Raises:
            JournalCorruptedError: Se alguma linha for ilegível ou inválida.
        """
        with self._lock:
            if not self._loaded:
                if self.path is not None and self.path.exists():
                    self._read_file()
                self._loaded = True
            return dict(self._latest)

    def _read_file(self) -> None:
        with self.path.open("r", encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    data = json.loads(line)
                    if not isinstance(data, dict) or not isinstance(data.get("future_id"), str):
                        raise ValueError("record must be an object with a string 'future_id'")
                    record = JournalRecord.from_dict(data)
                except (ValueError, KeyError, TypeError) as e:
                    raise JournalCorruptedError(
                        message=f"Journal record at line {lineno} is unreadable: {e}",
                        details={"path": str(self.path), "line": lineno},
                        hint="Restaure o journal a partir de um backup; nenhuma ação foi executada.",
                    ) from e
                previous = self._latest.get(record.future_id)
                prev_status = previous.status if previous is not None else None
                if record.status not in _TRANSITIONS[prev_status]:
                    raise JournalCorruptedError(
                        message=(
                            f"Journal record at line {lineno} moves future '{record.future_id}' from "
                            f"{prev_status.value if prev_status else 'none'} to {record.status.value}, "
                            "which is not allowed"
                        ),
                        details={"path": str(self.path), "line": lineno, "future_id": record.future_id},
                        hint="Restaure o journal a partir de um backup; nenhuma ação foi executada.",
                    )
                self._records.append(record)
                self._latest[record.future_id] = record

    def latest(self, future_id: str) -> Optional[JournalRecord]:
        self.load()
        return self._latest.get(future_id)

    def records(self) -> List[JournalRecord]:
        self.load()
        with self._lock:
            return list(self._records)

    def status_summary(self) -> Dict[str, int]:
        self.load()
        summary = {s.value: 0 for s in RecordStatus}
        with self._lock:
            for record in self._latest.values():
                summary[record.status.value] += 1
        return summary

    # ------------------------------------------------------------------
    # Escrita
    # ------------------------------------------------------------------

    def _append(self, record: JournalRecord) -> JournalRecord:
        self.load()
        with self._lock:
            previous = self._latest.get(record.future_id)
            prev_status = previous.status if previous is not None else None
            if record.status not in _TRANSITIONS[prev_status]:
                raise JournalTransitionError(
                    message=(
                        f"Future '{record.future_id}': journal transition "
                        f"{prev_status.value if prev_status else 'none'} -> {record.status.value} is not allowed"
                    ),
                    details={
                        "future_id": record.future_id,
                        "from": prev_status.value if prev_status else None,
                        "to": record.status.value,
                    },
                )

            if self.path is not None:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                line = json.dumps(record.to_dict(), sort_keys=True, ensure_ascii=False)
                with self.path.open("a", encoding="utf-8") as f:
                    f.write(line + "\n")
                    f.flush()
                    os.fsync(f.fileno())

            self._records.append(record)
            self._latest[record.future_id] = record
            return record

    def record_in_flight(
        self,
        future_id: str,
        *,
        tx_id: Optional[str] = None,
        fingerprint: Optional[str] = None,
    ) -> JournalRecord:
        previous = self.latest(future_id)
        # preserva tx_id e fingerprint já conhecidos ao re-marcar um future in-flight
        if previous is not None and previous.status is RecordStatus.IN_FLIGHT:
            tx_id = tx_id if tx_id is not None else previous.tx_id
            fingerprint = fingerprint if fingerprint is not None else previous.fingerprint
        return self._append(
            JournalRecord(
                future_id=future_id,
                status=RecordStatus.IN_FLIGHT,
                timestamp=_utc_now_iso(),
                tx_id=tx_id,
                fingerprint=fingerprint,
            )
        )

    def record_completed(
        self,
        future_id: str,
        value: Any,
        *,
        tx_id: Optional[str] = None,
        fingerprint: Optional[str] = None,
    ) -> JournalRecord:
        # valida serialização antes de qualquer escrita
        encode_value(value)
        return self._append(
            JournalRecord(
                future_id=future_id,
                status=RecordStatus.COMPLETED,
                timestamp=_utc_now_iso(),
                value=value,
                tx_id=tx_id,
                fingerprint=fingerprint,
            )
        )

    def record_failed(
        self,
        future_id: str,
        error: Dict[str, Any],
        *,
        tx_id: Optional[str] = None,
    ) -> JournalRecord:
        return self._append(
            JournalRecord(
                future_id=future_id,
                status=RecordStatus.FAILED,
                timestamp=_utc_now_iso(),
                tx_id=tx_id,
                error=dict(error),
            )
        )
