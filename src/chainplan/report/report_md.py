"""
src/chainplan/report/report_md.py
Gerador canônico de `report.md` (v1) de uma deployment.

Regras:
- O report é derivado EXCLUSIVAMENTE dos registros do journal (e, se
  fornecidos, dos exports resolvidos).
- Não consulta rede nem recalcula valores.
- Mesmos registros => mesmo report (ordenação estável por future_id).

Estrutura mínima obrigatória:
# Deployment Report
## Summary
## Futures
## Transactions
## Failures
## Exports
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from chainplan.core.futures.types import ContractHandle
from chainplan.core.journal import JournalRecord, RecordStatus, encode_value


REQUIRED_SECTIONS: List[str] = [
    "# Deployment Report",
    "## Summary",
    "## Futures",
    "## Transactions",
    "## Failures",
    "## Exports",
]


def _as_record(item: Union[JournalRecord, Mapping[str, Any]]) -> JournalRecord:
    if isinstance(item, JournalRecord):
        return item
    if isinstance(item, Mapping):
        return JournalRecord.from_dict(dict(item))
    raise TypeError(f"Unsupported journal record: {type(item).__name__}")


def _render_value(value: Any) -> str:
    if isinstance(value, ContractHandle):
        return f"`{value.address}` ({value.contract_name})"
    return f"`{json.dumps(encode_value(value), ensure_ascii=False, sort_keys=True)}`"


def generate_report_md(
    journal_records: Iterable[Union[JournalRecord, Mapping[str, Any]]],
    exports: Optional[Mapping[str, Any]] = None,
) -> str:
    """Gera o conteúdo completo do report.md a partir dos registros do journal."""
    records = [_as_record(r) for r in journal_records]

    latest: Dict[str, JournalRecord] = {}
    for r in records:
        latest[r.future_id] = r

    lines: List[str] = []

    lines.append("# Deployment Report\n")

    # Summary
    lines.append("## Summary")
    counts = {s.value: 0 for s in RecordStatus}
    for r in latest.values():
        counts[r.status.value] += 1
    lines.append(f"- **Futures**: `{len(latest)}`")
    for status in RecordStatus:
        lines.append(f"- **{status.value}**: `{counts[status.value]}`")
    lines.append(f"- **Journal records**: `{len(records)}`")
    lines.append("")

    # Futures
    lines.append("## Futures")
    if latest:
        for fid in sorted(latest):
            r = latest[fid]
            if r.status is RecordStatus.COMPLETED:
                lines.append(f"- **{fid}** — status: `{r.status.value}` — value: {_render_value(r.value)}")
            else:
                lines.append(f"- **{fid}** — status: `{r.status.value}`")
    else:
        lines.append("No futures recorded in the journal.")
    lines.append("")

    # Transactions
    lines.append("## Transactions")
    seen = set()
    transactions: List[tuple] = []
    for r in records:
        if r.tx_id is not None and (r.future_id, r.tx_id) not in seen:
            seen.add((r.future_id, r.tx_id))
            transactions.append((r.future_id, r.tx_id))
    if transactions:
        for fid, tx_id in sorted(transactions):
            lines.append(f"- **{fid}** — tx: `{tx_id}`")
    else:
        lines.append("No transactions recorded in the journal.")
    lines.append("")

    # Failures
    lines.append("## Failures")
    failures = [latest[fid] for fid in sorted(latest) if latest[fid].status is RecordStatus.FAILED]
    if failures:
        for r in failures:
            error = r.error or {}
            lines.append(f"- **{r.future_id}** — `{error.get('type', 'UNKNOWN')}`: {error.get('message', '')}")
            if error.get("hint"):
                lines.append(f"  - hint: {error['hint']}")
    else:
        lines.append("No failures recorded.")
    lines.append("")

    # Exports
    lines.append("## Exports")
    if exports:
        for name in sorted(exports):
            lines.append(f"- **{name}**: {_render_value(exports[name])}")
    else:
        lines.append("No exports provided.")
    lines.append("")

    return "\n".join(lines)
