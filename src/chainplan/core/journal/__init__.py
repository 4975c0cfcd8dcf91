# src/chainplan/core/journal/__init__.py
"""
Journal de execução: registro durável e append-only por future.

API pública:
    - DeploymentJournal, JournalRecord, RecordStatus
    - encode_value / decode_value
"""

from .codec import decode_value, encode_value
from .journal import DeploymentJournal, JournalRecord, RecordStatus

__all__ = [
    "DeploymentJournal",
    "JournalRecord",
    "RecordStatus",
    "decode_value",
    "encode_value",
]
