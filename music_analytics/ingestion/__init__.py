"""
Data Ingestion Module
"""
from .snapshot_loader import SnapshotLoader, load_snapshot, parse_seniority

__all__ = [
    "SnapshotLoader",
    "load_snapshot",
    "parse_seniority",
]
