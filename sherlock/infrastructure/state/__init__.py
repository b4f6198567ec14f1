"""
Persisted application state
"""
from .history_store import HistoryRecord, HistoryStore

__all__ = ["HistoryRecord", "HistoryStore"]
