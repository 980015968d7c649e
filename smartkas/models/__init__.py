"""Data models for the insights system"""

from .transaction import Transaction, Business
from .alert import AlertDraft, Alert, AlertUpdate
from .vector_record import VectorRecord, SearchHit, ChatTurn

__all__ = [
    "Transaction",
    "Business",
    "AlertDraft",
    "Alert",
    "AlertUpdate",
    "VectorRecord",
    "SearchHit",
    "ChatTurn"
]
