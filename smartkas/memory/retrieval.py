"""Semantic Retrieval Service - the query facade used by conversational tooling"""

import uuid
from datetime import datetime
from typing import Callable, Dict, Any, List, Optional
from smartkas.constants import DEFAULT_HISTORY_LIMIT, DEFAULT_SEARCH_LIMIT, ChatRole
from smartkas.memory.vector_memory import VectorMemoryIndex
from smartkas.models import ChatTurn, SearchHit, Transaction
from smartkas.utils.clock import epoch_millis, utcnow
from smartkas.utils.errors import SmartKasError
from smartkas.utils.logging import get_logger

logger = get_logger(__name__)


def transaction_text(transaction: Transaction) -> str:
    """Text embedded for a transaction: date - description - amount - category - type"""
    return (
        f"{transaction.date.strftime('%Y-%m-%d')} - {transaction.description} - "
        f"{transaction.amount} - {transaction.category or 'Uncategorized'} - {transaction.type.value}"
    )


def transaction_metadata(transaction: Transaction) -> Dict[str, Any]:
    return {
        'amount': float(transaction.amount),
        'date': transaction.date.isoformat(),
        'category': transaction.category or 'Uncategorized',
        'type': transaction.type.value,
        'description': transaction.description,
    }


def _to_turn(hit: SearchHit) -> ChatTurn:
    return ChatTurn(
        id=hit.id,
        owner_id=hit.owner_id,
        role=hit.metadata.get('role') or ChatRole.USER.value,
        content=hit.text,
        timestamp=int(hit.metadata.get('timestamp') or 0),
        distance=hit.distance,
    )


class SemanticRetrievalService:
    """
    Relevance-ordered lookups over transaction and chat memory.

    Reads degrade to empty results when the embedding provider or the vector
    index is unavailable; writes are best-effort and report failure through
    their return value.
    """

    def __init__(
        self,
        transaction_memory: VectorMemoryIndex,
        chat_memory: VectorMemoryIndex,
        clock: Callable[[], datetime] = utcnow
    ):
        self.transaction_memory = transaction_memory
        self.chat_memory = chat_memory
        self.clock = clock

    def find_transactions(self, owner_id: str, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> List[SearchHit]:
        try:
            return self.transaction_memory.search(owner_id, query, limit)
        except (SmartKasError, ValueError) as e:
            logger.error(f"Transaction search unavailable: {e}", owner_id=owner_id)
            return []

    def find_relevant_turns(self, owner_id: str, message: str, k: int = DEFAULT_SEARCH_LIMIT) -> List[ChatTurn]:
        try:
            hits = self.chat_memory.search(owner_id, message, k)
        except (SmartKasError, ValueError) as e:
            logger.error(f"Chat memory search unavailable: {e}", owner_id=owner_id)
            return []
        return [_to_turn(hit) for hit in hits]

    def chat_history(self, owner_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> List[ChatTurn]:
        try:
            hits = self.chat_memory.list_chronological(owner_id, limit)
        except (SmartKasError, ValueError) as e:
            logger.error(f"Chat history unavailable: {e}", owner_id=owner_id)
            return []
        return [_to_turn(hit) for hit in hits]

    def record_turn(self, owner_id: str, role: ChatRole, content: str) -> Optional[str]:
        """Store one chat message; returns its id, or None when the write failed"""
        now_ms = epoch_millis(self.clock())
        turn_id = f"{now_ms}-{uuid.uuid4().hex[:8]}"
        try:
            self.chat_memory.upsert(
                owner_id,
                turn_id,
                content,
                {'role': ChatRole(role).value, 'timestamp': now_ms}
            )
        except (SmartKasError, ValueError) as e:
            logger.error(f"Failed to record chat turn: {e}", owner_id=owner_id, role=str(role))
            return None
        return turn_id

    def index_transaction(self, owner_id: str, transaction: Transaction) -> bool:
        try:
            self.transaction_memory.upsert(
                owner_id,
                transaction.id,
                transaction_text(transaction),
                transaction_metadata(transaction)
            )
        except (SmartKasError, ValueError) as e:
            logger.error(f"Failed to index transaction: {e}", transaction_id=transaction.id)
            return False
        return True

    def remove_transaction(self, transaction_id: str) -> bool:
        try:
            self.transaction_memory.delete(transaction_id)
        except (SmartKasError, ValueError) as e:
            logger.error(f"Failed to remove transaction from memory: {e}", transaction_id=transaction_id)
            return False
        return True
