"""Post-write hooks: keep vector memory in sync and re-run detection without blocking the write"""

from typing import Optional
from concurrent.futures import Future
from smartkas.models import Transaction
from smartkas.utils.logging import get_logger

logger = get_logger(__name__)


class TransactionHooks:
    """
    Called by the dashboard's CRUD layer after a transaction write has committed.

    Nothing here raises: memory sync is best-effort and detection runs in the
    background, so the triggering write never fails because of them.
    """

    def __init__(self, store, retrieval, orchestrator):
        self.store = store
        self.retrieval = retrieval
        self.orchestrator = orchestrator

    def on_saved(self, transaction: Transaction) -> Optional[Future]:
        """After create or update"""
        try:
            business = self.store.get_business(transaction.business_id)
        except Exception as e:
            logger.error(f"Business lookup failed after transaction write: {e}", transaction_id=transaction.id)
            return None

        if business is None:
            logger.warning("Transaction saved for unknown business", business_id=transaction.business_id)
            return None

        if not self._sync(self.retrieval.index_transaction, business.user_id, transaction):
            logger.warning("Transaction memory out of sync", transaction_id=transaction.id)

        return self._trigger(transaction.business_id)

    def on_deleted(self, transaction_id: str, business_id: str) -> Optional[Future]:
        """After delete"""
        if not self._sync(self.retrieval.remove_transaction, transaction_id):
            logger.warning("Deleted transaction may linger in memory", transaction_id=transaction_id)
        return self._trigger(business_id)

    def _sync(self, operation, *args) -> bool:
        try:
            return operation(*args)
        except Exception as e:
            logger.error(f"Transaction memory sync failed: {e}")
            return False

    def _trigger(self, business_id: str) -> Optional[Future]:
        try:
            return self.orchestrator.trigger_detection_for_business(business_id)
        except Exception as e:
            logger.error(f"Could not schedule anomaly detection: {e}", business_id=business_id)
            return None
