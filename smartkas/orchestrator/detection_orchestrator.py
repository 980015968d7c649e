"""Detection Orchestrator - drives scoring, enrichment and alert persistence per business"""

import time
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timedelta
from typing import Callable, Optional
from smartkas.constants import (
    DEFAULT_BUSINESS_BATCH_SIZE,
    DEFAULT_RECHECK_INTERVAL_HOURS,
    DEFAULT_SEED,
    DEFAULT_TRANSACTION_LIMIT
)
from smartkas.models import Business
from smartkas.utils.clock import utcnow
from smartkas.utils.logging import get_logger
from smartkas.utils.metrics import businesses_scanned, detection_run_time

logger = get_logger(__name__)


class DetectionOrchestrator:
    """Runs the anomaly pipeline over a bounded batch of businesses"""

    def __init__(
        self,
        store,
        scorer,
        enricher,
        lifecycle,
        batch_size: int = DEFAULT_BUSINESS_BATCH_SIZE,
        transaction_limit: int = DEFAULT_TRANSACTION_LIMIT,
        recheck_interval_hours: float = DEFAULT_RECHECK_INTERVAL_HOURS,
        seed: int = DEFAULT_SEED,
        clock: Callable[[], datetime] = utcnow,
        max_background_workers: int = 2
    ):
        self.store = store
        self.scorer = scorer
        self.enricher = enricher
        self.lifecycle = lifecycle
        self.batch_size = batch_size
        self.transaction_limit = transaction_limit
        self.recheck_interval = timedelta(hours=recheck_interval_hours)
        self.seed = seed
        self.clock = clock
        self._executor = ThreadPoolExecutor(
            max_workers=max_background_workers,
            thread_name_prefix="smartkas-detection"
        )

    def run_detection(self) -> int:
        """
        Scheduled entry point: scan up to ``batch_size`` businesses due for a check.

        Returns:
            Number of alerts created across the batch
        """
        start_time = time.time()
        checked_before = None
        if self.recheck_interval > timedelta(0):
            checked_before = self.clock() - self.recheck_interval

        businesses = self.store.list_businesses_due(checked_before, self.batch_size)
        logger.info(f"Starting detection run over {len(businesses)} businesses")

        total_created = 0
        for business in businesses:
            try:
                total_created += self._process_business(business)
            except Exception as e:
                businesses_scanned.labels(outcome="failed").inc()
                logger.error(f"Detection failed for business, continuing: {e}", business_id=business.id)

        duration = time.time() - start_time
        detection_run_time.labels(mode="batch").observe(duration)
        logger.info(
            "Detection run complete",
            businesses=len(businesses),
            anomalies_found=total_created,
            duration_seconds=round(duration, 3)
        )
        return total_created

    def run_detection_for_business(self, business_id: str) -> int:
        """
        On-demand entry point for one business, e.g. after a transaction write.
        Not throttled by the recheck interval.

        Returns:
            Number of alerts created; 0 when the business is unknown or fails
        """
        start_time = time.time()
        business = self.store.get_business(business_id)
        if business is None:
            logger.warning("Detection requested for unknown business", business_id=business_id)
            return 0

        try:
            created = self._process_business(business)
        except Exception as e:
            businesses_scanned.labels(outcome="failed").inc()
            logger.error(f"Detection failed for business: {e}", business_id=business_id)
            return 0
        finally:
            detection_run_time.labels(mode="business").observe(time.time() - start_time)

        return created

    def trigger_detection_for_business(self, business_id: str) -> Future:
        """
        Fire-and-forget detection for one business.

        The returned future never raises; failures are only logged.
        """
        future = self._executor.submit(self.run_detection_for_business, business_id)
        future.add_done_callback(lambda f: self._log_background_failure(f, business_id))
        return future

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _log_background_failure(self, future: Future, business_id: str) -> None:
        error: Optional[BaseException] = future.exception()
        if error is not None:
            logger.error(f"Background detection failed: {error}", business_id=business_id)

    def _process_business(self, business: Business) -> int:
        transactions = self.store.recent_transactions(business.id, self.transaction_limit)

        if len(transactions) < self.scorer.min_transactions:
            businesses_scanned.labels(outcome="skipped").inc()
            logger.info(
                "Skipping business with too few transactions",
                business_id=business.id,
                count=len(transactions)
            )
            self.store.mark_checked(business.id, self.clock())
            return 0

        flagged = self.scorer.detect(transactions, seed=self.seed)

        created = []
        if flagged:
            drafts = self.enricher.enrich([txn for txn, _ in flagged])
            created = self.lifecycle.persist_drafts(business.id, drafts)

        # A clean run still counts as checked
        self.store.mark_checked(business.id, self.clock())
        businesses_scanned.labels(outcome="scanned").inc()

        logger.info(
            "Business scanned",
            business_id=business.id,
            transactions=len(transactions),
            flagged=len(flagged),
            alerts_created=len(created)
        )
        return len(created)
