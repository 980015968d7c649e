"""Alert lifecycle: dedup and persistence of drafts, user-driven status changes"""

from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence
from smartkas.constants import ALERT_STATUS_ORDER, DEFAULT_DEDUP_WINDOW_HOURS, AlertStatus
from smartkas.models import Alert, AlertDraft, AlertUpdate
from smartkas.utils.clock import utcnow
from smartkas.utils.errors import AlertNotFoundError, InvalidTransitionError, OwnershipError
from smartkas.utils.logging import get_logger
from smartkas.utils.metrics import alerts_created, alerts_suppressed

logger = get_logger(__name__)


def check_transition(current: AlertStatus, target: AlertStatus) -> None:
    """
    Enforce the forward-only lifecycle new -> in_progress -> resolved.

    Staying in the same non-final state is allowed (notes-only updates).

    Raises:
        InvalidTransitionError: Backward move, or any move out of ``resolved``
    """
    if current == AlertStatus.RESOLVED:
        raise InvalidTransitionError("Resolved alerts are final")
    if ALERT_STATUS_ORDER[target] < ALERT_STATUS_ORDER[current]:
        raise InvalidTransitionError(f"Cannot move alert from {current.value} back to {target.value}")


class AlertLifecycleManager:
    """Turns enriched drafts into alerts and applies owner updates"""

    def __init__(
        self,
        store,
        dedup_window_hours: float = DEFAULT_DEDUP_WINDOW_HOURS,
        clock: Callable[[], datetime] = utcnow
    ):
        self.store = store
        self.dedup_window = timedelta(hours=dedup_window_hours)
        self.clock = clock

    def persist_drafts(self, business_id: str, drafts: Sequence[AlertDraft]) -> List[Alert]:
        """
        Persist drafts as new alerts, skipping titles already alerted within the dedup window.

        Concurrent calls for the same business may both pass the window check;
        callers serialise detection per business.

        Returns:
            Newly created alerts only
        """
        created = []
        for draft in drafts:
            now = self.clock()
            existing = self.store.find_recent_alert(business_id, draft.title, since=now - self.dedup_window)
            if existing is not None:
                alerts_suppressed.inc()
                logger.info(
                    "Suppressed duplicate alert",
                    business_id=business_id,
                    title=draft.title,
                    existing_alert_id=existing.id
                )
                continue

            alert = self.store.create_alert(Alert.from_draft(business_id, draft, now))
            alerts_created.labels(severity=alert.severity.value).inc()
            logger.info(
                "Created alert",
                business_id=business_id,
                alert_id=alert.id,
                severity=alert.severity.value,
                title=alert.title
            )
            created.append(alert)

        return created

    def update_alert(self, alert_id: str, user_id: str, update: AlertUpdate) -> Alert:
        """
        Apply an owner's status/notes change.

        Args:
            alert_id: Alert to change
            user_id: Requesting user, must own the alert's business
            update: New status (in_progress/resolved) and/or notes

        Raises:
            AlertNotFoundError: Unknown alert
            OwnershipError: Alert belongs to another user's business
            InvalidTransitionError: Backward move or change to a resolved alert
        """
        alert = self.store.get_alert(alert_id)
        if alert is None:
            raise AlertNotFoundError(f"Alert not found: {alert_id}")

        business = self.store.get_business(alert.business_id)
        if business is None or business.user_id != user_id:
            logger.warning("Rejected alert update from non-owner", alert_id=alert_id, user_id=user_id)
            raise OwnershipError(f"User {user_id} does not own alert {alert_id}")

        target = update.status or alert.status
        check_transition(alert.status, target)

        changes = {'status': target, 'updated_at': self.clock()}
        if update.user_notes is not None:
            changes['user_notes'] = update.user_notes

        updated = self.store.update_alert(alert.model_copy(update=changes))
        logger.info(
            "Updated alert",
            alert_id=alert_id,
            from_status=alert.status.value,
            to_status=target.value,
            notes_changed=update.user_notes is not None
        )
        return updated

    def list_alerts(self, business_id: str, limit: Optional[int] = None) -> List[Alert]:
        return self.store.list_alerts(business_id, limit)
