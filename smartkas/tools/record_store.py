"""Record store interface for businesses, transactions and alerts.

The durable store lives outside this package (the dashboard's database). The
detection pipeline only needs the operations declared on ``RecordStore``;
``InMemoryRecordStore`` implements them for tests and local runs.
"""

import threading
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional
import yaml
from pydantic import ValidationError
from smartkas.models import Alert, Business, Transaction
from smartkas.utils.errors import StoreError


class RecordStore(ABC):
    """Operations the insights system needs from the dashboard's persistence layer"""

    @abstractmethod
    def get_business(self, business_id: str) -> Optional[Business]:
        ...

    @abstractmethod
    def find_business_by_user(self, user_id: str) -> Optional[Business]:
        ...

    @abstractmethod
    def list_businesses_due(self, checked_before: Optional[datetime], limit: int) -> List[Business]:
        """
        Businesses never checked, or last checked before ``checked_before``.
        ``checked_before=None`` returns any business.
        """

    @abstractmethod
    def mark_checked(self, business_id: str, when: datetime) -> None:
        ...

    @abstractmethod
    def recent_transactions(self, business_id: str, limit: int) -> List[Transaction]:
        """Most recent first"""

    @abstractmethod
    def save_transaction(self, transaction: Transaction) -> Transaction:
        ...

    @abstractmethod
    def find_recent_alert(self, business_id: str, title: str, since: datetime) -> Optional[Alert]:
        """An alert of this business with exactly this title created at or after ``since``"""

    @abstractmethod
    def create_alert(self, alert: Alert) -> Alert:
        ...

    @abstractmethod
    def get_alert(self, alert_id: str) -> Optional[Alert]:
        ...

    @abstractmethod
    def update_alert(self, alert: Alert) -> Alert:
        ...

    @abstractmethod
    def list_alerts(self, business_id: str, limit: Optional[int] = None) -> List[Alert]:
        """Newest first"""


class InMemoryRecordStore(RecordStore):
    """Thread-safe dictionary-backed store"""

    def __init__(self):
        self._lock = threading.RLock()
        self._businesses: Dict[str, Business] = {}
        self._transactions: Dict[str, Transaction] = {}
        self._alerts: Dict[str, Alert] = {}

    @classmethod
    def from_snapshot(cls, path: str) -> "InMemoryRecordStore":
        """
        Build a store from a YAML snapshot with `businesses` and `transactions` lists.

        Raises:
            StoreError: Missing file, invalid YAML or invalid records
        """
        snapshot_file = Path(path)
        if not snapshot_file.exists():
            raise StoreError(f"Snapshot file not found: {path}")

        try:
            with open(snapshot_file, 'r') as f:
                snapshot = yaml.safe_load(f) or {}
            store = cls()
            for business in snapshot.get('businesses') or []:
                store.add_business(Business.model_validate(business))
            for transaction in snapshot.get('transactions') or []:
                store.save_transaction(Transaction.model_validate(transaction))
        except (yaml.YAMLError, ValidationError, AttributeError) as e:
            raise StoreError(f"Invalid snapshot {path}: {e}") from e

        return store

    def add_business(self, business: Business) -> Business:
        with self._lock:
            self._businesses[business.id] = business.model_copy()
        return business

    def get_business(self, business_id: str) -> Optional[Business]:
        with self._lock:
            business = self._businesses.get(business_id)
            return business.model_copy() if business else None

    def find_business_by_user(self, user_id: str) -> Optional[Business]:
        with self._lock:
            for business in self._businesses.values():
                if business.user_id == user_id:
                    return business.model_copy()
        return None

    def list_businesses_due(self, checked_before: Optional[datetime], limit: int) -> List[Business]:
        with self._lock:
            due = [
                b for b in self._businesses.values()
                if checked_before is None
                or b.last_anomaly_check is None
                or b.last_anomaly_check < checked_before
            ]
            return [b.model_copy() for b in due[:limit]]

    def mark_checked(self, business_id: str, when: datetime) -> None:
        with self._lock:
            business = self._businesses.get(business_id)
            if business is None:
                raise StoreError(f"Unknown business: {business_id}")
            self._businesses[business_id] = business.model_copy(update={'last_anomaly_check': when})

    def recent_transactions(self, business_id: str, limit: int) -> List[Transaction]:
        with self._lock:
            owned = [t for t in self._transactions.values() if t.business_id == business_id]
        owned.sort(key=lambda t: t.date, reverse=True)
        return [t.model_copy() for t in owned[:limit]]

    def save_transaction(self, transaction: Transaction) -> Transaction:
        with self._lock:
            if transaction.business_id not in self._businesses:
                raise StoreError(f"Unknown business: {transaction.business_id}")
            self._transactions[transaction.id] = transaction.model_copy()
        return transaction

    def delete_transaction(self, transaction_id: str) -> None:
        with self._lock:
            self._transactions.pop(transaction_id, None)

    def find_recent_alert(self, business_id: str, title: str, since: datetime) -> Optional[Alert]:
        with self._lock:
            for alert in self._alerts.values():
                if alert.business_id == business_id and alert.title == title and alert.created_at >= since:
                    return alert.model_copy()
        return None

    def create_alert(self, alert: Alert) -> Alert:
        with self._lock:
            if alert.id in self._alerts:
                raise StoreError(f"Alert already exists: {alert.id}")
            self._alerts[alert.id] = alert.model_copy()
        return alert

    def get_alert(self, alert_id: str) -> Optional[Alert]:
        with self._lock:
            alert = self._alerts.get(alert_id)
            return alert.model_copy() if alert else None

    def update_alert(self, alert: Alert) -> Alert:
        with self._lock:
            if alert.id not in self._alerts:
                raise StoreError(f"Unknown alert: {alert.id}")
            self._alerts[alert.id] = alert.model_copy()
        return alert

    def list_alerts(self, business_id: str, limit: Optional[int] = None) -> List[Alert]:
        with self._lock:
            owned = [a for a in self._alerts.values() if a.business_id == business_id]
        owned.sort(key=lambda a: a.created_at, reverse=True)
        if limit is not None:
            owned = owned[:limit]
        return [a.model_copy() for a in owned]
