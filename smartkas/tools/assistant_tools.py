"""Assistant tool contracts: search-transactions, check-anomalies, save-transaction

Each capability is a function of (owner_id, arguments) returning a string the
conversational agent can show to the model. The agent loop that picks a tool
lives in the conversational layer.
"""

import json
from decimal import Decimal
from typing import List, Optional
from crewai.tools import tool
from smartkas.constants import DEFAULT_CATEGORY, DEFAULT_SEARCH_LIMIT, TransactionType
from smartkas.models import Transaction
from smartkas.utils.clock import utcnow
from smartkas.utils.logging import get_logger

logger = get_logger(__name__)

RECENT_ALERT_LIMIT = 5


class AssistantToolkit:
    """The closed set of capabilities offered to the finance assistant"""

    def __init__(self, store, retrieval, hooks=None):
        self.store = store
        self.retrieval = retrieval
        self.hooks = hooks

    def search_transactions(self, owner_id: str, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> str:
        """Transactions relevant to a free-text query, as a JSON list"""
        try:
            hits = self.retrieval.find_transactions(owner_id, query, limit)
            return json.dumps([
                {'text': hit.text, 'metadata': hit.metadata, 'distance': hit.distance}
                for hit in hits
            ])
        except Exception as e:
            logger.error(f"search_transactions tool failed: {e}", owner_id=owner_id)
            return "Error searching transactions."

    def check_anomalies(self, owner_id: str) -> str:
        """The latest alerts of the owner's business, as JSON"""
        try:
            business = self.store.find_business_by_user(owner_id)
            if business is None:
                return "No business found for this user."

            alerts = self.store.list_alerts(business.id, RECENT_ALERT_LIMIT)
            if not alerts:
                return "No anomalies detected recently."
            return json.dumps([alert.model_dump(mode='json') for alert in alerts])
        except Exception as e:
            logger.error(f"check_anomalies tool failed: {e}", owner_id=owner_id)
            return "Error checking anomalies."

    def save_transaction(self, owner_id: str, amount: float, type: str, description: str,
                         category: Optional[str] = None) -> str:
        """Record an income ('in') or expense ('out') for the owner's business"""
        try:
            txn_type = TransactionType(type)
        except ValueError:
            return f"Invalid transaction type '{type}'. Use 'in' for income or 'out' for expense."

        try:
            business = self.store.find_business_by_user(owner_id)
            if business is None:
                return "No business found. Cannot save transaction."

            transaction = self.store.save_transaction(Transaction(
                business_id=business.id,
                date=utcnow(),
                amount=Decimal(str(amount)),
                type=txn_type,
                description=description,
                category=category or DEFAULT_CATEGORY,
                status="completed"
            ))
        except Exception as e:
            logger.error(f"save_transaction tool failed: {e}", owner_id=owner_id)
            return "Error saving transaction."

        if self.hooks is not None:
            self.hooks.on_saved(transaction)

        label = "Income" if txn_type == TransactionType.IN else "Expense"
        return f"Transaction saved successfully: {label} Rp{amount} - {description}"

    def as_crewai_tools(self, owner_id: str) -> List:
        """CrewAI tools with the owner bound, for the conversational agent"""
        toolkit = self

        @tool("search_transactions")
        def search_transactions(query: str) -> str:
            """Search the user's transactions. Use this to answer questions about expenses, income, history or specific transaction details."""
            return toolkit.search_transactions(owner_id, query)

        @tool("check_anomalies")
        def check_anomalies() -> str:
            """Check for financial anomalies or alerts. Use this when the user asks about fraud, unusual spending or alerts."""
            return toolkit.check_anomalies(owner_id)

        @tool("save_transaction")
        def save_transaction(amount: float, type: str, description: str, category: str = "") -> str:
            """Save a new transaction when the user explicitly asks to record one. type is 'in' for income or 'out' for expense."""
            return toolkit.save_transaction(owner_id, amount, type, description, category or None)

        return [search_transactions, check_anomalies, save_transaction]
