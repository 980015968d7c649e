"""LLM enrichment: turns statistically anomalous transactions into alert drafts"""

import json
import re
from typing import Any, Dict, List, Optional, Sequence
from pydantic import ValidationError
from smartkas.models import AlertDraft, Transaction
from smartkas.utils.logging import get_logger
from smartkas.utils.metrics import enrichment_failures

logger = get_logger(__name__)

SYSTEM_INSTRUCTION = "You are a financial fraud detection expert."

PROMPT_TEMPLATE = """
Analyze the following transactions for anomalies (fraud, unusual spending, spikes, etc.).
They were flagged as statistical outliers among the business's recent transactions:
{transactions}

Return a JSON array of anomalies found. Each object should have:
- title: Short title of the anomaly
- description: Detailed description
- severity: 'high', 'medium', or 'low'
- recommendation: Actionable advice
- impact: Potential financial impact
- suggestedActions: Array of strings (actions to take)
- amount: The amount involved (if applicable)

If no anomalies are found, return an empty array [].
Output ONLY the JSON array.
"""

FENCED_BLOCK = re.compile(r"```(?:json)?\s*\n?(.*?)```", re.DOTALL | re.IGNORECASE)
BRACKETED_ARRAY = re.compile(r"\[.*\]", re.DOTALL)


def simplify_transactions(transactions: Sequence[Transaction]) -> List[Dict[str, Any]]:
    """Strip transactions down to what the model needs; scores are deliberately left out"""
    return [
        {
            'date': txn.date.strftime('%Y-%m-%d'),
            'amount': float(txn.amount),
            'type': txn.type.value,
            'category': txn.category,
            'description': txn.description
        }
        for txn in transactions
    ]


def _candidate_payload(text: str) -> Optional[str]:
    fenced = FENCED_BLOCK.search(text)
    if fenced:
        return fenced.group(1).strip()
    bracketed = BRACKETED_ARRAY.search(text)
    if bracketed:
        return bracketed.group(0)
    return None


def extract_alert_drafts(text: Optional[str]) -> List[AlertDraft]:
    """
    Parse alert drafts out of raw model output.

    Tries a fenced code block first, then the outermost bracketed array.
    Never raises: anything unparseable yields an empty list.
    """
    if not text:
        return []

    payload = _candidate_payload(text)
    if payload is None:
        logger.warning("No JSON array found in enrichment response", preview=text[:200])
        enrichment_failures.labels(reason="parse").inc()
        return []

    try:
        parsed = json.loads(payload)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse enrichment response: {e}", preview=payload[:200])
        enrichment_failures.labels(reason="parse").inc()
        return []

    if isinstance(parsed, dict):
        parsed = [parsed]
    if not isinstance(parsed, list):
        logger.warning("Enrichment response is not a JSON array", kind=type(parsed).__name__)
        enrichment_failures.labels(reason="parse").inc()
        return []

    drafts = []
    for item in parsed:
        try:
            drafts.append(AlertDraft.model_validate(item))
        except (ValidationError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed alert draft: {e}", item=str(item)[:200])

    return drafts


class AnomalyEnricher:
    """Explains flagged transactions through a text-generation provider"""

    def __init__(self, llm_client):
        self.llm_client = llm_client

    def build_prompt(self, transactions: Sequence[Transaction]) -> str:
        return PROMPT_TEMPLATE.format(transactions=json.dumps(simplify_transactions(transactions)))

    def enrich(self, transactions: Sequence[Transaction]) -> List[AlertDraft]:
        """
        Ask the provider for alert drafts covering the given transactions.

        Provider failures and unparseable output both degrade to an empty list.
        """
        if not transactions:
            return []

        try:
            response = self.llm_client.complete(
                SYSTEM_INSTRUCTION,
                self.build_prompt(transactions),
                caller="anomaly_enricher"
            )
        except Exception as e:
            logger.error(f"Enrichment provider call failed: {e}", transactions=len(transactions))
            enrichment_failures.labels(reason="provider").inc()
            return []

        drafts = extract_alert_drafts(response)
        logger.info(f"Enrichment produced {len(drafts)} alert drafts", transactions=len(transactions))
        return drafts
