"""Shared fixtures: in-memory stores, a deterministic embedder and stub providers"""

import hashlib
from datetime import datetime, timedelta, timezone
from decimal import Decimal
import numpy as np
import pytest
from smartkas.constants import TransactionType
from smartkas.memory.collections import chat_collection, transaction_collection
from smartkas.memory.retrieval import SemanticRetrievalService
from smartkas.memory.vector_backend import InMemoryVectorBackend
from smartkas.memory.vector_memory import VectorMemoryIndex
from smartkas.models import Business, Transaction
from smartkas.tools.record_store import InMemoryRecordStore
from smartkas.utils.errors import EmbeddingError

TEST_DIM = 64
FIXED_NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

ONE_ALERT_RESPONSE = """```json
[
  {
    "title": "Unusually large supplier payment",
    "description": "Rp5.000.000 paid out, about 100x the usual spend",
    "severity": "high",
    "recommendation": "Verify the invoice with the supplier",
    "impact": "Possible loss of Rp5.000.000",
    "suggestedActions": ["Call supplier", "Check invoice"],
    "amount": 5000000
  }
]
```"""


class HashingEmbedder:
    """Bag-of-words hashing into a fixed number of buckets, L2-normalised"""

    def __init__(self, dimension: int = TEST_DIM):
        self.dimension = dimension
        self.calls = 0

    def embed(self, text):
        self.calls += 1
        vector = np.zeros(self.dimension)
        for token in text.lower().split():
            bucket = int(hashlib.md5(token.encode("utf-8")).hexdigest(), 16) % self.dimension
            vector[bucket] += 1.0
        norm = np.linalg.norm(vector)
        if norm:
            vector = vector / norm
        return vector.tolist()


class FailingEmbedder:
    dimension = TEST_DIM

    def embed(self, text):
        raise EmbeddingError("embedding provider unavailable")


class StubLLM:
    """Returns a fixed response, or raises it when it is an exception"""

    model = "stub/model"

    def __init__(self, response="[]"):
        self.response = response
        self.prompts = []

    def complete(self, system_instruction, prompt, caller="unknown"):
        self.prompts.append(prompt)
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


class FixedClock:
    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_transactions(business_id, amounts, txn_type=TransactionType.OUT, start=FIXED_NOW):
    """One transaction per amount, a day apart, newest first"""
    return [
        Transaction(
            id=f"{business_id}-txn-{i}",
            business_id=business_id,
            date=start - timedelta(days=i),
            amount=Decimal(str(amount)),
            type=txn_type,
            category="Bahan Baku",
            description=f"Pembelian {i}",
        )
        for i, amount in enumerate(amounts)
    ]


def add_business(store, business_id="biz_001", user_id="user_001", amounts=()):
    store.add_business(Business(id=business_id, user_id=user_id, name=f"Warung {business_id}"))
    for txn in make_transactions(business_id, amounts):
        store.save_transaction(txn)
    return business_id


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def embedder():
    return HashingEmbedder()


@pytest.fixture
def backend():
    return InMemoryVectorBackend()


@pytest.fixture
def transaction_memory(backend, embedder):
    return VectorMemoryIndex(backend, embedder, transaction_collection(TEST_DIM))


@pytest.fixture
def chat_memory(backend, embedder):
    return VectorMemoryIndex(backend, embedder, chat_collection(TEST_DIM))


@pytest.fixture
def retrieval(transaction_memory, chat_memory, clock):
    return SemanticRetrievalService(transaction_memory, chat_memory, clock=clock)
