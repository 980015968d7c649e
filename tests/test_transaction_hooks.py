"""Tests for post-write hooks"""

from unittest.mock import MagicMock
from conftest import add_business, make_transactions
from smartkas.models import Business
from smartkas.orchestrator.transaction_hooks import TransactionHooks


def test_on_saved_indexes_and_triggers(store, retrieval):
    """The transaction lands in the owner's memory and detection is scheduled"""
    add_business(store)
    orchestrator = MagicMock()
    hooks = TransactionHooks(store, retrieval, orchestrator)
    txn = make_transactions("biz_001", [75000])[0]

    hooks.on_saved(txn)

    orchestrator.trigger_detection_for_business.assert_called_once_with("biz_001")
    assert [h.id for h in retrieval.find_transactions("user_001", "Pembelian")] == [txn.id]


def test_on_saved_survives_memory_failure(store):
    """A failed index write still schedules detection"""
    add_business(store)
    retrieval = MagicMock()
    retrieval.index_transaction.return_value = False
    orchestrator = MagicMock()
    hooks = TransactionHooks(store, retrieval, orchestrator)

    hooks.on_saved(make_transactions("biz_001", [75000])[0])

    orchestrator.trigger_detection_for_business.assert_called_once_with("biz_001")


def test_on_saved_never_raises(store, retrieval):
    """Scheduling errors are swallowed and logged"""
    add_business(store)
    orchestrator = MagicMock()
    orchestrator.trigger_detection_for_business.side_effect = RuntimeError("executor shut down")
    hooks = TransactionHooks(store, retrieval, orchestrator)

    assert hooks.on_saved(make_transactions("biz_001", [75000])[0]) is None


def test_on_saved_unknown_business(store, retrieval):
    orchestrator = MagicMock()
    hooks = TransactionHooks(store, retrieval, orchestrator)

    assert hooks.on_saved(make_transactions("ghost", [75000])[0]) is None
    orchestrator.trigger_detection_for_business.assert_not_called()


def test_on_deleted_removes_and_triggers(store, retrieval):
    add_business(store)
    orchestrator = MagicMock()
    hooks = TransactionHooks(store, retrieval, orchestrator)
    txn = make_transactions("biz_001", [75000])[0]
    hooks.on_saved(txn)

    hooks.on_deleted(txn.id, "biz_001")

    assert retrieval.find_transactions("user_001", "Pembelian") == []
    assert orchestrator.trigger_detection_for_business.call_count == 2


def test_on_saved_business_without_owner(store, retrieval):
    """A business with an empty owner id still schedules detection"""
    store.add_business(Business(id="biz_orphan", user_id=""))
    orchestrator = MagicMock()
    hooks = TransactionHooks(store, retrieval, orchestrator)

    hooks.on_saved(make_transactions("biz_orphan", [75000])[0])

    orchestrator.trigger_detection_for_business.assert_called_once_with("biz_orphan")


def test_hooks_survive_retrieval_exceptions(store):
    """Unexpected errors from memory sync never reach the write path"""
    add_business(store)
    retrieval = MagicMock()
    retrieval.index_transaction.side_effect = ValueError("owner_id is required")
    retrieval.remove_transaction.side_effect = RuntimeError("boom")
    orchestrator = MagicMock()
    hooks = TransactionHooks(store, retrieval, orchestrator)
    txn = make_transactions("biz_001", [75000])[0]

    hooks.on_saved(txn)
    hooks.on_deleted(txn.id, "biz_001")

    assert orchestrator.trigger_detection_for_business.call_count == 2
