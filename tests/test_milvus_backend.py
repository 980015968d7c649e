"""Tests for the Milvus backend against a mocked client"""

from unittest.mock import MagicMock
import pytest
from smartkas.memory.collections import chat_collection, transaction_collection
from smartkas.memory.vector_backend import MilvusVectorBackend, owner_filter
from smartkas.utils.errors import VectorStoreError


@pytest.fixture
def client():
    return MagicMock()


def test_provisions_missing_collection(client):
    """An absent collection is created with its index and loaded"""
    client.has_collection.return_value = False
    backend = MilvusVectorBackend(client=client)

    assert backend.ensure_collection(transaction_collection(768)) is True

    client.create_collection.assert_called_once()
    assert client.create_collection.call_args.kwargs["collection_name"] == "transactions_v2"
    client.prepare_index_params.return_value.add_index.assert_called_once_with(
        field_name="vector",
        index_name="vector_index",
        index_type="IVF_FLAT",
        metric_type="L2",
        params={"nlist": 1024},
    )
    client.load_collection.assert_called_once_with(collection_name="transactions_v2")


def test_existing_collection_untouched(client):
    client.has_collection.return_value = True
    backend = MilvusVectorBackend(client=client)

    assert backend.ensure_collection(chat_collection(768)) is False
    client.create_collection.assert_not_called()


def test_search_filters_by_owner_and_flattens_hits(client):
    """Hits come back as flat rows carrying id and distance"""
    client.search.return_value = [[
        {"id": "t1", "distance": 0.25, "entity": {"user_id": "u1", "text": "beli kopi", "metadata": "{}"}},
    ]]
    backend = MilvusVectorBackend(client=client)

    rows = backend.search(transaction_collection(768), [0.0] * 768, "u1", 5)

    assert rows == [{"user_id": "u1", "text": "beli kopi", "metadata": "{}", "id": "t1", "distance": 0.25}]
    kwargs = client.search.call_args.kwargs
    assert kwargs["filter"] == 'user_id == "u1"'
    assert kwargs["limit"] == 5
    assert kwargs["output_fields"] == ["user_id", "text", "metadata"]


def test_chat_query_requests_payload_fields(client):
    client.query.return_value = [{"id": "m1", "user_id": "u1", "content": "hi", "role": "user", "timestamp": 1}]
    backend = MilvusVectorBackend(client=client)

    rows = backend.query(chat_collection(768), "u1", 50)

    assert rows[0]["id"] == "m1"
    assert client.query.call_args.kwargs["output_fields"] == ["id", "user_id", "content", "role", "timestamp"]


def test_client_errors_become_vector_store_errors(client):
    client.upsert.side_effect = RuntimeError("connection reset")
    backend = MilvusVectorBackend(client=client)

    with pytest.raises(VectorStoreError):
        backend.upsert(transaction_collection(768), [{"id": "t1"}])


def test_uri_required_without_client():
    with pytest.raises(VectorStoreError):
        MilvusVectorBackend()


def test_owner_filter_quotes_value():
    """Owner ids are quoted so they cannot break out of the expression"""
    assert owner_filter('a"b') == 'user_id == "a\\"b"'
