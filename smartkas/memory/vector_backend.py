"""Vector store backends: Milvus for deployments, in-memory for tests and local runs"""

import json
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence
import numpy as np
from pymilvus import DataType, MilvusClient
from smartkas.memory.collections import OWNER_FIELD, VECTOR_FIELD, CollectionSchema
from smartkas.utils.errors import VectorStoreError
from smartkas.utils.logging import get_logger
from smartkas.utils.metrics import collections_provisioned

logger = get_logger(__name__)


def owner_filter(owner_id: str) -> str:
    """Boolean filter expression restricting a query to one owner"""
    return f"{OWNER_FIELD} == {json.dumps(owner_id)}"


class VectorBackend(ABC):
    """Storage operations used by ``VectorMemoryIndex``"""

    @abstractmethod
    def ensure_collection(self, schema: CollectionSchema) -> bool:
        """Create, index and load the collection if absent. Returns True when it was created."""

    @abstractmethod
    def upsert(self, schema: CollectionSchema, rows: Sequence[Dict[str, Any]]) -> None:
        ...

    @abstractmethod
    def delete(self, schema: CollectionSchema, ids: Sequence[str]) -> None:
        ...

    @abstractmethod
    def search(self, schema: CollectionSchema, vector: Sequence[float], owner_id: str,
               limit: int) -> List[Dict[str, Any]]:
        """Nearest rows for one owner, closest first; each row carries ``id`` and ``distance``"""

    @abstractmethod
    def query(self, schema: CollectionSchema, owner_id: str, limit: int) -> List[Dict[str, Any]]:
        """Plain filtered fetch, no ordering guarantee"""

    @abstractmethod
    def drop_collection(self, name: str) -> None:
        ...


class MilvusVectorBackend(VectorBackend):
    """pymilvus ``MilvusClient`` backend; one instance per process"""

    FIELD_TYPES = {
        "varchar": DataType.VARCHAR,
        "int64": DataType.INT64,
    }

    def __init__(self, uri: Optional[str] = None, token: Optional[str] = None,
                 client: Optional[MilvusClient] = None, nprobe: int = 16):
        if client is None:
            if not uri:
                raise VectorStoreError("Milvus URI is required")
            try:
                client = MilvusClient(uri=uri, token=token or "")
            except Exception as e:
                raise VectorStoreError(f"Failed to connect to Milvus at {uri}: {e}") from e
        self.client = client
        self.nprobe = nprobe

    def _build_schema(self, schema: CollectionSchema):
        milvus_schema = MilvusClient.create_schema(auto_id=False, enable_dynamic_field=False)
        milvus_schema.add_field(
            field_name="id",
            datatype=DataType.VARCHAR,
            is_primary=True,
            max_length=schema.id_max_length,
        )
        for field_spec in schema.scalar_fields():
            kwargs = {"max_length": field_spec.max_length} if field_spec.kind == "varchar" else {}
            milvus_schema.add_field(field_name=field_spec.name, datatype=self.FIELD_TYPES[field_spec.kind], **kwargs)
        milvus_schema.add_field(field_name=VECTOR_FIELD, datatype=DataType.FLOAT_VECTOR, dim=schema.dimension)
        return milvus_schema

    def ensure_collection(self, schema: CollectionSchema) -> bool:
        try:
            if self.client.has_collection(collection_name=schema.name):
                return False

            logger.info("Provisioning vector collection", collection=schema.name, dimension=schema.dimension)
            index_params = self.client.prepare_index_params()
            index_params.add_index(
                field_name=VECTOR_FIELD,
                index_name=schema.index_name,
                index_type=schema.index_type,
                metric_type=schema.metric_type,
                params=dict(schema.index_params),
            )
            self.client.create_collection(
                collection_name=schema.name,
                schema=self._build_schema(schema),
                index_params=index_params,
            )
            self.client.load_collection(collection_name=schema.name)
        except Exception as e:
            raise VectorStoreError(f"Failed to provision collection {schema.name}: {e}") from e

        collections_provisioned.labels(collection=schema.name).inc()
        return True

    def upsert(self, schema: CollectionSchema, rows: Sequence[Dict[str, Any]]) -> None:
        try:
            self.client.upsert(collection_name=schema.name, data=list(rows))
        except Exception as e:
            raise VectorStoreError(f"Upsert into {schema.name} failed: {e}") from e

    def delete(self, schema: CollectionSchema, ids: Sequence[str]) -> None:
        try:
            self.client.delete(collection_name=schema.name, ids=list(ids))
        except Exception as e:
            raise VectorStoreError(f"Delete from {schema.name} failed: {e}") from e

    def search(self, schema: CollectionSchema, vector: Sequence[float], owner_id: str,
               limit: int) -> List[Dict[str, Any]]:
        try:
            results = self.client.search(
                collection_name=schema.name,
                data=[list(vector)],
                filter=owner_filter(owner_id),
                limit=limit,
                output_fields=schema.output_fields(),
                search_params={"metric_type": schema.metric_type, "params": {"nprobe": self.nprobe}},
            )
        except Exception as e:
            raise VectorStoreError(f"Search in {schema.name} failed: {e}") from e

        rows = []
        for hit in (results[0] if results else []):
            entity = dict(hit.get("entity") or {})
            entity["id"] = hit.get("id")
            entity["distance"] = hit.get("distance")
            rows.append(entity)
        return rows

    def query(self, schema: CollectionSchema, owner_id: str, limit: int) -> List[Dict[str, Any]]:
        try:
            return list(self.client.query(
                collection_name=schema.name,
                filter=owner_filter(owner_id),
                output_fields=["id"] + schema.output_fields(),
                limit=limit,
            ))
        except Exception as e:
            raise VectorStoreError(f"Query on {schema.name} failed: {e}") from e

    def drop_collection(self, name: str) -> None:
        try:
            self.client.drop_collection(collection_name=name)
        except Exception as e:
            raise VectorStoreError(f"Dropping {name} failed: {e}") from e


class InMemoryVectorBackend(VectorBackend):
    """Exact nearest-neighbour search over squared L2 distance, matching Milvus's L2 metric"""

    def __init__(self):
        self._lock = threading.RLock()
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._dimensions: Dict[str, int] = {}

    def ensure_collection(self, schema: CollectionSchema) -> bool:
        with self._lock:
            if schema.name in self._collections:
                return False
            self._collections[schema.name] = {}
            self._dimensions[schema.name] = schema.dimension
        collections_provisioned.labels(collection=schema.name).inc()
        return True

    def _rows(self, name: str) -> Dict[str, Dict[str, Any]]:
        rows = self._collections.get(name)
        if rows is None:
            raise VectorStoreError(f"Collection {name} does not exist")
        return rows

    def upsert(self, schema: CollectionSchema, rows: Sequence[Dict[str, Any]]) -> None:
        with self._lock:
            stored = self._rows(schema.name)
            for row in rows:
                if len(row[VECTOR_FIELD]) != self._dimensions[schema.name]:
                    raise VectorStoreError(
                        f"Vector dimension {len(row[VECTOR_FIELD])} does not match "
                        f"{schema.name} ({self._dimensions[schema.name]})"
                    )
                stored[row["id"]] = dict(row)

    def delete(self, schema: CollectionSchema, ids: Sequence[str]) -> None:
        with self._lock:
            stored = self._rows(schema.name)
            for record_id in ids:
                stored.pop(record_id, None)

    def search(self, schema: CollectionSchema, vector: Sequence[float], owner_id: str,
               limit: int) -> List[Dict[str, Any]]:
        with self._lock:
            candidates = [row for row in self._rows(schema.name).values() if row[OWNER_FIELD] == owner_id]
        if not candidates:
            return []

        query = np.asarray(vector, dtype=float)
        matrix = np.asarray([row[VECTOR_FIELD] for row in candidates], dtype=float)
        distances = ((matrix - query) ** 2).sum(axis=1)
        order = np.argsort(distances, kind="stable")[:limit]

        results = []
        for i in order:
            row = {k: v for k, v in candidates[i].items() if k != VECTOR_FIELD}
            row["distance"] = float(distances[i])
            results.append(row)
        return results

    def query(self, schema: CollectionSchema, owner_id: str, limit: int) -> List[Dict[str, Any]]:
        with self._lock:
            rows = [
                {k: v for k, v in row.items() if k != VECTOR_FIELD}
                for row in self._rows(schema.name).values()
                if row[OWNER_FIELD] == owner_id
            ]
        return rows[:limit]

    def drop_collection(self, name: str) -> None:
        with self._lock:
            self._collections.pop(name, None)
            self._dimensions.pop(name, None)
