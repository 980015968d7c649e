"""Vector Memory Index - embed, store and search owner-scoped records in one collection"""

import json
from typing import Any, Dict, List, Optional
from smartkas.memory.collections import OWNER_FIELD, VECTOR_FIELD, CollectionSchema
from smartkas.models import SearchHit, VectorRecord
from smartkas.utils.errors import EmbeddingError, VectorStoreError
from smartkas.utils.logging import get_logger
from smartkas.utils.metrics import vector_operations

logger = get_logger(__name__)


def truncate_utf8(text: str, max_bytes: int) -> str:
    """Cut text to at most max_bytes of UTF-8 without splitting a character"""
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    return encoded[:max_bytes].decode("utf-8", errors="ignore")


class VectorMemoryIndex:
    """
    One memory collection (transactions or chat turns).

    Every operation first makes sure the collection exists, which keeps the
    index usable after the backing store has been reset. Reads are always
    filtered to a single owner.
    """

    def __init__(self, backend, embedder, schema: CollectionSchema, scan_limit: int = 1000):
        self.backend = backend
        self.embedder = embedder
        self.schema = schema
        self.scan_limit = scan_limit

    @property
    def name(self) -> str:
        return self.schema.name

    def ensure(self) -> None:
        if self.backend.ensure_collection(self.schema):
            logger.info("Vector collection created", collection=self.name)

    def _embed(self, text: str) -> List[float]:
        vector = self.embedder.embed(text)
        if len(vector) != self.schema.dimension:
            raise EmbeddingError(
                f"Embedding has {len(vector)} dims, collection {self.name} expects {self.schema.dimension}"
            )
        return list(vector)

    def _build_row(self, owner_id: str, record_id: str, text: str, vector: List[float],
                   metadata: Dict[str, Any]) -> Dict[str, Any]:
        row = {
            "id": record_id,
            OWNER_FIELD: owner_id,
            VECTOR_FIELD: vector,
            self.schema.text_field: truncate_utf8(text, self.schema.text_max_length),
        }
        if self.schema.metadata_field:
            encoded = json.dumps(metadata, default=str)
            if len(encoded.encode("utf-8")) > self.schema.metadata_max_length:
                raise VectorStoreError(f"Metadata for {record_id} exceeds {self.schema.metadata_max_length} bytes")
            row[self.schema.metadata_field] = encoded
        for field_spec in self.schema.payload_fields:
            if field_spec.name not in metadata:
                raise VectorStoreError(f"Missing '{field_spec.name}' for record {record_id} in {self.name}")
            value = metadata[field_spec.name]
            row[field_spec.name] = int(value) if field_spec.kind == "int64" else truncate_utf8(str(value), field_spec.max_length)
        return row

    def _to_hit(self, row: Dict[str, Any]) -> SearchHit:
        if self.schema.metadata_field:
            raw = row.get(self.schema.metadata_field) or "{}"
            try:
                metadata = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning("Stored metadata is not valid JSON", collection=self.name, record_id=row.get("id"))
                metadata = {}
        else:
            metadata = {field_spec.name: row.get(field_spec.name) for field_spec in self.schema.payload_fields}

        return SearchHit(
            id=str(row["id"]),
            owner_id=row.get(OWNER_FIELD, ""),
            text=row.get(self.schema.text_field, ""),
            metadata=metadata,
            distance=row.get("distance"),
        )

    def _record(self, operation: str, status: str) -> None:
        vector_operations.labels(collection=self.name, operation=operation, status=status).inc()

    def upsert(self, owner_id: str, record_id: str, text: str,
               metadata: Optional[Dict[str, Any]] = None) -> VectorRecord:
        """
        Embed ``text`` and write it under ``record_id``, replacing any previous record.

        Raises:
            EmbeddingError: Provider failure or dimension mismatch
            VectorStoreError: Provisioning or write failure
        """
        if not owner_id:
            raise ValueError("owner_id is required")
        metadata = dict(metadata or {})

        try:
            self.ensure()
            vector = self._embed(text)
            self.backend.upsert(self.schema, [self._build_row(owner_id, record_id, text, vector, metadata)])
        except (EmbeddingError, VectorStoreError):
            self._record("upsert", "failure")
            raise

        self._record("upsert", "success")
        logger.debug("Upserted vector record", collection=self.name, record_id=record_id, owner_id=owner_id)
        return VectorRecord(id=record_id, owner_id=owner_id, vector=vector, text=text, metadata=metadata)

    def delete(self, record_id: str) -> None:
        try:
            self.ensure()
            self.backend.delete(self.schema, [record_id])
        except VectorStoreError:
            self._record("delete", "failure")
            raise
        self._record("delete", "success")

    def search(self, owner_id: str, query_text: str, limit: int = 5) -> List[SearchHit]:
        """The ``limit`` nearest records of ``owner_id``, closest first"""
        if not owner_id:
            raise ValueError("owner_id is required")

        try:
            self.ensure()
            vector = self._embed(query_text)
            rows = self.backend.search(self.schema, vector, owner_id, limit)
        except (EmbeddingError, VectorStoreError):
            self._record("search", "failure")
            raise

        self._record("search", "success")
        # Owner filter re-applied to backend results
        return [self._to_hit(row) for row in rows if row.get(OWNER_FIELD, owner_id) == owner_id]

    def list_chronological(self, owner_id: str, limit: int = 50) -> List[SearchHit]:
        """
        The latest ``limit`` records of ``owner_id`` in ascending time order.
        No vector math; ordering comes from the collection's order field.
        """
        if not owner_id:
            raise ValueError("owner_id is required")

        try:
            self.ensure()
            rows = self.backend.query(self.schema, owner_id, max(limit, self.scan_limit))
        except VectorStoreError:
            self._record("list", "failure")
            raise

        self._record("list", "success")
        hits = [self._to_hit(row) for row in rows if row.get(OWNER_FIELD, owner_id) == owner_id]
        hits.sort(key=self._order_key)
        return hits[-limit:] if limit > 0 else []

    def _order_key(self, hit: SearchHit):
        if self.schema.order_field:
            return int(hit.metadata.get(self.schema.order_field) or 0)
        return str(hit.metadata.get("date") or "")
