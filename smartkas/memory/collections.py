"""Vector collection schemas for transaction and chat memory"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple
from smartkas.constants import DEFAULT_EMBEDDING_DIM

TRANSACTION_COLLECTION = "transactions_v2"
CHAT_COLLECTION = "chat_history_v2"

OWNER_FIELD = "user_id"
VECTOR_FIELD = "vector"


@dataclass(frozen=True)
class FieldSpec:
    """One scalar column; kind is 'varchar' or 'int64'"""
    name: str
    kind: str
    max_length: Optional[int] = None
    description: str = ""


@dataclass(frozen=True)
class CollectionSchema:
    """
    Declared layout of a memory collection.

    Every collection has a VarChar(64) primary key ``id``, a VarChar(64)
    ``user_id`` owner column and a float vector of ``dimension``. The free
    text lives in ``text_field``; payload goes either to a JSON-encoded
    ``metadata_field`` or to typed ``payload_fields``.
    """
    name: str
    dimension: int
    text_field: str
    text_max_length: int
    metadata_field: Optional[str] = None
    metadata_max_length: int = 4096
    payload_fields: Tuple[FieldSpec, ...] = ()
    order_field: Optional[str] = None
    index_name: str = "vector_index"
    index_type: str = "IVF_FLAT"
    metric_type: str = "L2"
    index_params: Dict[str, Any] = field(default_factory=lambda: {"nlist": 1024})
    id_max_length: int = 64

    def scalar_fields(self) -> Tuple[FieldSpec, ...]:
        """Non-key, non-vector columns in declaration order"""
        fields = [
            FieldSpec(OWNER_FIELD, "varchar", self.id_max_length, "Owner ID"),
            FieldSpec(self.text_field, "varchar", self.text_max_length, "Embedded text"),
        ]
        if self.metadata_field:
            fields.append(FieldSpec(self.metadata_field, "varchar", self.metadata_max_length, "JSON metadata"))
        fields.extend(self.payload_fields)
        return tuple(fields)

    def output_fields(self) -> list:
        return [f.name for f in self.scalar_fields()]


def transaction_collection(dimension: int = DEFAULT_EMBEDDING_DIM,
                           name: str = TRANSACTION_COLLECTION) -> CollectionSchema:
    return CollectionSchema(
        name=name,
        dimension=dimension,
        text_field="text",
        text_max_length=2048,
        metadata_field="metadata",
        metadata_max_length=4096,
        index_name="vector_index",
    )


def chat_collection(dimension: int = DEFAULT_EMBEDDING_DIM,
                    name: str = CHAT_COLLECTION) -> CollectionSchema:
    return CollectionSchema(
        name=name,
        dimension=dimension,
        text_field="content",
        text_max_length=8192,
        payload_fields=(
            FieldSpec("role", "varchar", 16, "Role (user/assistant)"),
            FieldSpec("timestamp", "int64", None, "Milliseconds since the epoch"),
        ),
        order_field="timestamp",
        index_name="chat_vector_index",
    )
