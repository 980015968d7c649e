"""Vector memory record models"""

from pydantic import BaseModel, Field
from typing import List, Dict, Any, Optional
from smartkas.constants import ChatRole


class VectorRecord(BaseModel):
    """Embedded record as written to a memory collection"""

    id: str = Field(..., description="Primary key")
    owner_id: str = Field(..., description="Owner (user) ID used to filter every query")
    vector: List[float] = Field(..., description="Embedding")
    text: str = Field(..., description="Embedded free text")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Payload, JSON-encoded in storage")


class SearchHit(BaseModel):
    """Nearest-neighbour result from transaction memory"""

    id: str
    owner_id: str
    text: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    distance: Optional[float] = Field(None, description="L2 distance, smaller is closer")


class ChatTurn(BaseModel):
    """One stored chat message"""

    id: str
    owner_id: str
    role: ChatRole
    content: str
    timestamp: int = Field(..., description="Milliseconds since the epoch")
    distance: Optional[float] = None
