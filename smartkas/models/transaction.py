"""Transaction and business data models"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional
import uuid
from smartkas.constants import TransactionType


class Transaction(BaseModel):
    """Transaction entity, owned by a business"""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique transaction ID")
    business_id: str = Field(..., description="Owning business ID")
    date: datetime = Field(..., description="Transaction date")
    amount: Decimal = Field(..., description="Unsigned transaction amount")
    type: TransactionType = Field(..., description="Cash direction (in/out)")
    category: str = Field("", description="Free-text category")
    description: str = Field("", description="Free-text description")
    status: str = Field("completed", description="Settlement status")

    @property
    def signed_amount(self) -> Decimal:
        """Amount signed by type: income positive, expense negative"""
        magnitude = abs(self.amount)
        return magnitude if self.type == TransactionType.IN else -magnitude

    class Config:
        json_schema_extra = {
            "example": {
                "id": "txn_001",
                "business_id": "biz_001",
                "date": "2025-02-03T10:00:00Z",
                "amount": "50000",
                "type": "out",
                "category": "Bahan Baku",
                "description": "Beli tepung terigu",
                "status": "completed"
            }
        }


class Business(BaseModel):
    """Business entity owning transactions and alerts"""

    id: str = Field(..., description="Unique business ID")
    user_id: str = Field(..., description="Owning user ID, also the vector memory owner")
    name: str = Field("My Business", description="Display name")
    last_anomaly_check: Optional[datetime] = Field(None, description="Last completed detection run")
