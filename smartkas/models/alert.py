"""Alert draft and persisted alert models"""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional, List, Any
import uuid
from smartkas.constants import Severity, AlertStatus
from smartkas.utils.clock import utcnow


class AlertDraft(BaseModel):
    """Unpersisted explanation of an anomalous transaction, as produced by the model"""

    title: str = Field(..., min_length=1, description="Short title of the anomaly")
    description: str = Field(..., description="Detailed description")
    severity: Severity = Field(..., description="high, medium or low")
    amount: Optional[float] = Field(None, description="Amount involved, if any")
    recommendation: str = Field("", description="Actionable advice")
    impact: Optional[str] = Field(None, description="Potential financial impact")
    suggested_actions: List[str] = Field(
        default_factory=list,
        alias="suggestedActions",
        description="Concrete follow-up actions"
    )

    @field_validator("title", "description", "recommendation", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("severity", mode="before")
    @classmethod
    def _normalise_severity(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> Any:
        if value is None or isinstance(value, (int, float)):
            return value
        try:
            return float(str(value).replace(",", ""))
        except ValueError:
            return None

    @field_validator("impact", mode="before")
    @classmethod
    def _coerce_impact(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("suggested_actions", mode="before")
    @classmethod
    def _coerce_actions(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        if isinstance(value, (list, tuple)):
            return [str(item) for item in value]
        raise ValueError("suggestedActions must be a string or a list of strings")

    class Config:
        populate_by_name = True


class Alert(BaseModel):
    """Persisted, user-actionable alert"""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique alert ID")
    business_id: str = Field(..., description="Owning business ID")
    title: str = Field(..., description="Short title, also the dedup key")
    description: str = Field(..., description="Detailed description")
    severity: Severity = Field(..., description="Alert severity")
    status: AlertStatus = Field(AlertStatus.NEW, description="Lifecycle state")
    amount: Optional[float] = Field(None, description="Amount involved")
    recommendation: str = Field("", description="Actionable advice")
    impact: Optional[str] = Field(None, description="Potential financial impact")
    suggested_actions: List[str] = Field(default_factory=list, description="Follow-up actions")
    user_notes: Optional[str] = Field(None, description="Free-text notes from the owner")
    date: datetime = Field(default_factory=utcnow, description="Detection date")
    created_at: datetime = Field(default_factory=utcnow, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=utcnow, description="Last update timestamp")

    @classmethod
    def from_draft(cls, business_id: str, draft: AlertDraft, now: datetime) -> "Alert":
        return cls(
            business_id=business_id,
            title=draft.title,
            description=draft.description,
            severity=draft.severity,
            status=AlertStatus.NEW,
            amount=draft.amount,
            recommendation=draft.recommendation,
            impact=draft.impact,
            suggested_actions=list(draft.suggested_actions),
            date=now,
            created_at=now,
            updated_at=now,
        )

    class Config:
        json_schema_extra = {
            "example": {
                "id": "a1b2c3",
                "business_id": "biz_001",
                "title": "Unusually large supplier payment",
                "description": "Rp5.000.000 paid to a supplier, 100x the usual amount",
                "severity": "high",
                "status": "new",
                "amount": 5000000,
                "recommendation": "Verify the invoice with the supplier",
                "impact": "Possible loss of Rp5.000.000",
                "suggested_actions": ["Call supplier", "Check invoice"]
            }
        }


class AlertUpdate(BaseModel):
    """User mutation of an alert: status and/or notes"""

    status: Optional[AlertStatus] = Field(None, description="in_progress or resolved")
    user_notes: Optional[str] = Field(None, alias="userNotes", description="Free-text notes")

    @field_validator("status")
    @classmethod
    def _only_forward_targets(cls, value: Optional[AlertStatus]) -> Optional[AlertStatus]:
        if value is not None and value not in (AlertStatus.IN_PROGRESS, AlertStatus.RESOLVED):
            raise ValueError("status must be 'in_progress' or 'resolved'")
        return value

    class Config:
        populate_by_name = True
