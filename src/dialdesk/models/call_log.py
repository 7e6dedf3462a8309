"""Call log model: one row per dial attempt."""

from datetime import datetime
from typing import Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field

from .enums import CallOutcome


class CallLog(BaseModel):
    """The recorded outcome of a single call to a lead."""

    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    lead_id: str = Field(..., min_length=1)
    campaign_id: Optional[str] = None
    call_outcome: CallOutcome
    notes: Optional[str] = None
    duration_seconds: Optional[int] = Field(default=None, ge=0)
    scheduled_callback: Optional[datetime] = None
    called_at: datetime = Field(default_factory=datetime.utcnow)

    # Denormalised lead fields for list views
    business_name: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
