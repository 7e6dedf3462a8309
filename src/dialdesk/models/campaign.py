"""Campaign model for grouping leads into calling runs."""

from datetime import date, datetime
from typing import Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field

from .enums import CampaignStatus


class Campaign(BaseModel):
    """A named calling campaign with a daily dial target."""

    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    daily_dial_target: int = Field(default=100, ge=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: CampaignStatus = CampaignStatus.ACTIVE

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
