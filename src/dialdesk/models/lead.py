"""Lead model for businesses scraped from the places provider."""

import math
from datetime import datetime
from typing import Any, Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field, field_validator, computed_field

from .enums import LeadStatus


class Lead(BaseModel):
    """
    A prospective business contact.

    Every field the scoring engine reads is optional; a lead scraped with
    nothing but a name and phone number is still a valid lead.
    """

    model_config = ConfigDict(use_enum_values=True)

    # Identifiers
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    place_id: Optional[str] = None

    # Business snapshot
    business_name: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    website: Optional[str] = None
    rating: Optional[float] = None
    total_ratings: Optional[int] = None
    category: Optional[str] = None
    business_status: Optional[str] = None
    google_maps_url: Optional[str] = None
    opening_hours: Optional[str] = None
    website_text: Optional[str] = None

    # Pipeline
    source_query: Optional[str] = None
    campaign_id: Optional[str] = None
    status: LeadStatus = LeadStatus.NEW
    notes: Optional[str] = None
    last_called_at: Optional[datetime] = None

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("rating", mode="before")
    @classmethod
    def coerce_rating(cls, v: Any) -> Optional[float]:
        # Bad provider data is "no signal", not a validation failure
        if v is None or v == "" or isinstance(v, bool):
            return None
        try:
            rating = float(v)
        except (TypeError, ValueError, OverflowError):
            return None
        return rating if math.isfinite(rating) else None

    @field_validator("total_ratings", mode="before")
    @classmethod
    def coerce_total_ratings(cls, v: Any) -> Optional[int]:
        if v is None or v == "" or isinstance(v, bool):
            return None
        try:
            count = int(float(v))
        except (TypeError, ValueError, OverflowError):
            return None
        return count if count >= 0 else None

    @computed_field
    @property
    def never_dialled(self) -> bool:
        """A lead with no last_called_at has never been rung."""
        return self.last_called_at is None

    def mark_called(self, called_at: Optional[datetime] = None) -> None:
        """Stamp the last-contacted time. Applies to every call outcome."""
        now = called_at or datetime.utcnow()
        self.last_called_at = now
        self.updated_at = now

    def apply_status(self, status: Optional[LeadStatus], at: Optional[datetime] = None) -> bool:
        """Move the lead to a new pipeline stage. Returns False when there is none."""
        if status is None:
            return False
        self.status = LeadStatus(status).value
        self.updated_at = at or datetime.utcnow()
        return True

    @classmethod
    def from_place(
        cls,
        place: dict,
        source_query: Optional[str] = None,
        campaign_id: Optional[str] = None,
    ) -> "Lead":
        """Build a new lead from a formatted places result."""
        return cls(
            place_id=place.get("place_id"),
            business_name=place.get("business_name"),
            phone_number=place.get("phone_number"),
            email=place.get("email"),
            address=place.get("address"),
            website=place.get("website"),
            rating=place.get("rating"),
            total_ratings=place.get("total_ratings"),
            category=place.get("category"),
            business_status=place.get("business_status"),
            google_maps_url=place.get("google_maps_url"),
            opening_hours=place.get("opening_hours"),
            source_query=source_query,
            campaign_id=campaign_id,
            status=LeadStatus.NEW,
        )
