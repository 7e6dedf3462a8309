"""
Lead insights for the call screen.

Badges, "why this lead" reasons, a call script and call-timing windows
shown beside a lead. Like the scorer, these read whatever fields are
present and never raise on missing data.
"""

import re
from dataclasses import dataclass
from typing import Any, Optional

from .lead_scorer import as_number, read_field
from .phone import PhoneAnalysis, classify_phone
from ..models.enums import LeadStatus


MAX_BADGES = 3
MAX_REASONS = 4
MIN_REASONS = 2


@dataclass(frozen=True)
class InsightBadge:
    """A short label rendered as a coloured chip."""

    type: str  # positive, neutral, warning
    label: str
    tooltip: str

    def to_dict(self) -> dict:
        return {"type": self.type, "label": self.label, "tooltip": self.tooltip}


def format_category(category: Any) -> Optional[str]:
    """'plumber_service' -> 'Plumber Service'."""
    if not isinstance(category, str) or not category:
        return None
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), category.replace("_", " "))


def extract_town(address: Any) -> str:
    """Best guess at the town: the part before the postcode, if it has no digits."""
    if not isinstance(address, str) or not address:
        return "Unknown"
    parts = address.split(",")
    if len(parts) >= 2:
        town = parts[-2].strip()
        if town and not re.search(r"\d", town):
            return town
    return parts[0].strip() or "Unknown"


def insight_badges(lead: Any, phone: Optional[PhoneAnalysis] = None) -> list[InsightBadge]:
    """Up to three badges, in priority order."""
    phone = phone or classify_phone(read_field(lead, "phone_number"))
    rating = as_number(read_field(lead, "rating"))
    total_ratings = as_number(read_field(lead, "total_ratings"))
    badges = []

    if phone.is_mobile:
        badges.append(InsightBadge(
            "positive",
            "Owner-operator likely",
            "Mobile number suggests direct access to decision maker",
        ))

    if rating is not None and rating >= 4.5 and total_ratings is not None and total_ratings >= 50:
        badges.append(InsightBadge(
            "positive",
            "High demand business",
            "Strong reviews indicate healthy customer flow",
        ))

    if read_field(lead, "status") == LeadStatus.NEW:
        badges.append(InsightBadge("neutral", "Fresh lead", "Never contacted before"))

    if phone.is_landline and not phone.is_freephone:
        badges.append(InsightBadge(
            "warning",
            "High missed-call risk",
            "Landline may go unanswered during busy hours",
        ))

    if total_ratings and total_ratings < 20:
        badges.append(InsightBadge(
            "positive",
            "Growth opportunity",
            "Low review count suggests room for growth",
        ))

    return badges[:MAX_BADGES]


def selection_reasons(lead: Any, phone: Optional[PhoneAnalysis] = None) -> list[str]:
    """Why this lead made the list. At most four sentences, topped up with a generic one when short."""
    phone = phone or classify_phone(read_field(lead, "phone_number"))
    rating = as_number(read_field(lead, "rating"))
    total_ratings = as_number(read_field(lead, "total_ratings"))
    reasons = []

    if phone.is_mobile:
        reasons.append("Mobile number is primary contact: direct line to decision maker")

    if rating is not None and rating >= 4.0:
        reasons.append(
            f"Strong Google rating ({rating:g} stars) suggests quality service and stable business"
        )

    if total_ratings is not None and total_ratings >= 30:
        reasons.append("High review count indicates strong inbound demand")

    if not read_field(lead, "website"):
        reasons.append("No website listed: may benefit from digital presence solutions")

    if phone.is_landline and not phone.is_freephone:
        reasons.append("Local landline suggests established local business")

    category = format_category(read_field(lead, "category"))
    if category:
        reasons.append(f"Active in {category} sector: matches your target market")

    if len(reasons) < MIN_REASONS:
        reasons.append("Identified as potential B2B customer based on business profile")

    return reasons[:MAX_REASONS]


def call_timing(category: Any) -> dict:
    """Recommended and avoid windows for ringing a business of this category."""
    text = category.lower() if isinstance(category, str) else ""

    # Trades: catch them before, between and after jobs
    recommended = ["8:00 - 9:00 AM", "12:00 - 1:00 PM", "5:00 - 6:00 PM"]
    avoid = ["9:00 - 11:00 AM", "2:00 - 4:00 PM"]

    if any(word in text for word in ("restaurant", "cafe", "bar")):
        recommended = ["10:00 - 11:00 AM", "2:00 - 4:00 PM"]
        avoid = ["12:00 - 2:00 PM", "6:00 - 9:00 PM"]

    if any(word in text for word in ("accounting", "lawyer", "office")):
        recommended = ["10:00 - 12:00 PM", "2:00 - 4:00 PM"]
        avoid = ["8:00 - 9:30 AM", "4:30 - 6:00 PM"]

    return {"recommended": recommended, "avoid": avoid}


PAIN_POINTS = (
    "Missing calls while busy on jobs",
    "Spending too much time on admin",
    "Difficulty managing customer bookings",
)

OBJECTIONS = (
    "\"I'm too busy right now\" -> Offer a callback time",
    "\"We're already sorted\" -> Ask what they currently use",
    "\"How much is it?\" -> Focus on ROI first",
)


def call_strategy(lead: Any, phone: Optional[PhoneAnalysis] = None) -> dict:
    """
    Opening line, pain points and objection handling for the caller.

    A mobile number gets the owner-directed opener.
    """
    phone = phone or classify_phone(read_field(lead, "phone_number"))
    name = read_field(lead, "business_name")
    business_name = name if isinstance(name, str) and name else "there"
    category = format_category(read_field(lead, "category")) or "your business"

    if phone.is_mobile:
        opening_line = (
            f"Hi, am I speaking with the owner of {business_name}? Perfect, I'll be brief. "
            f"We've helped other {category} businesses in your area and I wanted to see "
            "if it's worth a quick chat."
        )
    else:
        opening_line = (
            f"Hi, is this {business_name}? Great! I'm calling because we help {category} "
            "businesses in your area save time on [specific pain point]..."
        )

    return {
        "opening_line": opening_line,
        "pain_points": list(PAIN_POINTS),
        "objections": list(OBJECTIONS),
    }


def build_insights(lead: Any) -> dict:
    """Everything the insight panel shows for one lead."""
    phone = classify_phone(read_field(lead, "phone_number"))
    return {
        "phone": phone.to_dict(),
        "badges": [badge.to_dict() for badge in insight_badges(lead, phone)],
        "selection_reasons": selection_reasons(lead, phone),
        "call_strategy": call_strategy(lead, phone),
        "call_timing": call_timing(read_field(lead, "category")),
        "town": extract_town(read_field(lead, "address")),
    }
