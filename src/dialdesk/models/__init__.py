"""Data models for the DialDesk calling CRM."""

from .enums import (
    LeadStatus,
    CallOutcome,
    CampaignStatus,
    PhoneKind,
    ScoreBand,
)
from .lead import Lead
from .campaign import Campaign
from .call_log import CallLog

__all__ = [
    # Enums
    "LeadStatus",
    "CallOutcome",
    "CampaignStatus",
    "PhoneKind",
    "ScoreBand",
    # Models
    "Lead",
    "Campaign",
    "CallLog",
]
