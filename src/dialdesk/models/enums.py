"""Enumerations for the DialDesk calling CRM."""

from enum import Enum


class LeadStatus(str, Enum):
    """Position of a lead in the sales pipeline."""

    NEW = "new"
    CONTACTED = "contacted"
    CALLBACK = "callback"
    WANTS_CALLBACK = "wants_callback"
    SENT_NUMBER = "sent_number"
    RECEPTIONIST = "receptionist"
    NEED_CLOSING = "need_closing"
    CLOSED_WON = "closed_won"
    CLOSED_LOST = "closed_lost"
    NOT_INTERESTED = "not_interested"


class CallOutcome(str, Enum):
    """Recorded result of a single dial attempt."""

    NOT_YET = "not_yet"
    ANSWERED = "answered"
    VOICEMAIL = "voicemail"
    NO_ANSWER = "no_answer"
    BUSY = "busy"
    CALLBACK_SCHEDULED = "callback_scheduled"
    WANTS_CALLBACK = "wants_callback"
    SENT_NUMBER = "sent_number"
    RECEPTIONIST = "receptionist"
    NEED_CLOSING = "need_closing"
    CLOSED_WON = "closed_won"
    CLOSED_LOST = "closed_lost"
    NOT_INTERESTED = "not_interested"
    WRONG_NUMBER = "wrong_number"
    DO_NOT_CALL = "do_not_call"


class CampaignStatus(str, Enum):
    """Status of a calling campaign."""

    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


class PhoneKind(str, Enum):
    """Category of a raw phone number."""

    MOBILE = "Mobile"
    FREEPHONE = "Freephone"
    LANDLINE = "Landline"
    UNKNOWN = "Unknown"


class ScoreBand(str, Enum):
    """Coarse priority label derived from a lead score."""

    CALL_FIRST = "Call first"  # >= 80
    HIGH_POTENTIAL = "High potential"  # >= 60
    MEDIUM = "Medium"  # >= 40
    LOW_PRIORITY = "Low priority"
