"""
Call outcome to lead status mapping.

Logging a call has two separate effects on the lead:
1. last_called_at is always stamped, whatever the outcome;
2. the status moves only when the outcome maps to a new stage.
Low-signal outcomes (not_yet, answered, voicemail, no_answer, busy) leave
the stage where it is.
"""

from types import MappingProxyType
from typing import Optional, Union

from .models.enums import CallOutcome, LeadStatus


OUTCOME_STATUS_MAP = MappingProxyType({
    CallOutcome.NOT_YET: None,
    CallOutcome.ANSWERED: None,
    CallOutcome.VOICEMAIL: None,
    CallOutcome.NO_ANSWER: None,
    CallOutcome.BUSY: None,
    CallOutcome.CALLBACK_SCHEDULED: LeadStatus.CALLBACK,
    CallOutcome.WANTS_CALLBACK: LeadStatus.WANTS_CALLBACK,
    CallOutcome.SENT_NUMBER: LeadStatus.SENT_NUMBER,
    CallOutcome.RECEPTIONIST: LeadStatus.RECEPTIONIST,
    CallOutcome.NEED_CLOSING: LeadStatus.NEED_CLOSING,
    CallOutcome.CLOSED_WON: LeadStatus.CLOSED_WON,
    CallOutcome.CLOSED_LOST: LeadStatus.CLOSED_LOST,
    CallOutcome.NOT_INTERESTED: LeadStatus.NOT_INTERESTED,
    CallOutcome.WRONG_NUMBER: LeadStatus.NOT_INTERESTED,
    CallOutcome.DO_NOT_CALL: LeadStatus.NOT_INTERESTED,
})


def map_outcome_to_status(outcome: Union[CallOutcome, str, None]) -> Optional[LeadStatus]:
    """
    New lead status for a call outcome.

    Args:
        outcome: A CallOutcome or its string value

    Returns:
        The LeadStatus to move to, or None when the stage should not change
        (including for unrecognised outcomes)
    """
    try:
        return OUTCOME_STATUS_MAP[CallOutcome(outcome)]
    except (ValueError, TypeError):
        return None


def changes_status(outcome: Union[CallOutcome, str, None]) -> bool:
    """True when logging this outcome advances the lead's stage."""
    return map_outcome_to_status(outcome) is not None
