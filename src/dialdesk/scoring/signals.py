"""
Signal extractors for lead scoring.

Each extractor is a pure predicate over one lead field. Missing or
non-string input is always "no match"; nothing here raises.
The keyword collections default to the UK lists in config and can be
swapped per call.
"""

import re
from typing import Any, Iterable, Optional

from . import phone as phone_rules
from ..config import (
    CORPORATE_INDICATORS,
    SMALL_OPERATOR_INDICATORS,
    RECEPTIONIST_SIGNALS,
    EXTENDED_HOURS_INDICATORS,
    URBAN_POSTCODES,
)


POSTCODE_PATTERN = re.compile(r"[A-Z]{1,2}\d{1,2}[A-Z]?\s*\d[A-Z]{2}", re.IGNORECASE)


def _lower_text(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.lower()


def _contains_any(text: str, keywords: Iterable[str]) -> bool:
    if not text:
        return False
    return any(keyword.lower() in text for keyword in keywords)


# =============================================================================
# Phone
# =============================================================================

def is_mobile_number(phone: Any) -> bool:
    """Check if a phone number is a UK mobile (07xxx / +447xxx)."""
    return phone_rules.is_mobile(phone_rules.clean_phone(phone))


def is_freephone_number(phone: Any) -> bool:
    """Check if a phone number is freephone (0800, 0808)."""
    return phone_rules.is_freephone(phone_rules.clean_phone(phone))


# =============================================================================
# Business Name
# =============================================================================

def has_corporate_indicators(name: Any, keywords: Iterable[str] = CORPORATE_INDICATORS) -> bool:
    """Business name mentions a chain, franchise or corporate structure."""
    return _contains_any(_lower_text(name), keywords)


def has_small_operator_indicators(
    name: Any,
    keywords: Iterable[str] = SMALL_OPERATOR_INDICATORS,
) -> bool:
    """Business name suggests a family or independent operator."""
    return _contains_any(_lower_text(name), keywords)


# =============================================================================
# Location
# =============================================================================

def extract_postcode(address: Any) -> Optional[str]:
    """
    Pull a UK postcode out of free-text address.

    Returns the postcode upper-cased with spaces removed, or None.
    """
    if not isinstance(address, str) or not address:
        return None
    match = POSTCODE_PATTERN.search(address)
    if not match:
        return None
    return re.sub(r"\s+", "", match.group(0)).upper()


def is_urban_postcode(postcode: Any, prefixes: Iterable[str] = URBAN_POSTCODES) -> bool:
    """Check the first 3 or first 2 characters against the urban outward codes."""
    if not isinstance(postcode, str) or not postcode:
        return False
    allowed = set(prefixes)
    code = postcode.upper()
    return code[:3] in allowed or code[:2] in allowed


# =============================================================================
# Availability / Gatekeepers
# =============================================================================

def has_extended_hours(hours: Any, keywords: Iterable[str] = EXTENDED_HOURS_INDICATORS) -> bool:
    """Opening hours text indicates 24-hour or all-day availability."""
    return _contains_any(_lower_text(hours), keywords)


def has_receptionist_signals(text: Any, keywords: Iterable[str] = RECEPTIONIST_SIGNALS) -> bool:
    """Website text mentions a reception desk, switchboard or call centre."""
    return _contains_any(_lower_text(text), keywords)
