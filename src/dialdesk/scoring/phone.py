"""
Phone Number Classifier

Sorts a raw UK phone string into Mobile, Freephone, Landline or Unknown.
A mobile usually reaches the owner directly; freephone and switchboard
numbers usually reach a gatekeeper.
"""

import re
from dataclasses import dataclass
from typing import Any

from ..models.enums import PhoneKind


MOBILE_PATTERN = re.compile(r"^(\+44|0)7\d{9}$")
FREEPHONE_PREFIXES = ("0800", "0808")
LANDLINE_PREFIXES = ("01", "02")

_WHITESPACE = re.compile(r"\s+")

HINTS = {
    "absent": "No phone number available",
    PhoneKind.MOBILE: "Mobile primary -> likely owner-operator or decision maker",
    PhoneKind.FREEPHONE: "Freephone number -> may have gatekeepers or IVR system",
    PhoneKind.LANDLINE: "Landline -> likely office/shop, may have receptionist",
    PhoneKind.UNKNOWN: "Standard phone number",
}


@dataclass(frozen=True)
class PhoneAnalysis:
    """Result of classifying a phone number."""

    kind: PhoneKind
    hint: str
    has_number: bool = True

    @property
    def is_mobile(self) -> bool:
        return self.kind == PhoneKind.MOBILE

    @property
    def is_freephone(self) -> bool:
        return self.kind == PhoneKind.FREEPHONE

    @property
    def is_landline(self) -> bool:
        # A number that is neither mobile nor freephone is treated as a fixed line
        return self.has_number and self.kind in (PhoneKind.LANDLINE, PhoneKind.UNKNOWN)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "hint": self.hint,
            "is_mobile": self.is_mobile,
            "is_freephone": self.is_freephone,
            "is_landline": self.is_landline,
        }


def clean_phone(raw: Any) -> str:
    """Strip all whitespace. Anything that is not a string cleans to ''."""
    if not isinstance(raw, str):
        return ""
    return _WHITESPACE.sub("", raw)


def is_mobile(cleaned: str) -> bool:
    """UK mobile: +447/07 followed by nine digits, or anything starting 07."""
    return bool(MOBILE_PATTERN.match(cleaned)) or cleaned.startswith("07")


def is_freephone(cleaned: str) -> bool:
    return cleaned.startswith(FREEPHONE_PREFIXES)


def is_landline(cleaned: str) -> bool:
    return cleaned.startswith(LANDLINE_PREFIXES)


def classify_phone(raw: Any) -> PhoneAnalysis:
    """
    Classify a raw phone string.

    The mobile check runs first so a malformed number never lands in two
    categories. Never raises; junk input is Unknown.
    """
    cleaned = clean_phone(raw)
    if not cleaned:
        return PhoneAnalysis(kind=PhoneKind.UNKNOWN, hint=HINTS["absent"], has_number=False)

    # The prefix check reads the raw string, so "0 712" is not a mobile
    if MOBILE_PATTERN.match(cleaned) or raw.startswith("07"):
        kind = PhoneKind.MOBILE
    elif is_freephone(cleaned):
        kind = PhoneKind.FREEPHONE
    elif is_landline(cleaned):
        kind = PhoneKind.LANDLINE
    else:
        kind = PhoneKind.UNKNOWN

    return PhoneAnalysis(kind=kind, hint=HINTS[kind])
