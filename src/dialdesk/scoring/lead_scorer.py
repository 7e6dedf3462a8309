"""
Lead Scoring Algorithm

Scores a lead 0-100 for how worth ringing it is, from a fixed base plus
additive adjustments for each signal found in the lead's metadata.

Scoring Philosophy:
- Mobiles reach owners; freephone numbers and switchboards reach gatekeepers
- Well-reviewed, small, local businesses convert best
- Chains and franchises are a harder sell
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from . import signals
from ..models.enums import ScoreBand
from ..config import (
    CORPORATE_INDICATORS,
    SMALL_OPERATOR_INDICATORS,
    RECEPTIONIST_SIGNALS,
    EXTENDED_HOURS_INDICATORS,
    URBAN_POSTCODES,
)


@dataclass(frozen=True)
class ScoringConfig:
    """
    Weights, thresholds and keyword lists for lead scoring.

    Frozen so a scorer can be shared between callers; build a new one
    with dataclasses.replace() to tune it.
    """

    base_score: float = 50
    min_score: float = 0
    max_score: float = 100

    # Positive signals (add points)
    mobile_number_bonus: float = 15       # Mobile = likely owner/decision-maker
    high_rating_bonus: float = 10         # Rating >= 4.5 = quality business
    small_operator_bonus: float = 10      # Family/independent = SMB
    extended_hours_bonus: float = 10      # 24/7 = high demand
    urban_postcode_bonus: float = 5       # Dense area = higher value

    # Negative signals (subtract points)
    freephone_penalty: float = -15        # 0800 = call centre/gatekeeper
    large_chain_penalty: float = -10      # Franchise = harder sell
    receptionist_penalty: float = -10     # "Reception" on website = gatekeepers
    low_reviews_penalty: float = -5       # <10 reviews = new/inactive business

    # Thresholds
    high_rating_threshold: float = 4.5
    low_review_count_threshold: int = 10
    strong_review_count_threshold: int = 50

    # Band lower bounds (inclusive)
    call_first_threshold: int = 80
    high_potential_threshold: int = 60
    medium_threshold: int = 40

    # Keyword lists (UK specific, swap for other markets)
    corporate_indicators: frozenset[str] = CORPORATE_INDICATORS
    small_operator_indicators: frozenset[str] = SMALL_OPERATOR_INDICATORS
    receptionist_signals: frozenset[str] = RECEPTIONIST_SIGNALS
    extended_hours_indicators: frozenset[str] = EXTENDED_HOURS_INDICATORS
    urban_postcodes: frozenset[str] = URBAN_POSTCODES

    def __post_init__(self):
        """Validate the score range and band ordering."""
        if self.min_score > self.max_score:
            raise ValueError(
                f"min_score {self.min_score} must not exceed max_score {self.max_score}"
            )
        if not (
            self.call_first_threshold >= self.high_potential_threshold >= self.medium_threshold
        ):
            raise ValueError("Band thresholds must be in descending order")


DEFAULT_SCORING_CONFIG = ScoringConfig()


@dataclass
class ScoreResult:
    """Score, band and human-readable breakdown for one lead."""

    score: int
    band: ScoreBand
    positive: list[str] = field(default_factory=list)
    negative: list[str] = field(default_factory=list)

    @property
    def reasons(self) -> list[str]:
        """Positive reasons followed by negative reasons."""
        return [*self.positive, *self.negative]

    @property
    def breakdown(self) -> dict:
        return {"positive": list(self.positive), "negative": list(self.negative)}

    @property
    def explanation(self) -> str:
        """Multi-line rendering used for tooltips and logs."""
        lines = [f"Score: {self.score}"]
        lines.extend(f"  + {reason}" for reason in self.positive)
        lines.extend(f"  - {reason}" for reason in self.negative)
        if not self.positive and not self.negative:
            lines.append("  (No specific signals detected)")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        """Convert to the API response shape."""
        return {
            "score": self.score,
            "band": self.band.value,
            "reasons": self.reasons,
            "explanation": self.explanation,
            "breakdown": self.breakdown,
        }


# =============================================================================
# Field access
# =============================================================================

def read_field(lead: Any, name: str) -> Any:
    """Read a field from a Lead, a mapping or any object; absent is None."""
    if lead is None:
        return None
    if isinstance(lead, Mapping):
        return lead.get(name)
    return getattr(lead, name, None)


def as_number(value: Any) -> Optional[float]:
    """Numeric value of a field, or None for anything non-numeric."""
    if value is None or isinstance(value, bool):
        return None
    if not isinstance(value, (int, float, str)):
        return None
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, OverflowError):
        return None
    # NaN and infinity carry no signal
    if not math.isfinite(number):
        return None
    return number


def _fmt(number: float) -> str:
    return str(int(number)) if number.is_integer() else f"{number:g}"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def get_score_band(score: float, config: ScoringConfig = DEFAULT_SCORING_CONFIG) -> ScoreBand:
    """Map a score to its band. Each band includes its lower bound."""
    if score >= config.call_first_threshold:
        return ScoreBand.CALL_FIRST
    if score >= config.high_potential_threshold:
        return ScoreBand.HIGH_POTENTIAL
    if score >= config.medium_threshold:
        return ScoreBand.MEDIUM
    return ScoreBand.LOW_PRIORITY


class LeadScorer:
    """
    Scores leads on how likely a cold call is to reach a decision maker.

    Score range: 0 (worst) to 100 (best), base 50.
    Every signal is additive and independent, so evaluation order only
    affects the order of the reasons in the breakdown.
    """

    def __init__(self, config: Optional[ScoringConfig] = None):
        """
        Initialize the scorer.

        Args:
            config: Custom weights and keyword lists (defaults to DEFAULT_SCORING_CONFIG)
        """
        self.config = config or DEFAULT_SCORING_CONFIG

    def score_lead(self, lead: Any) -> ScoreResult:
        """
        Score a lead snapshot.

        Args:
            lead: A Lead, a dict of lead fields, or None

        Returns:
            ScoreResult. Never raises: absent or malformed fields are no signal.
        """
        cfg = self.config
        score = cfg.base_score
        positive: list[str] = []
        negative: list[str] = []

        # 1-2. Phone number
        phone = read_field(lead, "phone_number")
        if signals.is_mobile_number(phone):
            score += cfg.mobile_number_bonus
            positive.append("Mobile number detected: likely owner/decision-maker")
        if signals.is_freephone_number(phone):
            score += cfg.freephone_penalty
            negative.append("Freephone number: may have gatekeepers")

        # 3. Google rating
        rating = as_number(read_field(lead, "rating"))
        if rating is not None and rating >= cfg.high_rating_threshold:
            score += cfg.high_rating_bonus
            positive.append(f"High Google rating ({_fmt(rating)} stars)")

        # 4-5. Review count (mutually exclusive)
        total_ratings = as_number(read_field(lead, "total_ratings"))
        if total_ratings is not None and total_ratings < cfg.low_review_count_threshold:
            score += cfg.low_reviews_penalty
            negative.append(f"Low review count ({_fmt(total_ratings)} reviews)")
        elif total_ratings is not None and total_ratings >= cfg.strong_review_count_threshold:
            # Noted for the rep, not scored
            positive.append(f"Strong review count ({_fmt(total_ratings)} reviews)")

        # 6-7. Business name
        name = read_field(lead, "business_name")
        if signals.has_corporate_indicators(name, cfg.corporate_indicators):
            score += cfg.large_chain_penalty
            negative.append("Large chain or franchise detected")
        if signals.has_small_operator_indicators(name, cfg.small_operator_indicators):
            score += cfg.small_operator_bonus
            positive.append("Small/family business indicators")

        # 8. Location
        postcode = signals.extract_postcode(read_field(lead, "address"))
        if postcode and signals.is_urban_postcode(postcode, cfg.urban_postcodes):
            score += cfg.urban_postcode_bonus
            positive.append("Urban/dense location")

        # 9. Opening hours
        if signals.has_extended_hours(read_field(lead, "opening_hours"), cfg.extended_hours_indicators):
            score += cfg.extended_hours_bonus
            positive.append("Extended/24-hour availability")

        # 10. Website text
        if signals.has_receptionist_signals(read_field(lead, "website_text"), cfg.receptionist_signals):
            score += cfg.receptionist_penalty
            negative.append("Website mentions reception/call centre")

        score = max(cfg.min_score, min(cfg.max_score, score))
        final_score = _round_half_up(score)

        return ScoreResult(
            score=final_score,
            band=get_score_band(final_score, cfg),
            positive=positive,
            negative=negative,
        )

    def rank_leads(self, leads: Iterable[Any]) -> list[tuple[Any, ScoreResult]]:
        """
        Score leads and sort them best first.

        Args:
            leads: Leads to rank

        Returns:
            List of (lead, result) pairs, highest score first; ties keep input order
        """
        scored = [(lead, self.score_lead(lead)) for lead in leads]
        return sorted(scored, key=lambda pair: pair[1].score, reverse=True)

    def get_band_summary(self, leads: Iterable[Any]) -> dict:
        """
        Summary statistics for a batch of leads.

        Args:
            leads: Leads to summarise

        Returns:
            Dict with total, per-band counts, average and top score
        """
        results = [self.score_lead(lead) for lead in leads]
        bands = {band.value: 0 for band in ScoreBand}
        for result in results:
            bands[result.band.value] += 1

        if not results:
            return {"total": 0, "avg_score": 0.0, "top_score": 0, "bands": bands}

        scores = [r.score for r in results]
        return {
            "total": len(results),
            "avg_score": round(sum(scores) / len(scores), 1),
            "top_score": max(scores),
            "bands": bands,
        }


# =============================================================================
# Presentation helpers
# =============================================================================

BAND_CLASSES = {
    ScoreBand.CALL_FIRST: "score-band--call-first",
    ScoreBand.HIGH_POTENTIAL: "score-band--high",
    ScoreBand.MEDIUM: "score-band--medium",
    ScoreBand.LOW_PRIORITY: "score-band--low",
}


def get_score_band_class(band: Any) -> str:
    """CSS modifier class for a band label; '' for anything unrecognised."""
    try:
        return BAND_CLASSES[ScoreBand(band)]
    except ValueError:
        return ""


def get_score_color(score: float, config: ScoringConfig = DEFAULT_SCORING_CONFIG) -> str:
    """Hex colour for a score indicator."""
    if score >= config.call_first_threshold:
        return "#22c55e"  # Green
    if score >= config.high_potential_threshold:
        return "#3b82f6"  # Blue
    if score >= config.medium_threshold:
        return "#f59e0b"  # Amber
    return "#ef4444"  # Red


# =============================================================================
# Convenience Functions
# =============================================================================

# Global scorer instance
_scorer = LeadScorer()


def score_lead(lead: Any, config: Optional[ScoringConfig] = None) -> ScoreResult:
    """Score a lead with the default scorer, or a one-off config."""
    if config is None:
        return _scorer.score_lead(lead)
    return LeadScorer(config).score_lead(lead)
