"""Lead scoring for the DialDesk calling CRM."""

from .phone import PhoneAnalysis, classify_phone
from .lead_scorer import (
    DEFAULT_SCORING_CONFIG,
    LeadScorer,
    ScoreResult,
    ScoringConfig,
    get_score_band,
    get_score_band_class,
    get_score_color,
    score_lead,
)
from .insights import build_insights

__all__ = [
    "PhoneAnalysis",
    "classify_phone",
    "DEFAULT_SCORING_CONFIG",
    "LeadScorer",
    "ScoreResult",
    "ScoringConfig",
    "get_score_band",
    "get_score_band_class",
    "get_score_color",
    "score_lead",
    "build_insights",
]
