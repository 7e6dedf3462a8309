"""
Lead Scoring Tests

The score decides who gets rung first. These tests pin the weights,
the band boundaries and the reason text shown to the caller.
"""

import dataclasses

import pytest

from dialdesk.models import Lead
from dialdesk.models.enums import ScoreBand
from dialdesk.scoring import (
    DEFAULT_SCORING_CONFIG,
    LeadScorer,
    ScoringConfig,
    get_score_band,
    get_score_band_class,
    get_score_color,
    score_lead,
)


class TestExampleLeads:
    """Worked examples agreed with the sales team."""

    def test_owner_operator_plumber(self):
        result = score_lead({
            "business_name": "John Smith Plumbing",
            "phone_number": "07777 123456",
            "rating": 4.8,
            "total_ratings": 127,
        })
        assert result.score == 75, f"Expected 75, got {result.score}: {result.reasons}"
        assert result.band == ScoreBand.HIGH_POTENTIAL
        assert result.positive == [
            "Mobile number detected: likely owner/decision-maker",
            "High Google rating (4.8 stars)",
            "Strong review count (127 reviews)",
        ]
        assert result.negative == []

    def test_corporate_call_centre(self):
        result = score_lead({
            "business_name": "FastFix Group Holdings PLC",
            "phone_number": "0800 123 4567",
            "rating": 3.2,
            "total_ratings": 892,
            "website_text": "Contact our reception team",
        })
        assert result.score == 15, f"Expected 15, got {result.score}: {result.reasons}"
        assert result.band == ScoreBand.LOW_PRIORITY
        assert result.negative == [
            "Freephone number: may have gatekeepers",
            "Large chain or franchise detected",
            "Website mentions reception/call centre",
        ]

    def test_family_electricians_open_all_hours(self):
        result = score_lead({
            "business_name": "Local Family Electricians",
            "phone_number": "07890 654321",
            "rating": 4.9,
            "total_ratings": 45,
            "opening_hours": "Open 24/7",
        })
        assert result.score == 95, f"Expected 95, got {result.score}: {result.reasons}"
        assert result.band == ScoreBand.CALL_FIRST
        assert "Extended/24-hour availability" in result.positive
        assert "Small/family business indicators" in result.positive

    def test_few_reviews_only(self):
        result = score_lead({"total_ratings": 8})
        assert result.score == 45
        assert result.band == ScoreBand.MEDIUM
        assert result.negative == ["Low review count (8 reviews)"]


class TestInvariants:

    def test_empty_lead_is_neutral(self):
        for lead in ({}, None, Lead()):
            result = score_lead(lead)
            assert result.score == 50, f"Empty lead {lead!r} should score 50"
            assert result.band == ScoreBand.MEDIUM
            assert result.positive == [] and result.negative == []

    def test_deterministic(self):
        lead = {
            "business_name": "Costa Coffee",
            "phone_number": "020 7946 0018",
            "address": "1 High St, London E1 6AN",
            "rating": 4.6,
        }
        first, second = score_lead(lead), score_lead(dict(lead))
        assert (first.score, first.band, first.breakdown) == (second.score, second.band, second.breakdown)

    def test_mobile_worth_exactly_fifteen_over_landline(self):
        base = {"business_name": "Leeds Plumbing", "address": "2 Park Row, Leeds LS1 5HD", "rating": 4.0}
        mobile = score_lead({**base, "phone_number": "07700 900123"})
        landline = score_lead({**base, "phone_number": "0113 496 0000"})
        assert mobile.score - landline.score == 15

    def test_scores_are_clamped(self):
        worst = score_lead({
            "business_name": "National Group",
            "phone_number": "0800 000 0000",
            "total_ratings": 0,
            "website_text": "switchboard",
        })
        assert worst.score >= 0

        generous = dataclasses.replace(DEFAULT_SCORING_CONFIG, mobile_number_bonus=200)
        best = score_lead({"phone_number": "07700 900123"}, config=generous)
        assert best.score == 100, "Scores must be capped at max_score"

    def test_malformed_fields_are_no_signal(self):
        result = score_lead({
            "phone_number": 7777123456,
            "rating": "not a number",
            "total_ratings": None,
            "business_name": ["Tesco"],
            "address": 42,
        })
        assert result.score == 50
        assert result.reasons == []

    @pytest.mark.parametrize("field", ["rating", "total_ratings"])
    @pytest.mark.parametrize("value", [10 ** 400, "1e400", float("inf"), float("nan")])
    def test_out_of_range_numbers_are_no_signal(self, field, value):
        result = score_lead({field: value})
        assert result.score == 50, f"{field}={value!r} should carry no signal"
        assert result.reasons == []

    def test_numeric_strings_count(self):
        result = score_lead({"rating": "4.7", "total_ratings": "3"})
        assert result.score == 55
        assert "High Google rating (4.7 stars)" in result.positive

    def test_rating_boundary(self):
        assert score_lead({"rating": 4.5}).score == 60
        assert score_lead({"rating": 4.49}).score == 50

    def test_review_boundaries(self):
        assert score_lead({"total_ratings": 10}).reasons == [], "10 reviews is neither low nor strong"
        assert score_lead({"total_ratings": 50}).positive == ["Strong review count (50 reviews)"]
        assert score_lead({"total_ratings": 50}).score == 50, "Strong reviews are noted, not scored"


class TestBands:

    @pytest.mark.parametrize("score,band", [
        (100, ScoreBand.CALL_FIRST),
        (80, ScoreBand.CALL_FIRST),
        (79, ScoreBand.HIGH_POTENTIAL),
        (60, ScoreBand.HIGH_POTENTIAL),
        (59, ScoreBand.MEDIUM),
        (40, ScoreBand.MEDIUM),
        (39, ScoreBand.LOW_PRIORITY),
        (0, ScoreBand.LOW_PRIORITY),
    ])
    def test_band_boundaries(self, score, band):
        assert get_score_band(score) == band, f"{score} should be {band.value}"

    def test_band_classes(self):
        assert get_score_band_class("Call first") == "score-band--call-first"
        assert get_score_band_class(ScoreBand.LOW_PRIORITY) == "score-band--low"
        assert get_score_band_class("Nonsense") == ""

    def test_colours(self):
        assert get_score_color(85) == "#22c55e"
        assert get_score_color(60) == "#3b82f6"
        assert get_score_color(45) == "#f59e0b"
        assert get_score_color(10) == "#ef4444"


class TestExplanation:

    def test_lists_every_reason_with_sign(self):
        result = score_lead({"phone_number": "0800 123 4567", "rating": 4.8})
        assert result.explanation == (
            "Score: 45\n"
            "  + High Google rating (4.8 stars)\n"
            "  - Freephone number: may have gatekeepers"
        )

    def test_no_signals(self):
        assert score_lead({}).explanation == "Score: 50\n  (No specific signals detected)"

    def test_to_dict(self):
        data = score_lead({"total_ratings": 8}).to_dict()
        assert data["score"] == 45
        assert data["band"] == "Medium"
        assert data["breakdown"] == {"positive": [], "negative": ["Low review count (8 reviews)"]}
        assert data["reasons"] == ["Low review count (8 reviews)"]


class TestConfig:

    def test_invalid_range_rejected(self):
        with pytest.raises(ValueError):
            ScoringConfig(min_score=100, max_score=0)

    def test_bands_must_descend(self):
        with pytest.raises(ValueError):
            ScoringConfig(call_first_threshold=50, high_potential_threshold=60)

    @pytest.mark.parametrize("bonus, expected", [(2.5, 53), (0.5, 51), (0.4, 50)])
    def test_fractional_scores_round_half_up(self, bonus, expected):
        config = dataclasses.replace(DEFAULT_SCORING_CONFIG, mobile_number_bonus=bonus)
        result = score_lead({"phone_number": "07700 900123"}, config=config)
        assert result.score == expected, f"50 + {bonus} should round to {expected}"

    def test_keyword_lists_are_swappable(self):
        config = dataclasses.replace(DEFAULT_SCORING_CONFIG, urban_postcodes=frozenset({"YO1"}))
        york = {"address": "1 Stonegate, York YO1 8AS"}
        assert score_lead(york).score == 50
        assert score_lead(york, config=config).score == 55


class TestScorerHelpers:

    def test_rank_leads_best_first_and_stable(self):
        leads = [
            {"business_name": "A", "total_ratings": 8},
            {"business_name": "B"},
            {"business_name": "C", "phone_number": "07700 900123"},
            {"business_name": "D"},
        ]
        ranked = LeadScorer().rank_leads(leads)
        assert [lead["business_name"] for lead, _ in ranked] == ["C", "B", "D", "A"]

    def test_band_summary(self):
        summary = LeadScorer().get_band_summary([
            {"phone_number": "07700 900123", "rating": 4.9, "opening_hours": "24/7"},
            {},
            {"phone_number": "0800 123 4567"},
        ])
        assert summary["total"] == 3
        assert summary["top_score"] == 85
        assert summary["bands"] == {
            "Call first": 1,
            "High potential": 0,
            "Medium": 1,
            "Low priority": 1,
        }
        assert summary["avg_score"] == pytest.approx((85 + 50 + 35) / 3, abs=0.05)

    def test_band_summary_empty(self):
        assert LeadScorer().get_band_summary([])["total"] == 0
