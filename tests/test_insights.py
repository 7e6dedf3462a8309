"""Call-screen insight tests."""

from dialdesk.models import Lead
from dialdesk.scoring.insights import (
    build_insights,
    call_strategy,
    call_timing,
    extract_town,
    format_category,
    insight_badges,
    selection_reasons,
)


class TestBadges:

    def test_strong_mobile_lead(self):
        lead = {"phone_number": "07700 900123", "rating": 4.8, "total_ratings": 120, "status": "new"}
        labels = [badge.label for badge in insight_badges(lead)]
        assert labels == ["Owner-operator likely", "High demand business", "Fresh lead"]

    def test_never_more_than_three(self):
        lead = Lead(phone_number="07700 900123", rating=4.9, total_ratings=60)
        assert len(insight_badges(lead)) <= 3

    def test_landline_with_few_reviews(self):
        lead = {"phone_number": "0113 496 0000", "total_ratings": 5, "status": "contacted"}
        badges = insight_badges(lead)
        assert [b.label for b in badges] == ["High missed-call risk", "Growth opportunity"]
        assert badges[0].type == "warning"

    def test_freephone_is_not_a_missed_call_risk(self):
        badges = insight_badges({"phone_number": "0800 123 4567"})
        assert all(b.label != "High missed-call risk" for b in badges)


class TestSelectionReasons:

    def test_generic_reason_when_nothing_stands_out(self):
        reasons = selection_reasons({"website": "https://example.co.uk"})
        assert reasons == ["Identified as potential B2B customer based on business profile"]

    def test_empty_lead_gets_two_reasons(self):
        reasons = selection_reasons({})
        assert reasons == [
            "No website listed: may benefit from digital presence solutions",
            "Identified as potential B2B customer based on business profile",
        ]

    def test_capped_at_four(self):
        lead = {
            "phone_number": "07700 900123",
            "rating": 4.6,
            "total_ratings": 80,
            "category": "electrician",
        }
        reasons = selection_reasons(lead)
        assert len(reasons) == 4
        assert reasons[0].startswith("Mobile number is primary contact")
        assert "Strong Google rating (4.6 stars) suggests quality service and stable business" in reasons


class TestFormatting:

    def test_format_category(self):
        assert format_category("general_contractor") == "General Contractor"
        assert format_category(None) is None

    def test_extract_town(self):
        assert extract_town("12 High St, Leeds, LS1 4DY") == "Leeds"
        assert extract_town("12 High St, Leeds LS1 4DY, UK") == "12 High St"
        assert extract_town(None) == "Unknown"

    def test_call_timing(self):
        assert call_timing("restaurant")["avoid"] == ["12:00 - 2:00 PM", "6:00 - 9:00 PM"]
        assert call_timing("accounting")["recommended"] == ["10:00 - 12:00 PM", "2:00 - 4:00 PM"]
        assert call_timing(None)["recommended"][0] == "8:00 - 9:00 AM"


class TestCallStrategy:

    def test_mobile_asks_for_the_owner(self):
        strategy = call_strategy({
            "business_name": "Otley Roofing",
            "phone_number": "07700 900123",
            "category": "roofing_contractor",
        })
        assert strategy["opening_line"].startswith("Hi, am I speaking with the owner of Otley Roofing?")
        assert "other Roofing Contractor businesses" in strategy["opening_line"]

    def test_landline_opener(self):
        strategy = call_strategy({"business_name": "Otley Roofing", "phone_number": "01943 111111"})
        assert strategy["opening_line"].startswith("Hi, is this Otley Roofing?")
        assert "we help your business businesses" in strategy["opening_line"]

    def test_empty_lead(self):
        strategy = call_strategy(None)
        assert strategy["opening_line"].startswith("Hi, is this there?")
        assert len(strategy["pain_points"]) == 3
        assert strategy["objections"][0] == "\"I'm too busy right now\" -> Offer a callback time"


class TestBuildInsights:

    def test_shape(self):
        insights = build_insights(Lead(
            business_name="Smith & Sons",
            phone_number="07700 900123",
            address="4 Kirkgate, Otley, LS21 3HJ",
            category="plumber",
        ))
        assert set(insights) == {"phone", "badges", "selection_reasons", "call_strategy", "call_timing", "town"}
        assert insights["phone"]["kind"] == "Mobile"
        assert insights["town"] == "Otley"
        assert insights["badges"][0]["label"] == "Owner-operator likely"
