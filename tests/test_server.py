"""
API Tests

Routes are exercised through FastAPI's TestClient with the repository,
places client and broadcaster swapped for test doubles.
"""

from datetime import datetime, timedelta

import httpx
import pytest
from fastapi.testclient import TestClient

from dialdesk.db import get_repository
from dialdesk.hunters import PlacesHunter
from dialdesk.models import CallLog, Campaign
from dialdesk.realtime import Broadcaster, get_broadcaster
from dialdesk.server import app, get_hunter


PLACES = [
    {"id": "p1", "displayName": {"text": "Leeds Plumbing"}, "nationalPhoneNumber": "07700 900123",
     "rating": 4.8, "userRatingCount": 127},
    {"id": "p2", "displayName": {"text": "No Phone Ltd"}},
]


def _provider(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"places": PLACES})


@pytest.fixture
def broadcaster():
    return Broadcaster()


@pytest.fixture
def client(repo, broadcaster):
    app.dependency_overrides[get_repository] = lambda: repo
    app.dependency_overrides[get_broadcaster] = lambda: broadcaster
    app.dependency_overrides[get_hunter] = lambda: PlacesHunter(
        api_key="test-key", transport=httpx.MockTransport(_provider)
    )
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


class TestSystem:

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["places_api"] in {"configured", "missing"}

    def test_cors_allows_local_front_end(self, client):
        response = client.get("/api/health", headers={"Origin": "http://localhost:5173"})
        assert response.headers.get("access-control-allow-origin") == "http://localhost:5173"


class TestPlaces:

    def test_search_requires_query(self, client):
        assert client.get("/api/places/search").status_code == 400

    def test_search_returns_raw_places(self, client):
        response = client.get("/api/places/search", params={"query": "plumbers in Leeds"})
        assert response.status_code == 200
        assert [p["id"] for p in response.json()] == ["p1", "p2"]

    def test_scrape_requires_query(self, client):
        assert client.post("/api/places/scrape", json={}).status_code == 400

    def test_scrape_saves_callable_places(self, client, repo):
        response = client.post("/api/places/scrape", json={"query": "plumbers in Leeds", "maxResults": 5})
        assert response.status_code == 200
        body = response.json()
        assert body["scraped"] == 2
        assert body["withPhone"] == 1
        assert body["saved"] == 1
        assert repo.list_leads()[1] == 1

    def test_provider_failure_is_500(self, client):
        app.dependency_overrides[get_hunter] = lambda: PlacesHunter(
            api_key="test-key",
            transport=httpx.MockTransport(
                lambda request: httpx.Response(429, json={"error": {"message": "Quota exceeded"}})
            ),
        )
        response = client.post("/api/places/scrape", json={"query": "plumbers"})
        assert response.status_code == 500
        assert response.json()["detail"] == "Scrape failed: Quota exceeded"


class TestLeads:

    def test_list_includes_scores(self, client, repo, make_lead):
        repo.save_lead(make_lead(phone_number="07700 900123", rating=4.8, total_ratings=127))
        body = client.get("/api/leads").json()
        assert body["total"] == 1
        assert body["leads"][0]["score"]["score"] == 75
        assert body["leads"][0]["score"]["band"] == "High potential"

    def test_list_rejects_unknown_status(self, client):
        assert client.get("/api/leads", params={"status": "hot"}).status_code == 422

    def test_get_lead_with_history(self, client, repo, make_lead):
        lead = repo.save_lead(make_lead())
        repo.log_call(CallLog(lead_id=lead.id, call_outcome="busy"))

        body = client.get(f"/api/leads/{lead.id}").json()
        assert body["id"] == lead.id
        assert len(body["call_logs"]) == 1
        assert "score" in body and "insights" in body

    def test_missing_lead_is_404(self, client):
        assert client.get("/api/leads/missing").status_code == 404
        assert client.get("/api/leads/missing/score").status_code == 404
        assert client.put("/api/leads/missing", json={"notes": "x"}).status_code == 404
        assert client.delete("/api/leads/missing").status_code == 404

    def test_stored_lead_score(self, client, repo, make_lead):
        lead = repo.save_lead(make_lead(total_ratings=8))
        assert client.get(f"/api/leads/{lead.id}/score").json()["score"] == 45

    def test_score_ad_hoc_payload(self, client):
        response = client.post("/api/leads/score", json={
            "business_name": "Local Family Electricians",
            "phone_number": "07890 654321",
            "rating": 4.9,
            "total_ratings": 45,
            "opening_hours": "Open 24/7",
        })
        assert response.json()["score"] == 95
        assert response.json()["band"] == "Call first"

    def test_score_never_fails_on_huge_numbers(self, client):
        response = client.post("/api/leads/score", json={"total_ratings": 10 ** 400, "rating": 10 ** 400})
        assert response.status_code == 200
        assert response.json()["score"] == 50

    def test_update_of_scored_fields_moves_score(self, client, repo, make_lead):
        lead = repo.save_lead(make_lead())
        assert client.get(f"/api/leads/{lead.id}/score").json()["score"] == 50

        response = client.put(f"/api/leads/{lead.id}", json={"opening_hours": "Open 24/7", "rating": 4.9})
        assert response.status_code == 200
        assert response.json()["opening_hours"] == "Open 24/7"
        assert response.json()["score"]["score"] == 70
        assert repo.get_lead(lead.id).rating == 4.9

    def test_null_status_rejected(self, client, repo, make_lead):
        lead = repo.save_lead(make_lead())
        response = client.put(f"/api/leads/{lead.id}", json={"status": None})
        assert response.status_code == 422
        assert repo.get_lead(lead.id).status == "new"

    def test_null_optional_field_clears_it(self, client, repo, make_lead):
        lead = repo.save_lead(make_lead(notes="Ring after 2"))
        response = client.put(f"/api/leads/{lead.id}", json={"notes": None})
        assert response.status_code == 200
        assert repo.get_lead(lead.id).notes is None

    def test_update_broadcasts(self, client, repo, broadcaster, make_lead):
        lead = repo.save_lead(make_lead())
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"event": "subscribe:leads"})
            assert ws.receive_json() == {"event": "subscribed", "data": {"room": "leads"}}

            response = client.put(f"/api/leads/{lead.id}", json={"status": "sent_number", "notes": "Sent"})
            assert response.status_code == 200
            assert response.json()["status"] == "sent_number"

            message = ws.receive_json()
            assert message["event"] == "lead:updated"
            assert message["data"]["id"] == lead.id

    def test_delete(self, client, repo, make_lead):
        lead = repo.save_lead(make_lead())
        assert client.delete(f"/api/leads/{lead.id}").json() == {"message": "Lead deleted successfully"}
        assert repo.get_lead(lead.id) is None

    def test_stats_overview(self, client, repo, make_lead):
        repo.save_lead(make_lead())
        stats = client.get("/api/leads/stats/overview").json()
        assert stats["total"] == 1
        assert stats["new"] == 1


class TestCampaigns:

    def test_name_required(self, client):
        assert client.post("/api/campaigns", json={"description": "x"}).status_code == 400

    def test_create_defaults(self, client):
        response = client.post("/api/campaigns", json={"name": "Leeds trades"})
        assert response.status_code == 201
        body = response.json()
        assert body["daily_dial_target"] == 100
        assert body["status"] == "active"

    def test_get_one_adds_counts(self, client, repo, make_lead):
        campaign = repo.save_campaign(Campaign(name="Otley"))
        repo.save_lead(make_lead(campaign_id=campaign.id))
        body = client.get(f"/api/campaigns/{campaign.id}").json()
        assert body["total_leads"] == 1
        assert body["todays_calls"] == 0

    def test_update_and_delete(self, client, repo):
        campaign = repo.save_campaign(Campaign(name="Otley"))
        assert client.put(f"/api/campaigns/{campaign.id}", json={"status": "paused"}).json()["status"] == "paused"
        assert client.delete(f"/api/campaigns/{campaign.id}").status_code == 200
        assert client.get(f"/api/campaigns/{campaign.id}").status_code == 404

    @pytest.mark.parametrize("field", ["name", "daily_dial_target", "status"])
    def test_null_required_field_rejected(self, client, repo, field):
        campaign = repo.save_campaign(Campaign(name="Otley"))
        response = client.put(f"/api/campaigns/{campaign.id}", json={field: None})
        assert response.status_code == 422
        assert repo.get_campaign(campaign.id).name == "Otley"

    def test_list(self, client, repo):
        repo.save_campaign(Campaign(name="Otley"))
        assert [c["name"] for c in client.get("/api/campaigns").json()] == ["Otley"]


class TestCallLogs:

    def test_requires_lead_and_outcome(self, client):
        assert client.post("/api/call-logs", json={"lead_id": "x"}).status_code == 400
        assert client.post("/api/call-logs", json={"call_outcome": "busy"}).status_code == 400

    def test_unknown_lead_is_404(self, client):
        assert client.post("/api/call-logs", json={"lead_id": "missing", "call_outcome": "busy"}).status_code == 404

    def test_log_call_updates_lead(self, client, repo, make_lead):
        lead = repo.save_lead(make_lead(status="callback"))

        response = client.post("/api/call-logs", json={"lead_id": lead.id, "call_outcome": "no_answer"})
        assert response.status_code == 201
        assert response.json()["called_at"]

        stored = repo.get_lead(lead.id)
        assert stored.last_called_at is not None, "Every call stamps last_called_at"
        assert stored.status == "callback", "no_answer must not move the stage"

        client.post("/api/call-logs", json={"lead_id": lead.id, "call_outcome": "closed_won"})
        assert repo.get_lead(lead.id).status == "closed_won"

    def test_lead_update_is_broadcast_before_call_log(self, client, repo, broadcaster, make_lead):
        lead = repo.save_lead(make_lead())
        events = []

        class Listener:
            async def send_json(self, data):
                events.append(data["event"])

        listener = Listener()
        broadcaster.subscribe(listener, "leads")
        broadcaster.subscribe(listener, "call-logs")

        client.post("/api/call-logs", json={"lead_id": lead.id, "call_outcome": "answered"})
        assert events == ["lead:updated", "callLog:created"]

    def test_list_and_stats(self, client, repo, make_lead):
        lead = repo.save_lead(make_lead())
        repo.log_call(CallLog(lead_id=lead.id, call_outcome="busy"))
        repo.log_call(CallLog(lead_id=lead.id, call_outcome="voicemail"))

        body = client.get("/api/call-logs", params={"lead_id": lead.id}).json()
        assert body["total"] == 2
        assert body["callLogs"][0]["business_name"] == lead.business_name

        stats = client.get("/api/call-logs/stats/set").json()
        assert stats["total_calls"] == 1
        assert stats["outcomes"]["busy"] == 1

    def test_filter_by_date(self, client, repo, make_lead):
        lead = repo.save_lead(make_lead())
        repo.log_call(CallLog(lead_id=lead.id, call_outcome="busy"), now=datetime(2026, 3, 2, 10, 0))
        repo.log_call(CallLog(lead_id=lead.id, call_outcome="busy"), now=datetime(2026, 3, 3, 10, 0))
        body = client.get("/api/call-logs", params={"date": "2026-03-02"}).json()
        assert body["total"] == 1

    def test_due_callbacks(self, client, repo, make_lead):
        lead = repo.save_lead(make_lead())
        repo.log_call(CallLog(
            lead_id=lead.id,
            call_outcome="callback_scheduled",
            scheduled_callback=datetime.utcnow() - timedelta(minutes=5),
        ))
        repo.log_call(CallLog(
            lead_id=lead.id,
            call_outcome="callback_scheduled",
            scheduled_callback=datetime.utcnow() + timedelta(days=1),
        ))
        assert len(client.get("/api/call-logs/callbacks").json()) == 1

    def test_delete(self, client, repo, make_lead):
        lead = repo.save_lead(make_lead())
        call_log, _ = repo.log_call(CallLog(lead_id=lead.id, call_outcome="busy"))
        assert client.delete(f"/api/call-logs/{call_log.id}").status_code == 200
        assert client.delete(f"/api/call-logs/{call_log.id}").status_code == 404


class TestRealtime:

    def test_non_json_frame_is_ignored(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_text("not json")
            ws.send_json({"event": "subscribe:campaigns"})
            assert ws.receive_json() == {"event": "subscribed", "data": {"room": "campaigns"}}
