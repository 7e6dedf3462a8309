"""
DialDesk FastAPI Server

REST API and realtime socket behind the calling desk front end.

USAGE:
    Local: dialdesk serve (runs on http://localhost:3001)
    Docs: http://localhost:3001/docs (Swagger UI)
    Realtime: ws://localhost:3001/ws, then send {"event": "subscribe:leads"}
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, Optional

from fastapi import (
    Body,
    Depends,
    FastAPI,
    HTTPException,
    Query,
    WebSocket,
    WebSocketDisconnect,
)
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from .agents import HunterAgent
from .config import settings
from .db import Repository, get_repository
from .hunters import BaseHunter, PlacesAPIError, PlacesHunter
from .logging_config import configure_logging
from .models import CallLog, Campaign, Lead
from .models.enums import CallOutcome, CampaignStatus, LeadStatus
from .realtime import Broadcaster, get_broadcaster
from .scoring import build_insights, score_lead

logger = logging.getLogger(__name__)


# =============================================================================
# API Models (Request/Response Schemas)
# =============================================================================

class ScrapeRequest(BaseModel):
    """Request to scrape a places search into leads"""
    model_config = ConfigDict(populate_by_name=True)

    query: Optional[str] = Field(default=None, description="Free-text search, e.g. 'plumbers in Leeds'")
    max_results: int = Field(default=20, ge=1, le=20, alias="maxResults")
    campaign_id: Optional[str] = Field(default=None, alias="campaignId")


class LeadUpdate(BaseModel):
    """Partial update of a lead. Omitted fields are left alone."""
    business_name: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    website: Optional[str] = None
    category: Optional[str] = None
    rating: Optional[float] = None
    total_ratings: Optional[int] = None
    opening_hours: Optional[str] = None
    website_text: Optional[str] = None
    campaign_id: Optional[str] = None
    status: Optional[LeadStatus] = None
    notes: Optional[str] = None
    last_called_at: Optional[datetime] = None

    @field_validator("status")
    @classmethod
    def status_not_null(cls, v: Optional[LeadStatus]) -> LeadStatus:
        if v is None:
            raise ValueError("status cannot be null")
        return v


class CampaignCreate(BaseModel):
    """Request to create a campaign"""
    name: Optional[str] = None
    description: Optional[str] = None
    daily_dial_target: int = Field(default=100, ge=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class CampaignUpdate(BaseModel):
    """Partial update of a campaign"""
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    daily_dial_target: Optional[int] = Field(default=None, ge=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[CampaignStatus] = None

    @field_validator("name", "daily_dial_target", "status")
    @classmethod
    def not_null(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class CallLogCreate(BaseModel):
    """Request to log a call"""
    lead_id: Optional[str] = None
    campaign_id: Optional[str] = None
    call_outcome: Optional[CallOutcome] = None
    notes: Optional[str] = None
    duration_seconds: Optional[int] = Field(default=None, ge=0)
    scheduled_callback: Optional[datetime] = None


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    timestamp: str
    places_api: str


class MessageResponse(BaseModel):
    message: str


# =============================================================================
# Dependencies
# =============================================================================

def get_hunter() -> BaseHunter:
    """Business source used by scrape and search routes."""
    return PlacesHunter()


def _lead_with_score(lead: Lead) -> Dict[str, Any]:
    data = lead.model_dump(mode="json")
    data["score"] = score_lead(lead).to_dict()
    return data


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="DialDesk API",
    description=(
        "Outbound calling CRM API\n\n"
        "- Scrape local businesses into leads\n"
        "- Score and prioritise leads for the dialler\n"
        "- Log calls and move leads through the pipeline\n"
        "- Realtime updates over /ws"
    ),
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)


# =============================================================================
# Health & Status Endpoints
# =============================================================================

@app.get("/api/health", response_model=HealthResponse, tags=["System"])
async def health_check():
    """Health check endpoint for monitoring and load balancers."""
    return HealthResponse(
        status="ok",
        version=settings.APP_VERSION,
        timestamp=datetime.utcnow().isoformat(),
        places_api="configured" if settings.validate_places_key() else "missing",
    )


# =============================================================================
# Places Endpoints
# =============================================================================

@app.get("/api/places/search", tags=["Places"])
async def search_places(
    query: Optional[str] = Query(default=None),
    hunter: BaseHunter = Depends(get_hunter),
):
    """Search the places provider without saving anything."""
    if not query:
        raise HTTPException(status_code=400, detail="Query parameter is required")

    try:
        return await hunter.search_places(query)
    except PlacesAPIError as e:
        logger.error("Places search failed: %s", e.message)
        raise HTTPException(status_code=500, detail=f"Places search failed: {e.message}")


@app.post("/api/places/scrape", tags=["Places"])
async def scrape_places(
    request: ScrapeRequest,
    repo: Repository = Depends(get_repository),
    hunter: BaseHunter = Depends(get_hunter),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """
    Search the places provider and save every business with a phone number.

    Progress is broadcast to the leads room as `scraping:progress`.

    Example:
        ```json
        {
          "query": "plumbers in Leeds",
          "maxResults": 20,
          "campaignId": null
        }
        ```
    """
    if not request.query:
        raise HTTPException(status_code=400, detail="Query is required")

    try:
        agent = HunterAgent(repository=repo, hunter=hunter, broadcaster=broadcaster)
        session = await agent.scrape(
            request.query,
            max_results=request.max_results,
            campaign_id=request.campaign_id,
        )
        return session.to_dict()

    except PlacesAPIError as e:
        logger.error("Scrape of %r failed: %s", request.query, e.message)
        raise HTTPException(status_code=500, detail=f"Scrape failed: {e.message}")


# =============================================================================
# Lead Endpoints
# =============================================================================

@app.get("/api/leads", tags=["Leads"])
async def list_leads(
    status: Optional[LeadStatus] = Query(default=None),
    campaign_id: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    repo: Repository = Depends(get_repository),
):
    """List leads, newest first, each with its score."""
    leads, total = repo.list_leads(
        status=status,
        campaign_id=campaign_id,
        search=search,
        limit=limit,
        offset=offset,
    )
    return {"leads": [_lead_with_score(lead) for lead in leads], "total": total}


@app.get("/api/leads/stats/overview", tags=["Leads"])
async def lead_stats(
    campaign_id: Optional[str] = Query(default=None),
    repo: Repository = Depends(get_repository),
):
    """Lead counts by pipeline status."""
    return repo.get_lead_stats(campaign_id=campaign_id)


@app.post("/api/leads/score", tags=["Leads"])
async def score_payload(payload: Dict[str, Any] = Body(...)):
    """Score an unsaved lead. Any subset of lead fields is accepted."""
    return score_lead(payload).to_dict()


@app.get("/api/leads/{lead_id}", tags=["Leads"])
async def get_lead(lead_id: str, repo: Repository = Depends(get_repository)):
    """A lead with its call history, score and call-screen insights."""
    lead = repo.get_lead(lead_id)
    if lead is None:
        raise HTTPException(status_code=404, detail="Lead not found")

    call_logs, _ = repo.list_call_logs(lead_id=lead_id, limit=1000)
    data = _lead_with_score(lead)
    data["call_logs"] = [log.model_dump(mode="json") for log in call_logs]
    data["insights"] = build_insights(lead)
    return data


@app.get("/api/leads/{lead_id}/score", tags=["Leads"])
async def get_lead_score(lead_id: str, repo: Repository = Depends(get_repository)):
    """Score of a stored lead."""
    lead = repo.get_lead(lead_id)
    if lead is None:
        raise HTTPException(status_code=404, detail="Lead not found")
    return score_lead(lead).to_dict()


@app.put("/api/leads/{lead_id}", tags=["Leads"])
async def update_lead(
    lead_id: str,
    request: LeadUpdate,
    repo: Repository = Depends(get_repository),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Update some fields of a lead."""
    lead = repo.update_lead(lead_id, request.model_dump(exclude_unset=True))
    if lead is None:
        raise HTTPException(status_code=404, detail="Lead not found")

    data = _lead_with_score(lead)
    await broadcaster.emit_lead_update("updated", data)
    return data


@app.delete("/api/leads/{lead_id}", response_model=MessageResponse, tags=["Leads"])
async def delete_lead(
    lead_id: str,
    repo: Repository = Depends(get_repository),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Delete a lead and its call history."""
    if not repo.delete_lead(lead_id):
        raise HTTPException(status_code=404, detail="Lead not found")

    await broadcaster.emit_lead_update("deleted", {"id": lead_id})
    return MessageResponse(message="Lead deleted successfully")


# =============================================================================
# Campaign Endpoints
# =============================================================================

@app.get("/api/campaigns", tags=["Campaigns"])
async def list_campaigns(repo: Repository = Depends(get_repository)):
    """All campaigns, newest first."""
    return [campaign.model_dump(mode="json") for campaign in repo.list_campaigns()]


@app.get("/api/campaigns/{campaign_id}", tags=["Campaigns"])
async def get_campaign(campaign_id: str, repo: Repository = Depends(get_repository)):
    """A campaign with its lead count and today's call count."""
    campaign = repo.get_campaign(campaign_id)
    if campaign is None:
        raise HTTPException(status_code=404, detail="Campaign not found")

    data = campaign.model_dump(mode="json")
    data.update(repo.get_campaign_stats(campaign_id))
    return data


@app.post("/api/campaigns", status_code=201, tags=["Campaigns"])
async def create_campaign(
    request: CampaignCreate,
    repo: Repository = Depends(get_repository),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Create an active campaign."""
    if not request.name:
        raise HTTPException(status_code=400, detail="Campaign name is required")

    campaign = repo.save_campaign(Campaign(**request.model_dump()))
    data = campaign.model_dump(mode="json")
    await broadcaster.emit_campaign_update("created", data)
    return data


@app.put("/api/campaigns/{campaign_id}", tags=["Campaigns"])
async def update_campaign(
    campaign_id: str,
    request: CampaignUpdate,
    repo: Repository = Depends(get_repository),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Update some fields of a campaign."""
    campaign = repo.update_campaign(campaign_id, request.model_dump(exclude_unset=True))
    if campaign is None:
        raise HTTPException(status_code=404, detail="Campaign not found")

    data = campaign.model_dump(mode="json")
    await broadcaster.emit_campaign_update("updated", data)
    return data


@app.delete("/api/campaigns/{campaign_id}", response_model=MessageResponse, tags=["Campaigns"])
async def delete_campaign(
    campaign_id: str,
    repo: Repository = Depends(get_repository),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Delete a campaign. Its leads are kept and detached."""
    if not repo.delete_campaign(campaign_id):
        raise HTTPException(status_code=404, detail="Campaign not found")

    await broadcaster.emit_campaign_update("deleted", {"id": campaign_id})
    return MessageResponse(message="Campaign deleted successfully")


# =============================================================================
# Call Log Endpoints
# =============================================================================

@app.get("/api/call-logs", tags=["Call Logs"])
async def list_call_logs(
    lead_id: Optional[str] = Query(default=None),
    campaign_id: Optional[str] = Query(default=None),
    day: Optional[date] = Query(default=None, alias="date"),
    limit: int = Query(default=50, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    repo: Repository = Depends(get_repository),
):
    """Call history, most recent first."""
    logs, total = repo.list_call_logs(
        lead_id=lead_id,
        campaign_id=campaign_id,
        day=day,
        limit=limit,
        offset=offset,
    )
    return {"callLogs": [log.model_dump(mode="json") for log in logs], "total": total}


@app.get("/api/call-logs/stats/set", tags=["Call Logs"])
async def call_stats(
    campaign_id: Optional[str] = Query(default=None),
    repo: Repository = Depends(get_repository),
):
    """Unique leads dialled and raw call counts per outcome."""
    return repo.get_call_stats(campaign_id=campaign_id)


@app.get("/api/call-logs/callbacks", tags=["Call Logs"])
async def due_callbacks(
    campaign_id: Optional[str] = Query(default=None),
    repo: Repository = Depends(get_repository),
):
    """Callbacks whose scheduled time has arrived, earliest first."""
    return [log.model_dump(mode="json") for log in repo.get_due_callbacks(campaign_id=campaign_id)]


@app.post("/api/call-logs", status_code=201, tags=["Call Logs"])
async def create_call_log(
    request: CallLogCreate,
    repo: Repository = Depends(get_repository),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """
    Log a call.

    The lead's last_called_at is always updated; its status moves only
    for outcomes that advance the pipeline.

    Example:
        ```json
        {
          "lead_id": "2b1c...",
          "call_outcome": "wants_callback",
          "scheduled_callback": "2026-03-02T10:00:00"
        }
        ```
    """
    if not request.lead_id or not request.call_outcome:
        raise HTTPException(status_code=400, detail="lead_id and call_outcome are required")

    if repo.get_lead(request.lead_id) is None:
        raise HTTPException(status_code=404, detail="Lead not found")

    call_log, lead = repo.log_call(CallLog(**request.model_dump()))

    if lead is not None:
        await broadcaster.emit_lead_update("updated", _lead_with_score(lead))

    data = call_log.model_dump(mode="json")
    await broadcaster.emit_call_log_update("created", data)
    return data


@app.delete("/api/call-logs/{call_log_id}", response_model=MessageResponse, tags=["Call Logs"])
async def delete_call_log(
    call_log_id: str,
    repo: Repository = Depends(get_repository),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Delete a call log. The lead's status is left as it is."""
    if not repo.delete_call_log(call_log_id):
        raise HTTPException(status_code=404, detail="Call log not found")

    await broadcaster.emit_call_log_update("deleted", {"id": call_log_id})
    return MessageResponse(message="Call log deleted successfully")


# =============================================================================
# Realtime
# =============================================================================

@app.websocket("/ws")
async def realtime(websocket: WebSocket, broadcaster: Broadcaster = Depends(get_broadcaster)):
    """Room subscriptions for live updates."""
    await websocket.accept()
    logger.debug("Realtime client connected")

    try:
        while True:
            try:
                message = await websocket.receive_json()
            except ValueError:
                logger.debug("Ignoring non-JSON realtime frame")
                continue
            room = broadcaster.handle_message(websocket, message)
            if room is not None:
                action = message["event"].split(":", 1)[0]
                await websocket.send_json({"event": f"{action}d", "data": {"room": room}})
    except WebSocketDisconnect:
        logger.debug("Realtime client disconnected")
    finally:
        broadcaster.disconnect(websocket)


# =============================================================================
# Lifecycle
# =============================================================================

@app.on_event("startup")
async def startup_event():
    """Initialize logging on startup. The database is created on first use."""
    configure_logging()
    logger.info("%s v%s starting", settings.APP_NAME, settings.APP_VERSION)
    if not settings.validate_places_key():
        logger.warning("GOOGLE_PLACES_API_KEY is not set; scraping is disabled")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("%s shutting down", settings.APP_NAME)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "dialdesk.server:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
