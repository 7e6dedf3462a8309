"""
Hunter Agent

Turns one places search into stored leads: hunt, drop what cannot be
rung, upsert the rest and tell connected clients as it goes.
"""

import logging
from datetime import datetime
from typing import Optional
from dataclasses import dataclass, field

from ..models.lead import Lead
from ..hunters import BaseHunter, PlacesHunter
from ..db import Repository, get_repository
from ..realtime import Broadcaster, get_broadcaster

logger = logging.getLogger(__name__)


NO_PHONE_MESSAGE = "No businesses with phone numbers found"


@dataclass
class ScrapeSession:
    """Tracks a scrape's progress and results."""

    query: str
    campaign_id: Optional[str] = None
    started_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None

    # Counters
    total_scraped: int = 0
    total_with_phone: int = 0
    total_skipped: int = 0
    total_saved: int = 0

    leads: list[Lead] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    message: str = ""

    @property
    def duration_seconds(self) -> float:
        end = self.completed_at or datetime.utcnow()
        return (end - self.started_at).total_seconds()

    def complete(self, message: Optional[str] = None) -> "ScrapeSession":
        self.completed_at = datetime.utcnow()
        if message is not None:
            self.message = message
        elif not self.message:
            self.message = "Scraping complete"
        return self

    def to_dict(self) -> dict:
        """Response body for a scrape request."""
        return {
            "message": self.message,
            "scraped": self.total_scraped,
            "withPhone": self.total_with_phone,
            "saved": self.total_saved,
            "leads": [lead.model_dump(mode="json") for lead in self.leads],
        }


class HunterAgent:
    """
    Lead generation agent.

    The Hunter Agent:
    1. Searches the places provider for a query
    2. Drops businesses without a phone number
    3. Upserts the rest as new leads, keyed on place_id
    4. Broadcasts progress and results to the leads room
    """

    def __init__(
        self,
        repository: Optional[Repository] = None,
        hunter: Optional[BaseHunter] = None,
        broadcaster: Optional[Broadcaster] = None,
    ):
        """
        Initialize the Hunter Agent.

        Args:
            repository: Database repository (uses default if None)
            hunter: Business source (uses PlacesHunter if None)
            broadcaster: Realtime broadcaster (uses the shared one if None)
        """
        self.repository = repository or get_repository()
        self.hunter = hunter or PlacesHunter()
        self.broadcaster = broadcaster or get_broadcaster()

    async def scrape(
        self,
        query: str,
        max_results: int = 20,
        campaign_id: Optional[str] = None,
    ) -> ScrapeSession:
        """
        Run one scrape.

        Args:
            query: Free-text search, e.g. "plumbers in Leeds"
            max_results: Places to request from the provider
            campaign_id: Campaign to attach new leads to

        Returns:
            ScrapeSession with counters and saved leads

        Raises:
            PlacesAPIError: If the provider rejects the search
        """
        session = ScrapeSession(query=query, campaign_id=campaign_id)
        logger.info("Scraping %r (max %d)", query, max_results)

        result = await self.hunter.hunt(
            query,
            limit=max_results,
            on_progress=self.broadcaster.emit_scraping_progress,
        )
        session.total_scraped = len(result.places)

        callable_places = []
        for place in result.places:
            is_valid, reason = self.hunter.validate_place(place)
            if is_valid:
                callable_places.append(place)
            else:
                session.total_skipped += 1
                logger.debug("Skipping %s: %s", place.get("business_name"), reason)

        session.total_with_phone = len(callable_places)
        if not callable_places:
            logger.info("Scrape %r found no businesses with phone numbers", query)
            return session.complete(NO_PHONE_MESSAGE)

        leads = [
            Lead.from_place(place, source_query=query, campaign_id=campaign_id)
            for place in callable_places
        ]
        session.leads = self.repository.upsert_leads(leads)
        session.total_saved = len(session.leads)
        session.complete()

        await self.broadcaster.emit_scraping_complete({
            "query": query,
            "scraped": session.total_scraped,
            "saved": session.total_saved,
            "leads": session.to_dict()["leads"],
        })
        await self.broadcaster.emit_lead_update("bulk-created", session.to_dict()["leads"])

        logger.info(
            "Scrape %r complete: %d scraped, %d with phone, %d saved",
            query,
            session.total_scraped,
            session.total_with_phone,
            session.total_saved,
        )
        return session
