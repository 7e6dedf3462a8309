"""
Places Hunter

Finds local businesses through the Google Places text-search API.
This is the only source of new leads.
"""

import logging
from typing import AsyncIterator, Optional

import httpx

from .base_hunter import BaseHunter, HuntResult, ProgressCallback
from ..config import settings

logger = logging.getLogger(__name__)


# Fields requested from the provider; anything else is billed but unused
SEARCH_FIELD_MASK = ",".join([
    "places.id",
    "places.displayName",
    "places.formattedAddress",
    "places.nationalPhoneNumber",
    "places.internationalPhoneNumber",
    "places.websiteUri",
    "places.rating",
    "places.userRatingCount",
    "places.types",
    "places.businessStatus",
    "places.googleMapsUri",
])

DETAILS_FIELD_MASK = ",".join([
    "id",
    "displayName",
    "formattedAddress",
    "nationalPhoneNumber",
    "internationalPhoneNumber",
    "websiteUri",
    "rating",
    "userRatingCount",
    "types",
    "businessStatus",
    "googleMapsUri",
    "regularOpeningHours",
])

MAX_RESULTS_PER_SEARCH = 20


class PlacesAPIError(Exception):
    """The places provider rejected a request or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def format_place(place: dict) -> dict:
    """
    Flatten a provider place into the fields a lead stores.

    Args:
        place: Raw place object from the provider

    Returns:
        Dict keyed by lead field names
    """
    display_name = place.get("displayName") or {}
    types = place.get("types") or []
    hours = (place.get("regularOpeningHours") or {}).get("weekdayDescriptions")

    return {
        "place_id": place.get("id"),
        "business_name": display_name.get("text") or "Unknown",
        "address": place.get("formattedAddress"),
        "phone_number": place.get("nationalPhoneNumber") or place.get("internationalPhoneNumber"),
        "website": place.get("websiteUri"),
        "rating": place.get("rating"),
        "total_ratings": place.get("userRatingCount") or 0,
        "category": types[0] if types else "unknown",
        "business_status": place.get("businessStatus") or "UNKNOWN",
        "google_maps_url": place.get("googleMapsUri"),
        "opening_hours": "; ".join(hours) if hours else None,
    }


class PlacesHunter(BaseHunter):
    """
    Hunter that finds businesses from the Google Places API (New).

    A single text search returns at most twenty places; there is no
    pagination across searches.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the hunter.

        Args:
            api_key: Provider API key (defaults to GOOGLE_PLACES_API_KEY)
            base_url: Provider base URL (defaults to GOOGLE_PLACES_BASE_URL)
            timeout: Request timeout in seconds
            transport: Optional httpx transport, used by tests
        """
        super().__init__(source_name="GOOGLE_PLACES")
        self.api_key = api_key if api_key is not None else settings.GOOGLE_PLACES_API_KEY
        self.base_url = (base_url or settings.GOOGLE_PLACES_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.PLACES_TIMEOUT_SECONDS
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
        )

    def _headers(self, field_mask: str) -> dict:
        if not self.api_key:
            raise PlacesAPIError("Google Places API key not configured")
        return {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self.api_key,
            "X-Goog-FieldMask": field_mask,
        }

    @staticmethod
    def _raise_for_error(response: httpx.Response) -> None:
        if response.is_success:
            return
        try:
            message = response.json().get("error", {}).get("message")
        except ValueError:
            message = None
        raise PlacesAPIError(
            message or f"Places API request failed with status {response.status_code}",
            status_code=response.status_code,
        )

    async def search_places(self, query: str, max_results: int = MAX_RESULTS_PER_SEARCH) -> list[dict]:
        """
        Run a text search.

        Args:
            query: Free-text search, e.g. "plumbers in Leeds"
            max_results: Places wanted; capped at twenty by the provider

        Returns:
            List of raw provider places (empty if none matched)
        """
        headers = self._headers(SEARCH_FIELD_MASK)
        payload = {
            "textQuery": query,
            "maxResultCount": min(max_results, MAX_RESULTS_PER_SEARCH),
            "languageCode": settings.PLACES_LANGUAGE_CODE,
        }

        try:
            async with self._client() as client:
                response = await client.post("/places:searchText", json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise PlacesAPIError(f"Places API unreachable: {e}") from e

        self._raise_for_error(response)
        places = response.json().get("places") or []
        logger.info("Places search %r returned %d results", query, len(places))
        return places

    async def get_place_details(self, place_id: str) -> dict:
        """Fetch one place, including opening hours. Accepts "places/<id>" or a bare id."""
        headers = self._headers(DETAILS_FIELD_MASK)
        resource = place_id if place_id.startswith("places/") else f"places/{place_id}"

        try:
            async with self._client() as client:
                response = await client.get(f"/{resource}", headers=headers)
        except httpx.HTTPError as e:
            raise PlacesAPIError(f"Places API unreachable: {e}") from e

        self._raise_for_error(response)
        return response.json()

    async def hunt(
        self,
        query: str,
        limit: int = MAX_RESULTS_PER_SEARCH,
        on_progress: Optional[ProgressCallback] = None,
    ) -> HuntResult:
        """
        Search and format places.

        Returns:
            HuntResult with formatted places
        """
        result = HuntResult(query=query, source=self.source_name)

        async for place in self.hunt_stream(query, limit=limit, on_progress=on_progress):
            result.places.append(place)

        result.total_found = len(result.places)
        return result.complete()

    async def hunt_stream(
        self,
        query: str,
        limit: int = MAX_RESULTS_PER_SEARCH,
        on_progress: Optional[ProgressCallback] = None,
    ) -> AsyncIterator[dict]:
        """Stream formatted places, reporting progress after each one."""
        places = await self.search_places(query, max_results=limit)
        total = len(places)

        for index, raw in enumerate(places, start=1):
            place = format_place(raw)
            if on_progress is not None:
                await on_progress({
                    "current": index,
                    "total": total,
                    "lastBusiness": place["business_name"],
                })
            yield place
