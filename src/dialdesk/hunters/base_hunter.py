"""Base hunter interface for business discovery."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, AsyncIterator, Awaitable, Callable, Optional


ProgressCallback = Callable[[dict], Awaitable[Any]]


@dataclass
class HuntResult:
    """Result of a hunting operation."""

    query: str = ""
    places: list[dict] = field(default_factory=list)
    total_found: int = 0
    errors: list[str] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None
    source: str = "unknown"

    @property
    def duration_seconds(self) -> float:
        """Calculate hunt duration."""
        end = self.completed_at or datetime.utcnow()
        return (end - self.started_at).total_seconds()

    @property
    def with_phone(self) -> list[dict]:
        """Places that can actually be rung."""
        return [p for p in self.places if p.get("phone_number")]

    def complete(self) -> "HuntResult":
        """Mark hunt as complete."""
        self.completed_at = datetime.utcnow()
        return self

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "query": self.query,
            "places_count": len(self.places),
            "with_phone": len(self.with_phone),
            "total_found": self.total_found,
            "errors_count": len(self.errors),
            "duration_seconds": self.duration_seconds,
            "source": self.source,
        }


class BaseHunter(ABC):
    """
    Abstract base class for business hunters.

    Hunters turn a free-text search such as "plumbers in Leeds" into
    formatted place dicts ready to become leads.
    """

    def __init__(self, source_name: str):
        """
        Initialize the hunter.

        Args:
            source_name: Name of the business source
        """
        self.source_name = source_name

    @abstractmethod
    async def hunt(
        self,
        query: str,
        limit: int = 20,
        on_progress: Optional[ProgressCallback] = None,
    ) -> HuntResult:
        """
        Hunt for businesses matching a query.

        Args:
            query: Free-text search
            limit: Maximum number of places to return
            on_progress: Awaited with {current, total, lastBusiness} per place

        Returns:
            HuntResult with formatted places
        """
        pass

    @abstractmethod
    def hunt_stream(
        self,
        query: str,
        limit: int = 20,
        on_progress: Optional[ProgressCallback] = None,
    ) -> AsyncIterator[dict]:
        """
        Hunt for businesses and yield them as they're formatted.

        Yields:
            Formatted place dicts
        """
        pass

    def validate_place(self, place: dict) -> tuple[bool, str]:
        """
        Check a formatted place is worth turning into a lead.

        Returns:
            Tuple of (is_valid, reason)
        """
        if not place.get("phone_number"):
            return (False, "Missing phone number")

        if not place.get("business_name"):
            return (False, "Missing business name")

        return (True, "Valid place")
