"""Business hunters for the DialDesk calling CRM."""

from .base_hunter import BaseHunter, HuntResult
from .places_hunter import PlacesAPIError, PlacesHunter, format_place

__all__ = ["BaseHunter", "HuntResult", "PlacesAPIError", "PlacesHunter", "format_place"]
