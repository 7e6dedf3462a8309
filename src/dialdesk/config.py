"""Configuration management for the DialDesk outbound calling CRM."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # Application
    # ==========================================================================
    APP_NAME: str = "DialDesk"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # ==========================================================================
    # Database
    # ==========================================================================
    DATABASE_URL: str = "sqlite:///data/dialdesk.db"

    # ==========================================================================
    # Places Provider
    # ==========================================================================
    GOOGLE_PLACES_API_KEY: Optional[str] = Field(default=None, description="Google Places API key")
    GOOGLE_PLACES_BASE_URL: str = "https://places.googleapis.com/v1"
    PLACES_TIMEOUT_SECONDS: float = 30.0
    PLACES_MAX_RESULTS: int = 20  # API limit per text search request
    PLACES_LANGUAGE_CODE: str = "en-GB"

    # ==========================================================================
    # HTTP Server
    # ==========================================================================
    HOST: str = "0.0.0.0"
    PORT: int = 3001
    FRONTEND_URL: Optional[str] = None

    # ==========================================================================
    # Logging
    # ==========================================================================
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # text or json

    # ==========================================================================
    # Paths
    # ==========================================================================
    @property
    def data_dir(self) -> Path:
        """Get or create data directory."""
        path = Path("data")
        path.mkdir(exist_ok=True)
        return path

    @property
    def allowed_origins(self) -> list[str]:
        """Origins allowed to call the API and open realtime sockets."""
        origins = [
            "http://localhost:5173",
            "http://localhost:5174",
            "http://localhost:5175",
        ]
        if self.FRONTEND_URL:
            origins.insert(0, self.FRONTEND_URL.rstrip("/"))
        return origins

    # ==========================================================================
    # Validation
    # ==========================================================================
    def validate_places_key(self) -> bool:
        """Check if the places API key is configured."""
        return bool(self.GOOGLE_PLACES_API_KEY)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience alias
settings = get_settings()


# ==========================================================================
# Lead Scoring Keyword Lists
# ==========================================================================
# Matching is case-insensitive substring matching, so every entry is lower case.

# Corporate/franchise indicators in business names
CORPORATE_INDICATORS: frozenset[str] = frozenset({
    "group", "holdings", "plc", "corporation", "corp",
    "international", "global", "national", "franchise",

    # Named chains
    "mcdonald", "costa", "starbucks", "subway", "kfc",
    "tesco", "sainsbury", "asda", "morrisons",
})

# Family/independent operator indicators in business names
SMALL_OPERATOR_INDICATORS: frozenset[str] = frozenset({
    "local", "family", "independent", "est.", "since",
    "son", "sons", "brothers", "sisters", "& son",
})

# Gatekeeper phrases in scraped website text
RECEPTIONIST_SIGNALS: frozenset[str] = frozenset({
    "reception", "receptionist", "office team",
    "call centre", "call center", "switchboard",
    "main office", "head office", "customer service team",
})

# Opening-hours phrases meaning the business picks up out of hours
EXTENDED_HOURS_INDICATORS: frozenset[str] = frozenset({
    "24", "24/7", "24 hour", "all day", "always open",
})

# Urban/dense UK outward codes (matched on the first 2-3 characters)
URBAN_POSTCODES: frozenset[str] = frozenset({
    # London
    "E1", "E2", "E3", "E4", "E5", "E6", "E7", "E8", "E9",
    "EC", "WC",
    "W1", "W2", "W3", "W4", "W5", "W6", "W7", "W8", "W9", "W10", "W11", "W12",
    "SW", "SE",
    "N1", "N2", "N3", "N4", "N5", "N6", "N7", "N8", "N9", "N10", "N11",
    "NW",

    # Manchester, Birmingham, Liverpool, Glasgow
    "M1", "M2", "M3", "M4",
    "B1", "B2", "B3", "B4", "B5",
    "L1", "L2", "L3", "L4", "L5",
    "G1", "G2", "G3", "G4",

    # Edinburgh, Cardiff, Leeds
    "EH1", "EH2", "EH3",
    "CF1", "CF2", "CF10",
    "LS1", "LS2",
})
