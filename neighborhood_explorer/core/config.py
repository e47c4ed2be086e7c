# Runtime configuration for the neighborhood explorer service.
# Values are read from the environment (or a local .env file).

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "Neighborhood Explorer"
    VERSION: str = "0.2.0"
    BRIEF_DESCRIPTION: str = "Discovers points of interest around a selected neighborhood and ranks them for map and card display."

    # --- Environment ---
    ENV: str = Field("development", description="Application environment (e.g., production, development)")
    MAPBOX_TOKEN: Optional[str] = Field(None, description="Server-side Mapbox access token used when the client sends none")

    # --- Mapbox endpoints ---
    MAPBOX_SEARCHBOX_URL: str = Field(
        "https://api.mapbox.com/search/searchbox/v1/category/{category}",
        description="Search Box category endpoint (structured search)",
    )
    MAPBOX_GEOCODING_URL: str = Field(
        "https://api.mapbox.com/geocoding/v5/mapbox.places/{query}.json",
        description="Geocoding endpoint (free-text search)",
    )

    # Single attempt per tier, no retries
    MAPBOX_TIMEOUT: float = 8.0 # seconds

    # --- Discovery tiers ---
    STRUCTURED_RESULT_LIMIT: int = Field(12, description="Result cap for the bounded category search (tier 1)")
    RELAXED_RESULT_LIMIT: int = Field(20, description="Result cap for the radius-relaxed category search (tier 2)")
    FALLBACK_RADIUS_METERS: float = Field(3000.0, description="Radius from the neighborhood center used by tier 2")
    FREE_TEXT_RESULT_LIMIT: int = Field(8, description="Result cap for the free-text fallback (tier 3)")
    DEFAULT_CATEGORY: str = "highlights"

    # --- Sessions ---
    SESSION_COOKIE_NAME: str = "ne_session"
    SESSION_COOKIE_MAX_AGE: int = 60 * 60 * 24 * 30
    SESSION_MAX_COUNT: int = Field(10000, gt=0, description="Sessions kept in memory; the least recently used are evicted beyond this")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

settings = Settings()
