"""
Configuration for the Mitcham eProperty scraper.

All fixed endpoints and request knobs live on one settings object which is
built once at startup and passed to the client, store and pipeline.
"""

import os
from urllib.parse import quote

from pydantic import BaseModel, Field

DEFAULT_LISTING_URL = (
    "https://eproperty.mitchamcouncil.sa.gov.au/T1PRProd/WebApps/eProperty/P1/eTrack/"
    "eTrackApplicationSearchResults.aspx?Field=S&Period=L28&r=P1.WEBGUEST&f=%24P1.ETR.SEARCH.SL28"
)
DEFAULT_DETAIL_BASE_URL = (
    "https://eproperty.mitchamcouncil.sa.gov.au/T1PRProd/WebApps/eProperty/P1/eTrack/"
    "eTrackApplicationDetails.aspx?r=P1.WEBGUEST&f=%24P1.ETR.APPDET.VIW&ApplicationId="
)
DEFAULT_COMMENT_URL = "mailto:mitcham@mitchamcouncil.sa.gov.au"
DEFAULT_EVENT_TARGET = "ctl00$Content$cusResultsGrid$repWebGrid$ctl00$grdWebGridTabularView"


class ScraperConfig(BaseModel):
    """Fixed endpoints and request settings for one scraper run."""

    listing_url: str = DEFAULT_LISTING_URL
    detail_base_url: str = DEFAULT_DETAIL_BASE_URL
    comment_url: str = DEFAULT_COMMENT_URL
    database_path: str = "data.sqlite"
    event_target: str = DEFAULT_EVENT_TARGET
    request_interval: float = Field(default=0.5, ge=0)
    """Minimum seconds between requests to the portal"""
    timeout: float = Field(default=30.0, gt=0)
    """Transport timeout per request in seconds"""
    user_agent: str = "Mitcham-DA-Scraper/1.0 (Development Application Scraper)"

    @classmethod
    def from_env(cls) -> "ScraperConfig":
        """
        Build configuration from environment variables.

        Unset variables fall back to the field defaults.

        Raises:
            pydantic.ValidationError: If a numeric override is out of range.
        """
        overrides = {
            "listing_url": os.getenv("MITCHAM_LISTING_URL"),
            "detail_base_url": os.getenv("MITCHAM_DETAIL_BASE_URL"),
            "comment_url": os.getenv("MITCHAM_COMMENT_URL"),
            "database_path": os.getenv("MITCHAM_DATABASE_PATH"),
            "request_interval": os.getenv("SCRAPER_REQUEST_INTERVAL"),
            "timeout": os.getenv("SCRAPER_TIMEOUT"),
        }
        return cls(**{key: value for key, value in overrides.items() if value is not None})

    def detail_url(self, reference: str) -> str:
        """Build the detail page URL for an application reference."""
        return self.detail_base_url + quote(reference, safe="")
