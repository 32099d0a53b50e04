# Mitcham development application scraper

from src.mitcham_scraper.client import FetchError, MitchamClient
from src.mitcham_scraper.config import ScraperConfig
from src.mitcham_scraper.models import DetailFields, DevelopmentApplication
from src.mitcham_scraper.parsers import (
    DetailParser,
    ListingParser,
    is_valid_reference,
    normalize_received_date,
)
from src.mitcham_scraper.pipeline import (
    ItemOutcome,
    ItemStatus,
    PageOutcome,
    PipelineError,
    PipelinePhase,
    RunSummary,
    ScrapePipeline,
)
from src.mitcham_scraper.postback import (
    PostbackRequest,
    PostbackState,
    build_postback_request,
    extract_state,
)
from src.mitcham_scraper.store import RecordStore, StoreError, UpsertOutcome

__all__ = [
    "DetailFields",
    "DetailParser",
    "DevelopmentApplication",
    "FetchError",
    "ItemOutcome",
    "ItemStatus",
    "ListingParser",
    "MitchamClient",
    "PageOutcome",
    "PipelineError",
    "PipelinePhase",
    "PostbackRequest",
    "PostbackState",
    "RecordStore",
    "RunSummary",
    "ScrapePipeline",
    "ScraperConfig",
    "StoreError",
    "UpsertOutcome",
    "build_postback_request",
    "extract_state",
    "is_valid_reference",
    "normalize_received_date",
]
