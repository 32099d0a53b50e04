"""
Scrape pipeline for the Mitcham development application register.

Walks the paginated search results in order, fetching page 1 directly and
later pages by postback, then fetches each listed application's detail page
and upserts the record. A failed page or application is recorded as an
outcome and the run carries on; only store initialization and the first page
fetch are fatal.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from typing import Any

import structlog

from src.mitcham_scraper.client import FetchError, MitchamClient
from src.mitcham_scraper.config import ScraperConfig
from src.mitcham_scraper.models import DevelopmentApplication
from src.mitcham_scraper.parsers import (
    DetailParser,
    ListingParser,
    is_valid_reference,
    normalize_received_date,
)
from src.mitcham_scraper.postback import PostbackState, build_postback_request, extract_state
from src.mitcham_scraper.store import RecordStore, StoreError, UpsertOutcome

logger = structlog.get_logger(__name__)


class PipelinePhase(StrEnum):
    """Phases of a scrape run."""

    INIT = "init"
    FETCH_FIRST_PAGE = "fetch_first_page"
    DETERMINE_PAGE_COUNT = "determine_page_count"
    FETCH_PAGE = "fetch_page"
    COMPLETE = "complete"


class ItemStatus(StrEnum):
    """Outcome of processing one listed candidate."""

    INSERTED = "inserted"
    REPLACED = "replaced"
    INVALID_REFERENCE = "invalid_reference"
    NO_ADDRESS = "no_address"
    FETCH_FAILED = "fetch_failed"
    STORE_FAILED = "store_failed"


STORED_STATUSES = frozenset({ItemStatus.INSERTED, ItemStatus.REPLACED})
FAILED_STATUSES = frozenset({ItemStatus.FETCH_FAILED, ItemStatus.STORE_FAILED})


class PipelineError(Exception):
    """Fatal error that stops a scrape run."""

    def __init__(self, message: str, phase: PipelinePhase):
        self.message = message
        self.phase = phase
        super().__init__(message)


@dataclass
class ItemOutcome:
    """Result of processing one candidate from a results page."""

    reference: str
    status: ItemStatus
    info_url: str | None = None
    error: str | None = None


@dataclass
class PageOutcome:
    """Result of processing one results page."""

    page_index: int
    items: list[ItemOutcome] = field(default_factory=list)
    error: str | None = None

    @property
    def fetched(self) -> bool:
        return self.error is None


@dataclass
class RunSummary:
    """Outcome of a complete scrape run."""

    scrape_date: str
    page_count: int = 0
    pages: list[PageOutcome] = field(default_factory=list)

    @property
    def items(self) -> list[ItemOutcome]:
        return [item for page in self.pages for item in page.items]

    def _count(self, *statuses: ItemStatus) -> int:
        return sum(1 for item in self.items if item.status in statuses)

    @property
    def records_inserted(self) -> int:
        return self._count(ItemStatus.INSERTED)

    @property
    def records_replaced(self) -> int:
        return self._count(ItemStatus.REPLACED)

    @property
    def records_stored(self) -> int:
        return self._count(*STORED_STATUSES)

    @property
    def failed_items(self) -> int:
        return self._count(*FAILED_STATUSES)

    @property
    def skipped_items(self) -> int:
        return self._count(ItemStatus.INVALID_REFERENCE, ItemStatus.NO_ADDRESS)

    @property
    def failed_pages(self) -> int:
        return sum(1 for page in self.pages if not page.fetched)

    def to_dict(self) -> dict[str, Any]:
        """Summarise counts for logging."""
        return {
            "scrape_date": self.scrape_date,
            "page_count": self.page_count,
            "pages_attempted": len(self.pages),
            "failed_pages": self.failed_pages,
            "records_stored": self.records_stored,
            "records_inserted": self.records_inserted,
            "records_replaced": self.records_replaced,
            "failed_items": self.failed_items,
            "skipped_items": self.skipped_items,
        }


class ScrapePipeline:
    """
    Sequential scrape of every results page and listed application.

    Pages are walked strictly in order and one fetch is outstanding at a
    time, because the portal's paging is stateful on the server.
    """

    def __init__(
        self,
        config: ScraperConfig,
        client: MitchamClient,
        store: RecordStore,
        listing_parser: ListingParser | None = None,
        detail_parser: DetailParser | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        """
        Initialize the pipeline.

        Args:
            config: Portal endpoints and comment address.
            client: Open portal client.
            store: Record store; initialized at the start of run().
            listing_parser: Optional parser for results pages.
            detail_parser: Optional parser for detail pages.
            today: Clock used for the scrape date.
        """
        self._config = config
        self._client = client
        self._store = store
        self._listing = listing_parser or ListingParser()
        self._detail = detail_parser or DetailParser()
        self._today = today
        self._phase = PipelinePhase.INIT

    @property
    def phase(self) -> PipelinePhase:
        return self._phase

    def _enter(self, phase: PipelinePhase, **context: Any) -> None:
        self._phase = phase
        logger.debug("Pipeline phase", phase=phase.value, **context)

    async def run(self) -> RunSummary:
        """
        Scrape every page and persist each application with an address.

        Returns:
            RunSummary with an outcome for every page and candidate.

        Raises:
            PipelineError: If the store cannot be initialized or the first
                results page cannot be fetched.
        """
        summary = RunSummary(scrape_date=self._today().isoformat())

        self._enter(PipelinePhase.INIT)
        try:
            await self._store.initialize()
        except StoreError as e:
            raise PipelineError(f"Record store initialization failed: {e}", self._phase) from e

        self._enter(PipelinePhase.FETCH_FIRST_PAGE, url=self._config.listing_url)
        try:
            first_page = await self._client.get_page(self._config.listing_url)
        except FetchError as e:
            raise PipelineError(f"First results page fetch failed: {e.message}", self._phase) from e

        self._enter(PipelinePhase.DETERMINE_PAGE_COUNT)
        summary.page_count = self._listing.count_pages(first_page)
        state = extract_state(first_page)
        logger.info("Found results pages", page_count=summary.page_count)
        if summary.page_count > 1 and not (state.validation_token and state.view_state):
            logger.warning(
                "Postback tokens missing from first page",
                page_count=summary.page_count,
                has_validation_token=bool(state.validation_token),
                has_view_state=bool(state.view_state),
            )

        for page_index in range(1, summary.page_count + 1):
            self._enter(PipelinePhase.FETCH_PAGE, page_index=page_index)
            summary.pages.append(await self._process_page(page_index, first_page, state, summary))

        self._enter(PipelinePhase.COMPLETE)
        logger.info("Scrape complete", **summary.to_dict())
        return summary

    async def _process_page(
        self,
        page_index: int,
        first_page: str,
        state: PostbackState,
        summary: RunSummary,
    ) -> PageOutcome:
        """Fetch one results page and process its candidates in order."""
        outcome = PageOutcome(page_index=page_index)

        if page_index == 1:
            html = first_page
        else:
            request = build_postback_request(
                self._config.listing_url, page_index, state, self._config.event_target
            )
            try:
                html = await self._client.post_form(
                    request.url, request.headers, request.form_fields
                )
            except FetchError as e:
                logger.warning(
                    "Results page fetch failed, skipping page",
                    page_index=page_index,
                    url=request.url,
                    error=e.message,
                )
                outcome.error = e.message
                return outcome

        logger.info("Processing results page", page_index=page_index, page_count=summary.page_count)
        for candidate in self._listing.extract_candidates(html):
            outcome.items.append(await self._process_candidate(candidate, summary.scrape_date))
        return outcome

    async def _process_candidate(self, candidate: str, scrape_date: str) -> ItemOutcome:
        """Fetch, parse and store one listed application."""
        if not is_valid_reference(candidate):
            logger.debug("Skipping non-reference link", text=candidate)
            return ItemOutcome(reference=candidate, status=ItemStatus.INVALID_REFERENCE)

        info_url = self._config.detail_url(candidate)
        try:
            html = await self._client.get_page(info_url)
        except FetchError as e:
            logger.warning(
                "Application page fetch failed, skipping application",
                reference=candidate,
                url=info_url,
                error=e.message,
            )
            return ItemOutcome(
                reference=candidate,
                status=ItemStatus.FETCH_FAILED,
                info_url=info_url,
                error=e.message,
            )

        detail = self._detail.extract_detail(html, candidate)
        if not detail.address:
            logger.debug("Skipping application without address", reference=candidate)
            return ItemOutcome(reference=candidate, status=ItemStatus.NO_ADDRESS, info_url=info_url)

        application = DevelopmentApplication(
            reference=candidate,
            address=detail.address,
            reason=detail.reason,
            info_url=info_url,
            comment_url=self._config.comment_url,
            date_scraped=scrape_date,
            date_received=normalize_received_date(detail.received_date_raw),
        )
        try:
            written = await self._store.upsert(application)
        except StoreError as e:
            logger.warning("Application write failed", reference=candidate, error=str(e))
            return ItemOutcome(
                reference=candidate,
                status=ItemStatus.STORE_FAILED,
                info_url=info_url,
                error=str(e),
            )

        status = ItemStatus.INSERTED if written == UpsertOutcome.INSERTED else ItemStatus.REPLACED
        return ItemOutcome(reference=candidate, status=status, info_url=info_url)
