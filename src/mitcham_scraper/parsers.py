"""
HTML parsers for Mitcham eProperty pages.

ListingParser reads the paginated search results grid; DetailParser reads
the labelled tables on an application detail page.
"""

import re
from collections.abc import Iterator
from datetime import datetime

import structlog
from bs4 import BeautifulSoup, Tag

from src.mitcham_scraper.models import DetailFields

logger = structlog.get_logger(__name__)

REFERENCE_PATTERN = re.compile(r"\d{3}/\d{4}/\d{2}")

# Day may omit its leading zero; month and year may not.
RECEIVED_DATE_PATTERN = re.compile(r"\d{1,2}/\d{2}/\d{4}")


def is_valid_reference(candidate: str) -> bool:
    """Check a candidate is a reference of the form 123/4567/89."""
    return REFERENCE_PATTERN.fullmatch(candidate) is not None


def normalize_received_date(value: str) -> str:
    """
    Convert a lodgement date such as '5/03/2019' to ISO format.

    Returns an empty string when the value does not match the expected
    pattern or names a date that does not exist.
    """
    value = value.strip()
    if not RECEIVED_DATE_PATTERN.fullmatch(value):
        return ""
    try:
        return datetime.strptime(value, "%d/%m/%Y").date().isoformat()
    except ValueError:
        return ""


def _clean_text(text: str) -> str:
    """Collapse whitespace and trim."""
    return re.sub(r"\s+", " ", text).strip()


class ListingParser:
    """Parser for the search results page."""

    def count_pages(self, html: str) -> int:
        """
        Count the result pages advertised by the pager row.

        The pager row holds one cell per page plus a trailing "next" cell.
        A page without a pager has exactly one page.
        """
        soup = BeautifulSoup(html, "html.parser")
        pager = soup.select_one("tr.pagerRow")
        cell_count = len(pager.find_all("td")) if pager else 0
        return max(1, cell_count - 1)

    def extract_candidates(self, html: str) -> Iterator[str]:
        """
        Yield the trimmed link text of every anchor in the results grid.

        Candidates are not validated here; see is_valid_reference.
        """
        soup = BeautifulSoup(html, "html.parser")
        for anchor in soup.select("table.grid td a"):
            yield anchor.get_text().strip()


class DetailParser:
    """Parser for an application detail page."""

    def extract_detail(self, html: str, reference: str = "") -> DetailFields:
        """
        Extract address, description and lodgement date.

        Missing structures yield empty strings rather than errors.

        Args:
            html: Raw HTML content of the detail page.
            reference: Application reference for logging context.
        """
        soup = BeautifulSoup(html, "html.parser")
        detail = DetailFields(
            address=self._parse_address(soup),
            reason=self._header_value(soup, "Description"),
            received_date_raw=self._header_value(soup, "Lodgement Date"),
        )

        logger.debug(
            "Parsed application details",
            reference=reference,
            has_address=bool(detail.address),
            has_reason=bool(detail.reason),
            received_date_raw=detail.received_date_raw,
        )
        return detail

    def _parse_address(self, soup: BeautifulSoup) -> str:
        """Read the first normal row of the grid whose header mentions Address."""
        for header in soup.select("table.grid th"):
            if "Address" not in header.get_text():
                continue
            table = header.find_parent("table")
            row = table.select_one("tr.normalRow") if table else None
            cell = row.find("td") if row else None
            if isinstance(cell, Tag):
                return _clean_text(cell.get_text())
            return ""
        return ""

    def _header_value(self, soup: BeautifulSoup, label: str) -> str:
        """Read the cell following the header cell whose text contains label."""
        for header in soup.select("td.headerColumn"):
            if label not in header.get_text():
                continue
            value = header.find_next_sibling("td")
            return _clean_text(value.get_text()) if value else ""
        return ""
