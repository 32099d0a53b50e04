"""
Pytest configuration and shared fixtures.
"""

from datetime import date

import pytest

from src.mitcham_scraper.config import ScraperConfig

LISTING_URL = "https://eproperty.test.sa.gov.au/eTrackApplicationSearchResults.aspx?Field=S&Period=L28"
DETAIL_BASE_URL = "https://eproperty.test.sa.gov.au/eTrackApplicationDetails.aspx?ApplicationId="


def build_listing_page(
    references: list[str],
    pager_cells: int = 0,
    validation_token: str = "EV-TOKEN",
    view_state: str = "VS-TOKEN",
) -> str:
    """Build a results page with a grid of reference links and an optional pager row."""
    rows = "".join(
        f'<tr class="normalRow"><td><a href="#">{reference}</a></td><td>Lodged</td></tr>'
        for reference in references
    )
    pager = ""
    if pager_cells:
        cells = "".join(f"<td><a>{index}</a></td>" for index in range(1, pager_cells))
        pager = f'<tr class="pagerRow">{cells}<td><a>...</a></td></tr>'
    return f"""
    <html>
    <body>
        <form>
            <input type="hidden" name="__VIEWSTATE" value="{view_state}" />
            <input type="hidden" name="__EVENTVALIDATION" value="{validation_token}" />
            <table class="grid">
                <tr class="headerRow"><th>Application</th><th>Status</th></tr>
                {rows}
                {pager}
            </table>
        </form>
    </body>
    </html>
    """


def build_detail_page(
    address: str = "12 Belair Road, MITCHAM SA 5062",
    description: str = "Construct a carport",
    lodgement_date: str = "5/03/2019",
) -> str:
    """Build an application detail page."""
    address_row = f'<tr class="normalRow"><td>{address}</td><td>Primary</td></tr>' if address else ""
    return f"""
    <html>
    <body>
        <table>
            <tr><td class="headerColumn">Application ID</td><td>123/4567/18</td></tr>
            <tr><td class="headerColumn">Description</td><td>{description}</td></tr>
            <tr><td class="headerColumn">Lodgement Date</td><td>{lodgement_date}</td></tr>
        </table>
        <table class="grid">
            <tr class="headerRow"><th>Property Address</th><th>Type</th></tr>
            {address_row}
        </table>
    </body>
    </html>
    """


@pytest.fixture
def config(tmp_path) -> ScraperConfig:
    """Scraper configuration pointing at test URLs and a temporary database."""
    return ScraperConfig(
        listing_url=LISTING_URL,
        detail_base_url=DETAIL_BASE_URL,
        comment_url="mailto:council@test.sa.gov.au",
        database_path=str(tmp_path / "data.sqlite"),
        request_interval=0,
        timeout=5.0,
    )


@pytest.fixture
def scrape_date() -> date:
    """Fixed scrape date for deterministic records."""
    return date(2018, 7, 14)


@pytest.fixture
def listing_page():
    """Builder for results page HTML."""
    return build_listing_page


@pytest.fixture
def detail_page():
    """Builder for detail page HTML."""
    return build_detail_page
