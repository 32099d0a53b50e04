"""
ASP.NET postback state for paging through search results.

The portal serves later result pages in response to a form post carrying the
__EVENTVALIDATION and __VIEWSTATE tokens rendered into the first page. The
tokens are captured once and replayed unchanged for every later page.
"""

from dataclasses import dataclass, field

import structlog
from bs4 import BeautifulSoup

logger = structlog.get_logger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


@dataclass(frozen=True)
class PostbackState:
    """Opaque session tokens read from the first results page."""

    validation_token: str
    view_state: str


@dataclass
class PostbackRequest:
    """A prepared form post for one results page."""

    url: str
    headers: dict[str, str] = field(default_factory=dict)
    form_fields: dict[str, str] = field(default_factory=dict)


def _hidden_field(soup: BeautifulSoup, name: str) -> str:
    element = soup.find("input", {"name": name})
    if element is None or element.get("value") is None:
        logger.debug("Hidden postback field missing", field=name)
        return ""
    return element["value"]


def extract_state(html: str) -> PostbackState:
    """Read the event validation and view state tokens from a results page."""
    soup = BeautifulSoup(html, "html.parser")
    return PostbackState(
        validation_token=_hidden_field(soup, "__EVENTVALIDATION"),
        view_state=_hidden_field(soup, "__VIEWSTATE"),
    )


def build_postback_request(
    url: str,
    page_index: int,
    state: PostbackState,
    event_target: str,
) -> PostbackRequest:
    """
    Build the form post that asks the results grid for a given page.

    Args:
        url: Listing URL the form posts back to.
        page_index: One-based page number, 2 or greater.
        state: Tokens captured from the first page.
        event_target: Control identifier of the results grid.

    Raises:
        ValueError: If page_index is less than 2.
    """
    if page_index < 2:
        raise ValueError(f"Page {page_index} is not fetched by postback")

    return PostbackRequest(
        url=url,
        headers={"Content-Type": FORM_CONTENT_TYPE},
        form_fields={
            "__EVENTARGUMENT": f"Page${page_index}",
            "__EVENTTARGET": event_target,
            "__EVENTVALIDATION": state.validation_token,
            "__VIEWSTATE": state.view_state,
        },
    )
