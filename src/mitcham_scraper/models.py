"""
Data models for scraped development applications.
"""

from dataclasses import dataclass


@dataclass
class DetailFields:
    """Raw fields extracted from an application detail page."""

    address: str = ""
    """Site address (empty when the address table is missing)"""

    reason: str = ""
    """Development description"""

    received_date_raw: str = ""
    """Lodgement date exactly as shown on the page, e.g. '5/03/2019'"""


@dataclass
class DevelopmentApplication:
    """
    A development application as persisted to the record store.

    `reference` is the natural key. Dates are ISO formatted strings;
    `date_received` is empty when the lodgement date could not be parsed.
    """

    reference: str
    address: str
    reason: str
    info_url: str
    comment_url: str
    date_scraped: str
    date_received: str = ""
    on_notice_from: str | None = None
    on_notice_to: str | None = None

    def to_row(self) -> tuple:
        """Convert to a row tuple in table column order."""
        return (
            self.reference,
            self.address,
            self.reason,
            self.info_url,
            self.comment_url,
            self.date_scraped,
            self.date_received,
            self.on_notice_from,
            self.on_notice_to,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "council_reference": self.reference,
            "address": self.address,
            "description": self.reason,
            "info_url": self.info_url,
            "comment_url": self.comment_url,
            "date_scraped": self.date_scraped,
            "date_received": self.date_received,
            "on_notice_from": self.on_notice_from,
            "on_notice_to": self.on_notice_to,
        }
