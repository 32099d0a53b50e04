"""
SQLite record store for development applications.

Rows are keyed by council reference and written with insert-or-replace, so
re-scraping an application overwrites the previous row. Writes are serialized
through a single asyncio lock.
"""

import asyncio
import sqlite3
from enum import StrEnum

import structlog

from src.mitcham_scraper.models import DevelopmentApplication

logger = structlog.get_logger(__name__)

CREATE_TABLE_SQL = (
    "create table if not exists [data] ("
    "[council_reference] text primary key, "
    "[address] text, "
    "[description] text, "
    "[info_url] text, "
    "[comment_url] text, "
    "[date_scraped] text, "
    "[date_received] text, "
    "[on_notice_from] text, "
    "[on_notice_to] text)"
)
UPSERT_SQL = "insert or replace into [data] values (?, ?, ?, ?, ?, ?, ?, ?, ?)"
EXISTS_SQL = "select 1 from [data] where [council_reference] = ?"
SELECT_SQL = "select * from [data] where [council_reference] = ?"


class StoreError(Exception):
    """Error opening or writing the record store."""

    pass


class UpsertOutcome(StrEnum):
    """What an upsert did to the table."""

    INSERTED = "inserted"
    REPLACED = "replaced"


class RecordStore:
    """Async wrapper around a SQLite table of development applications."""

    def __init__(self, database_path: str = "data.sqlite") -> None:
        """
        Initialize the store.

        Args:
            database_path: SQLite file path, or ':memory:'.
        """
        self._database_path = database_path
        self._connection: sqlite3.Connection | None = None
        self._lock = asyncio.Lock()

    async def __aenter__(self) -> "RecordStore":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _connect(self) -> sqlite3.Connection:
        """Open the database and create the schema, closing it again on failure."""
        connection = sqlite3.connect(self._database_path, check_same_thread=False)
        try:
            connection.execute(CREATE_TABLE_SQL)
            connection.commit()
        except sqlite3.Error:
            connection.close()
            raise
        return connection

    async def initialize(self) -> "RecordStore":
        """
        Open the database and create the table if needed.

        Safe to call on every run. The connection is only kept once the
        schema exists, so a failed call can be retried.

        Raises:
            StoreError: If the database cannot be opened or the schema created.
        """
        async with self._lock:
            if self._connection is None:
                try:
                    self._connection = await asyncio.to_thread(self._connect)
                except sqlite3.Error as e:
                    raise StoreError(
                        f"Could not initialize database {self._database_path}: {e}"
                    ) from e
                logger.info("Record store initialized", database=self._database_path)
        return self

    async def close(self) -> None:
        """Close the database connection."""
        async with self._lock:
            if self._connection:
                await asyncio.to_thread(self._connection.close)
                self._connection = None
                logger.debug("Record store closed", database=self._database_path)

    def _ensure_open(self) -> sqlite3.Connection:
        if self._connection is None:
            raise StoreError("Record store not initialized")
        return self._connection

    def _write(self, connection: sqlite3.Connection, application: DevelopmentApplication) -> bool:
        """Replace the row for the application; return whether one already existed."""
        try:
            existed = connection.execute(EXISTS_SQL, (application.reference,)).fetchone()
            connection.execute(UPSERT_SQL, application.to_row())
            connection.commit()
        except sqlite3.Error:
            connection.rollback()
            raise
        return existed is not None

    async def upsert(self, application: DevelopmentApplication) -> UpsertOutcome:
        """
        Insert the application, replacing any row with the same reference.

        Raises:
            StoreError: If the write fails.
        """
        async with self._lock:
            connection = self._ensure_open()
            try:
                existed = await asyncio.to_thread(self._write, connection, application)
            except sqlite3.Error as e:
                raise StoreError(f"Could not write {application.reference}: {e}") from e

        if existed:
            logger.info("Replaced existing application", **application.to_dict())
            return UpsertOutcome.REPLACED
        logger.info("Inserted new application", **application.to_dict())
        return UpsertOutcome.INSERTED

    async def get(self, reference: str) -> DevelopmentApplication | None:
        """Look up an application by council reference."""
        async with self._lock:
            connection = self._ensure_open()
            row = await asyncio.to_thread(
                lambda: connection.execute(SELECT_SQL, (reference,)).fetchone()
            )
        if row is None:
            return None
        return DevelopmentApplication(*row)

    async def count(self) -> int:
        """Count stored applications."""
        async with self._lock:
            connection = self._ensure_open()
            (total,) = await asyncio.to_thread(
                lambda: connection.execute("select count(*) from [data]").fetchone()
            )
        return total
