"""
Tests for the SQLite record store.
"""

import asyncio
import sqlite3

import pytest
from structlog.testing import capture_logs

from src.mitcham_scraper.models import DevelopmentApplication
from src.mitcham_scraper.store import RecordStore, StoreError, UpsertOutcome


def make_application(reference: str = "123/4567/18", **overrides) -> DevelopmentApplication:
    values = {
        "reference": reference,
        "address": "12 Belair Road, MITCHAM SA 5062",
        "reason": "Construct a carport",
        "info_url": f"https://portal.test/detail?id={reference}",
        "comment_url": "mailto:council@test.sa.gov.au",
        "date_scraped": "2018-07-14",
        "date_received": "2019-03-05",
    }
    values.update(overrides)
    return DevelopmentApplication(**values)


@pytest.fixture
async def store(tmp_path):
    """Initialized store backed by a temporary file."""
    record_store = RecordStore(str(tmp_path / "data.sqlite"))
    await record_store.initialize()
    yield record_store
    await record_store.close()


class TestInitialize:
    """Tests for schema creation."""

    @pytest.mark.asyncio
    async def test_creates_table_with_column_order(self, tmp_path):
        path = tmp_path / "data.sqlite"
        async with RecordStore(str(path)):
            pass

        connection = sqlite3.connect(path)
        columns = [row[1] for row in connection.execute("pragma table_info([data])")]
        primary_key = [row[1] for row in connection.execute("pragma table_info([data])") if row[5]]
        connection.close()

        assert columns == [
            "council_reference",
            "address",
            "description",
            "info_url",
            "comment_url",
            "date_scraped",
            "date_received",
            "on_notice_from",
            "on_notice_to",
        ]
        assert primary_key == ["council_reference"]

    @pytest.mark.asyncio
    async def test_is_idempotent_across_runs(self, tmp_path):
        """
        Given: A database that already holds a record
        When: Initialize again as a new run would
        Then: Existing rows are kept
        """
        path = str(tmp_path / "data.sqlite")
        async with RecordStore(path) as first:
            await first.upsert(make_application())

        async with RecordStore(path) as second:
            await second.initialize()
            assert await second.count() == 1

    @pytest.mark.asyncio
    async def test_unopenable_database_raises(self, tmp_path):
        record_store = RecordStore(str(tmp_path / "missing" / "dir" / "data.sqlite"))

        with pytest.raises(StoreError):
            await record_store.initialize()

    @pytest.mark.asyncio
    async def test_non_database_file_fails_every_attempt(self, tmp_path):
        """
        Given: A data file that is not a SQLite database
        When: Initialize twice
        Then: Both attempts raise, and no half-open connection is kept
        """
        path = tmp_path / "data.sqlite"
        path.write_bytes(b"this is not a sqlite database file" * 100)
        record_store = RecordStore(str(path))

        with pytest.raises(StoreError):
            await record_store.initialize()
        with pytest.raises(StoreError):
            await record_store.initialize()
        with pytest.raises(StoreError):
            await record_store.upsert(make_application())

    @pytest.mark.asyncio
    async def test_upsert_before_initialize_raises(self):
        with pytest.raises(StoreError):
            await RecordStore(":memory:").upsert(make_application())


class TestUpsert:
    """Tests for insert-or-replace semantics."""

    @pytest.mark.asyncio
    async def test_insert_new_record(self, store: RecordStore):
        outcome = await store.upsert(make_application())

        assert outcome == UpsertOutcome.INSERTED
        assert await store.get("123/4567/18") == make_application()

    @pytest.mark.asyncio
    async def test_same_reference_replaces_row(self, store: RecordStore):
        """
        Given: A stored record
        When: Upsert the same reference with different values
        Then: Exactly one row remains, holding the latest values
        """
        await store.upsert(make_application(address="Old address", date_received=""))
        outcome = await store.upsert(
            make_application(address="New address", reason="Revised", date_received="2019-04-01")
        )

        stored = await store.get("123/4567/18")
        assert outcome == UpsertOutcome.REPLACED
        assert await store.count() == 1
        assert stored.address == "New address"
        assert stored.reason == "Revised"
        assert stored.date_received == "2019-04-01"

    @pytest.mark.asyncio
    async def test_notice_dates_stored_as_null(self, store: RecordStore, tmp_path):
        await store.upsert(make_application())

        connection = sqlite3.connect(tmp_path / "data.sqlite")
        row = connection.execute("select on_notice_from, on_notice_to from [data]").fetchone()
        connection.close()

        assert row == (None, None)

    @pytest.mark.asyncio
    async def test_concurrent_upserts_leave_one_row(self, store: RecordStore):
        applications = [make_application(reason=f"Revision {i}") for i in range(10)]

        outcomes = await asyncio.gather(*(store.upsert(a) for a in applications))

        assert outcomes.count(UpsertOutcome.INSERTED) == 1
        assert await store.count() == 1
        assert (await store.get("123/4567/18")).reason.startswith("Revision ")

    @pytest.mark.asyncio
    async def test_get_unknown_reference(self, store: RecordStore):
        assert await store.get("999/9999/99") is None

    @pytest.mark.asyncio
    async def test_write_logs_full_record(self, store: RecordStore):
        with capture_logs() as logs:
            await store.upsert(make_application())
            await store.upsert(make_application(reason="Revised"))

        inserted, replaced = [entry for entry in logs if entry["log_level"] == "info"]
        assert inserted["event"] == "Inserted new application"
        assert inserted["council_reference"] == "123/4567/18"
        assert inserted["address"] == "12 Belair Road, MITCHAM SA 5062"
        assert replaced["event"] == "Replaced existing application"
        assert replaced["description"] == "Revised"


class TestToDict:
    """Tests for the record dictionary form."""

    def test_keys_follow_table_columns(self):
        assert list(make_application().to_dict()) == [
            "council_reference",
            "address",
            "description",
            "info_url",
            "comment_url",
            "date_scraped",
            "date_received",
            "on_notice_from",
            "on_notice_to",
        ]
