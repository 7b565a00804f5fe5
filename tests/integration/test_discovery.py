"""Integration tests for the discovery stage against a mock portal."""

from datetime import date

import pytest

from funding_ingest.core.checkpoint import CheckpointStore
from funding_ingest.core.exceptions import DiscoveryFatalError
from funding_ingest.core.http_client import HttpClient
from funding_ingest.core.models import Checkpoint, ProcessingStatus, ScrapingStatus
from funding_ingest.navigators.table_listing import TableListingNavigator
from funding_ingest.pipeline.discovery import DiscoveryStage, date_range_folder, folder_slug
from funding_ingest.pipeline.events import DiscoveryCompleted, EventBus

FROM_DATE = date(2025, 1, 1)
TO_DATE = date(2025, 1, 31)


async def discover(
    portal,
    source,
    store,
    tmp_path,
    sleep,
    resume=False,
    max_pages=None,
    dry_run=False,
    event_bus=None,
    from_date=FROM_DATE,
    to_date=TO_DATE,
):
    async with HttpClient(requests_per_minute=600, timeout=5, retry_wait=0, transport=portal.transport) as client:
        stage = DiscoveryStage(
            source=source,
            store=store,
            navigator=TableListingNavigator(source, client),
            checkpoint_store=CheckpointStore(str(tmp_path / "checkpoint.json")),
            attachment_root=str(tmp_path / "attachments"),
            event_bus=event_bus,
            dry_run=dry_run,
            sleep=sleep,
        )
        return await stage.run(from_date, to_date, resume=resume, max_pages=max_pages)


def capture_for(store, uid):
    return store.find_by_unique_key(url=f"https://www.ntis.go.kr/rndgate/eg/un/ra/view.do?roRndUid={uid}")


class TestDiscoveryRun:
    """Tests for a full discovery run."""

    @pytest.mark.asyncio
    async def test_captures_every_announcement(self, portal, ntis_source, store, tmp_path, no_sleep):
        """Test listing walk, raw capture and attachment download."""
        bus = EventBus()
        events = []

        async def on_completed(event):
            events.append(event)

        bus.subscribe(DiscoveryCompleted, on_completed)

        summary = await discover(portal, ntis_source, store, tmp_path, no_sleep, event_bus=bus)

        assert (summary.found, summary.new, summary.pages, summary.downloaded) == (5, 5, 3, 5)
        assert summary.failed == 0
        assert len(store.list_captures()) == 5

        capture = capture_for(store, 1)
        assert capture.scraping_status is ScrapingStatus.SCRAPED
        assert capture.processing_status is ProcessingStatus.PENDING
        assert capture.title == "2025년 기술개발 지원사업"
        assert capture.ministry == "과학기술정보통신부"
        assert capture.announcing_agency == "정보통신기획평가원"
        assert capture.deadline_raw == "2099.02.10"
        assert capture.published_at_raw == "2025.01.10"
        assert "서울특별시 소재" in capture.description
        assert capture.attachment_filenames == ["notice-1.txt"]
        assert capture.discovery_session_id == summary.session_id

        expected_file = (
            tmp_path / "attachments" / date_range_folder(FROM_DATE, TO_DATE) / "page-1" / "announcement-1" / "notice-1.txt"
        )
        assert expected_file.read_text(encoding="utf-8") == "제출서류 및 평가 절차 안내"

        assert not (tmp_path / "checkpoint.json").exists()
        assert [e.session_id for e in events] == [summary.session_id]

    @pytest.mark.asyncio
    async def test_listing_requests_carry_window(self, portal, ntis_source, store, tmp_path, no_sleep):
        """Test that every listing request filters by the date window."""
        await discover(portal, ntis_source, store, tmp_path, no_sleep)

        listing_requests = portal.requests_to("/rndgate/eg/un/ra/mng.do")
        assert [r.url.params["pageIndex"] for r in listing_requests] == ["1", "2", "3"]
        assert {r.url.params["searchCondition2"] for r in listing_requests} == {"2025.01.01"}
        assert {r.url.params["searchCondition3"] for r in listing_requests} == {"2025.01.31"}

    @pytest.mark.asyncio
    async def test_rerun_is_idempotent(self, portal, ntis_source, store, tmp_path, no_sleep):
        """Test that a second run skips known announcements without fetching them."""
        await discover(portal, ntis_source, store, tmp_path, no_sleep)
        details_before = len(portal.requests_to("/rndgate/eg/un/ra/view.do"))

        summary = await discover(portal, ntis_source, store, tmp_path, no_sleep)

        assert (summary.new, summary.skipped) == (0, 5)
        assert len(store.list_captures()) == 5
        assert len(portal.requests_to("/rndgate/eg/un/ra/view.do")) == details_before

    @pytest.mark.asyncio
    async def test_max_pages(self, portal, ntis_source, store, tmp_path, no_sleep):
        """Test the page limit."""
        summary = await discover(portal, ntis_source, store, tmp_path, no_sleep, max_pages=1)
        assert (summary.pages, summary.found) == (1, 2)

    @pytest.mark.asyncio
    async def test_window_must_be_ordered(self, portal, ntis_source, store, tmp_path, no_sleep):
        """Test that an inverted window is rejected before any request."""
        async with HttpClient(transport=portal.transport, retry_wait=0) as client:
            stage = DiscoveryStage(
                ntis_source,
                store,
                TableListingNavigator(ntis_source, client),
                CheckpointStore(str(tmp_path / "checkpoint.json")),
                str(tmp_path / "attachments"),
                sleep=no_sleep,
            )
            with pytest.raises(ValueError):
                await stage.run(TO_DATE, FROM_DATE)

        assert portal.requests == []


class TestDiscoveryFailures:
    """Tests for per-item and fatal failures."""

    @pytest.mark.asyncio
    async def test_item_failure_recorded_and_retried(self, portal, ntis_source, store, tmp_path, no_sleep):
        """Test that one failing detail page does not stop the run and is retried later."""
        portal.failing_details = {2}

        summary = await discover(portal, ntis_source, store, tmp_path, no_sleep)

        assert (summary.new, summary.failed) == (4, 1)
        failed = capture_for(store, 2)
        assert failed.scraping_status is ScrapingStatus.SCRAPING_FAILED
        assert "500" in failed.scraping_error
        assert store.claim_next_pending(max_attempts=3).url != failed.url

        portal.failing_details = set()
        portal.requests.clear()
        retry = await discover(portal, ntis_source, store, tmp_path, no_sleep)

        assert (retry.updated, retry.skipped, retry.new) == (1, 4, 0)
        assert capture_for(store, 2).scraping_status is ScrapingStatus.SCRAPED
        assert capture_for(store, 2).id == failed.id
        detail_uids = [r.url.params["roRndUid"] for r in portal.requests_to("/rndgate/eg/un/ra/view.do")]
        assert detail_uids == ["2"]

    @pytest.mark.asyncio
    async def test_fatal_error_checkpoints_and_resumes(self, portal, ntis_source, store, tmp_path, no_sleep):
        """Test that a listing failure saves a checkpoint and resume continues after it."""
        portal.failing_pages = {2}

        with pytest.raises(DiscoveryFatalError) as exc_info:
            await discover(portal, ntis_source, store, tmp_path, no_sleep)

        assert exc_info.value.last_page == 1
        checkpoint = CheckpointStore(str(tmp_path / "checkpoint.json")).load()
        assert isinstance(checkpoint, Checkpoint)
        assert checkpoint.last_processed_page == 1
        assert len(store.list_captures()) == 2

        portal.failing_pages = set()
        portal.requests.clear()
        summary = await discover(portal, ntis_source, store, tmp_path, no_sleep, resume=True)

        assert (summary.pages, summary.new) == (2, 3)
        assert len(store.list_captures()) == 5
        detail_uids = {r.url.params["roRndUid"] for r in portal.requests_to("/rndgate/eg/un/ra/view.do")}
        assert detail_uids == {"3", "4", "5"}
        assert not (tmp_path / "checkpoint.json").exists()

    @pytest.mark.asyncio
    async def test_resume_ignores_checkpoint_from_other_window(
        self, portal, ntis_source, store, tmp_path, no_sleep
    ):
        """Test that a checkpoint left by one window does not skip pages of another."""
        portal.failing_pages = {2}
        with pytest.raises(DiscoveryFatalError):
            await discover(portal, ntis_source, store, tmp_path, no_sleep)

        portal.failing_pages = set()
        portal.requests.clear()
        summary = await discover(
            portal,
            ntis_source,
            store,
            tmp_path,
            no_sleep,
            resume=True,
            from_date=date(2025, 2, 1),
            to_date=date(2025, 2, 28),
        )

        assert (summary.pages, summary.found) == (3, 5)
        assert (summary.new, summary.skipped) == (3, 2)
        listing_requests = portal.requests_to("/rndgate/eg/un/ra/mng.do")
        assert [r.url.params["pageIndex"] for r in listing_requests] == ["1", "2", "3"]
        assert {r.url.params["searchCondition2"] for r in listing_requests} == {"2025.02.01"}
        assert not (tmp_path / "checkpoint.json").exists()

    @pytest.mark.asyncio
    async def test_dry_run_writes_nothing(self, portal, ntis_source, store, tmp_path, no_sleep):
        """Test that a dry run only walks listings."""
        bus = EventBus()
        events = []

        async def on_completed(event):
            events.append(event)

        bus.subscribe(DiscoveryCompleted, on_completed)

        summary = await discover(portal, ntis_source, store, tmp_path, no_sleep, dry_run=True, event_bus=bus)

        assert (summary.found, summary.new) == (5, 0)
        assert store.list_captures() == []
        assert portal.requests_to("/rndgate/eg/un/ra/view.do") == []
        assert not (tmp_path / "attachments").exists()
        assert not (tmp_path / "checkpoint.json").exists()
        assert events == []


class TestFolderSlug:
    """Tests for attachment folder naming from listing text."""

    def test_path_separators_replaced(self):
        """Test that listing ids cannot escape the attachment folder."""
        assert folder_slug("../12/34 ") == "12_34"

    def test_plain_id_kept(self):
        """Test that ordinary ids pass through."""
        assert folder_slug("2025-R&D 001") == "2025-R_D_001"

    def test_blank_is_empty(self):
        """Test that blank ids fall back to the caller's default."""
        assert folder_slug("   ") == ""
        assert folder_slug(None) == ""
