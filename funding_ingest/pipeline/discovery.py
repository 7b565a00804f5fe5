"""
Discovery stage: walk listing pages, capture raw announcements.

Discovery only downloads and stores. It never interprets dates, classifies
or extracts eligibility; the process workers do that from the stored raw
markup and attachments.
"""

import asyncio
import re
import uuid
from datetime import date
from pathlib import Path
from typing import Awaitable, Callable, Optional

import httpx
import structlog

from ..core.checkpoint import CheckpointStore
from ..core.deduplicator import Deduplicator
from ..core.exceptions import DiscoveryFatalError, FundingIngestError
from ..core.models import (
    Checkpoint,
    DetailPage,
    ListingRow,
    ProcessingStatus,
    ScrapingStatus,
    SourceConfig,
)
from ..core.store import RecordStore
from ..navigators.base import ListingNavigator
from .events import DiscoveryCompleted, EventBus
from .summary import RunSummary

logger = structlog.get_logger(__name__)

UNSAFE_PATH_CHARS = re.compile(r"[^\w.-]+")


def date_range_folder(from_date: date, to_date: date) -> str:
    """Folder name for a discovery window, e.g. ``20250101_to_20250131``."""
    return f"{from_date:%Y%m%d}_to_{to_date:%Y%m%d}"


def folder_slug(value: Optional[str]) -> str:
    """Reduce listing text to a safe single path component."""
    if not value:
        return ""
    return UNSAFE_PATH_CHARS.sub("_", value.strip()).strip("._")


class DiscoveryStage:
    """
    Sequential discovery over one source and date window.

    Usage:
        stage = DiscoveryStage(source, store, navigator, checkpoints, "data/attachments")
        summary = await stage.run(date(2025, 1, 1), date(2025, 1, 31), resume=True)
    """

    def __init__(
        self,
        source: SourceConfig,
        store: RecordStore,
        navigator: ListingNavigator,
        checkpoint_store: CheckpointStore,
        attachment_root: str,
        event_bus: Optional[EventBus] = None,
        dry_run: bool = False,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize discovery.

        Args:
            source: Source configuration (delays, pagination)
            store: Record store for raw captures
            navigator: Listing navigator bound to a rate-limited client
            checkpoint_store: Resumability snapshots
            attachment_root: Base directory for downloaded files
            event_bus: Receives DiscoveryCompleted
            dry_run: Walk listings only; no downloads or writes
            sleep: Delay function (tests pass a no-op)
        """
        self.source = source
        self.store = store
        self.navigator = navigator
        self.checkpoint_store = checkpoint_store
        self.attachment_root = Path(attachment_root)
        self.event_bus = event_bus
        self.dry_run = dry_run
        self._sleep = sleep
        self.deduplicator = Deduplicator(store)
        self.logger = logger.bind(source_id=source.source_id)

    async def run(
        self,
        from_date: date,
        to_date: date,
        resume: bool = False,
        max_pages: Optional[int] = None,
    ) -> RunSummary:
        """
        Discover announcements published in a date window.

        Args:
            from_date: Window start (inclusive)
            to_date: Window end (inclusive)
            resume: Continue after the last checkpointed page
            max_pages: Optional page limit

        Returns:
            RunSummary for the run

        Raises:
            DiscoveryFatalError: Listing walk failed; checkpoint was saved
        """
        if from_date > to_date:
            raise ValueError(f"from_date {from_date} is after to_date {to_date}")

        session_id = uuid.uuid4().hex
        summary = RunSummary(stage="discovery", session_id=session_id)

        source_id = self.source.source_id
        checkpoint = Checkpoint.for_window(source_id, from_date, to_date)
        if resume:
            saved = self.checkpoint_store.load()
            if saved is not None and saved.matches(source_id, from_date, to_date):
                checkpoint = saved
            elif saved is not None:
                self.logger.warning(
                    "checkpoint_discarded",
                    checkpoint_source=saved.source_id,
                    checkpoint_from=saved.from_date,
                    checkpoint_to=saved.to_date,
                    last_page=saved.last_processed_page,
                )

        self.logger.info(
            "discovery_started",
            session_id=session_id,
            from_date=from_date.isoformat(),
            to_date=to_date.isoformat(),
            resume=resume,
            start_page=checkpoint.last_processed_page + 1,
            dry_run=self.dry_run,
        )

        try:
            first_html = await self.navigator.fetch_listing_page(1, from_date, to_date)
            total_pages = self.navigator.discover_total_pages(first_html, max_pages=max_pages)
            self.logger.info("pages_to_scrape", total_pages=total_pages)

            for page in range(checkpoint.last_processed_page + 1, total_pages + 1):
                html = first_html if page == 1 else await self.navigator.fetch_listing_page(
                    page, from_date, to_date
                )
                rows = self.navigator.parse_rows(html)
                summary.pages += 1
                self.logger.info("listing_page_parsed", page=page, total_pages=total_pages, rows=len(rows))

                if not rows:
                    self.logger.info("empty_listing_page", page=page)
                    break

                for index, row in enumerate(rows, start=1):
                    await self._process_row(
                        row, page, index, from_date, to_date, session_id, checkpoint, summary
                    )

                checkpoint.last_processed_page = page
                if not self.dry_run:
                    self.checkpoint_store.save(checkpoint)

                if page < total_pages:
                    await self._sleep(self.source.page_delay)

        except (httpx.HTTPError, FundingIngestError, OSError) as e:
            if not self.dry_run:
                self.checkpoint_store.save(checkpoint)
            self.logger.error(
                "discovery_fatal",
                error=str(e),
                last_page=checkpoint.last_processed_page,
            )
            raise DiscoveryFatalError(
                f"Discovery stopped after page {checkpoint.last_processed_page}: {e}",
                last_page=checkpoint.last_processed_page,
            ) from e

        if not self.dry_run:
            self.checkpoint_store.delete()

        summary.finish()
        self.logger.info("discovery_complete", **summary.to_dict())

        if self.event_bus is not None and not self.dry_run:
            await self.event_bus.publish(
                DiscoveryCompleted(session_id=session_id, source_id=self.source.source_id, summary=summary)
            )
        return summary

    async def _process_row(
        self,
        row: ListingRow,
        page: int,
        index: int,
        from_date: date,
        to_date: date,
        session_id: str,
        checkpoint: Checkpoint,
        summary: RunSummary,
    ) -> None:
        """Capture one listing row; failures are recorded, never raised."""
        summary.found += 1

        if self.dry_run:
            self.logger.info("discovered_row", url=row.url, title=row.title)
            return

        dedup = self.deduplicator.check(row.url)
        if dedup.action == "skip":
            summary.skipped += 1
            checkpoint.total_skipped += 1
            checkpoint.total_processed += 1
            return

        folder = (
            self.attachment_root
            / date_range_folder(from_date, to_date)
            / f"page-{page}"
            / f"announcement-{folder_slug(row.announcement_id) or index}"
        )

        try:
            detail = await self.navigator.fetch_detail(row.url, fallback_title=row.title)
            filenames = await self._download_attachments(detail, folder)
            fields = self._capture_fields(row, detail, str(folder), filenames, session_id)

            if dedup.existing_id:
                self.store.update_status(dedup.existing_id, fields)
                summary.updated += 1
            else:
                self.store.create_if_absent(dedup.content_hash, fields)
                summary.new += 1
            self.deduplicator.mark_seen(dedup.content_hash)

            summary.downloaded += len(filenames)
            checkpoint.total_downloaded += 1
            checkpoint.total_processed += 1
            checkpoint.last_processed_url = row.url
            self.logger.info(
                "announcement_captured",
                url=row.url,
                title=row.title[:60],
                attachments=len(filenames),
            )
        except Exception as e:
            self.logger.error("announcement_capture_failed", url=row.url, error=str(e))
            summary.failed += 1
            summary.errors.append(f"{row.url}: {e}")
            checkpoint.total_skipped += 1
            self._record_failure(row, dedup.content_hash, dedup.existing_id, str(e), session_id)

        await self._sleep(self.source.detail_delay)

    async def _download_attachments(self, detail: DetailPage, folder: Path) -> list[str]:
        filenames: list[str] = []
        for i, url in enumerate(detail.attachment_urls):
            if i > 0:
                await self._sleep(self.source.download_delay)
            try:
                filename = await self.navigator.http_client.download(url, str(folder), taken=filenames)
            except (httpx.HTTPError, OSError) as e:
                self.logger.warning("attachment_download_failed", url=url, error=str(e))
                continue
            filenames.append(filename)
        return filenames

    def _capture_fields(
        self,
        row: ListingRow,
        detail: DetailPage,
        folder: str,
        filenames: list[str],
        session_id: str,
    ) -> dict:
        return {
            "url": row.url,
            "source_id": self.source.source_id,
            "title": detail.title or row.title,
            "ministry": detail.ministry or row.ministry,
            "announcing_agency": detail.announcing_agency,
            "description": detail.description,
            "deadline_raw": detail.deadline or row.deadline,
            "published_at_raw": detail.published_at or row.published_at,
            "raw_html": detail.raw_html,
            "attachment_folder": folder,
            "attachment_filenames": filenames,
            "attachment_count": len(filenames),
            "scraping_status": ScrapingStatus.SCRAPED,
            "scraping_error": None,
            "processing_status": ProcessingStatus.PENDING,
            "processing_attempts": 0,
            "discovery_session_id": session_id,
        }

    def _record_failure(
        self,
        row: ListingRow,
        content_hash: str,
        existing_id: Optional[str],
        error: str,
        session_id: str,
    ) -> None:
        fields = {
            "scraping_status": ScrapingStatus.SCRAPING_FAILED,
            "scraping_error": error,
            "discovery_session_id": session_id,
        }
        try:
            if existing_id:
                self.store.update_status(existing_id, fields)
            else:
                self.store.create_if_absent(
                    content_hash,
                    {"url": row.url, "source_id": self.source.source_id, "title": row.title, **fields},
                )
        except FundingIngestError as e:
            self.logger.error("failure_record_not_saved", url=row.url, error=str(e))
