"""
Process worker pool: raw capture -> canonical program record.

Each slot claims a pending capture, extracts text from the stored detail
markup and attachments, classifies it, runs the eligibility cascade,
normalizes to canonical codes and upserts the program by content hash.
"""

import asyncio
import inspect
from typing import Awaitable, Callable, Optional, Union

import structlog

from ..core.models import (
    AnnouncementType,
    CanonicalProgramRecord,
    ProcessingStatus,
    ProgramStatus,
    RawCapture,
    utcnow,
)
from ..core.normalizer import (
    APPLICATION_START_LABELS,
    DEADLINE_LABELS,
    PUBLISHED_LABELS,
    extract_labelled_date,
    html_to_text,
    is_past,
    normalize_title,
    parse_korean_date,
)
from ..core.store import RecordStore
from ..extraction.cascade import EligibilityCascade
from ..extraction.classification import classify_announcement
from ..extraction.extractors import ExtractionRequest
from ..extraction.patterns import extract_support_target
from ..normalization.mapper import normalize_eligibility, requires_regional_filter
from ..plugins.documents import DocumentText, DocumentTextExtractor
from .summary import RunSummary

logger = structlog.get_logger(__name__)

CacheInvalidator = Callable[[CanonicalProgramRecord], Union[None, Awaitable[None]]]


async def invalidate_cache(invalidator: Optional[CacheInvalidator], program: CanonicalProgramRecord) -> None:
    """Call a sync or async cache hook; failures are logged, never raised."""
    if invalidator is None:
        return
    try:
        result = invalidator(program)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        # The program is already stored; a stale cache is not a pipeline failure
        logger.warning("cache_invalidation_failed", program_id=program.id, error=str(e))


class ProcessWorkerPool:
    """
    Bounded pool of process workers.

    Usage:
        pool = ProcessWorkerPool(store, cascade, DocumentTextExtractor(), concurrency=3)
        summary = await pool.run()
    """

    def __init__(
        self,
        store: RecordStore,
        cascade: EligibilityCascade,
        document_extractor: Optional[DocumentTextExtractor] = None,
        concurrency: int = 1,
        poll_interval: float = 5.0,
        max_idle_polls: int = 16,
        max_attempts: int = 3,
        inter_job_delay: float = 1.0,
        cache_invalidator: Optional[CacheInvalidator] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize worker pool.

        Args:
            store: Record store holding captures and programs
            cascade: Eligibility extraction cascade
            document_extractor: Attachment text extraction
            concurrency: Number of worker slots
            poll_interval: Seconds between empty polls
            max_idle_polls: Consecutive empty polls before the pool exits
            max_attempts: Processing attempts before MANUAL_REVIEW
            inter_job_delay: Seconds between jobs in one slot
            cache_invalidator: Called with each upserted program
            sleep: Delay function (tests pass a no-op)
        """
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.store = store
        self.cascade = cascade
        self.document_extractor = document_extractor or DocumentTextExtractor()
        self.concurrency = concurrency
        self.poll_interval = poll_interval
        self.max_idle_polls = max_idle_polls
        self.max_attempts = max_attempts
        self.inter_job_delay = inter_job_delay
        self.cache_invalidator = cache_invalidator
        self._sleep = sleep
        self._semaphore = asyncio.Semaphore(concurrency)
        self._idle_polls = 0
        self._stopping = False

    def stop(self) -> None:
        """Ask every slot to exit after its current job."""
        self._stopping = True

    async def run(self) -> RunSummary:
        """
        Process captures until the queue stays empty.

        Returns:
            RunSummary including per-tier cascade accounting
        """
        summary = RunSummary(stage="process")
        self._idle_polls = 0
        self._stopping = False

        logger.info("worker_pool_started", concurrency=self.concurrency, max_attempts=self.max_attempts)

        await asyncio.gather(*(self._slot(i, summary) for i in range(self.concurrency)))

        summary.tiers = self.cascade.stats_dict()
        summary.finish()
        logger.info("worker_pool_finished", **summary.to_dict())
        return summary

    async def _slot(self, slot_id: int, summary: RunSummary) -> None:
        log = logger.bind(slot=slot_id)
        while not self._stopping:
            capture = self.store.claim_next_pending(self.max_attempts)
            if capture is None:
                self._idle_polls += 1
                if self._idle_polls >= self.max_idle_polls:
                    log.info("worker_idle_exit", idle_polls=self._idle_polls)
                    return
                await self._sleep(self.poll_interval)
                continue

            self._idle_polls = 0
            async with self._semaphore:
                await self.process_one(capture, summary)
            await self._sleep(self.inter_job_delay)

    async def process_one(
        self,
        capture: RawCapture,
        summary: Optional[RunSummary] = None,
    ) -> Optional[CanonicalProgramRecord]:
        """
        Turn one claimed capture into a canonical program.

        Failures leave the capture PROCESSING_FAILED (retryable) or
        MANUAL_REVIEW once the attempt bound is reached.

        Args:
            capture: Capture already moved to PROCESSING by a claim
            summary: Counters to update

        Returns:
            The upserted program, or None on failure
        """
        summary = summary or RunSummary(stage="process")
        summary.found += 1
        log = logger.bind(capture_id=capture.id, url=capture.url, attempt=capture.processing_attempts)

        try:
            program, created = await self._build_program(capture)
        except Exception as e:
            summary.failed += 1
            summary.errors.append(f"{capture.url}: {e}")
            if capture.processing_attempts >= self.max_attempts:
                status = ProcessingStatus.MANUAL_REVIEW
                summary.manual_review += 1
            else:
                status = ProcessingStatus.PROCESSING_FAILED
            self.store.update_status(
                capture.id,
                {"processing_status": status, "processing_error": str(e)},
            )
            log.error("processing_failed", error=str(e), status=status.value)
            return None

        self.store.update_status(
            capture.id,
            {
                "processing_status": ProcessingStatus.PROCESSED,
                "processing_error": None,
                "program_id": program.id,
                "processed_at": utcnow(),
            },
        )
        if created:
            summary.new += 1
        else:
            summary.updated += 1

        await invalidate_cache(self.cache_invalidator, program)
        log.info(
            "capture_processed",
            program_id=program.id,
            announcement_type=program.announcement_type.value,
            confidence=program.eligibility_confidence.value,
            created=created,
        )
        return program

    async def _build_program(self, capture: RawCapture) -> tuple[CanonicalProgramRecord, bool]:
        page_text = html_to_text(capture.raw_html)
        description = capture.description or ""
        title = normalize_title(capture.title)

        document = await asyncio.to_thread(
            self.document_extractor.extract_folder,
            capture.attachment_folder,
            list(capture.attachment_filenames),
        )

        # Attachments often carry the eligibility section the page omits
        combined = "\n\n".join(part for part in (description, page_text, document.text) if part)
        announcement_type = classify_announcement(title, combined)
        fields = self._base_fields(capture, title, page_text, announcement_type)

        if announcement_type.is_funding:
            request = self._extraction_request(title, description, page_text, document, combined)
            eligibility = await self.cascade.run(request)
            fields.update(normalize_eligibility(eligibility))
        else:
            logger.info("cascade_skipped", url=capture.url, announcement_type=announcement_type.value)

        return self.store.upsert_canonical_program(capture.content_hash, fields)

    def _extraction_request(
        self,
        title: str,
        description: str,
        page_text: str,
        document: DocumentText,
        combined: str,
    ) -> ExtractionRequest:
        support_target = extract_support_target(page_text) or extract_support_target(document.text)
        return ExtractionRequest(
            title=title,
            description=description or page_text,
            support_target=support_target,
            document_text=combined or None,
        )

    def _base_fields(
        self,
        capture: RawCapture,
        title: str,
        page_text: str,
        announcement_type: AnnouncementType,
    ) -> dict:
        deadline = parse_korean_date(capture.deadline_raw) or extract_labelled_date(page_text, DEADLINE_LABELS)
        published_at = parse_korean_date(capture.published_at_raw) or extract_labelled_date(
            page_text, PUBLISHED_LABELS
        )
        application_start = extract_labelled_date(page_text, APPLICATION_START_LABELS)

        return {
            "source_id": capture.source_id,
            "url": capture.url,
            "title": title,
            "ministry": capture.ministry,
            "announcing_agency": capture.announcing_agency,
            "published_at": published_at,
            "deadline": deadline,
            "application_start": application_start,
            "announcement_type": announcement_type,
            "requires_regional_filter": requires_regional_filter(title, capture.description or ""),
            "status": ProgramStatus.EXPIRED if is_past(deadline) else ProgramStatus.ACTIVE,
            "scraped_at": capture.captured_at,
        }

