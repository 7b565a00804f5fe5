"""
Pipeline orchestrator.

Wires settings, the source registry, the record store and the stages
together:
- discovery (listing walk, raw capture, attachments)
- processing (worker pool, extraction cascade, normalization)
- expiry sweep
- scheduler (cron discovery chained to processing)
"""

from datetime import date
from pathlib import Path
from typing import Optional

import httpx
import structlog

from .config.loader import ConfigLoader
from .config.settings import Settings
from .core.checkpoint import CheckpointStore
from .core.deduplicator import Deduplicator
from .core.http_client import HttpClient
from .core.models import SourceConfig
from .core.rate_limiter import RateLimiterRegistry
from .core.store import InMemoryRecordStore, JsonFileRecordStore, RecordStore
from .extraction.cascade import EligibilityCascade
from .navigators.table_listing import TableListingNavigator
from .pipeline.discovery import DiscoveryStage
from .pipeline.events import DiscoveryCompleted, EventBus
from .pipeline.expiry import run_expiry_sweep
from .pipeline.scheduler import PipelineScheduler
from .pipeline.summary import RunSummary
from .pipeline.worker import CacheInvalidator, ProcessWorkerPool
from .plugins.documents import DocumentTextExtractor
from .plugins.llm import InferenceProvider, select_provider

logger = structlog.get_logger(__name__)


class IngestionPipeline:
    """
    Entry point for every pipeline run.

    Usage:
        pipeline = IngestionPipeline(Settings.from_env())
        await pipeline.run_discovery(date(2025, 1, 1), date(2025, 1, 31))
        await pipeline.run_process()
    """

    def __init__(
        self,
        settings: Settings,
        store: Optional[RecordStore] = None,
        event_bus: Optional[EventBus] = None,
        provider: Optional[InferenceProvider] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        cache_invalidator: Optional[CacheInvalidator] = None,
    ):
        """
        Initialize pipeline.

        Args:
            settings: Runtime settings
            store: Record store (JSON file under the data dir by default)
            event_bus: Shared event bus
            provider: Inference provider (selected from API keys if omitted)
            transport: httpx transport override (tests)
            cache_invalidator: Downstream cache hook for upserted programs
        """
        self.settings = settings
        self.store = store or JsonFileRecordStore(str(settings.store_path))
        self.event_bus = event_bus or EventBus()
        self._provider = provider
        self._transport = transport
        self.cache_invalidator = cache_invalidator
        self.rate_limiters = RateLimiterRegistry()

    def load_source(self, source_id: Optional[str] = None) -> SourceConfig:
        """Load a source from the configured registry file."""
        source_id = source_id or self.settings.source_id
        if self.settings.config_path:
            path = Path(self.settings.config_path)
            return ConfigLoader(str(path.parent)).load_source(source_id, path.name)
        return ConfigLoader().load_source(source_id)

    def provider(self) -> Optional[InferenceProvider]:
        if self._provider is None:
            self._provider = select_provider(
                self.settings.llm_provider,
                anthropic_api_key=self.settings.anthropic_api_key,
                openai_api_key=self.settings.openai_api_key,
            )
        return self._provider

    async def run_discovery(
        self,
        from_date: date,
        to_date: date,
        resume: bool = False,
        max_pages: Optional[int] = None,
        dry_run: bool = False,
        source_id: Optional[str] = None,
    ) -> RunSummary:
        """Discover announcements for one source and date window."""
        source = self.load_source(source_id)

        if not dry_run:
            Deduplicator(self.store).migrate_legacy_hashes()

        store = InMemoryRecordStore() if dry_run else self.store
        limiter = self.rate_limiters.get(source.source_id, source.requests_per_minute)

        async with HttpClient(
            requests_per_minute=source.requests_per_minute,
            timeout=source.timeout,
            transport=self._transport,
            rate_limiter=limiter,
        ) as client:
            stage = DiscoveryStage(
                source=source,
                store=store,
                navigator=TableListingNavigator(source, client),
                checkpoint_store=CheckpointStore(str(self.settings.checkpoint_path)),
                attachment_root=str(self.settings.attachment_root),
                event_bus=self.event_bus,
                dry_run=dry_run,
            )
            return await stage.run(from_date, to_date, resume=resume, max_pages=max_pages)

    def build_cascade(
        self,
        maximize_enrichment: Optional[bool] = None,
        use_expensive_model: Optional[bool] = None,
    ) -> EligibilityCascade:
        return EligibilityCascade.build(
            self.provider(),
            maximize_enrichment=(
                self.settings.maximize_enrichment if maximize_enrichment is None else maximize_enrichment
            ),
            use_expensive_model=(
                self.settings.use_expensive_model if use_expensive_model is None else use_expensive_model
            ),
            inter_call_delay=self.settings.cascade_delay,
        )

    async def run_process(
        self,
        concurrency: Optional[int] = None,
        max_attempts: Optional[int] = None,
        maximize_enrichment: Optional[bool] = None,
        use_expensive_model: Optional[bool] = None,
    ) -> RunSummary:
        """Drain pending captures through the worker pool."""
        pool = ProcessWorkerPool(
            store=self.store,
            cascade=self.build_cascade(maximize_enrichment, use_expensive_model),
            document_extractor=DocumentTextExtractor(),
            concurrency=concurrency or self.settings.worker_concurrency,
            poll_interval=self.settings.poll_interval,
            max_idle_polls=self.settings.max_idle_polls,
            max_attempts=max_attempts or self.settings.max_attempts,
            inter_job_delay=self.settings.inter_job_delay,
            cache_invalidator=self.cache_invalidator,
        )
        return await pool.run()

    async def run_expiry(self) -> RunSummary:
        return await run_expiry_sweep(self.store, cache_invalidator=self.cache_invalidator)

    def chain_processing(self) -> None:
        """Run the worker pool after every completed (non dry-run) discovery."""

        async def on_discovery_completed(event: DiscoveryCompleted) -> None:
            logger.info("chaining_process_run", session_id=event.session_id, new=event.summary.new)
            await self.run_process()

        self.event_bus.subscribe(DiscoveryCompleted, on_discovery_completed)

    def build_scheduler(self) -> PipelineScheduler:
        return PipelineScheduler(
            run_discovery=lambda from_date, to_date: self.run_discovery(from_date, to_date, resume=True),
            run_process=self.run_process,
            run_expiry=self.run_expiry,
            event_bus=self.event_bus,
            discovery_cron=self.settings.schedule_cron,
            expiry_cron=self.settings.expiry_cron,
            timezone=self.settings.timezone,
            window_days=self.settings.discovery_window_days,
        )
