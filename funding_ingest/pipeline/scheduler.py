"""
Scheduled pipeline runs with APScheduler.

Jobs:
- discovery: cron; the date window is computed when the job fires
- expiry sweep: daily cron
Discovery completion chains a process run through the event bus.
"""

from datetime import date, datetime
from typing import Awaitable, Callable, Optional

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from dateutil import tz
from dateutil.relativedelta import relativedelta

from ..core.exceptions import DiscoveryFatalError
from .events import DiscoveryCompleted, EventBus
from .summary import RunSummary

logger = structlog.get_logger(__name__)

DiscoveryRunner = Callable[[date, date], Awaitable[RunSummary]]
StageRunner = Callable[[], Awaitable[RunSummary]]


def discovery_window(now: datetime, days: int, timezone: str = "Asia/Seoul") -> tuple[date, date]:
    """
    Date window for a scheduled discovery run.

    Args:
        now: Fire time
        days: Days to look back from today
        timezone: Timezone whose calendar date counts as "today"

    Returns:
        (from_date, to_date), both inclusive
    """
    local_now = now.astimezone(tz.gettz(timezone)) if now.tzinfo else now
    today = local_now.date()
    return today - relativedelta(days=days), today


class PipelineScheduler:
    """
    Cron-driven discovery, chained processing and daily expiry.

    Usage:
        scheduler = PipelineScheduler(run_discovery, run_process, run_expiry, event_bus)
        scheduler.start()
    """

    def __init__(
        self,
        run_discovery: DiscoveryRunner,
        run_process: StageRunner,
        run_expiry: StageRunner,
        event_bus: EventBus,
        discovery_cron: str = "0 9,15 * * *",
        expiry_cron: str = "0 1 * * *",
        timezone: str = "Asia/Seoul",
        window_days: int = 1,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.run_discovery = run_discovery
        self.run_process = run_process
        self.run_expiry = run_expiry
        self.event_bus = event_bus
        self.discovery_cron = discovery_cron
        self.expiry_cron = expiry_cron
        self.timezone = timezone
        self.window_days = window_days
        self._clock = clock or (lambda: datetime.now(tz.gettz(timezone)))
        self.scheduler: Optional[AsyncIOScheduler] = None

        self.event_bus.subscribe(DiscoveryCompleted, self.on_discovery_completed)

    def build(self) -> AsyncIOScheduler:
        """Create the scheduler with both jobs registered (not started)."""
        scheduler = AsyncIOScheduler(
            timezone=self.timezone,
            job_defaults={
                "coalesce": False,
                "max_instances": 1,
                "misfire_grace_time": 600,
            },
        )
        scheduler.add_job(
            self.discovery_job,
            trigger=CronTrigger.from_crontab(self.discovery_cron, timezone=self.timezone),
            id="scheduled_discovery",
            name=f"Announcement discovery ({self.discovery_cron})",
            replace_existing=True,
        )
        scheduler.add_job(
            self.expiry_job,
            trigger=CronTrigger.from_crontab(self.expiry_cron, timezone=self.timezone),
            id="expiry_sweep",
            name=f"Program expiry sweep ({self.expiry_cron})",
            replace_existing=True,
        )
        self.scheduler = scheduler
        return scheduler

    def start(self) -> AsyncIOScheduler:
        """Build and start; must be called from a running event loop."""
        scheduler = self.scheduler or self.build()
        scheduler.start()
        for job in scheduler.get_jobs():
            logger.info("scheduled_job", job_id=job.id, name=job.name, next_run=str(job.next_run_time))
        return scheduler

    def shutdown(self) -> None:
        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("scheduler_shutdown")
        self.scheduler = None

    async def discovery_job(self) -> Optional[RunSummary]:
        from_date, to_date = discovery_window(self._clock(), self.window_days, self.timezone)
        logger.info("scheduled_discovery_fired", from_date=from_date.isoformat(), to_date=to_date.isoformat())
        try:
            return await self.run_discovery(from_date, to_date)
        except DiscoveryFatalError as e:
            # Checkpoint is resumed only by a firing with the same window
            logger.error("scheduled_discovery_failed", error=str(e), last_page=e.last_page)
            return None

    async def on_discovery_completed(self, event: DiscoveryCompleted) -> None:
        logger.info("chaining_process_run", session_id=event.session_id, new=event.summary.new)
        await self.run_process()

    async def expiry_job(self) -> RunSummary:
        return await self.run_expiry()
