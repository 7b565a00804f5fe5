"""Expiry sweep: ACTIVE programs whose deadline has passed become EXPIRED."""

from datetime import datetime
from typing import Optional

import structlog

from ..core.store import RecordStore
from .summary import RunSummary
from .worker import CacheInvalidator, invalidate_cache

logger = structlog.get_logger(__name__)


async def run_expiry_sweep(
    store: RecordStore,
    now: Optional[datetime] = None,
    cache_invalidator: Optional[CacheInvalidator] = None,
) -> RunSummary:
    """
    Expire programs past their deadline.

    Programs without a deadline stay ACTIVE.

    Args:
        store: Record store
        now: Reference time (defaults to the current UTC time)
        cache_invalidator: Called with each expired program; a failing call
            is logged and the sweep continues

    Returns:
        RunSummary with ``expired`` set
    """
    summary = RunSummary(stage="expire")
    expired = store.expire_programs(now)
    summary.found = len(store.list_programs())
    summary.expired = len(expired)

    for program in expired:
        logger.info("program_expired", program_id=program.id, url=program.url, deadline=str(program.deadline))
        await invalidate_cache(cache_invalidator, program)

    summary.finish()
    logger.info("expiry_sweep_complete", expired=summary.expired, programs=summary.found)
    return summary
