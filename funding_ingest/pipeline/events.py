"""
In-process completion events.

Discovery publishes ``DiscoveryCompleted`` once per run; the scheduler
subscribes to chain a process run.
"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Awaitable, Callable

import structlog

from .summary import RunSummary

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DiscoveryCompleted:
    """Published once after a discovery run finishes the whole date range."""
    session_id: str
    source_id: str
    summary: RunSummary


Handler = Callable[[object], Awaitable[None]]


class EventBus:
    """
    Minimal async publish/subscribe.

    Handlers run sequentially in subscription order. A failing handler is
    logged and does not prevent the others from running.
    """

    def __init__(self):
        self._handlers: dict[type, list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: type, handler: Handler) -> None:
        self._handlers[event_type].append(handler)

    async def publish(self, event: object) -> int:
        """
        Deliver an event to its subscribers.

        Returns:
            Number of handlers that completed without error
        """
        handlers = self._handlers.get(type(event), [])
        logger.info("event_published", event=type(event).__name__, handlers=len(handlers))

        delivered = 0
        for handler in handlers:
            try:
                await handler(event)
                delivered += 1
            except Exception as e:
                logger.error(
                    "event_handler_failed",
                    event=type(event).__name__,
                    handler=getattr(handler, "__name__", repr(handler)),
                    error=str(e),
                )
        return delivered
