"""
Pipeline layer - the stages that move announcements through the system.

Components:
- discovery: Listing walk, raw capture and attachment download
- worker: Process worker pool (text extraction, cascade, normalization)
- expiry: Deadline-driven status sweep
- events: In-process completion events
- scheduler: Cron triggers and discovery -> process chaining
- summary: Per-run counters
"""

from .summary import RunSummary
from .events import DiscoveryCompleted, EventBus
from .discovery import DiscoveryStage, date_range_folder
from .worker import ProcessWorkerPool
from .expiry import run_expiry_sweep
from .scheduler import PipelineScheduler, discovery_window

__all__ = [
    "RunSummary",
    "DiscoveryCompleted",
    "EventBus",
    "DiscoveryStage",
    "date_range_folder",
    "ProcessWorkerPool",
    "run_expiry_sweep",
    "PipelineScheduler",
    "discovery_window",
]
