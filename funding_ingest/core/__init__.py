"""
Core layer - stable foundation for the ingestion pipeline.

Components:
- models: RawCapture, CanonicalProgramRecord, ExtractedEligibility dataclasses
- http_client: Rate-limited, retrying HTTP client
- rate_limiter: Token bucket per source
- normalizer: HTML to text, Korean dates, labelled fields
- deduplicator: URL-based content hashing
- checkpoint: Discovery checkpoint persistence
- store: Record store interface and implementations
"""

from .models import (
    CanonicalProgramRecord,
    Checkpoint,
    ExtractedEligibility,
    RawCapture,
    SourceConfig,
)
from .normalizer import html_to_text, parse_korean_date, normalize_title
from .deduplicator import Deduplicator, generate_content_hash
from .checkpoint import CheckpointStore
from .store import RecordStore, InMemoryRecordStore, JsonFileRecordStore

__all__ = [
    "CanonicalProgramRecord",
    "Checkpoint",
    "ExtractedEligibility",
    "RawCapture",
    "SourceConfig",
    "html_to_text",
    "parse_korean_date",
    "normalize_title",
    "Deduplicator",
    "generate_content_hash",
    "CheckpointStore",
    "RecordStore",
    "InMemoryRecordStore",
    "JsonFileRecordStore",
]
