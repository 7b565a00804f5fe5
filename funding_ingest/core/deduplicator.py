"""
Announcement deduplication using content hashing.

The content hash of a raw capture is the SHA-256 of its normalized
announcement URL. Canonical programs use the same hash, so a capture and
the program built from it share one identity.
"""

import hashlib
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit, urlunsplit, parse_qsl, urlencode

import structlog

from .models import ScrapingStatus
from .store import RecordStore

logger = structlog.get_logger(__name__)

# Query parameters that vary per session and do not identify an announcement
VOLATILE_PARAMS = {"jsessionid", "pageindex", "searchcondition2", "searchcondition3"}


def normalize_url(url: str) -> str:
    """
    Normalize an announcement URL for hashing.

    Lowercases scheme and host, drops fragments, trailing slashes and
    session-scoped query parameters, and sorts the remaining parameters.
    """
    parts = urlsplit(url.strip())
    path = parts.path.rstrip("/") or "/"
    path = path.split(";")[0]
    query = sorted(
        (k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True)
        if k.lower() not in VOLATILE_PARAMS
    )
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, urlencode(query), ""))


def generate_content_hash(url: str) -> str:
    """
    Generate SHA-256 hash identifying an announcement.

    Args:
        url: Announcement detail URL

    Returns:
        SHA-256 hex digest
    """
    return hashlib.sha256(normalize_url(url).encode("utf-8")).hexdigest()


@dataclass
class DeduplicationResult:
    """Result of deduplication check."""
    is_duplicate: bool
    content_hash: str
    existing_id: Optional[str] = None
    action: str = "keep"  # keep, skip, retry


class Deduplicator:
    """
    Hash-based deduplicator backed by the record store.

    A known hash short-circuits to a touch of the existing record instead of
    reprocessing.
    """

    def __init__(self, store: RecordStore):
        self.store = store
        self._session_hashes: set[str] = set()

    def check(self, url: str) -> DeduplicationResult:
        """
        Check if an announcement URL is already known.

        Args:
            url: Announcement detail URL

        Returns:
            DeduplicationResult with action to take
        """
        content_hash = generate_content_hash(url)

        if content_hash in self._session_hashes:
            return DeduplicationResult(is_duplicate=True, content_hash=content_hash, action="skip")

        existing = self.store.find_by_unique_key(content_hash=content_hash)
        if existing is None:
            existing = self.store.find_by_unique_key(url=url)

        if existing is not None and existing.scraping_status is ScrapingStatus.SCRAPING_FAILED:
            # A failed scrape is retried in place rather than skipped forever
            return DeduplicationResult(
                is_duplicate=False,
                content_hash=content_hash,
                existing_id=existing.id,
                action="retry",
            )

        if existing is not None:
            self.store.touch(existing.id)
            logger.debug("duplicate_announcement", url=url, existing_id=existing.id)
            return DeduplicationResult(
                is_duplicate=True,
                content_hash=content_hash,
                existing_id=existing.id,
                action="skip",
            )

        return DeduplicationResult(is_duplicate=False, content_hash=content_hash)

    def mark_seen(self, content_hash: str) -> None:
        """Record a hash created during the current run."""
        self._session_hashes.add(content_hash)

    def migrate_legacy_hashes(self) -> int:
        """
        Rewrite records whose stored hash is not the URL-based hash.

        Earlier revisions hashed agency|title|url; captures and programs
        created then are rekeyed so both share the URL-based identity.

        Returns:
            Number of records migrated
        """
        migrated = 0
        for capture in self.store.list_captures():
            expected = generate_content_hash(capture.url)
            if capture.content_hash != expected:
                self.store.update_status(capture.id, {"content_hash": expected})
                migrated += 1

        for program in self.store.list_programs():
            expected = generate_content_hash(program.url)
            if program.content_hash == expected:
                continue
            if self.store.find_program(expected) is not None:
                logger.warning(
                    "content_hash_collision",
                    url=program.url,
                    legacy_hash=program.content_hash,
                )
                continue
            self.store.rekey_program(program.content_hash, expected)
            migrated += 1

        if migrated:
            logger.info("content_hash_migrated", records=migrated)
        return migrated
