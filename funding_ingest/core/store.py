"""
Record store interface and implementations.

The pipeline only depends on ``RecordStore``. Two implementations ship:
an in-memory store (tests, dry runs) and a JSON-file store that persists
every mutation to disk.
"""

import json
import os
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Optional

import structlog

from .exceptions import StoreError
from .models import (
    CanonicalProgramRecord,
    ProcessingStatus,
    ProgramStatus,
    RawCapture,
    ScrapingStatus,
    utcnow,
)

logger = structlog.get_logger(__name__)

# Statuses a worker may claim
CLAIMABLE_STATUSES = (ProcessingStatus.PENDING, ProcessingStatus.PROCESSING_FAILED)

# Allowed processing moves; PROCESSED and MANUAL_REVIEW are terminal
PROCESSING_TRANSITIONS = {
    ProcessingStatus.PENDING: {ProcessingStatus.PROCESSING},
    ProcessingStatus.PROCESSING: {
        ProcessingStatus.PROCESSED,
        ProcessingStatus.PROCESSING_FAILED,
        ProcessingStatus.MANUAL_REVIEW,
    },
    ProcessingStatus.PROCESSING_FAILED: {ProcessingStatus.PROCESSING},
    ProcessingStatus.PROCESSED: set(),
    ProcessingStatus.MANUAL_REVIEW: set(),
}


def check_transition(current: ProcessingStatus, target: ProcessingStatus) -> None:
    """
    Reject a processing status move the lifecycle does not allow.

    Rewriting the current status is always allowed.

    Raises:
        StoreError: Illegal transition
    """
    if target is current or target in PROCESSING_TRANSITIONS[current]:
        return
    raise StoreError(f"Illegal processing transition: {current.value} -> {target.value}")


class RecordStore(ABC):
    """Persistence operations consumed by the pipeline."""

    @abstractmethod
    def create_if_absent(self, content_hash: str, fields: dict) -> tuple[RawCapture, bool]:
        """Create a raw capture unless one with the hash or URL exists."""

    @abstractmethod
    def find_by_unique_key(
        self,
        url: Optional[str] = None,
        content_hash: Optional[str] = None,
    ) -> Optional[RawCapture]:
        """Look up a raw capture by URL or content hash."""

    @abstractmethod
    def update_status(self, capture_id: str, fields: dict) -> RawCapture:
        """
        Apply field updates to a raw capture.

        Raises:
            StoreError: Unknown capture or field, or an illegal processing transition
        """

    @abstractmethod
    def touch(self, capture_id: str) -> None:
        """Lightweight update marking a capture as seen again."""

    @abstractmethod
    def claim_next_pending(self, max_attempts: int) -> Optional[RawCapture]:
        """Atomically move the next claimable capture to PROCESSING."""

    @abstractmethod
    def list_captures(self, status: Optional[ProcessingStatus] = None) -> list[RawCapture]:
        """All captures, optionally filtered by processing status."""

    @abstractmethod
    def upsert_canonical_program(
        self, content_hash: str, fields: dict
    ) -> tuple[CanonicalProgramRecord, bool]:
        """Create or update the program identified by content hash."""

    @abstractmethod
    def find_program(self, content_hash: str) -> Optional[CanonicalProgramRecord]:
        """Look up a canonical program by content hash."""

    @abstractmethod
    def list_programs(self) -> list[CanonicalProgramRecord]:
        """All canonical programs."""

    @abstractmethod
    def rekey_program(self, old_hash: str, new_hash: str) -> None:
        """Move a program to a new content hash."""

    def expire_programs(self, now: Optional[datetime] = None) -> list[CanonicalProgramRecord]:
        """
        Flip ACTIVE programs whose deadline passed to EXPIRED.

        Returns:
            Programs that changed status
        """
        from .normalizer import is_past

        now = now or utcnow()
        expired = []
        for program in self.list_programs():
            if program.status is ProgramStatus.ACTIVE and is_past(program.deadline, now):
                updated, _ = self.upsert_canonical_program(
                    program.content_hash,
                    {"status": ProgramStatus.EXPIRED},
                )
                expired.append(updated)
        return expired


class InMemoryRecordStore(RecordStore):
    """
    Dict-backed store.

    Methods never await, so each call is atomic with respect to other
    coroutines on the same event loop.
    """

    def __init__(self):
        self._captures: dict[str, RawCapture] = {}
        self._programs: dict[str, CanonicalProgramRecord] = {}

    def _persist(self) -> None:
        """Hook for durable subclasses."""

    def create_if_absent(self, content_hash: str, fields: dict) -> tuple[RawCapture, bool]:
        existing = self.find_by_unique_key(url=fields.get("url"), content_hash=content_hash)
        if existing is not None:
            return existing, False

        capture = RawCapture(content_hash=content_hash, **fields)
        capture.id = capture.id or uuid.uuid4().hex
        self._captures[capture.id] = capture
        self._persist()
        return capture, True

    def find_by_unique_key(
        self,
        url: Optional[str] = None,
        content_hash: Optional[str] = None,
    ) -> Optional[RawCapture]:
        if url is None and content_hash is None:
            raise ValueError("url or content_hash is required")

        for capture in self._captures.values():
            if content_hash is not None and capture.content_hash == content_hash:
                return capture
            if url is not None and capture.url == url:
                return capture
        return None

    def _get(self, capture_id: str) -> RawCapture:
        try:
            return self._captures[capture_id]
        except KeyError:
            raise StoreError(f"Unknown capture: {capture_id}") from None

    def update_status(self, capture_id: str, fields: dict) -> RawCapture:
        capture = self._get(capture_id)
        if "processing_status" in fields:
            check_transition(capture.processing_status, ProcessingStatus(fields["processing_status"]))
        for key, value in fields.items():
            if not hasattr(capture, key):
                raise StoreError(f"Unknown capture field: {key}")
            setattr(capture, key, value)
        self._persist()
        return capture

    def touch(self, capture_id: str) -> None:
        capture = self._get(capture_id)
        capture.captured_at = utcnow()
        self._persist()

    def claim_next_pending(self, max_attempts: int) -> Optional[RawCapture]:
        candidates = [
            c for c in self._captures.values()
            if c.processing_status in CLAIMABLE_STATUSES
            and c.processing_attempts < max_attempts
            and c.scraping_status is ScrapingStatus.SCRAPED
        ]
        if not candidates:
            return None

        capture = min(candidates, key=lambda c: c.captured_at)
        capture.processing_status = ProcessingStatus.PROCESSING
        capture.processing_attempts += 1
        self._persist()
        return capture

    def list_captures(self, status: Optional[ProcessingStatus] = None) -> list[RawCapture]:
        return [
            c for c in self._captures.values()
            if status is None or c.processing_status is status
        ]

    def upsert_canonical_program(
        self, content_hash: str, fields: dict
    ) -> tuple[CanonicalProgramRecord, bool]:
        existing = self._programs.get(content_hash)
        if existing is None:
            program = CanonicalProgramRecord(content_hash=content_hash, **fields)
            program.id = program.id or uuid.uuid4().hex
            self._programs[content_hash] = program
            self._persist()
            return program, True

        for key, value in fields.items():
            if not hasattr(existing, key):
                raise StoreError(f"Unknown program field: {key}")
            setattr(existing, key, value)
        existing.updated_at = utcnow()
        self._persist()
        return existing, False

    def find_program(self, content_hash: str) -> Optional[CanonicalProgramRecord]:
        return self._programs.get(content_hash)

    def list_programs(self) -> list[CanonicalProgramRecord]:
        return list(self._programs.values())

    def rekey_program(self, old_hash: str, new_hash: str) -> None:
        program = self._programs.pop(old_hash, None)
        if program is None:
            raise StoreError(f"Unknown program: {old_hash}")
        if new_hash in self._programs:
            raise StoreError(f"Program already exists: {new_hash}")
        program.content_hash = new_hash
        self._programs[new_hash] = program
        self._persist()


class JsonFileRecordStore(InMemoryRecordStore):
    """
    In-memory store mirrored to a JSON file after every mutation.

    Usage:
        store = JsonFileRecordStore("data/records.json")
    """

    def __init__(self, path: str):
        super().__init__()
        self.path = Path(path)
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Cannot read record store {self.path}: {e}") from e

        for item in data.get("captures", []):
            capture = RawCapture.from_dict(item)
            self._captures[capture.id] = capture
        for item in data.get("programs", []):
            program = CanonicalProgramRecord.from_dict(item)
            self._programs[program.content_hash] = program

        logger.info(
            "record_store_loaded",
            path=str(self.path),
            captures=len(self._captures),
            programs=len(self._programs),
        )

    def _persist(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "captures": [c.to_dict() for c in self._captures.values()],
            "programs": [p.to_dict() for p in self._programs.values()],
        }
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self.path)
