"""Discovery checkpoint persistence."""

import json
import os
from pathlib import Path
from typing import Optional

import structlog

from .models import Checkpoint

logger = structlog.get_logger(__name__)


class CheckpointStore:
    """
    Persists ``Checkpoint`` snapshots as a JSON file.

    Saved after every listing page, loaded on resume, deleted once the full
    date range completes.
    """

    def __init__(self, path: str):
        self.path = Path(path)

    def save(self, checkpoint: Checkpoint) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(checkpoint.to_dict(), f, indent=2)
        os.replace(tmp_path, self.path)
        logger.debug("checkpoint_saved", page=checkpoint.last_processed_page)

    def load(self) -> Optional[Checkpoint]:
        """Return the saved checkpoint, or None if there is none."""
        if not self.path.exists():
            return None

        with open(self.path, "r", encoding="utf-8") as f:
            checkpoint = Checkpoint.from_dict(json.load(f))

        logger.info(
            "checkpoint_loaded",
            last_page=checkpoint.last_processed_page,
            total_downloaded=checkpoint.total_downloaded,
            total_skipped=checkpoint.total_skipped,
        )
        return checkpoint

    def delete(self) -> None:
        if self.path.exists():
            self.path.unlink()
            logger.info("checkpoint_deleted", path=str(self.path))

    def exists(self) -> bool:
        return self.path.exists()
