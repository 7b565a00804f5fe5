"""
Runtime settings.

Read from the environment (and a ``.env`` file when present). Paths default
to a ``data/`` directory under the working directory.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from ..core.exceptions import ConfigError


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from e


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {value!r}") from e


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Process-wide configuration."""

    data_dir: Path = field(default_factory=lambda: Path("data"))
    config_path: Optional[str] = None
    source_id: str = "ntis"

    anthropic_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    llm_provider: Optional[str] = None  # Force 'claude' or 'openai'
    use_expensive_model: bool = False
    maximize_enrichment: bool = False
    cascade_delay: float = 1.0

    worker_concurrency: int = 1
    poll_interval: float = 5.0
    max_idle_polls: int = 16
    max_attempts: int = 3
    inter_job_delay: float = 1.0

    schedule_cron: str = "0 9,15 * * *"
    expiry_cron: str = "0 1 * * *"
    timezone: str = "Asia/Seoul"
    discovery_window_days: int = 1

    @property
    def attachment_root(self) -> Path:
        return self.data_dir / "attachments"

    @property
    def checkpoint_path(self) -> Path:
        return self.data_dir / "discovery-checkpoint.json"

    @property
    def store_path(self) -> Path:
        return self.data_dir / "records.json"

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            env_file: Explicit .env path; the default search applies otherwise

        Raises:
            ConfigError: If a numeric variable does not parse
        """
        load_dotenv(env_file)

        return cls(
            data_dir=Path(os.getenv("FUNDING_INGEST_DATA_DIR", "data")),
            config_path=os.getenv("FUNDING_INGEST_CONFIG") or None,
            source_id=os.getenv("FUNDING_INGEST_SOURCE", "ntis"),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            llm_provider=os.getenv("LLM_PROVIDER") or None,
            use_expensive_model=_env_bool("USE_EXPENSIVE_MODEL", False),
            maximize_enrichment=_env_bool("MAXIMIZE_ENRICHMENT", False),
            cascade_delay=_env_float("CASCADE_DELAY_SECONDS", 1.0),
            worker_concurrency=_env_int("WORKER_CONCURRENCY", 1),
            poll_interval=_env_float("WORKER_POLL_INTERVAL", 5.0),
            max_idle_polls=_env_int("WORKER_MAX_IDLE_POLLS", 16),
            max_attempts=_env_int("WORKER_MAX_ATTEMPTS", 3),
            inter_job_delay=_env_float("WORKER_INTER_JOB_DELAY", 1.0),
            schedule_cron=os.getenv("DISCOVERY_CRON", "0 9,15 * * *"),
            expiry_cron=os.getenv("EXPIRY_CRON", "0 1 * * *"),
            timezone=os.getenv("SCHEDULER_TIMEZONE", "Asia/Seoul"),
            discovery_window_days=_env_int("DISCOVERY_WINDOW_DAYS", 1),
        )
