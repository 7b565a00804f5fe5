"""
YAML configuration loader with validation.

Loads source definitions from YAML files with:
- Environment variable substitution
- Required-key validation
- Default values for pagination and politeness settings
"""

import os
import re
from pathlib import Path
from typing import Optional

import structlog
import yaml

from ..core.exceptions import ConfigError
from ..core.models import PaginationRule, SourceConfig

logger = structlog.get_logger(__name__)

REQUIRED_SOURCE_FIELDS = ("source_id", "source_name", "base_url", "listing_path")


def substitute_env_vars(text: str) -> str:
    """
    Substitute environment variables in text.

    Supports formats:
    - ${VAR_NAME} - required, empty string and a warning if missing
    - ${VAR_NAME:-default} - optional with default

    Args:
        text: Text with env var placeholders

    Returns:
        Text with substituted values
    """
    def replace(match):
        var_expr = match.group(1)
        if ":-" in var_expr:
            var_name, default = var_expr.split(":-", 1)
            return os.getenv(var_name, default)
        value = os.getenv(var_expr)
        if value is None:
            logger.warning("env_var_not_set", var=var_expr)
            return ""
        return value

    return re.sub(r"\$\{([^}]+)\}", replace, text)


class ConfigLoader:
    """
    Configuration loader for announcement sources.

    Usage:
        loader = ConfigLoader()
        ntis = loader.load_source("ntis")
    """

    def __init__(self, config_dir: Optional[str] = None):
        """
        Initialize config loader.

        Args:
            config_dir: Directory containing config files
                       (defaults to package config directory)
        """
        self.config_dir = Path(config_dir) if config_dir else Path(__file__).parent

    def load_file(self, filename: str) -> dict:
        """
        Load YAML config file.

        Args:
            filename: Config file name (relative to config_dir)

        Returns:
            Parsed config dict

        Raises:
            ConfigError: If the file is missing or not valid YAML
        """
        filepath = self.config_dir / filename
        if not filepath.exists():
            raise ConfigError(f"Config file not found: {filepath}")

        logger.info("loading_config", file=str(filepath))

        with open(filepath, "r", encoding="utf-8") as f:
            content = substitute_env_vars(f.read())

        try:
            config = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {filepath}: {e}") from e

        if config is not None and not isinstance(config, dict):
            raise ConfigError(f"Top level of {filepath} must be a mapping")
        return config or {}

    def load_sources(self, filename: str = "sources.yml") -> list[SourceConfig]:
        """
        Load every source definition.

        Raises:
            ConfigError: If any source is missing a required key
        """
        config = self.load_file(filename)
        sources = []
        for source_data in config.get("sources", []):
            source = self._parse_source(source_data)
            sources.append(source)
            logger.info("source_loaded", source_id=source.source_id)
        return sources

    def load_source(self, source_id: str, filename: str = "sources.yml") -> SourceConfig:
        """
        Load one source by id.

        Raises:
            ConfigError: If the source is not defined
        """
        for source in self.load_sources(filename):
            if source.source_id == source_id:
                return source
        raise ConfigError(f"Unknown source: {source_id}")

    def _parse_source(self, data: dict) -> SourceConfig:
        """
        Parse source definition into SourceConfig.

        Raises:
            ConfigError: If required fields are missing or malformed
        """
        if not isinstance(data, dict):
            raise ConfigError(f"Source definition must be a mapping, got {type(data).__name__}")

        for field_name in REQUIRED_SOURCE_FIELDS:
            if not data.get(field_name):
                raise ConfigError(
                    f"Missing required field '{field_name}' in source {data.get('source_id', 'unknown')}"
                )

        pagination_data = data.get("pagination") or {}
        defaults = PaginationRule()
        try:
            pagination = PaginationRule(
                page_param=pagination_data.get("page_param", defaults.page_param),
                page_size=int(pagination_data.get("page_size", defaults.page_size)),
                total_pattern=pagination_data.get("total_pattern", defaults.total_pattern),
                link_pattern=pagination_data.get("link_pattern", defaults.link_pattern),
                max_pages=int(pagination_data.get("max_pages", defaults.max_pages)),
                date_from_param=pagination_data.get("date_from_param"),
                date_to_param=pagination_data.get("date_to_param"),
                date_format=pagination_data.get("date_format", defaults.date_format),
            )
            delays = data.get("delays") or {}
            return SourceConfig(
                source_id=data["source_id"],
                source_name=data["source_name"],
                base_url=data["base_url"],
                listing_path=data["listing_path"],
                selectors=dict(data.get("selectors") or {}),
                pagination=pagination,
                requests_per_minute=int(data.get("requests_per_minute", 30)),
                timeout=float(data.get("timeout", 30.0)),
                detail_delay=float(delays.get("detail", 2.0)),
                download_delay=float(delays.get("download", 1.0)),
                page_delay=float(delays.get("page", 3.0)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid value in source {data['source_id']}: {e}") from e


def load_sources(config_path: Optional[str] = None) -> list[SourceConfig]:
    """
    Convenience function to load source configs.

    Args:
        config_path: Optional path to sources.yml

    Returns:
        List of SourceConfig objects
    """
    if config_path:
        loader = ConfigLoader(str(Path(config_path).parent))
        return loader.load_sources(Path(config_path).name)
    return ConfigLoader().load_sources()
