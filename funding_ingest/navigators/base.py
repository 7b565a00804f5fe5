"""
Base class for listing navigators.

Navigators walk an agency's paginated announcement listing and read detail
pages. They capture raw fields only; interpretation happens in the process
stage.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

import structlog

from ..core.http_client import HttpClient
from ..core.models import DetailPage, ListingRow, SourceConfig

logger = structlog.get_logger(__name__)


class ListingNavigator(ABC):
    """
    Abstract base class for listing navigators.

    One navigator instance serves one source and shares the caller's
    rate-limited HTTP client.
    """

    def __init__(self, source: SourceConfig, http_client: HttpClient):
        """
        Initialize navigator.

        Args:
            source: Source configuration
            http_client: Rate-limited client opened by the caller
        """
        self.source = source
        self.http_client = http_client
        self.logger = logger.bind(navigator=self.__class__.__name__, source_id=source.source_id)

    @abstractmethod
    async def fetch_listing_page(
        self,
        page: int,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> str:
        """Fetch one listing page (1-based) for a date window."""

    @abstractmethod
    def parse_rows(self, html: str) -> list[ListingRow]:
        """Parse announcement rows from listing markup."""

    @abstractmethod
    def discover_total_pages(self, html: str, max_pages: Optional[int] = None) -> int:
        """Total listing pages for the current query."""

    @abstractmethod
    def parse_detail(self, html: str, url: str, fallback_title: str = "") -> DetailPage:
        """Capture raw fields from detail markup."""

    async def fetch_detail(self, url: str, fallback_title: str = "") -> DetailPage:
        """Fetch and parse one detail page."""
        html = await self.http_client.get_text(url)
        return self.parse_detail(html, url, fallback_title=fallback_title)
