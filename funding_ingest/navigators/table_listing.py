"""
Table listing navigator: paginated board table -> detail pages.

The common layout of Korean agency portals (NTIS and similar): a
``table tbody tr`` per announcement, ``pageIndex`` query pagination, a
"검색결과 N건" total, and a detail page with ``th`` label / ``td`` value
rows plus file-download links.
"""

import math
import re
from datetime import date
from typing import Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from ..core.models import DetailPage, ListingRow
from ..core.normalizer import (
    DEADLINE_LABELS,
    PUBLISHED_LABELS,
    find_labelled_value,
    html_to_text,
    normalize_whitespace,
)
from .base import ListingNavigator

DEFAULT_SELECTORS = {
    "row": "table tbody tr",
    "title": "td a",
    "link": "td a",
    "detail_title": "h2, h3, .subject, .title",
    "detail_description": ".content, .description, .summary",
    "detail_ministry": 'th:-soup-contains("부처명") + td',
    "detail_agency": 'th:-soup-contains("공고기관명") + td',
    "detail_deadline": 'th:-soup-contains("접수마감일") + td',
    "detail_published_at": 'th:-soup-contains("공고일") + td',
    "attachment": 'a[href*="/file/download"]',
}


def _cell_text(element, selector: Optional[str]) -> Optional[str]:
    if not selector:
        return None
    found = element.select_one(selector)
    if not found:
        return None
    text = found.get_text(" ", strip=True)
    return normalize_whitespace(text) or None


class TableListingNavigator(ListingNavigator):
    """
    Navigator for table-based announcement boards.

    Every selector can be overridden per source in ``sources.yml``.
    """

    def selector(self, name: str) -> Optional[str]:
        return self.source.selector(name, DEFAULT_SELECTORS.get(name))

    async def fetch_listing_page(
        self,
        page: int,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> str:
        """
        Fetch one listing page.

        Args:
            page: 1-based page number
            from_date: Window start (inclusive)
            to_date: Window end (inclusive)

        Returns:
            Listing markup
        """
        rule = self.source.pagination
        params = {rule.page_param: str(page)}
        if from_date and rule.date_from_param:
            params[rule.date_from_param] = from_date.strftime(rule.date_format)
        if to_date and rule.date_to_param:
            params[rule.date_to_param] = to_date.strftime(rule.date_format)

        self.logger.debug("fetching_listing_page", page=page, params=params)
        return await self.http_client.get_text(self.source.listing_url, params=params)

    def parse_rows(self, html: str) -> list[ListingRow]:
        """
        Parse announcement rows.

        Rows without a title or a followable link are dropped.

        Args:
            html: Listing markup

        Returns:
            ListingRow list in page order
        """
        soup = BeautifulSoup(html, "lxml")
        rows: list[ListingRow] = []
        seen_urls: set[str] = set()

        for element in soup.select(self.selector("row")):
            link_el = element.select_one(self.selector("link"))
            href = link_el.get("href") if link_el else None
            if not href or href.startswith(("javascript:", "#")):
                continue

            title = _cell_text(element, self.selector("title"))
            if not title:
                continue

            url = urljoin(self.source.base_url, href)
            if url in seen_urls:
                continue
            seen_urls.add(url)

            rows.append(
                ListingRow(
                    title=title,
                    url=url,
                    announcement_id=_cell_text(element, self.selector("announcement_id")),
                    ministry=_cell_text(element, self.selector("ministry")),
                    status=_cell_text(element, self.selector("status")),
                    published_at=_cell_text(element, self.selector("published_at")),
                    deadline=_cell_text(element, self.selector("deadline")),
                )
            )

        self.logger.debug("rows_parsed", count=len(rows))
        return rows

    def discover_total_pages(self, html: str, max_pages: Optional[int] = None) -> int:
        """
        Determine total listing pages.

        Order: the result-count banner divided by page size, then the
        highest page number linked from pagination, then the hard cap.

        Args:
            html: Markup of the first listing page
            max_pages: Caller limit applied to the result

        Returns:
            Page count, at least 1
        """
        rule = self.source.pagination
        total_pages: Optional[int] = None

        text = html_to_text(html)
        match = re.search(rule.total_pattern, text)
        if match:
            total_count = int(match.group(1).replace(",", ""))
            total_pages = max(1, math.ceil(total_count / rule.page_size))
            self.logger.info("total_pages_from_count", total_count=total_count, total_pages=total_pages)
        else:
            soup = BeautifulSoup(html, "lxml")
            link_pattern = re.compile(rule.link_pattern)
            numbers = [
                int(m.group(1))
                for a in soup.find_all("a")
                for attr in (a.get("href") or "", a.get("onclick") or "")
                if (m := link_pattern.search(attr))
            ]
            if numbers:
                total_pages = max(numbers)
                self.logger.info("total_pages_from_links", total_pages=total_pages)

        if total_pages is None:
            total_pages = rule.max_pages
            self.logger.warning("total_pages_unknown", default=total_pages)

        if max_pages is not None:
            total_pages = min(total_pages, max_pages)
        return max(1, total_pages)

    def parse_detail(self, html: str, url: str, fallback_title: str = "") -> DetailPage:
        """
        Capture raw detail fields.

        Dates are kept as the page renders them; labelled text is used when
        the table cell is missing.

        Args:
            html: Detail markup
            url: Detail URL (base for attachment links)
            fallback_title: Title from the listing row

        Returns:
            DetailPage with full markup retained
        """
        soup = BeautifulSoup(html, "lxml")
        page_text = html_to_text(html)

        title = fallback_title
        for element in soup.select(self.selector("detail_title")):
            text = normalize_whitespace(element.get_text(" ", strip=True))
            if text:
                title = text
                break

        description = None
        description_el = soup.select_one(self.selector("detail_description"))
        if description_el:
            description = html_to_text(str(description_el)) or None

        deadline = _cell_text(soup, self.selector("detail_deadline")) or find_labelled_value(
            page_text, DEADLINE_LABELS
        )
        published_at = _cell_text(soup, self.selector("detail_published_at")) or find_labelled_value(
            page_text, PUBLISHED_LABELS
        )

        attachment_urls: list[str] = []
        for link in soup.select(self.selector("attachment")):
            href = link.get("href")
            if not href:
                continue
            absolute = urljoin(url, href)
            if absolute not in attachment_urls:
                attachment_urls.append(absolute)

        return DetailPage(
            title=title,
            raw_html=html,
            ministry=_cell_text(soup, self.selector("detail_ministry")),
            announcing_agency=_cell_text(soup, self.selector("detail_agency")),
            description=description,
            deadline=deadline,
            published_at=published_at,
            attachment_urls=attachment_urls,
        )
