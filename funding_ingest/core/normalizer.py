"""
Text normalization utilities for Korean announcements.

Handles:
- HTML to plain text
- Korean date formats (2025.01.31, 2025년 1월 31일, ...)
- Labelled field lookup in detail-page text (마감일, 공고일, ...)
- Whitespace and title cleanup
"""

import html
import re
from datetime import datetime, timezone
from typing import Optional

from bs4 import BeautifulSoup
from dateutil import tz

# Announcements are published in Korea Standard Time
KST = tz.gettz("Asia/Seoul")

DATE_PATTERNS = [
    # 2025.01.31 / 2025-01-31 / 2025/01/31 / 2025. 1. 31.
    re.compile(r"(\d{4})\s*[.\-/]\s*(\d{1,2})\s*[.\-/]\s*(\d{1,2})"),
    # 2025년 1월 31일
    re.compile(r"(\d{4})\s*년\s*(\d{1,2})\s*월\s*(\d{1,2})\s*일"),
]

# Label synonyms in detail-page text, most specific first
DEADLINE_LABELS = ["신청마감일", "접수마감일", "마감일자", "마감일", "접수마감", "신청마감"]
PUBLISHED_LABELS = ["공고일자", "공고일", "등록일"]
APPLICATION_START_LABELS = ["접수시작일", "신청시작일", "접수일"]


def html_to_text(markup: Optional[str]) -> str:
    """
    Convert detail-page markup to plain text.

    Drops script/style blocks, decodes entities and collapses whitespace.

    Args:
        markup: HTML string

    Returns:
        Plain text (empty string for empty input)
    """
    if not markup:
        return ""

    soup = BeautifulSoup(markup, "lxml")
    for element in soup(["script", "style", "noscript"]):
        element.decompose()

    text = soup.get_text(" ")
    text = html.unescape(text)
    return normalize_whitespace(text)


def normalize_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def normalize_title(title: str) -> str:
    """Strip whitespace and trailing status markers such as "[마감]"."""
    if not title:
        return ""
    title = normalize_whitespace(title)
    title = re.sub(r"\s*\[(?:마감|종료|접수중|접수예정)\]\s*$", "", title)
    return title


def parse_korean_date(text: Optional[str]) -> Optional[datetime]:
    """
    Parse the first date in a Korean date string.

    Args:
        text: e.g. "2025.01.31", "2025-01-31 18:00", "2025년 1월 31일"

    Returns:
        Timezone-aware datetime (KST, midnight) or None
    """
    if not text:
        return None

    for pattern in DATE_PATTERNS:
        match = pattern.search(text)
        if match:
            year, month, day = (int(g) for g in match.groups())
            try:
                return datetime(year, month, day, tzinfo=KST)
            except ValueError:
                continue
    return None


def find_labelled_value(text: str, labels: list[str]) -> Optional[str]:
    """
    Find the value following the first matching label.

    Example:
        >>> find_labelled_value("접수마감일 : 2025.03.31 18:00", DEADLINE_LABELS)
        '2025.03.31 18:00'
    """
    for label in labels:
        match = re.search(
            re.escape(label) + r"\s*[:：]?\s*([^\n|]{0,40})",
            text,
        )
        if match and match.group(1).strip():
            return match.group(1).strip()
    return None


def extract_labelled_date(text: str, labels: list[str]) -> Optional[datetime]:
    """Parse a date that follows one of the labels."""
    value = find_labelled_value(text, labels)
    return parse_korean_date(value) if value else None


def is_past(deadline: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """True if the deadline day has fully passed."""
    if deadline is None:
        return False
    now = now or datetime.now(timezone.utc)
    end_of_day = deadline.replace(hour=23, minute=59, second=59)
    return end_of_day < now
