"""
Announcement type classification.

Keyword rules applied in a fixed order; the first rule that fires wins.
Only R_D_PROJECT announcements are funding opportunities.
"""

import re
from collections import Counter
from typing import Iterable, Optional

import structlog

from ..core.models import AnnouncementType

logger = structlog.get_logger(__name__)

RD_PROJECT_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in (
        r"연구과제",
        r"과제\s*공고",
        r"과제선정",
        r"신규\s*과제",
        r"연구개발",
        r"R&D",
        r"\bRD\b",
        r"지원사업",
        r"기술개발",
        r"개발과제",
        r"연구지원",
        r"사업화\s*지원",
        r"프로젝트.*공고",
        r"연구.*사업",
        r"과학.*연구",
        r"신규\s*지원",
        r"연구센터.*조성",
        r"창업기업.*지원",
    )
]

# Checked against the description only, before the combined R&D check
EXCLUSION_RULES = [
    (re.compile(r"인력.*파견|파견.*인력"), AnnouncementType.NOTICE),
    (re.compile(r"(우수성과|시상|수상|포상).*(모집|선정)"), AnnouncementType.EVENT),
    (re.compile(r"(연합|컨소시엄).*(구성원|참여기업|참여기관).*(모집|선정)"), AnnouncementType.NOTICE),
    (re.compile(r"추천기업.*모집|추천.*모집"), AnnouncementType.NOTICE),
]

SURVEY_PATTERNS = [re.compile(p) for p in (
    r"수요조사", r"설문", r"의견수렴", r"참여기업\s*모집", r"기술수요",
)]

EVENT_PATTERNS = [re.compile(p) for p in (
    r"설명회", r"세미나", r"행사", r"워크샵", r"컨퍼런스", r"간담회", r"발표회",
)]

NOTICE_PATTERNS = [re.compile(p) for p in (
    r"^공지",
    r"시행계획\s*안내",
    r"시행계획\s*공고",
    r"추진계획",
    r"실행계획",
    r"과제\s*추진",
    r"변경사항",
    r"일정변경",
    r"연기",
    r"온라인.*시스템.*안내",
    r"제출.*시스템",
    r"입찰.*공고",
    r"용역.*입찰",
)]

STRONG_RD_PATTERN = re.compile(r"연구과제|과제공고|R&D\s*지원사업|기술개발\s*지원", re.IGNORECASE)


def _any(patterns: Iterable[re.Pattern], text: str) -> bool:
    return any(p.search(text) for p in patterns)


def classify_announcement(title: str, description: Optional[str] = None) -> AnnouncementType:
    """
    Classify an announcement.

    Order:
    1. R&D keywords in the title
    2. Exclusion phrases in the description (dispatch, awards, consortium, recommendation)
    3. R&D keywords in title + description
    4. Survey, then event keywords
    5. Titles ending in 안내 without strong R&D keywords, then notice keywords
    6. Default: R_D_PROJECT

    Args:
        title: Announcement title
        description: Detail text

    Returns:
        AnnouncementType
    """
    title = (title or "").strip()
    description = description or ""
    combined = f"{title} {description}"

    if _any(RD_PROJECT_PATTERNS, title):
        return AnnouncementType.R_D_PROJECT

    for pattern, announcement_type in EXCLUSION_RULES:
        if pattern.search(description):
            logger.debug("classification_exclusion", title=title, rule=pattern.pattern)
            return announcement_type

    if _any(RD_PROJECT_PATTERNS, combined):
        return AnnouncementType.R_D_PROJECT

    if _any(SURVEY_PATTERNS, combined):
        return AnnouncementType.SURVEY

    if _any(EVENT_PATTERNS, combined):
        return AnnouncementType.EVENT

    if title.endswith("안내") and not STRONG_RD_PATTERN.search(combined):
        return AnnouncementType.NOTICE

    if _any(NOTICE_PATTERNS, combined):
        return AnnouncementType.NOTICE

    return AnnouncementType.R_D_PROJECT


def classification_stats(items: Iterable[tuple[str, Optional[str]]]) -> dict[str, int]:
    """Count announcement types over (title, description) pairs."""
    counts = Counter(classify_announcement(title, desc) for title, desc in items)
    return {t.value: counts.get(t, 0) for t in AnnouncementType}
