"""
Deterministic eligibility patterns (Tier 1).

Pure functions from text to partial results; no I/O.

Units:
- revenue: 억원, one decimal place
- business age: years
- employees: head count
"""

import re
from dataclasses import dataclass
from typing import Callable, Optional

from ..core.models import Confidence, ExtractedEligibility, ExtractionTier, KoreanRegion
from ..normalization.codes import REGION_NAMES

# Qualifier clauses are searched only this far after their anchor word
ANCHOR_WINDOW = 40

# Clause boundaries; a comma or period inside a number (1,000 / 1.5) is not one
CLAUSE_BREAK = re.compile(r"[;\n]|,(?!\d)|\.(?!\d)|(?<=[가-힣])\s*/\s*")


@dataclass
class Bounds:
    """Inclusive numeric range; either side may be open."""
    min: Optional[float] = None
    max: Optional[float] = None

    @property
    def empty(self) -> bool:
        return self.min is None and self.max is None


# ============================================================================
# Company scale
# ============================================================================

# Most specific patterns first so that e.g. 중소기업 is never read as 소기업
COMPANY_SCALE_PATTERNS = [
    (re.compile(r"예비\s*창업자"), "예비창업자"),
    (re.compile(r"예비\s*창업"), "예비창업자"),
    (re.compile(r"1인\s*창조기업"), "1인기업"),
    (re.compile(r"1인\s*기업"), "1인기업"),
    (re.compile(r"소상공인"), "소상공인"),
    (re.compile(r"중소기업"), "중소기업"),
    (re.compile(r"중견기업"), "중견기업"),
    (re.compile(r"(?<!중)소기업"), "소기업"),
    (re.compile(r"(?<!소)중기업(?!업)"), "중기업"),
    (re.compile(r"스타트업"), "스타트업"),
    (re.compile(r"창업기업"), "창업기업"),
    (re.compile(r"벤처기업"), "벤처기업"),
]


def extract_company_scale(text: str) -> list[str]:
    """
    Extract company-scale labels in pattern order.

    Example:
        >>> extract_company_scale("중소기업 한정")
        ['중소기업']
    """
    scales = []
    for pattern, scale in COMPANY_SCALE_PATTERNS:
        if scale not in scales and pattern.search(text or ""):
            scales.append(scale)
    return scales


# ============================================================================
# Bounded qualifier parsing
# ============================================================================

def _clause_after(text: str, start: int) -> str:
    window = text[start:start + ANCHOR_WINDOW]
    match = CLAUSE_BREAK.search(window)
    return window[:match.start()] if match else window


def _scan_bounds(
    text: str,
    anchor: re.Pattern,
    range_pattern: re.Pattern,
    bound_pattern: re.Pattern,
    parse_range: Callable[[re.Match], Bounds],
    apply_bound: Callable[[Bounds, re.Match], None],
) -> Bounds:
    """
    Parse a range or qualified bounds in the clause following each anchor.

    The first anchor whose clause yields a bound wins. A range ("3~7년")
    takes precedence over qualified bounds ("3년 이상").
    """
    if not text:
        return Bounds()

    for anchor_match in anchor.finditer(text):
        clause = _clause_after(text, anchor_match.end())

        range_match = range_pattern.match(clause)
        if range_match:
            bounds = parse_range(range_match)
            if not bounds.empty:
                return bounds

        bounds = Bounds()
        for match in bound_pattern.finditer(clause):
            apply_bound(bounds, match)
        if not bounds.empty:
            return bounds

    return Bounds()


# ============================================================================
# Employees
# ============================================================================

EMPLOYEE_ANCHOR = re.compile(r"(?:상시\s*)?(?:근로자|종업원|직원|고용인원)(?:\s*수)?")
EMPLOYEE_RANGE = re.compile(r"\s*[:：]?\s*(\d+)\s*(?:명|인)?\s*[~\-]\s*(\d+)\s*(?:명|인)")
EMPLOYEE_BOUND = re.compile(r"(\d+)\s*(?:명|인)\s*(이상|초과|이하|미만|이내)")


def _employee_range(match: re.Match) -> Bounds:
    return Bounds(int(match.group(1)), int(match.group(2)))


def _employee_bound(bounds: Bounds, match: re.Match) -> None:
    value = int(match.group(1))
    qualifier = match.group(2)
    if qualifier == "이상":
        bounds.min = value
    elif qualifier == "초과":
        bounds.min = value + 1
    elif qualifier == "미만":
        bounds.max = value - 1
    else:
        bounds.max = value


def extract_employee_range(text: str) -> Bounds:
    """
    Extract employee-count bounds.

    Examples:
        "상시근로자 50인 미만" -> max 49
        "종업원 10명 이상" -> min 10
        "직원 수 5~20명" -> 5..20
        "상시근로자 5인 이상 300인 미만" -> 5..299
    """
    return _scan_bounds(
        text, EMPLOYEE_ANCHOR, EMPLOYEE_RANGE, EMPLOYEE_BOUND,
        _employee_range, _employee_bound,
    )


# ============================================================================
# Revenue
# ============================================================================

# Multipliers to 억원
REVENUE_UNITS = {
    "조": 10000.0,
    "억": 1.0,
    "천만": 0.1,
    "백만": 0.01,
    "만": 0.0001,
}
WON_TO_EOK = 1e-8

REVENUE_ANCHOR = re.compile(r"(?:연\s*)?매출(?:액)?")
_AMOUNT = r"([\d][\d,]*(?:\.\d+)?)\s*(조|억|천만|백만|만)?\s*(원)?"
REVENUE_RANGE = re.compile(r"\s*[:：]?\s*" + _AMOUNT + r"\s*[~\-]\s*" + _AMOUNT)
REVENUE_BOUND = re.compile(_AMOUNT + r"\s*(이상|초과|이하|미만|이내)")


def to_eok(amount: str, unit: Optional[str], won: Optional[str] = None) -> Optional[float]:
    """
    Convert an amount with a Korean unit to 억원.

    A bare number is read as 억; a bare number followed by 원 as won.

    Example:
        >>> to_eok("1.5", "조")
        15000.0
    """
    try:
        number = float(amount.replace(",", ""))
    except ValueError:
        return None

    if unit:
        return round(number * REVENUE_UNITS[unit], 4)
    if won:
        return round(number * WON_TO_EOK, 4)
    return number


def _one_decimal(value: Optional[float]) -> Optional[float]:
    return None if value is None else round(value, 1)


def _revenue_range(match: re.Match) -> Bounds:
    low_amount, low_unit, low_won, high_amount, high_unit, high_won = match.groups()
    # "10~100억": the first amount borrows the second unit
    low_unit = low_unit or (high_unit if not low_won else None)
    high_unit = high_unit or (low_unit if not high_won else None)
    return Bounds(
        _one_decimal(to_eok(low_amount, low_unit, low_won)),
        _one_decimal(to_eok(high_amount, high_unit, high_won)),
    )


def _revenue_bound(bounds: Bounds, match: re.Match) -> None:
    amount, unit, won, qualifier = match.groups()
    value = to_eok(amount, unit, won)
    if value is None:
        return
    if qualifier == "이상":
        bounds.min = _one_decimal(value)
    elif qualifier == "초과":
        bounds.min = _one_decimal(value + 0.1)
    elif qualifier == "미만":
        bounds.max = _one_decimal(value - 0.1)
    else:
        bounds.max = _one_decimal(value)


def extract_revenue_range(text: str) -> Bounds:
    """
    Extract revenue bounds in 억원.

    Examples:
        "매출액 100억 미만" -> max 99.9
        "연매출 10억 이상 50억 이하" -> 10..50
        "매출 500백만원 이하" -> max 5.0
    """
    return _scan_bounds(
        text, REVENUE_ANCHOR, REVENUE_RANGE, REVENUE_BOUND,
        _revenue_range, _revenue_bound,
    )


# ============================================================================
# Business age
# ============================================================================

AGE_ANCHOR = re.compile(r"(?:창업|업력|설립)(?:\s*후)?")
AGE_RANGE = re.compile(r"\s*[:：]?\s*(\d+)\s*(?:년)?\s*[~\-]\s*(\d+)\s*년")
AGE_BOUND = re.compile(r"(\d+)\s*년\s*(이상|초과|이하|미만|이내)")
AGE_YEAR_COUNT = re.compile(r"(\d+)\s*년차\s*(이상|이하|미만)")

# Life-stage vocabulary -> (min, max) years, checked in order
LIFE_STAGE_AGES = [
    (re.compile(r"초기\s*창업"), (None, 3)),
    (re.compile(r"창업\s*도약|도약기"), (3, 7)),
]


def _age_range(match: re.Match) -> Bounds:
    return Bounds(int(match.group(1)), int(match.group(2)))


def _age_bound(bounds: Bounds, match: re.Match) -> None:
    value = int(match.group(1))
    qualifier = match.group(2)
    if qualifier == "이상":
        bounds.min = value
    elif qualifier == "초과":
        bounds.min = value + 1
    else:
        # 이내, 이하 and 미만 all cap the age at N years
        bounds.max = value


def extract_business_age_range(text: str) -> Bounds:
    """
    Extract business-age bounds in years.

    Examples:
        "창업 7년 이내" -> max 7
        "업력 3년~7년" -> 3..7
        "창업 3년 초과 7년 이내" -> 4..7
        "5년차 이상" -> min 5
        "초기창업기업" -> max 3
    """
    bounds = _scan_bounds(
        text, AGE_ANCHOR, AGE_RANGE, AGE_BOUND,
        _age_range, _age_bound,
    )
    if not bounds.empty:
        return bounds

    match = AGE_YEAR_COUNT.search(text or "")
    if match:
        years = int(match.group(1))
        if match.group(2) == "이상":
            return Bounds(min=years)
        return Bounds(max=years)

    for pattern, (low, high) in LIFE_STAGE_AGES:
        if pattern.search(text or ""):
            return Bounds(low, high)

    return Bounds()


# ============================================================================
# Regions
# ============================================================================

# Longest names first so 서울특별시 wins over 서울
_REGION_ALTERNATION = "|".join(
    re.escape(name) for name in sorted(REGION_NAMES, key=len, reverse=True)
)
_REGION_SUFFIX = r"(?:특별자치시|특별자치도|특별시|광역시|도|시)?"

BRACKET_PREFIX = re.compile(r"^\s*[\[\(【<〈「]\s*([^\]\)】>〉」]{1,30})\s*[\]\)】>〉」]")
LEADING_REGION = re.compile(
    r"^\s*(" + _REGION_ALTERNATION + r")" + _REGION_SUFFIX + r"(?=[\s·,/:\-]|$)"
)
YEAR_PREFIXED_REGION = re.compile(
    r"^\s*'?(?:20)?\d{2}\s*년(?:도)?\s+(" + _REGION_ALTERNATION + r")" + _REGION_SUFFIX
    + r"(?=[\s·,/:\-]|$)"
)

# Closed keyword set; a region name counts only next to one of these
REGION_KEYWORDS = r"(?:소재지|소재|관내|지역|거주|주소지|내\s*기업|기업\s*대상|에\s*본사)"
REGION_WITH_KEYWORD = re.compile(
    r"(?<![가-힣])(" + _REGION_ALTERNATION + r")" + _REGION_SUFFIX + r"\s*(?:내\s*)?" + REGION_KEYWORDS
)
KEYWORD_THEN_REGION = re.compile(
    r"(?:소재지|주사무소|본사|사업장)\s*(?:[:：]|가|이)?\s*(" + _REGION_ALTERNATION + r")"
)


def _regions_from_names(names: list[str]) -> list[KoreanRegion]:
    regions = []
    for name in names:
        region = REGION_NAMES.get(name.strip())
        if region and region not in regions:
            regions.append(region)
    return regions


def extract_regions_from_title(title: str) -> list[KoreanRegion]:
    """
    Extract regions from an announcement title.

    Precedence: bracketed prefix ("[서울] ..."), bare leading region name
    ("대구 청년 ..."), year-prefixed region ("2026년 부산 ..."), then a
    region next to a location keyword.

    Example:
        >>> extract_regions_from_title("[서울] 2026년 대구 협력사업")
        [<KoreanRegion.SEOUL: 'SEOUL'>]
    """
    if not title:
        return []

    remainder = title
    match = BRACKET_PREFIX.match(title)
    if match:
        names = re.findall(_REGION_ALTERNATION, match.group(1))
        regions = _regions_from_names(names)
        if regions:
            return regions
        # Non-region tag such as "[공고]"
        remainder = title[match.end():]

    for pattern in (LEADING_REGION, YEAR_PREFIXED_REGION):
        match = pattern.match(remainder)
        if match:
            return _regions_from_names([match.group(1)])

    return extract_regions_from_text(title)


def extract_regions_from_text(text: str) -> list[KoreanRegion]:
    """
    Extract regions mentioned together with a location keyword.

    "서울특별시 소재" and "소재지: 부산" count; a bare "서울" does not.
    """
    if not text:
        return []

    names = [m.group(1) for m in REGION_WITH_KEYWORD.finditer(text)]
    names += [m.group(1) for m in KEYWORD_THEN_REGION.finditer(text)]
    return _regions_from_names(names)


def extract_regions(title: str, description: Optional[str]) -> list[KoreanRegion]:
    """Title regions win; otherwise description regions."""
    return extract_regions_from_title(title) or extract_regions_from_text(description or "")


# ============================================================================
# Support target section
# ============================================================================

SUPPORT_TARGET_LABEL = re.compile(r"(?:지원\s*대상|신청\s*자격|지원\s*자격|참여\s*대상|신청\s*대상)\s*[:：]?")
SUPPORT_TARGET_LENGTH = 500


def extract_support_target(text: str) -> Optional[str]:
    """Return the text following the first support-target label."""
    if not text:
        return None
    match = SUPPORT_TARGET_LABEL.search(text)
    if not match:
        return None
    section = text[match.end():match.end() + SUPPORT_TARGET_LENGTH].strip()
    return section or None


# ============================================================================
# Tier 1 entry point
# ============================================================================

TIER1_GROUPS = ("company_scale", "employees", "revenue", "business_age", "regions")


def tier1_confidence(field_count: int) -> Confidence:
    if field_count >= 3:
        return Confidence.HIGH
    if field_count >= 1:
        return Confidence.MEDIUM
    return Confidence.LOW


def extract_eligibility(
    title: str,
    description: Optional[str] = None,
    support_target: Optional[str] = None,
) -> ExtractedEligibility:
    """
    Run every Tier 1 pattern over an announcement.

    Company scale is read from all text; numeric bounds from the support
    target (else description, else title); regions from the title first.

    Args:
        title: Announcement title
        description: Detail text
        support_target: Support-target section, if known

    Returns:
        ExtractedEligibility with Tier 1 confidence
    """
    all_text = " ".join(part for part in (title, description, support_target) if part)
    target_text = support_target or description or title or ""

    employees = extract_employee_range(target_text)
    revenue = extract_revenue_range(target_text)
    age = extract_business_age_range(target_text)

    result = ExtractedEligibility(
        regions=extract_regions(title, description),
        company_scale=extract_company_scale(all_text),
        min_employees=employees.min,
        max_employees=employees.max,
        min_revenue=revenue.min,
        max_revenue=revenue.max,
        min_business_age=age.min,
        max_business_age=age.max,
        tier=ExtractionTier.TIER1,
    )
    result.confidence = tier1_confidence(len(result.populated_groups(TIER1_GROUPS)))
    return result
