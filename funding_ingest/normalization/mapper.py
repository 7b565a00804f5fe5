"""
Bidirectional mapping between extracted concepts and canonical codes.

Unresolvable text maps to None and is dropped by the caller, so code
fields never hold free text.
"""

import re
from typing import Iterable, Optional

import structlog

from ..core.models import ExtractedEligibility, KoreanRegion
from .codes import (
    BUSINESS_AGE_BRACKETS,
    CERTIFICATION_CODES,
    CERTIFICATION_SYNONYMS,
    CODE_TO_REGION,
    COMPANY_SCALE_CODES,
    COMPANY_SCALE_LABEL_TO_CODE,
    EMPLOYEE_COUNT_BRACKETS,
    NATIONWIDE_REGION_CODE,
    REGION_CODE_LENGTH,
    REGION_CODES,
    REGION_NAMES,
    REGION_TO_CODE,
    REGIONAL_REQUIRED_KEYWORDS,
    SALES_AMOUNT_BRACKETS,
)

logger = structlog.get_logger(__name__)

REGION_SUFFIX_PATTERN = re.compile(r"(특별자치시|특별자치도|특별시|광역시|도)$")


# ============================================================================
# Regions
# ============================================================================

def normalize_region_code(code: str) -> str:
    """Truncate an administrative code (e.g. 1100000000) to its 4-digit prefix."""
    code = str(code).strip()
    return code[:REGION_CODE_LENGTH] if len(code) > REGION_CODE_LENGTH else code


def map_region_to_code(region: KoreanRegion) -> str:
    return REGION_TO_CODE[KoreanRegion(region)]


def map_code_to_region(code: str) -> Optional[KoreanRegion]:
    """Map a 4- or 10-digit region code to a region; 전국 and unknowns give None."""
    return CODE_TO_REGION.get(normalize_region_code(code))


def map_region_name(name: str) -> Optional[KoreanRegion]:
    """
    Map a Korean region name to a region.

    Accepts short (서울), full (서울특별시) and suffix-stripped forms.
    """
    name = name.strip()
    if name in REGION_NAMES:
        return REGION_NAMES[name]
    stripped = REGION_SUFFIX_PATTERN.sub("", name).strip()
    return REGION_NAMES.get(stripped)


def is_valid_region_code(code: str) -> bool:
    return normalize_region_code(code) in REGION_CODES


# ============================================================================
# Company scale
# ============================================================================

def map_company_scale_to_code(label: str) -> Optional[str]:
    return COMPANY_SCALE_LABEL_TO_CODE.get(label.replace(" ", ""))


def map_code_to_company_scale(code: str) -> Optional[str]:
    return COMPANY_SCALE_CODES.get(code)


# ============================================================================
# Certifications
# ============================================================================

def normalize_cert_name(name: str) -> str:
    """Uppercase and remove whitespace so variants compare equal."""
    return re.sub(r"\s+", "", name).upper()


_CERT_LOOKUP = {
    **{normalize_cert_name(v): k for k, v in CERTIFICATION_CODES.items()},
    **{normalize_cert_name(k): v for k, v in CERTIFICATION_SYNONYMS.items()},
}


def map_certification_to_code(name: str) -> Optional[str]:
    """
    Map a certification name variant to its canonical code.

    Example:
        >>> map_certification_to_code("Inno-Biz")
        'EC06'
    """
    if name.upper() in CERTIFICATION_CODES:
        return name.upper()

    key = normalize_cert_name(name)
    if key in _CERT_LOOKUP:
        return _CERT_LOOKUP[key]
    # Hyphen-less spelling, e.g. "Main Biz" -> "MAINBIZ"
    return _CERT_LOOKUP.get(key.replace("-", ""))


def map_certifications_to_codes(names: Iterable[str]) -> list[str]:
    codes = []
    for name in names:
        code = map_certification_to_code(name)
        if code is None:
            logger.debug("unmapped_certification", name=name)
        elif code not in codes:
            codes.append(code)
    return codes


# ============================================================================
# Brackets
# ============================================================================

def _bracket_for(value: float, brackets: list) -> Optional[str]:
    """Find the half-open bracket [low, high) containing value."""
    if value is None or value < 0:
        return None
    for code, low, high in brackets:
        if value >= low and (high is None or value < high):
            return code
    return None


def _brackets_overlapping(
    minimum: Optional[float],
    maximum: Optional[float],
    brackets: list,
) -> list[str]:
    """Codes of every bracket intersecting the closed range [minimum, maximum]."""
    if minimum is None and maximum is None:
        return []
    low_bound = minimum if minimum is not None else 0
    codes = []
    for code, low, high in brackets:
        if maximum is not None and low > maximum:
            continue
        if high is not None and high <= low_bound:
            continue
        codes.append(code)
    return codes


def map_revenue_to_code(revenue: Optional[float]) -> Optional[str]:
    """Revenue in 억원 to SI code."""
    return _bracket_for(revenue, SALES_AMOUNT_BRACKETS)


def map_employee_count_to_code(count: Optional[int]) -> Optional[str]:
    return _bracket_for(count, EMPLOYEE_COUNT_BRACKETS)


def map_business_age_to_code(years: Optional[float]) -> Optional[str]:
    """
    Business age in years to OI code.

    Brackets are half-open, so 5 years falls in OI03 (5~7년).
    """
    return _bracket_for(years, BUSINESS_AGE_BRACKETS)


def revenue_range_to_codes(minimum: Optional[float], maximum: Optional[float]) -> list[str]:
    return _brackets_overlapping(minimum, maximum, SALES_AMOUNT_BRACKETS)


def employee_range_to_codes(minimum: Optional[int], maximum: Optional[int]) -> list[str]:
    return _brackets_overlapping(minimum, maximum, EMPLOYEE_COUNT_BRACKETS)


def age_range_to_codes(minimum: Optional[int], maximum: Optional[int]) -> list[str]:
    return _brackets_overlapping(minimum, maximum, BUSINESS_AGE_BRACKETS)


# ============================================================================
# Programs
# ============================================================================

def requires_regional_filter(title: str, description: str = "") -> bool:
    """True if the program is region-specific by nature (로컬벤처, 지역혁신, ...)."""
    text = f"{title} {description}"
    return any(keyword in text for keyword in REGIONAL_REQUIRED_KEYWORDS)


def normalize_eligibility(eligibility: ExtractedEligibility) -> dict:
    """
    Convert extracted eligibility into canonical program fields.

    Args:
        eligibility: Merged cascade output

    Returns:
        Dict of CanonicalProgramRecord fields
    """
    region_codes = []
    for region in eligibility.regions:
        code = map_region_to_code(region)
        if code not in region_codes:
            region_codes.append(code)

    scale_codes = []
    for label in eligibility.company_scale:
        code = map_company_scale_to_code(label)
        if code is None:
            logger.debug("unmapped_company_scale", label=label)
        elif code not in scale_codes:
            scale_codes.append(code)

    return {
        "region_codes": region_codes,
        "company_scale_codes": scale_codes,
        "certification_codes": map_certifications_to_codes(eligibility.required_certs),
        "revenue_codes": revenue_range_to_codes(eligibility.min_revenue, eligibility.max_revenue),
        "employee_codes": employee_range_to_codes(
            eligibility.min_employees, eligibility.max_employees
        ),
        "business_age_codes": age_range_to_codes(
            eligibility.min_business_age, eligibility.max_business_age
        ),
        "min_employees": eligibility.min_employees,
        "max_employees": eligibility.max_employees,
        "min_revenue": eligibility.min_revenue,
        "max_revenue": eligibility.max_revenue,
        "min_business_age": eligibility.min_business_age,
        "max_business_age": eligibility.max_business_age,
        "support_amount_min": eligibility.support_amount_min,
        "support_amount_max": eligibility.support_amount_max,
        "target_industry": eligibility.target_industry,
        "exclusion_conditions": list(eligibility.exclusion_conditions),
        "eligibility_confidence": eligibility.confidence,
        "eligibility_tier": eligibility.tier,
    }


__all__ = [
    "NATIONWIDE_REGION_CODE",
    "normalize_region_code",
    "map_region_to_code",
    "map_code_to_region",
    "map_region_name",
    "is_valid_region_code",
    "map_company_scale_to_code",
    "map_code_to_company_scale",
    "map_certification_to_code",
    "map_certifications_to_codes",
    "map_revenue_to_code",
    "map_employee_count_to_code",
    "map_business_age_to_code",
    "revenue_range_to_codes",
    "employee_range_to_codes",
    "age_range_to_codes",
    "requires_regional_filter",
    "normalize_eligibility",
]
