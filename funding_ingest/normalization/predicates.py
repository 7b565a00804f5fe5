"""
Eligibility predicates for the matching engine.

Each check returns an ``EligibilityCheck`` with a Korean reason string.
A program without a requirement on a dimension is always eligible.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..core.models import KoreanRegion
from .codes import CERTIFICATION_CODES, NATIONWIDE_REGION_CODE
from .mapper import (
    map_certifications_to_codes,
    map_employee_count_to_code,
    map_region_to_code,
    map_revenue_to_code,
    normalize_region_code,
)


@dataclass
class EligibilityCheck:
    """Outcome of one eligibility dimension."""
    eligible: bool
    reason: str
    met: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.eligible


def check_region_eligibility(
    org_regions: Iterable[KoreanRegion],
    program_region_codes: Iterable[str],
) -> EligibilityCheck:
    """Region check; the nationwide code satisfies every organization."""
    program_codes = {normalize_region_code(c) for c in program_region_codes}
    if not program_codes or NATIONWIDE_REGION_CODE in program_codes:
        return EligibilityCheck(True, "지역 제한 없음")

    org_regions = list(org_regions)
    if not org_regions:
        return EligibilityCheck(False, "소재지 정보 필요")

    org_codes = {map_region_to_code(r) for r in org_regions}
    if org_codes & program_codes:
        return EligibilityCheck(True, "지역 조건 충족")
    return EligibilityCheck(False, "지역 조건 미충족")


def check_revenue_eligibility(
    org_revenue: Optional[float],
    program_revenue_codes: Iterable[str],
) -> EligibilityCheck:
    """Revenue check; ``org_revenue`` in 억원."""
    program_codes = list(program_revenue_codes)
    if not program_codes:
        return EligibilityCheck(True, "매출액 제한 없음")

    if org_revenue is None:
        return EligibilityCheck(False, "매출액 정보 필요")

    org_code = map_revenue_to_code(org_revenue)
    if org_code is None:
        return EligibilityCheck(False, "매출액 정보 매핑 실패")

    if org_code in program_codes:
        return EligibilityCheck(True, "매출액 조건 충족")
    return EligibilityCheck(False, "매출액 조건 미충족")


def check_employee_eligibility(
    org_employees: Optional[int],
    program_employee_codes: Iterable[str],
) -> EligibilityCheck:
    program_codes = list(program_employee_codes)
    if not program_codes:
        return EligibilityCheck(True, "종업원 수 제한 없음")

    if org_employees is None:
        return EligibilityCheck(False, "종업원 수 정보 필요")

    if map_employee_count_to_code(org_employees) in program_codes:
        return EligibilityCheck(True, "종업원 수 조건 충족")
    return EligibilityCheck(False, "종업원 수 조건 미충족")


def check_business_age_eligibility(
    org_age_years: Optional[float],
    min_age: Optional[int] = None,
    max_age: Optional[int] = None,
) -> EligibilityCheck:
    """Business age check against a program's numeric range (years, inclusive)."""
    if min_age is None and max_age is None:
        return EligibilityCheck(True, "업력 제한 없음")

    if org_age_years is None:
        return EligibilityCheck(False, "업력 정보 필요")

    within_range = (min_age is None or org_age_years >= min_age) and (
        max_age is None or org_age_years <= max_age
    )
    if within_range:
        return EligibilityCheck(True, "업력 조건 충족")
    return EligibilityCheck(False, "업력 조건 미충족")


def check_certification_requirements(
    org_certifications: Iterable[str],
    required_cert_codes: Iterable[str],
) -> EligibilityCheck:
    """
    Certification check tolerant of name variants.

    ``org_certifications`` may hold names in any spelling (이노비즈,
    INNO-BIZ, Innobiz) or canonical codes.
    """
    required = list(required_cert_codes)
    if not required:
        return EligibilityCheck(True, "인증 요건 없음")

    org_codes = set(map_certifications_to_codes(org_certifications))
    met, missing = [], []
    for code in required:
        name = CERTIFICATION_CODES.get(code, code)
        (met if code in org_codes else missing).append(name)

    if missing:
        return EligibilityCheck(False, "필수 인증 미보유: " + ", ".join(missing), met, missing)
    return EligibilityCheck(True, "인증 조건 충족", met, missing)
