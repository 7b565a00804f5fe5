"""
Code normalization layer.

Maps extracted concepts (regions, scale labels, certifications, ranges)
to canonical agency codes and exposes eligibility predicates.
"""

from .mapper import normalize_eligibility, requires_regional_filter
from .predicates import (
    EligibilityCheck,
    check_business_age_eligibility,
    check_certification_requirements,
    check_employee_eligibility,
    check_region_eligibility,
    check_revenue_eligibility,
)

__all__ = [
    "normalize_eligibility",
    "requires_regional_filter",
    "EligibilityCheck",
    "check_business_age_eligibility",
    "check_certification_requirements",
    "check_employee_eligibility",
    "check_region_eligibility",
    "check_revenue_eligibility",
]
