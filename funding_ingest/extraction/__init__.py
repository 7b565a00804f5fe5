"""Eligibility extraction: pattern tier, model tiers, cascade and classification."""

from .cascade import EligibilityCascade, TierStats
from .classification import classify_announcement, classification_stats
from .extractors import (
    EligibilityExtractor,
    ExtractionRequest,
    Tier1PatternExtractor,
    Tier2ModelExtractor,
    Tier3DocumentExtractor,
)
from .patterns import (
    extract_business_age_range,
    extract_company_scale,
    extract_eligibility,
    extract_employee_range,
    extract_regions,
    extract_regions_from_text,
    extract_regions_from_title,
    extract_revenue_range,
    extract_support_target,
)

__all__ = [
    "EligibilityCascade",
    "TierStats",
    "classify_announcement",
    "classification_stats",
    "EligibilityExtractor",
    "ExtractionRequest",
    "Tier1PatternExtractor",
    "Tier2ModelExtractor",
    "Tier3DocumentExtractor",
    "extract_business_age_range",
    "extract_company_scale",
    "extract_eligibility",
    "extract_employee_range",
    "extract_regions",
    "extract_regions_from_text",
    "extract_regions_from_title",
    "extract_revenue_range",
    "extract_support_target",
]
