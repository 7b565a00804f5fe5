"""
Versioned response schemas for model-backed tiers.

Responses are validated at the ingestion boundary: unknown keys are
dropped, values are coerced or discarded, and region names are resolved to
enum members before anything reaches the pipeline.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.models import ExtractedEligibility, ExtractionTier, KoreanRegion
from ..normalization.mapper import map_region_name

SCHEMA_VERSION = "2025-01"


def _optional_number(value: Any) -> Optional[float]:
    """Accept numbers and numeric strings; anything else becomes None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        cleaned = value.replace(",", "").strip()
        try:
            return float(cleaned)
        except ValueError:
            return None
    return None


def _string_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    return []


class EligibilityResponseV1(BaseModel):
    """Short-context response (regions, scale, employees, revenue, age)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    regions: list[str] = Field(default_factory=list, description="Region names, [] if nationwide")
    company_scale: list[str] = Field(default_factory=list, alias="companyScale")
    min_employees: Optional[int] = Field(None, alias="minEmployees")
    max_employees: Optional[int] = Field(None, alias="maxEmployees")
    min_revenue: Optional[float] = Field(None, alias="minRevenueOk", description="억원")
    max_revenue: Optional[float] = Field(None, alias="maxRevenueOk", description="억원")
    min_business_age: Optional[int] = Field(None, alias="minBusinessAge")
    max_business_age: Optional[int] = Field(None, alias="maxBusinessAge")

    @field_validator("regions", "company_scale", mode="before")
    @classmethod
    def _lists(cls, value):
        return _string_list(value)

    @field_validator("min_employees", "max_employees", "min_business_age", "max_business_age", mode="before")
    @classmethod
    def _integers(cls, value):
        number = _optional_number(value)
        return None if number is None or number < 0 else int(number)

    @field_validator("min_revenue", "max_revenue", mode="before")
    @classmethod
    def _revenue(cls, value):
        number = _optional_number(value)
        return None if number is None or number < 0 else round(float(number), 1)

    def resolved_regions(self) -> list[KoreanRegion]:
        """Region names mapped to enums; unresolvable names are dropped."""
        regions = []
        for name in self.regions:
            region = map_region_name(name)
            if region and region not in regions:
                regions.append(region)
        return regions

    def to_eligibility(self, tier: ExtractionTier) -> ExtractedEligibility:
        return ExtractedEligibility(
            regions=self.resolved_regions(),
            company_scale=list(dict.fromkeys(self.company_scale)),
            min_employees=self.min_employees,
            max_employees=self.max_employees,
            min_revenue=self.min_revenue,
            max_revenue=self.max_revenue,
            min_business_age=self.min_business_age,
            max_business_age=self.max_business_age,
            tier=tier,
        )


class DocumentEligibilityResponseV1(EligibilityResponseV1):
    """Full-document response; adds certifications, industry, exclusions, amounts."""

    required_certs: list[str] = Field(default_factory=list, alias="requiredCerts")
    target_industry: Optional[str] = Field(None, alias="targetIndustry")
    exclusion_conditions: list[str] = Field(default_factory=list, alias="exclusionConditions")
    support_amount_min: Optional[int] = Field(None, alias="supportAmountMin", description="만원")
    support_amount_max: Optional[int] = Field(None, alias="supportAmountMax", description="만원")

    @field_validator("required_certs", "exclusion_conditions", mode="before")
    @classmethod
    def _doc_lists(cls, value):
        return _string_list(value)

    @field_validator("target_industry", mode="before")
    @classmethod
    def _industry(cls, value):
        if isinstance(value, list):
            value = value[0] if value else None
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @field_validator("support_amount_min", "support_amount_max", mode="before")
    @classmethod
    def _amounts(cls, value):
        number = _optional_number(value)
        return None if number is None or number < 0 else int(number)

    def to_eligibility(self, tier: ExtractionTier) -> ExtractedEligibility:
        result = super().to_eligibility(tier)
        result.required_certs = list(dict.fromkeys(self.required_certs))
        result.target_industry = self.target_industry
        result.exclusion_conditions = list(self.exclusion_conditions)
        result.support_amount_min = self.support_amount_min
        result.support_amount_max = self.support_amount_max
        return result
