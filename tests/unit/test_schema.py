"""Tests for model response schemas."""

import pytest
from pydantic import ValidationError

from funding_ingest.core.models import ExtractionTier, KoreanRegion
from funding_ingest.extraction.schema import DocumentEligibilityResponseV1, EligibilityResponseV1


class TestEligibilityResponseV1:
    """Tests for the short-context response schema."""

    def test_aliases_and_coercion(self):
        """Test camelCase keys, numeric strings and negative values."""
        response = EligibilityResponseV1.model_validate(
            {
                "regions": ["서울특별시", "화성", "서울"],
                "companyScale": "중소기업",
                "minEmployees": "5",
                "maxEmployees": -1,
                "maxRevenueOk": "5,000",
                "minBusinessAge": True,
                "unexpected": "ignored",
            }
        )

        assert response.company_scale == ["중소기업"]
        assert response.min_employees == 5
        assert response.max_employees is None
        assert response.max_revenue == 5000.0
        assert response.min_business_age is None
        assert response.resolved_regions() == [KoreanRegion.SEOUL]

    def test_garbage_numbers_dropped(self):
        """Test that non-numeric values become None."""
        response = EligibilityResponseV1.model_validate({"minRevenueOk": "약 10억", "maxEmployees": {"x": 1}})
        assert response.min_revenue is None
        assert response.max_employees is None

    def test_wrong_list_type_rejected(self):
        """Test that a list field with an unusable shape is emptied."""
        assert EligibilityResponseV1.model_validate({"regions": 3}).regions == []

    def test_to_eligibility(self):
        """Test conversion into the common schema."""
        response = EligibilityResponseV1.model_validate(
            {"regions": ["대구"], "companyScale": ["소상공인", "소상공인"], "maxRevenueOk": 99.94}
        )

        result = response.to_eligibility(ExtractionTier.TIER2)

        assert result.tier is ExtractionTier.TIER2
        assert result.regions == [KoreanRegion.DAEGU]
        assert result.company_scale == ["소상공인"]
        assert result.max_revenue == 99.9


class TestDocumentEligibilityResponseV1:
    """Tests for the full-document response schema."""

    def test_document_fields(self):
        """Test fields only present in document responses."""
        response = DocumentEligibilityResponseV1.model_validate(
            {
                "requiredCerts": "이노비즈",
                "targetIndustry": ["제조업", "서비스업"],
                "exclusionConditions": ["세금 체납 기업", None, " "],
                "supportAmountMax": "30,000",
                "supportAmountMin": -5,
            }
        )

        result = response.to_eligibility(ExtractionTier.TIER3)

        assert result.required_certs == ["이노비즈"]
        assert result.target_industry == "제조업"
        assert result.exclusion_conditions == ["세금 체납 기업"]
        assert result.support_amount_max == 30000
        assert result.support_amount_min is None
        assert result.tier is ExtractionTier.TIER3

    def test_blank_industry_is_none(self):
        """Test that an empty industry string becomes None."""
        response = DocumentEligibilityResponseV1.model_validate({"targetIndustry": "  "})
        assert response.target_industry is None

    def test_non_mapping_rejected(self):
        """Test that a non-object payload is a validation error."""
        with pytest.raises(ValidationError):
            DocumentEligibilityResponseV1.model_validate(["not", "an", "object"])
