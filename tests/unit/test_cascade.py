"""Tests for extraction strategies and the eligibility cascade."""

import pytest

from funding_ingest.core.models import Confidence, ExtractionTier, KoreanRegion
from funding_ingest.extraction.cascade import EligibilityCascade
from funding_ingest.extraction.extractors import (
    DESCRIPTION_LIMIT,
    DOCUMENT_MAX_TOKENS,
    ExtractionRequest,
    Tier1PatternExtractor,
    Tier2ModelExtractor,
    Tier3DocumentExtractor,
)
from funding_ingest.plugins.llm import CHEAP_CLAUDE_MODEL, EXPENSIVE_CLAUDE_MODEL

RICH_TITLE = "2025년 기술개발 지원사업"
RICH_DESCRIPTION = "업력 3년~7년 기업 대상, 서울특별시 소재, 중소기업 한정"
BARE_TITLE = "2025년 기술 공고"
BARE_DESCRIPTION = "자세한 내용은 첨부 참조"


def three_tiers(provider, sleep, **kwargs):
    return EligibilityCascade(
        [Tier1PatternExtractor(), Tier2ModelExtractor(provider), Tier3DocumentExtractor(provider)],
        sleep=sleep,
        **kwargs,
    )


class TestCascadeOrder:
    """Tests for tier ordering and early stopping."""

    @pytest.mark.asyncio
    async def test_tier1_signal_stops_cascade(self, fake_provider, no_sleep):
        """Test that models are not called when patterns find fields."""
        provider = fake_provider()
        cascade = three_tiers(provider, no_sleep)

        result = await cascade.run(
            ExtractionRequest(title=RICH_TITLE, description=RICH_DESCRIPTION, document_text="본문")
        )

        assert result.tier is ExtractionTier.TIER1
        assert result.confidence is Confidence.HIGH
        assert provider.calls == []
        assert result.cost_usd == 0

    @pytest.mark.asyncio
    async def test_tier2_fills_when_patterns_empty(self, fake_provider, no_sleep):
        """Test that Tier 2 output becomes the result at MEDIUM confidence."""
        provider = fake_provider(['{"regions": ["대구"], "companyScale": ["중소기업"]}'])
        cascade = three_tiers(provider, no_sleep)

        result = await cascade.run(ExtractionRequest(title=BARE_TITLE, description=BARE_DESCRIPTION))

        assert result.tier is ExtractionTier.TIER2
        assert result.confidence is Confidence.MEDIUM
        assert result.regions == [KoreanRegion.DAEGU]
        assert result.field_sources["regions"] == "TIER2"
        assert result.cost_usd == pytest.approx(0.0002)
        assert len(provider.calls) == 1
        assert provider.calls[0]["model"] == CHEAP_CLAUDE_MODEL

    @pytest.mark.asyncio
    async def test_malformed_tier2_falls_through_to_documents(self, fake_provider, no_sleep):
        """Test that a malformed response is no signal and Tier 3 runs after a delay."""
        provider = fake_provider(
            [
                "죄송합니다. 추출할 수 없습니다.",
                '{"regions": ["부산"], "companyScale": ["소상공인"], "requiredCerts": ["이노비즈"],'
                ' "targetIndustry": "제조업", "supportAmountMax": 30000}',
            ]
        )
        cascade = three_tiers(provider, no_sleep)

        result = await cascade.run(
            ExtractionRequest(title=BARE_TITLE, description=BARE_DESCRIPTION, document_text="공고 본문 전체")
        )

        assert result.tier is ExtractionTier.TIER3
        assert result.confidence is Confidence.HIGH
        assert result.required_certs == ["이노비즈"]
        assert no_sleep.delays == [1.0]
        assert provider.calls[1]["max_tokens"] == DOCUMENT_MAX_TOKENS
        assert len(result.usage) == 2

        stats = cascade.stats_dict()
        assert stats["TIER2"]["invocations"] == 1
        assert stats["TIER2"]["producedSignal"] == 0
        assert stats["TIER2"]["inputTokens"] == 100
        assert stats["TIER3"]["producedSignal"] == 1
        assert stats["TIER3"]["fieldsFilled"] == 5

    @pytest.mark.asyncio
    async def test_document_tier_skipped_without_text(self, fake_provider, no_sleep):
        """Test that Tier 3 does not run without attachment text."""
        provider = fake_provider(['{"regions": []}'])
        cascade = three_tiers(provider, no_sleep)

        result = await cascade.run(ExtractionRequest(title=BARE_TITLE, description=BARE_DESCRIPTION))

        assert result.is_empty
        assert result.confidence is Confidence.LOW
        assert len(provider.calls) == 1
        assert cascade.stats_dict()["TIER3"]["invocations"] == 0

    @pytest.mark.asyncio
    async def test_model_exception_is_no_signal(self, fake_provider, no_sleep):
        """Test that provider errors never escape the cascade."""
        provider = fake_provider([RuntimeError("connection reset")])
        cascade = three_tiers(provider, no_sleep)

        result = await cascade.run(ExtractionRequest(title=BARE_TITLE, description=BARE_DESCRIPTION))

        assert result.is_empty
        assert result.usage == []
        assert cascade.stats_dict()["TIER2"]["invocations"] == 1

    def test_out_of_order_rejected(self, fake_provider):
        """Test that extractors must be ordered by tier."""
        with pytest.raises(ValueError):
            EligibilityCascade([Tier2ModelExtractor(fake_provider()), Tier1PatternExtractor()])


class TestMaximizeEnrichment:
    """Tests for the enrichment mode."""

    @pytest.mark.asyncio
    async def test_later_tiers_fill_only_missing_fields(self, fake_provider, no_sleep):
        """Test that every tier runs and earlier values are kept."""
        provider = fake_provider(
            [
                '{"regions": ["부산"], "minEmployees": 5}',
                '{"regions": ["대구"], "requiredCerts": ["이노비즈"]}',
            ]
        )
        cascade = three_tiers(provider, no_sleep, maximize_enrichment=True)

        result = await cascade.run(
            ExtractionRequest(title=RICH_TITLE, description=RICH_DESCRIPTION, document_text="공고 본문 전체")
        )

        assert result.tier is ExtractionTier.TIER1
        assert result.confidence is Confidence.HIGH
        assert result.regions == [KoreanRegion.SEOUL]
        assert result.min_employees == 5
        assert result.required_certs == ["이노비즈"]
        assert result.field_sources["min_employees"] == "TIER2"
        assert result.field_sources["required_certs"] == "TIER3"
        assert "regions" not in result.field_sources
        assert len(provider.calls) == 2
        assert no_sleep.delays == [1.0]


class TestBuild:
    """Tests for EligibilityCascade.build."""

    def test_pattern_only_without_provider(self):
        """Test that no provider means Tier 1 only."""
        cascade = EligibilityCascade.build(None)
        assert [e.tier for e in cascade.extractors] == [ExtractionTier.TIER1]

    def test_expensive_model_only_for_documents(self, fake_provider):
        """Test that the expensive model flag applies to Tier 3."""
        cascade = EligibilityCascade.build(fake_provider(), use_expensive_model=True)

        tier2, tier3 = cascade.extractors[1], cascade.extractors[2]
        assert tier2.provider.model == CHEAP_CLAUDE_MODEL
        assert tier3.provider.model == EXPENSIVE_CLAUDE_MODEL


class TestPrompts:
    """Tests for prompt rendering."""

    def test_description_truncated(self, fake_provider):
        """Test that long descriptions are cut before prompting."""
        prompt = Tier2ModelExtractor(fake_provider()).build_prompt(
            ExtractionRequest(title="제목", description="가" * (DESCRIPTION_LIMIT + 500))
        )
        assert "가" * DESCRIPTION_LIMIT in prompt
        assert "가" * (DESCRIPTION_LIMIT + 1) not in prompt
        assert "제목: 제목" in prompt
