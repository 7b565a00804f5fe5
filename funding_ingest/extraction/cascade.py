"""
Eligibility extraction cascade.

Strategies run strictly in tier order. The cascade stops at the first tier
that produces any field unless ``maximize_enrichment`` is set, in which case
every applicable tier runs and later tiers only fill fields that are still
empty.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Sequence

import structlog

from ..core.models import ExtractedEligibility, ExtractionTier
from ..plugins.llm import InferenceProvider
from .extractors import (
    EligibilityExtractor,
    ExtractionRequest,
    Tier1PatternExtractor,
    Tier2ModelExtractor,
    Tier3DocumentExtractor,
)

logger = structlog.get_logger(__name__)


@dataclass
class TierStats:
    """Accounting for one tier across a run."""
    invocations: int = 0
    produced_signal: int = 0
    fields_filled: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0

    def to_dict(self) -> dict:
        return {
            "invocations": self.invocations,
            "producedSignal": self.produced_signal,
            "fieldsFilled": self.fields_filled,
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "costUsd": round(self.cost_usd, 6),
        }


class EligibilityCascade:
    """
    Chain of extraction strategies.

    Usage:
        cascade = EligibilityCascade.build(provider)
        result = await cascade.run(ExtractionRequest(title=..., description=...))
    """

    def __init__(
        self,
        extractors: Sequence[EligibilityExtractor],
        maximize_enrichment: bool = False,
        inter_call_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        tiers = [e.tier for e in extractors]
        if tiers != sorted(tiers, key=lambda t: list(ExtractionTier).index(t)):
            raise ValueError(f"Extractors must be ordered by tier, got {[t.value for t in tiers]}")

        self.extractors = list(extractors)
        self.maximize_enrichment = maximize_enrichment
        self.inter_call_delay = inter_call_delay
        self._sleep = sleep
        self.stats: dict[ExtractionTier, TierStats] = {e.tier: TierStats() for e in self.extractors}

    @classmethod
    def build(
        cls,
        provider: Optional[InferenceProvider],
        maximize_enrichment: bool = False,
        use_expensive_model: bool = False,
        inter_call_delay: float = 1.0,
    ) -> "EligibilityCascade":
        """Standard three-tier cascade; model tiers are omitted without a provider."""
        extractors: list[EligibilityExtractor] = [Tier1PatternExtractor()]
        if provider is not None:
            extractors.append(Tier2ModelExtractor(provider))
            extractors.append(Tier3DocumentExtractor(provider, use_expensive_model=use_expensive_model))
        else:
            logger.warning("cascade_pattern_only", reason="no inference provider")
        return cls(
            extractors,
            maximize_enrichment=maximize_enrichment,
            inter_call_delay=inter_call_delay,
        )

    async def run(self, request: ExtractionRequest) -> ExtractedEligibility:
        """
        Run the cascade for one announcement.

        Args:
            request: Title, description, support target and document text

        Returns:
            Merged result; ``tier`` and ``confidence`` come from the first
            tier that produced a signal
        """
        result: Optional[ExtractedEligibility] = None
        model_called = False

        for extractor in self.extractors:
            if result is not None and not result.is_empty and not self.maximize_enrichment:
                break
            if not extractor.applies_to(request):
                logger.debug("tier_not_applicable", tier=extractor.tier.value)
                continue

            if extractor.uses_model:
                if model_called and self.inter_call_delay > 0:
                    await self._sleep(self.inter_call_delay)
                model_called = True

            candidate = await extractor.extract(request)
            stats = self.stats[extractor.tier]
            stats.invocations += 1
            for usage in candidate.usage:
                stats.input_tokens += usage.input_tokens
                stats.output_tokens += usage.output_tokens
                stats.cost_usd += usage.cost_usd
            if not candidate.is_empty:
                stats.produced_signal += 1

            if result is None:
                result = candidate
                stats.fields_filled += len(candidate.populated_groups())
                continue

            groups_before = len(result.populated_groups())
            was_empty = groups_before == 0
            filled = result.merge_missing(candidate)
            stats.fields_filled += len(result.populated_groups()) - groups_before
            if was_empty and filled:
                result.tier = candidate.tier
                result.confidence = candidate.confidence
            if filled:
                logger.debug("tier_filled_fields", tier=extractor.tier.value, fields=filled)

        if result is None:
            result = ExtractedEligibility()

        logger.info(
            "cascade_complete",
            title=request.title[:80],
            tier=result.tier.value if result.tier else None,
            confidence=result.confidence.value,
            fields=result.populated_groups(),
            cost_usd=round(result.cost_usd, 6),
        )
        return result

    def stats_dict(self) -> dict:
        return {tier.value: stats.to_dict() for tier, stats in self.stats.items()}
