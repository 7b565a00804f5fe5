"""
Eligibility extraction strategies.

Three tiers, cheapest first:
- Tier 1: regex patterns (free, deterministic)
- Tier 2: short-context model call on title, description and support target
- Tier 3: full-document model call on attachment text

Every strategy returns an ExtractedEligibility. A failing model call is
"no signal": an empty result at LOW confidence, never an exception.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import structlog
from pydantic import ValidationError

from ..core.models import Confidence, ExtractedEligibility, ExtractionTier
from ..plugins.llm import Completion, InferenceProvider, extract_json_object
from .patterns import extract_eligibility
from .prompts import DOCUMENT_PROMPT, SHORT_CONTEXT_PROMPT
from .schema import DocumentEligibilityResponseV1, EligibilityResponseV1

logger = structlog.get_logger(__name__)

DESCRIPTION_LIMIT = 2500
SUPPORT_TARGET_LIMIT = 500
DOCUMENT_LIMIT = 50000

SHORT_CONTEXT_MAX_TOKENS = 512
DOCUMENT_MAX_TOKENS = 1024


@dataclass
class ExtractionRequest:
    """Everything the cascade knows about one announcement."""
    title: str
    description: Optional[str] = None
    support_target: Optional[str] = None
    document_text: Optional[str] = None

    @property
    def has_document(self) -> bool:
        return bool(self.document_text and self.document_text.strip())


def document_confidence(field_count: int) -> Confidence:
    if field_count >= 4:
        return Confidence.HIGH
    if field_count >= 1:
        return Confidence.MEDIUM
    return Confidence.LOW


def _truncate(text: Optional[str], limit: int) -> str:
    if not text:
        return ""
    return text[:limit]


class EligibilityExtractor(ABC):
    """One strategy in the extraction cascade."""

    tier: ExtractionTier
    uses_model: bool = False

    def applies_to(self, request: ExtractionRequest) -> bool:
        """Whether this strategy has input to work with."""
        return True

    @abstractmethod
    async def extract(self, request: ExtractionRequest) -> ExtractedEligibility:
        """Extract eligibility; never raises for bad input or model failures."""


class Tier1PatternExtractor(EligibilityExtractor):
    """Regex extraction over title, description and support target."""

    tier = ExtractionTier.TIER1

    async def extract(self, request: ExtractionRequest) -> ExtractedEligibility:
        result = extract_eligibility(
            request.title,
            description=request.description,
            support_target=request.support_target,
        )
        logger.debug(
            "tier1_extracted",
            fields=result.populated_groups(),
            confidence=result.confidence.value,
        )
        return result


class ModelExtractor(EligibilityExtractor):
    """Shared call-validate-account flow for model-backed tiers."""

    uses_model = True
    max_tokens: int = SHORT_CONTEXT_MAX_TOKENS
    response_schema = EligibilityResponseV1

    def __init__(self, provider: InferenceProvider):
        self.provider = provider

    @abstractmethod
    def build_prompt(self, request: ExtractionRequest) -> str:
        """Render the prompt for one announcement."""

    @abstractmethod
    def confidence_for(self, result: ExtractedEligibility) -> Confidence:
        """Confidence for a validated result."""

    def _empty(self) -> ExtractedEligibility:
        return ExtractedEligibility(confidence=Confidence.LOW, tier=self.tier)

    async def extract(self, request: ExtractionRequest) -> ExtractedEligibility:
        prompt = self.build_prompt(request)
        completion: Optional[Completion] = None

        try:
            completion = await self.provider.complete(prompt, max_tokens=self.max_tokens)
            data = extract_json_object(completion.text)
            response = self.response_schema.model_validate(data)
        except (ValueError, ValidationError) as e:
            # Malformed output is not retried; tokens were still spent
            logger.warning(
                "model_response_invalid",
                tier=self.tier.value,
                model=self.provider.model,
                error=str(e),
            )
            result = self._empty()
            if completion is not None:
                result.usage.append(completion.usage)
                self._log_usage(completion)
            return result
        except Exception as e:
            logger.error(
                "model_call_failed",
                tier=self.tier.value,
                model=self.provider.model,
                error=str(e),
            )
            return self._empty()

        result = response.to_eligibility(self.tier)
        result.confidence = self.confidence_for(result)
        result.usage.append(completion.usage)
        self._log_usage(completion, fields=result.populated_groups())
        return result

    def _log_usage(self, completion: Completion, fields: Optional[list[str]] = None) -> None:
        usage = completion.usage
        logger.info(
            "model_extraction_complete",
            tier=self.tier.value,
            model=usage.model,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            cost_usd=round(usage.cost_usd, 6),
            fields=fields or [],
        )


class Tier2ModelExtractor(ModelExtractor):
    """Cheap model over the short announcement context."""

    tier = ExtractionTier.TIER2
    max_tokens = SHORT_CONTEXT_MAX_TOKENS
    response_schema = EligibilityResponseV1

    def __init__(self, provider: InferenceProvider):
        super().__init__(provider.with_model(provider.cheap_model))

    def build_prompt(self, request: ExtractionRequest) -> str:
        return SHORT_CONTEXT_PROMPT.format(
            title=request.title,
            description=_truncate(request.description, DESCRIPTION_LIMIT),
            support_target=_truncate(request.support_target, SUPPORT_TARGET_LIMIT),
        )

    def confidence_for(self, result: ExtractedEligibility) -> Confidence:
        return Confidence.LOW if result.is_empty else Confidence.MEDIUM


class Tier3DocumentExtractor(ModelExtractor):
    """
    Model over the full attachment text.

    Uses the cheap model unless ``use_expensive_model`` is set.
    """

    tier = ExtractionTier.TIER3
    max_tokens = DOCUMENT_MAX_TOKENS
    response_schema = DocumentEligibilityResponseV1

    def __init__(self, provider: InferenceProvider, use_expensive_model: bool = False):
        model = provider.expensive_model if use_expensive_model else provider.cheap_model
        super().__init__(provider.with_model(model))

    def applies_to(self, request: ExtractionRequest) -> bool:
        return request.has_document

    def build_prompt(self, request: ExtractionRequest) -> str:
        return DOCUMENT_PROMPT.format(
            title=request.title,
            document_text=_truncate(request.document_text, DOCUMENT_LIMIT),
        )

    def confidence_for(self, result: ExtractedEligibility) -> Confidence:
        return document_confidence(len(result.populated_groups()))
