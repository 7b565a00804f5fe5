"""
Data models for the ingestion pipeline.

Raw captures (discovery output), canonical program records (process output),
and the common eligibility schema shared by all extraction tiers.
"""

from dataclasses import dataclass, field, asdict
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScrapingStatus(str, Enum):
    """Discovery outcome for one announcement."""
    PENDING = "PENDING"
    SCRAPED = "SCRAPED"
    SCRAPING_FAILED = "SCRAPING_FAILED"


class ProcessingStatus(str, Enum):
    """Process worker state for one raw capture."""
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    PROCESSED = "PROCESSED"
    PROCESSING_FAILED = "PROCESSING_FAILED"
    MANUAL_REVIEW = "MANUAL_REVIEW"  # Attempt limit reached


class Confidence(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class ExtractionTier(str, Enum):
    TIER1 = "TIER1"  # Pattern matching
    TIER2 = "TIER2"  # Short-context model
    TIER3 = "TIER3"  # Full-document model


class AnnouncementType(str, Enum):
    """Classification of an announcement."""
    R_D_PROJECT = "R_D_PROJECT"  # Funding opportunity
    SURVEY = "SURVEY"
    EVENT = "EVENT"
    NOTICE = "NOTICE"
    UNKNOWN = "UNKNOWN"

    @property
    def is_funding(self) -> bool:
        return self is AnnouncementType.R_D_PROJECT


class ProgramStatus(str, Enum):
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"


class KoreanRegion(str, Enum):
    """The 17 first-level administrative regions."""
    SEOUL = "SEOUL"
    BUSAN = "BUSAN"
    DAEGU = "DAEGU"
    INCHEON = "INCHEON"
    GWANGJU = "GWANGJU"
    DAEJEON = "DAEJEON"
    ULSAN = "ULSAN"
    SEJONG = "SEJONG"
    GYEONGGI = "GYEONGGI"
    GANGWON = "GANGWON"
    CHUNGBUK = "CHUNGBUK"
    CHUNGNAM = "CHUNGNAM"
    JEONBUK = "JEONBUK"
    JEONNAM = "JEONNAM"
    GYEONGBUK = "GYEONGBUK"
    GYEONGNAM = "GYEONGNAM"
    JEJU = "JEJU"


@dataclass(frozen=True)
class PaginationRule:
    """How to walk listing pages for a source."""
    page_param: str = "pageIndex"
    page_size: int = 10
    total_pattern: str = r"검색결과[:\s]*([\d,]+)\s*건"
    link_pattern: str = r"pageIndex=(\d+)"
    max_pages: int = 100  # Hard cap when nothing else is found
    date_from_param: Optional[str] = None
    date_to_param: Optional[str] = None
    date_format: str = "%Y.%m.%d"


@dataclass(frozen=True)
class SourceConfig:
    """
    Static scraping configuration for one agency.

    Immutable; many raw captures reference one source.
    """
    source_id: str
    source_name: str
    base_url: str
    listing_path: str
    selectors: dict = field(default_factory=dict)
    pagination: PaginationRule = field(default_factory=PaginationRule)
    requests_per_minute: int = 30
    timeout: float = 30.0
    detail_delay: float = 2.0
    download_delay: float = 1.0
    page_delay: float = 3.0

    @property
    def listing_url(self) -> str:
        return self.base_url.rstrip("/") + "/" + self.listing_path.lstrip("/")

    def selector(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.selectors.get(name, default)


@dataclass
class ListingRow:
    """One announcement row discovered on a listing page."""
    title: str
    url: str
    announcement_id: Optional[str] = None
    ministry: Optional[str] = None
    status: Optional[str] = None
    published_at: Optional[str] = None
    deadline: Optional[str] = None


@dataclass
class DetailPage:
    """Raw fields captured from a detail page, without interpretation."""
    title: str
    raw_html: str
    ministry: Optional[str] = None
    announcing_agency: Optional[str] = None
    description: Optional[str] = None
    deadline: Optional[str] = None
    published_at: Optional[str] = None
    attachment_urls: list[str] = field(default_factory=list)


@dataclass
class RawCapture:
    """
    Discovery output for one announcement.

    Unique key is the announcement URL. Never deleted automatically.
    """
    url: str
    content_hash: str
    source_id: str
    title: str = ""
    ministry: Optional[str] = None
    announcing_agency: Optional[str] = None
    description: Optional[str] = None
    deadline_raw: Optional[str] = None
    published_at_raw: Optional[str] = None
    raw_html: str = ""
    attachment_folder: Optional[str] = None
    attachment_filenames: list[str] = field(default_factory=list)
    attachment_count: int = 0
    scraping_status: ScrapingStatus = ScrapingStatus.PENDING
    processing_status: ProcessingStatus = ProcessingStatus.PENDING
    processing_attempts: int = 0
    scraping_error: Optional[str] = None
    processing_error: Optional[str] = None
    discovery_session_id: Optional[str] = None
    program_id: Optional[str] = None
    captured_at: datetime = field(default_factory=utcnow)
    processed_at: Optional[datetime] = None
    id: Optional[str] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["scraping_status"] = self.scraping_status.value
        data["processing_status"] = self.processing_status.value
        data["captured_at"] = self.captured_at.isoformat()
        data["processed_at"] = self.processed_at.isoformat() if self.processed_at else None
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "RawCapture":
        data = dict(data)
        data["scraping_status"] = ScrapingStatus(data.get("scraping_status", "PENDING"))
        data["processing_status"] = ProcessingStatus(data.get("processing_status", "PENDING"))
        if isinstance(data.get("captured_at"), str):
            data["captured_at"] = datetime.fromisoformat(data["captured_at"])
        if isinstance(data.get("processed_at"), str):
            data["processed_at"] = datetime.fromisoformat(data["processed_at"])
        return cls(**data)


@dataclass
class Checkpoint:
    """Resumability snapshot for one discovery run."""
    source_id: Optional[str] = None
    from_date: Optional[str] = None  # ISO date of the window
    to_date: Optional[str] = None
    last_processed_page: int = 0
    last_processed_url: Optional[str] = None
    total_processed: int = 0
    total_downloaded: int = 0
    total_skipped: int = 0

    def to_dict(self) -> dict:
        return {
            "sourceId": self.source_id,
            "fromDate": self.from_date,
            "toDate": self.to_date,
            "lastProcessedPage": self.last_processed_page,
            "lastProcessedUrl": self.last_processed_url,
            "totalProcessed": self.total_processed,
            "totalDownloaded": self.total_downloaded,
            "totalSkipped": self.total_skipped,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Checkpoint":
        return cls(
            source_id=data.get("sourceId"),
            from_date=data.get("fromDate"),
            to_date=data.get("toDate"),
            last_processed_page=int(data.get("lastProcessedPage", 0)),
            last_processed_url=data.get("lastProcessedUrl"),
            total_processed=int(data.get("totalProcessed", 0)),
            total_downloaded=int(data.get("totalDownloaded", 0)),
            total_skipped=int(data.get("totalSkipped", 0)),
        )

    @classmethod
    def for_window(cls, source_id: str, from_date: date, to_date: date) -> "Checkpoint":
        return cls(source_id=source_id, from_date=from_date.isoformat(), to_date=to_date.isoformat())

    def matches(self, source_id: str, from_date: date, to_date: date) -> bool:
        """Whether this snapshot belongs to the given source and window."""
        return (
            self.source_id == source_id
            and self.from_date == from_date.isoformat()
            and self.to_date == to_date.isoformat()
        )


@dataclass
class TokenUsage:
    """Inference accounting for one model call."""
    model: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0


# Fields counted when deciding whether a tier produced any signal
ELIGIBILITY_FIELD_GROUPS = {
    "regions": ("regions",),
    "company_scale": ("company_scale",),
    "employees": ("min_employees", "max_employees"),
    "revenue": ("min_revenue", "max_revenue"),
    "business_age": ("min_business_age", "max_business_age"),
    "required_certs": ("required_certs",),
    "target_industry": ("target_industry",),
    "exclusion_conditions": ("exclusion_conditions",),
    "support_amount": ("support_amount_min", "support_amount_max"),
}

MERGEABLE_FIELDS = tuple(
    name for group in ELIGIBILITY_FIELD_GROUPS.values() for name in group
)


def _is_empty(value) -> bool:
    return value is None or (isinstance(value, (list, str)) and len(value) == 0)


@dataclass
class ExtractedEligibility:
    """
    Common eligibility schema produced by every extraction tier.

    Revenue is in 억원 with one decimal place; support amounts in 만원.
    """
    regions: list[KoreanRegion] = field(default_factory=list)
    company_scale: list[str] = field(default_factory=list)
    min_employees: Optional[int] = None
    max_employees: Optional[int] = None
    min_revenue: Optional[float] = None
    max_revenue: Optional[float] = None
    min_business_age: Optional[int] = None
    max_business_age: Optional[int] = None
    # Tier 3 only
    required_certs: list[str] = field(default_factory=list)
    target_industry: Optional[str] = None
    exclusion_conditions: list[str] = field(default_factory=list)
    support_amount_min: Optional[int] = None
    support_amount_max: Optional[int] = None

    confidence: Confidence = Confidence.LOW
    tier: Optional[ExtractionTier] = None
    usage: list[TokenUsage] = field(default_factory=list)
    field_sources: dict[str, str] = field(default_factory=dict)

    def populated_groups(self, groups: Optional[tuple[str, ...]] = None) -> list[str]:
        """Names of field groups holding at least one value."""
        names = groups or tuple(ELIGIBILITY_FIELD_GROUPS)
        return [
            name for name in names
            if any(not _is_empty(getattr(self, f)) for f in ELIGIBILITY_FIELD_GROUPS[name])
        ]

    @property
    def is_empty(self) -> bool:
        return not self.populated_groups()

    @property
    def cost_usd(self) -> float:
        return sum(u.cost_usd for u in self.usage)

    def merge_missing(self, other: "ExtractedEligibility") -> list[str]:
        """
        Fill fields that are still empty from a higher-tier result.

        Fields already holding a value are never overwritten.

        Returns:
            Names of fields that were filled
        """
        filled = []
        for name in MERGEABLE_FIELDS:
            current = getattr(self, name)
            incoming = getattr(other, name)
            if _is_empty(current) and not _is_empty(incoming):
                setattr(self, name, incoming)
                if other.tier:
                    self.field_sources[name] = other.tier.value
                filled.append(name)
        self.usage.extend(other.usage)
        return filled

    def to_dict(self) -> dict:
        return {
            "regions": [r.value for r in self.regions],
            "companyScale": list(self.company_scale),
            "minEmployees": self.min_employees,
            "maxEmployees": self.max_employees,
            "minRevenue": self.min_revenue,
            "maxRevenue": self.max_revenue,
            "minBusinessAge": self.min_business_age,
            "maxBusinessAge": self.max_business_age,
            "requiredCerts": list(self.required_certs),
            "targetIndustry": self.target_industry,
            "exclusionConditions": list(self.exclusion_conditions),
            "supportAmountMin": self.support_amount_min,
            "supportAmountMax": self.support_amount_max,
            "confidence": self.confidence.value,
            "tier": self.tier.value if self.tier else None,
            "costUsd": round(self.cost_usd, 6),
        }


@dataclass
class CanonicalProgramRecord:
    """
    Normalized program entity consumed by the matching engine.

    Code fields only ever hold canonical codes.
    """
    content_hash: str
    source_id: str
    url: str
    title: str
    ministry: Optional[str] = None
    announcing_agency: Optional[str] = None
    published_at: Optional[datetime] = None
    deadline: Optional[datetime] = None
    application_start: Optional[datetime] = None
    announcement_type: AnnouncementType = AnnouncementType.UNKNOWN

    # Canonical codes
    region_codes: list[str] = field(default_factory=list)
    company_scale_codes: list[str] = field(default_factory=list)
    certification_codes: list[str] = field(default_factory=list)
    revenue_codes: list[str] = field(default_factory=list)
    employee_codes: list[str] = field(default_factory=list)
    business_age_codes: list[str] = field(default_factory=list)

    # Ranges
    min_employees: Optional[int] = None
    max_employees: Optional[int] = None
    min_revenue: Optional[float] = None
    max_revenue: Optional[float] = None
    min_business_age: Optional[int] = None
    max_business_age: Optional[int] = None
    support_amount_min: Optional[int] = None
    support_amount_max: Optional[int] = None
    target_industry: Optional[str] = None
    exclusion_conditions: list[str] = field(default_factory=list)

    requires_regional_filter: bool = False
    eligibility_confidence: Confidence = Confidence.LOW
    eligibility_tier: Optional[ExtractionTier] = None
    status: ProgramStatus = ProgramStatus.ACTIVE
    scraped_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    id: Optional[str] = None

    @property
    def matchable(self) -> bool:
        """Only active funding opportunities go to the matching engine."""
        return self.status is ProgramStatus.ACTIVE and self.announcement_type.is_funding

    def to_dict(self) -> dict:
        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, datetime):
                data[key] = value.isoformat()
            elif isinstance(value, Enum):
                data[key] = value.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "CanonicalProgramRecord":
        data = dict(data)
        for key in ("published_at", "deadline", "application_start", "scraped_at", "updated_at"):
            if isinstance(data.get(key), str):
                data[key] = datetime.fromisoformat(data[key])
        data["announcement_type"] = AnnouncementType(data.get("announcement_type", "UNKNOWN"))
        data["eligibility_confidence"] = Confidence(data.get("eligibility_confidence", "LOW"))
        if data.get("eligibility_tier"):
            data["eligibility_tier"] = ExtractionTier(data["eligibility_tier"])
        data["status"] = ProgramStatus(data.get("status", "ACTIVE"))
        return cls(**data)
