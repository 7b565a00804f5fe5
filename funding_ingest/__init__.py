"""
Funding Ingest - announcement ingestion and eligibility extraction.

Architecture:
- core/: Stable foundation (models, HTTP client, rate limiter, store, dedup)
- config/: YAML source registry and runtime settings
- navigators/: Listing and detail page navigation
- plugins/: Document text extraction (PDF, HWP/HWPX, DOCX) and inference
- extraction/: Tier 1/2/3 eligibility cascade and classification
- normalization/: Canonical code tables, mappers and predicates
- pipeline/: Discovery stage, process worker pool, scheduler
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
