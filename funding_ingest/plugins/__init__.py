"""
Plugins for attachment text and model inference.

- pdf: PDF text with pdfplumber
- office: HWPX (zip + lxml), DOCX (mammoth), HWP/DOC (LibreOffice)
- documents: suffix-based dispatch over downloaded attachments
- llm: Anthropic / OpenAI inference providers
"""

from .documents import DocumentText, DocumentTextExtractor
from .llm import (
    ClaudeProvider,
    Completion,
    InferenceProvider,
    OpenAIProvider,
    PRICE_TABLE,
    compute_cost,
    select_provider,
)

__all__ = [
    "DocumentText",
    "DocumentTextExtractor",
    "ClaudeProvider",
    "Completion",
    "InferenceProvider",
    "OpenAIProvider",
    "PRICE_TABLE",
    "compute_cost",
    "select_provider",
]
