"""Exception hierarchy for the ingestion pipeline."""


class FundingIngestError(Exception):
    """Base error for all pipeline failures."""


class ConfigError(FundingIngestError):
    """Invalid or missing configuration."""


class DiscoveryFatalError(FundingIngestError):
    """Discovery cannot continue; checkpoint has been persisted."""

    def __init__(self, message: str, last_page: int = 0):
        super().__init__(message)
        self.last_page = last_page


class DocumentExtractionError(FundingIngestError):
    """Attachment text could not be extracted."""


class StoreError(FundingIngestError):
    """Record store operation failed."""
