"""
Async HTTP client with per-source rate limiting and retries.

Built on httpx with:
- Token-bucket rate limiting per source
- Fixed-backoff retry on transient network errors
- Attachment download with Content-Disposition filename resolution
"""

import os
import re
from typing import Collection, Optional
from urllib.parse import unquote, urlparse

import httpx
import structlog
from tenacity import (
    retry,
    stop_after_attempt,
    wait_fixed,
    retry_if_exception_type,
)

from .rate_limiter import TokenBucket

logger = structlog.get_logger(__name__)


USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# DNS, connection and timeout failures
TRANSIENT_ERRORS = (httpx.TimeoutException, httpx.NetworkError)

FILENAME_PATTERN = re.compile(r"filename\*?=(?:UTF-8'')?((['\"]).*?\2|[^;\n]*)", re.IGNORECASE)


def filename_from_response(url: str, content_disposition: Optional[str]) -> str:
    """
    Resolve attachment filename.

    Uses the Content-Disposition header when present, else the URL path.
    """
    if content_disposition:
        match = FILENAME_PATTERN.search(content_disposition)
        if match and match.group(1):
            name = unquote(match.group(1).strip().strip("'\""))
            name = os.path.basename(name.replace("\\", "/"))
            if name:
                return name
    name = os.path.basename(urlparse(url).path)
    return unquote(name) or "unknown"


def unique_filename(filename: str, taken: Collection[str]) -> str:
    """Suffix ``filename`` (``notice-2.pdf``) until it is not in ``taken``."""
    if filename not in taken:
        return filename
    stem, ext = os.path.splitext(filename)
    n = 2
    while f"{stem}-{n}{ext}" in taken:
        n += 1
    return f"{stem}-{n}{ext}"


class HttpClient:
    """
    Async HTTP client bound to one source's rate limit.

    Usage:
        async with HttpClient(requests_per_minute=30) as client:
            html = await client.get_text("https://example.com")
    """

    def __init__(
        self,
        requests_per_minute: int = 30,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_wait: float = 2.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        rate_limiter: Optional[TokenBucket] = None,
    ):
        """
        Initialize HTTP client.

        Args:
            requests_per_minute: Token-bucket capacity and refill rate
            timeout: Request timeout in seconds
            max_retries: Attempts for transient errors
            retry_wait: Fixed delay between attempts in seconds
            transport: Optional httpx transport (tests use MockTransport)
            rate_limiter: Shared bucket; a private one is created if omitted
        """
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_wait = retry_wait
        self.rate_limiter = rate_limiter or TokenBucket(requests_per_minute=requests_per_minute)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "HttpClient":
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            follow_redirects=True,
            headers={
                "User-Agent": USER_AGENT,
                "Accept-Language": "ko,en;q=0.9",
            },
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _do_request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Execute HTTP request, retrying transient errors with fixed backoff."""
        if not self._client:
            raise RuntimeError("Client not initialized. Use 'async with' context.")

        @retry(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_fixed(self.retry_wait),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            reraise=True,
        )
        async def attempt() -> httpx.Response:
            await self.rate_limiter.acquire()
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
            return response

        return await attempt()

    async def get(self, url: str, **kwargs) -> httpx.Response:
        """
        GET request with rate limiting and retry.

        Args:
            url: URL to fetch
            **kwargs: Additional httpx arguments (params, headers)

        Returns:
            httpx.Response object
        """
        logger.debug("http_get", url=url, params=kwargs.get("params"))
        return await self._do_request("GET", url, **kwargs)

    async def get_text(self, url: str, **kwargs) -> str:
        """GET request returning text content."""
        response = await self.get(url, **kwargs)
        return response.text

    async def download(self, url: str, folder: str, taken: Collection[str] = ()) -> str:
        """
        Download an attachment into a folder.

        Args:
            url: Attachment URL
            folder: Destination directory (created if missing)
            taken: Filenames already written for the same announcement

        Returns:
            Filename written inside ``folder``
        """
        response = await self.get(url)
        filename = unique_filename(
            filename_from_response(url, response.headers.get("content-disposition")), taken
        )

        os.makedirs(folder, exist_ok=True)
        save_path = os.path.join(folder, filename)
        with open(save_path, "wb") as f:
            f.write(response.content)

        logger.info("download_complete", url=url, path=save_path, bytes=len(response.content))
        return filename
