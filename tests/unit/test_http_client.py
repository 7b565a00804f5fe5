"""Tests for the rate-limited HTTP client."""

import httpx
import pytest

from funding_ingest.core.http_client import HttpClient, filename_from_response, unique_filename


class TestFilenameFromResponse:
    """Tests for attachment filename resolution."""

    def test_quoted_content_disposition(self):
        """Test quoted filename in Content-Disposition."""
        name = filename_from_response(
            "https://example.com/file/download?fileId=1",
            'attachment; filename="notice.pdf"',
        )
        assert name == "notice.pdf"

    def test_rfc5987_encoded_filename(self):
        """Test percent-encoded UTF-8 filename."""
        name = filename_from_response(
            "https://example.com/file/download",
            "attachment; filename*=UTF-8''%EA%B3%B5%EA%B3%A0%EB%AC%B8.hwpx",
        )
        assert name == "공고문.hwpx"

    def test_path_components_are_stripped(self):
        """Test that directory parts in the header are dropped."""
        name = filename_from_response("https://example.com/x", 'attachment; filename="..\\..\\evil.pdf"')
        assert name == "evil.pdf"

    def test_falls_back_to_url_basename(self):
        """Test URL basename when no header is present."""
        name = filename_from_response("https://example.com/files/%EA%B3%B5%EA%B3%A0.pdf", None)
        assert name == "공고.pdf"


class TestUniqueFilename:
    """Tests for collision-free attachment names."""

    def test_free_name_unchanged(self):
        """Test that an unused name is kept."""
        assert unique_filename("notice.pdf", ["other.pdf"]) == "notice.pdf"

    def test_suffix_skips_taken_names(self):
        """Test that the first free numeric suffix is used."""
        assert unique_filename("notice.pdf", ["notice.pdf", "notice-2.pdf"]) == "notice-3.pdf"

    def test_name_without_extension(self):
        """Test suffixing a name with no extension."""
        assert unique_filename("download", ["download"]) == "download-2"


class TestHttpClient:
    """Tests for HttpClient with a mock transport."""

    @pytest.mark.asyncio
    async def test_get_text_passes_params(self):
        """Test that query params reach the server."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(dict(request.url.params))
            return httpx.Response(200, text="<html>ok</html>")

        async with HttpClient(transport=httpx.MockTransport(handler), retry_wait=0) as client:
            text = await client.get_text("https://example.com/list", params={"pageIndex": "2"})

        assert text == "<html>ok</html>"
        assert seen == [{"pageIndex": "2"}]

    @pytest.mark.asyncio
    async def test_transient_errors_are_retried(self):
        """Test that connection errors are retried up to max_retries."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url)
            if len(calls) < 3:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, text="recovered")

        async with HttpClient(transport=httpx.MockTransport(handler), retry_wait=0, max_retries=3) as client:
            text = await client.get_text("https://example.com/")

        assert text == "recovered"
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_transient_errors_propagate_after_retries(self):
        """Test that the last transient error is re-raised."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        async with HttpClient(transport=httpx.MockTransport(handler), retry_wait=0, max_retries=2) as client:
            with pytest.raises(httpx.ConnectError):
                await client.get("https://example.com/")

    @pytest.mark.asyncio
    async def test_http_errors_are_not_retried(self):
        """Test that a 404 raises immediately."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url)
            return httpx.Response(404)

        async with HttpClient(transport=httpx.MockTransport(handler), retry_wait=0) as client:
            with pytest.raises(httpx.HTTPStatusError):
                await client.get("https://example.com/missing")

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_requires_context_manager(self):
        """Test that requests outside 'async with' fail clearly."""
        client = HttpClient()
        with pytest.raises(RuntimeError):
            await client.get("https://example.com/")

    @pytest.mark.asyncio
    async def test_download_writes_file(self, tmp_path):
        """Test attachment download into a nested folder."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                content=b"%PDF-1.4 test",
                headers={"content-disposition": 'attachment; filename="notice.pdf"'},
            )

        folder = tmp_path / "page-1" / "announcement-1"
        async with HttpClient(transport=httpx.MockTransport(handler)) as client:
            filename = await client.download("https://example.com/file/download?fileId=7", str(folder))

        assert filename == "notice.pdf"
        assert (folder / "notice.pdf").read_bytes() == b"%PDF-1.4 test"

    @pytest.mark.asyncio
    async def test_download_keeps_same_named_attachments(self, tmp_path):
        """Test that a second attachment with the same name does not overwrite the first."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                content=request.url.params["fileId"].encode("ascii"),
                headers={"content-disposition": 'attachment; filename="notice.pdf"'},
            )

        taken = []
        async with HttpClient(transport=httpx.MockTransport(handler)) as client:
            for file_id in ("7", "8"):
                url = f"https://example.com/file/download?fileId={file_id}"
                taken.append(await client.download(url, str(tmp_path), taken=taken))

        assert taken == ["notice.pdf", "notice-2.pdf"]
        assert (tmp_path / "notice.pdf").read_bytes() == b"7"
        assert (tmp_path / "notice-2.pdf").read_bytes() == b"8"
