"""Shared fixtures for unit and integration tests."""

from types import SimpleNamespace

import httpx
import pytest

from funding_ingest.core.models import PaginationRule, SourceConfig
from funding_ingest.core.store import InMemoryRecordStore
from funding_ingest.plugins.llm import (
    CHEAP_CLAUDE_MODEL,
    EXPENSIVE_CLAUDE_MODEL,
    Completion,
    InferenceProvider,
)

BASE_URL = "https://www.ntis.go.kr"
LISTING_PATH = "/rndgate/eg/un/ra/mng.do"
DETAIL_PATH = "/rndgate/eg/un/ra/view.do"


class FakeProvider(InferenceProvider):
    """Provider returning scripted responses; exceptions in the script are raised."""

    name = "fake"
    cheap_model = CHEAP_CLAUDE_MODEL
    expensive_model = EXPENSIVE_CLAUDE_MODEL

    def __init__(self, responses=None, model=None, calls=None):
        super().__init__(model or CHEAP_CLAUDE_MODEL)
        self.responses = responses if responses is not None else []
        self.calls = calls if calls is not None else []

    def is_available(self) -> bool:
        return True

    def with_model(self, model: str) -> "FakeProvider":
        return FakeProvider(self.responses, model=model, calls=self.calls)

    async def complete(self, prompt: str, max_tokens: int) -> Completion:
        self.calls.append({"model": self.model, "prompt": prompt, "max_tokens": max_tokens})
        if not self.responses:
            raise RuntimeError("no scripted response left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return Completion(text=response, input_tokens=100, output_tokens=20, model=self.model)


class SleepRecorder:
    """Async stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def fake_provider():
    """Factory for scripted providers."""
    return FakeProvider


@pytest.fixture
def no_sleep():
    return SleepRecorder()


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def ntis_source():
    """NTIS-like source with tiny delays and two rows per page."""
    return SourceConfig(
        source_id="ntis",
        source_name="NTIS 국가R&D통합공고",
        base_url=BASE_URL,
        listing_path=LISTING_PATH,
        selectors={
            "row": "table.basic_list tbody tr",
            "status": "td:nth-child(2)",
            "ministry": "td:nth-child(3)",
            "title": "td:nth-child(4) a",
            "link": "td:nth-child(4) a",
            "published_at": "td:nth-child(5)",
            "deadline": "td:nth-child(6)",
        },
        pagination=PaginationRule(
            page_param="pageIndex",
            page_size=2,
            date_from_param="searchCondition2",
            date_to_param="searchCondition3",
        ),
        requests_per_minute=600,
        timeout=5.0,
        detail_delay=0.0,
        download_delay=0.0,
        page_delay=0.0,
    )


def listing_row(uid: int, title: str, ministry: str = "과학기술정보통신부") -> str:
    return (
        f"<tr><td>{uid}</td><td>접수중</td><td>{ministry}</td>"
        f'<td><a href="{DETAIL_PATH}?roRndUid={uid}">{title}</a></td>'
        "<td>2025.01.10</td><td>2099.02.10</td></tr>"
    )


def listing_page(rows: list[str], total: int) -> str:
    return f"""
    <html><body>
      <div class="total">검색결과 : {total} 건</div>
      <table class="basic_list">
        <thead><tr><th>번호</th><th>상태</th><th>부처</th><th>공고명</th><th>공고일</th><th>마감일</th></tr></thead>
        <tbody>{''.join(rows)}</tbody>
      </table>
    </body></html>
    """


def detail_page(
    title: str,
    body: str = "지원대상: 업력 3년~7년 기업 대상, 서울특별시 소재, 중소기업 한정",
    deadline: str = "2099.02.10",
    attachments: tuple = ("/file/download?fileId=1",),
) -> str:
    links = "".join(f'<a href="{href}">첨부파일</a>' for href in attachments)
    return f"""
    <html><body>
      <h3>{title}</h3>
      <table class="view">
        <tr><th>부처명</th><td>과학기술정보통신부</td></tr>
        <tr><th>공고기관명</th><td>정보통신기획평가원</td></tr>
        <tr><th>공고일</th><td>2025.01.10</td></tr>
        <tr><th>접수마감일</th><td>{deadline}</td></tr>
      </table>
      <div class="content">{body}</div>
      <div class="files">{links}</div>
    </body></html>
    """


@pytest.fixture
def pages():
    """Markup builders for NTIS-like listing and detail pages."""
    return SimpleNamespace(
        base_url=BASE_URL,
        listing_path=LISTING_PATH,
        detail_path=DETAIL_PATH,
        listing_row=listing_row,
        listing_page=listing_page,
        detail_page=detail_page,
    )


class FakePortal:
    """
    In-memory agency portal served through httpx.MockTransport.

    Announcements are (uid, title, body) tuples listed newest first,
    ``page_size`` per listing page.
    """

    def __init__(self, announcements, page_size: int = 2):
        self.announcements = list(announcements)
        self.page_size = page_size
        self.failing_details: set[int] = set()
        self.failing_pages: set[int] = set()
        self.requests: list[httpx.Request] = []

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        params = request.url.params

        if path == LISTING_PATH:
            page = int(params.get("pageIndex", "1"))
            if page in self.failing_pages:
                return httpx.Response(500, text="Internal Server Error")
            start = (page - 1) * self.page_size
            rows = [listing_row(uid, title) for uid, title, _ in self.announcements[start:start + self.page_size]]
            return httpx.Response(200, text=listing_page(rows, total=len(self.announcements)))

        if path == DETAIL_PATH:
            uid = int(params["roRndUid"])
            if uid in self.failing_details:
                return httpx.Response(500, text="Internal Server Error")
            for known_uid, title, body in self.announcements:
                if known_uid == uid:
                    return httpx.Response(
                        200,
                        text=detail_page(title, body=body, attachments=(f"/file/download?fileId={uid}",)),
                    )
            return httpx.Response(404)

        if path == "/file/download":
            file_id = params["fileId"]
            return httpx.Response(
                200,
                content="제출서류 및 평가 절차 안내".encode("utf-8"),
                headers={"Content-Disposition": f'attachment; filename="notice-{file_id}.txt"'},
            )

        return httpx.Response(404)

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]


DEFAULT_ANNOUNCEMENTS = [
    (1, "2025년 기술개발 지원사업", "지원대상: 업력 3년~7년 기업 대상, 서울특별시 소재, 중소기업 한정"),
    (2, "[부산] 청년창업 사업화 지원", "지원대상: 창업 7년 이내 창업기업"),
    (3, "2026년 기술수요조사 실시", "수요조사 참여 안내"),
    (4, "2025년 연구개발 과제 공고", "매출액 100억 미만 중소기업"),
    (5, "사업 설명회 개최", "설명회 일정 안내"),
]


@pytest.fixture
def portal():
    return FakePortal(DEFAULT_ANNOUNCEMENTS)
