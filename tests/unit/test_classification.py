"""Tests for announcement type classification."""

import pytest

from funding_ingest.core.models import AnnouncementType
from funding_ingest.extraction.classification import classification_stats, classify_announcement


class TestClassifyAnnouncement:
    """Tests for classify_announcement function."""

    @pytest.mark.parametrize(
        "title",
        [
            "2025년도 인공지능 기술개발 지원사업 공고",
            "신규과제 공고 - 차세대 반도체",
            "2025년 R&D 과제 모집",
        ],
    )
    def test_rd_titles(self, title):
        """Test R&D keywords in the title."""
        assert classify_announcement(title) is AnnouncementType.R_D_PROJECT

    def test_title_rd_beats_exclusion(self):
        """Test that an R&D title wins over description exclusions."""
        result = classify_announcement("2025년 연구개발 과제 공고", "우수성과 시상 후보 모집")
        assert result is AnnouncementType.R_D_PROJECT

    def test_dispatch_exclusion(self):
        """Test that staff dispatch announcements are notices."""
        result = classify_announcement("전문가 모집", "연구개발 인력 파견 안내")
        assert result is AnnouncementType.NOTICE

    def test_award_exclusion(self):
        """Test that award recruitment is an event."""
        result = classify_announcement("2025년 성과 공모", "우수성과 포상 대상자 모집")
        assert result is AnnouncementType.EVENT

    def test_survey(self):
        """Test demand surveys."""
        assert classify_announcement("2026년 기술수요조사 실시") is AnnouncementType.SURVEY

    def test_event(self):
        """Test briefing sessions."""
        assert classify_announcement("사업 설명회 개최") is AnnouncementType.EVENT

    def test_guidance_title_is_notice(self):
        """Test titles ending in 안내 without strong R&D keywords."""
        assert classify_announcement("온라인 접수 방법 안내") is AnnouncementType.NOTICE

    def test_schedule_change_is_notice(self):
        """Test notice keywords."""
        assert classify_announcement("접수 일정변경 공지사항") is AnnouncementType.NOTICE

    def test_default_is_rd(self):
        """Test that unmatched announcements default to R&D."""
        assert classify_announcement("2025년 제2차 공모") is AnnouncementType.R_D_PROJECT

    def test_only_rd_is_funding(self):
        """Test the funding flag on announcement types."""
        assert AnnouncementType.R_D_PROJECT.is_funding
        assert not AnnouncementType.SURVEY.is_funding
        assert not AnnouncementType.NOTICE.is_funding


class TestClassificationStats:
    """Tests for classification_stats function."""

    def test_counts_every_type(self):
        """Test that all types appear in the stats, including zeros."""
        stats = classification_stats(
            [
                ("2025년 기술개발 지원사업", None),
                ("사업 설명회 개최", None),
                ("2026년 기술수요조사 실시", None),
            ]
        )
        assert stats["R_D_PROJECT"] == 1
        assert stats["EVENT"] == 1
        assert stats["SURVEY"] == 1
        assert stats["NOTICE"] == 0
        assert stats["UNKNOWN"] == 0
