"""Тесты Pydantic-схем API."""
import pytest
from pydantic import ValidationError

from src.api.schemas import CheckRequest, ReportRequest


class TestCheckRequest:
    """Тесты CheckRequest."""

    def test_links_kept_verbatim(self) -> None:
        req = CheckRequest(links=["Example.com", "https://example.com/Path"])
        assert req.links == ["Example.com", "https://example.com/Path"]

    def test_duplicates_removed_in_order(self) -> None:
        req = CheckRequest(links=["b.com", "a.com", "b.com"])
        assert req.links == ["b.com", "a.com"]

    def test_case_variants_are_different_links(self) -> None:
        req = CheckRequest(links=["a.com", "A.com"])
        assert req.links == ["a.com", "A.com"]

    def test_blank_strings_dropped(self) -> None:
        req = CheckRequest(links=["", "a.com", "   "])
        assert req.links == ["a.com"]

    def test_empty_list_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CheckRequest(links=[])

    def test_all_blank_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CheckRequest(links=["  ", ""])


class TestReportRequest:
    """Тесты ReportRequest."""

    def test_valid(self) -> None:
        assert ReportRequest(links_list=[1, 2]).links_list == [1, 2]

    def test_numeric_strings_coerced(self) -> None:
        assert ReportRequest(links_list=["3"]).links_list == [3]

    def test_empty_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ReportRequest(links_list=[])
