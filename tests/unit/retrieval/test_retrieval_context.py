import pytest
from unittest.mock import AsyncMock

from cruxlens.core.exceptions import APITimeoutError
from cruxlens.schemas.retrieval import ReportSearchResult
from cruxlens.services.retrieval.context_builder import (
    CONTEXT_HEADER,
    RetrievalContextBuilder,
    format_retrieval_context,
)


def _result(i, snippet="snippet", **kwargs):
    return ReportSearchResult(
        score=kwargs.pop("score", 0.5),
        file_id=f"file_{i}",
        report_id=kwargs.pop("report_id", str(i)),
        title=kwargs.pop("title", f"Report {i}"),
        snippet=snippet,
    )


class TestFormatRetrievalContext:

    def test_numbered_block(self):
        context = format_retrieval_context([_result(1, score=0.91234), _result(2)])

        assert context == (
            f"{CONTEXT_HEADER}\n\n"
            "1. Report 1 (report 1, score 0.912)\nsnippet\n\n"
            "2. Report 2 (report 2, score 0.500)\nsnippet"
        )

    def test_at_most_four_results(self):
        context = format_retrieval_context([_result(i) for i in range(1, 8)])

        assert "4. Report 4" in context
        assert "Report 5" not in context

    def test_snippet_truncated(self):
        context = format_retrieval_context([_result(1, snippet="a" * 5000)])

        assert "a" * 1200 in context
        assert "a" * 1201 not in context

    def test_unmapped_result(self):
        context = format_retrieval_context([_result(1, report_id=None, title=None)])

        assert "1. Untitled report (report unknown, score 0.500)" in context

    def test_empty(self):
        assert format_retrieval_context([]) == ""


class TestRetrievalContextBuilder:

    @pytest.mark.asyncio
    async def test_builds_from_search(self):
        manager = AsyncMock()
        manager.search.return_value = [_result(1)]

        context = await RetrievalContextBuilder(manager).build("user-1", "plan")

        manager.search.assert_awaited_once_with("user-1", "plan", k=4)
        assert context.startswith(CONTEXT_HEADER)

    @pytest.mark.asyncio
    async def test_search_failure_degrades_to_empty(self):
        manager = AsyncMock()
        manager.search.side_effect = APITimeoutError("slow")

        assert await RetrievalContextBuilder(manager).build("user-1", "plan") == ""

    @pytest.mark.asyncio
    async def test_no_prior_reports(self):
        manager = AsyncMock()
        manager.search.return_value = []

        assert await RetrievalContextBuilder(manager).build("user-1", "plan") == ""

    @pytest.mark.asyncio
    async def test_anonymous_user_skips_search(self):
        manager = AsyncMock()

        assert await RetrievalContextBuilder(manager).build(None, "plan") == ""
        manager.search.assert_not_called()
