from typing import Optional, Sequence

from cruxlens.core.exceptions import OptionalStageFailure
from cruxlens.schemas.retrieval import ReportSearchResult
from cruxlens.utils.logging import get_logger

LOGGER = get_logger(__name__)

CONTEXT_HEADER = "Context from the user's previous reports:"
RETRIEVAL_STAGE = "retrieval_context"


def format_retrieval_context(
    results: Sequence[ReportSearchResult],
    max_results: int = 4,
    snippet_max_length: int = 1200,
) -> str:
    """
    Format search results into a numbered context block for stage prompts.

    Structure:
    Context from the user's previous reports:
    1. <title> (report <id>, score 0.812)
    <snippet>

    Returns "" when there is nothing to show.
    """
    blocks = []
    for result in list(results)[:max_results]:
        snippet = (result.snippet or "").strip()[:snippet_max_length]
        title = result.title or "Untitled report"
        report_ref = result.report_id or "unknown"
        score = result.score if result.score is not None else 0.0
        blocks.append(
            f"{len(blocks) + 1}. {title} (report {report_ref}, score {score:.3f})\n{snippet}"
        )

    if not blocks:
        return ""

    return "\n\n".join([CONTEXT_HEADER, *blocks])


class RetrievalContextBuilder:
    """Builds the retrieval context block from the user's semantic index.

    Lookup failures degrade to an empty context; they never abort generation.
    """

    def __init__(self, index_manager, max_results: int = 4, snippet_max_length: int = 1200):
        self.index_manager = index_manager
        self.max_results = max_results
        self.snippet_max_length = snippet_max_length

    async def build(self, user_id: Optional[str], plan_text: str) -> str:
        if not user_id:
            return ""

        try:
            results = await self.index_manager.search(user_id, plan_text, k=self.max_results)
        except Exception as e:
            failure = OptionalStageFailure(RETRIEVAL_STAGE, e)
            LOGGER.warning(
                f"{failure}; continuing without retrieval context",
                exc_info=True,
                extra={"stage": RETRIEVAL_STAGE}
            )
            return ""

        context = format_retrieval_context(
            results,
            max_results=self.max_results,
            snippet_max_length=self.snippet_max_length,
        )
        LOGGER.info(
            f"Built retrieval context from {min(len(results), self.max_results)} prior reports",
            extra={"context_chars": len(context)}
        )
        return context
