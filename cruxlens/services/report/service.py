"""Report generation entry point.

Resolves the generation client, builds retrieval context from the user's
prior reports, runs the two-wave orchestration, renders HTML, and hands
finished reports to the background indexer once the caller has assigned a
report id.
"""

import asyncio
from datetime import date
from typing import Callable, Optional

from cruxlens.core.config import Settings, get_settings
from cruxlens.core.llm_client import StructuredOutputClient, get_llm_client
from cruxlens.schemas.report import CanonicalReport, GeneratedReport
from cruxlens.services.agents.caller import AgentCaller
from cruxlens.services.report.constants import DEFAULT_TITLE
from cruxlens.services.report.normalizer import normalize_stored_report
from cruxlens.services.report.orchestrator import ReportOrchestrator
from cruxlens.services.report.renderer import render_report_html
from cruxlens.services.retrieval.context_builder import RetrievalContextBuilder
from cruxlens.services.vector_store.background import BackgroundIndexer
from cruxlens.services.vector_store.manager import VectorIndexManager
from cruxlens.utils.json_parser import parse_json_safely
from cruxlens.utils.logging import get_logger

LOGGER = get_logger(__name__)


def resolve_report_title(report: CanonicalReport, title: Optional[str] = None) -> str:
    """Caller-supplied title, else the case name, else "Report"."""
    for candidate in (title, report.metadata.case_name):
        if candidate and candidate.strip():
            return candidate.strip()
    return DEFAULT_TITLE


def rerender_report(text: str) -> str:
    """Re-render stored report JSON without regenerating any content.

    Text that cannot be parsed as a report object is returned unchanged.
    """
    data = parse_json_safely(text)
    if not isinstance(data, dict):
        LOGGER.warning("Stored report is not valid JSON; returning it unchanged")
        return text
    return render_report_html(normalize_stored_report(data))


class ReportGenerationService:
    """Service for generating strategic analysis reports from plan text."""

    def __init__(
        self,
        llm_client: Optional[StructuredOutputClient] = None,
        index_manager: Optional[VectorIndexManager] = None,
        background_indexer: Optional[BackgroundIndexer] = None,
        settings: Optional[Settings] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        """Initialize the service.

        Args:
            llm_client: Generation client; defaults to the process-wide one
                resolved on each request
            index_manager: Semantic index manager; retrieval and indexing are
                skipped when absent
            background_indexer: Indexer for finished reports; created from
                index_manager when omitted
            settings: Application settings
            today: Clock for the analysis date
        """
        self.settings = settings or get_settings()
        self._llm_client = llm_client
        self.index_manager = index_manager
        self.background_indexer = background_indexer or (
            BackgroundIndexer(index_manager) if index_manager else None
        )
        self.context_builder = (
            RetrievalContextBuilder(
                index_manager,
                max_results=self.settings.retrieval.context_max_results,
                snippet_max_length=self.settings.retrieval.snippet_max_length,
            )
            if index_manager else None
        )
        self.today = today

    async def generate_report(
        self,
        plan_text: str,
        user_id: Optional[str] = None,
        title: Optional[str] = None,
    ) -> GeneratedReport:
        """Generate, merge and render a report for one business plan.

        Args:
            plan_text: Raw business plan text (never truncated for generation)
            user_id: Verified user id; enables retrieval context
            title: Optional caller-supplied report title

        Returns:
            GeneratedReport with the canonical report, HTML and title

        Raises:
            ConfigurationError: If the generation client is not configured
            RequiredStageFailure: If a required stage fails
        """
        # Resolved first so a missing configuration fails before any remote call
        llm_client = self._llm_client or get_llm_client()

        context = ""
        if self.context_builder and user_id:
            context = await self.context_builder.build(user_id, plan_text)

        orchestrator = ReportOrchestrator(AgentCaller(llm_client), today=self.today)
        report = await orchestrator.run(plan_text, context=context)

        html = render_report_html(report)
        resolved_title = resolve_report_title(report, title)

        LOGGER.info(
            f"Generated report '{resolved_title}'",
            extra={"coherence_score": report.metadata.coherence_score, "has_context": bool(context)}
        )
        return GeneratedReport(report=report, html=html, title=resolved_title)

    def schedule_indexing(
        self,
        user_id: Optional[str],
        report_id: str,
        generated: GeneratedReport,
        plan_text: str,
    ) -> Optional[asyncio.Task]:
        """Index a stored report in the background; failures are only logged."""
        if not self.background_indexer or not user_id:
            return None
        return self.background_indexer.schedule(
            user_id, report_id, generated.title, plan_text, generated.report
        )

    async def delete_report_vectors(self, user_id: str, report_id: str) -> int:
        """Remove a deleted report from the user's semantic index."""
        if not self.index_manager:
            return 0
        return await self.index_manager.delete_report_vectors(user_id, report_id)

    async def shutdown(self) -> None:
        """Wait for pending background indexing."""
        if self.background_indexer:
            await self.background_indexer.drain()
