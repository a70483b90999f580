import asyncio
from typing import Optional, Set

from cruxlens.schemas.report import CanonicalReport
from cruxlens.services.vector_store.manager import VectorIndexManager
from cruxlens.utils.logging import get_logger

LOGGER = get_logger(__name__)


class BackgroundIndexer:
    """Runs report indexing as tracked tasks detached from the request.

    A failed indexing task is logged and dropped; it never reaches the code
    that scheduled it.
    """

    def __init__(self, index_manager: VectorIndexManager):
        self.index_manager = index_manager
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def schedule(
        self,
        user_id: Optional[str],
        report_id: str,
        title: Optional[str],
        plan_text: str,
        report: CanonicalReport,
    ) -> Optional[asyncio.Task]:
        """Start indexing a report; must be called from a running event loop."""
        if not user_id:
            return None

        task = asyncio.create_task(
            self._index(user_id, str(report_id), title, plan_text, report),
            name=f"index-report-{report_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _index(
        self,
        user_id: str,
        report_id: str,
        title: Optional[str],
        plan_text: str,
        report: CanonicalReport,
    ) -> None:
        try:
            await self.index_manager.index_report(user_id, report_id, title, plan_text, report)
        except Exception as e:
            LOGGER.error(
                f"Vector indexing failed for report {report_id}: {e}",
                exc_info=True,
                extra={"report_id": report_id}
            )

    async def drain(self) -> None:
        """Wait for every scheduled indexing task (used at shutdown)."""
        if not self._tasks:
            return
        LOGGER.info(f"Waiting for {len(self._tasks)} indexing task(s)...")
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
