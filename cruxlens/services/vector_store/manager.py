"""Per-user semantic index lifecycle.

Each user owns at most one remote vector store, created lazily. The
``user_vector_stores`` primary key is the only guard against two concurrent
first-time creations; the loser deletes its orphaned remote store.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cruxlens.core.config import Settings
from cruxlens.core.database import get_session_maker
from cruxlens.repositories.vector_store_repository import (
    ReportVectorFileRepository,
    UserVectorStoreRepository,
)
from cruxlens.schemas.report import CanonicalReport
from cruxlens.schemas.retrieval import IndexedReportRef, ReportSearchResult
from cruxlens.services.vector_store.client import VectorIndexClient
from cruxlens.services.vector_store.index_text import build_report_index_text
from cruxlens.utils.logging import get_logger

LOGGER = get_logger(__name__)

STORE_NAME_PREFIX = "cruxlens-"


def clamp_query(query: Optional[str], max_length: int = 4096) -> str:
    """Trim a search query and cap its length; "" when nothing is left."""
    text = str(query or "").strip()
    return text[:max_length]


class VectorIndexManager:
    """Get-or-create stores, idempotent indexing, search and cascade deletion."""

    def __init__(
        self,
        client: VectorIndexClient,
        session_maker: Optional[async_sessionmaker[AsyncSession]] = None,
        query_max_length: int = 4096,
        search_max_results: int = 8,
    ):
        self.client = client
        self.session_maker = session_maker
        self.query_max_length = query_max_length
        self.search_max_results = search_max_results

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        client: Optional[VectorIndexClient] = None,
        session_maker: Optional[async_sessionmaker[AsyncSession]] = None,
    ) -> "VectorIndexManager":
        """Build a manager with the query and result limits from ``settings.retrieval``.

        Raises:
            ConfigurationError: If no client is given and OPENAI_API_KEY is missing
        """
        return cls(
            client=client if client is not None else VectorIndexClient.from_settings(settings),
            session_maker=session_maker,
            query_max_length=settings.retrieval.query_max_length,
            search_max_results=settings.retrieval.search_max_results,
        )

    @asynccontextmanager
    async def _repositories(
        self,
    ) -> AsyncIterator[Tuple[UserVectorStoreRepository, ReportVectorFileRepository]]:
        """Open one session and yield both repositories bound to it."""
        session_maker = self.session_maker or get_session_maker()
        async with session_maker() as session:
            yield UserVectorStoreRepository(session), ReportVectorFileRepository(session)

    async def get_or_create_store(self, user_id: str) -> Optional[str]:
        """Return the user's vector store id, creating the store on first use.

        If a concurrent caller persisted its mapping first, that mapping wins
        and the store created here is deleted on a best-effort basis.
        """
        if not user_id:
            return None

        async with self._repositories() as (stores, _):
            existing = await stores.get_store_id(user_id)
        if existing:
            return existing

        created_id = await self.client.create_store(
            name=f"{STORE_NAME_PREFIX}{user_id}",
            metadata={"auth_user_id": user_id},
        )

        async with self._repositories() as (stores, _):
            if await stores.insert_if_absent(user_id, created_id):
                LOGGER.info(
                    f"Mapped new vector store {created_id} to user",
                    extra={"auth_user_id": user_id}
                )
                return created_id
            winner = await stores.get_store_id(user_id)

        if not winner:
            return created_id

        LOGGER.warning(
            f"Lost vector store creation race; discarding {created_id} in favour of {winner}",
            extra={"auth_user_id": user_id}
        )
        try:
            await self.client.delete_store(created_id)
        except Exception:
            LOGGER.warning(
                f"Failed to delete orphaned vector store {created_id}",
                exc_info=True,
                extra={"auth_user_id": user_id}
            )
        return winner

    async def index_report(
        self,
        user_id: str,
        report_id: str,
        title: Optional[str],
        plan_text: str,
        report: CanonicalReport,
    ) -> Optional[IndexedReportRef]:
        """Index one report in the user's store.

        No-op (returns None) when the report already has a vector record.
        """
        if not user_id:
            return None
        report_id = str(report_id)

        async with self._repositories() as (_, files):
            if await files.exists(user_id, report_id):
                LOGGER.info(f"Report {report_id} already indexed, skipping")
                return None

        store_id = await self.get_or_create_store(user_id)
        if not store_id:
            return None

        text = build_report_index_text(report_id, title or "", plan_text, report)
        file_id = await self.client.upload_document(f"report-{report_id}.txt", text)
        vector_store_file_id = await self.client.attach_to_store(store_id, file_id)
        attributes = {"report_id": report_id, "title": title or ""}
        await self.client.set_attributes(store_id, vector_store_file_id, attributes)

        async with self._repositories() as (_, files):
            await files.create_record(
                auth_user_id=user_id,
                report_id=report_id,
                vector_store_id=store_id,
                file_id=file_id,
                vector_store_file_id=vector_store_file_id,
                title=title,
            )

        LOGGER.info(
            f"Indexed report {report_id} as file {file_id}",
            extra={"vector_store_id": store_id, "chars": len(text)}
        )
        return IndexedReportRef(
            vector_store_id=store_id,
            file_id=file_id,
            vector_store_file_id=vector_store_file_id,
            metadata=attributes,
        )

    async def search(
        self,
        user_id: str,
        query: str,
        k: Optional[int] = None,
    ) -> List[ReportSearchResult]:
        """Ranked semantic search over the user's indexed reports.

        Returns [] without any remote call when the query is blank or the
        user has no store yet. Hits whose file is not mapped locally keep a
        None report_id and title.
        """
        if not user_id:
            return []

        safe_query = clamp_query(query, self.query_max_length)
        if not safe_query:
            return []

        async with self._repositories() as (stores, _):
            store_id = await stores.get_store_id(user_id)
        if not store_id:
            return []

        hits = await self.client.search(
            store_id, safe_query, max_results=k or self.search_max_results
        )
        if not hits:
            return []

        async with self._repositories() as (_, files):
            mapping = await files.resolve_file_ids(user_id, [hit.file_id for hit in hits])

        results = []
        for hit in hits:
            report_id, title = mapping.get(hit.file_id, (None, None))
            results.append(
                ReportSearchResult(
                    score=hit.score,
                    file_id=hit.file_id,
                    report_id=report_id,
                    title=title,
                    snippet=hit.snippet,
                    attributes=hit.attributes,
                )
            )
        return results

    async def delete_report_vectors(self, user_id: str, report_id: str) -> int:
        """Detach and delete every remote file of a report, then its rows.

        Remote 404s count as already deleted. Returns the number of records
        removed; 0 when the report was never indexed.
        """
        if not user_id:
            return 0
        report_id = str(report_id)

        async with self._repositories() as (_, files):
            records = await files.list_for_report(user_id, report_id)

            for record in records:
                if record.vector_store_id and record.vector_store_file_id:
                    await self.client.detach_from_store(
                        record.vector_store_id, record.vector_store_file_id
                    )
                if record.file_id:
                    await self.client.delete_document(record.file_id)

            deleted = await files.delete_for_report(user_id, report_id)

        LOGGER.info(f"Deleted {deleted} vector records for report {report_id}")
        return deleted
