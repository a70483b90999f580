from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from cruxlens.database.models import ReportVectorFile, UserVectorStore
from cruxlens.repositories.base_repository import BaseRepository


class UserVectorStoreRepository(BaseRepository[UserVectorStore]):
    """Repository for the user -> remote vector store mapping."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, UserVectorStore)

    async def get_store_id(self, auth_user_id: str) -> Optional[str]:
        """Get the vector store id mapped to a user, if any."""
        query = select(UserVectorStore.vector_store_id).where(
            UserVectorStore.auth_user_id == auth_user_id
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def insert_if_absent(self, auth_user_id: str, vector_store_id: str) -> bool:
        """Persist the mapping unless another writer already did.

        Relies on the primary key of ``user_vector_stores``; a concurrent
        insert for the same user resolves to exactly one row.

        Returns:
            True if this call inserted the row, False on conflict
        """
        stmt = (
            insert(UserVectorStore)
            .values(auth_user_id=auth_user_id, vector_store_id=vector_store_id)
            .on_conflict_do_nothing(index_elements=[UserVectorStore.auth_user_id])
            .returning(UserVectorStore.vector_store_id)
        )
        result = await self.session.execute(stmt)
        inserted = result.scalar_one_or_none()
        await self.session.commit()
        return inserted is not None


class ReportVectorFileRepository(BaseRepository[ReportVectorFile]):
    """Repository for report -> remote file / vector store file records."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, ReportVectorFile)

    async def exists(self, auth_user_id: str, report_id: str) -> bool:
        """Check whether a report already has a vector record."""
        query = (
            select(ReportVectorFile.id)
            .where(
                ReportVectorFile.auth_user_id == auth_user_id,
                ReportVectorFile.report_id == report_id,
            )
            .limit(1)
        )
        result = await self.session.execute(query)
        return result.first() is not None

    async def create_record(
        self,
        auth_user_id: str,
        report_id: str,
        vector_store_id: str,
        file_id: str,
        vector_store_file_id: str,
        title: Optional[str] = None,
    ) -> ReportVectorFile:
        """Persist one vector record."""
        return await self.create(
            auth_user_id=auth_user_id,
            report_id=report_id,
            vector_store_id=vector_store_id,
            file_id=file_id,
            vector_store_file_id=vector_store_file_id,
            title=title,
        )

    async def list_for_report(self, auth_user_id: str, report_id: str) -> List[ReportVectorFile]:
        """All vector records of one report."""
        return await self.get_all(
            filters={"auth_user_id": auth_user_id, "report_id": report_id}
        )

    async def resolve_file_ids(
        self, auth_user_id: str, file_ids: Sequence[str]
    ) -> Dict[str, Tuple[str, Optional[str]]]:
        """Map remote file ids to (report_id, title) for one user."""
        if not file_ids:
            return {}
        query = select(
            ReportVectorFile.file_id, ReportVectorFile.report_id, ReportVectorFile.title
        ).where(
            ReportVectorFile.auth_user_id == auth_user_id,
            ReportVectorFile.file_id.in_(list(file_ids)),
        )
        result = await self.session.execute(query)
        return {row.file_id: (row.report_id, row.title) for row in result}

    async def delete_for_report(self, auth_user_id: str, report_id: str) -> int:
        """Remove every vector record of one report."""
        return await self.delete_where(
            {"auth_user_id": auth_user_id, "report_id": report_id}
        )
