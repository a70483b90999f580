"""SQLAlchemy models for the vector index mapping tables."""

from datetime import datetime

from sqlalchemy import TIMESTAMP, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from cruxlens.core.database import Base


class UserVectorStore(Base):
    """One remote vector store per authenticated user."""

    __tablename__ = "user_vector_stores"

    # Primary key doubles as the uniqueness guarantee for concurrent creation
    auth_user_id: Mapped[str] = mapped_column(Text, primary_key=True)
    vector_store_id: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("user_vector_stores_vector_store_id_idx", "vector_store_id"),
    )


class ReportVectorFile(Base):
    """Remote file + vector store attachment backing one indexed report."""

    __tablename__ = "report_vector_files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    report_id: Mapped[str] = mapped_column(String, nullable=False)
    auth_user_id: Mapped[str] = mapped_column(Text, nullable=False)
    vector_store_id: Mapped[str] = mapped_column(Text, nullable=False)
    file_id: Mapped[str] = mapped_column(Text, nullable=False)
    vector_store_file_id: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("report_vector_files_report_id_idx", "report_id"),
        Index("report_vector_files_auth_user_id_idx", "auth_user_id"),
        Index("report_vector_files_file_id_idx", "file_id"),
    )
