"""Database models for the per-user semantic index mapping."""

from cruxlens.database.models import ReportVectorFile, UserVectorStore

__all__ = [
    "ReportVectorFile",
    "UserVectorStore",
]
