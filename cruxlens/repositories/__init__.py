"""Repository layer for database operations."""

from cruxlens.repositories.base_repository import BaseRepository
from cruxlens.repositories.vector_store_repository import (
    ReportVectorFileRepository,
    UserVectorStoreRepository,
)

__all__ = [
    "BaseRepository",
    "ReportVectorFileRepository",
    "UserVectorStoreRepository",
]
