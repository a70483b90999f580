"""Pydantic schemas."""

from cruxlens.schemas.report import (
    GUIDEPOST_TAXONOMY,
    CanonicalReport,
    GeneratedReport,
    ReportMetadata,
    ReportPages,
)
from cruxlens.schemas.retrieval import IndexedReportRef, ReportSearchResult, VectorSearchHit

__all__ = [
    "GUIDEPOST_TAXONOMY",
    "CanonicalReport",
    "GeneratedReport",
    "IndexedReportRef",
    "ReportMetadata",
    "ReportPages",
    "ReportSearchResult",
    "VectorSearchHit",
]
