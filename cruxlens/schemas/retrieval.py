"""Schemas for semantic index search results and vector records."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class VectorSearchHit(BaseModel):
    """One ranked hit returned by the remote vector store."""
    file_id: str
    score: float = 0.0
    snippet: str = ""
    attributes: Optional[Dict[str, Any]] = None


class ReportSearchResult(BaseModel):
    """A search hit resolved back to the user's report, when mapped."""
    score: float = 0.0
    file_id: str
    report_id: Optional[str] = None
    title: Optional[str] = None
    snippet: str = ""
    attributes: Optional[Dict[str, Any]] = None


class IndexedReportRef(BaseModel):
    """Remote identifiers created when a report is indexed."""
    model_config = ConfigDict(frozen=True)

    vector_store_id: str
    file_id: str
    vector_store_file_id: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
