"""Per-user semantic index over previously generated reports."""

from cruxlens.services.vector_store.background import BackgroundIndexer
from cruxlens.services.vector_store.client import VectorIndexClient
from cruxlens.services.vector_store.index_text import build_report_index_text
from cruxlens.services.vector_store.manager import VectorIndexManager

__all__ = [
    "BackgroundIndexer",
    "VectorIndexClient",
    "VectorIndexManager",
    "build_report_index_text",
]
