"""Retrieval context for report generation."""

from cruxlens.services.retrieval.context_builder import RetrievalContextBuilder, format_retrieval_context

__all__ = ["RetrievalContextBuilder", "format_retrieval_context"]
