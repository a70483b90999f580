"""Report generation: orchestration, normalization and rendering."""

from cruxlens.services.report.orchestrator import ReportOrchestrator
from cruxlens.services.report.renderer import render_report_html
from cruxlens.services.report.service import ReportGenerationService, rerender_report

__all__ = [
    "ReportGenerationService",
    "ReportOrchestrator",
    "render_report_html",
    "rerender_report",
]
