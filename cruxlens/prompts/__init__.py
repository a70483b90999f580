"""Stage instructions for report generation."""
