"""Markdown report rendering."""

from qms_audit.reports.markdown import (
    render_audit_markdown,
    render_coverage_markdown,
    render_gaps_markdown,
    render_grid,
    render_risk_matrix_markdown,
    render_warnings_markdown,
    sort_gaps,
    sort_warnings,
)

__all__ = [
    "render_audit_markdown",
    "render_coverage_markdown",
    "render_gaps_markdown",
    "render_grid",
    "render_risk_matrix_markdown",
    "render_warnings_markdown",
    "sort_gaps",
    "sort_warnings",
]
