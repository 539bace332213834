"""Markdown rendering of audit results.

Warnings are sorted by file then rule, gaps by document id then gap type, so
the same snapshot always renders the same text.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Final

from qms_audit.domain.models import (
    GapEntry,
    RiskMatrix,
    TraceabilityCoverage,
    ValidationWarning,
)
from qms_audit.risk.matrix import PROBABILITY_LABELS, SEVERITY_LABELS

if TYPE_CHECKING:
    from qms_audit.audit import AuditReport

_EMPTY_CELL: Final[str] = "-"


def sort_warnings(warnings: Iterable[ValidationWarning]) -> list[ValidationWarning]:
    return sorted(warnings, key=lambda item: (item.file, item.rule, item.message))


def sort_gaps(gaps: Iterable[GapEntry]) -> list[GapEntry]:
    return sorted(gaps, key=lambda item: (item.document_id, item.gap_type, item.message))


def render_risk_matrix_markdown(matrix: RiskMatrix) -> str:
    summary = matrix.summary
    lines = [
        "### Risk Summary (ISO 14971)",
        "",
        "| Status | Count |",
        "|--------|-------|",
        f"| Acceptable | {summary.acceptable} |",
        f"| Review Required | {summary.review_required} |",
        f"| Unacceptable | {summary.unacceptable} |",
        f"| **Total** | **{summary.total}** |",
        "",
        "#### Inherent Risk Grid",
        "",
        render_grid(matrix.inherent),
        "",
        "#### Residual Risk Grid",
        "",
        render_grid(matrix.residual),
        "",
    ]

    if matrix.risks:
        lines.extend(
            [
                "#### Risk Details",
                "",
                "| ID | Title | Inherent (S/P) | Residual (S/P) | Status |",
                "|----|-------|----------------|----------------|--------|",
            ]
        )
        for risk in matrix.risks:
            inherent = f"{risk.severity}/{risk.probability}"
            residual = (
                f"{risk.effective_residual_severity}/{risk.effective_residual_probability}"
            )
            lines.append(
                f"| {_cell(risk.id)} | {_cell(risk.title)} | {inherent} | {residual} "
                f"| {risk.acceptability} |"
            )
    return "\n".join(lines)


def render_grid(grid: Sequence[Sequence[int]]) -> str:
    """Render a count grid with the most probable row first."""

    size = len(grid)
    severity_labels = [_label(SEVERITY_LABELS, column) for column in range(size)]
    lines = [
        f"| P \\ S | {' | '.join(severity_labels)} |",
        f"|-------|{'|'.join('---' for _ in severity_labels)}|",
    ]
    for row in reversed(range(size)):
        cells = [str(count) if count > 0 else _EMPTY_CELL for count in grid[row]]
        lines.append(f"| {_label(PROBABILITY_LABELS, row)} | {' | '.join(cells)} |")
    return "\n".join(lines)


def render_coverage_markdown(coverage: Sequence[TraceabilityCoverage]) -> str:
    lines = [
        "### Traceability Coverage",
        "",
    ]
    if not coverage:
        lines.append("_No traceability chains evaluated._")
        return "\n".join(lines)

    lines.extend(["| Chain | Covered | Coverage |", "|-------|---------|----------|"])
    for item in coverage:
        lines.append(
            f"| {item.chain_name} | {item.covered_sources}/{item.total_sources} "
            f"| {item.coverage_percent}% |"
        )
    return "\n".join(lines)


def render_gaps_markdown(gaps: Iterable[GapEntry]) -> str:
    ordered = sort_gaps(gaps)
    lines = ["### Traceability Gaps", ""]
    if not ordered:
        lines.append("_No gaps found._")
        return "\n".join(lines)

    lines.extend(["| Document | Gap | Details |", "|----------|-----|---------|"])
    for gap in ordered:
        lines.append(f"| {_cell(gap.document_id)} | {gap.gap_type} | {_cell(gap.message)} |")
    return "\n".join(lines)


def render_warnings_markdown(warnings: Iterable[ValidationWarning]) -> str:
    ordered = sort_warnings(warnings)
    lines = [f"### Warnings ({len(ordered)})", ""]
    if not ordered:
        lines.append("_No warnings._")
        return "\n".join(lines)

    lines.extend(["| File | Rule | Message |", "|------|------|---------|"])
    for warning in ordered:
        lines.append(
            f"| `{warning.file}` | {warning.rule} | {_cell(warning.message)} |"
        )
    return "\n".join(lines)


def render_audit_markdown(report: AuditReport) -> str:
    header = [
        "## QMS Audit Report",
        "",
        f"- Repository type: **{report.repo_type}**",
        f"- Documents: **{report.document_count}**",
        f"- Skipped files: **{len(report.skipped)}**",
        f"- Warnings: **{len(report.warnings)}**",
    ]
    if report.average_coverage is not None:
        header.append(f"- Average traceability coverage: **{report.average_coverage}%**")

    sections = ["\n".join(header), render_warnings_markdown(report.warnings)]
    if report.coverage:
        sections.append(render_coverage_markdown(report.coverage))
        sections.append(render_gaps_markdown(report.gaps))
    if report.risk_matrix is not None:
        sections.append(render_risk_matrix_markdown(report.risk_matrix))
    return "\n\n".join(sections) + "\n"


def _label(labels: Sequence[str], position: int) -> str:
    return labels[position] if position < len(labels) else str(position + 1)


def _cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


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
