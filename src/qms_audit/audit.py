"""
qms-audit: one-shot audit orchestration.

Purpose
- Build one document snapshot and run every check over it: frontmatter, links,
  headings, traceability, and (device repositories only) the risk matrix.

Functional requirements
- Warnings are collected in check order: frontmatter, links, markdown,
  traceability.
- Traceability and risk evaluation read the same snapshot independently.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from qms_audit.config.schema import AuditConfig
from qms_audit.domain.models import (
    CanonicalModel,
    GapEntry,
    Link,
    RiskMatrix,
    TraceabilityCoverage,
    ValidationWarning,
    WarningSeverity,
)
from qms_audit.ingestion.document_store import (
    DocumentIndex,
    SkippedDocument,
    build_document_index,
)
from qms_audit.ingestion.links import build_link_table
from qms_audit.risk.matrix import build_risk_matrix
from qms_audit.verification.frontmatter import validate_frontmatter
from qms_audit.verification.links import validate_links
from qms_audit.verification.markdown import validate_markdown
from qms_audit.verification.traceability import TraceabilityResult, validate_traceability

logger = logging.getLogger(__name__)


class FailOn(StrEnum):
    """Finding severity at which an audit counts as failed."""

    WARNING = "warning"
    ERROR = "error"
    NEVER = "never"


@dataclass(frozen=True, slots=True)
class AuditReport(CanonicalModel):
    repo_type: str
    document_count: int
    skipped: tuple[SkippedDocument, ...]
    warnings: tuple[ValidationWarning, ...]
    coverage: tuple[TraceabilityCoverage, ...]
    gaps: tuple[GapEntry, ...]
    average_coverage: int | None = None
    risk_matrix: RiskMatrix | None = None

    @property
    def error_count(self) -> int:
        return sum(1 for item in self.warnings if item.severity is WarningSeverity.ERROR)

    def fails(self, fail_on: FailOn | str) -> bool:
        threshold = FailOn(fail_on)
        if threshold is FailOn.WARNING:
            return bool(self.warnings)
        if threshold is FailOn.ERROR:
            return self.error_count > 0
        return False


def run_audit(
    config: AuditConfig,
    repo_root: Path,
    *,
    max_workers: int | None = None,
) -> AuditReport:
    index = build_document_index(config.docs_path, repo_root, max_workers=max_workers)
    return audit_index(index, config)


def audit_index(index: DocumentIndex, config: AuditConfig) -> AuditReport:
    """Run every check over an existing snapshot."""

    documents = index.documents
    link_table = build_link_table(documents)

    warnings: list[ValidationWarning] = []
    warnings.extend(
        validate_frontmatter(
            documents,
            required_fields=config.required_fields,
            recommended_fields=config.recommended_fields,
        )
    )
    warnings.extend(validate_links(documents, index, link_table=link_table))
    warnings.extend(validate_markdown(documents))

    traceability = trace_index(index, config, link_table=link_table)
    warnings.extend(traceability.warnings)

    risk_matrix = build_risk_matrix(index, config.grid_size) if config.is_device else None

    report = AuditReport(
        repo_type=config.repo_type,
        document_count=len(documents),
        skipped=index.skipped,
        warnings=tuple(warnings),
        coverage=traceability.coverage,
        gaps=traceability.gaps,
        average_coverage=traceability.average_coverage,
        risk_matrix=risk_matrix,
    )
    logger.info(
        "audit complete: %d documents, %d warnings, %d gaps",
        report.document_count,
        len(report.warnings),
        len(report.gaps),
    )
    return report


def trace_index(
    index: DocumentIndex,
    config: AuditConfig,
    *,
    link_table: Mapping[str, tuple[Link, ...]] | None = None,
) -> TraceabilityResult:
    return validate_traceability(
        index.documents,
        index,
        config.chains,
        enabled=config.traceability_enabled,
        link_table=link_table,
    )


__all__ = ["AuditReport", "FailOn", "audit_index", "run_audit", "trace_index"]
