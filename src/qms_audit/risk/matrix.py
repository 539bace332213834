"""
qms-audit risk matrix builder.

Purpose
- Extract severity/probability values from risk-typed documents and classify
  each residual pair against the ISO 14971 acceptability grid.

Functional requirements
- No risk-typed documents at all -> no matrix (``None``), distinct from a
  matrix whose entries are all acceptable.
- Metadata values win when both inherent values are declared there; otherwise
  both must be found in body table rows (``| Severity | 4 ...``).
- Residual values default to the inherent ones.
- Out-of-grid values are not counted in the grids but the entry is kept.
- Pairs outside 1..5 classify as review-required.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Final

from qms_audit.domain.models import (
    Acceptability,
    DocType,
    Document,
    RelationshipKind,
    RiskEntry,
    RiskMatrix,
    RiskSummary,
)
from qms_audit.ingestion.document_store import DocumentIndex
from qms_audit.ingestion.links import extract_links, links_of_kind

logger = logging.getLogger(__name__)

DEFAULT_GRID_SIZE: Final[int] = 5

_A = Acceptability.ACCEPTABLE
_R = Acceptability.REVIEW_REQUIRED
_U = Acceptability.UNACCEPTABLE

# Rows: probability 1 (remote) .. 5 (frequent). Columns: severity 1 (negligible) .. 5.
ACCEPTABILITY_TABLE: Final[tuple[tuple[Acceptability, ...], ...]] = (
    (_A, _A, _A, _A, _R),
    (_A, _A, _A, _R, _R),
    (_A, _A, _R, _R, _U),
    (_A, _R, _R, _U, _U),
    (_R, _R, _U, _U, _U),
)

PROBABILITY_LABELS: Final[tuple[str, ...]] = (
    "Remote",
    "Unlikely",
    "Possible",
    "Likely",
    "Frequent",
)
SEVERITY_LABELS: Final[tuple[str, ...]] = (
    "Negligible",
    "Minor",
    "Moderate",
    "Major",
    "Catastrophic",
)

_SEVERITY_ROW_RE: Final = re.compile(r"\|\s*Severity\s*\|\s*(\d)", re.IGNORECASE)
_PROBABILITY_ROW_RE: Final = re.compile(r"\|\s*Probability\s*\|\s*(\d)", re.IGNORECASE)
_RESIDUAL_SEVERITY_ROW_RE: Final = re.compile(
    r"\|\s*Residual\s*Severity\s*\|\s*(\d)", re.IGNORECASE
)
_RESIDUAL_PROBABILITY_ROW_RE: Final = re.compile(
    r"\|\s*Residual\s*Probability\s*\|\s*(\d)", re.IGNORECASE
)


@dataclass(frozen=True, slots=True)
class RiskValues:
    severity: int
    probability: int
    residual_severity: int | None = None
    residual_probability: int | None = None


def classify_acceptability(probability: int, severity: int) -> Acceptability:
    """Look up the tier for one (probability, severity) pair."""

    size = len(ACCEPTABILITY_TABLE)
    if not (1 <= probability <= size and 1 <= severity <= size):
        return Acceptability.REVIEW_REQUIRED
    return ACCEPTABILITY_TABLE[probability - 1][severity - 1]


def extract_risk_values(document: Document) -> RiskValues | None:
    from_metadata = _values_from_metadata(document.metadata)
    if from_metadata is not None:
        return from_metadata
    return _values_from_body(document.body)


def build_risk_matrix(
    index: DocumentIndex,
    grid_size: int = DEFAULT_GRID_SIZE,
) -> RiskMatrix | None:
    risk_documents = index.of_type(DocType.RISK)
    if not risk_documents:
        return None

    inherent = [[0] * grid_size for _ in range(grid_size)]
    residual = [[0] * grid_size for _ in range(grid_size)]
    risks: list[RiskEntry] = []
    skipped: list[str] = []
    tiers = {tier: 0 for tier in Acceptability}

    for document in risk_documents:
        values = extract_risk_values(document)
        if values is None:
            logger.debug("risk document %s carries no severity/probability", document.id)
            skipped.append(document.id)
            continue

        entry = _risk_entry(document, values)
        _increment(inherent, entry.probability, entry.severity, grid_size)
        _increment(
            residual,
            entry.effective_residual_probability,
            entry.effective_residual_severity,
            grid_size,
        )
        tiers[entry.acceptability] += 1
        risks.append(entry)

    summary = RiskSummary(
        total=len(risks),
        acceptable=tiers[Acceptability.ACCEPTABLE],
        review_required=tiers[Acceptability.REVIEW_REQUIRED],
        unacceptable=tiers[Acceptability.UNACCEPTABLE],
    )
    logger.info(
        "risk matrix built: %d risks (%d unacceptable), %d without values",
        summary.total,
        summary.unacceptable,
        len(skipped),
    )
    return RiskMatrix(
        inherent=tuple(tuple(row) for row in inherent),
        residual=tuple(tuple(row) for row in residual),
        acceptability=ACCEPTABILITY_TABLE,
        risks=tuple(risks),
        summary=summary,
        skipped=tuple(skipped),
    )


def _risk_entry(document: Document, values: RiskValues) -> RiskEntry:
    mitigates = links_of_kind(extract_links(document), RelationshipKind.MITIGATES)
    residual_severity = (
        values.severity if values.residual_severity is None else values.residual_severity
    )
    residual_probability = (
        values.probability
        if values.residual_probability is None
        else values.residual_probability
    )
    return RiskEntry(
        id=document.id,
        title=document.title,
        severity=values.severity,
        probability=values.probability,
        residual_severity=values.residual_severity,
        residual_probability=values.residual_probability,
        mitigates=tuple(link.target_id for link in mitigates),
        acceptability=classify_acceptability(residual_probability, residual_severity),
    )


def _increment(grid: list[list[int]], probability: int, severity: int, size: int) -> None:
    if 1 <= probability <= size and 1 <= severity <= size:
        grid[probability - 1][severity - 1] += 1


def _values_from_metadata(metadata: Mapping[str, object]) -> RiskValues | None:
    severity = coerce_level(metadata.get("severity"))
    probability = coerce_level(metadata.get("probability"))
    if severity is None or probability is None:
        return None
    return RiskValues(
        severity=severity,
        probability=probability,
        residual_severity=coerce_level(metadata.get("residual_severity")),
        residual_probability=coerce_level(metadata.get("residual_probability")),
    )


def _values_from_body(body: str) -> RiskValues | None:
    severity = _first_digit(_SEVERITY_ROW_RE, body)
    probability = _first_digit(_PROBABILITY_ROW_RE, body)
    if severity is None or probability is None:
        return None
    return RiskValues(
        severity=severity,
        probability=probability,
        residual_severity=_first_digit(_RESIDUAL_SEVERITY_ROW_RE, body),
        residual_probability=_first_digit(_RESIDUAL_PROBABILITY_ROW_RE, body),
    )


def _first_digit(pattern: re.Pattern[str], body: str) -> int | None:
    match = pattern.search(body)
    return int(match.group(1)) if match is not None else None


def coerce_level(value: object) -> int | None:
    """Accept ints, integral floats, and digit strings; anything else is absent."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").isdigit():
            return int(text)
    return None


__all__ = [
    "ACCEPTABILITY_TABLE",
    "DEFAULT_GRID_SIZE",
    "PROBABILITY_LABELS",
    "SEVERITY_LABELS",
    "RiskValues",
    "build_risk_matrix",
    "classify_acceptability",
    "coerce_level",
    "extract_risk_values",
]
