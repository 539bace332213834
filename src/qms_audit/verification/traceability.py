"""
qms-audit traceability engine.

Purpose
- Evaluate configured traceability chains (coverage, warnings, gaps) and the
  fixed hazard -> hazardous situation -> harm chain.

Functional requirements
- Repositories not opted into traceability get empty results.
- A chain with no source documents reports 100% coverage.
- A ``verified_by`` chain accepts either verification kind (``verified_by`` or
  ``validated_by``); every other chain accepts only its own kind.
- Reverse-direction coverage applies only to chains flagged ``reversible``.
- A risk whose ``analyzes`` target does not resolve is skipped for hazard checks.

Non-functional requirements
- Warnings and gaps are emitted in check order (chain order, then source order,
  then hazard checks); presentation layers sort them.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Final

from qms_audit.domain.models import (
    DocType,
    Document,
    GapEntry,
    Link,
    RelationshipKind,
    TraceabilityChain,
    TraceabilityCoverage,
    ValidationWarning,
    WarningSeverity,
)
from qms_audit.ingestion.document_store import DocumentIndex
from qms_audit.ingestion.links import build_link_table

logger = logging.getLogger(__name__)

RULE_BY_KIND: Final[Mapping[str, str]] = MappingProxyType(
    {
        RelationshipKind.DERIVES_FROM: "traceability/requirement-derivation",
        RelationshipKind.VERIFIED_BY: "traceability/test-coverage",
        RelationshipKind.MITIGATES: "traceability/risk-mitigation",
        RelationshipKind.IMPLEMENTS: "traceability/design-coverage",
    }
)
DEFAULT_RULE: Final[str] = "traceability/missing-link"
HAZARD_CHAIN_RULE: Final[str] = "traceability/hazard-chain"

GAP_HAZARD_NO_SITUATION: Final[str] = "hazard_no_situation"
GAP_SITUATION_NO_HARM: Final[str] = "situation_no_harm"

VERIFICATION_KINDS: Final[frozenset[str]] = frozenset(
    {RelationshipKind.VERIFIED_BY, RelationshipKind.VALIDATED_BY}
)

LinkTable = Mapping[str, tuple[Link, ...]]


@dataclass(frozen=True, slots=True)
class TraceabilityResult:
    warnings: tuple[ValidationWarning, ...] = ()
    coverage: tuple[TraceabilityCoverage, ...] = ()
    gaps: tuple[GapEntry, ...] = ()

    @property
    def average_coverage(self) -> int | None:
        if not self.coverage:
            return None
        total = sum(item.coverage_percent for item in self.coverage)
        return coverage_percent(total, 100 * len(self.coverage))


@dataclass(frozen=True, slots=True)
class ChainEvaluation:
    coverage: TraceabilityCoverage
    warnings: tuple[ValidationWarning, ...]
    gaps: tuple[GapEntry, ...]


def validate_traceability(
    documents: Sequence[Document],
    index: DocumentIndex,
    chains: Sequence[TraceabilityChain],
    *,
    enabled: bool = True,
    link_table: LinkTable | None = None,
) -> TraceabilityResult:
    """Evaluate every chain, then the hazard chain, over one snapshot."""

    if not enabled:
        logger.debug("traceability disabled; skipping chain evaluation")
        return TraceabilityResult()

    links = link_table if link_table is not None else build_link_table(documents)

    warnings: list[ValidationWarning] = []
    coverage: list[TraceabilityCoverage] = []
    gaps: list[GapEntry] = []

    for chain in chains:
        evaluation = evaluate_chain(chain, index, links)
        coverage.append(evaluation.coverage)
        warnings.extend(evaluation.warnings)
        gaps.extend(evaluation.gaps)
        logger.debug(
            "chain %s: %d/%d covered",
            chain.name,
            evaluation.coverage.covered_sources,
            evaluation.coverage.total_sources,
        )

    hazard_warnings, hazard_gaps = validate_hazard_chains(index, links)
    warnings.extend(hazard_warnings)
    gaps.extend(hazard_gaps)

    logger.info(
        "traceability evaluated %d chains: %d warnings, %d gaps",
        len(coverage),
        len(warnings),
        len(gaps),
    )
    return TraceabilityResult(
        warnings=tuple(warnings),
        coverage=tuple(coverage),
        gaps=tuple(gaps),
    )


def evaluate_chain(
    chain: TraceabilityChain,
    index: DocumentIndex,
    link_table: LinkTable,
) -> ChainEvaluation:
    sources = index.of_type(chain.source_type)
    accepted = accepted_link_kinds(chain.link)
    reverse_covered = (
        _reverse_targets(index.of_type(chain.target_type), link_table, accepted)
        if chain.reversible
        else frozenset()
    )

    covered = 0
    warnings: list[ValidationWarning] = []
    gaps: list[GapEntry] = []

    for source in sources:
        outbound = link_table.get(source.file_path, ())
        if any(link.kind in accepted for link in outbound) or source.id in reverse_covered:
            covered += 1
            continue

        warnings.append(
            ValidationWarning(
                file=source.file_path,
                rule=RULE_BY_KIND.get(chain.link, DEFAULT_RULE),
                message=(
                    f'{source.id} ({chain.source_type}) has no "{chain.link}" link '
                    f"to a {chain.target_type}"
                ),
                severity=WarningSeverity.WARNING,
            )
        )
        gaps.append(
            GapEntry(
                document_id=source.id,
                gap_type=f"missing_{chain.link}",
                message=f'No "{chain.link}" link to {chain.target_type}',
                severity=WarningSeverity.WARNING,
            )
        )

    coverage = TraceabilityCoverage(
        chain_name=chain.name,
        source_type=chain.source_type,
        target_type=chain.target_type,
        total_sources=len(sources),
        covered_sources=covered,
        coverage_percent=coverage_percent(covered, len(sources)),
    )
    return ChainEvaluation(coverage=coverage, warnings=tuple(warnings), gaps=tuple(gaps))


def validate_hazard_chains(
    index: DocumentIndex,
    link_table: LinkTable,
) -> tuple[list[ValidationWarning], list[GapEntry]]:
    """Require hazard ``leads_to`` situation and situation ``results_in`` harm.

    Only hazards analyzed by a risk document are checked, each at most once.
    """

    warnings: list[ValidationWarning] = []
    gaps: list[GapEntry] = []
    checked_hazards: set[str] = set()
    checked_situations: set[str] = set()

    for risk in index.of_type(DocType.RISK):
        analyzes = _first_link(link_table.get(risk.file_path, ()), RelationshipKind.ANALYZES)
        if analyzes is None:
            continue
        hazard = index.get(analyzes.target_id)
        if hazard is None:
            logger.debug("risk %s analyzes unresolved hazard %s", risk.id, analyzes.target_id)
            continue
        if hazard.file_path in checked_hazards:
            continue
        checked_hazards.add(hazard.file_path)

        leads_to = _first_link(
            link_table.get(hazard.file_path, ()), RelationshipKind.LEADS_TO
        )
        if leads_to is None:
            warnings.append(
                ValidationWarning(
                    file=hazard.file_path,
                    rule=HAZARD_CHAIN_RULE,
                    message=f'Hazard {hazard.id} has no "leads_to" hazardous situation',
                )
            )
            gaps.append(
                GapEntry(
                    document_id=hazard.id,
                    gap_type=GAP_HAZARD_NO_SITUATION,
                    message="Hazard has no leads_to link",
                )
            )
            continue

        situation = index.get(leads_to.target_id)
        if situation is None or situation.file_path in checked_situations:
            continue
        checked_situations.add(situation.file_path)

        results_in = _first_link(
            link_table.get(situation.file_path, ()), RelationshipKind.RESULTS_IN
        )
        if results_in is None:
            warnings.append(
                ValidationWarning(
                    file=situation.file_path,
                    rule=HAZARD_CHAIN_RULE,
                    message=(
                        f'Hazardous situation {situation.id} has no "results_in" harm'
                    ),
                )
            )
            gaps.append(
                GapEntry(
                    document_id=situation.id,
                    gap_type=GAP_SITUATION_NO_HARM,
                    message="Situation has no results_in link",
                )
            )

    return warnings, gaps


def accepted_link_kinds(link: str) -> frozenset[str]:
    """Link kinds that satisfy a chain declared with ``link``."""

    if link == RelationshipKind.VERIFIED_BY:
        return VERIFICATION_KINDS
    return frozenset({link})


def coverage_percent(covered: int, total: int) -> int:
    """Half-up rounded percentage; an empty population is fully covered."""

    if total <= 0:
        return 100
    return (200 * covered + total) // (2 * total)


def _reverse_targets(
    targets: Iterable[Document],
    link_table: LinkTable,
    accepted: frozenset[str],
) -> frozenset[str]:
    return frozenset(
        link.target_id
        for target in targets
        for link in link_table.get(target.file_path, ())
        if link.kind in accepted
    )


def _first_link(links: Iterable[Link], kind: RelationshipKind) -> Link | None:
    return next((link for link in links if link.kind is kind), None)


__all__ = [
    "DEFAULT_RULE",
    "GAP_HAZARD_NO_SITUATION",
    "GAP_SITUATION_NO_HARM",
    "HAZARD_CHAIN_RULE",
    "RULE_BY_KIND",
    "VERIFICATION_KINDS",
    "ChainEvaluation",
    "TraceabilityResult",
    "accepted_link_kinds",
    "coverage_percent",
    "evaluate_chain",
    "validate_hazard_chains",
    "validate_traceability",
]
