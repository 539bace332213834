"""Unit tests for chain coverage and the hazard chain checks."""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from qms_audit.domain.models import Document, TraceabilityChain
from qms_audit.ingestion.document_store import DocumentIndex, parse_document_text
from qms_audit.verification.traceability import (
    DEFAULT_RULE,
    GAP_HAZARD_NO_SITUATION,
    GAP_SITUATION_NO_HARM,
    HAZARD_CHAIN_RULE,
    VERIFICATION_KINDS,
    accepted_link_kinds,
    coverage_percent,
    validate_traceability,
)

_VERIFIED = TraceabilityChain("software_requirement", "test_case", "verified_by", reversible=True)


def _doc(file_path: str, doc_id: str, body: str = "") -> Document:
    document = parse_document_text(file_path, f"---\nid: {doc_id}\ntitle: {doc_id}\n---\n{body}")
    assert document is not None
    return document


def _run(documents: list[Document], chains: list[TraceabilityChain], **kwargs: object):
    index = DocumentIndex.from_documents(documents)
    return validate_traceability(index.documents, index, chains, **kwargs)  # type: ignore[arg-type]


@pytest.mark.unit
def test_chain_without_sources_is_fully_covered() -> None:
    result = _run([], [_VERIFIED])

    assert result.coverage[0].total_sources == 0
    assert result.coverage[0].coverage_percent == 100
    assert result.warnings == ()
    assert result.gaps == ()


@pytest.mark.unit
def test_outbound_link_covers_source() -> None:
    chain = TraceabilityChain("software_requirement", "product_requirement", "derives_from")
    docs = [
        _doc("docs/software-requirements/srs-001.md", "SRS-001", "**Derives from:** [PRS-001]\n"),
        _doc("docs/software-requirements/srs-002.md", "SRS-002"),
    ]

    result = _run(docs, [chain])

    coverage = result.coverage[0]
    assert (coverage.covered_sources, coverage.total_sources, coverage.coverage_percent) == (1, 2, 50)
    assert coverage.chain_name == "Software Requirement → Product Requirement"
    assert len(result.warnings) == 1
    warning = result.warnings[0]
    assert warning.file == "docs/software-requirements/srs-002.md"
    assert warning.rule == "traceability/requirement-derivation"
    assert warning.message == (
        'SRS-002 (software_requirement) has no "derives_from" link to a product_requirement'
    )
    assert result.gaps[0].document_id == "SRS-002"
    assert result.gaps[0].gap_type == "missing_derives_from"
    assert result.gaps[0].message == 'No "derives_from" link to product_requirement'


@pytest.mark.unit
def test_reversible_chain_accepts_back_link_from_target() -> None:
    docs = [
        _doc("docs/software-requirements/srs-001.md", "SRS-001"),
        _doc("docs/test/tc-001.md", "TC-001", "**Verifies:** [SRS-001]\n"),
    ]

    result = _run(docs, [_VERIFIED])

    assert result.coverage[0].covered_sources == 1
    assert result.warnings == ()


@pytest.mark.unit
def test_non_reversible_chain_requires_outbound_link() -> None:
    chain = TraceabilityChain("software_requirement", "test_case", "verified_by")
    docs = [
        _doc("docs/software-requirements/srs-001.md", "SRS-001"),
        _doc("docs/test/tc-001.md", "TC-001", "**Verifies:** [SRS-001]\n"),
    ]

    result = _run(docs, [chain])

    assert result.coverage[0].covered_sources == 0
    assert result.warnings[0].rule == "traceability/test-coverage"


@pytest.mark.unit
def test_outbound_validated_by_satisfies_verification_chain() -> None:
    chain = TraceabilityChain("test_case", "software_requirement", "verified_by", reversible=True)
    docs = [_doc("docs/test/tc-001.md", "TC-001", "**Validates:** [UN-001]\n")]

    result = _run(docs, [chain])

    assert result.coverage[0].covered_sources == 1
    assert result.coverage[0].coverage_percent == 100
    assert result.warnings == ()


@pytest.mark.unit
def test_reverse_validated_by_satisfies_verification_chain() -> None:
    docs = [
        _doc("docs/software-requirements/srs-001.md", "SRS-001"),
        _doc("docs/test/tc-001.md", "TC-001", "**Validates:** [SRS-001]\n"),
    ]

    result = _run(docs, [_VERIFIED])

    assert result.coverage[0].covered_sources == 1
    assert result.gaps == ()


@pytest.mark.unit
def test_validated_by_does_not_satisfy_other_chains() -> None:
    chain = TraceabilityChain("software_requirement", "product_requirement", "derives_from")
    docs = [_doc("docs/software-requirements/srs-001.md", "SRS-001", "**Validates:** [PRS-001]\n")]

    result = _run(docs, [chain])

    assert result.coverage[0].coverage_percent == 0
    assert accepted_link_kinds("derives_from") == frozenset({"derives_from"})
    assert accepted_link_kinds("verified_by") == VERIFICATION_KINDS


@pytest.mark.unit
def test_unknown_link_kind_uses_default_rule() -> None:
    chain = TraceabilityChain("sop", "policy", "governed_by")
    docs = [_doc("docs/sops/sop-001.md", "SOP-001")]

    result = _run(docs, [chain])

    assert result.warnings[0].rule == DEFAULT_RULE
    assert result.gaps[0].gap_type == "missing_governed_by"


@pytest.mark.unit
def test_disabled_traceability_returns_nothing() -> None:
    docs = [_doc("docs/software-requirements/srs-001.md", "SRS-001")]

    result = _run(docs, [_VERIFIED], enabled=False)

    assert (result.warnings, result.coverage, result.gaps) == ((), (), ())
    assert result.average_coverage is None


@pytest.mark.unit
def test_average_coverage_rounds_half_up() -> None:
    chain = TraceabilityChain("software_requirement", "product_requirement", "derives_from")
    docs = [
        _doc("docs/software-requirements/srs-001.md", "SRS-001", "**Derives from:** [PRS-001]\n"),
        _doc("docs/software-requirements/srs-002.md", "SRS-002"),
    ]

    result = _run(docs, [chain, _VERIFIED])

    # 50% and 0% average to 25%.
    assert result.average_coverage == 25


@pytest.mark.unit
def test_hazard_without_situation_is_reported_once() -> None:
    docs = [
        _doc("docs/risk/RISK-001.md", "RISK-001", "**Analyzes:** [HAZ-001]\n"),
        _doc("docs/risk/RISK-002.md", "RISK-002", "**Analyzes:** [HAZ-001]\n"),
        _doc("docs/hazards/HAZ-001.md", "HAZ-001"),
    ]

    result = _run(docs, [])

    assert len(result.warnings) == 1
    assert result.warnings[0].file == "docs/hazards/HAZ-001.md"
    assert result.warnings[0].rule == HAZARD_CHAIN_RULE
    assert [gap.gap_type for gap in result.gaps] == [GAP_HAZARD_NO_SITUATION]
    assert result.gaps[0].document_id == "HAZ-001"


@pytest.mark.unit
def test_situation_without_harm_is_reported() -> None:
    docs = [
        _doc("docs/risk/RISK-001.md", "RISK-001", "**Analyzes:** [HAZ-001]\n"),
        _doc("docs/hazards/HAZ-001.md", "HAZ-001", "**Leads to:** [HS-001]\n"),
        _doc("docs/risk/situations/HS-001.md", "HS-001"),
    ]

    result = _run(docs, [])

    assert [gap.gap_type for gap in result.gaps] == [GAP_SITUATION_NO_HARM]
    assert result.warnings[0].message == 'Hazardous situation HS-001 has no "results_in" harm'


@pytest.mark.unit
def test_situation_shared_by_two_risks_is_reported_once() -> None:
    docs = [
        _doc("docs/risk/RISK-001.md", "RISK-001", "**Analyzes:** [HAZ-001]\n"),
        _doc("docs/risk/RISK-002.md", "RISK-002", "**Analyzes:** [HAZ-002]\n"),
        _doc("docs/hazards/HAZ-001.md", "HAZ-001", "**Leads to:** [HS-001]\n"),
        _doc("docs/hazards/HAZ-002.md", "HAZ-002", "**Leads to:** [HS-001]\n"),
        _doc("docs/risk/situations/HS-001.md", "HS-001"),
    ]

    result = _run(docs, [])

    assert [(gap.document_id, gap.gap_type) for gap in result.gaps] == [
        ("HS-001", GAP_SITUATION_NO_HARM)
    ]
    assert [warning.file for warning in result.warnings] == ["docs/risk/situations/HS-001.md"]


@pytest.mark.unit
def test_complete_hazard_chain_is_clean() -> None:
    docs = [
        _doc("docs/risk/RISK-001.md", "RISK-001", "**Analyzes:** [HAZ-001]\n"),
        _doc("docs/hazards/HAZ-001.md", "HAZ-001", "**Leads to:** [HS-001]\n"),
        _doc("docs/risk/situations/HS-001.md", "HS-001", "**Results in:** [HARM-001]\n"),
    ]

    assert _run(docs, []).warnings == ()


@pytest.mark.unit
def test_unresolved_hazard_and_situation_are_skipped() -> None:
    docs = [
        _doc("docs/risk/RISK-001.md", "RISK-001", "**Analyzes:** [HAZ-404]\n"),
        _doc("docs/risk/RISK-002.md", "RISK-002", "**Analyzes:** [HAZ-002]\n"),
        _doc("docs/hazards/HAZ-002.md", "HAZ-002", "**Leads to:** [HS-404]\n"),
    ]

    result = _run(docs, [])

    assert result.warnings == ()
    assert result.gaps == ()


@pytest.mark.unit
@pytest.mark.parametrize(
    ("covered", "total", "expected"),
    [(0, 0, 100), (1, 3, 33), (2, 3, 67), (1, 8, 13), (3, 3, 100), (0, 5, 0)],
)
def test_coverage_percent_rounding(covered: int, total: int, expected: int) -> None:
    assert coverage_percent(covered, total) == expected


@pytest.mark.unit
@settings(max_examples=100, deadline=None)
@given(data=st.data())
def test_coverage_percent_stays_in_range(data: st.DataObject) -> None:
    total = data.draw(st.integers(min_value=1, max_value=10_000))
    covered = data.draw(st.integers(min_value=0, max_value=total))

    percent = coverage_percent(covered, total)

    assert 0 <= percent <= 100
    assert abs(percent - 100 * covered / total) <= 0.5
