"""Unit tests for domain records and canonical serialization."""

from __future__ import annotations

import json
from datetime import date

import pytest

from qms_audit.domain.models import (
    Acceptability,
    DocType,
    Document,
    Link,
    RelationshipKind,
    RiskEntry,
    TraceabilityChain,
    ValidationWarning,
    format_type_name,
)


@pytest.mark.unit
def test_document_rejects_empty_id() -> None:
    with pytest.raises(ValueError, match="must not be empty"):
        Document(file_path="docs/a.md", id="  ", title="A", status="draft", doc_type=DocType.SOP)


@pytest.mark.unit
def test_document_metadata_is_read_only() -> None:
    source = {"id": "SOP-001", "owner": "qa"}
    document = Document(
        file_path="docs/sops/sop-001.md",
        id="SOP-001",
        title="Document Control",
        status="approved",
        doc_type=DocType.SOP,
        metadata=source,
    )
    source["owner"] = "changed"

    assert document.metadata["owner"] == "qa"
    with pytest.raises(TypeError):
        document.metadata["owner"] = "x"  # type: ignore[index]


@pytest.mark.unit
def test_chain_name_uses_title_case_type_names() -> None:
    chain = TraceabilityChain("software_requirement", "product_requirement", "derives_from")

    assert chain.name == "Software Requirement → Product Requirement"
    assert format_type_name("test_case") == "Test Case"
    assert chain.reversible is False


@pytest.mark.unit
def test_to_dict_normalizes_enums_tuples_and_dates() -> None:
    document = Document(
        file_path="docs/sops/sop-001.md",
        id="SOP-001",
        title="Document Control",
        status="approved",
        doc_type=DocType.SOP,
        metadata={"effective": date(2024, 5, 1), "reviewers": ("a", "b")},
    )

    payload = document.to_dict()

    assert payload["doc_type"] == "sop"
    assert payload["metadata"] == {"effective": "2024-05-01", "reviewers": ["a", "b"]}
    assert json.loads(document.to_json()) == payload


@pytest.mark.unit
def test_link_and_warning_serialize_to_plain_strings() -> None:
    link = Link(kind=RelationshipKind.MITIGATES, target_id="SRS-001")
    warning = ValidationWarning(file="docs/a.md", rule="links/broken-reference", message="m")

    assert link.to_dict() == {"kind": "mitigates", "target_id": "SRS-001"}
    assert warning.to_dict()["severity"] == "warning"


@pytest.mark.unit
def test_risk_entry_residual_values_default_to_inherent() -> None:
    entry = RiskEntry(id="RISK-001", title="t", severity=4, probability=3)
    overridden = RiskEntry(
        id="RISK-002",
        title="t",
        severity=4,
        probability=3,
        residual_probability=1,
        acceptability=Acceptability.ACCEPTABLE,
    )

    assert (entry.effective_residual_severity, entry.effective_residual_probability) == (4, 3)
    assert (overridden.effective_residual_severity, overridden.effective_residual_probability) == (
        4,
        1,
    )
