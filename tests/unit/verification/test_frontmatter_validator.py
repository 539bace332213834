"""Unit tests for duplicate-id and frontmatter field checks."""

from __future__ import annotations

import pytest

from qms_audit.domain.models import DocType, Document
from qms_audit.verification.frontmatter import (
    DUPLICATE_ID_RULE,
    OPTIONAL_FIELDS_RULE,
    REQUIRED_FIELDS_RULE,
    validate_frontmatter,
)


def _document(file_path: str, doc_id: str, **metadata: object) -> Document:
    return Document(
        file_path=file_path,
        id=doc_id,
        title=str(metadata.get("title", "Untitled")),
        status=str(metadata.get("status", "unknown")),
        doc_type=DocType.SOP,
        metadata={"id": doc_id, **metadata},
    )


@pytest.mark.unit
def test_duplicate_ids_warn_on_every_file_first() -> None:
    documents = [
        _document("docs/sops/a.md", "SOP-001", title="A"),
        _document("docs/sops/b.md", "SOP-002"),
        _document("docs/sops/c.md", "SOP-001", title="C"),
    ]

    warnings = validate_frontmatter(documents, required_fields=("title",))

    assert [w.rule for w in warnings] == [
        DUPLICATE_ID_RULE,
        DUPLICATE_ID_RULE,
        REQUIRED_FIELDS_RULE,
    ]
    assert warnings[0].file == "docs/sops/a.md"
    assert warnings[0].message == 'Duplicate document ID "SOP-001" also found in: docs/sops/c.md'
    assert warnings[1].message == 'Duplicate document ID "SOP-001" also found in: docs/sops/a.md'
    assert warnings[2].file == "docs/sops/b.md"
    assert warnings[2].message == 'Missing required frontmatter field: "title"'


@pytest.mark.unit
def test_recommended_fields_use_their_own_rule() -> None:
    documents = [_document("docs/sops/a.md", "SOP-001", title="A")]

    warnings = validate_frontmatter(
        documents,
        required_fields=("id", "title"),
        recommended_fields=("owner", "effective_date"),
    )

    assert [(w.rule, w.message) for w in warnings] == [
        (OPTIONAL_FIELDS_RULE, 'Missing recommended frontmatter field: "owner"'),
        (OPTIONAL_FIELDS_RULE, 'Missing recommended frontmatter field: "effective_date"'),
    ]


@pytest.mark.unit
def test_falsy_but_present_values_are_not_missing() -> None:
    documents = [_document("docs/sops/a.md", "SOP-001", title="", revision=0, approved=False)]

    warnings = validate_frontmatter(documents, required_fields=("title", "revision", "approved"))

    assert warnings == []


@pytest.mark.unit
def test_null_value_counts_as_present() -> None:
    documents = [_document("docs/sops/a.md", "SOP-001", owner=None, title=None)]

    warnings = validate_frontmatter(
        documents, required_fields=("title",), recommended_fields=("owner", "reviewer")
    )

    assert [(warning.rule, warning.message) for warning in warnings] == [
        (OPTIONAL_FIELDS_RULE, 'Missing recommended frontmatter field: "reviewer"')
    ]


@pytest.mark.unit
def test_no_documents_no_warnings() -> None:
    assert validate_frontmatter([], required_fields=("id",)) == []
