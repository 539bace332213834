"""Unit tests for YAML frontmatter splitting."""

from __future__ import annotations

import pytest

from qms_audit.ingestion.frontmatter import FrontmatterError, split_frontmatter


@pytest.mark.unit
def test_splits_metadata_and_body() -> None:
    text = "---\nid: SOP-001\ntitle: Document Control\n---\n# Document Control\n\nBody.\n"

    split = split_frontmatter(text)

    assert split.has_frontmatter is True
    assert split.metadata == {"id": "SOP-001", "title": "Document Control"}
    assert split.body == "# Document Control\n\nBody.\n"


@pytest.mark.unit
def test_text_without_frontmatter_is_all_body() -> None:
    split = split_frontmatter("# Heading\n---\nnot metadata\n")

    assert split.has_frontmatter is False
    assert split.metadata == {}
    assert split.body.startswith("# Heading")


@pytest.mark.unit
def test_unclosed_frontmatter_is_treated_as_body() -> None:
    split = split_frontmatter("---\nid: X-1\n# Heading\n")

    assert split.has_frontmatter is False
    assert split.metadata == {}


@pytest.mark.unit
def test_bom_and_crlf_are_normalized() -> None:
    split = split_frontmatter("\ufeff---\r\nid: UN-001\r\n---\r\nBody\r\n")

    assert split.metadata == {"id": "UN-001"}
    assert split.body == "Body\n"


@pytest.mark.unit
def test_empty_frontmatter_block_yields_empty_mapping() -> None:
    split = split_frontmatter("---\n---\nBody\n")

    assert split.has_frontmatter is True
    assert split.metadata == {}


@pytest.mark.unit
@pytest.mark.parametrize("block", ["- a\n- b", "just a string", "key: [unclosed"])
def test_non_mapping_or_invalid_yaml_raises(block: str) -> None:
    with pytest.raises(FrontmatterError):
        split_frontmatter(f"---\n{block}\n---\nBody\n")
