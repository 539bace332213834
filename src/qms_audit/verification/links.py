"""Broken cross-reference detection over extracted relationship links."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Final

from qms_audit.domain.models import Document, Link, ValidationWarning
from qms_audit.ingestion.document_store import DocumentIndex
from qms_audit.ingestion.links import extract_links

BROKEN_REFERENCE_RULE: Final[str] = "links/broken-reference"


def validate_links(
    documents: Sequence[Document],
    index: DocumentIndex,
    *,
    link_table: Mapping[str, tuple[Link, ...]] | None = None,
) -> list[ValidationWarning]:
    warnings: list[ValidationWarning] = []
    for document in documents:
        if link_table is not None:
            links = link_table.get(document.file_path, ())
        else:
            links = extract_links(document)
        for link in links:
            if index.get(link.target_id) is not None:
                continue
            warnings.append(
                ValidationWarning(
                    file=document.file_path,
                    rule=BROKEN_REFERENCE_RULE,
                    message=(
                        f'Broken link: references "{link.target_id}" ({link.kind}) '
                        "but no document with that ID exists"
                    ),
                )
            )
    return warnings


__all__ = ["BROKEN_REFERENCE_RULE", "validate_links"]
