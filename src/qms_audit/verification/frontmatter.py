"""Frontmatter checks: duplicate ids, required fields, recommended fields."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Final

from qms_audit.domain.models import Document, ValidationWarning

DUPLICATE_ID_RULE: Final[str] = "frontmatter/duplicate-id"
REQUIRED_FIELDS_RULE: Final[str] = "frontmatter/required-fields"
OPTIONAL_FIELDS_RULE: Final[str] = "frontmatter/optional-fields"


def validate_frontmatter(
    documents: Sequence[Document],
    *,
    required_fields: Iterable[str] = (),
    recommended_fields: Iterable[str] = (),
) -> list[ValidationWarning]:
    """Check ``documents`` (every parsed file, not the by-id view) for metadata issues.

    Duplicate-id warnings come first, grouped by id in first-seen order; then
    per-document required and recommended field warnings.
    """

    warnings = find_duplicate_ids(documents)

    required = tuple(required_fields)
    recommended = tuple(recommended_fields)
    for document in documents:
        for name in required:
            if _is_missing(document, name):
                warnings.append(
                    ValidationWarning(
                        file=document.file_path,
                        rule=REQUIRED_FIELDS_RULE,
                        message=f'Missing required frontmatter field: "{name}"',
                    )
                )
        for name in recommended:
            if _is_missing(document, name):
                warnings.append(
                    ValidationWarning(
                        file=document.file_path,
                        rule=OPTIONAL_FIELDS_RULE,
                        message=f'Missing recommended frontmatter field: "{name}"',
                    )
                )
    return warnings


def find_duplicate_ids(documents: Sequence[Document]) -> list[ValidationWarning]:
    files_by_id: dict[str, list[str]] = {}
    for document in documents:
        files_by_id.setdefault(document.id, []).append(document.file_path)

    warnings: list[ValidationWarning] = []
    for doc_id, files in files_by_id.items():
        if len(files) < 2:
            continue
        for file_path in files:
            others = ", ".join(other for other in files if other != file_path)
            warnings.append(
                ValidationWarning(
                    file=file_path,
                    rule=DUPLICATE_ID_RULE,
                    message=f'Duplicate document ID "{doc_id}" also found in: {others}',
                )
            )
    return warnings


def _is_missing(document: Document, name: str) -> bool:
    return name not in document.metadata


__all__ = [
    "DUPLICATE_ID_RULE",
    "OPTIONAL_FIELDS_RULE",
    "REQUIRED_FIELDS_RULE",
    "find_duplicate_ids",
    "validate_frontmatter",
]
