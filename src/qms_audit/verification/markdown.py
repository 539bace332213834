"""Heading-structure checks for document bodies."""

from __future__ import annotations

import re
from collections.abc import Iterator, Sequence
from typing import Final

from qms_audit.domain.models import Document, ValidationWarning

HEADING_STRUCTURE_RULE: Final[str] = "markdown/heading-structure"

_HEADING_RE: Final[re.Pattern[str]] = re.compile(r"^(#{1,6})\s+(.+)")
_FENCE_RE: Final[re.Pattern[str]] = re.compile(r"^\s*(```|~~~)")
_TITLE_PREFIX_CHARS: Final[int] = 20


def iter_headings(body: str) -> Iterator[tuple[int, str]]:
    """Yield ``(level, text)`` for ATX headings outside fenced code blocks."""

    fence: str | None = None
    for line in body.split("\n"):
        fence_match = _FENCE_RE.match(line)
        if fence_match is not None:
            marker = fence_match.group(1)
            if fence is None:
                fence = marker
            elif fence == marker:
                fence = None
            continue
        if fence is not None:
            continue
        match = _HEADING_RE.match(line)
        if match is not None:
            yield len(match.group(1)), match.group(2).strip()


def h1_matches_title(h1_text: str, title: str) -> bool:
    heading = h1_text.lower()
    lowered_title = title.lower()
    if lowered_title[:_TITLE_PREFIX_CHARS] in heading:
        return True
    title_words = lowered_title.split()
    heading_words = set(heading.split())
    overlap = sum(1 for word in title_words if word in heading_words)
    return overlap >= min(2, len(title_words))


def validate_markdown(documents: Sequence[Document]) -> list[ValidationWarning]:
    warnings: list[ValidationWarning] = []
    for document in documents:
        warnings.extend(_check_document(document))
    return warnings


def _check_document(document: Document) -> list[ValidationWarning]:
    warnings: list[ValidationWarning] = []
    last_level = 0
    found_h1 = False

    for level, text in iter_headings(document.body):
        if level == 1:
            found_h1 = True
            if not h1_matches_title(text, document.title):
                warnings.append(
                    _warning(
                        document,
                        f'H1 "{text}" does not match frontmatter title "{document.title}"',
                    )
                )
        if last_level > 0 and level > last_level + 1:
            warnings.append(
                _warning(
                    document,
                    f"Skipped heading level: H{last_level} → H{level} "
                    f"(missing H{last_level + 1})",
                )
            )
        last_level = level

    if not found_h1 and document.body.strip():
        warnings.append(_warning(document, "Document has no H1 heading"))
    return warnings


def _warning(document: Document, message: str) -> ValidationWarning:
    return ValidationWarning(
        file=document.file_path,
        rule=HEADING_STRUCTURE_RULE,
        message=message,
    )


__all__ = [
    "HEADING_STRUCTURE_RULE",
    "h1_matches_title",
    "iter_headings",
    "validate_markdown",
]
