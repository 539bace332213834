"""Relationship link extraction from declared bold-label lines.

Only lines carrying one of the ``RELATIONSHIP_MARKERS`` labels produce links;
ordinary inline markdown links elsewhere in the body are ignored. Each bracketed
identifier on a marker line yields one link. A marker line without brackets
yields its trimmed remainder as a single target id.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Final

from qms_audit.domain.models import Document, Link, RelationshipKind

_BRACKETED_ID_RE: Final[re.Pattern[str]] = re.compile(r"\[([^\]]+)\]")


@dataclass(frozen=True, slots=True)
class RelationshipMarker:
    label: str
    kind: RelationshipKind
    pattern: re.Pattern[str]


def _marker(label: str, kind: RelationshipKind) -> RelationshipMarker:
    pattern = re.compile(
        rf"\*\*{re.escape(label)}:\*\*[ \t]*(?P<rest>[^\n]*)",
        flags=re.IGNORECASE,
    )
    return RelationshipMarker(label=label, kind=kind, pattern=pattern)


# Table order is the output order: all links of one kind precede the next kind.
RELATIONSHIP_MARKERS: Final[tuple[RelationshipMarker, ...]] = (
    _marker("Derives from", RelationshipKind.DERIVES_FROM),
    _marker("Verifies", RelationshipKind.VERIFIED_BY),
    _marker("Validates", RelationshipKind.VALIDATED_BY),
    _marker("Implements", RelationshipKind.IMPLEMENTS),
    _marker("Mitigates", RelationshipKind.MITIGATES),
    _marker("Analyzes", RelationshipKind.ANALYZES),
    _marker("Leads to", RelationshipKind.LEADS_TO),
    _marker("Results in", RelationshipKind.RESULTS_IN),
)


def extract_links_from_text(body: str) -> tuple[Link, ...]:
    links: list[Link] = []
    for marker in RELATIONSHIP_MARKERS:
        for match in marker.pattern.finditer(body):
            for target_id in _target_ids(match.group("rest")):
                links.append(Link(kind=marker.kind, target_id=target_id))
    return tuple(links)


def extract_links(document: Document) -> tuple[Link, ...]:
    """Return the ordered outbound links declared in ``document``'s body."""

    return extract_links_from_text(document.body)


def links_of_kind(links: Iterable[Link], *kinds: str) -> tuple[Link, ...]:
    wanted = frozenset(kinds)
    return tuple(link for link in links if link.kind in wanted)


def build_link_table(documents: Iterable[Document]) -> Mapping[str, tuple[Link, ...]]:
    """Map each document's ``file_path`` to its extracted links."""

    return MappingProxyType(
        {document.file_path: extract_links(document) for document in documents}
    )


def _target_ids(rest: str) -> list[str]:
    bracketed = _BRACKETED_ID_RE.findall(rest)
    if bracketed:
        return [item.strip() for item in bracketed if item.strip()]
    single = rest.strip()
    return [single] if single else []


__all__ = [
    "RELATIONSHIP_MARKERS",
    "RelationshipMarker",
    "build_link_table",
    "extract_links",
    "extract_links_from_text",
    "links_of_kind",
]
