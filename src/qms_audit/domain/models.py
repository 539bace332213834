"""Frozen dataclass records for documents, links, audit findings, and risk data."""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from datetime import date, datetime
from enum import Enum, StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]


class DocType(StrEnum):
    """Structural document classification inferred from directory or id prefix."""

    USER_NEED = "user_need"
    PRODUCT_REQUIREMENT = "product_requirement"
    SOFTWARE_REQUIREMENT = "software_requirement"
    ARCHITECTURE = "architecture"
    DETAILED_DESIGN = "detailed_design"
    TEST_CASE = "test_case"
    RISK = "risk"
    HAZARD = "hazard"
    HAZARDOUS_SITUATION = "hazardous_situation"
    HARM = "harm"
    SOP = "sop"
    POLICY = "policy"
    WORK_INSTRUCTION = "work_instruction"
    EXTERNAL_REPORT = "external_report"
    UNKNOWN = "unknown"


class RelationshipKind(StrEnum):
    DERIVES_FROM = "derives_from"
    VERIFIED_BY = "verified_by"
    VALIDATED_BY = "validated_by"
    IMPLEMENTS = "implements"
    MITIGATES = "mitigates"
    ANALYZES = "analyzes"
    LEADS_TO = "leads_to"
    RESULTS_IN = "results_in"


class WarningSeverity(StrEnum):
    WARNING = "warning"
    ERROR = "error"


class Acceptability(StrEnum):
    """Residual-risk tier from the ISO 14971 acceptability grid."""

    ACCEPTABLE = "acceptable"
    REVIEW_REQUIRED = "review_required"
    UNACCEPTABLE = "unacceptable"


class CanonicalModel:
    """Mixin for canonical dict/json serialization of dataclass records."""

    def to_dict(self) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue] = {}
        for item in fields(self):  # type: ignore[arg-type]
            payload[item.name] = to_json_value(getattr(self, item.name))
        return payload

    def to_json(self) -> str:
        return canonical_json(self.to_dict())


def canonical_json(value: JSONValue) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def to_json_value(value: object) -> JSONValue:
    """Normalize nested records, enums, and YAML scalars into JSON-compatible values."""

    if isinstance(value, CanonicalModel):
        return value.to_dict()
    if isinstance(value, Enum):
        return str(value.value)
    if value is None or isinstance(value, (str, bool, int)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(key): to_json_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_value(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted((to_json_value(item) for item in value), key=canonical_json)
    return repr(value)


@dataclass(frozen=True, slots=True)
class Document(CanonicalModel):
    """One parsed markdown file.

    ``file_path`` is relative to the repository root and uses POSIX separators.
    ``metadata`` holds the raw frontmatter mapping with values as declared.
    """

    file_path: str
    id: str
    title: str
    status: str
    doc_type: DocType
    metadata: Mapping[str, object] = field(default_factory=dict)
    body: str = ""

    def __post_init__(self) -> None:
        if not self.id.strip():
            raise ValueError("Document.id must not be empty")
        if not isinstance(self.metadata, MappingProxyType):
            object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))


@dataclass(frozen=True, slots=True)
class Link(CanonicalModel):
    """Directed, typed reference extracted from a document body."""

    kind: RelationshipKind
    target_id: str


@dataclass(frozen=True, slots=True)
class TraceabilityChain(CanonicalModel):
    """Expected edge class: every ``source_type`` document links out via ``link``.

    ``reversible`` chains are also satisfied when a ``target_type`` document
    declares the same relationship pointing back at the source.
    """

    source_type: str
    target_type: str
    link: str
    reversible: bool = False

    @property
    def name(self) -> str:
        return f"{format_type_name(self.source_type)} → {format_type_name(self.target_type)}"


@dataclass(frozen=True, slots=True)
class ValidationWarning(CanonicalModel):
    file: str
    rule: str
    message: str
    severity: WarningSeverity = WarningSeverity.WARNING


@dataclass(frozen=True, slots=True)
class TraceabilityCoverage(CanonicalModel):
    chain_name: str
    source_type: str
    target_type: str
    total_sources: int
    covered_sources: int
    coverage_percent: int


@dataclass(frozen=True, slots=True)
class GapEntry(CanonicalModel):
    """One missing expected link, independent of the warning text."""

    document_id: str
    gap_type: str
    message: str
    severity: WarningSeverity = WarningSeverity.WARNING


@dataclass(frozen=True, slots=True)
class RiskEntry(CanonicalModel):
    id: str
    title: str
    severity: int
    probability: int
    residual_severity: int | None = None
    residual_probability: int | None = None
    mitigates: tuple[str, ...] = ()
    acceptability: Acceptability = Acceptability.REVIEW_REQUIRED

    @property
    def effective_residual_severity(self) -> int:
        return self.severity if self.residual_severity is None else self.residual_severity

    @property
    def effective_residual_probability(self) -> int:
        if self.residual_probability is None:
            return self.probability
        return self.residual_probability


@dataclass(frozen=True, slots=True)
class RiskSummary(CanonicalModel):
    total: int = 0
    acceptable: int = 0
    review_required: int = 0
    unacceptable: int = 0


@dataclass(frozen=True, slots=True)
class RiskMatrix(CanonicalModel):
    """Inherent/residual count grids indexed ``[probability - 1][severity - 1]``.

    ``skipped`` lists risk documents that carried no usable severity/probability.
    """

    inherent: tuple[tuple[int, ...], ...]
    residual: tuple[tuple[int, ...], ...]
    acceptability: tuple[tuple[Acceptability, ...], ...]
    risks: tuple[RiskEntry, ...]
    summary: RiskSummary
    skipped: tuple[str, ...] = ()

    def iter_risks(self, tier: Acceptability) -> Iterator[RiskEntry]:
        return (risk for risk in self.risks if risk.acceptability is tier)


def format_type_name(doc_type: str) -> str:
    """``software_requirement`` -> ``Software Requirement``."""

    return " ".join(word[:1].upper() + word[1:] for word in str(doc_type).split("_"))


__all__ = [
    "Acceptability",
    "CanonicalModel",
    "DocType",
    "Document",
    "GapEntry",
    "JSONScalar",
    "JSONValue",
    "Link",
    "RelationshipKind",
    "RiskEntry",
    "RiskMatrix",
    "RiskSummary",
    "TraceabilityChain",
    "TraceabilityCoverage",
    "ValidationWarning",
    "WarningSeverity",
    "canonical_json",
    "format_type_name",
    "to_json_value",
]
