"""Domain records shared by the ingestion, verification, and risk planes."""

from qms_audit.domain.models import (
    Acceptability,
    CanonicalModel,
    DocType,
    Document,
    GapEntry,
    Link,
    RelationshipKind,
    RiskEntry,
    RiskMatrix,
    RiskSummary,
    TraceabilityChain,
    TraceabilityCoverage,
    ValidationWarning,
    WarningSeverity,
    canonical_json,
    format_type_name,
    to_json_value,
)

__all__ = [
    "Acceptability",
    "CanonicalModel",
    "DocType",
    "Document",
    "GapEntry",
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
