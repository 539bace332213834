"""ISO 14971 risk matrix construction."""

from qms_audit.risk.matrix import (
    ACCEPTABILITY_TABLE,
    DEFAULT_GRID_SIZE,
    PROBABILITY_LABELS,
    SEVERITY_LABELS,
    RiskValues,
    build_risk_matrix,
    classify_acceptability,
    coerce_level,
    extract_risk_values,
)

__all__ = [
    "ACCEPTABILITY_TABLE",
    "DEFAULT_GRID_SIZE",
    "PROBABILITY_LABELS",
    "SEVERITY_LABELS",
    "RiskValues",
    "build_risk_matrix",
    "classify_acceptability",
    "coerce_level",
    "extract_risk_values",
]
