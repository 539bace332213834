"""
qms-audit verification plane.

Purpose
- Produce advisory ``ValidationWarning``/``GapEntry`` data for one document
  snapshot: traceability coverage, hazard chains, frontmatter, links, headings.

Non-functional requirements
- Fail open: no check raises for a document-level problem.
"""

from qms_audit.verification.frontmatter import (
    DUPLICATE_ID_RULE,
    OPTIONAL_FIELDS_RULE,
    REQUIRED_FIELDS_RULE,
    find_duplicate_ids,
    validate_frontmatter,
)
from qms_audit.verification.links import BROKEN_REFERENCE_RULE, validate_links
from qms_audit.verification.markdown import (
    HEADING_STRUCTURE_RULE,
    h1_matches_title,
    iter_headings,
    validate_markdown,
)
from qms_audit.verification.traceability import (
    DEFAULT_RULE,
    GAP_HAZARD_NO_SITUATION,
    GAP_SITUATION_NO_HARM,
    HAZARD_CHAIN_RULE,
    RULE_BY_KIND,
    VERIFICATION_KINDS,
    ChainEvaluation,
    TraceabilityResult,
    accepted_link_kinds,
    coverage_percent,
    evaluate_chain,
    validate_hazard_chains,
    validate_traceability,
)

__all__ = [
    "BROKEN_REFERENCE_RULE",
    "DEFAULT_RULE",
    "DUPLICATE_ID_RULE",
    "GAP_HAZARD_NO_SITUATION",
    "GAP_SITUATION_NO_HARM",
    "HAZARD_CHAIN_RULE",
    "HEADING_STRUCTURE_RULE",
    "OPTIONAL_FIELDS_RULE",
    "REQUIRED_FIELDS_RULE",
    "RULE_BY_KIND",
    "VERIFICATION_KINDS",
    "ChainEvaluation",
    "TraceabilityResult",
    "accepted_link_kinds",
    "coverage_percent",
    "evaluate_chain",
    "find_duplicate_ids",
    "h1_matches_title",
    "iter_headings",
    "validate_frontmatter",
    "validate_hazard_chains",
    "validate_links",
    "validate_markdown",
    "validate_traceability",
]
