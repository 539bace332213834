"""
qms-audit: package root.

Purpose
- Audit a tree of markdown quality-management and medical-device records for
  metadata completeness, resolvable cross-references, traceability coverage,
  and ISO 14971 risk acceptability.

Functional requirements
- Must not have side effects at import time (no config loading, no logging init).
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
