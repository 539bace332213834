"""
qms-audit document type inference.

Purpose
- Classify a document structurally: nearest known directory segment first,
  then the id prefix, then ``unknown``.

Notes
- A ``type`` field declared in frontmatter is deliberately not consulted.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import PurePosixPath
from types import MappingProxyType
from typing import Final

from qms_audit.domain.models import DocType

DIRECTORY_TYPES: Final[Mapping[str, DocType]] = MappingProxyType(
    {
        "user-needs": DocType.USER_NEED,
        "product-requirements": DocType.PRODUCT_REQUIREMENT,
        "software-requirements": DocType.SOFTWARE_REQUIREMENT,
        "architecture": DocType.ARCHITECTURE,
        "design": DocType.DETAILED_DESIGN,
        "test": DocType.TEST_CASE,
        "risk": DocType.RISK,
        "sops": DocType.SOP,
        "policies": DocType.POLICY,
        "work-instructions": DocType.WORK_INSTRUCTION,
        "external-reports": DocType.EXTERNAL_REPORT,
        "harms": DocType.HARM,
        "situations": DocType.HAZARDOUS_SITUATION,
        # Risk analysis sub-areas.
        "software": DocType.RISK,
        "usability": DocType.RISK,
        "security": DocType.RISK,
    }
)

ID_PREFIX_TYPES: Final[Mapping[str, DocType]] = MappingProxyType(
    {
        "UN": DocType.USER_NEED,
        "PRS": DocType.PRODUCT_REQUIREMENT,
        "SRS": DocType.SOFTWARE_REQUIREMENT,
        "SDD": DocType.DETAILED_DESIGN,
        "HLD": DocType.ARCHITECTURE,
        "TC": DocType.TEST_CASE,
        "RISK": DocType.RISK,
        "HAZ": DocType.HAZARD,
        "HS": DocType.HAZARDOUS_SITUATION,
        "HARM": DocType.HARM,
        "SOP": DocType.SOP,
        "POL": DocType.POLICY,
        "WI": DocType.WORK_INSTRUCTION,
        "AUD": DocType.EXTERNAL_REPORT,
        "PT": DocType.EXTERNAL_REPORT,
    }
)

ID_SEPARATOR: Final[str] = "-"


def infer_type_from_path(file_path: str) -> DocType | None:
    """Return the type of the deepest containing directory found in the table."""

    directories = PurePosixPath(file_path).parts[:-1]
    for segment in reversed(directories):
        doc_type = DIRECTORY_TYPES.get(segment)
        if doc_type is not None:
            return doc_type
    return None


def infer_type_from_id(doc_id: str) -> DocType:
    prefix = doc_id.strip().split(ID_SEPARATOR, 1)[0].upper()
    return ID_PREFIX_TYPES.get(prefix, DocType.UNKNOWN)


def infer_doc_type(file_path: str, doc_id: str) -> DocType:
    from_path = infer_type_from_path(file_path)
    if from_path is not None:
        return from_path
    return infer_type_from_id(doc_id)


__all__ = [
    "DIRECTORY_TYPES",
    "ID_PREFIX_TYPES",
    "ID_SEPARATOR",
    "infer_doc_type",
    "infer_type_from_id",
    "infer_type_from_path",
]
