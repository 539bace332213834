"""
qms-audit ingestion plane.

Purpose
- Turn a documents directory into an immutable ``DocumentIndex`` snapshot and
  extract relationship links from individual documents.

Non-functional requirements
- Deterministic: same tree yields the same index and link order.
"""

from qms_audit.ingestion.doc_types import (
    DIRECTORY_TYPES,
    ID_PREFIX_TYPES,
    infer_doc_type,
    infer_type_from_id,
    infer_type_from_path,
)
from qms_audit.ingestion.document_store import (
    DocumentIndex,
    DocumentStoreError,
    SkippedDocument,
    build_document_index,
    discover_markdown_files,
    parse_document,
    parse_document_text,
)
from qms_audit.ingestion.frontmatter import FrontmatterError, split_frontmatter
from qms_audit.ingestion.links import (
    RELATIONSHIP_MARKERS,
    build_link_table,
    extract_links,
    extract_links_from_text,
    links_of_kind,
)

__all__ = [
    "DIRECTORY_TYPES",
    "ID_PREFIX_TYPES",
    "RELATIONSHIP_MARKERS",
    "DocumentIndex",
    "DocumentStoreError",
    "FrontmatterError",
    "SkippedDocument",
    "build_document_index",
    "build_link_table",
    "discover_markdown_files",
    "extract_links",
    "extract_links_from_text",
    "infer_doc_type",
    "infer_type_from_id",
    "infer_type_from_path",
    "links_of_kind",
    "parse_document",
    "parse_document_text",
    "split_frontmatter",
]
