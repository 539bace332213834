"""
qms-audit document store.

Purpose
- Discover markdown files beneath a documents root, parse each into a
  ``Document``, and build the by-id, by-path, and by-type indices.

Functional requirements
- A file without a non-empty ``id`` is skipped without raising; unreadable files
  and malformed frontmatter are skipped the same way. Every skip is recorded on
  the index with a reason so callers can report how many documents were dropped.
- The by-id view overwrites on collision (last file in path order wins); the
  full parsed list stays available for duplicate detection.

Non-functional requirements
- Deterministic: files are processed in sorted relative-path order regardless of
  filesystem enumeration order or worker count.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Final

from qms_audit.domain.models import CanonicalModel, Document
from qms_audit.ingestion.doc_types import infer_doc_type
from qms_audit.ingestion.frontmatter import FrontmatterError, split_frontmatter

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIX: Final[str] = ".md"
DEFAULT_TITLE: Final[str] = "Untitled"
DEFAULT_STATUS: Final[str] = "unknown"

SKIP_MISSING_ID: Final[str] = "missing id"


class DocumentStoreError(Exception):
    """Raised when the documents root itself cannot be scanned."""


@dataclass(frozen=True, slots=True)
class SkippedDocument(CanonicalModel):
    file_path: str
    reason: str


@dataclass(frozen=True, slots=True)
class DocumentIndex:
    """Immutable snapshot of one invocation's parsed documents."""

    documents: tuple[Document, ...] = ()
    by_id: Mapping[str, Document] = field(default_factory=lambda: MappingProxyType({}))
    by_path: Mapping[str, Document] = field(default_factory=lambda: MappingProxyType({}))
    by_type: Mapping[str, tuple[Document, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    skipped: tuple[SkippedDocument, ...] = ()

    @classmethod
    def from_documents(
        cls,
        documents: Iterable[Document],
        *,
        skipped: Sequence[SkippedDocument] = (),
    ) -> DocumentIndex:
        ordered = tuple(documents)
        by_id: dict[str, Document] = {}
        by_path: dict[str, Document] = {}
        grouped: dict[str, list[Document]] = {}

        for document in ordered:
            by_id[document.id] = document
            by_path[document.file_path] = document
            grouped.setdefault(document.doc_type, []).append(document)

        return cls(
            documents=ordered,
            by_id=MappingProxyType(by_id),
            by_path=MappingProxyType(by_path),
            by_type=MappingProxyType({key: tuple(items) for key, items in grouped.items()}),
            skipped=tuple(skipped),
        )

    def get(self, doc_id: str) -> Document | None:
        return self.by_id.get(doc_id)

    def of_type(self, doc_type: str) -> tuple[Document, ...]:
        return self.by_type.get(doc_type, ())

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    def type_counts(self) -> dict[str, int]:
        return {str(key): len(self.by_type[key]) for key in sorted(self.by_type)}


def discover_markdown_files(docs_root: Path, repo_root: Path) -> list[str]:
    """Return repo-relative POSIX paths of every ``.md`` file under ``docs_root``."""

    if not docs_root.exists():
        raise DocumentStoreError(f"documents root does not exist: {docs_root}")
    if not docs_root.is_dir():
        raise DocumentStoreError(f"documents root is not a directory: {docs_root}")

    found: list[str] = []
    for directory, _subdirs, filenames in os.walk(docs_root):
        for filename in filenames:
            if not filename.endswith(MARKDOWN_SUFFIX):
                continue
            absolute = Path(directory) / filename
            found.append(_relative_posix(absolute, repo_root))
    found.sort()
    return found


def parse_document_text(file_path: str, text: str) -> Document | None:
    """Parse raw markdown into a ``Document``; ``None`` when it declares no id.

    Raises ``FrontmatterError`` when the frontmatter block is not a YAML mapping.
    """

    split = split_frontmatter(text)
    metadata = split.metadata

    doc_id = _scalar_text(metadata.get("id"))
    if not doc_id:
        return None

    return Document(
        file_path=file_path,
        id=doc_id,
        title=_scalar_text(metadata.get("title")) or DEFAULT_TITLE,
        status=_scalar_text(metadata.get("status")) or DEFAULT_STATUS,
        doc_type=infer_doc_type(file_path, doc_id),
        metadata=metadata,
        body=split.body,
    )


def parse_document(file_path: str, repo_root: Path) -> Document | None:
    """Read and parse one repo-relative markdown file."""

    text = (repo_root / file_path).read_text(encoding="utf-8")
    return parse_document_text(file_path, text)


def build_document_index(
    docs_path: str | Path,
    repo_root: Path,
    *,
    max_workers: int | None = None,
) -> DocumentIndex:
    """Discover, parse, and index every markdown file under ``repo_root / docs_path``.

    With ``max_workers > 1`` file parsing fans out across a thread pool; index
    construction always happens afterwards in a single pass over sorted paths.
    """

    repo_root = repo_root.resolve()
    docs_root = (repo_root / docs_path).resolve()
    files = discover_markdown_files(docs_root, repo_root)
    logger.debug("discovered %d markdown files under %s", len(files), docs_root)

    if max_workers is not None and max_workers > 1 and len(files) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            outcomes = list(pool.map(lambda path: _parse_outcome(path, repo_root), files))
    else:
        outcomes = [_parse_outcome(path, repo_root) for path in files]

    documents: list[Document] = []
    skipped: list[SkippedDocument] = []
    for outcome in outcomes:
        if isinstance(outcome, SkippedDocument):
            skipped.append(outcome)
        else:
            documents.append(outcome)

    index = DocumentIndex.from_documents(documents, skipped=skipped)
    logger.info(
        "indexed %d documents (%d skipped)",
        len(index.documents),
        index.skipped_count,
        extra={"types": index.type_counts()},
    )
    return index


def _parse_outcome(file_path: str, repo_root: Path) -> Document | SkippedDocument:
    try:
        document = parse_document(file_path, repo_root)
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("skipping unreadable document %s: %s", file_path, exc)
        return SkippedDocument(file_path=file_path, reason=f"unreadable: {exc}")
    except FrontmatterError as exc:
        logger.warning("skipping document with malformed frontmatter %s: %s", file_path, exc)
        return SkippedDocument(file_path=file_path, reason=str(exc))

    if document is None:
        logger.debug("skipping document without id: %s", file_path)
        return SkippedDocument(file_path=file_path, reason=SKIP_MISSING_ID)
    return document


def _scalar_text(value: object) -> str:
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, (str, int, float)):
        return str(value).strip()
    return ""


def _relative_posix(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return Path(os.path.relpath(path, root)).as_posix()


__all__ = [
    "DEFAULT_STATUS",
    "DEFAULT_TITLE",
    "MARKDOWN_SUFFIX",
    "SKIP_MISSING_ID",
    "DocumentIndex",
    "DocumentStoreError",
    "SkippedDocument",
    "build_document_index",
    "discover_markdown_files",
    "parse_document",
    "parse_document_text",
]
