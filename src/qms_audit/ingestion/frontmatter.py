"""YAML frontmatter splitting for markdown documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

import yaml

_DELIMITER: Final[str] = "---"
_BOM: Final[str] = "\ufeff"


class FrontmatterError(ValueError):
    """Raised when a frontmatter block exists but is not a YAML mapping."""


@dataclass(frozen=True, slots=True)
class FrontmatterSplit:
    metadata: dict[str, object] = field(default_factory=dict)
    body: str = ""
    has_frontmatter: bool = False


def split_frontmatter(text: str) -> FrontmatterSplit:
    """Split ``text`` into its leading ``---`` delimited YAML block and the body.

    Text without an opening delimiter on the first line, or without a closing
    delimiter, has no frontmatter and is returned whole as the body.
    """

    normalized = text.removeprefix(_BOM).replace("\r\n", "\n")
    lines = normalized.split("\n")
    if not lines or lines[0].strip() != _DELIMITER:
        return FrontmatterSplit(body=normalized)

    end: int | None = None
    for index in range(1, len(lines)):
        if lines[index].strip() == _DELIMITER:
            end = index
            break
    if end is None:
        return FrontmatterSplit(body=normalized)

    raw = "\n".join(lines[1:end])
    try:
        loaded = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise FrontmatterError(f"invalid YAML frontmatter: {exc}") from exc

    if loaded is None:
        loaded = {}
    if not isinstance(loaded, dict):
        raise FrontmatterError(
            f"frontmatter must be a mapping, got {type(loaded).__name__}"
        )

    metadata = {str(key): value for key, value in loaded.items()}
    return FrontmatterSplit(
        metadata=metadata,
        body="\n".join(lines[end + 1 :]),
        has_frontmatter=True,
    )


__all__ = ["FrontmatterError", "FrontmatterSplit", "split_frontmatter"]
