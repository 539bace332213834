"""
qms-audit: configuration schema and validation.

Purpose
- Define built-in defaults for ``.qmsrc.yml`` and strict validation rules.

Functional requirements
- Validate config payloads and return structured errors (field path + message).
- Resolve the validated payload into a frozen ``AuditConfig`` with per-type
  defaults (device repositories get the standard traceability chains).

Non-functional requirements
- Keep rules deterministic and easy to audit.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final

from qms_audit.domain.models import CanonicalModel, RelationshipKind, TraceabilityChain

REPO_TYPE_QMS: Final[str] = "qms"
REPO_TYPE_DEVICE: Final[str] = "device"
REPO_TYPES: Final[tuple[str, ...]] = (REPO_TYPE_QMS, REPO_TYPE_DEVICE)

DEFAULT_DOCS_PATH: Final[str] = "docs/"
DEFAULT_REQUIRED_FIELDS: Final[tuple[str, ...]] = ("id", "title", "status")
DEFAULT_RECOMMENDED_FIELDS: Final[tuple[str, ...]] = ("author", "reviewers", "approvers")
DEFAULT_RISK_LEVELS: Final[int] = 5
MAX_RISK_LEVELS: Final[int] = 10

DEFAULT_DEVICE_CHAINS: Final[tuple[dict[str, str], ...]] = (
    {"source": "product_requirement", "target": "user_need", "link": "derives_from"},
    {"source": "software_requirement", "target": "product_requirement", "link": "derives_from"},
    {"source": "test_case", "target": "software_requirement", "link": "verified_by"},
    {"source": "detailed_design", "target": "software_requirement", "link": "implements"},
    {"source": "risk", "target": "software_requirement", "link": "mitigates"},
)

# Relationship kinds whose chains also accept a link declared by the target.
REVERSIBLE_BY_DEFAULT: Final[frozenset[str]] = frozenset({RelationshipKind.VERIFIED_BY})

DEFAULT_CONFIG: Final[dict[str, Any]] = {
    "docs-path": DEFAULT_DOCS_PATH,
    "frontmatter": {
        "required": list(DEFAULT_REQUIRED_FIELDS),
        "recommended": list(DEFAULT_RECOMMENDED_FIELDS),
    },
    "traceability": {},
    "risk": {
        "severity-levels": DEFAULT_RISK_LEVELS,
        "probability-levels": DEFAULT_RISK_LEVELS,
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ConfigValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ConfigValidationIssue(path=path, message=message))

    def items(self) -> tuple[ConfigValidationIssue, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


@dataclass(frozen=True, slots=True)
class AuditConfig(CanonicalModel):
    """Effective, validated settings for one audit run."""

    repo_type: str
    docs_path: str = DEFAULT_DOCS_PATH
    required_fields: tuple[str, ...] = DEFAULT_REQUIRED_FIELDS
    recommended_fields: tuple[str, ...] = DEFAULT_RECOMMENDED_FIELDS
    chains: tuple[TraceabilityChain, ...] = ()
    traceability_enabled: bool = False
    grid_size: int = DEFAULT_RISK_LEVELS

    @property
    def is_device(self) -> bool:
        return self.repo_type == REPO_TYPE_DEVICE


def default_config() -> dict[str, Any]:
    """Return a deep copy of deterministic built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deep-merge ``overlay`` onto ``base``; lists are replaced, not concatenated."""

    merged = _deep_copy_mapping(base)
    _merge_into(merged, overlay)
    return merged


def validate_config(config: Mapping[str, object] | object) -> ConfigValidationResult:
    issues = _IssueCollector()
    root = _as_object(config, "<root>", issues)
    if root is None:
        return ConfigValidationResult(config=None, issues=issues.items())

    normalized = _validate_root(root, issues)
    if issues.has_issues:
        return ConfigValidationResult(config=None, issues=issues.items())
    return ConfigValidationResult(config=normalized, issues=())


def assert_valid_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Validate config and raise ``ConfigValidationError`` on failure."""

    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def resolve_audit_config(config: Mapping[str, object]) -> AuditConfig:
    """Turn a validated payload into an ``AuditConfig`` with per-type defaults."""

    validated = assert_valid_config(config)
    repo_type = validated["type"]
    is_device = repo_type == REPO_TYPE_DEVICE

    traceability = validated.get("traceability", {})
    raw_chains = traceability.get("chains")
    if raw_chains is None:
        raw_chains = list(DEFAULT_DEVICE_CHAINS) if is_device else []
    enabled = traceability.get("enabled", is_device)

    frontmatter = validated.get("frontmatter", {})
    risk = validated.get("risk", {})
    return AuditConfig(
        repo_type=repo_type,
        docs_path=validated.get("docs-path", DEFAULT_DOCS_PATH),
        required_fields=tuple(frontmatter.get("required", DEFAULT_REQUIRED_FIELDS)),
        recommended_fields=tuple(frontmatter.get("recommended", DEFAULT_RECOMMENDED_FIELDS)),
        chains=tuple(_chain_from_mapping(item) for item in raw_chains),
        traceability_enabled=bool(enabled),
        grid_size=risk.get("severity-levels", DEFAULT_RISK_LEVELS),
    )


def _chain_from_mapping(item: Mapping[str, Any]) -> TraceabilityChain:
    link = item["link"]
    return TraceabilityChain(
        source_type=item["source"],
        target_type=item["target"],
        link=link,
        reversible=item.get("reversible", link in REVERSIBLE_BY_DEFAULT),
    )


def _validate_root(payload: Mapping[str, object], issues: _IssueCollector) -> dict[str, Any]:
    allowed = {"type", "docs-path", "frontmatter", "traceability", "risk"}
    _reject_unknown_keys(payload, allowed, "", issues)
    _require_keys(payload, {"type"}, "", issues)

    out: dict[str, Any] = {}
    if "type" in payload:
        parsed = _as_enum(payload["type"], "type", issues, allowed_values=REPO_TYPES)
        if parsed is not None:
            out["type"] = parsed
    if "docs-path" in payload:
        parsed_path = _as_path_text(payload["docs-path"], "docs-path", issues)
        if parsed_path is not None:
            out["docs-path"] = parsed_path

    section = _section_object(payload, "frontmatter", issues)
    if section is not None:
        out["frontmatter"] = _validate_frontmatter(section, "frontmatter", issues)
    section = _section_object(payload, "traceability", issues)
    if section is not None:
        out["traceability"] = _validate_traceability(section, "traceability", issues)
    section = _section_object(payload, "risk", issues)
    if section is not None:
        out["risk"] = _validate_risk(section, "risk", issues)
    return out


def _section_object(
    payload: Mapping[str, object], key: str, issues: _IssueCollector
) -> dict[str, object] | None:
    raw = payload.get(key)
    if raw is None:
        return None
    return _as_object(raw, key, issues)


def _validate_frontmatter(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    _reject_unknown_keys(payload, {"required", "recommended"}, path, issues)
    out: dict[str, Any] = {}
    for key in ("required", "recommended"):
        if key in payload:
            parsed = _as_str_list(payload[key], _join(path, key), issues)
            if parsed is not None:
                out[key] = parsed
    return out


def _validate_traceability(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    _reject_unknown_keys(payload, {"enabled", "chains"}, path, issues)
    out: dict[str, Any] = {}
    if "enabled" in payload:
        enabled = _as_bool(payload["enabled"], _join(path, "enabled"), issues)
        if enabled is not None:
            out["enabled"] = enabled
    if "chains" in payload:
        chains_path = _join(path, "chains")
        raw = payload["chains"]
        if not isinstance(raw, list):
            issues.add(chains_path, f"expected list, got {type(raw).__name__}")
        else:
            chains: list[dict[str, Any]] = []
            for position, item in enumerate(raw):
                chain = _validate_chain(item, f"{chains_path}[{position}]", issues)
                if chain is not None:
                    chains.append(chain)
            out["chains"] = chains
    return out


def _validate_chain(
    value: object, path: str, issues: _IssueCollector
) -> dict[str, Any] | None:
    payload = _as_object(value, path, issues)
    if payload is None:
        return None
    _reject_unknown_keys(payload, {"source", "target", "link", "reversible"}, path, issues)
    _require_keys(payload, {"source", "target", "link"}, path, issues)

    out: dict[str, Any] = {}
    for key in ("source", "target", "link"):
        if key in payload:
            parsed = _as_str(payload[key], _join(path, key), issues)
            if parsed is not None:
                out[key] = parsed
    if "reversible" in payload:
        reversible = _as_bool(payload["reversible"], _join(path, "reversible"), issues)
        if reversible is not None:
            out["reversible"] = reversible
    if not {"source", "target", "link"} <= out.keys():
        return None
    return out


def _validate_risk(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    _reject_unknown_keys(payload, {"severity-levels", "probability-levels"}, path, issues)
    out: dict[str, Any] = {}
    for key in ("severity-levels", "probability-levels"):
        if key in payload:
            parsed = _as_int(
                payload[key], _join(path, key), issues, minimum=1, maximum=MAX_RISK_LEVELS
            )
            if parsed is not None:
                out[key] = parsed

    severity = out.get("severity-levels", DEFAULT_RISK_LEVELS)
    probability = out.get("probability-levels", DEFAULT_RISK_LEVELS)
    if severity != probability:
        issues.add(
            path,
            f"severity-levels ({severity}) must equal probability-levels ({probability})",
        )
    return out


def _as_object(value: object, path: str, issues: _IssueCollector) -> dict[str, object] | None:
    if not isinstance(value, Mapping):
        issues.add(path, f"expected object, got {type(value).__name__}")
        return None
    out: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            issues.add(path, f"object key must be string, got {type(key).__name__}")
            continue
        out[key] = item
    return out


def _as_str(value: object, path: str, issues: _IssueCollector) -> str | None:
    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    parsed = value.strip()
    if not parsed:
        issues.add(path, "must not be empty")
        return None
    return parsed


def _as_path_text(value: object, path: str, issues: _IssueCollector) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if "\x00" in parsed:
        issues.add(path, "must not contain NUL bytes")
        return None
    return parsed


def _as_str_list(value: object, path: str, issues: _IssueCollector) -> list[str] | None:
    if not isinstance(value, list):
        issues.add(path, f"expected list, got {type(value).__name__}")
        return None
    out: list[str] = []
    for position, item in enumerate(value):
        parsed = _as_str(item, f"{path}[{position}]", issues)
        if parsed is not None:
            out.append(parsed)
    return out


def _as_bool(value: object, path: str, issues: _IssueCollector) -> bool | None:
    if isinstance(value, bool):
        return value
    issues.add(path, f"expected boolean, got {type(value).__name__}")
    return None


def _as_int(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        issues.add(path, f"expected integer, got {type(value).__name__}")
        return None
    if minimum is not None and value < minimum:
        issues.add(path, f"must be >= {minimum}")
        return None
    if maximum is not None and value > maximum:
        issues.add(path, f"must be <= {maximum}")
        return None
    return value


def _as_enum(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    allowed_values: tuple[str, ...],
) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if parsed not in allowed_values:
        expected = ", ".join(sorted(allowed_values))
        issues.add(path, f"invalid value {parsed!r}; expected one of: {expected}")
        return None
    return parsed


def _reject_unknown_keys(
    payload: Mapping[str, object],
    allowed: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(payload):
        if key not in allowed:
            issues.add(_join(path, key), "unknown field")


def _require_keys(
    payload: Mapping[str, object],
    required: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(required):
        if key not in payload:
            issues.add(_join(path, key), "missing required field")


def _join(path: str, key: str) -> str:
    if not path:
        return key
    return f"{path}.{key}"


def _merge_into(target: dict[str, Any], overlay: Mapping[str, object]) -> None:
    for key in sorted(overlay, key=str):
        value = overlay[key]
        if isinstance(value, Mapping):
            existing = target.get(key)
            if isinstance(existing, dict):
                _merge_into(existing, value)
            else:
                nested: dict[str, Any] = {}
                _merge_into(nested, value)
                target[key] = nested
        else:
            target[key] = copy.deepcopy(value)


def _deep_copy_mapping(value: Mapping[str, object]) -> dict[str, Any]:
    return {key: copy.deepcopy(value[key]) for key in sorted(value, key=str)}


__all__ = [
    "DEFAULT_CONFIG",
    "DEFAULT_DEVICE_CHAINS",
    "DEFAULT_DOCS_PATH",
    "DEFAULT_RECOMMENDED_FIELDS",
    "DEFAULT_REQUIRED_FIELDS",
    "DEFAULT_RISK_LEVELS",
    "MAX_RISK_LEVELS",
    "REPO_TYPES",
    "REPO_TYPE_DEVICE",
    "REPO_TYPE_QMS",
    "REVERSIBLE_BY_DEFAULT",
    "AuditConfig",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "resolve_audit_config",
    "validate_config",
]
