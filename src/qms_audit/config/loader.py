"""
qms-audit: runtime config loader.

Purpose
- Load the effective audit config from defaults, ``.qmsrc.yml``, env vars, and
  CLI overrides.

Functional requirements
- Precedence logic: CLI > env (QMS_) > file > defaults.
- YAML loading via ``yaml.safe_load``; an empty file behaves like no file.
- Deterministic environment variable mapping and coercion.

Non-functional requirements
- Keep loading deterministic and reproducible.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final, Literal

import yaml

from qms_audit.config.schema import (
    AuditConfig,
    assert_valid_config,
    default_config,
    merge_config,
    resolve_audit_config,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE: Final[str] = ".qmsrc.yml"
ENV_PREFIX: Final[str] = "QMS_"

_BOOLEAN_TRUE: Final[frozenset[str]] = frozenset({"1", "true", "t", "yes", "y", "on"})
_BOOLEAN_FALSE: Final[frozenset[str]] = frozenset({"0", "false", "f", "no", "n", "off"})


@dataclass(frozen=True, slots=True)
class _Binding:
    path: tuple[str, ...]
    value_type: Literal["str", "int", "bool"]


ENV_BINDINGS: Final[dict[str, _Binding]] = {
    f"{ENV_PREFIX}TYPE": _Binding(("type",), "str"),
    f"{ENV_PREFIX}DOCS_PATH": _Binding(("docs-path",), "str"),
    f"{ENV_PREFIX}TRACEABILITY_ENABLED": _Binding(("traceability", "enabled"), "bool"),
    f"{ENV_PREFIX}RISK_SEVERITY_LEVELS": _Binding(("risk", "severity-levels"), "int"),
    f"{ENV_PREFIX}RISK_PROBABILITY_LEVELS": _Binding(("risk", "probability-levels"), "int"),
}


class ConfigLoadError(ValueError):
    """Raised when config cannot be loaded or overrides cannot be coerced."""


def load_config(
    config_path: str | Path | None = None,
    *,
    repo_root: str | Path | None = None,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Load effective config with deterministic precedence: CLI > env > file > defaults.

    ``config_path`` is resolved against ``repo_root`` when relative. An explicit
    path that does not exist is an error; the default file is optional.
    """

    resolved_path = _resolve_config_path(config_path, repo_root)
    env_map = dict(os.environ if environ is None else environ)

    file_payload = _load_yaml_file(resolved_path, required=config_path is not None)
    merged = merge_config(default_config(), file_payload)
    merged = merge_config(merged, _collect_env_overrides(env_map))
    merged = merge_config(merged, _materialize_cli_overrides(cli_overrides or {}))

    validated = assert_valid_config(merged)
    logger.debug("loaded config from %s", resolved_path if file_payload else "defaults")
    return validated


def load_audit_config(
    config_path: str | Path | None = None,
    *,
    repo_root: str | Path | None = None,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> AuditConfig:
    return resolve_audit_config(
        load_config(
            config_path,
            repo_root=repo_root,
            cli_overrides=cli_overrides,
            environ=environ,
        )
    )


def dump_effective_config(config: AuditConfig) -> str:
    """Return deterministic JSON dump of the effective config."""

    return json.dumps(
        config.to_dict(), sort_keys=True, separators=(",", ":"), ensure_ascii=False
    )


def _resolve_config_path(config_path: str | Path | None, repo_root: str | Path | None) -> Path:
    base = Path.cwd() if repo_root is None else Path(repo_root)
    if config_path is None:
        return (base / DEFAULT_CONFIG_FILE).resolve()
    candidate = Path(config_path).expanduser()
    if not candidate.is_absolute():
        candidate = base / candidate
    return candidate.resolve()


def _load_yaml_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigLoadError(f"config file not found: {path}")
        return {}

    try:
        with path.open("r", encoding="utf-8") as handle:
            parsed = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ConfigLoadError(f"invalid YAML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc

    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ConfigLoadError(f"config root must be a mapping: {path}")
    return parsed


def _collect_env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for env_name in sorted(ENV_BINDINGS):
        raw = environ.get(env_name)
        if raw is None:
            continue
        binding = ENV_BINDINGS[env_name]
        value = _coerce_env(raw, binding.value_type, env_name, binding.path)
        _set_nested(overrides, binding.path, value)
    return overrides


def _coerce_env(
    raw: str,
    value_type: Literal["str", "int", "bool"],
    env_name: str,
    path: tuple[str, ...],
) -> object:
    value = raw.strip()
    if value_type == "str":
        return value
    if value_type == "int":
        try:
            return int(value)
        except ValueError as exc:
            raise ConfigLoadError(f"{env_name} -> {'.'.join(path)} must be an integer") from exc

    lowered = value.lower()
    if lowered in _BOOLEAN_TRUE:
        return True
    if lowered in _BOOLEAN_FALSE:
        return False
    raise ConfigLoadError(
        f"{env_name} -> {'.'.join(path)} must be a boolean (true/false/1/0/yes/no/on/off)"
    )


def _materialize_cli_overrides(cli_overrides: Mapping[str, object]) -> dict[str, Any]:
    """Dotted keys (``risk.severity-levels``) address nested fields; ``None`` is ignored."""

    payload: dict[str, Any] = {}
    for key in sorted(cli_overrides):
        value = cli_overrides[key]
        if value is None:
            continue
        path = tuple(part for part in key.split(".") if part)
        if not path:
            raise ConfigLoadError(f"invalid CLI override key {key!r}")
        _set_nested(payload, path, value)
    return payload


def _set_nested(target: dict[str, Any], path: tuple[str, ...], value: object) -> None:
    cursor = target
    for part in path[:-1]:
        next_node = cursor.get(part)
        if not isinstance(next_node, dict):
            next_node = {}
            cursor[part] = next_node
        cursor = next_node
    cursor[path[-1]] = value


__all__ = [
    "DEFAULT_CONFIG_FILE",
    "ENV_BINDINGS",
    "ENV_PREFIX",
    "ConfigLoadError",
    "dump_effective_config",
    "load_audit_config",
    "load_config",
]
