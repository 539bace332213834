"""
qms-audit: unit tests for the config loader.

What this test file should cover
- Precedence: CLI > env > file > defaults.
- Deterministic env var coercion and its failure modes.
- Optional default file versus a required explicit path.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from qms_audit.config.loader import (
    DEFAULT_CONFIG_FILE,
    ConfigLoadError,
    dump_effective_config,
    load_audit_config,
    load_config,
)
from qms_audit.config.schema import ConfigValidationError


def _write_config(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


@pytest.mark.unit
def test_loader_precedence_default_file_env_cli(tmp_path: Path) -> None:
    _write_config(tmp_path / DEFAULT_CONFIG_FILE, "type: device\ndocs-path: records/\n")

    file_loaded = load_config(repo_root=tmp_path, environ={})
    env_loaded = load_config(repo_root=tmp_path, environ={"QMS_DOCS_PATH": "env-docs/"})
    cli_loaded = load_config(
        repo_root=tmp_path,
        environ={"QMS_DOCS_PATH": "env-docs/"},
        cli_overrides={"docs-path": "cli-docs/"},
    )

    assert file_loaded["docs-path"] == "records/"
    assert file_loaded["frontmatter"]["required"] == ["id", "title", "status"]
    assert env_loaded["docs-path"] == "env-docs/"
    assert cli_loaded["docs-path"] == "cli-docs/"


@pytest.mark.unit
def test_env_values_are_coerced_by_binding_type(tmp_path: Path) -> None:
    loaded = load_config(
        repo_root=tmp_path,
        environ={
            "QMS_TYPE": " qms ",
            "QMS_TRACEABILITY_ENABLED": "Yes",
            "QMS_RISK_SEVERITY_LEVELS": "4",
            "QMS_RISK_PROBABILITY_LEVELS": "4",
            "UNRELATED": "ignored",
        },
    )

    assert loaded["type"] == "qms"
    assert loaded["traceability"] == {"enabled": True}
    assert loaded["risk"] == {"severity-levels": 4, "probability-levels": 4}


@pytest.mark.unit
@pytest.mark.parametrize(
    ("name", "value", "fragment"),
    [
        ("QMS_RISK_SEVERITY_LEVELS", "five", "must be an integer"),
        ("QMS_TRACEABILITY_ENABLED", "maybe", "must be a boolean"),
    ],
)
def test_env_coercion_errors(tmp_path: Path, name: str, value: str, fragment: str) -> None:
    with pytest.raises(ConfigLoadError, match=fragment):
        load_config(repo_root=tmp_path, environ={"QMS_TYPE": "qms", name: value})


@pytest.mark.unit
def test_missing_default_file_uses_defaults_but_explicit_path_must_exist(tmp_path: Path) -> None:
    loaded = load_config(repo_root=tmp_path, environ={}, cli_overrides={"type": "qms"})

    assert loaded["docs-path"] == "docs/"
    with pytest.raises(ConfigLoadError, match="config file not found"):
        load_config("custom.yml", repo_root=tmp_path, environ={"QMS_TYPE": "qms"})


@pytest.mark.unit
def test_empty_file_behaves_like_no_file(tmp_path: Path) -> None:
    _write_config(tmp_path / "audit.yml", "")

    loaded = load_config("audit.yml", repo_root=tmp_path, environ={"QMS_TYPE": "device"})

    assert loaded["type"] == "device"


@pytest.mark.unit
@pytest.mark.parametrize("text", ["- type\n- qms\n", "type: [unclosed\n"])
def test_malformed_file_raises_load_error(tmp_path: Path, text: str) -> None:
    _write_config(tmp_path / DEFAULT_CONFIG_FILE, text)

    with pytest.raises(ConfigLoadError):
        load_config(repo_root=tmp_path, environ={})


@pytest.mark.unit
def test_missing_type_fails_validation(tmp_path: Path) -> None:
    with pytest.raises(ConfigValidationError) as excinfo:
        load_config(repo_root=tmp_path, environ={})

    assert [issue.path for issue in excinfo.value.issues] == ["type"]


@pytest.mark.unit
def test_cli_overrides_ignore_none_and_address_nested_keys(tmp_path: Path) -> None:
    _write_config(tmp_path / DEFAULT_CONFIG_FILE, "type: device\ntraceability:\n  enabled: true\n")

    loaded = load_config(
        repo_root=tmp_path,
        environ={},
        cli_overrides={"type": None, "traceability.enabled": False},
    )

    assert loaded["type"] == "device"
    assert loaded["traceability"]["enabled"] is False


@pytest.mark.unit
def test_audit_config_dump_is_deterministic(tmp_path: Path) -> None:
    _write_config(tmp_path / DEFAULT_CONFIG_FILE, "type: device\n")

    first = dump_effective_config(load_audit_config(repo_root=tmp_path, environ={}))
    second = dump_effective_config(load_audit_config(repo_root=tmp_path, environ={}))

    assert first == second
    payload = json.loads(first)
    assert payload["repo_type"] == "device"
    assert payload["traceability_enabled"] is True
    assert len(payload["chains"]) == 5
