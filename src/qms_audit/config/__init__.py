"""Configuration schema, defaults, and loader for ``.qmsrc.yml``."""

from qms_audit.config.loader import (
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    ConfigLoadError,
    dump_effective_config,
    load_audit_config,
    load_config,
)
from qms_audit.config.schema import (
    DEFAULT_DEVICE_CHAINS,
    REPO_TYPE_DEVICE,
    REPO_TYPE_QMS,
    REPO_TYPES,
    AuditConfig,
    ConfigValidationError,
    ConfigValidationIssue,
    ConfigValidationResult,
    assert_valid_config,
    default_config,
    merge_config,
    resolve_audit_config,
    validate_config,
)

__all__ = [
    "DEFAULT_CONFIG_FILE",
    "DEFAULT_DEVICE_CHAINS",
    "ENV_PREFIX",
    "REPO_TYPES",
    "REPO_TYPE_DEVICE",
    "REPO_TYPE_QMS",
    "AuditConfig",
    "ConfigLoadError",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "assert_valid_config",
    "default_config",
    "dump_effective_config",
    "load_audit_config",
    "load_config",
    "merge_config",
    "resolve_audit_config",
    "validate_config",
]
