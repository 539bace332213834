"""
qms-audit: process entrypoint

Purpose
- Run one CLI invocation and reduce every outcome to an ``ExitCode`` so CI jobs
  can gate on audit findings without parsing output.

Functional requirements
- Audit findings never raise; they surface as ``AUDIT_FAILED`` only when the
  ``--fail-on`` threshold trips.
- A bad ``.qmsrc.yml``, a ``QMS_`` override that does not coerce, or a missing
  documents root is the caller's problem: one line on stderr, ``CONFIG_ERROR``.
- Anything else is a defect in the auditor: full traceback, ``INTERNAL_ERROR``.
"""

from __future__ import annotations

import sys
import traceback
from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


class ExitCode(IntEnum):
    """Process exit codes; any other value is normalized to ``INTERNAL_ERROR``."""

    SUCCESS = 0
    AUDIT_FAILED = 1
    CONFIG_ERROR = 2
    INTERNAL_ERROR = 4


def cli_entrypoint(argv: Sequence[str] | None = None) -> int:
    """Entrypoint used by ``python -m qms_audit`` and the ``qms-audit`` script."""

    try:
        from qms_audit.ui.cli import run_cli

        return _normalize_exit_code(run_cli(argv))
    except SystemExit as exc:
        # argparse usage errors exit with 2, which is already CONFIG_ERROR.
        return _normalize_exit_code(exc.code)
    except Exception as exc:  # noqa: BLE001 - CLI boundary normalization.
        exit_code = _route_exception(exc)
        _emit_failure(exc, exit_code)
        return int(exit_code)


def console_main() -> None:
    raise SystemExit(cli_entrypoint())


def _normalize_exit_code(raw_code: object) -> int:
    if isinstance(raw_code, int) and raw_code in {code.value for code in ExitCode}:
        return int(raw_code)
    if raw_code is None:
        return int(ExitCode.SUCCESS)
    if isinstance(raw_code, str) and raw_code.strip():
        _write_stderr(raw_code.strip())
    return int(ExitCode.INTERNAL_ERROR)


def _route_exception(exc: BaseException) -> ExitCode:
    """Map an escaped exception, or anything in its cause chain, to an exit code."""

    caller_error_types = _caller_error_types()
    for item in _iter_exception_chain(exc):
        if isinstance(item, caller_error_types):
            return ExitCode.CONFIG_ERROR
    return ExitCode.INTERNAL_ERROR


def _caller_error_types() -> tuple[type[BaseException], ...]:
    from qms_audit.config.loader import ConfigLoadError
    from qms_audit.config.schema import ConfigValidationError
    from qms_audit.ingestion.document_store import DocumentStoreError

    return (
        ConfigLoadError,
        ConfigValidationError,
        DocumentStoreError,
        FileNotFoundError,
        NotADirectoryError,
        PermissionError,
    )


def _iter_exception_chain(exc: BaseException) -> list[BaseException]:
    seen: set[int] = set()
    items: list[BaseException] = []
    current: BaseException | None = exc
    while current is not None:
        marker = id(current)
        if marker in seen:
            break
        seen.add(marker)
        items.append(current)
        if current.__cause__ is not None:
            current = current.__cause__
            continue
        if current.__context__ is not None and not current.__suppress_context__:
            current = current.__context__
            continue
        break
    return items


def _emit_failure(exc: BaseException, exit_code: ExitCode) -> None:
    if exit_code is ExitCode.INTERNAL_ERROR:
        traceback.print_exception(type(exc), exc, exc.__traceback__, file=sys.stderr)
        return
    _write_stderr(f"qms-audit: {str(exc).strip() or exc.__class__.__name__}")


def _write_stderr(message: str) -> None:
    sys.stderr.write(message.rstrip("\n") + "\n")


__all__ = ["ExitCode", "cli_entrypoint", "console_main"]
