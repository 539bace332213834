"""Unit tests for exit-code normalization and exception routing."""

from __future__ import annotations

import pytest

from qms_audit import main
from qms_audit.config.loader import ConfigLoadError
from qms_audit.ingestion.document_store import DocumentStoreError
from qms_audit.main import ExitCode


def _chained(outer: BaseException, cause: BaseException) -> BaseException:
    try:
        try:
            raise cause
        except BaseException as inner:
            raise outer from inner
    except BaseException as exc:
        return exc


@pytest.mark.unit
@pytest.mark.parametrize(
    ("raw", "expected"),
    [(None, 0), (0, 0), (1, 1), (2, 2), (4, 4), (3, 4), (130, 4), ("boom", 4)],
)
def test_normalize_exit_code(raw: object, expected: int) -> None:
    assert main._normalize_exit_code(raw) == expected


@pytest.mark.unit
@pytest.mark.parametrize(
    "exc",
    [
        ConfigLoadError("config file not found: .qmsrc.yml"),
        DocumentStoreError("documents root does not exist: docs"),
        FileNotFoundError("docs"),
        _chained(RuntimeError("audit aborted"), ConfigLoadError("bad override")),
    ],
)
def test_caller_errors_route_to_config_error(exc: BaseException) -> None:
    assert main._route_exception(exc) is ExitCode.CONFIG_ERROR


@pytest.mark.unit
def test_unexpected_errors_route_to_internal_error() -> None:
    assert main._route_exception(KeyError("coverage")) is ExitCode.INTERNAL_ERROR


@pytest.mark.unit
def test_entrypoint_reports_config_errors_on_one_line(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    def _fail(argv: object) -> int:
        raise ConfigLoadError("invalid YAML in .qmsrc.yml")

    monkeypatch.setattr("qms_audit.ui.cli.run_cli", _fail)

    assert main.cli_entrypoint(["audit"]) == int(ExitCode.CONFIG_ERROR)
    assert capsys.readouterr().err == "qms-audit: invalid YAML in .qmsrc.yml\n"


@pytest.mark.unit
def test_entrypoint_prints_traceback_for_internal_errors(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    def _fail(argv: object) -> int:
        raise KeyError("coverage")

    monkeypatch.setattr("qms_audit.ui.cli.run_cli", _fail)

    assert main.cli_entrypoint(["audit"]) == int(ExitCode.INTERNAL_ERROR)
    assert "Traceback" in capsys.readouterr().err
