"""Command-line interface router for qms-audit."""

from __future__ import annotations

import argparse
import json
import sys
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from qms_audit.audit import AuditReport, FailOn, audit_index, trace_index
from qms_audit.config import (
    REPO_TYPES,
    AuditConfig,
    ConfigLoadError,
    ConfigValidationError,
    load_audit_config,
)
from qms_audit.domain.models import (
    Acceptability,
    RiskMatrix,
    TraceabilityCoverage,
    canonical_json,
    to_json_value,
)
from qms_audit.ingestion import DocumentIndex, DocumentStoreError, build_document_index
from qms_audit.main import ExitCode
from qms_audit.observability import LoggingConfig, correlation_scope, setup_logging
from qms_audit.reports import (
    render_audit_markdown,
    render_risk_matrix_markdown,
    sort_gaps,
    sort_warnings,
)
from qms_audit.risk import build_risk_matrix
from qms_audit.ui.render import CLIRenderer, create_renderer

_SUMMARY_WARNING_LIMIT: Final[int] = 50


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = ExitCode.CONFIG_ERROR

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for all supported CLI workflows."""

    parser = argparse.ArgumentParser(
        prog="qms-audit",
        description=(
            "qms-audit: consistency, traceability, and risk audit for markdown QMS records.\n\n"
            "Common workflows:\n"
            "  qms-audit audit --type device      Run every check and print a summary\n"
            "  qms-audit audit --markdown         Print the full markdown report\n"
            "  qms-audit trace                    Show traceability coverage and gaps\n"
            "  qms-audit risk                     Show the ISO 14971 risk matrix\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--repo-root",
        default=".",
        help="Repository root directory (default: current working directory).",
    )
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to the YAML config (default: <repo-root>/.qmsrc.yml if present).",
    )
    common.add_argument(
        "--type",
        dest="repo_type",
        choices=REPO_TYPES,
        default=None,
        help="Repository type; overrides the config file and QMS_TYPE.",
    )
    common.add_argument(
        "--docs-path",
        default=None,
        help="Documents directory relative to the repository root.",
    )
    common.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Parse documents with this many threads (default: sequential).",
    )
    common.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Show detailed output and debug logs.",
    )
    common.add_argument(
        "--log-json",
        action="store_true",
        default=False,
        help="Emit logs on stderr as JSON lines.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # audit ---------------------------------------------------------------
    audit_parser = subparsers.add_parser(
        "audit",
        parents=[common],
        help="Run every check and report warnings, coverage, and risk.",
    )
    output_mode = audit_parser.add_mutually_exclusive_group()
    output_mode.add_argument("--json", action="store_true", help="Emit the report as JSON.")
    output_mode.add_argument(
        "--markdown", action="store_true", help="Emit the report as markdown."
    )
    audit_parser.add_argument(
        "--output",
        default=None,
        help="Also write the markdown report to this file.",
    )
    audit_parser.add_argument(
        "--fail-on",
        choices=[item.value for item in FailOn],
        default=FailOn.NEVER.value,
        help="Exit non-zero when findings reach this severity (default: never).",
    )
    audit_parser.set_defaults(handler=_cmd_audit)

    # index ---------------------------------------------------------------
    index_parser = subparsers.add_parser(
        "index",
        parents=[common],
        help="List discovered documents and skipped files.",
    )
    index_parser.add_argument("--json", action="store_true", help="Emit JSON output.")
    index_parser.set_defaults(handler=_cmd_index)

    # trace ---------------------------------------------------------------
    trace_parser = subparsers.add_parser(
        "trace",
        parents=[common],
        help="Show traceability coverage and gaps.",
    )
    trace_parser.add_argument("--json", action="store_true", help="Emit JSON output.")
    trace_parser.set_defaults(handler=_cmd_trace)

    # risk ----------------------------------------------------------------
    risk_parser = subparsers.add_parser(
        "risk",
        parents=[common],
        help="Show the ISO 14971 risk matrix.",
    )
    risk_mode = risk_parser.add_mutually_exclusive_group()
    risk_mode.add_argument("--json", action="store_true", help="Emit JSON output.")
    risk_mode.add_argument("--markdown", action="store_true", help="Emit markdown output.")
    risk_parser.set_defaults(handler=_cmd_risk)

    # config --------------------------------------------------------------
    config_parser = subparsers.add_parser(
        "config",
        parents=[common],
        help="Show the effective configuration as JSON.",
    )
    config_parser.set_defaults(handler=_cmd_config)

    return parser


# ---------------------------------------------------------------------------
# Entrypoints
# ---------------------------------------------------------------------------


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return int(ExitCode.CONFIG_ERROR)

    setup_logging(
        LoggingConfig(
            level="DEBUG" if _flag(namespace, "verbose") else "WARNING",
            json_format=_flag(namespace, "log_json"),
        )
    )
    # CLIError is frozen; it must not propagate through the generator-based scope.
    with correlation_scope(audit_id=uuid.uuid4().hex, command=namespace.command):
        try:
            result = handler(namespace)
        except CLIError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return int(exc.exit_code)
    return int(result)


def main(argv: Sequence[str] | None = None) -> int:
    return run_cli(argv)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_audit(args: argparse.Namespace) -> int:
    config = _load_config(args)
    index = _build_index(args, config)
    report = audit_index(index, config)

    output_path = getattr(args, "output", None)
    if output_path:
        target = Path(output_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(render_audit_markdown(report), encoding="utf-8")

    if _flag(args, "json"):
        _emit_json(report.to_dict())
    elif _flag(args, "markdown"):
        sys.stdout.write(render_audit_markdown(report))
    else:
        _render_audit_summary(_get_renderer(args), report)

    if report.fails(args.fail_on):
        return int(ExitCode.AUDIT_FAILED)
    return int(ExitCode.SUCCESS)


def _cmd_index(args: argparse.Namespace) -> int:
    config = _load_config(args)
    index = _build_index(args, config)

    if _flag(args, "json"):
        _emit_json(
            {
                "command": "index",
                "documents": [
                    {
                        "id": document.id,
                        "type": str(document.doc_type),
                        "status": document.status,
                        "file": document.file_path,
                    }
                    for document in index.documents
                ],
                "skipped": [item.to_dict() for item in index.skipped],
                "types": index.type_counts(),
            }
        )
        return int(ExitCode.SUCCESS)

    renderer = _get_renderer(args)
    renderer.kv("Documents", len(index.documents))
    renderer.kv("Skipped", index.skipped_count)
    renderer.table(
        ["ID", "TYPE", "STATUS", "FILE"],
        [
            [document.id, str(document.doc_type), document.status, document.file_path]
            for document in index.documents
        ],
        title="Documents:",
    )
    if index.skipped:
        renderer.section("Skipped files:")
        renderer.items([f"{item.file_path} ({item.reason})" for item in index.skipped])
    return int(ExitCode.SUCCESS)


def _cmd_trace(args: argparse.Namespace) -> int:
    config = _load_config(args)
    index = _build_index(args, config)
    result = trace_index(index, config)

    if _flag(args, "json"):
        _emit_json(
            {
                "command": "trace",
                "enabled": config.traceability_enabled,
                "average_coverage": result.average_coverage,
                "coverage": [item.to_dict() for item in result.coverage],
                "gaps": [item.to_dict() for item in sort_gaps(result.gaps)],
            }
        )
        return int(ExitCode.SUCCESS)

    renderer = _get_renderer(args)
    if not config.traceability_enabled:
        renderer.text("Traceability is not enabled for this repository.")
        return int(ExitCode.SUCCESS)

    renderer.table(
        ["CHAIN", "COVERED", "COVERAGE"],
        [_coverage_row(item) for item in result.coverage],
        title="Coverage:",
    )
    if result.average_coverage is not None:
        renderer.section(f"Average coverage: {result.average_coverage}%")
    renderer.table(
        ["DOCUMENT", "GAP", "DETAILS"],
        [[gap.document_id, gap.gap_type, gap.message] for gap in sort_gaps(result.gaps)],
        title="Gaps:",
    )
    return int(ExitCode.SUCCESS)


def _cmd_risk(args: argparse.Namespace) -> int:
    config = _load_config(args)
    index = _build_index(args, config)
    matrix = build_risk_matrix(index, config.grid_size)

    if _flag(args, "json"):
        _emit_json(
            {"command": "risk", "matrix": matrix.to_dict() if matrix is not None else None}
        )
        return int(ExitCode.SUCCESS)

    renderer = _get_renderer(args)
    if matrix is None:
        renderer.text("No risk documents found.")
        return int(ExitCode.SUCCESS)
    if _flag(args, "markdown"):
        renderer.text(render_risk_matrix_markdown(matrix))
        return int(ExitCode.SUCCESS)

    _render_risk_summary(renderer, matrix)
    return int(ExitCode.SUCCESS)


def _cmd_config(args: argparse.Namespace) -> int:
    config = _load_config(args)
    _get_renderer(args).text(
        json.dumps(config.to_dict(), indent=2, sort_keys=True, ensure_ascii=False)
    )
    return int(ExitCode.SUCCESS)


# ---------------------------------------------------------------------------
# Rendering helpers
# ---------------------------------------------------------------------------


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(canonical_json(to_json_value(payload)))


def _get_renderer(args: argparse.Namespace) -> CLIRenderer:
    return create_renderer(verbose=_flag(args, "verbose"))


def _render_audit_summary(renderer: CLIRenderer, report: AuditReport) -> None:
    renderer.heading("QMS audit")
    renderer.kv("Repository type", report.repo_type)
    renderer.kv("Documents", report.document_count)
    renderer.kv("Skipped files", len(report.skipped))
    renderer.kv("Warnings", len(report.warnings))
    if report.average_coverage is not None:
        renderer.kv("Average coverage", f"{report.average_coverage}%")

    warnings = sort_warnings(report.warnings)
    if not renderer.verbose and len(warnings) > _SUMMARY_WARNING_LIMIT:
        hidden = len(warnings) - _SUMMARY_WARNING_LIMIT
        warnings = warnings[:_SUMMARY_WARNING_LIMIT]
    else:
        hidden = 0
    renderer.table(
        ["FILE", "RULE", "MESSAGE"],
        [[item.file, item.rule, item.message] for item in warnings],
        title="Warnings:",
    )
    if hidden:
        renderer.text(f"  ... {hidden} more (use --verbose to show all)")

    renderer.table(
        ["CHAIN", "COVERED", "COVERAGE"],
        [_coverage_row(item) for item in report.coverage],
        title="Coverage:",
    )
    if report.risk_matrix is not None:
        _render_risk_summary(renderer, report.risk_matrix)


def _coverage_row(item: TraceabilityCoverage) -> list[str]:
    return [
        item.chain_name,
        f"{item.covered_sources}/{item.total_sources}",
        f"{item.coverage_percent}%",
    ]


def _render_risk_summary(renderer: CLIRenderer, matrix: RiskMatrix) -> None:
    renderer.section("Risk summary:")
    renderer.kv("  Total", matrix.summary.total)
    renderer.kv("  Acceptable", matrix.summary.acceptable)
    renderer.kv("  Review required", matrix.summary.review_required)
    renderer.kv("  Unacceptable", matrix.summary.unacceptable)
    unacceptable = [risk.id for risk in matrix.iter_risks(Acceptability.UNACCEPTABLE)]
    if unacceptable:
        renderer.kv("  Unacceptable risks", ", ".join(unacceptable))
    if matrix.skipped:
        renderer.kv("  Without values", ", ".join(matrix.skipped))


# ---------------------------------------------------------------------------
# Helpers: config, paths, snapshot
# ---------------------------------------------------------------------------


def _repo_root(args: argparse.Namespace) -> Path:
    candidate = Path(args.repo_root).expanduser().resolve()
    if not candidate.exists() or not candidate.is_dir():
        raise CLIError(f"repo root is not a directory: {candidate}")
    return candidate


def _load_config(args: argparse.Namespace) -> AuditConfig:
    overrides = {
        "type": getattr(args, "repo_type", None),
        "docs-path": getattr(args, "docs_path", None),
    }
    try:
        return load_audit_config(
            getattr(args, "config_path", None),
            repo_root=_repo_root(args),
            cli_overrides=overrides,
        )
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc)) from exc


def _build_index(args: argparse.Namespace, config: AuditConfig) -> DocumentIndex:
    workers = getattr(args, "workers", None)
    if workers is not None and workers < 1:
        raise CLIError("--workers must be >= 1")
    try:
        return build_document_index(config.docs_path, _repo_root(args), max_workers=workers)
    except DocumentStoreError as exc:
        raise CLIError(str(exc)) from exc


def _flag(args: argparse.Namespace, name: str) -> bool:
    return bool(getattr(args, name, False))


__all__ = ["CLIError", "build_parser", "main", "run_cli"]
