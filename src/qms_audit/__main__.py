"""Module entrypoint for ``python -m qms_audit``."""

from __future__ import annotations

from qms_audit.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
