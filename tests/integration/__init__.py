"""
qms-audit: integration test package

Purpose
- Test package marker for tests that cross several planes or drive the CLI.

Functional requirements
- Must not import heavy modules at import time; keep test collection fast.
"""
