"""Command line entry point for running test documents."""
from __future__ import annotations

from testharness.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
