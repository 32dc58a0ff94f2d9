"""Allow ``python -m nixos_systool`` invocation.

This module simply delegates to the CLI error-boundary entry point so
that ``python -m nixos_systool`` behaves identically to the
``nixos-systool`` console script.
"""

from __future__ import annotations

from nixos_systool.cli.app import cli

if __name__ == "__main__":
    cli()
