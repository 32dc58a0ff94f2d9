"""Exit-code constants used by the CLI layer.

Centralised here so that every exit path uses a well-known, tested
value rather than magic integers scattered across the codebase.
"""

from __future__ import annotations

SUCCESS: int = 0
"""Clean exit: command completed without error."""

GENERAL_ERROR: int = 1
"""A known SystoolError was caught. User-facing message was displayed."""

STALE: int = 1
"""``check`` found the running system behind the configuration flake."""

UNEXPECTED_ERROR: int = 2
"""An unhandled exception escaped all known error boundaries."""

KEYBOARD_INTERRUPT: int = 130
"""User pressed Ctrl+C.  Follows POSIX convention (128 + SIGINT=2)."""


def from_child(returncode: int) -> int:
    """Map a child process status onto our own exit status.

    Positive codes pass through; a child killed by signal *N* (reported
    by :mod:`subprocess` as ``-N``) maps to ``128 + N``.
    """
    if returncode > 0:
        return min(returncode, 255)
    if returncode < 0:
        return 128 + (-returncode)
    return GENERAL_ERROR
