"""Interactive confirmation prompts for destructive actions."""

from __future__ import annotations

import sys
from typing import Any

from nixos_systool.exceptions import SystoolError


def _import_questionary() -> Any:
    """Import questionary lazily for interactive prompts."""
    try:
        import questionary
    except ModuleNotFoundError as exc:
        raise SystoolError(
            "questionary is not installed. Install with: pip install questionary",
        ) from exc
    return questionary


def is_interactive() -> bool:
    return sys.stdin.isatty() and sys.stdout.isatty()


def confirm(message: str, *, default: bool = False) -> bool:
    """Ask a yes/no question; Ctrl+C or Esc counts as "no"."""
    questionary = _import_questionary()
    answer: bool | None = questionary.confirm(message, default=default).ask()
    return bool(answer)
