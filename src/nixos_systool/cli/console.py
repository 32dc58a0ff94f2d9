"""CLI console helpers.

Status messages go to stderr; data (search tables, build paths,
``print-config``) goes to stdout so it can be piped.
"""

from __future__ import annotations

from typing import Any

from rich.console import Console


def get_rich_console(*, stderr: bool = True) -> Console:
    """Create a Rich console instance targeting stderr (or stdout)."""
    return Console(stderr=stderr)


class _ConsoleProxy:
    """``print``-compatible proxy that binds to the current streams on each call."""

    def __init__(self, *, stderr: bool) -> None:
        self._stderr = stderr

    def print(self, *objects: object, **kwargs: Any) -> None:
        get_rich_console(stderr=self._stderr).print(*objects, **kwargs)


console = _ConsoleProxy(stderr=True)
out = _ConsoleProxy(stderr=False)
