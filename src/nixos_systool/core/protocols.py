"""Protocols (interfaces) consumed by the dispatcher.

These define the contracts that infrastructure adapters must satisfy.
The dispatcher depends ONLY on these protocols, so tests can swap in
scripted fakes without spawning processes or touching D-Bus.
"""

from __future__ import annotations

from typing import Protocol

from nixos_systool.core.models import CommandResult, CommandSpec


class CommandRunner(Protocol):
    """Contract for external process execution."""

    def run(self, spec: CommandSpec) -> CommandResult:
        """Run *spec* to completion and report its exit status.

        A nonzero exit is returned, not raised.

        Raises
        ------
        ExternalToolError
            When the process cannot be spawned at all.
        """
        ...


class Notifier(Protocol):
    """Contract for best-effort desktop notifications.

    Implementations must never raise.
    """

    def notify(self, title: str, body: str, *, timeout: int, critical: bool = False) -> None:
        """Show a notification for *timeout* seconds."""
        ...
