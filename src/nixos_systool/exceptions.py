"""Custom exception hierarchy for nixos-systool.

All exceptions that cross layer boundaries must inherit from
:class:`SystoolError`.  Raw ``OSError`` / ``subprocess`` failures must
never propagate beyond the infrastructure layer; they are caught there
and re-raised as a typed subclass defined here.

Hierarchy
---------
SystoolError
├── ConfigError
├── NotFoundError
├── ExternalToolError
├── CommandFailure
├── UnsupportedSystemError
├── UntrackedFilesError
└── InvalidOptionsError
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from nixos_systool.core.models import CommandResult


class SystoolError(Exception):
    """Base exception for all nixos-systool errors.

    Every user-visible error condition must map to a subclass of this
    exception so that the CLI error boundary can render a clean message
    without leaking internal stack traces.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""


# --- Configuration ---------------------------------------------------------

class ConfigError(SystoolError):
    """Raised when a configuration key is missing or holds a bad value."""

    def __init__(self, key: str, message: str, *, hint: str | None = None) -> None:
        super().__init__(f"{key}: {message}", hint=hint)
        self.key: str = key
        """Dotted name of the offending configuration key."""


# --- File system -----------------------------------------------------------

class NotFoundError(SystoolError):
    """Raised when an expected file or generation reference is absent."""


# --- External processes ----------------------------------------------------

class ExternalToolError(SystoolError):
    """Raised when an external tool cannot be launched or misbehaves."""

    def __init__(
        self,
        message: str,
        *,
        command_line: str | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.command_line: str | None = command_line


class CommandFailure(SystoolError):
    """Raised when an external tool ran but exited with a nonzero status."""

    def __init__(self, result: CommandResult) -> None:
        super().__init__(
            f"`{result.spec.command_line}` exited with status {result.exit_code}",
        )
        self.result: CommandResult = result


# --- Pre-flight checks -----------------------------------------------------

class UnsupportedSystemError(SystoolError):
    """Raised when a command cannot run on the detected operating system."""


class UntrackedFilesError(SystoolError):
    """Raised when the system flake has files git does not track."""


class InvalidOptionsError(SystoolError):
    """Raised when mutually exclusive command options are combined."""
