"""Subprocess-backed implementation of :class:`~nixos_systool.core.protocols.CommandRunner`.

This module is the **only** place in the codebase that spawns external
processes.  Standard streams are inherited so long builds show progress
live; with ``capture_output`` only stdout is captured.  Spawn failures are
re-raised as :class:`~nixos_systool.exceptions.ExternalToolError`.
"""

from __future__ import annotations

import logging
import subprocess

from nixos_systool.core.models import CommandResult, CommandSpec
from nixos_systool.exceptions import ExternalToolError

logger = logging.getLogger(__name__)


class SubprocessInvoker:
    """Concrete :class:`CommandRunner` backed by :func:`subprocess.run`.

    This class satisfies the :class:`~nixos_systool.core.protocols.CommandRunner`
    protocol structurally, with no explicit inheritance required.
    """

    def run(self, spec: CommandSpec) -> CommandResult:
        """Run *spec*, blocking until the process exits.

        Raises
        ------
        ExternalToolError
            When the binary is missing, not executable, or the working
            directory is unusable.
        """
        logger.debug("running: %s (cwd=%s)", spec.command_line, spec.cwd)
        try:
            completed = subprocess.run(
                list(spec.args),
                cwd=spec.cwd,
                stdout=subprocess.PIPE if spec.capture_output else None,
                text=True,
                check=False,
            )
        except FileNotFoundError as exc:
            raise ExternalToolError(
                f"Command not found: {spec.args[0]}",
                command_line=spec.command_line,
                hint=f"Make sure `{spec.args[0]}` is installed and on PATH.",
            ) from exc
        except PermissionError as exc:
            raise ExternalToolError(
                f"Permission denied running {spec.args[0]}",
                command_line=spec.command_line,
            ) from exc
        except OSError as exc:
            raise ExternalToolError(
                f"Could not start `{spec.command_line}`: {exc}",
                command_line=spec.command_line,
            ) from exc

        logger.debug("exit status %d: %s", completed.returncode, spec.command_line)
        return CommandResult(
            spec=spec,
            exit_code=completed.returncode,
            output=completed.stdout if spec.capture_output else None,
        )
