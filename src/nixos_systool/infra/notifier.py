"""Infrastructure: best-effort desktop notifications.

Notification delivery is not part of the tool's success contract, so
:class:`DesktopNotifier` swallows every error it meets.  Processes are
spawned through the injected runner, keeping
:mod:`~nixos_systool.infra.command_invoker` the single spawn point.
"""

from __future__ import annotations

import logging
import platform

from nixos_systool.core.models import CommandSpec
from nixos_systool.core.protocols import CommandRunner

logger = logging.getLogger(__name__)

APP_NAME = "nixos-systool"


def _applescript_quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def notification_spec(
    title: str,
    body: str,
    *,
    timeout: int,
    critical: bool,
    system: str,
) -> CommandSpec | None:
    """Return the platform notification command, or ``None`` if unsupported."""
    if system == "Linux":
        args = ["notify-send", "--app-name", APP_NAME, "--expire-time", str(timeout * 1000)]
        if critical:
            args.extend(("--urgency", "critical"))
        args.extend((title, body))
        return CommandSpec(args=tuple(args), capture_output=True)
    if system == "Darwin":
        script = f"display notification {_applescript_quote(body)} with title {_applescript_quote(title)}"
        return CommandSpec(args=("osascript", "-e", script), capture_output=True)
    return None


class DesktopNotifier:
    """Concrete :class:`Notifier` using ``notify-send`` or ``osascript``."""

    def __init__(self, runner: CommandRunner, system: str | None = None) -> None:
        self._runner: CommandRunner = runner
        self._system: str = system if system is not None else platform.system()

    def notify(self, title: str, body: str, *, timeout: int, critical: bool = False) -> None:
        spec = notification_spec(
            title, body, timeout=timeout, critical=critical, system=self._system,
        )
        if spec is None:
            logger.debug("no notification backend for %s", self._system)
            return
        try:
            result = self._runner.run(spec)
        except Exception as exc:  # noqa: BLE001
            logger.debug("notification failed: %s", exc)
            return
        if result.failed:
            logger.debug("notification command exited with %d", result.exit_code)


class NullNotifier:
    """No-op :class:`Notifier` for tests and headless environments."""

    def notify(self, title: str, body: str, *, timeout: int, critical: bool = False) -> None:
        return None
