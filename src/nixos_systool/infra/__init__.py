"""Infrastructure layer: external system integration.

This layer wraps all interaction with external processes, the file
system, and the desktop notification service.  Every raw ``OSError`` must
be caught here and re-raised as a
:class:`~nixos_systool.exceptions.SystoolError` subclass.

Rules
-----
* No imports from ``cli``.
* No user-facing output (no ``print()``, no Rich rendering).
"""

from nixos_systool.infra.command_invoker import SubprocessInvoker
from nixos_systool.infra.generation_inspector import GenerationInspector
from nixos_systool.infra.notifier import DesktopNotifier, NullNotifier

__all__: list[str] = [
    "DesktopNotifier",
    "GenerationInspector",
    "NullNotifier",
    "SubprocessInvoker",
]
