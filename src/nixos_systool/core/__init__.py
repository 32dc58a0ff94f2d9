"""Core layer: pure models, configuration merging, and decision logic.

Rules
-----
* No ``print()`` calls.
* No subprocess execution.
* No imports from ``cli`` or ``infra``.
"""

from nixos_systool.core.config_resolver import resolve_settings
from nixos_systool.core.generation import is_stale
from nixos_systool.core.models import (
    ActionRequest,
    CommandResult,
    CommandSpec,
    GenerationReference,
    SearchResult,
    Settings,
)
from nixos_systool.core.protocols import CommandRunner, Notifier

__all__: list[str] = [
    "ActionRequest",
    "CommandResult",
    "CommandRunner",
    "CommandSpec",
    "GenerationReference",
    "Notifier",
    "SearchResult",
    "Settings",
    "is_stale",
    "resolve_settings",
]
