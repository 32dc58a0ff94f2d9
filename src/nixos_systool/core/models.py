"""Domain models for nixos-systool.

All models are **frozen** dataclasses: immutable value objects with no
behaviour beyond data access and trivial derived properties.  They carry
zero I/O and must remain pure across the entire lifecycle.
"""

from __future__ import annotations

import shlex
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class NotificationSettings:
    """Desktop notification behaviour for long-running commands."""

    enabled: bool = True
    success_timeout: int = 10
    """Seconds a success notification stays on screen."""

    failure_timeout: int = 60
    """Seconds a failure notification stays on screen."""


@dataclass(frozen=True, slots=True)
class SystemCheckSettings:
    allowed_age: int = 14
    """Days until the locked nixpkgs revision is considered out of date."""

    date_format: str = "%-e %B, %Y"
    warn_untracked: bool = True


@dataclass(frozen=True, slots=True)
class ExternalCommandSettings:
    browser_open: str = "xdg-open"
    git: str = "git"
    manix: str = "manix"


@dataclass(frozen=True, slots=True)
class WebSearchSettings:
    nixos_pkg_search: str = "https://search.nixos.org/packages?channel=unstable&query={}"
    nixos_option_search: str = "https://search.nixos.org/options?channel=unstable&query={}"
    home_manager_search: str = "https://mipmip.github.io/home-manager-option-search/?query={}"


@dataclass(frozen=True, slots=True)
class PruneSettings:
    keep_generations: int = 5
    """Number of most recent system generations kept by ``prune``."""

    confirm: bool = True
    profile: str = "/nix/var/nix/profiles/system"


@dataclass(frozen=True, slots=True)
class CleanSettings:
    older_than_days: int | None = None
    """Only collect generations older than this; ``None`` means plain GC."""

    optimise: bool = True


@dataclass(frozen=True, slots=True)
class Settings:
    """Fully resolved, validated configuration for one invocation.

    Created once by :func:`~nixos_systool.core.config_resolver.resolve_settings`
    and never mutated afterwards.
    """

    flake_path: Path
    current_flake_path: Path
    user: str
    config_file: Path | None = None
    notifications: NotificationSettings = field(default_factory=NotificationSettings)
    system_check: SystemCheckSettings = field(default_factory=SystemCheckSettings)
    external_commands: ExternalCommandSettings = field(default_factory=ExternalCommandSettings)
    web_search: WebSearchSettings = field(default_factory=WebSearchSettings)
    prune: PruneSettings = field(default_factory=PruneSettings)
    clean: CleanSettings = field(default_factory=CleanSettings)

    def as_dict(self) -> dict[str, Any]:
        """Return a plain mapping suitable for TOML serialisation.

        Paths become strings and unset optional values are dropped, since
        TOML has no null.
        """
        return _prune_none(asdict(self))


def _prune_none(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _prune_none(v) for k, v in value.items() if v is not None}
    if isinstance(value, Path):
        return str(value)
    return value


# ---------------------------------------------------------------------------
# Generations
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class GenerationReference:
    """Identifies one build of the system flake.

    Two references denote the same generation when their identifiers
    match exactly; the timestamp is informational only.
    """

    identifier: str
    """Nix store path or generation label (e.g. ``gen-42``)."""

    timestamp: datetime | None = None


@dataclass(frozen=True, slots=True)
class LockStatus:
    """Age evaluation of one locked flake input."""

    input_name: str
    last_update: datetime
    age: timedelta
    outdated: bool


@dataclass(frozen=True, slots=True)
class InputChange:
    """A flake input whose locked revision changed during ``update``."""

    name: str
    old_rev: str | None
    new_rev: str | None


# ---------------------------------------------------------------------------
# External commands
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class CommandSpec:
    """One external process invocation, consumed once by the invoker."""

    args: tuple[str, ...]
    cwd: Path | None = None
    capture_output: bool = False
    """Capture stdout instead of streaming it; stderr always streams."""

    description: str = ""

    @property
    def command_line(self) -> str:
        return shlex.join(self.args)


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Outcome of running a :class:`CommandSpec`."""

    spec: CommandSpec
    exit_code: int
    output: str | None = None

    @property
    def failed(self) -> bool:
        return self.exit_code != 0


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class SearchResult:
    """A single package or option match."""

    name: str
    version: str
    description: str


# ---------------------------------------------------------------------------
# CLI request
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ActionRequest:
    """The selected subcommand together with its per-action arguments."""

    name: str
    method: str | None = None
    system: str | None = None
    vm: bool = False
    query: str = ""
    browser: bool = False
    options: bool = False
    home_manager: bool = False
    no_warning: bool = False
    assume_yes: bool = False
