"""Command-line construction for every external tool the actions call.

Each function is a pure transform from settings/arguments to a
:class:`~nixos_systool.core.models.CommandSpec`.  Nothing here runs a
process.
"""

from __future__ import annotations

from pathlib import Path

from nixos_systool.core.models import CommandSpec, Settings

NIXOS_REBUILD = "nixos-rebuild"
DARWIN_REBUILD = "darwin-rebuild"


# ---------------------------------------------------------------------------
# System / user rebuild
# ---------------------------------------------------------------------------

def system_build_spec(rebuild_tool: str, flake_path: Path) -> CommandSpec:
    """Build the system closure without activating it."""
    return CommandSpec(
        args=(rebuild_tool, "--flake", str(flake_path), "build"),
        cwd=flake_path,
        description="Building system configuration",
    )


def system_activate_spec(rebuild_tool: str, flake_path: Path, method: str) -> CommandSpec:
    """Activate the system configuration with *method* (switch, boot, ...)."""
    args: list[str] = [rebuild_tool]
    if rebuild_tool == NIXOS_REBUILD:
        # git refuses to read a repository owned by another user under sudo.
        args.append("--use-remote-sudo")
    args.extend(("--flake", str(flake_path), method))
    return CommandSpec(args=tuple(args), description=f"Applying system configuration ({method})")


def home_manager_spec(action: str, flake_path: Path, user: str) -> CommandSpec:
    return CommandSpec(
        args=("home-manager", action, "--flake", f"{flake_path}#{user}"),
        cwd=flake_path,
        description=f"Running home-manager {action} for '{user}'",
    )


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------

def build_attribute(system: str, *, vm: bool) -> str:
    build_type = "vm" if vm else "toplevel"
    return f".#nixosConfigurations.{system}.config.system.build.{build_type}"


def nix_build_spec(flake_path: Path, system: str, *, vm: bool) -> CommandSpec:
    """``nix build`` for one host, printing the output path on stdout."""
    return CommandSpec(
        args=("nix", "build", "--print-out-paths", build_attribute(system, vm=vm)),
        cwd=flake_path,
        capture_output=True,
        description=f"Building system configuration for {system}",
    )


# ---------------------------------------------------------------------------
# Store maintenance
# ---------------------------------------------------------------------------

def clean_specs(settings: Settings) -> list[CommandSpec]:
    """Garbage collection, optionally age-limited, then deduplication."""
    older_than = settings.clean.older_than_days
    if older_than is None:
        specs = [CommandSpec(args=("nix", "store", "gc"), description="Running garbage collection")]
    else:
        specs = [
            CommandSpec(
                args=("nix-collect-garbage", "--delete-older-than", f"{older_than}d"),
                description=f"Collecting garbage older than {older_than} days",
            )
        ]
    if settings.clean.optimise:
        specs.append(
            CommandSpec(
                args=("nix", "store", "optimise"),
                description="Deduplication running... this may take a while",
            )
        )
    return specs


def prune_specs(settings: Settings) -> list[CommandSpec]:
    """Delete old system generations, then collect what they referenced.

    A keep count of zero deletes every generation but the current one.
    """
    keep = settings.prune.keep_generations
    selector = f"+{keep}" if keep > 0 else "old"
    return [
        CommandSpec(
            args=(
                "sudo", "nix-env",
                "--profile", settings.prune.profile,
                "--delete-generations", selector,
            ),
            description=(
                f"Pruning system generations, keeping the last {keep}"
                if keep > 0
                else "Pruning all old system generations"
            ),
        ),
        CommandSpec(args=("sudo", "nix-collect-garbage"), description="Collecting garbage"),
    ]


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

def package_search_spec(query: str) -> CommandSpec:
    return CommandSpec(
        args=("nix", "search", "nixpkgs", query, "--json"),
        capture_output=True,
        description=f"Searching nixpkgs for '{query}'",
    )


def option_search_spec(settings: Settings, query: str) -> CommandSpec:
    return CommandSpec(
        args=(settings.external_commands.manix, query),
        description=f"Searching options for '{query}'",
    )


def browser_spec(settings: Settings, url_template: str, query: str) -> CommandSpec:
    return CommandSpec(
        args=(settings.external_commands.browser_open, url_template.replace("{}", query)),
        description=f"Opening web search for '{query}'",
    )


# ---------------------------------------------------------------------------
# Flake maintenance
# ---------------------------------------------------------------------------

def flake_update_spec(flake_path: Path) -> CommandSpec:
    return CommandSpec(
        args=("nix", "flake", "update"),
        cwd=flake_path,
        description="Updating system configuration flake",
    )


def flake_metadata_spec(flake_path: Path) -> CommandSpec:
    return CommandSpec(
        args=("nix", "flake", "metadata", "--json", str(flake_path)),
        capture_output=True,
        description="Reading system flake metadata",
    )


def git_commit_lock_specs(settings: Settings) -> list[CommandSpec]:
    git = settings.external_commands.git
    return [
        CommandSpec(args=(git, "add", "flake.lock"), cwd=settings.flake_path),
        CommandSpec(
            args=(git, "commit", "-m", "Update flake lock"),
            cwd=settings.flake_path,
            description="Committing flake.lock",
        ),
    ]


def git_status_spec(settings: Settings) -> CommandSpec:
    return CommandSpec(
        args=(settings.external_commands.git, "status", "--short"),
        cwd=settings.flake_path,
        capture_output=True,
    )


def untracked_files(status_output: str) -> list[str]:
    """Extract untracked paths from ``git status --short`` output."""
    return [
        line[3:]
        for line in status_output.splitlines()
        if line.startswith("?? ")
    ]
