"""Presentation helpers: pure formatting for the CLI layer.

Every function here turns domain values into Rich markup strings or Rich
renderables.  Nothing prints; callers hand the results to
:mod:`nixos_systool.cli.console`, which wraps them to its own width.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any

import tomli_w
from rich.markup import escape
from rich.table import Table

from nixos_systool.core.models import (
    CommandResult,
    GenerationReference,
    InputChange,
    LockStatus,
    SearchResult,
    Settings,
)

PROG = "nixos-systool"
NOTIFICATION_TITLE = "NixOS System Tool"


# ---------------------------------------------------------------------------
# Status lines
# ---------------------------------------------------------------------------

def info(message: str) -> str:
    return f"[italic]{escape(message)}[/italic]"


def warn(message: str) -> str:
    return f"[yellow]{escape(message)}[/yellow]"


def error(message: str) -> str:
    return f"[bold red]{escape(message)}[/bold red]"


def success(message: str) -> str:
    return f"[bold green]{escape(message)}[/bold green]"


def format_date(value: datetime | None, date_format: str) -> str:
    if value is None:
        return "an unknown date"
    try:
        return value.strftime(date_format)
    except ValueError:
        return value.date().isoformat()


# ---------------------------------------------------------------------------
# Command results
# ---------------------------------------------------------------------------

def failure_report(result: CommandResult) -> list[str]:
    """Describe a failed command with enough context to retry by hand.

    The command line sits on its own line, shell-quoted; print the report
    with ``soft_wrap=True`` so it is never split.
    """
    lines = [
        error(f"Command failed with exit code {result.exit_code}:"),
        f"  {escape(result.spec.command_line)}",
    ]
    if result.spec.cwd is not None:
        lines.append(f"[dim]in {escape(str(result.spec.cwd))}[/dim]")
    if result.output:
        lines.append(escape(result.output.rstrip()))
    return lines


def build_result_message(result_path: str | None, flake_path: str, system: str, *, vm: bool) -> str:
    if vm:
        return info(f"VM image built. Run {flake_path}/result/bin/run-{system}-vm to start it.")
    target = result_path or f"{flake_path}/result"
    return info(f"System built and symlinked to {flake_path}/result ({target})")


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

def search_table(results: Sequence[SearchResult], query: str) -> Table | str:
    """Render search results as a table, or a "no results" line."""
    if not results:
        return warn(f"No results for '{query}'.")

    table = Table(
        title=f"nixpkgs matches for '{escape(query)}'",
        show_header=True,
        header_style="bold magenta",
        border_style="dim",
    )
    table.add_column("Package", style="bold", no_wrap=True)
    table.add_column("Version", style="cyan", no_wrap=True)
    table.add_column("Description", overflow="fold")
    for result in results:
        table.add_row(escape(result.name), escape(result.version), escape(result.description))
    return table


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------

def staleness_report(
    current: GenerationReference,
    latest: GenerationReference,
    *,
    stale: bool,
    date_format: str,
) -> list[str]:
    if not stale:
        return [
            success("System is up to date with the configuration flake."),
            f"[dim]{escape(current.identifier)}[/dim]",
        ]
    current_date = format_date(current.timestamp, date_format)
    latest_date = format_date(latest.timestamp, date_format)
    return [
        error(
            f"System flake differs from the configuration flake. "
            f"Consider running `{PROG} apply`."
        ),
        f"  current: {escape(current.identifier)} [dim]({escape(current_date)})[/dim]",
        f"  latest:  {escape(latest.identifier)} [dim]({escape(latest_date)})[/dim]",
    ]


def lock_age_report(status: LockStatus, *, label: str, date_format: str) -> str:
    last = format_date(status.last_update, date_format)
    days = status.age.days
    if status.outdated:
        return error(
            f"{label} is out of date, {status.input_name} was last updated on "
            f"{last} ({days} days ago). Please update as soon as possible using "
            f"`{PROG} update` and `{PROG} apply`."
        )
    return info(f"{label} is up to date. Last updated on {last} ({days} days ago).")


def missing_current_flake_warning(current_flake_path: str) -> list[str]:
    return [
        warn(
            "The flake in the repository may not be applied to the system. "
            f"Make sure to use `{PROG} apply` or create a symlink in "
            f"{current_flake_path} pointing to the source of the flake in the "
            "Nix store used to build the current system for a more accurate "
            "version check."
        ),
        warn("Add the following to your nixosSystem configuration to do so:"),
        warn('    environment.etc."current-system-flake".source = inputs.self;'),
    ]


# ---------------------------------------------------------------------------
# update
# ---------------------------------------------------------------------------

def _short_rev(rev: str | None) -> str:
    if rev is None:
        return "none"
    return rev[:12]


def input_changes_report(changes: Sequence[InputChange]) -> list[str]:
    if not changes:
        return [info("All flake inputs were already up to date.")]
    lines = [info(f"Updated {len(changes)} flake input(s):")]
    for change in changes:
        lines.append(
            f"  [bold]{escape(change.name)}[/bold]  "
            f"{escape(_short_rev(change.old_rev))} → {escape(_short_rev(change.new_rev))}"
        )
    return lines


# ---------------------------------------------------------------------------
# print-config
# ---------------------------------------------------------------------------

def settings_toml(settings: Settings) -> str:
    """Render resolved settings as a loadable TOML config file.

    Scalars come first, then tables.  The source file is not a setting, so
    it is only mentioned in a leading comment.
    """
    data: dict[str, Any] = settings.as_dict()
    source = data.pop("config_file", None)
    scalars = {k: v for k, v in data.items() if not isinstance(v, dict)}
    tables = {k: v for k, v in data.items() if isinstance(v, dict)}
    body = tomli_w.dumps({**scalars, **tables})
    if source is None:
        return body
    return f"# Loaded from {source}\n{body}"


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

def notification_body(action: str, *, succeeded: bool) -> str:
    if succeeded:
        return f"`{action}` command executed successfully"
    return f"`{action}` command execution failed.\nSee output for details"
