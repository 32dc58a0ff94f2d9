"""CLI application entry point and command routing for nixos-systool.

This module is the **sole error boundary** for the entire application.
It catches :class:`~nixos_systool.exceptions.SystoolError`,
``KeyboardInterrupt``, and any unexpected ``Exception``, rendering
user-friendly messages via Rich and returning well-defined exit codes.

Architecture notes
------------------
* No business logic lives here; work is delegated to the dispatcher,
  which in turn uses the core and infrastructure layers.
* This is the only module that reads ``os.environ`` and ``argv``; both
  are handed to the configuration resolver as explicit snapshots.
* This module is the only place that translates between the domain world
  and the OS process exit code.
"""

from __future__ import annotations

import argparse
import getpass
import logging
import os
import platform
import sys
from collections.abc import Mapping
from typing import Any

from rich.logging import RichHandler
from rich.markup import escape

from nixos_systool.cli import exit_codes
from nixos_systool.cli.console import console
from nixos_systool.core.config_resolver import FLAKE_PATH_ENV
from nixos_systool.core.models import ActionRequest
from nixos_systool.exceptions import SystoolError
from nixos_systool.version import __version__

PROG = "nixos-systool"


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    """Construct the top-level argument parser with one subparser per action."""
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="NixOS system management tool.",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log every external command before it runs.",
    )
    parser.add_argument(
        "--config",
        default=None,
        metavar="PATH",
        help="Config file to load instead of the default location.",
    )
    parser.add_argument(
        "-f",
        "--flake-path",
        default=None,
        metavar="PATH",
        help=f"Path to the system configuration flake repository [env: {FLAKE_PATH_ENV}].",
    )
    parser.add_argument(
        "-c",
        "--current-flake-path",
        default=None,
        metavar="PATH",
        help="Path to the current system flake in the Nix store "
        "(default: /etc/current-system-flake).",
    )
    parser.add_argument(
        "--no-notify",
        action="store_true",
        help="Do not send a desktop notification when the command finishes.",
    )

    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    apply = sub.add_parser("apply", help="Apply the system configuration using nixos-rebuild.")
    apply.add_argument(
        "method",
        nargs="?",
        default=None,
        help="Build type accepted by nixos-rebuild, e.g. switch, boot, build (default: switch).",
    )

    apply_user = sub.add_parser("apply-user", help="Apply user configuration using home-manager.")
    apply_user.add_argument(
        "-u",
        "--user",
        default=None,
        help="User configuration to apply, defaults to the current user.",
    )

    clean = sub.add_parser("clean", help="Run garbage collection on the Nix store.")
    clean.add_argument(
        "--older-than",
        type=int,
        default=None,
        metavar="DAYS",
        help="Only delete generations older than DAYS.",
    )

    build = sub.add_parser("build", help="Build the system configuration, without applying it.")
    build.add_argument("system", nargs="?", default=None, help="System to build, defaults to this host.")
    build.add_argument("--vm", action="store_true", help="Build a VM image instead.")

    prune = sub.add_parser("prune", help="Prune old generations from the Nix store.")
    prune.add_argument("-k", "--keep", type=int, default=None, metavar="N", help="Generations to keep.")
    prune.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation.")

    search = sub.add_parser("search", help="Search Nixpkgs or NixOS options.")
    search.add_argument("query", help="Pattern to search for.")
    search.add_argument("-b", "--browser", action="store_true", help="Search on the NixOS website.")
    search.add_argument("-o", "--options", action="store_true", help="Search options instead of packages.")
    search.add_argument(
        "-m",
        "--home-manager",
        action="store_true",
        help="Search Home Manager options in a browser.",
    )

    sub.add_parser("update", help="Update the system flake lock.")

    check = sub.add_parser("check", help="Check whether the running system is out of date.")
    check.add_argument(
        "--no-warning",
        action="store_true",
        help="Suppress the warning about falling back to the repository flake.lock.",
    )

    sub.add_parser("print-config", help="Print the resolved configuration including defaults.")
    sub.add_parser("help", help="Show this help message.")
    return parser


def _request_from_args(args: argparse.Namespace) -> ActionRequest:
    return ActionRequest(
        name=args.command,
        method=getattr(args, "method", None),
        system=getattr(args, "system", None),
        vm=getattr(args, "vm", False),
        query=getattr(args, "query", ""),
        browser=getattr(args, "browser", False),
        options=getattr(args, "options", False),
        home_manager=getattr(args, "home_manager", False),
        no_warning=getattr(args, "no_warning", False),
        assume_yes=getattr(args, "yes", False),
    )


def _cli_flags(args: argparse.Namespace) -> dict[str, Any]:
    """Translate parsed flags into resolver keys; ``None`` means unset."""
    return {
        "flake_path": args.flake_path,
        "current_flake_path": args.current_flake_path,
        "notifications.enabled": False if args.no_notify else None,
        "user": getattr(args, "user", None),
        "prune.keep_generations": getattr(args, "keep", None),
        "clean.older_than_days": getattr(args, "older_than", None),
    }


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(show_path=False, show_time=False)],
    )


# ---------------------------------------------------------------------------
# Command dispatch
# ---------------------------------------------------------------------------

def _handle_action(args: argparse.Namespace, environ: Mapping[str, str]) -> int:
    """Load the config file and hand the request to the dispatcher."""
    from nixos_systool.cli.dispatcher import ConfigSources, Dispatcher
    from nixos_systool.core.config_resolver import builtin_defaults
    from nixos_systool.infra.command_invoker import SubprocessInvoker
    from nixos_systool.infra.config_file import load_config_file, locate_config_file
    from nixos_systool.infra.notifier import DesktopNotifier

    config_path, required = locate_config_file(args.config, environ)
    sources = ConfigSources(
        defaults=builtin_defaults(user=getpass.getuser(), platform_system=platform.system()),
        file_values=load_config_file(config_path, required=required),
        environ=environ,
        cli_flags=_cli_flags(args),
        config_file=config_path if config_path.exists() else None,
    )

    invoker = SubprocessInvoker()
    dispatcher = Dispatcher(invoker, DesktopNotifier(invoker))
    return dispatcher.run(_request_from_args(args), sources)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None, environ: Mapping[str, str] | None = None) -> int:
    """Run the nixos-systool CLI.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.
    environ:
        Environment snapshot.  When ``None`` (default), a copy of
        ``os.environ`` is taken.  Accepting both enables deterministic
        testing without monkeypatching.

    Returns
    -------
    int
        OS process exit code.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command in (None, "help"):
        parser.print_help()
        return exit_codes.SUCCESS

    _configure_logging(args.verbose)
    snapshot = dict(os.environ) if environ is None else dict(environ)
    return _handle_action(args, snapshot)


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def _running_as_root() -> bool:
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


def cli() -> None:
    """Top-level error boundary invoked by the console-script entry point.

    This function wraps :func:`main` and guarantees the process never
    exits with a raw stack trace during normal usage.
    """
    if _running_as_root():
        console.print(
            f"[bold red]Error:[/bold red] For security reasons, {PROG} must not be run as root"
        )
        sys.exit(exit_codes.GENERAL_ERROR)
    try:
        code = main()
        sys.exit(code)
    except SystoolError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        if exc.hint:
            console.print(f"[yellow]Hint:[/yellow] {escape(exc.hint)}")
        sys.exit(exit_codes.GENERAL_ERROR)
    except KeyboardInterrupt:
        console.print("\n[yellow]Aborted by user.[/yellow]")
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        console.print(
            "[bold red]Unexpected error.[/bold red] "
            "Please report this issue.\n"
            f"  {type(exc).__name__}: {escape(str(exc))}"
        )
        sys.exit(exit_codes.UNEXPECTED_ERROR)

