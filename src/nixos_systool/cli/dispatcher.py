"""Action dispatch: one handler per subcommand.

A :class:`Dispatcher` drives a single invocation through a fixed,
sequential state machine::

    IDLE → RESOLVING → EXECUTING → REPORTING → DONE

* **RESOLVING** merges the configuration layers into
  :class:`~nixos_systool.core.models.Settings`.  A
  :class:`~nixos_systool.exceptions.ConfigError` here stops the run
  before any process is spawned.
* **EXECUTING** runs the handler.  Handlers build
  :class:`~nixos_systool.core.models.CommandSpec` values via
  :mod:`nixos_systool.core.commands` and run them through the injected
  :class:`~nixos_systool.core.protocols.CommandRunner`.
* **REPORTING** renders a failure report when needed and sends at most
  one best-effort desktop notification.

The outcome is decided by the command results alone: the first failed
command raises :class:`~nixos_systool.exceptions.CommandFailure`, which
short-circuits the rest of the handler.
"""

from __future__ import annotations

import enum
import logging
import socket
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from nixos_systool.cli import exit_codes, presentation
from nixos_systool.cli.console import console, out
from nixos_systool.core import commands
from nixos_systool.core.config_resolver import resolve_settings
from nixos_systool.core.flake_lock import diff_locks, lock_age_status
from nixos_systool.core.generation import is_stale
from nixos_systool.core.models import ActionRequest, CommandResult, CommandSpec, Settings
from nixos_systool.core.protocols import CommandRunner, Notifier
from nixos_systool.core.search import parse_search_json
from nixos_systool.exceptions import (
    CommandFailure,
    ExternalToolError,
    InvalidOptionsError,
    NotFoundError,
    SystoolError,
    UntrackedFilesError,
)
from nixos_systool.infra.generation_inspector import GenerationInspector
from nixos_systool.infra.lock_file import lock_path, read_lock
from nixos_systool.infra.system_info import rebuild_tool

logger = logging.getLogger(__name__)


class DispatchState(enum.Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    EXECUTING = "executing"
    REPORTING = "reporting"
    DONE = "done"


@dataclass(frozen=True, slots=True)
class ConfigSources:
    """The raw configuration layers for one invocation."""

    defaults: Mapping[str, Any]
    file_values: Mapping[str, Any] = field(default_factory=dict)
    environ: Mapping[str, str] = field(default_factory=dict)
    cli_flags: Mapping[str, Any] = field(default_factory=dict)
    config_file: Path | None = None


@dataclass(frozen=True, slots=True)
class ActionOutcome:
    succeeded: bool
    exit_code: int = exit_codes.SUCCESS
    notify: bool = True
    """``False`` suppresses the completion notification (e.g. cancelled)."""


# Long-running actions that announce completion on the desktop.
NOTIFYING_ACTIONS: frozenset[str] = frozenset({"apply", "apply-user", "build", "clean", "prune"})

# Actions that change system or repository state from the flake.
MUTATING_ACTIONS: frozenset[str] = frozenset({"apply", "apply-user", "build", "clean", "prune"})


def _default_now() -> datetime:
    return datetime.now(timezone.utc)


class Dispatcher:
    """Maps a subcommand to its handler and reports the outcome.

    Parameters
    ----------
    runner:
        Executes external commands.
    notifier:
        Best-effort desktop notifications.
    inspector_factory:
        Builds a generation inspector from resolved settings.
    rebuild_tool_lookup:
        Returns the system rebuild binary or raises
        :class:`~nixos_systool.exceptions.UnsupportedSystemError`.
    """

    def __init__(
        self,
        runner: CommandRunner,
        notifier: Notifier,
        *,
        inspector_factory: Callable[[Settings], GenerationInspector] | None = None,
        rebuild_tool_lookup: Callable[[str], str] = rebuild_tool,
        hostname: Callable[[], str] = socket.gethostname,
        confirm: Callable[[str], bool] | None = None,
        interactive: Callable[[], bool] | None = None,
        now: Callable[[], datetime] = _default_now,
    ) -> None:
        self._runner: CommandRunner = runner
        self._notifier: Notifier = notifier
        self._inspector_factory = inspector_factory or (
            lambda settings: GenerationInspector(settings.current_flake_path, runner)
        )
        self._rebuild_tool_lookup = rebuild_tool_lookup
        self._hostname = hostname
        self._confirm = confirm
        self._interactive = interactive
        self._now = now
        self.state: DispatchState = DispatchState.IDLE
        self.settings: Settings | None = None

        self._handlers: dict[str, Callable[[ActionRequest, Settings], ActionOutcome]] = {
            "apply": self._apply,
            "apply-user": self._apply_user,
            "build": self._build,
            "clean": self._clean,
            "prune": self._prune,
            "search": self._search,
            "update": self._update,
            "check": self._check,
            "print-config": self._print_config,
        }

    @property
    def actions(self) -> list[str]:
        return list(self._handlers)

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _enter(self, state: DispatchState) -> None:
        logger.debug("dispatch state %s → %s", self.state.value, state.value)
        self.state = state

    def run(self, request: ActionRequest, sources: ConfigSources) -> int:
        """Resolve settings, execute *request*, report, return the exit code.

        Raises
        ------
        SystoolError
            Configuration problems, missing references, spawn failures and
            pre-flight check failures propagate to the CLI error boundary
            (after the failure notification, where applicable).
        """
        handler = self._handlers.get(request.name)
        if handler is None:
            raise InvalidOptionsError(f"Unknown command: {request.name}")

        self._enter(DispatchState.RESOLVING)
        settings = resolve_settings(
            sources.defaults,
            sources.file_values,
            sources.environ,
            sources.cli_flags,
            config_file=sources.config_file,
        )
        self.settings = settings

        self._enter(DispatchState.EXECUTING)
        try:
            if request.name in MUTATING_ACTIONS:
                self._check_untracked_files(settings)
            outcome = handler(request, settings)
        except CommandFailure as exc:
            self._enter(DispatchState.REPORTING)
            for line in presentation.failure_report(exc.result):
                console.print(line, soft_wrap=True)
            self._notify(request.name, settings, succeeded=False)
            self._enter(DispatchState.DONE)
            return exit_codes.from_child(exc.result.exit_code)
        except SystoolError:
            self._enter(DispatchState.REPORTING)
            self._notify(request.name, settings, succeeded=False)
            self._enter(DispatchState.DONE)
            raise

        self._enter(DispatchState.REPORTING)
        if outcome.notify:
            self._notify(request.name, settings, succeeded=outcome.succeeded)
        self._enter(DispatchState.DONE)
        return outcome.exit_code

    def _notify(self, action: str, settings: Settings, *, succeeded: bool) -> None:
        if action not in NOTIFYING_ACTIONS or not settings.notifications.enabled:
            return
        cfg = settings.notifications
        try:
            self._notifier.notify(
                presentation.NOTIFICATION_TITLE,
                presentation.notification_body(action, succeeded=succeeded),
                timeout=cfg.success_timeout if succeeded else cfg.failure_timeout,
                critical=not succeeded,
            )
        except Exception as exc:  # noqa: BLE001
            logger.debug("notifier raised: %s", exc)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _run_checked(self, spec: CommandSpec) -> CommandResult:
        """Run *spec*; raise :class:`CommandFailure` on a nonzero exit."""
        if spec.description:
            console.print(presentation.info(spec.description))
        result = self._runner.run(spec)
        if result.failed:
            raise CommandFailure(result)
        return result

    def _check_untracked_files(self, settings: Settings) -> None:
        """Refuse to act on a flake with files git does not know about.

        Untracked files are invisible to flake evaluation, which usually
        causes confusing build errors.  When git itself fails (e.g. not a
        repository) the check is skipped.
        """
        if not settings.system_check.warn_untracked:
            return
        try:
            result = self._runner.run(commands.git_status_spec(settings))
        except ExternalToolError as exc:
            logger.debug("skipping untracked-file check: %s", exc)
            return
        if result.failed:
            return
        untracked = commands.untracked_files(result.output or "")
        if untracked:
            raise UntrackedFilesError(
                "Untracked files in flake:\n" + "\n".join(untracked),
                hint="`git add` them (or remove them) so the flake can see them.",
            )

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _apply(self, request: ActionRequest, settings: Settings) -> ActionOutcome:
        tool = self._rebuild_tool_lookup("apply")
        method = request.method or "switch"
        self._run_checked(commands.system_build_spec(tool, settings.flake_path))
        if method != "build":
            self._run_checked(commands.system_activate_spec(tool, settings.flake_path, method))
        console.print(presentation.success("System configuration applied."))
        return ActionOutcome(succeeded=True)

    def _apply_user(self, request: ActionRequest, settings: Settings) -> ActionOutcome:
        console.print(presentation.info(f"Applying user settings for '{settings.user}'"))
        self._run_checked(commands.home_manager_spec("build", settings.flake_path, settings.user))
        self._run_checked(commands.home_manager_spec("switch", settings.flake_path, settings.user))
        console.print(presentation.success("User configuration applied."))
        return ActionOutcome(succeeded=True)

    def _build(self, request: ActionRequest, settings: Settings) -> ActionOutcome:
        system = request.system or self._hostname()
        result = self._run_checked(
            commands.nix_build_spec(settings.flake_path, system, vm=request.vm),
        )
        result_path = next(
            (line.strip() for line in (result.output or "").splitlines() if line.strip()),
            None,
        )
        if result_path:
            out.print(result_path, markup=False, highlight=False, soft_wrap=True)
        console.print(
            presentation.build_result_message(
                result_path, str(settings.flake_path), system, vm=request.vm,
            )
        )
        return ActionOutcome(succeeded=True)

    def _clean(self, request: ActionRequest, settings: Settings) -> ActionOutcome:
        for spec in commands.clean_specs(settings):
            self._run_checked(spec)
        return ActionOutcome(succeeded=True)

    def _prune(self, request: ActionRequest, settings: Settings) -> ActionOutcome:
        keep = settings.prune.keep_generations
        if settings.prune.confirm and not request.assume_yes and self._is_interactive():
            question = (
                f"Delete all but the last {keep} system generations?"
                if keep > 0
                else "Delete ALL old system generations?"
            )
            if not self._ask(question):
                console.print(presentation.warn("Prune cancelled."))
                return ActionOutcome(succeeded=True, notify=False)
        for spec in commands.prune_specs(settings):
            self._run_checked(spec)
        return ActionOutcome(succeeded=True)

    def _search(self, request: ActionRequest, settings: Settings) -> ActionOutcome:
        query = request.query
        web = settings.web_search
        if request.home_manager:
            if request.options or request.browser:
                raise InvalidOptionsError(
                    "cannot use --home-manager with other options",
                    hint="--home-manager always searches in the browser.",
                )
            console.print(presentation.info(f"Searching home-manager for '{query}'"))
            self._run_checked(commands.browser_spec(settings, web.home_manager_search, query))
            return ActionOutcome(succeeded=True)

        if request.options:
            if request.browser:
                self._run_checked(commands.browser_spec(settings, web.nixos_option_search, query))
            else:
                self._run_checked(commands.option_search_spec(settings, query))
            return ActionOutcome(succeeded=True)

        if request.browser:
            self._run_checked(commands.browser_spec(settings, web.nixos_pkg_search, query))
            return ActionOutcome(succeeded=True)

        result = self._run_checked(commands.package_search_spec(query))
        results = parse_search_json(result.output)
        out.print(presentation.search_table(results, query))
        return ActionOutcome(succeeded=True)

    def _update(self, request: ActionRequest, settings: Settings) -> ActionOutcome:
        path = lock_path(settings.flake_path)
        before: dict[str, Any] = read_lock(path) if path.exists() else {}
        self._run_checked(commands.flake_update_spec(settings.flake_path))
        after = read_lock(path)
        changes = diff_locks(before, after)
        for line in presentation.input_changes_report(changes):
            console.print(line)
        if changes:
            for spec in commands.git_commit_lock_specs(settings):
                self._run_checked(spec)
        return ActionOutcome(succeeded=True)

    def _check(self, request: ActionRequest, settings: Settings) -> ActionOutcome:
        inspector = self._inspector_factory(settings)
        current = inspector.current_reference()
        latest = inspector.latest_reference(settings.flake_path)
        stale = is_stale(current, latest)

        for line in presentation.staleness_report(
            current, latest, stale=stale, date_format=settings.system_check.date_format,
        ):
            console.print(line)

        self._report_lock_age(request, settings, inspector)
        return ActionOutcome(
            succeeded=not stale,
            exit_code=exit_codes.STALE if stale else exit_codes.SUCCESS,
        )

    def _report_lock_age(
        self,
        request: ActionRequest,
        settings: Settings,
        inspector: GenerationInspector,
    ) -> None:
        """Print nixpkgs age advice; never affects the exit code."""
        check = settings.system_check
        now = self._now()
        current_lock = inspector.current_lock()
        if current_lock is not None:
            try:
                status = lock_age_status(current_lock, allowed_age=check.allowed_age, now=now)
            except NotFoundError as exc:
                console.print(presentation.warn(str(exc)))
            else:
                console.print(
                    presentation.lock_age_report(
                        status, label="System flake", date_format=check.date_format,
                    )
                )
            return

        if not request.no_warning:
            for line in presentation.missing_current_flake_warning(str(settings.current_flake_path)):
                console.print(line)
        try:
            repo_lock = read_lock(lock_path(settings.flake_path))
            status = lock_age_status(repo_lock, allowed_age=check.allowed_age, now=now)
        except NotFoundError as exc:
            console.print(presentation.warn(str(exc)))
            return
        console.print(
            presentation.lock_age_report(status, label="Config flake", date_format=check.date_format)
        )

    def _print_config(self, request: ActionRequest, settings: Settings) -> ActionOutcome:
        out.print(presentation.settings_toml(settings), markup=False, highlight=False, soft_wrap=True)
        return ActionOutcome(succeeded=True)

    # ------------------------------------------------------------------
    # Interaction
    # ------------------------------------------------------------------

    def _is_interactive(self) -> bool:
        if self._interactive is not None:
            return self._interactive()
        from nixos_systool.cli.prompts import is_interactive

        return is_interactive()

    def _ask(self, question: str) -> bool:
        if self._confirm is not None:
            return self._confirm(question)
        from nixos_systool.cli.prompts import confirm

        return confirm(question)
