"""Shared pytest fixtures and configuration for the nixos-systool test suite.

Guidelines
----------
* No real ``nix``, ``git`` or notification daemon is ever invoked.
* Subprocess boundaries are mocked at the infra layer; dispatcher tests
  use :class:`FakeRunner` and :class:`RecordingNotifier`.
* Tests must not depend on the user's config file or environment.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from nixos_systool.cli.dispatcher import ConfigSources, Dispatcher
from nixos_systool.core.config_resolver import builtin_defaults
from nixos_systool.core.models import CommandResult, CommandSpec


class FakeRunner:
    """Scripted :class:`CommandRunner`.

    ``responses`` maps an argument prefix to ``(exit_code, output)``; the
    longest matching prefix wins and unmatched commands succeed silently.
    """

    def __init__(self, responses: dict[tuple[str, ...], tuple[int, str | None]] | None = None) -> None:
        self.responses = responses or {}
        self.calls: list[CommandSpec] = []

    def run(self, spec: CommandSpec) -> CommandResult:
        self.calls.append(spec)
        best: tuple[str, ...] | None = None
        for prefix in self.responses:
            if spec.args[: len(prefix)] == prefix and (best is None or len(prefix) > len(best)):
                best = prefix
        code, output = self.responses[best] if best is not None else (0, None)
        return CommandResult(spec=spec, exit_code=code, output=output)

    def commands(self) -> list[tuple[str, ...]]:
        return [spec.args for spec in self.calls]


@dataclass
class RecordingNotifier:
    sent: list[dict[str, Any]] = field(default_factory=list)

    def notify(self, title: str, body: str, *, timeout: int, critical: bool = False) -> None:
        self.sent.append({"title": title, "body": body, "timeout": timeout, "critical": critical})


@pytest.fixture
def flake_dir(tmp_path: Path) -> Path:
    path = tmp_path / "cfg"
    path.mkdir()
    return path


@pytest.fixture
def make_sources(flake_dir: Path) -> Callable[..., ConfigSources]:
    """Build config sources for *flake_dir* with git checks disabled."""

    def _make(
        *,
        file_values: dict[str, Any] | None = None,
        environ: dict[str, str] | None = None,
        **flags: Any,
    ) -> ConfigSources:
        cli_flags: dict[str, Any] = {
            "flake_path": str(flake_dir),
            "system_check.warn_untracked": False,
        }
        cli_flags.update(flags)
        return ConfigSources(
            defaults=builtin_defaults(user="alice", platform_system="Linux"),
            file_values=file_values or {},
            environ=environ or {},
            cli_flags=cli_flags,
        )

    return _make


@pytest.fixture
def make_dispatcher() -> Callable[..., tuple[Dispatcher, FakeRunner, RecordingNotifier]]:
    def _make(
        responses: dict[tuple[str, ...], tuple[int, str | None]] | None = None,
        **kwargs: Any,
    ) -> tuple[Dispatcher, FakeRunner, RecordingNotifier]:
        runner = FakeRunner(responses)
        notifier = RecordingNotifier()
        kwargs.setdefault("rebuild_tool_lookup", lambda _cmd: "nixos-rebuild")
        kwargs.setdefault("hostname", lambda: "myhost")
        kwargs.setdefault("interactive", lambda: False)
        return Dispatcher(runner, notifier, **kwargs), runner, notifier

    return _make
