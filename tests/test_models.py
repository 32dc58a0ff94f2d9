"""Tests for domain models (core/models.py).

All models are frozen dataclasses; these tests verify immutability,
derived properties, and TOML-ready rendering.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from nixos_systool.core.models import (
    CleanSettings,
    CommandResult,
    CommandSpec,
    GenerationReference,
    Settings,
)


def _settings(**overrides: object) -> Settings:
    defaults: dict[str, object] = {
        "flake_path": Path("/home/u/cfg"),
        "current_flake_path": Path("/etc/current-system-flake"),
        "user": "alice",
    }
    defaults.update(overrides)
    return Settings(**defaults)  # type: ignore[arg-type]


class TestSettings:
    def test_frozen(self) -> None:
        s = _settings()
        with pytest.raises(AttributeError):
            s.user = "bob"  # type: ignore[misc]

    def test_section_defaults(self) -> None:
        s = _settings()
        assert s.notifications.enabled is True
        assert s.notifications.success_timeout == 10
        assert s.notifications.failure_timeout == 60
        assert s.system_check.allowed_age == 14
        assert s.system_check.date_format == "%-e %B, %Y"
        assert s.prune.keep_generations == 5

    def test_as_dict_stringifies_paths(self) -> None:
        data = _settings().as_dict()
        assert data["flake_path"] == "/home/u/cfg"
        assert data["notifications"]["enabled"] is True

    def test_as_dict_drops_unset_values(self) -> None:
        data = _settings(clean=CleanSettings(older_than_days=None)).as_dict()
        assert "config_file" not in data
        assert "older_than_days" not in data["clean"]


class TestCommandSpec:
    def test_command_line_is_shell_quoted(self) -> None:
        spec = CommandSpec(args=("git", "commit", "-m", "Update flake lock"))
        assert spec.command_line == "git commit -m 'Update flake lock'"

    def test_defaults(self) -> None:
        spec = CommandSpec(args=("nix",))
        assert spec.cwd is None
        assert spec.capture_output is False


class TestCommandResult:
    def test_zero_exit_is_not_failed(self) -> None:
        assert not CommandResult(spec=CommandSpec(args=("true",)), exit_code=0).failed

    def test_nonzero_exit_is_failed(self) -> None:
        assert CommandResult(spec=CommandSpec(args=("false",)), exit_code=1).failed


class TestGenerationReference:
    def test_equality_by_value(self) -> None:
        assert GenerationReference("gen-41") == GenerationReference("gen-41")

    def test_timestamp_optional(self) -> None:
        assert GenerationReference("gen-41").timestamp is None
