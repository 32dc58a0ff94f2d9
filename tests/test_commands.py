"""Tests for external command construction (core/commands.py).

These are pure transforms; no process is spawned.
"""

from __future__ import annotations

from pathlib import Path

from nixos_systool.core import commands
from nixos_systool.core.models import CleanSettings, PruneSettings, Settings

FLAKE = Path("/home/u/cfg")


def _settings(**overrides: object) -> Settings:
    defaults: dict[str, object] = {
        "flake_path": FLAKE,
        "current_flake_path": Path("/etc/current-system-flake"),
        "user": "alice",
    }
    defaults.update(overrides)
    return Settings(**defaults)  # type: ignore[arg-type]


class TestRebuildSpecs:
    def test_build_step(self) -> None:
        spec = commands.system_build_spec("nixos-rebuild", FLAKE)
        assert spec.args == ("nixos-rebuild", "--flake", "/home/u/cfg", "build")
        assert spec.cwd == FLAKE

    def test_nixos_activation_uses_remote_sudo(self) -> None:
        spec = commands.system_activate_spec("nixos-rebuild", FLAKE, "boot")
        assert spec.args == ("nixos-rebuild", "--use-remote-sudo", "--flake", "/home/u/cfg", "boot")

    def test_darwin_activation_has_no_sudo_flag(self) -> None:
        spec = commands.system_activate_spec("darwin-rebuild", FLAKE, "switch")
        assert spec.args == ("darwin-rebuild", "--flake", "/home/u/cfg", "switch")

    def test_home_manager_targets_user(self) -> None:
        spec = commands.home_manager_spec("switch", FLAKE, "alice")
        assert spec.args == ("home-manager", "switch", "--flake", "/home/u/cfg#alice")


class TestBuildSpec:
    def test_toplevel(self) -> None:
        spec = commands.nix_build_spec(FLAKE, "myhost", vm=False)
        assert spec.args[-1] == ".#nixosConfigurations.myhost.config.system.build.toplevel"
        assert "--print-out-paths" in spec.args
        assert spec.capture_output is True
        assert spec.cwd == FLAKE

    def test_vm(self) -> None:
        assert commands.build_attribute("myhost", vm=True).endswith(".vm")


class TestMaintenanceSpecs:
    def test_plain_clean(self) -> None:
        specs = commands.clean_specs(_settings())
        assert [s.args for s in specs] == [("nix", "store", "gc"), ("nix", "store", "optimise")]

    def test_clean_with_age_without_optimise(self) -> None:
        specs = commands.clean_specs(_settings(clean=CleanSettings(older_than_days=30, optimise=False)))
        assert [s.args for s in specs] == [("nix-collect-garbage", "--delete-older-than", "30d")]

    def test_prune_keeps_n(self) -> None:
        specs = commands.prune_specs(_settings(prune=PruneSettings(keep_generations=3)))
        assert specs[0].args == (
            "sudo", "nix-env", "--profile", "/nix/var/nix/profiles/system",
            "--delete-generations", "+3",
        )
        assert specs[1].args == ("sudo", "nix-collect-garbage")

    def test_prune_zero_deletes_all_old(self) -> None:
        specs = commands.prune_specs(_settings(prune=PruneSettings(keep_generations=0)))
        assert specs[0].args[-1] == "old"


class TestSearchSpecs:
    def test_package_search_is_json(self) -> None:
        spec = commands.package_search_spec("hello")
        assert spec.args == ("nix", "search", "nixpkgs", "hello", "--json")
        assert spec.capture_output is True

    def test_option_search_uses_manix(self) -> None:
        assert commands.option_search_spec(_settings(), "boot").args == ("manix", "boot")

    def test_browser_fills_template(self) -> None:
        s = _settings()
        spec = commands.browser_spec(s, s.web_search.nixos_pkg_search, "hello")
        assert spec.args == (
            "xdg-open",
            "https://search.nixos.org/packages?channel=unstable&query=hello",
        )


class TestGitHelpers:
    def test_untracked_files(self) -> None:
        output = " M flake.nix\n?? hosts/new.nix\n?? secrets.nix\n"
        assert commands.untracked_files(output) == ["hosts/new.nix", "secrets.nix"]

    def test_clean_tree(self) -> None:
        assert commands.untracked_files("") == []

    def test_commit_lock(self) -> None:
        specs = commands.git_commit_lock_specs(_settings())
        assert [s.args for s in specs] == [
            ("git", "add", "flake.lock"),
            ("git", "commit", "-m", "Update flake lock"),
        ]
        assert all(s.cwd == FLAKE for s in specs)
