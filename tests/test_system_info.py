"""Tests for OS detection and rebuild-tool selection."""

from __future__ import annotations

from pathlib import Path

import pytest

from nixos_systool.infra import system_info
from nixos_systool.exceptions import UnsupportedSystemError


@pytest.fixture
def os_release(tmp_path: Path):
    def _write(content: str) -> Path:
        path = tmp_path / "os-release"
        path.write_text(content, encoding="utf-8")
        return path

    return _write


def test_os_release_id_quoted(os_release) -> None:
    path = os_release('NAME="NixOS"\nID="nixos"\nVERSION_ID="24.05"\n')
    assert system_info._os_release_id(path) == "nixos"


def test_os_release_id_missing_file(tmp_path: Path) -> None:
    assert system_info._os_release_id(tmp_path / "absent") is None


def test_nixos_uses_nixos_rebuild(os_release, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(system_info.platform, "system", lambda: "Linux")
    assert system_info.rebuild_tool("apply", os_release("ID=nixos\n")) == "nixos-rebuild"


def test_macos_uses_darwin_rebuild(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(system_info.platform, "system", lambda: "Darwin")
    assert system_info.os_name(tmp_path / "absent") == "macOS"
    assert system_info.rebuild_tool("apply", tmp_path / "absent") == "darwin-rebuild"


def test_other_linux_is_unsupported(os_release, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(system_info.platform, "system", lambda: "Linux")
    with pytest.raises(UnsupportedSystemError, match="Cannot `apply` on Linux systems"):
        system_info.rebuild_tool("apply", os_release("ID=debian\n"))


def test_windows_is_unsupported(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(system_info.platform, "system", lambda: "Windows")
    with pytest.raises(UnsupportedSystemError, match="Windows"):
        system_info.rebuild_tool("apply", tmp_path / "absent")
