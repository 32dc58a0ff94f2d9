"""Infrastructure: operating-system probing.

Decides which system rebuild tool applies on this host.  Detection reads
``/etc/os-release`` and :func:`platform.system` only, with no subprocess.
"""

from __future__ import annotations

import platform
from pathlib import Path

from nixos_systool.core.commands import DARWIN_REBUILD, NIXOS_REBUILD
from nixos_systool.exceptions import UnsupportedSystemError

OS_RELEASE = Path("/etc/os-release")


def _os_release_id(path: Path = OS_RELEASE) -> str | None:
    """Return the ``ID`` field of an os-release file, if readable."""
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError:
        return None
    for line in lines:
        key, _, value = line.partition("=")
        if key.strip() == "ID":
            return value.strip().strip('"').lower()
    return None


def os_name(os_release: Path = OS_RELEASE) -> str:
    """Human-readable name of the running OS family."""
    system = platform.system()
    if system == "Darwin":
        return "macOS"
    if system == "Linux":
        return "NixOS" if _os_release_id(os_release) == "nixos" else "Linux"
    return system or "unknown"


def rebuild_tool(command: str, os_release: Path = OS_RELEASE) -> str:
    """Return the rebuild binary for this host.

    Raises
    ------
    UnsupportedSystemError
        On anything but NixOS or macOS.
    """
    name = os_name(os_release)
    if name == "NixOS":
        return NIXOS_REBUILD
    if name == "macOS":
        return DARWIN_REBUILD
    raise UnsupportedSystemError(
        f"Cannot `{command}` on {name} systems",
        hint="System activation requires NixOS or nix-darwin.",
    )
