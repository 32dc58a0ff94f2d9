"""nixos-systool: NixOS system flake management tool.

A single entry point over ``nixos-rebuild``, ``home-manager``, ``nix`` and
friends, with layered configuration and desktop notifications.
"""

from nixos_systool.version import __version__

__all__: list[str] = ["__version__"]
