"""Infrastructure: locating and parsing the TOML config file.

Rules
-----
* Environment lookups go through an explicit snapshot argument.
* A missing *optional* config file is not an error.
* TOML syntax errors surface as :class:`~nixos_systool.exceptions.ConfigError`.
"""

from __future__ import annotations

import platform
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import platformdirs
from platformdirs.macos import MacOS
from platformdirs.unix import Unix

from nixos_systool.exceptions import ConfigError

APP_DIR_NAME = "nixos-systool"
CONFIG_FILE_NAME = "config.toml"
CONFIG_PATH_ENV = "SYSTOOL_CONFIG"


def _platform_dirs(system: str) -> platformdirs.PlatformDirsABC:
    if system == "Darwin":
        return MacOS(APP_DIR_NAME)
    if system == "Windows":
        return platformdirs.PlatformDirs(APP_DIR_NAME)
    return Unix(APP_DIR_NAME)


def default_config_path(environ: Mapping[str, str], *, system: str | None = None) -> Path:
    """Return the platform-standard location of ``config.toml``.

    That is ``~/Library/Application Support/nixos-systool`` on macOS and
    ``$XDG_CONFIG_HOME/nixos-systool`` (default ``~/.config``) elsewhere.
    ``XDG_CONFIG_HOME`` is taken from the *environ* snapshot.
    """
    system = system or platform.system()
    xdg_config_home = environ.get("XDG_CONFIG_HOME")
    if xdg_config_home and system not in ("Darwin", "Windows"):
        return Path(xdg_config_home) / APP_DIR_NAME / CONFIG_FILE_NAME
    return _platform_dirs(system).user_config_path / CONFIG_FILE_NAME


def locate_config_file(
    explicit: str | None,
    environ: Mapping[str, str],
) -> tuple[Path, bool]:
    """Pick the config file location and whether it must exist.

    Precedence: ``--config`` flag, then ``SYSTOOL_CONFIG``, then the
    platform default.  Only the first two are mandatory.
    """
    if explicit:
        return Path(explicit).expanduser(), True
    from_env = environ.get(CONFIG_PATH_ENV)
    if from_env:
        return Path(from_env).expanduser(), True
    return default_config_path(environ), False


def load_config_file(path: Path, *, required: bool = False) -> dict[str, Any]:
    """Parse *path* as TOML.

    Returns an empty mapping when the file is absent and not *required*.

    Raises
    ------
    ConfigError
        When a required file is missing, unreadable, or not valid TOML.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        if not required:
            return {}
        raise ConfigError("config", f"config file {path} does not exist") from exc
    except OSError as exc:
        raise ConfigError("config", f"cannot read config file {path}: {exc}") from exc

    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError("config", f"invalid TOML in {path}: {exc}") from exc
