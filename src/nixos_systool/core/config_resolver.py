"""Layered configuration resolution.

Four layers are merged, lowest to highest precedence:

1. built-in defaults (:func:`builtin_defaults`)
2. config file values (already parsed, see :mod:`nixos_systool.infra.config_file`)
3. environment variables (an explicit snapshot, never ``os.environ``)
4. CLI flags

Every layer is a flat mapping keyed by dotted names such as
``"notifications.enabled"``.  Any layer may omit any key; the highest
layer that sets a key wins.  The result is a frozen
:class:`~nixos_systool.core.models.Settings`.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from nixos_systool.core.models import (
    CleanSettings,
    ExternalCommandSettings,
    NotificationSettings,
    PruneSettings,
    Settings,
    SystemCheckSettings,
    WebSearchSettings,
)
from nixos_systool.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CURRENT_FLAKE_PATH = "/etc/current-system-flake"

FLAKE_PATH_ENV = "SYS_FLAKE_PATH"

# Environment variable → dotted settings key.
ENV_KEYS: dict[str, str] = {
    FLAKE_PATH_ENV: "flake_path",
    "SYS_CURRENT_FLAKE_PATH": "current_flake_path",
    "SYSTOOL_NOTIFICATIONS": "notifications.enabled",
    "SYSTOOL_PRUNE_KEEP": "prune.keep_generations",
}

# Dotted settings key → value kind.
SCHEMA: dict[str, str] = {
    "flake_path": "str",
    "current_flake_path": "str",
    "user": "str",
    "notifications.enabled": "bool",
    "notifications.success_timeout": "int",
    "notifications.failure_timeout": "int",
    "system_check.allowed_age": "int",
    "system_check.date_format": "str",
    "system_check.warn_untracked": "bool",
    "external_commands.browser_open": "str",
    "external_commands.git": "str",
    "external_commands.manix": "str",
    "web_search.nixos_pkg_search": "str",
    "web_search.nixos_option_search": "str",
    "web_search.home_manager_search": "str",
    "prune.keep_generations": "int",
    "prune.confirm": "bool",
    "prune.profile": "str",
    "clean.older_than_days": "optional_int",
    "clean.optimise": "bool",
}

# Older names still accepted in config files, mapped onto their current key.
KEY_ALIASES: dict[str, str] = {
    "system_check.current_system_flake_path": "current_flake_path",
}

_SECTIONS: dict[str, type[Any]] = {
    "notifications": NotificationSettings,
    "system_check": SystemCheckSettings,
    "external_commands": ExternalCommandSettings,
    "web_search": WebSearchSettings,
    "prune": PruneSettings,
    "clean": CleanSettings,
}

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})


# ---------------------------------------------------------------------------
# Layers
# ---------------------------------------------------------------------------

def builtin_defaults(*, user: str, platform_system: str) -> dict[str, Any]:
    """Return the lowest-precedence layer.

    ``flake_path`` has no default: it must come from a
    higher layer.
    """
    browser_open = "xdg-open" if platform_system.lower() == "linux" else "open"
    return {
        "current_flake_path": DEFAULT_CURRENT_FLAKE_PATH,
        "user": user,
        "external_commands.browser_open": browser_open,
    }


def flatten(table: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested TOML tables into dotted keys."""
    flat: dict[str, Any] = {}
    for key, value in table.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, Mapping):
            flat.update(flatten(value, prefix=f"{dotted}."))
        else:
            flat[dotted] = value
    return flat


def file_layer(file_values: Mapping[str, Any]) -> dict[str, Any]:
    """Flatten a parsed config file into known dotted keys.

    Aliased keys are renamed; when both an alias and its current key are
    present the current key wins.  Unknown keys are logged and dropped so
    config files written for other versions keep loading.
    """
    flat = flatten(file_values)
    layer: dict[str, Any] = {}
    for key, value in flat.items():
        target = KEY_ALIASES.get(key, key)
        if target != key and target in flat:
            continue
        if target not in SCHEMA:
            logger.warning("ignoring unknown configuration key %r", key)
            continue
        layer[target] = value
    return layer


def env_layer(environ: Mapping[str, str]) -> dict[str, Any]:
    """Pick recognised variables out of an environment snapshot.

    Empty values are treated as unset.
    """
    return {
        key: environ[var]
        for var, key in ENV_KEYS.items()
        if environ.get(var, "") != ""
    }


def merge_layers(*layers: Mapping[str, Any]) -> dict[str, Any]:
    """Merge layers given lowest precedence first.

    ``None`` values mean "not set by this layer" and never override.
    """
    merged: dict[str, Any] = {}
    for layer in layers:
        for key, value in layer.items():
            if value is not None:
                merged[key] = value
    return merged


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------

def _coerce(key: str, value: Any) -> Any:
    kind = SCHEMA.get(key)
    if kind is None:
        raise ConfigError(key, "unknown configuration key")

    if kind == "str":
        if not isinstance(value, str):
            raise ConfigError(key, f"expected a string, got {value!r}")
        return value

    if kind == "bool":
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in _TRUE | _FALSE:
            return value.strip().lower() in _TRUE
        raise ConfigError(key, f"expected a boolean, got {value!r}")

    # int / optional_int
    if kind == "optional_int" and isinstance(value, str) and value.strip().lower() in {"", "none"}:
        return None
    if isinstance(value, bool):
        raise ConfigError(key, f"expected an integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(key, f"expected an integer, got {value!r}") from exc
    if number < 0:
        raise ConfigError(key, f"must not be negative, got {number}")
    return number


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def resolve_settings(
    defaults: Mapping[str, Any],
    file_values: Mapping[str, Any],
    environ: Mapping[str, str],
    cli_flags: Mapping[str, Any],
    *,
    config_file: Path | None = None,
) -> Settings:
    """Merge all layers and validate the result.

    Parameters
    ----------
    defaults:
        Built-in defaults, flat dotted keys.
    file_values:
        Parsed config file; see :func:`file_layer`.
    environ:
        Environment snapshot; only :data:`ENV_KEYS` are consulted.
    cli_flags:
        Flat dotted keys from the command line.  ``None`` means unset.
    config_file:
        Path of the file that supplied *file_values*, for display.

    Raises
    ------
    ConfigError
        On badly typed values, or a missing/nonexistent
        ``flake_path``.
    """
    merged = merge_layers(defaults, file_layer(file_values), env_layer(environ), cli_flags)
    values = {key: _coerce(key, value) for key, value in merged.items()}

    flake_path = str(values.get("flake_path", "")).strip()
    if not flake_path:
        raise ConfigError(
            "flake_path",
            "no system flake path configured",
            hint=f"Pass --flake-path, set {FLAKE_PATH_ENV}, or add flake_path to the config file.",
        )
    resolved_flake = Path(flake_path).expanduser()
    if not resolved_flake.exists():
        raise ConfigError("flake_path", f"{resolved_flake} does not exist")

    sections: dict[str, Any] = {}
    for section, section_type in _SECTIONS.items():
        prefix = f"{section}."
        sections[section] = section_type(
            **{
                key[len(prefix):]: value
                for key, value in values.items()
                if key.startswith(prefix)
            }
        )

    return Settings(
        flake_path=resolved_flake,
        current_flake_path=Path(values.get("current_flake_path", DEFAULT_CURRENT_FLAKE_PATH)).expanduser(),
        user=values.get("user", ""),
        config_file=config_file,
        **sections,
    )
