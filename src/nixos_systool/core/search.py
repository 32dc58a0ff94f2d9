"""Parsing of ``nix search --json`` output into search results."""

from __future__ import annotations

import json

from nixos_systool.core.models import SearchResult
from nixos_systool.exceptions import ExternalToolError

_ATTR_ROOTS: tuple[str, ...] = ("legacyPackages", "packages")


def short_attr_name(attr_path: str) -> str:
    """Strip the ``legacyPackages.<system>.`` prefix from an attribute path."""
    parts = attr_path.split(".", 2)
    if len(parts) == 3 and parts[0] in _ATTR_ROOTS:
        return parts[2]
    return attr_path


def parse_search_json(text: str | None) -> tuple[SearchResult, ...]:
    """Convert ``nix search --json`` stdout into an ordered result set.

    Empty output and ``{}`` both mean "no matches".

    Raises
    ------
    ExternalToolError
        When the output is not a JSON object.
    """
    if text is None or not text.strip():
        return ()
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ExternalToolError(
            f"Could not parse nix search output: {exc}",
        ) from exc
    if not isinstance(raw, dict):
        raise ExternalToolError("nix search returned an unexpected data structure.")

    results = [
        SearchResult(
            name=short_attr_name(attr),
            version=str(entry.get("version") or ""),
            description=str(entry.get("description") or ""),
        )
        for attr, entry in raw.items()
        if isinstance(entry, dict)
    ]
    return tuple(sorted(results, key=lambda r: r.name))
