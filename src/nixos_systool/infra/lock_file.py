"""Infrastructure: reading ``flake.lock`` files from disk."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from nixos_systool.exceptions import NotFoundError

LOCK_FILE_NAME = "flake.lock"


def lock_path(flake_dir: Path) -> Path:
    return flake_dir / LOCK_FILE_NAME


def read_lock(path: Path) -> dict[str, Any]:
    """Load and parse a flake lock file.

    Raises
    ------
    NotFoundError
        When the file is missing, unreadable, or not a JSON object.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise NotFoundError(f"Couldn't read lock file {path}: {exc}") from exc
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as exc:
        raise NotFoundError(f"Failed to parse lock file JSON {path}: {exc}") from exc
    if not isinstance(parsed, dict):
        raise NotFoundError(f"Lock file {path} is not a JSON object.")
    return parsed
