"""Pure generation comparison logic.

Staleness is identity-based: two references are the same generation when
their identifiers match exactly.  No ordering or version semantics are
attempted, so a current generation that is *ahead* of the latest one is
stale too.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from nixos_systool.core.models import GenerationReference
from nixos_systool.exceptions import ExternalToolError


def is_stale(current: GenerationReference, latest: GenerationReference) -> bool:
    """Return ``True`` when *current* and *latest* differ in identity."""
    return current.identifier != latest.identifier


def timestamp_from_epoch(value: object) -> datetime | None:
    """Convert a nix ``lastModified`` epoch to an aware UTC datetime."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


def reference_from_metadata(metadata: dict[str, Any]) -> GenerationReference:
    """Build a reference from ``nix flake metadata --json`` output.

    Raises
    ------
    ExternalToolError
        When the metadata carries no store ``path``.
    """
    path = metadata.get("path")
    if not isinstance(path, str) or not path:
        raise ExternalToolError(
            "nix flake metadata returned no store path.",
            command_line="nix flake metadata --json",
        )
    return GenerationReference(
        identifier=path,
        timestamp=timestamp_from_epoch(metadata.get("lastModified")),
    )
