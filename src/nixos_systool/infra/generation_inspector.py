"""Infrastructure: reading generation references.

The *current* reference comes from a well-known path owned by the system
rebuild (``/etc/current-system-flake`` by default); the *latest* one comes
from ``nix flake metadata`` on the configuration repository.  This module
only reads; it never writes either location.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from nixos_systool.core.commands import flake_metadata_spec
from nixos_systool.core.flake_lock import last_modified
from nixos_systool.core.generation import reference_from_metadata
from nixos_systool.core.models import GenerationReference
from nixos_systool.core.protocols import CommandRunner
from nixos_systool.exceptions import ExternalToolError, NotFoundError, SystoolError
from nixos_systool.infra.lock_file import lock_path, read_lock

logger = logging.getLogger(__name__)


class GenerationInspector:
    """Reads the active and the candidate generation references.

    Parameters
    ----------
    current_flake_path:
        Well-known location of the active generation marker.
    runner:
        Used to query ``nix flake metadata``.
    """

    def __init__(self, current_flake_path: Path, runner: CommandRunner) -> None:
        self._current_flake_path: Path = current_flake_path
        self._runner: CommandRunner = runner

    def current_reference(self) -> GenerationReference:
        """Return the reference of the running system.

        A directory (usually a symlink into the Nix store) is identified
        by its resolved path; a regular file by its first non-empty line.

        Raises
        ------
        NotFoundError
            When the marker does not exist or cannot be read.
        """
        path = self._current_flake_path
        if not path.exists():
            raise NotFoundError(
                f"Current system flake reference {path} does not exist.",
                hint=(
                    "Add the following to your nixosSystem configuration:\n"
                    '    environment.etc."current-system-flake".source = inputs.self;'
                ),
            )
        if path.is_dir():
            return self._directory_reference(path)
        return self._file_reference(path)

    def current_lock(self) -> dict[str, Any] | None:
        """Return the lock file of the running system's flake, if any."""
        if not self._current_flake_path.is_dir():
            return None
        try:
            return read_lock(lock_path(self._current_flake_path))
        except NotFoundError:
            return None

    def latest_reference(self, flake_path: Path) -> GenerationReference:
        """Return the reference the configuration repository would build.

        Raises
        ------
        ExternalToolError
            When ``nix flake metadata`` fails or prints invalid JSON.
        """
        spec = flake_metadata_spec(flake_path)
        result = self._runner.run(spec)
        if result.failed:
            raise ExternalToolError(
                f"Reading flake metadata failed with status {result.exit_code}.",
                command_line=spec.command_line,
            )
        try:
            metadata = json.loads(result.output or "")
        except json.JSONDecodeError as exc:
            raise ExternalToolError(
                f"Could not parse flake metadata: {exc}",
                command_line=spec.command_line,
            ) from exc
        if not isinstance(metadata, dict):
            raise ExternalToolError(
                "Flake metadata is not a JSON object.",
                command_line=spec.command_line,
            )
        return reference_from_metadata(metadata)

    # ------------------------------------------------------------------
    # Internal readers
    # ------------------------------------------------------------------

    @staticmethod
    def _directory_reference(path: Path) -> GenerationReference:
        try:
            resolved = path.resolve(strict=True)
        except OSError as exc:
            raise NotFoundError(f"Cannot resolve {path}: {exc}") from exc
        timestamp: datetime | None = None
        try:
            timestamp = last_modified(read_lock(lock_path(resolved)))
        except SystoolError as exc:
            logger.debug("no lock timestamp for %s: %s", resolved, exc)
        return GenerationReference(identifier=str(resolved), timestamp=timestamp)

    @staticmethod
    def _file_reference(path: Path) -> GenerationReference:
        try:
            text = path.read_text(encoding="utf-8")
            mtime = path.stat().st_mtime
        except OSError as exc:
            raise NotFoundError(f"Cannot read {path}: {exc}") from exc
        identifier = next((line.strip() for line in text.splitlines() if line.strip()), "")
        if not identifier:
            raise NotFoundError(f"{path} does not contain a generation reference.")
        return GenerationReference(
            identifier=identifier,
            timestamp=datetime.fromtimestamp(mtime, tz=timezone.utc),
        )
